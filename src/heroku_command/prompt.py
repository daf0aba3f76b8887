"""Interactive prompts used by the login flow and two-factor escalation.

:class:`Prompter` is the seam between the async core and the blocking
terminal: every prompt runs :func:`typer.prompt` on its own daemon thread
and hands the answer back to the event loop through a future, so the loop
keeps serving other tasks while the user types. A prompt that is
abandoned (the login timed out, the command was interrupted) leaves its
thread waiting on the terminal without holding up loop shutdown or
interpreter exit. Tests substitute any object with the same ``ask``
coroutine.
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
from typing import Any, Optional

import typer


def _settle(future: asyncio.Future, value: Any, exc: Optional[BaseException]) -> None:
    if future.done():
        return
    if exc is not None:
        future.set_exception(exc)
    else:
        future.set_result(value)


class Prompter:
    """Ask the user for a line of input on stderr.

    Example::

        code = await Prompter().ask("Two-factor code", mask=True)
    """

    async def ask(
        self,
        label: str,
        *,
        default: Optional[str] = None,
        mask: bool = False,
    ) -> str:
        """Prompt for a value.

        Args:
            label: Text shown before the cursor.
            default: Value returned when the user just presses Enter.
            mask: Hide the typed characters (passwords, tokens, codes).

        Returns:
            The entered value with surrounding whitespace removed.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def worker() -> None:
            value: Optional[str] = None
            error: Optional[BaseException] = None
            try:
                value = self._ask_blocking(label, default, mask)
            except Exception as exc:
                error = exc
            # The loop may have closed while the prompt was waiting.
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(_settle, future, value, error)

        threading.Thread(target=worker, name=f"prompt: {label}", daemon=True).start()
        return await future

    @staticmethod
    def _ask_blocking(label: str, default: Optional[str], mask: bool) -> str:
        value = typer.prompt(
            label,
            default=default,
            hide_input=mask,
            show_default=not mask,
            err=True,
        )
        return str(value).strip()
