"""Terminal output for the CLI: data on stdout, everything else on stderr.

Shell scripts pipe the results of ``whoami``, ``token`` and
``completions``, so only those values are ever written to stdout.
Prompts, warnings, progress and errors (including the URL printed when a
browser cannot be launched) go to stderr.

Colour is turned off by ``--no-color``, a ``NO_COLOR`` variable of any
value, or ``TERM=dumb`` (see `clig.dev <https://clig.dev/>`_).

:func:`~heroku_command.app.main_callback` installs one
:class:`OutputManager` per invocation with :func:`set_output`; library
code fetches it with :func:`get_output`. Debug tracing of requests and
login state is separate: it goes through :mod:`logging`, which
:func:`configure_logging` points at a :class:`rich.logging.RichHandler`.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console
from rich.logging import RichHandler

_PACKAGE_LOGGER = "heroku_command"


class OutputManager:
    """Writes data and diagnostics for one CLI invocation.

    Args:
        no_color: Print plain text without Rich styling.
        quiet: Drop ``info``, ``success`` and progress messages.
        verbose: Show ``debug`` messages.
    """

    def __init__(
        self,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._plain = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._console = Console(file=sys.stderr, stderr=True, no_color=self._plain)

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    def print_data(self, text: str) -> None:
        """Write *text* and a newline to stdout."""
        print(text, file=sys.stdout, flush=True)

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, style="green")

    def warning(self, message: str) -> None:
        """Print a warning. Shown even in quiet mode."""
        self._emit(message, label="Warning:", style="yellow")

    def error(self, message: str) -> None:
        self._emit(message, label="Error:", style="bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(message, label="[debug]", style="dim")

    @contextmanager
    def action(self, message: str) -> Iterator[None]:
        """Report progress on *message* while the block runs.

        A TTY gets a Rich spinner that disappears when the block ends.
        Anything else gets ``"<message>..."`` and then ``" done"``, which is
        printed even when the block raises.

        Example::

            with get_output().action("Waiting for login"):
                result = await poll()
        """
        if self._quiet:
            yield
            return
        if not self._plain and _is_tty():
            with self._console.status(_escape(message)):
                yield
            return
        print(f"{message}...", end="", file=sys.stderr, flush=True)
        try:
            yield
        finally:
            print(" done", file=sys.stderr, flush=True)

    def _emit(self, message: str, label: str = "", style: str = "") -> None:
        if self._plain:
            line = f"{label} {message}" if label else message
            print(line, file=sys.stderr, flush=True)
            return
        text = _escape(message)
        if label and style == "dim":
            self._console.print(f"[dim]{_escape(label)} {text}[/dim]")
        elif label:
            self._console.print(f"[{style}]{label}[/{style}] {text}")
        elif style:
            self._console.print(f"[{style}]{text}[/{style}]")
        else:
            self._console.print(message, markup=False, highlight=False)


def _escape(message: str) -> str:
    return message.replace("[", "\\[")


def _is_tty() -> bool:
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set to anything or ``TERM`` is ``dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


def configure_logging(verbose: bool = False) -> None:
    """Attach a :class:`~rich.logging.RichHandler` to the package logger.

    ``DEBUG`` records are emitted only with ``--verbose``; otherwise only
    ``WARNING`` and above reach stderr. Safe to call more than once.
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=Console(file=sys.stderr, stderr=True),
            show_time=False,
            show_path=False,
        )
        logger.addHandler(handler)
    logger.propagate = False


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the installed manager. Tests call this so stale streams are not reused."""
    global _output
    _output = None


def print_data(text: str) -> None:
    get_output().print_data(text)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
