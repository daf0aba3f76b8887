"""Coroutine serialisation primitives for two-factor escalation.

Two small tools, both for single-threaded :mod:`asyncio` code:

- :class:`SingleFlight` -- per-key collapse of concurrent calls into one
  underlying operation. Used so that N concurrent requests against the same
  app trigger exactly one two-factor prompt and one pre-authorisation.
- :class:`Mutex` -- FIFO serialisation of whole operations. Used so that
  two prompts for *different* apps never interleave on the terminal.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Run at most one operation per key at a time; concurrent callers share its outcome.

    The first caller for a key runs ``operation``; callers arriving while it
    is in flight await the same result or exception without invoking
    ``operation`` themselves. The key is released as soon as the operation
    settles, so a later call runs it again. Different keys never block each
    other.

    Example::

        flight: SingleFlight[None] = SingleFlight()
        await asyncio.gather(
            flight.synchronize("myapp", preauthorize),
            flight.synchronize("myapp", preauthorize),  # waits, does not re-run
        )
    """

    def __init__(self) -> None:
        self._inflight: dict[Hashable, asyncio.Future[T]] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    async def synchronize(self, key: Hashable, operation: Callable[[], Awaitable[T]]) -> T:
        """Run *operation* for *key*, or join the run already in progress.

        Args:
            key: Identity of the guarded resource.
            operation: Zero-argument coroutine factory.

        Returns:
            The operation's result, shared by every concurrent caller.

        Raises:
            Exception: Whatever the operation raised, re-raised in every
                concurrent caller.
        """
        existing = self._inflight.get(key)
        if existing is not None:
            # A cancelled waiter must not cancel the shared future.
            return await asyncio.shield(existing)

        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            result = await operation()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except BaseException as exc:
            future.set_exception(exc)
            # Mark retrieved; the owner re-raises it below.
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            del self._inflight[key]


class Mutex:
    """Serialise whole coroutine operations in arrival order.

    Example::

        mutex = Mutex()
        code = await mutex.synchronize(lambda: prompter.ask("Two-factor code", mask=True))
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    async def synchronize(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Wait for earlier operations, then run *operation* exclusively."""
        async with self._lock:
            return await operation()
