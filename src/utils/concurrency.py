"""Concurrency primitives shared by the external lookup clients.

Two pieces live here:

1. **RequestGate** -- the pacing + concurrency limiter that sits in front of
   every outbound call to one external API.  It bounds how many calls are
   in flight (FIFO queue of waiters, no priorities) and enforces a minimum
   interval between the *starts* of consecutive calls.

2. **throttled_gather** -- a drop-in replacement for ``asyncio.gather``
   that wraps each awaitable in a semaphore acquire/release.  Used for
   fan-out work such as enriching a batch of bands.

All gate mutations happen between awaits on the event loop, so no lock is
needed: the event loop is the single sequencing point.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import deque
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from src.utils.logging import get_logger

_T = TypeVar("_T")

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]

_logger = get_logger(__name__)


class RequestGate:
    """Pace and bound outbound requests to a single external API.

    Parameters
    ----------
    min_interval:
        Minimum seconds between the start of two consecutive requests.
    max_concurrent:
        Maximum number of slot holders at any time.
    clock:
        Monotonic time source (injectable for tests).
    sleep:
        Coroutine used to wait (injectable for tests).
    """

    def __init__(
        self,
        min_interval: float,
        max_concurrent: int = 1,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._min_interval = min_interval
        self._max_concurrent = max_concurrent
        self._clock = clock
        self._sleep = sleep
        self._in_flight = 0
        self._next_allowed_at = 0.0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    @property
    def next_allowed_at(self) -> float:
        return self._next_allowed_at

    async def acquire_slot(self) -> None:
        """Suspend until a slot is free, then take it.

        Waiters are served strictly first-come-first-served: a newcomer never
        overtakes a queued caller even if a slot happens to be free.
        """
        if self._in_flight < self._max_concurrent and not self._waiters:
            self._in_flight += 1
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The slot was handed over just before cancellation.
                self.release_slot()
            else:
                with contextlib.suppress(ValueError):
                    self._waiters.remove(waiter)
            raise
        # release_slot() handed its slot to us; in_flight is unchanged.

    def release_slot(self) -> None:
        """Give the slot back, handing it to the head of the queue if any."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._in_flight = max(0, self._in_flight - 1)

    @contextlib.asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold a slot for the duration of the ``async with`` block."""
        await self.acquire_slot()
        try:
            yield
        finally:
            self.release_slot()

    async def wait_for_window(self) -> None:
        """Suspend until the next request may start.

        The window is reserved before sleeping so that two slot holders
        never receive the same start time.
        """
        now = self._clock()
        start_at = max(now, self._next_allowed_at)
        self._next_allowed_at = start_at + self._min_interval
        delay = start_at - now
        if delay > 0:
            await self._sleep(delay)


async def throttled_gather(
    coros: list[Awaitable[_T]],
    limit: int = 4,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most *limit* at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    limit:
        Maximum number of awaitables running at once.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    semaphore = asyncio.Semaphore(limit)

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    results = await asyncio.gather(*tasks, return_exceptions=return_exceptions)
    failures = sum(1 for r in results if isinstance(r, BaseException))
    if failures:
        _logger.debug("throttled_gather_failures", total=len(results), failures=failures)
    return results
