"""In-flight request deduplication.

Collapses concurrent lookups for the same key into one underlying task: the
first caller starts it, later callers await the same task, and the pending
entry disappears as soon as the task settles (success or failure).
"""

from __future__ import annotations

import asyncio
import functools
from typing import Awaitable, Callable, Generic, TypeVar

_T = TypeVar("_T")


class InFlightDeduplicator(Generic[_T]):
    """Map of lookup key -> pending task."""

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Future[_T]] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, key: object) -> bool:
        return key in self._pending

    async def dedupe(self, key: str, factory: Callable[[], Awaitable[_T]]) -> _T:
        """Join the pending task for *key*, or start one with *factory*.

        Callers await a shielded view of the task, so cancelling one caller
        does not cancel the lookup the others are waiting on.
        """
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            # Registered before any awaiter, so it runs before they resume.
            task.add_done_callback(functools.partial(self._discard, key))
        return await asyncio.shield(task)

    def _discard(self, key: str, task: asyncio.Future[_T]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
