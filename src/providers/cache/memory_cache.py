"""In-memory lookup cache, optionally bounded with cachetools.

By default entries live for the whole process (a build or one server
lifetime).  Long-running processes can bound the cache with ``max_size``
(LRU eviction) and/or ``ttl`` (time-based expiry), both backed by
``cachetools``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, MutableMapping

import structlog
from cachetools import LRUCache, TTLCache

from src.interfaces.cache_provider import MISS, CacheLookup, ICacheProvider

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TTL_MAXSIZE = 10_000


@dataclass(frozen=True)
class _Entry:
    value: Any
    retry_at: float | None = None


class MemoryCacheProvider(ICacheProvider):
    """Process-lifetime cache of lookup outcomes.

    Parameters
    ----------
    max_size:
        Maximum number of entries; least-recently-used entries are evicted.
        ``None`` means unbounded.
    ttl:
        Seconds before an entry expires.  ``None`` means never.
    clock:
        Monotonic time source shared with the lookup client.
    """

    def __init__(
        self,
        max_size: int | None = None,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._store: MutableMapping[str, _Entry]
        if ttl is not None:
            self._store = TTLCache(maxsize=max_size or _DEFAULT_TTL_MAXSIZE, ttl=ttl, timer=clock)
        elif max_size is not None:
            self._store = LRUCache(maxsize=max_size)
        else:
            self._store = {}

    def __len__(self) -> int:
        return len(self._store)

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> CacheLookup:
        entry = self._store.get(key)
        if entry is None:
            logger.debug("cache_miss", key=key)
            return MISS
        if self._is_stale(entry):
            # Rate-limited "absent" whose cooldown has elapsed: look it up again.
            self._store.pop(key, None)
            logger.debug("cache_stale", key=key)
            return MISS
        logger.debug("cache_hit", key=key)
        return CacheLookup(hit=True, value=entry.value)

    async def set(self, key: str, value: Any, retry_at: float | None = None) -> None:
        self._store[key] = _Entry(value=value, retry_at=retry_at)
        logger.debug("cache_set", key=key, absent=value is None, retry_at=retry_at)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)
        logger.debug("cache_delete", key=key)

    async def exists(self, key: str) -> bool:
        entry = self._store.get(key)
        return entry is not None and not self._is_stale(entry)

    # ------------------------------------------------------------------
    # Snapshot support (prefetch warm-up)
    # ------------------------------------------------------------------

    def seed(self, entries: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> int:
        """Preload settled outcomes; returns the number of entries written."""
        items = entries.items() if isinstance(entries, Mapping) else entries
        count = 0
        for key, value in items:
            self._store[key] = _Entry(value=value)
            count += 1
        return count

    def snapshot(self) -> dict[str, Any]:
        """Return every settled, non-stale outcome keyed by lookup key."""
        return {
            key: entry.value
            for key, entry in list(self._store.items())
            if not self._is_stale(entry) and entry.retry_at is None
        }

    def _is_stale(self, entry: _Entry) -> bool:
        return entry.retry_at is not None and self._clock() >= entry.retry_at
