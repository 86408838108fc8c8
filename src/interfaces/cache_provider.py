"""Abstract base class for lookup-result caches.

Defines the contract for the per-client response cache that memoizes the
outcome of external lookups by normalized key.  The important twist over a
plain key-value store is that ``None`` is a real, cacheable outcome
("looked up, definitively absent"), so ``get`` reports a hit flag instead of
overloading ``None`` as "missing".

All operations are async so a network-backed store could be swapped in
without touching the lookup client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache read.

    Attributes
    ----------
    hit:
        ``True`` if a settled outcome is stored for the key.
    value:
        The stored outcome; ``None`` on a hit means "definitively absent".
    """

    hit: bool
    value: Any = None


MISS = CacheLookup(hit=False)


class ICacheProvider(ABC):
    """Contract for lookup-result caches."""

    @abstractmethod
    async def get(self, key: str) -> CacheLookup:
        """Return the cached outcome for *key*.

        A ``None`` stored because of rate limiting is reported as a miss
        (and dropped) once its ``retry_at`` time has passed.
        """

    @abstractmethod
    async def set(self, key: str, value: Any, retry_at: float | None = None) -> None:
        """Store the final outcome of a lookup.

        Parameters
        ----------
        key:
            The normalized lookup key.
        value:
            The result, or ``None`` for "absent".
        retry_at:
            For a rate-limited ``None``: the monotonic time after which the
            entry is stale and the key may be looked up again.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the entry for *key* (no-op if absent)."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* holds a settled, non-stale outcome."""
