"""Cache providers.

Process-lifetime caches used by the lookup clients to avoid redundant
external calls (e.g. the same band appearing on many concerts during one
build is looked up on Last.fm once).

MemoryCacheProvider stores settled outcomes, including "definitively absent";
InFlightDeduplicator collapses concurrent lookups for the same key.
"""

from src.providers.cache.inflight import InFlightDeduplicator
from src.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["InFlightDeduplicator", "MemoryCacheProvider"]
