"""Public interface definitions for the enrichment providers.

Every external API is accessed exclusively through the abstract base classes
defined in this package.  Concrete adapters implement these interfaces and
are injected at runtime (see ``src/main.py``), so callers and tests can swap
in fakes without touching HTTP.

CONCRETE PROVIDER MAP:
    Interface              →  Concrete implementation (in src/providers/)
    ─────────────────────────────────────────────────────────────────
    IArtistInfoProvider    →  LastFmProvider
    IArtistImageProvider   →  MusicBrainzProvider
    IGeocodingProvider     →  PhotonProvider
    ICacheProvider         →  MemoryCacheProvider
"""

from src.interfaces.cache_provider import CacheLookup, ICacheProvider
from src.interfaces.enrichment_provider import (
    IArtistImageProvider,
    IArtistInfoProvider,
    IGeocodingProvider,
)

__all__ = [
    "CacheLookup",
    "IArtistImageProvider",
    "IArtistInfoProvider",
    "ICacheProvider",
    "IGeocodingProvider",
]
