"""Enrichment models -- re-exports all public model classes.

Import from ``src.models`` rather than the individual module.  If you add a
new model class, remember to add it to ``__all__`` too.
"""

from __future__ import annotations

from src.models.enrichment import (
    IMAGE_SIZES,
    BandEnrichment,
    GeocodingData,
    LastFmArtistInfo,
    LastFmImageUrls,
    MusicBrainzArtistData,
    MusicBrainzArtistMatch,
    VenueSearchResult,
)

__all__ = [
    "IMAGE_SIZES",
    "BandEnrichment",
    "GeocodingData",
    "LastFmArtistInfo",
    "LastFmImageUrls",
    "MusicBrainzArtistData",
    "MusicBrainzArtistMatch",
    "VenueSearchResult",
]
