"""Lookup-key normalization for the enrichment caches.

Every cache and in-flight map is keyed by a normalized string so that two
callers asking for the same thing share one entry:

1. **Artist names** -- lowercased and trimmed ("  Radiohead " and
   "radiohead" hit the same Last.fm / MusicBrainz entry).
2. **Coordinates** -- fixed six-decimal pairs, stable across runs so prefetch
   snapshots line up with runtime lookups.
3. **Venue queries** -- the raw query plus the optional bias coordinates.

The display helper :func:`format_coordinates` produces the three-decimal
string used as the geocoding fallback city name.
"""

from __future__ import annotations

import math


def normalize_artist_key(name: str) -> str:
    """Return the cache key for an artist name."""
    return name.strip().lower()


def coordinate_key(lat: float, lon: float) -> str:
    """Return the cache key for a coordinate pair, or ``""`` if not finite.

    >>> coordinate_key(52.52, 13.405)
    '52.520000,13.405000'
    """
    lat_f, lon_f = float(lat), float(lon)
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        return ""
    return f"{lat_f:.6f},{lon_f:.6f}"


def format_coordinates(lat: float, lon: float) -> str:
    """Format coordinates for display when no city name is available."""
    return f"{float(lat):.3f}, {float(lon):.3f}"


def venue_query_key(query: str, lat: float | None = None, lon: float | None = None) -> str:
    """Return the cache key for a venue search (query plus bias point)."""
    lat_part = "" if lat is None else str(lat)
    lon_part = "" if lon is None else str(lon)
    return f"{query}:{lat_part}:{lon_part}"


def parse_coordinate_pair(raw: str) -> tuple[float, float] | None:
    """Parse ``"lat,lon"`` (whitespace tolerant) into floats.

    Returns ``None`` for blank lines, comments and anything unparseable;
    used by the prefetch CLI to read coordinate lists.
    """
    text = raw.strip()
    if not text or text.startswith("#"):
        return None
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2:
        return None
    try:
        lat, lon = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not coordinate_key(lat, lon):
        return None
    return lat, lon
