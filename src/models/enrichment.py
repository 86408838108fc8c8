"""Normalized results returned by the enrichment providers.

Each external API's response is mapped into one of these frozen Pydantic v2
models before it is cached, so the cache never holds raw JSON and callers
never depend on a provider's wire format.

Geocoding results keep the field names the rest of the application stores
(``_normalized_city`` / ``_is_coordinates``) as serialization aliases; dump
them with ``model_dump(by_alias=True, exclude_none=True)``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from src.utils.text_normalizer import format_coordinates

# ---------------------------------------------------------------------------
# Last.fm
# ---------------------------------------------------------------------------

IMAGE_SIZES = ("small", "medium", "large", "extralarge", "mega")


class LastFmImageUrls(BaseModel):
    """Artist image URLs keyed by Last.fm's size names."""

    model_config = ConfigDict(frozen=True)

    small: str | None = None
    medium: str | None = None
    large: str | None = None
    extralarge: str | None = None
    mega: str | None = None

    def best(self) -> str | None:
        """Largest image suitable for a band page (extralarge > large > medium)."""
        return self.extralarge or self.large or self.medium


class LastFmArtistInfo(BaseModel):
    """Artist data from Last.fm ``artist.getinfo``."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    images: LastFmImageUrls = Field(default_factory=LastFmImageUrls)
    genres: list[str] = Field(default_factory=list)
    bio: str | None = None


# ---------------------------------------------------------------------------
# MusicBrainz
# ---------------------------------------------------------------------------


class MusicBrainzArtistMatch(BaseModel):
    """Best artist match from a MusicBrainz search."""

    model_config = ConfigDict(frozen=True)

    mbid: str
    name: str


class MusicBrainzArtistData(BaseModel):
    """URL relations of a MusicBrainz artist that the app cares about."""

    model_config = ConfigDict(frozen=True)

    wikidata_id: str | None = None
    official_homepage: str | None = None


# ---------------------------------------------------------------------------
# Photon
# ---------------------------------------------------------------------------


class GeocodingData(BaseModel):
    """Reverse-geocoded location, or a coordinate-string fallback."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    normalized_city: str = Field(alias="_normalized_city")
    is_coordinates: bool | None = Field(default=None, alias="_is_coordinates")
    city: str | None = None
    name: str | None = None
    country: str | None = None
    state: str | None = None

    @classmethod
    def fallback(cls, lat: float, lon: float) -> GeocodingData:
        """Coordinates formatted as the city name, flagged as such."""
        return cls(normalized_city=format_coordinates(lat, lon), is_coordinates=True)

    def to_dict(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


class VenueSearchResult(BaseModel):
    """One venue candidate from a Photon forward search."""

    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    lat: float
    lon: float
    street: str | None = None
    housenumber: str | None = None
    postcode: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    osm_type: str | None = None
    osm_id: int | None = None


# ---------------------------------------------------------------------------
# Band enrichment (what the CRUD layer writes onto a band)
# ---------------------------------------------------------------------------


class BandEnrichment(BaseModel):
    """Combined enrichment for one band."""

    model_config = ConfigDict(frozen=True)

    name: str
    lastfm_url: str | None = None
    genres: list[str] = Field(default_factory=list)
    bio: str | None = None
    image_url: str | None = None
    website_url: str | None = None
