"""Abstract base classes for the data-enrichment providers.

The CRUD layer depends only on these contracts.  Every operation is
best-effort: implementations resolve to a value (a result, ``None``, an
empty list or a fallback) for every expected failure mode and raise only
for programmer error such as missing configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.enrichment import GeocodingData, LastFmArtistInfo, VenueSearchResult


class IArtistInfoProvider(ABC):
    """Contract for artist metadata lookups (genres, bio, images)."""

    @abstractmethod
    async def get_artist_info(self, artist_name: str) -> LastFmArtistInfo | None:
        """Return metadata for *artist_name*, or ``None`` if unavailable."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"lastfm"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is enabled and configured."""


class IArtistImageProvider(ABC):
    """Contract for freely-licensed artist images and related lookups."""

    @abstractmethod
    async def get_artist_image_url(self, artist_name: str) -> str | None:
        """Return a thumbnail URL for *artist_name*, or ``None``."""

    @abstractmethod
    async def get_artist_website_url(self, artist_name: str) -> str | None:
        """Return the artist's official homepage URL, or ``None``."""

    @abstractmethod
    async def search_event(self, event_name: str) -> str | None:
        """Return the canonical name of a matching event/festival, or ``None``."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"musicbrainz"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is enabled."""


class IGeocodingProvider(ABC):
    """Contract for reverse geocoding and venue search."""

    @abstractmethod
    async def reverse_geocode(self, lat: float, lon: float) -> GeocodingData:
        """Return the city for a coordinate pair, or a coordinate fallback."""

    @abstractmethod
    async def search_venues(
        self,
        query: str,
        lat: float | None = None,
        lon: float | None = None,
        osm_tag: str | None = None,
    ) -> list[VenueSearchResult]:
        """Return venue candidates for *query*, biased towards *lat*/*lon*."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"photon"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is enabled."""
