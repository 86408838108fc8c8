"""Photon (Komoot / OpenStreetMap) provider implementing IGeocodingProvider.

Two lookups share one Photon :class:`LookupClient` (0.7s pacing, one call in
flight, no circuit breaker):

* reverse geocoding of concert coordinates to a city name, cached per
  ``"{lat:.6f},{lon:.6f}"`` key;
* forward venue search, cached per ``"{query}:{lat}:{lon}"`` key.

Geocoding never fails from the caller's point of view: anything other than a
usable city becomes the coordinate fallback, and a failed venue search is an
empty list.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from src.interfaces.enrichment_provider import IGeocodingProvider
from src.models.enrichment import GeocodingData, VenueSearchResult
from src.providers.json_api import DEFAULT_TIMEOUT, JsonApiProvider
from src.services.lookup_client import LookupClient
from src.utils.logging import get_logger
from src.utils.text_normalizer import coordinate_key, venue_query_key

DEFAULT_BASE_URL = "https://photon.komoot.io"
REVERSE_CHANNEL = "reverse"
VENUES_CHANNEL = "venues"

_CITY_FIELDS = ("city", "locality", "name", "county", "state")
_MIN_QUERY_LENGTH = 3
_SEARCH_LIMIT = 10


def format_display_name(props: Mapping[str, Any]) -> str:
    """Build ``"street housenumber, postcode city, country"`` from feature properties."""
    parts: list[str] = []

    street = props.get("street")
    if street:
        housenumber = props.get("housenumber")
        parts.append(f"{street} {housenumber}" if housenumber else str(street))

    city = props.get("city")
    postcode = props.get("postcode")
    if city:
        parts.append(f"{postcode} {city}" if postcode else str(city))

    if props.get("country"):
        parts.append(str(props["country"]))

    return ", ".join(parts)


class PhotonProvider(JsonApiProvider, IGeocodingProvider):
    """Reverse geocoding and venue search via a Photon instance.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient``.
    lookup_client:
        The Photon lookup client.
    base_url:
        Photon instance (``PHOTON_BASE_URL``).
    enabled:
        Feature flag; when ``False`` no request is made.
    """

    _provider_name = "photon"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        lookup_client: LookupClient,
        base_url: str = DEFAULT_BASE_URL,
        enabled: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(http_client, timeout=timeout)
        self._client = lookup_client
        self._base_url = base_url.rstrip("/")
        self._enabled = enabled
        self._logger = get_logger(__name__)

    @property
    def lookup_client(self) -> LookupClient:
        return self._client

    def is_available(self) -> bool:
        return self._enabled

    # -- IGeocodingProvider implementation -------------------------------------

    async def reverse_geocode(self, lat: float, lon: float) -> GeocodingData:
        """Return the city at (*lat*, *lon*), or the coordinate fallback."""
        key = coordinate_key(lat, lon)
        if not self._enabled or not key:
            return GeocodingData.fallback(lat, lon)

        result = await self._client.lookup(
            key, lambda: self._fetch_reverse(lat, lon), channel=REVERSE_CHANNEL
        )
        return result if result is not None else GeocodingData.fallback(lat, lon)

    async def search_venues(
        self,
        query: str,
        lat: float | None = None,
        lon: float | None = None,
        osm_tag: str | None = None,
    ) -> list[VenueSearchResult]:
        """Return up to ten venue candidates for *query*, biased towards *lat*/*lon*."""
        if not self._enabled or len(query) < _MIN_QUERY_LENGTH:
            return []

        key = venue_query_key(query, lat, lon)
        if osm_tag:
            key = f"{key}:{osm_tag}"
        results = await self._client.lookup(
            key,
            lambda: self._fetch_venues(query, lat, lon, osm_tag),
            channel=VENUES_CHANNEL,
        )
        return list(results) if results else []

    def load_snapshot(self, entries: Mapping[str, Any]) -> int:
        """Seed the reverse-geocoding cache from a prefetch snapshot.

        Coordinate fallbacks in the snapshot are skipped so those points are
        geocoded again.
        """
        parsed: dict[str, GeocodingData] = {}
        for key, raw in entries.items():
            if not isinstance(raw, dict) or raw.get("_is_coordinates"):
                continue
            try:
                parsed[key] = GeocodingData.model_validate(raw)
            except ValidationError as exc:
                self._logger.warning("photon_snapshot_entry_invalid", key=key, error=str(exc))
        return self._client.seed(parsed, channel=REVERSE_CHANNEL)

    # -- HTTP ------------------------------------------------------------------

    async def _fetch_reverse(self, lat: float, lon: float) -> GeocodingData | None:
        payload = await self._get_json(
            f"{self._base_url}/reverse",
            params={"lat": str(lat), "lon": str(lon), "limit": "1"},
        )
        features = payload.get("features") if isinstance(payload, dict) else None
        if not features or not isinstance(features[0], dict):
            self._logger.warning("photon_no_features", lat=lat, lon=lon)
            return None

        props = features[0].get("properties") or {}
        return self.map_reverse(props)

    async def _fetch_venues(
        self,
        query: str,
        lat: float | None,
        lon: float | None,
        osm_tag: str | None,
    ) -> list[VenueSearchResult]:
        params = {"q": query, "limit": str(_SEARCH_LIMIT)}
        if lat is not None and lon is not None:
            params["lat"] = str(lat)
            params["lon"] = str(lon)
        if osm_tag:
            params["osm_tag"] = osm_tag

        payload = await self._get_json(f"{self._base_url}/api/", params=params)
        features = payload.get("features") if isinstance(payload, dict) else None

        results: list[VenueSearchResult] = []
        for feature in features or []:
            venue = self.map_venue(feature)
            if venue is not None:
                results.append(venue)
        self._logger.debug("photon_venue_search", query=query, results=len(results))
        return results

    # -- Mapping ---------------------------------------------------------------

    @staticmethod
    def map_reverse(props: Mapping[str, Any]) -> GeocodingData | None:
        """Map reverse-geocoding feature properties; ``None`` without a usable city."""
        city = ""
        for field_name in _CITY_FIELDS:
            value = props.get(field_name)
            if isinstance(value, str) and value.strip():
                city = value.strip()
                break
        if not city:
            return None

        return GeocodingData(
            normalized_city=city,
            city=props.get("city"),
            name=props.get("name"),
            country=props.get("country"),
            state=props.get("state"),
        )

    @staticmethod
    def map_venue(feature: Any) -> VenueSearchResult | None:
        """Map one GeoJSON feature (coordinates are ``[lon, lat]``)."""
        if not isinstance(feature, dict):
            return None
        coordinates = (feature.get("geometry") or {}).get("coordinates") or []
        if len(coordinates) < 2:
            return None
        props = feature.get("properties") or {}

        return VenueSearchResult(
            name=props.get("name") or props.get("street") or "Unknown",
            display_name=format_display_name(props),
            lat=coordinates[1],
            lon=coordinates[0],
            street=props.get("street"),
            housenumber=props.get("housenumber"),
            postcode=props.get("postcode"),
            city=props.get("city"),
            state=props.get("state"),
            country=props.get("country"),
            osm_type=props.get("osm_type"),
            osm_id=props.get("osm_id"),
        )
