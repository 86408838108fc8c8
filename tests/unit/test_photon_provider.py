"""Unit tests for the Photon geocoding provider."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from src.config.lookup_clients import PHOTON
from src.models.enrichment import GeocodingData
from src.providers.geocoding.photon_provider import PhotonProvider, format_display_name
from tests.conftest import FakeClock, json_response, make_lookup_client, status_response

_BERLIN = {
    "features": [
        {
            "geometry": {"type": "Point", "coordinates": [13.405, 52.52]},
            "properties": {
                "city": "Berlin",
                "name": "Mitte",
                "country": "Germany",
                "state": "Berlin",
            },
        }
    ]
}

_VENUES = {
    "features": [
        {
            "geometry": {"type": "Point", "coordinates": [13.4430, 52.5113]},
            "properties": {
                "name": "Berghain",
                "street": "Am Wriezener Bahnhof",
                "postcode": "10243",
                "city": "Berlin",
                "country": "Germany",
                "osm_type": "W",
                "osm_id": 123456,
            },
        },
        {
            "geometry": {"type": "Point", "coordinates": [13.0, 52.0]},
            "properties": {"street": "Hauptstraße", "housenumber": "5"},
        },
        {"geometry": {"coordinates": []}, "properties": {"name": "broken"}},
    ]
}


def _provider(http_client: MagicMock, clock: FakeClock, enabled: bool = True) -> PhotonProvider:
    return PhotonProvider(
        http_client=http_client,
        lookup_client=make_lookup_client(PHOTON, clock),
        base_url="https://photon.example/",
        enabled=enabled,
    )


class TestReverseGeocode:
    @pytest.mark.asyncio
    async def test_resolves_city(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.return_value = json_response(_BERLIN)
        provider = _provider(http_client, clock)

        result = await provider.reverse_geocode(52.52, 13.405)

        assert result.to_dict() == {
            "_normalized_city": "Berlin",
            "city": "Berlin",
            "name": "Mitte",
            "country": "Germany",
            "state": "Berlin",
        }
        assert http_client.get.call_args.args[0] == "https://photon.example/reverse"
        assert http_client.get.call_args.kwargs["params"] == {
            "lat": "52.52",
            "lon": "13.405",
            "limit": "1",
        }

    @pytest.mark.asyncio
    async def test_city_falls_back_to_locality_then_name(
        self, http_client: MagicMock, clock: FakeClock
    ) -> None:
        http_client.get.return_value = json_response(
            {"features": [{"properties": {"locality": "  Kreuzberg ", "name": "Somewhere"}}]}
        )
        provider = _provider(http_client, clock)

        result = await provider.reverse_geocode(52.5, 13.4)

        assert result.normalized_city == "Kreuzberg"
        assert result.is_coordinates is None

    @pytest.mark.asyncio
    async def test_non_ok_response_returns_coordinate_fallback(
        self, http_client: MagicMock, clock: FakeClock
    ) -> None:
        http_client.get.return_value = status_response(400)
        provider = _provider(http_client, clock)

        result = await provider.reverse_geocode(52.52, 13.405)

        assert result.to_dict() == {"_normalized_city": "52.520, 13.405", "_is_coordinates": True}

    @pytest.mark.asyncio
    async def test_no_features_returns_fallback(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.return_value = json_response({"features": []})
        provider = _provider(http_client, clock)

        result = await provider.reverse_geocode(0.0, 0.0)

        assert result.is_coordinates is True
        assert result.normalized_city == "0.000, 0.000"

    @pytest.mark.asyncio
    async def test_malformed_features_return_fallback(
        self, http_client: MagicMock, clock: FakeClock
    ) -> None:
        http_client.get.return_value = json_response({"features": {"0": "x"}})
        provider = _provider(http_client, clock)

        result = await provider.reverse_geocode(52.52, 13.405)

        assert result.to_dict() == {"_normalized_city": "52.520, 13.405", "_is_coordinates": True}
        assert http_client.get.call_count == 1

    @pytest.mark.asyncio
    async def test_timeouts_retried_twice(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.side_effect = httpx.ConnectTimeout("timed out")
        provider = _provider(http_client, clock)

        result = await provider.reverse_geocode(52.52, 13.405)

        assert result.is_coordinates is True
        assert http_client.get.call_count == 3

    @pytest.mark.asyncio
    async def test_server_error_then_success(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.side_effect = [status_response(502), json_response(_BERLIN)]
        provider = _provider(http_client, clock)

        result = await provider.reverse_geocode(52.52, 13.405)

        assert result.normalized_city == "Berlin"

    @pytest.mark.asyncio
    async def test_same_coordinates_hit_cache(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.return_value = json_response(_BERLIN)
        provider = _provider(http_client, clock)

        await provider.reverse_geocode(52.52, 13.405)
        await provider.reverse_geocode(52.5200000001, 13.405)

        assert http_client.get.call_count == 1

    @pytest.mark.asyncio
    async def test_disabled_returns_fallback_without_request(
        self, http_client: MagicMock, clock: FakeClock
    ) -> None:
        provider = _provider(http_client, clock, enabled=False)

        result = await provider.reverse_geocode(52.52, 13.405)

        assert result == GeocodingData.fallback(52.52, 13.405)
        http_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_load_snapshot_skips_fallbacks(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.return_value = json_response(_BERLIN)
        provider = _provider(http_client, clock)

        seeded = provider.load_snapshot(
            {
                "48.137000,11.575000": {"_normalized_city": "München", "city": "München"},
                "52.520000,13.405000": {"_normalized_city": "52.520, 13.405", "_is_coordinates": True},
            }
        )

        assert seeded == 1
        munich = await provider.reverse_geocode(48.137, 11.575)
        assert munich.normalized_city == "München"
        http_client.get.assert_not_called()

        berlin = await provider.reverse_geocode(52.52, 13.405)
        assert berlin.normalized_city == "Berlin"
        assert http_client.get.call_count == 1


class TestVenueSearch:
    @pytest.mark.asyncio
    async def test_maps_features(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.return_value = json_response(_VENUES)
        provider = _provider(http_client, clock)

        results = await provider.search_venues("Berghain", lat=52.5, lon=13.4)

        assert len(results) == 2
        berghain = results[0]
        assert berghain.name == "Berghain"
        assert berghain.display_name == "Am Wriezener Bahnhof, 10243 Berlin, Germany"
        assert (berghain.lat, berghain.lon) == (52.5113, 13.4430)
        assert berghain.osm_id == 123456
        assert results[1].name == "Hauptstraße"
        assert results[1].display_name == "Hauptstraße 5"

        assert http_client.get.call_args.args[0] == "https://photon.example/api/"
        params = http_client.get.call_args.kwargs["params"]
        assert params == {"q": "Berghain", "limit": "10", "lat": "52.5", "lon": "13.4"}

    @pytest.mark.asyncio
    async def test_osm_tag_filter(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.return_value = json_response({"features": []})
        provider = _provider(http_client, clock)

        await provider.search_venues("Club", osm_tag="amenity:nightclub")

        params = http_client.get.call_args.kwargs["params"]
        assert params["osm_tag"] == "amenity:nightclub"
        assert "lat" not in params

    @pytest.mark.asyncio
    async def test_short_query_makes_no_request(self, http_client: MagicMock, clock: FakeClock) -> None:
        provider = _provider(http_client, clock)
        assert await provider.search_venues("Be") == []
        http_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_returns_empty_list(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.return_value = status_response(400)
        provider = _provider(http_client, clock)
        assert await provider.search_venues("Berghain") == []

    @pytest.mark.asyncio
    async def test_repeated_query_is_cached(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.return_value = json_response(_VENUES)
        provider = _provider(http_client, clock)

        await provider.search_venues("Berghain")
        await provider.search_venues("Berghain")

        assert http_client.get.call_count == 1


class TestFormatDisplayName:
    def test_city_without_postcode(self) -> None:
        assert format_display_name({"city": "Berlin", "country": "Germany"}) == "Berlin, Germany"

    def test_empty(self) -> None:
        assert format_display_name({}) == ""
