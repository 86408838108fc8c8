"""Unit tests for the Last.fm provider adapter."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from src.config.lookup_clients import LASTFM
from src.models.enrichment import LastFmArtistInfo
from src.providers.music_db.lastfm_provider import LastFmProvider
from src.utils.errors import ConfigurationError
from tests.conftest import FakeClock, json_response, make_lookup_client, status_response

_ARTIST_PAYLOAD = {
    "artist": {
        "name": "Radiohead",
        "url": "https://www.last.fm/music/Radiohead",
        "image": [
            {"#text": "https://img.example/s.png", "size": "small"},
            {"#text": "https://img.example/m.png", "size": "medium"},
            {"#text": "https://img.example/xl.png", "size": "extralarge"},
            {"#text": "", "size": "mega"},
        ],
        "tags": {"tag": [{"name": "alternative"}, {"name": "rock"}, {"name": "  "}]},
        "bio": {"summary": "English rock band from Abingdon."},
    }
}


def _provider(http_client: MagicMock, clock: FakeClock, **kwargs) -> LastFmProvider:
    kwargs.setdefault("api_key", "test-key")
    return LastFmProvider(
        http_client=http_client,
        lookup_client=make_lookup_client(LASTFM, clock),
        **kwargs,
    )


class TestLastFmProviderSetup:
    def test_get_provider_name(self, http_client: MagicMock, clock: FakeClock) -> None:
        assert _provider(http_client, clock).get_provider_name() == "lastfm"

    def test_enabled_without_key_fails_fast(self, http_client: MagicMock, clock: FakeClock) -> None:
        with pytest.raises(ConfigurationError):
            _provider(http_client, clock, api_key="")

    def test_disabled_without_key_is_allowed(self, http_client: MagicMock, clock: FakeClock) -> None:
        provider = _provider(http_client, clock, api_key="", enabled=False)
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_disabled_makes_no_request(self, http_client: MagicMock, clock: FakeClock) -> None:
        provider = _provider(http_client, clock, enabled=False)
        assert await provider.get_artist_info("Radiohead") is None
        http_client.get.assert_not_called()


class TestLastFmProviderLookups:
    @pytest.mark.asyncio
    async def test_get_artist_info_maps_response(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.return_value = json_response(_ARTIST_PAYLOAD)
        provider = _provider(http_client, clock)

        info = await provider.get_artist_info("Radiohead")

        assert isinstance(info, LastFmArtistInfo)
        assert info.name == "Radiohead"
        assert info.url == "https://www.last.fm/music/Radiohead"
        assert info.genres == ["alternative", "rock"]
        assert info.bio == "English rock band from Abingdon."
        assert info.images.small == "https://img.example/s.png"
        assert info.images.mega is None
        assert info.images.best() == "https://img.example/xl.png"

        params = http_client.get.call_args.kwargs["params"]
        assert params["method"] == "artist.getinfo"
        assert params["artist"] == "Radiohead"
        assert params["autocorrect"] == "1"
        assert params["api_key"] == "test-key"
        assert params["format"] == "json"

    @pytest.mark.asyncio
    async def test_not_found_is_cached_under_normalized_key(
        self, http_client: MagicMock, clock: FakeClock
    ) -> None:
        http_client.get.return_value = json_response(
            {"error": 6, "message": "The artist you supplied could not be found"}
        )
        provider = _provider(http_client, clock)

        assert await provider.get_artist_info("Zzzznonexistentband123") is None
        cached = await provider.cache.get("zzzznonexistentband123")
        assert cached.hit is True
        assert cached.value is None

        assert await provider.get_artist_info("Zzzznonexistentband123") is None
        assert http_client.get.call_count == 1

    @pytest.mark.asyncio
    async def test_names_differing_in_case_share_one_entry(
        self, http_client: MagicMock, clock: FakeClock
    ) -> None:
        http_client.get.return_value = json_response(_ARTIST_PAYLOAD)
        provider = _provider(http_client, clock)

        await provider.get_artist_info("Radiohead")
        await provider.get_artist_info("  radiohead ")

        assert http_client.get.call_count == 1

    @pytest.mark.asyncio
    async def test_rate_limit_code_retries_after_cooldown(
        self, http_client: MagicMock, clock: FakeClock
    ) -> None:
        http_client.get.side_effect = [
            json_response({"error": 29, "message": "Rate limit exceeded"}),
            json_response(_ARTIST_PAYLOAD),
        ]
        provider = _provider(http_client, clock)
        start = clock.now

        info = await provider.get_artist_info("Radiohead")

        assert info is not None
        assert http_client.get.call_count == 2
        assert provider.lookup_client.breaker.cooldown_until >= start + 60.0

    @pytest.mark.asyncio
    async def test_invalid_key_stops_all_calls(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.return_value = json_response({"error": 10, "message": "Invalid API key"})
        provider = _provider(http_client, clock)

        assert await provider.get_artist_info("Radiohead") is None
        assert await provider.get_artist_info("Portishead") is None

        assert http_client.get.call_count == 1
        assert provider.lookup_client.breaker.is_permanently_open is True

    @pytest.mark.asyncio
    async def test_timeout_is_retried_once(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.side_effect = httpx.ReadTimeout("timed out")
        provider = _provider(http_client, clock)

        assert await provider.get_artist_info("Radiohead") is None
        assert http_client.get.call_count == 2

    @pytest.mark.asyncio
    async def test_unparseable_body_is_transient(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.side_effect = [
            status_response(200, text="<html>oops</html>"),
            json_response(_ARTIST_PAYLOAD),
        ]
        provider = _provider(http_client, clock)

        info = await provider.get_artist_info("Radiohead")

        assert info is not None and info.name == "Radiohead"
        assert http_client.get.call_count == 2

    @pytest.mark.asyncio
    async def test_unknown_error_code_is_terminal(self, http_client: MagicMock, clock: FakeClock) -> None:
        http_client.get.return_value = json_response({"error": 8, "message": "Operation failed"})
        provider = _provider(http_client, clock)

        assert await provider.get_artist_info("Radiohead") is None
        assert await provider.get_artist_info("Radiohead") is None
        assert http_client.get.call_count == 1


    @pytest.mark.asyncio
    async def test_malformed_artist_payload_returns_none(
        self, http_client: MagicMock, clock: FakeClock
    ) -> None:
        http_client.get.return_value = json_response(
            {"artist": {"name": "X", "url": "u", "bio": {"summary": 5}}}
        )
        provider = _provider(http_client, clock)

        assert await provider.get_artist_info("X") is None
        cached = await provider.cache.get("x")
        assert cached.hit is True and cached.value is None
        assert http_client.get.call_count == 1


class TestLastFmMapping:
    def test_single_tag_object(self) -> None:
        info = LastFmProvider.map_artist(
            {"name": "Solo", "url": "u", "tags": {"tag": {"name": "ambient"}}}
        )
        assert info.genres == ["ambient"]

    def test_missing_fields_use_fallbacks(self) -> None:
        info = LastFmProvider.map_artist({}, fallback_name="Someone")
        assert info.name == "Someone"
        assert info.url == ""
        assert info.genres == []
        assert info.bio is None
        assert info.images.best() is None

    def test_string_tags_and_url_images(self) -> None:
        info = LastFmProvider.map_artist(
            {
                "name": "X",
                "url": "u",
                "image": [{"url": "https://img.example/l.png", "size": "large"}],
                "tags": {"tag": ["techno", ""]},
            }
        )
        assert info.images.large == "https://img.example/l.png"
        assert info.genres == ["techno"]


class TestLastFmSnapshot:
    @pytest.mark.asyncio
    async def test_load_snapshot_seeds_cache(self, http_client: MagicMock, clock: FakeClock) -> None:
        provider = _provider(http_client, clock)
        count = provider.load_snapshot(
            {
                "Radiohead": {"name": "Radiohead", "url": "https://www.last.fm/music/Radiohead"},
                "zzzznonexistentband123": None,
                "broken": {"url": 123},
            }
        )

        assert count == 2
        info = await provider.get_artist_info("radiohead")
        assert info is not None and info.name == "Radiohead"
        assert await provider.get_artist_info("Zzzznonexistentband123") is None
        http_client.get.assert_not_called()
