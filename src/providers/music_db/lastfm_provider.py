"""Last.fm provider implementing IArtistInfoProvider.

Calls the Last.fm ``artist.getinfo`` method directly over httpx and maps the
response to :class:`LastFmArtistInfo` (profile URL, genre tags, bio summary,
image URLs).  All traffic goes through the Last.fm :class:`LookupClient`
(1.5s pacing, two calls in flight, 60s breaker after a rate-limit signal).

Last.fm reports errors inside the JSON body as ``{"error": <code>, "message": ...}``,
often with HTTP 200:

    6, 7    artist / resource not found   -> terminal, cached as absent
    10, 26  invalid or suspended API key  -> terminal, breaker opened for good
    29      rate limit exceeded           -> breaker trip + one retry
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from src.interfaces.enrichment_provider import IArtistInfoProvider
from src.models.enrichment import IMAGE_SIZES, LastFmArtistInfo, LastFmImageUrls
from src.providers.cache.memory_cache import MemoryCacheProvider
from src.providers.json_api import DEFAULT_TIMEOUT, JsonApiProvider
from src.services.lookup_client import LookupClient
from src.utils.errors import ConfigurationError, FailureKind
from src.utils.logging import get_logger
from src.utils.text_normalizer import normalize_artist_key

_API_URL = "https://ws.audioscrobbler.com/2.0/"
_NOT_FOUND_CODES = frozenset({6, 7})
_CREDENTIAL_CODES = frozenset({10, 26})
_RATE_LIMIT_CODES = frozenset({29})


class LastFmProvider(JsonApiProvider, IArtistInfoProvider):
    """Artist metadata from Last.fm.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient``.
    lookup_client:
        The Last.fm lookup client (gate, breaker, cache, retries).
    api_key:
        Last.fm API key; required when *enabled*.
    enabled:
        Feature flag.  When ``False`` every lookup resolves to ``None``
        without touching the network.
    """

    _provider_name = "lastfm"
    _rate_limit_statuses = frozenset({429, 503})

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        lookup_client: LookupClient,
        api_key: str,
        enabled: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if enabled and not api_key:
            raise ConfigurationError(
                message="LASTFM_API_KEY is required when ENABLE_LASTFM is on",
                provider_name=self._provider_name,
            )
        super().__init__(http_client, timeout=timeout)
        self._client = lookup_client
        self._api_key = api_key
        self._enabled = enabled
        self._logger = get_logger(__name__)

    @property
    def lookup_client(self) -> LookupClient:
        return self._client

    @property
    def cache(self) -> MemoryCacheProvider:
        return self._client.channel().cache

    def is_available(self) -> bool:
        return self._enabled and bool(self._api_key)

    # -- IArtistInfoProvider implementation ------------------------------------

    async def get_artist_info(self, artist_name: str) -> LastFmArtistInfo | None:
        """Return Last.fm metadata for *artist_name*, or ``None``."""
        if not self._enabled:
            return None
        key = normalize_artist_key(artist_name)
        if not key:
            return None
        return await self._client.lookup(key, lambda: self._fetch_artist_info(artist_name))

    def load_snapshot(self, entries: Mapping[str, Any]) -> int:
        """Seed the cache from a prefetch snapshot (``{key: dict | None}``)."""
        parsed: dict[str, LastFmArtistInfo | None] = {}
        for key, raw in entries.items():
            if raw is None:
                parsed[normalize_artist_key(key)] = None
                continue
            try:
                parsed[normalize_artist_key(key)] = LastFmArtistInfo.model_validate(raw)
            except ValidationError as exc:
                self._logger.warning("lastfm_snapshot_entry_invalid", key=key, error=str(exc))
        return self._client.seed(parsed)

    # -- HTTP ------------------------------------------------------------------

    async def _fetch_artist_info(self, artist_name: str) -> LastFmArtistInfo | None:
        params = {
            "method": "artist.getinfo",
            "artist": artist_name,
            "autocorrect": "1",
            "api_key": self._api_key,
            "format": "json",
        }
        payload = await self._get_json(_API_URL, params=params)

        artist = payload.get("artist") if isinstance(payload, dict) else None
        if not isinstance(artist, dict):
            self._logger.warning("lastfm_no_artist_data", artist=artist_name)
            return None

        info = self.map_artist(artist, fallback_name=artist_name)
        self._logger.debug(
            "lastfm_artist_info", artist=artist_name, genres=len(info.genres)
        )
        return info

    def _check_payload(self, payload: Any, status: int) -> None:
        if not isinstance(payload, dict) or "error" not in payload:
            return
        message = str(payload.get("message") or "Last.fm error")
        try:
            code = int(payload["error"])
        except (TypeError, ValueError):
            raise self._error(FailureKind.UNKNOWN, message, status_code=status) from None

        if code in _NOT_FOUND_CODES:
            kind = FailureKind.NOT_FOUND
        elif code in _CREDENTIAL_CODES:
            kind = FailureKind.INVALID_CREDENTIALS
        elif code in _RATE_LIMIT_CODES:
            kind = FailureKind.RATE_LIMITED
        else:
            kind = FailureKind.UNKNOWN
        raise self._error(
            kind, f"{message} (Code {code})", status_code=status, api_error_code=code
        )

    # -- Mapping ---------------------------------------------------------------

    @staticmethod
    def map_artist(artist: dict[str, Any], fallback_name: str = "") -> LastFmArtistInfo:
        """Map a Last.fm ``artist`` object to :class:`LastFmArtistInfo`."""
        images: dict[str, str] = {}
        raw_images = artist.get("image") or []
        if isinstance(raw_images, list):
            for img in raw_images:
                if not isinstance(img, dict):
                    continue
                url = img.get("#text") or img.get("url")
                size = img.get("size") or ("medium" if url else None)
                if size in IMAGE_SIZES and url:
                    images[size] = url

        tags = artist.get("tags")
        raw_tags = tags.get("tag", []) if isinstance(tags, dict) else []
        if isinstance(raw_tags, dict):
            raw_tags = [raw_tags]
        genres: list[str] = []
        for tag in raw_tags if isinstance(raw_tags, list) else []:
            name = tag if isinstance(tag, str) else tag.get("name") if isinstance(tag, dict) else None
            if isinstance(name, str) and name.strip():
                genres.append(name)

        bio = artist.get("bio")
        summary = bio.get("summary") if isinstance(bio, dict) else None

        return LastFmArtistInfo(
            name=artist.get("name") or fallback_name,
            url=artist.get("url") or "",
            images=LastFmImageUrls(**images),
            genres=genres,
            bio=summary or None,
        )
