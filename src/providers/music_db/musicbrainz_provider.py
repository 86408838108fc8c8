"""MusicBrainz provider implementing IArtistImageProvider.

Finds a CC-licensed artist image by chaining four public APIs::

    MusicBrainz search      /ws/2/artist/?query=artist:<name>   -> MBID
    MusicBrainz lookup      /ws/2/artist/<mbid>?inc=url-rels    -> Wikidata Q-id
    Wikidata wbgetentities  claim P18                           -> Commons filename
    Commons imageinfo       iiurlwidth=500                      -> thumbnail URL

Absence at any stage ends the lookup with "no image" (cached).  Both
MusicBrainz calls are paced by the MusicBrainz :class:`LookupClient` while
its single slot is held (MusicBrainz allows about one request per second and
answers HTTP 503 when that is exceeded, which trips a 120s breaker).

The same search + lookup pair also yields the artist's official homepage,
and the event search validates festival names.  Each of the three lookups
has its own cache channel; they share the gate and the breaker.
"""

from __future__ import annotations

from typing import Any

import httpx

from src.interfaces.enrichment_provider import IArtistImageProvider
from src.models.enrichment import MusicBrainzArtistData, MusicBrainzArtistMatch
from src.providers.json_api import DEFAULT_TIMEOUT, JsonApiProvider
from src.services.lookup_client import LookupClient
from src.utils.errors import ExternalLookupError, FailureKind
from src.utils.logging import get_logger
from src.utils.text_normalizer import normalize_artist_key

_MUSICBRAINZ_API = "https://musicbrainz.org/ws/2"
_WIKIDATA_API = "https://www.wikidata.org/w/api.php"
_COMMONS_API = "https://commons.wikimedia.org/w/api.php"
_SEARCH_LIMIT = 5
_IMAGE_THUMBNAIL_WIDTH = 500

IMAGE_CHANNEL = "image"
WEBSITE_CHANNEL = "website"
EVENT_CHANNEL = "event"


def build_user_agent(app_name: str, app_version: str, contact: str = "") -> str:
    """Format a MusicBrainz-compliant User-Agent (``Name/Version (contact)``)."""
    agent = f"{app_name}/{app_version}"
    return f"{agent} ({contact})" if contact else agent


class MusicBrainzProvider(JsonApiProvider, IArtistImageProvider):
    """Artist images, homepages and event names via MusicBrainz.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient``.
    lookup_client:
        The MusicBrainz lookup client (1.1s pacing, one call in flight).
    user_agent:
        Identifies the application, as MusicBrainz requires.
    enabled:
        Feature flag; when ``False`` every lookup resolves to ``None``.
    """

    _provider_name = "musicbrainz"
    _rate_limit_statuses = frozenset({429, 503})

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        lookup_client: LookupClient,
        user_agent: str,
        enabled: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        thumbnail_width: int = _IMAGE_THUMBNAIL_WIDTH,
    ) -> None:
        super().__init__(http_client, timeout=timeout)
        self._client = lookup_client
        self._user_agent = user_agent
        self._enabled = enabled
        self._thumbnail_width = thumbnail_width
        self._logger = get_logger(__name__)
        self._logger.info(
            "musicbrainz_provider_initialized", user_agent=user_agent, enabled=enabled
        )

    @property
    def lookup_client(self) -> LookupClient:
        return self._client

    def is_available(self) -> bool:
        return self._enabled

    # ------------------------------------------------------------------
    # IArtistImageProvider implementation
    # ------------------------------------------------------------------

    async def get_artist_image_url(self, artist_name: str) -> str | None:
        """Return a Wikimedia Commons thumbnail URL for *artist_name*, or ``None``."""
        if not self._enabled or not artist_name.strip():
            return None
        return await self._client.lookup(
            normalize_artist_key(artist_name),
            lambda: self._fetch_image_url(artist_name),
            channel=IMAGE_CHANNEL,
        )

    async def get_artist_website_url(self, artist_name: str) -> str | None:
        """Return the artist's official homepage from MusicBrainz, or ``None``."""
        if not self._enabled or not artist_name.strip():
            return None
        return await self._client.lookup(
            normalize_artist_key(artist_name),
            lambda: self._fetch_website_url(artist_name),
            channel=WEBSITE_CHANNEL,
        )

    async def search_event(self, event_name: str) -> str | None:
        """Return the MusicBrainz name of the event matching *event_name*, or ``None``."""
        if not self._enabled or not event_name.strip():
            return None
        return await self._client.lookup(
            normalize_artist_key(event_name),
            lambda: self._fetch_event_name(event_name),
            channel=EVENT_CHANNEL,
        )

    # ------------------------------------------------------------------
    # Pipelines (run inside the lookup client's slot + first window)
    # ------------------------------------------------------------------

    async def _fetch_image_url(self, artist_name: str) -> str | None:
        match = await self.search_artist(artist_name)
        if match is None:
            self._logger.warning("musicbrainz_artist_not_found", artist=artist_name)
            return None

        await self._client.gate.wait_for_window()
        artist = await self.lookup_artist(match.mbid)
        if not artist.wikidata_id:
            return None

        filename = await self._wikidata_image_filename(artist.wikidata_id)
        if not filename:
            return None

        image_url = await self._commons_thumbnail_url(filename)
        self._logger.debug(
            "musicbrainz_image_resolved", artist=artist_name, found=image_url is not None
        )
        return image_url

    async def _fetch_website_url(self, artist_name: str) -> str | None:
        match = await self.search_artist(artist_name)
        if match is None:
            return None
        await self._client.gate.wait_for_window()
        artist = await self.lookup_artist(match.mbid)
        return artist.official_homepage

    async def _fetch_event_name(self, event_name: str) -> str | None:
        payload = await self._get_musicbrainz(
            "/event",
            {"query": event_name, "fmt": "json", "limit": str(_SEARCH_LIMIT)},
        )
        events = [e for e in payload.get("events") or [] if isinstance(e, dict) and e.get("name")]
        best = self._best_match(events, event_name)
        return best["name"] if best else None

    # ------------------------------------------------------------------
    # Individual API calls
    # ------------------------------------------------------------------

    async def search_artist(self, artist_name: str) -> MusicBrainzArtistMatch | None:
        """Search MusicBrainz; prefer an exact case-insensitive match, else the top hit."""
        payload = await self._get_musicbrainz(
            "/artist/",
            {"query": f"artist:{artist_name}", "fmt": "json", "limit": str(_SEARCH_LIMIT)},
        )
        artists = [
            a for a in payload.get("artists") or [] if isinstance(a, dict) and a.get("id")
        ]
        best = self._best_match(artists, artist_name)
        if best is None:
            return None
        return MusicBrainzArtistMatch(mbid=best["id"], name=best.get("name") or artist_name)

    async def lookup_artist(self, mbid: str) -> MusicBrainzArtistData:
        """Fetch the URL relations of *mbid* (Wikidata id, official homepage)."""
        payload = await self._get_musicbrainz(f"/artist/{mbid}", {"fmt": "json", "inc": "url-rels"})
        relations = [r for r in payload.get("relations") or [] if isinstance(r, dict)]

        wikidata_id: str | None = None
        homepage: str | None = None
        for relation in relations:
            resource = (relation.get("url") or {}).get("resource")
            if not resource:
                continue
            if relation.get("type") == "wikidata" and wikidata_id is None:
                entity_id = resource.rstrip("/").split("/")[-1]
                wikidata_id = entity_id if entity_id.startswith("Q") else None
            elif relation.get("type") == "official homepage" and homepage is None:
                homepage = resource

        return MusicBrainzArtistData(wikidata_id=wikidata_id, official_homepage=homepage)

    async def _wikidata_image_filename(self, wikidata_id: str) -> str | None:
        payload = await self._get_wikimedia(
            _WIKIDATA_API,
            {"action": "wbgetentities", "ids": wikidata_id, "props": "claims", "format": "json"},
        )
        entity = (payload.get("entities") or {}).get(wikidata_id) or {}
        claims = (entity.get("claims") or {}).get("P18") or []
        if not claims:
            return None
        value = (((claims[0] or {}).get("mainsnak") or {}).get("datavalue") or {}).get("value")
        return value if isinstance(value, str) and value else None

    async def _commons_thumbnail_url(self, filename: str) -> str | None:
        payload = await self._get_wikimedia(
            _COMMONS_API,
            {
                "action": "query",
                "titles": f"File:{filename}",
                "prop": "imageinfo",
                "iiprop": "url",
                "iiurlwidth": str(self._thumbnail_width),
                "format": "json",
            },
        )
        pages = (payload.get("query") or {}).get("pages") or {}
        if not pages:
            return None
        page_id = next(iter(pages))
        if page_id == "-1":
            return None
        info = ((pages[page_id] or {}).get("imageinfo") or [None])[0] or {}
        return info.get("thumburl") or info.get("url") or None

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def _get_musicbrainz(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        payload = await self._get_json(
            f"{_MUSICBRAINZ_API}{path}", params=params, headers={"User-Agent": self._user_agent}
        )
        if not isinstance(payload, dict):
            raise self._error(FailureKind.UNKNOWN, "Unexpected MusicBrainz response shape")
        return payload

    async def _get_wikimedia(self, url: str, params: dict[str, str]) -> dict[str, Any]:
        """GET a Wikidata/Commons endpoint.

        Only connection-level failures stay retryable; any HTTP-level failure
        from Wikimedia means "no image" and must never trip the MusicBrainz
        breaker.
        """
        try:
            payload = await self._get_json(url, params=params, headers={"User-Agent": self._user_agent})
        except ExternalLookupError as exc:
            if exc.kind is FailureKind.TRANSIENT and exc.status_code is None:
                raise
            raise self._error(
                FailureKind.UNKNOWN, f"Wikimedia lookup failed: {exc.message}", status_code=exc.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise self._error(FailureKind.UNKNOWN, "Unexpected Wikimedia response shape")
        return payload

    @staticmethod
    def _best_match(candidates: list[dict[str, Any]], name: str) -> dict[str, Any] | None:
        if not candidates:
            return None
        wanted = name.lower()
        for candidate in candidates:
            if str(candidate.get("name", "")).lower() == wanted:
                return candidate
        return candidates[0]
