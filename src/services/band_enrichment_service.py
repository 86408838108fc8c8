"""Band enrichment: the record the CRUD layer writes onto a band.

Combines the two artist sources behind their interfaces:

  * Last.fm  -> profile URL, genre tags, bio summary and an image
  * MusicBrainz / Wikidata / Commons -> a CC-licensed image and the
    official homepage

Image precedence is: the band's existing image, then Last.fm
``extralarge`` > ``large`` > ``medium``, then the Commons thumbnail.  The
Commons pipeline is only consulted when nothing earlier produced an image,
since it costs up to four paced requests.

Every provider call is best-effort (it resolves to ``None`` rather than
raising), so enrichment never fails a band write.
"""

from __future__ import annotations

from typing import Iterable

from src.interfaces.enrichment_provider import IArtistImageProvider, IArtistInfoProvider
from src.models.enrichment import BandEnrichment
from src.utils.concurrency import throttled_gather
from src.utils.logging import get_logger

_DEFAULT_MAX_CONCURRENT = 4


class BandEnrichmentService:
    """Builds :class:`BandEnrichment` records from the injected providers.

    Parameters
    ----------
    artist_info_provider:
        Last.fm (or ``None`` when not configured).
    image_provider:
        MusicBrainz image/website pipeline (or ``None``).
    max_concurrent:
        Bands enriched at once by :meth:`enrich_bands`.  The lookup clients
        still pace the actual HTTP traffic.
    """

    def __init__(
        self,
        artist_info_provider: IArtistInfoProvider | None = None,
        image_provider: IArtistImageProvider | None = None,
        max_concurrent: int = _DEFAULT_MAX_CONCURRENT,
    ) -> None:
        self._info = artist_info_provider
        self._images = image_provider
        self._max_concurrent = max_concurrent
        self._logger = get_logger(__name__)

    async def enrich_band(
        self, band_name: str, existing_image_url: str | None = None
    ) -> BandEnrichment | None:
        """Return enrichment for *band_name*, or ``None`` if no source had anything."""
        name = band_name.strip()
        if not name:
            return None

        info = None
        if self._info is not None and self._info.is_available():
            info = await self._info.get_artist_info(name)

        image_url = existing_image_url or (info.images.best() if info else None)
        website_url = None
        if self._images is not None and self._images.is_available():
            if not image_url:
                image_url = await self._images.get_artist_image_url(name)
            website_url = await self._images.get_artist_website_url(name)

        if info is None and not image_url and not website_url:
            self._logger.info("band_enrichment_empty", band=name)
            return None

        enrichment = BandEnrichment(
            name=name,
            lastfm_url=(info.url or None) if info else None,
            genres=list(info.genres) if info else [],
            bio=info.bio if info else None,
            image_url=image_url,
            website_url=website_url,
        )
        self._logger.info(
            "band_enriched",
            band=name,
            lastfm=info is not None,
            genres=len(enrichment.genres),
            has_image=bool(image_url),
            has_website=bool(website_url),
        )
        return enrichment

    async def enrich_bands(self, band_names: Iterable[str]) -> dict[str, BandEnrichment]:
        """Enrich several bands concurrently; bands with no data are omitted."""
        names = list(dict.fromkeys(n.strip() for n in band_names if n and n.strip()))
        results = await throttled_gather(
            [self.enrich_band(n) for n in names], limit=self._max_concurrent
        )

        enriched: dict[str, BandEnrichment] = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                self._logger.warning("band_enrichment_failed", band=name, error=str(result))
            elif result is not None:
                enriched[name] = result
        return enriched
