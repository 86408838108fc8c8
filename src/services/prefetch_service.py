"""Batch prefetch of Last.fm artists and reverse-geocoded locations.

Runs before a static build so page rendering can read a snapshot instead of
calling the APIs.  Lookups go through the same providers (and therefore the
same lookup clients) as runtime requests; this service only adds batch
policy on top:

  * keys already in the existing snapshot are skipped (geocoding fallbacks
    are re-tried, they may stem from a transient error);
  * the run stops early once a time budget is spent, or once the client's
    circuit breaker opens (rate limit, bad API key).  Whatever was fetched
    so far is still returned, with ``stoppedEarly`` and ``reason`` in
    ``meta``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Iterable

from src.providers.geocoding.photon_provider import PhotonProvider
from src.providers.music_db.lastfm_provider import LastFmProvider
from src.utils.concurrency import Clock
from src.utils.logging import get_logger
from src.utils.text_normalizer import coordinate_key, normalize_artist_key

DEFAULT_TIME_BUDGET = 300.0
_PROGRESS_EVERY = 25

REASON_TIME_BUDGET = "time_budget_exceeded"
REASON_RATE_LIMITED = "rate_limited"
REASON_INVALID_CREDENTIALS = "invalid_credentials"


@dataclass
class PrefetchResult:
    """Snapshot entries plus run metadata."""

    entries: dict[str, Any]
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def stopped_early(self) -> bool:
        return bool(self.meta.get("stoppedEarly"))


class PrefetchService:
    """Fills snapshot sections through the enrichment providers.

    Parameters
    ----------
    time_budget:
        Seconds after which the run stops (soft) before the next key.
    clock:
        Monotonic time source.
    """

    def __init__(self, time_budget: float = DEFAULT_TIME_BUDGET, clock: Clock = time.monotonic) -> None:
        self._time_budget = time_budget
        self._clock = clock
        self._logger = get_logger(__name__)

    async def prefetch_artists(
        self,
        provider: LastFmProvider,
        names: Iterable[str],
        existing: dict[str, Any] | None = None,
    ) -> PrefetchResult:
        """Fetch Last.fm info for every name not yet in *existing*."""
        artists = dict(existing or {})
        pending: dict[str, str] = {}
        for name in names:
            key = normalize_artist_key(name)
            if key and key not in artists and key not in pending:
                pending[key] = name.strip()

        breaker = provider.lookup_client.breaker
        started_at = self._clock()
        self._logger.info("prefetch_artists_started", total=len(pending), cached=len(artists))

        for index, (key, name) in enumerate(pending.items(), start=1):
            if self._clock() - started_at > self._time_budget:
                return self._stop(artists, REASON_TIME_BUDGET, section="artists")

            info = await provider.get_artist_info(name)

            if info is None and breaker is not None and breaker.is_open():
                # Not a definitive absence; leave the key for the next run.
                reason = (
                    REASON_INVALID_CREDENTIALS if breaker.is_permanently_open else REASON_RATE_LIMITED
                )
                return self._stop(artists, reason, section="artists")

            artists[key] = info.model_dump() if info is not None else None
            self._progress("artists", index, len(pending))

        return PrefetchResult(entries=artists, meta={"stoppedEarly": False})

    async def prefetch_locations(
        self,
        provider: PhotonProvider,
        coordinates: Iterable[tuple[float, float]],
        existing: dict[str, Any] | None = None,
    ) -> PrefetchResult:
        """Reverse-geocode every coordinate pair not yet resolved in *existing*."""
        locations = dict(existing or {})
        pending: dict[str, tuple[float, float]] = {}
        for lat, lon in coordinates:
            key = coordinate_key(lat, lon)
            if not key or key in pending:
                continue
            current = locations.get(key)
            is_fallback = isinstance(current, dict) and current.get("_is_coordinates") is True
            if key in locations and not is_fallback:
                continue
            pending[key] = (lat, lon)

        started_at = self._clock()
        self._logger.info("prefetch_locations_started", total=len(pending), cached=len(locations))

        for index, (key, (lat, lon)) in enumerate(pending.items(), start=1):
            if self._clock() - started_at > self._time_budget:
                return self._stop(locations, REASON_TIME_BUDGET, section="locations")

            result = await provider.reverse_geocode(lat, lon)
            locations[key] = result.to_dict()
            self._progress("locations", index, len(pending))

        return PrefetchResult(entries=locations, meta={"stoppedEarly": False})

    def _stop(self, entries: dict[str, Any], reason: str, section: str) -> PrefetchResult:
        self._logger.warning("prefetch_stopped_early", section=section, reason=reason, entries=len(entries))
        return PrefetchResult(entries=entries, meta={"stoppedEarly": True, "reason": reason})

    def _progress(self, section: str, done: int, total: int) -> None:
        if done % _PROGRESS_EVERY == 0 or done == total:
            self._logger.info("prefetch_progress", section=section, done=done, total=total)
