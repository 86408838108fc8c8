"""Enrichment provider wiring.

Builds one :class:`LookupClient` per external API from ``config/config.yaml``
and hands each to its adapter, together with a shared ``httpx.AsyncClient``
and the feature flags from :class:`Settings`.  Callers (the CRUD layer, the
prefetch CLI) hold the returned :class:`EnrichmentProviders` for the life of
the process so that pacing, breakers and caches are shared by every request.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass

import httpx

from src.config.loader import load_lookup_configs
from src.config.lookup_clients import LASTFM, MUSICBRAINZ, PHOTON, LookupClientConfig
from src.config.settings import Settings
from src.providers.geocoding.photon_provider import PhotonProvider
from src.providers.music_db.lastfm_provider import LastFmProvider
from src.providers.music_db.musicbrainz_provider import MusicBrainzProvider, build_user_agent
from src.services.band_enrichment_service import BandEnrichmentService
from src.services.lookup_client import LookupClient
from src.utils.concurrency import Clock, Sleeper
from src.utils.logging import get_logger

_logger = get_logger(__name__)


@dataclass(frozen=True)
class EnrichmentProviders:
    """The three adapters plus the service that combines the artist sources."""

    lastfm: LastFmProvider
    musicbrainz: MusicBrainzProvider
    photon: PhotonProvider
    band_enrichment: BandEnrichmentService


def build_lookup_clients(
    configs: dict[str, LookupClientConfig],
    clock: Clock = time.monotonic,
    sleep: Sleeper = asyncio.sleep,
) -> dict[str, LookupClient]:
    """Create one lookup client per configured API."""
    return {
        name: LookupClient(name, config, clock=clock, sleep=sleep)
        for name, config in configs.items()
    }


def build_enrichment_providers(
    app_settings: Settings,
    http_client: httpx.AsyncClient,
    lookup_configs: dict[str, LookupClientConfig] | None = None,
    clock: Clock = time.monotonic,
    sleep: Sleeper = asyncio.sleep,
) -> EnrichmentProviders:
    """Construct every enrichment adapter for *app_settings*.

    Raises:
        ConfigurationError: Last.fm is enabled without an API key, or the
            YAML lookup tuning is invalid.
    """
    if lookup_configs is None:
        lookup_configs = load_lookup_configs(app_settings.lookup_config_path)
    clients = build_lookup_clients(lookup_configs, clock=clock, sleep=sleep)

    lastfm = LastFmProvider(
        http_client=http_client,
        lookup_client=clients[LASTFM],
        api_key=app_settings.lastfm_api_key,
        enabled=app_settings.enable_lastfm,
        timeout=app_settings.http_timeout,
    )
    musicbrainz = MusicBrainzProvider(
        http_client=http_client,
        lookup_client=clients[MUSICBRAINZ],
        user_agent=build_user_agent(
            app_settings.musicbrainz_app_name,
            app_settings.musicbrainz_app_version,
            app_settings.musicbrainz_contact,
        ),
        enabled=app_settings.enable_musicbrainz_images,
        timeout=app_settings.http_timeout,
    )
    photon = PhotonProvider(
        http_client=http_client,
        lookup_client=clients[PHOTON],
        base_url=app_settings.photon_base_url,
        enabled=app_settings.enable_geocoding,
        timeout=app_settings.http_timeout,
    )

    _logger.info("enrichment_providers_built", enabled=app_settings.get_enabled_providers())
    return EnrichmentProviders(
        lastfm=lastfm,
        musicbrainz=musicbrainz,
        photon=photon,
        band_enrichment=BandEnrichmentService(
            artist_info_provider=lastfm, image_provider=musicbrainz
        ),
    )
