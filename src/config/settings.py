"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# This class uses pydantic-settings to read configuration from TWO
# sources (in priority order):
#
#   1. **Environment variables** -- e.g., LASTFM_API_KEY=abc123
#      (highest priority, always wins)
#   2. **.env file** -- key=value lines in the project root .env file
#      (lower priority, used for local development)
#
# Field `lastfm_api_key` maps to env var `LASTFM_API_KEY` (pydantic-settings
# uppercases and matches).  Feature flags accept the usual boolean spellings
# ("true", "1", "false", "0").
#
# Pacing, breaker and retry tuning per API lives in config/config.yaml
# (see src/config/lookup_clients.py), not here.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Enrichment settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Last.fm ===
    # Required while enable_lastfm is on; the factory refuses to start without it.
    lastfm_api_key: str = ""
    enable_lastfm: bool = True

    # === MusicBrainz / Wikidata / Commons ===
    enable_musicbrainz_images: bool = False
    musicbrainz_app_name: str = "ConcertsApp"
    musicbrainz_app_version: str = "1.0.0"
    musicbrainz_contact: str = ""

    # === Photon ===
    enable_geocoding: bool = True
    photon_base_url: str = "https://photon.komoot.io"

    # === HTTP ===
    http_timeout: float = 8.0

    # === App Config ===
    lookup_config_path: str = "config/config.yaml"
    app_env: str = "development"
    log_level: str = "INFO"

    def get_enabled_providers(self) -> list[str]:
        """Return the names of the enrichment integrations switched on."""
        providers: list[str] = []
        if self.enable_lastfm:
            providers.append("lastfm")
        if self.enable_musicbrainz_images:
            providers.append("musicbrainz")
        if self.enable_geocoding:
            providers.append("photon")
        return providers
