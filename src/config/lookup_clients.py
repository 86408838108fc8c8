"""Per-API tuning for the rate-limited lookup clients.

Each external API gets one :class:`LookupClientConfig`.  The built-in
defaults below encode the limits each service publishes (or tolerates in
practice); ``config/config.yaml`` can override any field under
``lookup_clients.<name>``.

    lastfm       1.5s between calls, 2 in flight, 60s breaker cooldown
    musicbrainz  1.1s between calls, 1 in flight, 120s breaker cooldown
    photon       0.7s between calls, 1 in flight, no breaker
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

LASTFM = "lastfm"
MUSICBRAINZ = "musicbrainz"
PHOTON = "photon"


class LookupClientConfig(BaseModel):
    """Pacing, breaker, retry and cache settings for one external API."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # -- Request gate --
    min_interval: float = Field(default=1.0, ge=0.0)
    max_concurrent: int = Field(default=1, ge=1)

    # -- Circuit breaker (None = no breaker, failures are soft per call) --
    breaker_cooldown: float | None = Field(default=None, ge=0.0)

    # -- Retry policy --
    max_timeout_retries: int = Field(default=1, ge=0)
    timeout_backoff_step: float = Field(default=1.0, ge=0.0)
    max_rate_limit_retries: int = Field(default=1, ge=0)
    rate_limit_backoff_base: float = Field(default=5.0, ge=0.0)
    rate_limit_backoff_cap: float = Field(default=30.0, ge=0.0)
    # How long a rate-limited "no result" stays cached before a retry is allowed.
    rate_limit_retry_delay: float = Field(default=5.0, ge=0.0)

    # -- Cache (None = unbounded / never expires within the process) --
    cache_max_size: int | None = Field(default=None, ge=1)
    cache_ttl: float | None = Field(default=None, gt=0.0)


DEFAULT_LOOKUP_CLIENTS: dict[str, dict[str, Any]] = {
    LASTFM: {
        "min_interval": 1.5,
        "max_concurrent": 2,
        "breaker_cooldown": 60.0,
        "max_timeout_retries": 1,
        "timeout_backoff_step": 1.0,
        "max_rate_limit_retries": 1,
        "rate_limit_backoff_base": 5.0,
        "rate_limit_backoff_cap": 30.0,
        "rate_limit_retry_delay": 5.0,
    },
    MUSICBRAINZ: {
        "min_interval": 1.1,
        "max_concurrent": 1,
        "breaker_cooldown": 120.0,
        "max_timeout_retries": 1,
        "timeout_backoff_step": 1.0,
        "max_rate_limit_retries": 1,
        "rate_limit_backoff_base": 15.0,
        "rate_limit_backoff_cap": 60.0,
        "rate_limit_retry_delay": 15.0,
    },
    PHOTON: {
        "min_interval": 0.7,
        "max_concurrent": 1,
        "breaker_cooldown": None,
        "max_timeout_retries": 2,
        "timeout_backoff_step": 1.0,
        "max_rate_limit_retries": 1,
        "rate_limit_backoff_base": 30.0,
        "rate_limit_backoff_cap": 30.0,
        "rate_limit_retry_delay": 30.0,
    },
}


def default_lookup_config(name: str) -> LookupClientConfig:
    """Return the built-in config for *name* (``lastfm``, ``musicbrainz``, ``photon``)."""
    return LookupClientConfig(**DEFAULT_LOOKUP_CLIENTS[name])
