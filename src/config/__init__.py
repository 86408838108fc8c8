"""Configuration module -- exports Settings, the YAML loaders and per-API lookup tuning."""

from src.config.loader import load_config, load_lookup_configs
from src.config.lookup_clients import (
    LASTFM,
    MUSICBRAINZ,
    PHOTON,
    LookupClientConfig,
    default_lookup_config,
)
from src.config.settings import Settings

__all__ = [
    "LASTFM",
    "MUSICBRAINZ",
    "PHOTON",
    "LookupClientConfig",
    "Settings",
    "default_lookup_config",
    "load_config",
    "load_lookup_configs",
]
