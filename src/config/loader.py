"""YAML configuration loader.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Lookup-client tuning is loaded in layers (later layers override earlier):
#
#   1. Built-in defaults  -- DEFAULT_LOOKUP_CLIENTS in lookup_clients.py
#   2. config/config.yaml -- the ``lookup_clients`` section
#
# API keys, feature flags and URLs are not in the YAML file; Settings reads
# them from the .env file and the environment.
#
# The _deep_merge helper does recursive dict merging:
#   base = {"lastfm": {"min_interval": 1.5, "max_concurrent": 2}}
#   overrides = {"lastfm": {"max_concurrent": 1}}
#   result = {"lastfm": {"min_interval": 1.5, "max_concurrent": 1}}
# ──────────────────────────────────────────────────────────────────────
"""

import copy
from pathlib import Path

import yaml

from src.config.lookup_clients import DEFAULT_LOOKUP_CLIENTS, LookupClientConfig
from src.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml") -> dict:
    """Load the YAML configuration file.

    Per-API lookup tuning is validated separately by :func:`load_lookup_configs`;
    the other sections (``prefetch``) are returned as plain dicts.  Keys,
    feature flags and URLs come from :class:`Settings`, not from this file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        The parsed configuration, ``{}`` when the file is missing.

    Raises:
        ConfigurationError: If the ``prefetch`` section is not a mapping.
    """
    config = _read_yaml(path)
    prefetch = config.get("prefetch")
    if prefetch is not None and not isinstance(prefetch, dict):
        raise ConfigurationError(message=f"'prefetch' in {path} must be a mapping")
    return config


def load_lookup_configs(path: str = "config/config.yaml") -> dict[str, LookupClientConfig]:
    """Build one validated :class:`LookupClientConfig` per external API.

    The ``lookup_clients`` section of *path* is deep-merged over the built-in
    defaults.  A missing file means "defaults only".

    Raises:
        ConfigurationError: If a section contains unknown keys or invalid values.
    """
    merged = copy.deepcopy(DEFAULT_LOOKUP_CLIENTS)
    overrides = _read_yaml(path).get("lookup_clients") or {}
    if not isinstance(overrides, dict):
        raise ConfigurationError(message=f"'lookup_clients' in {path} must be a mapping")
    _deep_merge(merged, overrides)

    configs: dict[str, LookupClientConfig] = {}
    for name, values in merged.items():
        try:
            configs[name] = LookupClientConfig(**(values or {}))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                message=f"Invalid lookup client config for '{name}': {exc}",
                provider_name=name,
            ) from exc
    return configs


def _read_yaml(path: str) -> dict:
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with open(config_path) as f:
        # safe_load only; the file never needs arbitrary Python objects.
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
