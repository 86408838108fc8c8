"""Shared pytest fixtures for the enrichment test suite."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.config.lookup_clients import LookupClientConfig, default_lookup_config
from src.config.settings import Settings
from src.services.lookup_client import LookupClient

# ---------------------------------------------------------------------------
# Virtual time
# ---------------------------------------------------------------------------


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instead of waiting.

    Suitable for scenarios where only one coroutine sleeps at a time; every
    requested delay is recorded in ``sleeps``.
    """

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        if delay > 0:
            self.now += delay
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


def json_response(payload: Any, status: int = 200, url: str = "https://example.test/") -> httpx.Response:
    """Build a real ``httpx.Response`` carrying a JSON body."""
    return httpx.Response(status, json=payload, request=httpx.Request("GET", url))


def status_response(status: int, url: str = "https://example.test/", text: str = "") -> httpx.Response:
    """Build a real ``httpx.Response`` with a plain-text (or empty) body."""
    return httpx.Response(status, text=text, request=httpx.Request("GET", url))


def requested_urls(http_client: MagicMock) -> list[str]:
    """URLs passed to ``http_client.get`` in call order."""
    return [c.args[0] for c in http_client.get.call_args_list]


@pytest.fixture
def http_client() -> MagicMock:
    """A mock ``httpx.AsyncClient`` whose ``get`` is an AsyncMock."""
    client = MagicMock(spec=httpx.AsyncClient)
    client.get = AsyncMock()
    return client


# ---------------------------------------------------------------------------
# Lookup clients & settings
# ---------------------------------------------------------------------------


def make_lookup_client(
    name: str,
    clock: FakeClock,
    config: LookupClientConfig | None = None,
    **overrides: Any,
) -> LookupClient:
    """Build a lookup client on virtual time from the built-in defaults."""
    base = config or default_lookup_config(name)
    if overrides:
        base = base.model_copy(update=overrides)
    return LookupClient(name, base, clock=clock, sleep=clock.sleep)


def make_settings(**overrides: Any) -> Settings:
    """Build a Settings instance with test defaults (no .env lookup)."""
    defaults: dict[str, Any] = {
        "lastfm_api_key": "test-key",
        "enable_lastfm": True,
        "enable_musicbrainz_images": True,
        "enable_geocoding": True,
        "musicbrainz_app_name": "ConcertsApp-test",
        "musicbrainz_app_version": "0.1.0",
        "musicbrainz_contact": "test@test.com",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
