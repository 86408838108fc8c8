"""Generic rate-limited external lookup client.

One :class:`LookupClient` exists per external API.  It owns all of that
API's shared state (request gate, circuit breaker, caches, in-flight maps)
and runs every lookup through the same pipeline::

    dedupe (pending?) -> cache (memoized?) -> breaker (cooling down?)
      -> gate (slot + pacing window) -> fetch() -> retry policy -> cache write

Providers supply only ``fetch``: a coroutine that performs the HTTP call(s)
for one key and either returns the parsed result (``None`` meaning
"definitively absent") or raises :class:`ExternalLookupError`.  The client
never lets that error reach the caller: every lookup resolves to a value.

A client can serve several independent lookup kinds against the same API
(e.g. MusicBrainz image vs. official homepage).  Each kind is a *channel*
with its own cache and in-flight map; gate and breaker are shared.
"""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Mapping, TypeVar

from src.config.lookup_clients import LookupClientConfig
from src.providers.cache.inflight import InFlightDeduplicator
from src.providers.cache.memory_cache import MemoryCacheProvider
from src.utils.circuit_breaker import CircuitBreaker
from src.utils.concurrency import Clock, RequestGate, Sleeper
from src.utils.errors import ExternalLookupError, FailureKind
from src.utils.logging import get_logger
from src.utils.retry import RetryContext, RetryPolicy

_T = TypeVar("_T")

DEFAULT_CHANNEL = "default"
_BREAKER_LOG_INTERVAL = 10.0


@dataclass
class LookupChannel:
    """Cache + in-flight map for one kind of lookup."""

    cache: MemoryCacheProvider
    inflight: InFlightDeduplicator[Any] = field(default_factory=InFlightDeduplicator)


@dataclass(frozen=True)
class _Attempt(Generic[_T]):
    value: _T | None = None
    failure: ExternalLookupError | None = None
    short_circuited: bool = False


class LookupClient:
    """Rate-limited, cached, deduplicated access to one external API.

    Parameters
    ----------
    name:
        Provider name used in logs and errors (``"lastfm"`` ...).
    config:
        Pacing, breaker, retry and cache settings.
    clock:
        Monotonic time source shared by every component.
    sleep:
        Coroutine used for all waits (pacing and backoff).
    """

    def __init__(
        self,
        name: str,
        config: LookupClientConfig,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._name = name
        self._config = config
        self._clock = clock
        self._sleep = sleep
        self._gate = RequestGate(
            min_interval=config.min_interval,
            max_concurrent=config.max_concurrent,
            clock=clock,
            sleep=sleep,
        )
        self._breaker: CircuitBreaker | None = (
            CircuitBreaker(name, clock=clock) if config.breaker_cooldown is not None else None
        )
        self._retry = RetryPolicy(config)
        self._channels: dict[str, LookupChannel] = {}
        self._last_breaker_log_at = -math.inf
        self._credentials_logged = False
        self._logger = get_logger(__name__).bind(provider=name)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> LookupClientConfig:
        return self._config

    @property
    def gate(self) -> RequestGate:
        return self._gate

    @property
    def breaker(self) -> CircuitBreaker | None:
        return self._breaker

    def channel(self, name: str = DEFAULT_CHANNEL) -> LookupChannel:
        """Return (creating lazily) the cache/in-flight pair for *name*."""
        lane = self._channels.get(name)
        if lane is None:
            lane = LookupChannel(
                cache=MemoryCacheProvider(
                    max_size=self._config.cache_max_size,
                    ttl=self._config.cache_ttl,
                    clock=self._clock,
                )
            )
            self._channels[name] = lane
        return lane

    def seed(self, entries: Mapping[str, Any], channel: str = DEFAULT_CHANNEL) -> int:
        """Preload settled outcomes into *channel*'s cache."""
        count = self.channel(channel).cache.seed(entries)
        self._logger.info("lookup_cache_seeded", channel=channel, entries=count)
        return count

    # ------------------------------------------------------------------
    # Lookup pipeline
    # ------------------------------------------------------------------

    async def lookup(
        self,
        key: str,
        fetch: Callable[[], Awaitable[_T | None]],
        channel: str = DEFAULT_CHANNEL,
    ) -> _T | None:
        """Resolve *key* through the full pipeline.

        Returns the cached or freshly fetched value, or ``None`` for
        absence, exhausted retries, an open breaker, or any other expected
        failure.
        """
        lane = self.channel(channel)
        return await lane.inflight.dedupe(key, lambda: self._resolve(lane, key, fetch))

    async def _resolve(
        self,
        lane: LookupChannel,
        key: str,
        fetch: Callable[[], Awaitable[_T | None]],
    ) -> _T | None:
        cached = await lane.cache.get(key)
        if cached.hit:
            return cached.value

        context = RetryContext()
        while True:
            attempt = await self._attempt(fetch)

            if attempt.short_circuited and self._breaker is not None:
                # Stale as soon as the breaker closes.
                await lane.cache.set(key, None, retry_at=self._breaker.cooldown_until)
                return None

            failure = attempt.failure
            if failure is None:
                if attempt.value is None:
                    self._logger.warning("lookup_no_result", key=key)
                await lane.cache.set(key, attempt.value)
                return attempt.value

            if failure.kind is FailureKind.RATE_LIMITED and self._breaker is not None:
                self._breaker.trip(self._config.breaker_cooldown or 0.0)

            delay = self._retry.next_delay(failure.kind, context)
            if delay is None:
                await self._settle_failure(lane, key, failure, context)
                return None

            if failure.kind is FailureKind.RATE_LIMITED and self._breaker is not None:
                # The breaker covers at least the backoff actually taken, and the
                # retry itself waits for the breaker to close.
                self._breaker.trip(delay)
                delay = max(delay, self._breaker.remaining())

            self._logger.warning(
                "lookup_retry_scheduled",
                key=key,
                kind=failure.kind.value,
                status=failure.status_code,
                attempt=context.attempts,
                delay_s=round(delay, 3),
                error=failure.message,
            )
            await self._sleep(delay)

    async def _attempt(self, fetch: Callable[[], Awaitable[_T | None]]) -> _Attempt[_T]:
        """Run one call under the breaker and the gate."""
        if self._breaker_blocks():
            return _Attempt(short_circuited=True)

        async with self._gate.slot():
            # The breaker may have tripped while this call was queued.
            if self._breaker_blocks():
                return _Attempt(short_circuited=True)
            await self._gate.wait_for_window()
            try:
                return _Attempt(value=await fetch())
            except ExternalLookupError as exc:
                return _Attempt(failure=exc)
            except Exception as exc:
                # Malformed payloads (validation, missing keys) settle as UNKNOWN.
                return _Attempt(
                    failure=ExternalLookupError(
                        FailureKind.UNKNOWN,
                        f"{type(exc).__name__}: {exc}",
                        provider_name=self._name,
                    )
                )

    async def _settle_failure(
        self,
        lane: LookupChannel,
        key: str,
        failure: ExternalLookupError,
        context: RetryContext,
    ) -> None:
        """Log a terminal failure once and cache the matching "absent" entry."""
        kind = failure.kind
        retry_at: float | None = None

        if kind is FailureKind.NOT_FOUND:
            self._logger.warning("lookup_not_found", key=key, error=failure.message)
        elif kind is FailureKind.INVALID_CREDENTIALS:
            if self._breaker is not None:
                self._breaker.trip_permanently()
            if not self._credentials_logged:
                self._credentials_logged = True
                self._logger.error(
                    "lookup_invalid_credentials",
                    key=key,
                    api_error_code=failure.api_error_code,
                    error=failure.message,
                )
        elif kind is FailureKind.RATE_LIMITED:
            retry_at = self._rate_limited_retry_at()
            self._logger.warning(
                "lookup_rate_limit_exhausted", key=key, attempts=context.attempts
            )
        elif kind is FailureKind.TRANSIENT:
            self._logger.error(
                "lookup_transient_exhausted",
                key=key,
                attempts=context.attempts,
                status=failure.status_code,
                error=failure.message,
            )
        else:
            self._logger.error(
                "lookup_failed",
                key=key,
                status=failure.status_code,
                api_error_code=failure.api_error_code,
                error=failure.message,
            )

        await lane.cache.set(key, None, retry_at=retry_at)

    # ------------------------------------------------------------------
    # Breaker helpers
    # ------------------------------------------------------------------

    def _breaker_blocks(self) -> bool:
        if self._breaker is None or not self._breaker.is_open():
            return False
        now = self._clock()
        if now - self._last_breaker_log_at > _BREAKER_LOG_INTERVAL:
            self._last_breaker_log_at = now
            self._logger.warning(
                "lookup_calls_paused",
                cooldown_remaining_s=round(self._breaker.remaining(), 3),
            )
        return True

    def _rate_limited_retry_at(self) -> float:
        retry_at = self._clock() + self._config.rate_limit_retry_delay
        if self._breaker is not None:
            retry_at = max(retry_at, self._breaker.cooldown_until)
        return retry_at
