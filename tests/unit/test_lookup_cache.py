"""Unit tests for MemoryCacheProvider and InFlightDeduplicator."""

from __future__ import annotations

import asyncio

import pytest

from src.providers.cache.inflight import InFlightDeduplicator
from src.providers.cache.memory_cache import MemoryCacheProvider
from tests.conftest import FakeClock


# ======================================================================
# MemoryCacheProvider
# ======================================================================


class TestMemoryCacheProvider:
    @pytest.fixture()
    def cache(self, clock: FakeClock) -> MemoryCacheProvider:
        return MemoryCacheProvider(clock=clock)

    @pytest.mark.asyncio
    async def test_get_missing_key_is_a_miss(self, cache: MemoryCacheProvider) -> None:
        result = await cache.get("nonexistent")
        assert result.hit is False

    @pytest.mark.asyncio
    async def test_set_and_get(self, cache: MemoryCacheProvider) -> None:
        await cache.set("radiohead", {"name": "Radiohead"})
        result = await cache.get("radiohead")
        assert result.hit is True
        assert result.value == {"name": "Radiohead"}

    @pytest.mark.asyncio
    async def test_none_is_a_cached_outcome(self, cache: MemoryCacheProvider) -> None:
        await cache.set("zzzznonexistentband123", None)
        result = await cache.get("zzzznonexistentband123")
        assert result.hit is True
        assert result.value is None
        assert await cache.exists("zzzznonexistentband123") is True

    @pytest.mark.asyncio
    async def test_rate_limited_entry_goes_stale(
        self, cache: MemoryCacheProvider, clock: FakeClock
    ) -> None:
        await cache.set("radiohead", None, retry_at=clock.now + 5.0)
        assert (await cache.get("radiohead")).hit is True

        clock.advance(5.0)
        assert await cache.exists("radiohead") is False
        assert (await cache.get("radiohead")).hit is False
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_delete_removes_key(self, cache: MemoryCacheProvider) -> None:
        await cache.set("key1", "value1")
        await cache.delete("key1")
        assert (await cache.get("key1")).hit is False

    @pytest.mark.asyncio
    async def test_delete_nonexistent_is_noop(self, cache: MemoryCacheProvider) -> None:
        await cache.delete("nonexistent")  # should not raise

    @pytest.mark.asyncio
    async def test_seed_and_snapshot(self, cache: MemoryCacheProvider, clock: FakeClock) -> None:
        assert cache.seed({"a": 1, "b": None}) == 2
        await cache.set("pending", None, retry_at=clock.now + 30.0)

        assert cache.snapshot() == {"a": 1, "b": None}
        assert (await cache.get("b")).hit is True

    @pytest.mark.asyncio
    async def test_lru_bound_evicts_oldest(self, clock: FakeClock) -> None:
        cache = MemoryCacheProvider(max_size=2, clock=clock)
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.set("c", 3)

        assert len(cache) == 2
        assert (await cache.get("a")).hit is False
        assert (await cache.get("c")).value == 3

    @pytest.mark.asyncio
    async def test_ttl_expires_entries(self, clock: FakeClock) -> None:
        cache = MemoryCacheProvider(ttl=60.0, clock=clock)
        await cache.set("a", 1)
        clock.advance(61.0)
        assert (await cache.get("a")).hit is False


# ======================================================================
# InFlightDeduplicator
# ======================================================================


class TestInFlightDeduplicator:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_task(self) -> None:
        inflight: InFlightDeduplicator[str] = InFlightDeduplicator()
        release = asyncio.Event()
        calls = 0

        async def fetch() -> str:
            nonlocal calls
            calls += 1
            await release.wait()
            return "result"

        callers = [asyncio.create_task(inflight.dedupe("key", fetch)) for _ in range(5)]
        await asyncio.sleep(0)
        assert "key" in inflight

        release.set()
        results = await asyncio.gather(*callers)

        assert calls == 1
        assert results == ["result"] * 5
        assert len(inflight) == 0

    @pytest.mark.asyncio
    async def test_entry_removed_after_failure(self) -> None:
        inflight: InFlightDeduplicator[str] = InFlightDeduplicator()

        async def boom() -> str:
            raise RuntimeError("failed")

        with pytest.raises(RuntimeError):
            await inflight.dedupe("key", boom)
        assert "key" not in inflight

    @pytest.mark.asyncio
    async def test_sequential_calls_start_new_tasks(self) -> None:
        inflight: InFlightDeduplicator[int] = InFlightDeduplicator()
        calls = 0

        async def fetch() -> int:
            nonlocal calls
            calls += 1
            return calls

        assert await inflight.dedupe("key", fetch) == 1
        assert await inflight.dedupe("key", fetch) == 2

    @pytest.mark.asyncio
    async def test_cancelling_one_caller_keeps_shared_task(self) -> None:
        inflight: InFlightDeduplicator[str] = InFlightDeduplicator()
        release = asyncio.Event()

        async def fetch() -> str:
            await release.wait()
            return "done"

        first = asyncio.create_task(inflight.dedupe("key", fetch))
        second = asyncio.create_task(inflight.dedupe("key", fetch))
        await asyncio.sleep(0)

        first.cancel()
        release.set()

        assert await second == "done"
        with pytest.raises(asyncio.CancelledError):
            await first
