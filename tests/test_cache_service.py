"""
Tests for the read-through cache service.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from core.cache import CacheService, LookupStatus
from core.cache_backends import CacheBackend, MemoryCacheBackend


def failing_backend() -> AsyncMock:
    """Backend whose every call raises, as if the store were unreachable."""
    backend = AsyncMock(spec=CacheBackend)
    backend.name = "redis"
    error = ConnectionError("connection refused")
    for method in ("get", "set_with_expiry", "delete", "list_keys", "exists", "ping", "startup"):
        getattr(backend, method).side_effect = error
    return backend


class TestGetSet:
    @pytest.mark.asyncio
    async def test_unwritten_key_is_none(self, cache: CacheService) -> None:
        assert await cache.get("never-written") is None

    @pytest.mark.asyncio
    async def test_set_then_get_round_trips(self, cache: CacheService) -> None:
        value = {"keyMetrics": {"dailyRevenue": 1500.5}, "alerts": [{"id": "a"}], "ok": True}
        assert await cache.set("k", value, 60) is True
        assert await cache.get("k") == value

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, cache: CacheService, clock) -> None:
        await cache.set("k", "v", 10)
        clock.advance(9)
        assert await cache.get("k") == "v"
        clock.advance(1)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_default_ttl_used_when_missing(self, memory_backend, clock) -> None:
        cache = CacheService(memory_backend, default_ttl=30)
        await cache.set("k", 1)
        clock.advance(29)
        assert await cache.exists("k") is True
        clock.advance(1)
        assert await cache.exists("k") is False

    @pytest.mark.asyncio
    async def test_lookup_distinguishes_hit_and_miss(self, cache: CacheService) -> None:
        assert (await cache.lookup("k")).status is LookupStatus.MISS
        await cache.set("k", [1, 2], 60)
        result = await cache.lookup("k")
        assert result.hit
        assert result.value == [1, 2]

    @pytest.mark.asyncio
    async def test_undecodable_entry_is_a_miss(self, cache: CacheService, memory_backend) -> None:
        await memory_backend.set_with_expiry("k", 60, "{not json")
        assert (await cache.lookup("k")).status is LookupStatus.MISS

    @pytest.mark.asyncio
    async def test_stored_null_is_a_miss(self, cache: CacheService, memory_backend) -> None:
        await memory_backend.set_with_expiry("k", 60, "null")
        assert (await cache.lookup("k")).status is LookupStatus.MISS

    @pytest.mark.asyncio
    async def test_dates_serialize_as_strings(self, cache: CacheService) -> None:
        from datetime import date
        await cache.set("k", {"on": date(2026, 3, 1)}, 60)
        assert await cache.get("k") == {"on": "2026-03-01"}


class TestDeleteAndExists:
    @pytest.mark.asyncio
    async def test_exists_after_set_and_delete(self, cache: CacheService) -> None:
        await cache.set("k", "v", 60)
        assert await cache.exists("k") is True
        assert await cache.delete("k") is True
        assert await cache.exists("k") is False

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, cache: CacheService) -> None:
        assert await cache.delete("missing") is False
        assert await cache.delete("missing") is False

    @pytest.mark.asyncio
    async def test_delete_pattern_removes_matches_only(self, cache: CacheService) -> None:
        await cache.set("dashboard:metrics:u1", 1, 60)
        await cache.set("dashboard:trends:u1:customers,revenue", 2, 60)
        await cache.set("dashboard:metrics:u2", 3, 60)
        await cache.set("dashboard:u1", 4, 60)

        assert await cache.delete_pattern("dashboard:*:u1*") == 2
        assert await cache.get("dashboard:metrics:u2") == 3
        assert await cache.get("dashboard:u1") == 4

    @pytest.mark.asyncio
    async def test_zero_match_pattern_skips_delete(self) -> None:
        backend = AsyncMock(spec=CacheBackend)
        backend.name = "mock"
        backend.list_keys.return_value = []
        cache = CacheService(backend)

        assert await cache.delete_pattern("marketing:*:nobody*") == 0
        backend.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_matches_deleted_in_one_call(self) -> None:
        backend = AsyncMock(spec=CacheBackend)
        backend.name = "mock"
        backend.list_keys.return_value = ["a:1", "a:2", "a:3"]
        backend.delete.return_value = 3
        cache = CacheService(backend)

        assert await cache.delete_pattern("a:*") == 3
        backend.delete.assert_awaited_once_with("a:1", "a:2", "a:3")


class TestGetOrSet:
    @pytest.mark.asyncio
    async def test_cold_calls_producer_once_warm_never(self, cache: CacheService) -> None:
        producer = AsyncMock(return_value={"total": 42})

        assert await cache.get_or_set("k", 60, producer) == {"total": 42}
        assert await cache.get_or_set("k", 60, producer) == {"total": 42}
        producer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_none_result_is_recomputed(self, cache: CacheService) -> None:
        producer = AsyncMock(return_value=None)

        assert await cache.get_or_set("k", 60, producer) is None
        assert await cache.get_or_set("k", 60, producer) is None
        assert producer.await_count == 2

    @pytest.mark.asyncio
    async def test_producer_error_propagates_and_nothing_cached(self, cache: CacheService) -> None:
        producer = AsyncMock(side_effect=ValueError("bad data"))

        with pytest.raises(ValueError, match="bad data"):
            await cache.get_or_set("k", 60, producer)
        assert await cache.exists("k") is False

    @pytest.mark.asyncio
    async def test_without_single_flight_concurrent_misses_each_compute(self, cache: CacheService) -> None:
        calls = 0

        async def producer():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return calls

        await asyncio.gather(*(cache.get_or_set("k", 60, producer) for _ in range(3)))
        assert calls == 3

    @pytest.mark.asyncio
    async def test_single_flight_shares_one_computation(self, memory_backend) -> None:
        cache = CacheService(memory_backend, single_flight=True)
        calls = 0

        async def producer():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "computed"

        results = await asyncio.gather(*(cache.get_or_set("k", 60, producer) for _ in range(5)))
        assert results == ["computed"] * 5
        assert calls == 1

    @pytest.mark.asyncio
    async def test_single_flight_error_reaches_every_waiter(self, memory_backend) -> None:
        cache = CacheService(memory_backend, single_flight=True)

        async def producer():
            await asyncio.sleep(0.01)
            raise RuntimeError("boom")

        results = await asyncio.gather(
            *(cache.get_or_set("k", 60, producer) for _ in range(3)), return_exceptions=True
        )
        assert all(isinstance(r, RuntimeError) for r in results)
        assert cache._in_flight == {}


class TestStoreFailure:
    @pytest.mark.asyncio
    async def test_reads_degrade_to_miss(self) -> None:
        cache = CacheService(failing_backend())
        assert await cache.get("k") is None
        assert (await cache.lookup("k")).status is LookupStatus.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_writes_and_deletes_do_not_raise(self) -> None:
        cache = CacheService(failing_backend())
        assert await cache.set("k", "v", 60) is False
        assert await cache.delete("k") is False
        assert await cache.delete_pattern("k*") == 0
        assert await cache.exists("k") is False
        assert await cache.ping() is False

    @pytest.mark.asyncio
    async def test_get_or_set_computes_every_time(self) -> None:
        cache = CacheService(failing_backend())
        producer = AsyncMock(return_value=7)

        assert await cache.get_or_set("k", 60, producer) == 7
        assert await cache.get_or_set("k", 60, producer) == 7
        assert producer.await_count == 2

    @pytest.mark.asyncio
    async def test_startup_falls_back(self) -> None:
        fallback = MemoryCacheBackend()
        cache = CacheService(failing_backend(), fallback=fallback)

        await cache.startup()

        assert cache.backend is fallback
        assert cache.backend_name == "memory"
        assert await cache.set("k", 1, 60) is True
