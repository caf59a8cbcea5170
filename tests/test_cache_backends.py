"""
Tests for the cache stores and backend selection.
"""

import asyncio

import pytest

from core.cache import CacheService
from core.cache_backends import (
    MemoryCacheBackend,
    RedisCacheBackend,
    SQLiteCacheBackend,
    create_cache_backend,
    glob_to_like,
)
from core.config import Settings

SECRET = "test-secret-key-that-is-long-enough-1234"


class TestGlobToLike:
    def test_wildcards(self) -> None:
        assert glob_to_like("dashboard:*:u1*") == "dashboard:%:u1%"
        assert glob_to_like("k?") == "k_"

    def test_like_metacharacters_are_escaped(self) -> None:
        assert glob_to_like("a_b%c*") == "a\\_b\\%c%"
        assert glob_to_like("back\\slash") == "back\\\\slash"


class TestMemoryBackend:
    @pytest.mark.asyncio
    async def test_list_keys_uses_glob(self, memory_backend: MemoryCacheBackend) -> None:
        await memory_backend.set_with_expiry("marketing:strategies:u1:all", 60, "1")
        await memory_backend.set_with_expiry("marketing:content:u1:5", 60, "2")
        await memory_backend.set_with_expiry("marketing:content:u2:5", 60, "3")

        keys = await memory_backend.list_keys("marketing:*:u1*")
        assert sorted(keys) == ["marketing:content:u1:5", "marketing:strategies:u1:all"]

    @pytest.mark.asyncio
    async def test_expired_entries_are_invisible(self, memory_backend: MemoryCacheBackend, clock) -> None:
        await memory_backend.set_with_expiry("k", 5, "v")
        clock.advance(5)
        assert await memory_backend.get("k") is None
        assert await memory_backend.list_keys("*") == []
        assert await memory_backend.delete("k") == 0

    @pytest.mark.asyncio
    async def test_delete_counts_live_keys(self, memory_backend: MemoryCacheBackend) -> None:
        await memory_backend.set_with_expiry("a", 60, "1")
        await memory_backend.set_with_expiry("b", 60, "2")
        assert await memory_backend.delete("a", "b", "c") == 2


class TestSQLiteBackend:
    @pytest.fixture
    def backend(self, database, clock) -> SQLiteCacheBackend:
        return SQLiteCacheBackend(database, clock=clock)

    @pytest.mark.asyncio
    async def test_set_get_overwrite(self, backend: SQLiteCacheBackend) -> None:
        await backend.set_with_expiry("k", 60, '"first"')
        await backend.set_with_expiry("k", 60, '"second"')
        assert await backend.get("k") == '"second"'
        assert await backend.exists("k") is True

    @pytest.mark.asyncio
    async def test_concurrent_writes_to_one_key(self, backend: SQLiteCacheBackend) -> None:
        cache = CacheService(backend)
        results = await asyncio.gather(*(cache.set("k", i, 60) for i in range(5)))

        assert results == [True] * 5
        assert await cache.get("k") in range(5)

    @pytest.mark.asyncio
    async def test_expiry_checked_on_read(self, backend: SQLiteCacheBackend, clock) -> None:
        await backend.set_with_expiry("k", 10, "1")
        clock.advance(10)
        assert await backend.exists("k") is False
        assert await backend.get("k") is None

    @pytest.mark.asyncio
    async def test_pattern_listing_and_batch_delete(self, backend: SQLiteCacheBackend) -> None:
        await backend.set_with_expiry("dashboard:metrics:u1", 60, "1")
        await backend.set_with_expiry("dashboard:insights:u1", 60, "2")
        await backend.set_with_expiry("dashboard:metrics:u2", 60, "3")

        keys = await backend.list_keys("dashboard:*:u1*")
        assert sorted(keys) == ["dashboard:insights:u1", "dashboard:metrics:u1"]
        assert await backend.delete(*keys) == 2
        assert await backend.list_keys("dashboard:*") == ["dashboard:metrics:u2"]

    @pytest.mark.asyncio
    async def test_underscore_in_pattern_is_literal(self, backend: SQLiteCacheBackend) -> None:
        await backend.set_with_expiry("a_b:1", 60, "1")
        await backend.set_with_expiry("axb:1", 60, "2")
        assert await backend.list_keys("a_b:*") == ["a_b:1"]

    @pytest.mark.asyncio
    async def test_cleanup_expired(self, backend: SQLiteCacheBackend, clock) -> None:
        await backend.set_with_expiry("old", 5, "1")
        await backend.set_with_expiry("new", 60, "2")
        clock.advance(10)

        cache = CacheService(backend)
        assert await cache.cleanup_expired() == 1
        assert await backend.get("new") == "2"

    @pytest.mark.asyncio
    async def test_works_under_cache_service(self, backend: SQLiteCacheBackend) -> None:
        cache = CacheService(backend)
        await cache.set("dashboard:u1", {"keyMetrics": {"dailyRevenue": 10.0}}, 300)
        assert await cache.get("dashboard:u1") == {"keyMetrics": {"dailyRevenue": 10.0}}
        assert await cache.ping() is True


class TestBackendSelection:
    def _settings(self, **overrides) -> Settings:
        overrides.setdefault("cache_backend", "auto")
        return Settings(jwt_secret_key=SECRET, database_url="sqlite+aiosqlite:///:memory:", **overrides)

    def test_auto_prefers_redis_when_enabled(self) -> None:
        settings = self._settings(redis_enabled=True, redis_url="redis://localhost:6379/0")
        assert isinstance(create_cache_backend(settings, database=object()), RedisCacheBackend)

    def test_auto_uses_sqlite_with_database(self) -> None:
        settings = self._settings(redis_enabled=False, cache_backend="auto")
        assert isinstance(create_cache_backend(settings, database=object()), SQLiteCacheBackend)

    def test_auto_without_database_uses_memory(self) -> None:
        settings = self._settings(redis_enabled=False, cache_backend="auto")
        assert isinstance(create_cache_backend(settings), MemoryCacheBackend)

    def test_explicit_redis_requires_url(self) -> None:
        settings = self._settings(cache_backend="redis", redis_url=None)
        with pytest.raises(ValueError):
            create_cache_backend(settings)

    @pytest.mark.asyncio
    async def test_unconnected_redis_raises(self) -> None:
        backend = RedisCacheBackend("redis://localhost:6379/0")
        with pytest.raises(ConnectionError):
            await backend.get("k")
