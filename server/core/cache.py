"""Read-through cache service.

Wraps a CacheBackend (Redis in production, the SQLite table or process
memory otherwise). Store failures never reach callers: reads degrade to a
miss and writes to a logged no-op, so a slow or unavailable store turns into
direct computation instead of failed requests. Errors raised by a
get_or_set producer are not store failures and propagate unchanged.
"""

import asyncio
import enum
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from core.cache_backends import CacheBackend, MemoryCacheBackend, SQLiteCacheBackend
from core.logging import get_logger, log_cache_operation

logger = get_logger(__name__)

T = TypeVar("T")


class LookupStatus(str, enum.Enum):
    HIT = "hit"
    MISS = "miss"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CacheLookup:
    """Outcome of a cache read, keeping "absent" apart from "store down"."""

    status: LookupStatus
    value: Any = None
    error: Optional[str] = None

    @property
    def hit(self) -> bool:
        return self.status is LookupStatus.HIT


class CacheService:
    """Async cache with graceful degradation on store failure."""

    def __init__(
        self,
        backend: CacheBackend,
        default_ttl: int = 300,
        single_flight: bool = False,
        fallback: Optional[CacheBackend] = None,
    ):
        self.backend = backend
        self.default_ttl = default_ttl
        self.single_flight = single_flight
        self.fallback = fallback
        self._in_flight: Dict[str, asyncio.Future] = {}

    @property
    def backend_name(self) -> str:
        return self.backend.name

    async def startup(self):
        """Connect the backend, falling back when it cannot be reached."""
        try:
            await self.backend.startup()
            logger.info("Cache initialized", backend=self.backend.name)
        except Exception as e:
            replacement = self.fallback or MemoryCacheBackend()
            logger.warning(
                "Cache backend unavailable, falling back",
                backend=self.backend.name,
                fallback=replacement.name,
                error=str(e),
            )
            self.backend = replacement
            await self.backend.startup()

    async def shutdown(self):
        """Close cache connections."""
        await self.backend.shutdown()

    async def lookup(self, key: str) -> CacheLookup:
        """Read key and report whether it hit, missed or the store failed."""
        try:
            raw = await self.backend.get(key)
        except Exception as e:
            logger.error("Cache get failed", key=key, error=str(e))
            return CacheLookup(LookupStatus.UNAVAILABLE, error=str(e))

        if raw is None:
            log_cache_operation(logger, "get", key, hit=False)
            return CacheLookup(LookupStatus.MISS)

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Cache entry not decodable, treating as miss", key=key, error=str(e))
            return CacheLookup(LookupStatus.MISS)

        # a stored null is indistinguishable from an absent key for callers of get()
        if value is None:
            log_cache_operation(logger, "get", key, hit=False, stored_null=True)
            return CacheLookup(LookupStatus.MISS)

        log_cache_operation(logger, "get", key, hit=True)
        return CacheLookup(LookupStatus.HIT, value=value)

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache. A miss and an unavailable store both give None."""
        result = await self.lookup(key)
        return result.value if result.hit else None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store value with a TTL in seconds. Returns False if the store rejected it."""
        ttl = ttl or self.default_ttl
        try:
            serialized = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error("Cache value not serializable", key=key, error=str(e))
            return False

        try:
            await self.backend.set_with_expiry(key, ttl, serialized)
        except Exception as e:
            logger.error("Cache set failed", key=key, error=str(e))
            return False

        log_cache_operation(logger, "set", key, ttl=ttl)
        return True

    async def delete(self, key: str) -> bool:
        """Delete a single key. Deleting an absent key is not an error."""
        try:
            deleted = await self.backend.delete(key)
        except Exception as e:
            logger.error("Cache delete failed", key=key, error=str(e))
            return False

        log_cache_operation(logger, "delete", key, deleted=bool(deleted))
        return bool(deleted)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern in one batch."""
        try:
            keys = await self.backend.list_keys(pattern)
            if not keys:
                log_cache_operation(logger, "delete_pattern", pattern, deleted=0)
                return 0
            deleted = await self.backend.delete(*keys)
        except Exception as e:
            logger.error("Cache delete pattern failed", pattern=pattern, error=str(e))
            return 0

        log_cache_operation(logger, "delete_pattern", pattern, deleted=deleted)
        return deleted

    async def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        try:
            return await self.backend.exists(key)
        except Exception as e:
            logger.error("Cache exists check failed", key=key, error=str(e))
            return False

    async def get_or_set(self, key: str, ttl: int, producer: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value, or compute it with producer and cache the result.

        The producer only runs on a miss. If the store is down the value is
        computed on every call. Without single_flight, concurrent misses on
        the same key each run the producer and the last write wins. A None
        result is stored but never counts as a hit, so it is recomputed.
        """
        cached = await self.lookup(key)
        if cached.hit:
            return cached.value

        if not self.single_flight:
            return await self._produce_and_store(key, ttl, producer)

        pending = self._in_flight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            result = await self._produce_and_store(key, ttl, producer)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # mark retrieved so a future nobody else awaited does not log a warning
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._in_flight.pop(key, None)

    async def _produce_and_store(self, key: str, ttl: int, producer: Callable[[], Awaitable[T]]) -> T:
        result = await producer()
        await self.set(key, result, ttl)
        return result

    async def cleanup_expired(self) -> int:
        """Drop expired rows when the backend keeps them (SQLite only)."""
        if isinstance(self.backend, SQLiteCacheBackend):
            try:
                return await self.backend.cleanup_expired()
            except Exception as e:
                logger.error("Cache cleanup failed", error=str(e))
        return 0

    async def ping(self) -> bool:
        try:
            return await self.backend.ping()
        except Exception as e:
            logger.warning("Cache ping failed", backend=self.backend.name, error=str(e))
            return False
