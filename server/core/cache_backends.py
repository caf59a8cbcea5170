"""Key-value stores behind CacheService.

Each backend offers the same small surface (get, set_with_expiry, delete,
list_keys, exists) over string keys and serialized string values. Backends
raise on failure; CacheService decides what a failure means to callers.
"""

import fnmatch
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

import redis.asyncio as redis
from sqlalchemy import delete as sa_delete
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import select

from core.logging import get_logger
from models.cache import CacheEntry

if TYPE_CHECKING:
    from core.config import Settings
    from core.database import Database

logger = get_logger(__name__)


class CacheBackend(ABC):
    """Store capability required by the cache layer."""

    name: str = "abstract"

    async def startup(self) -> None:
        """Open connections. Raise if the store is unusable."""

    async def shutdown(self) -> None:
        """Release connections."""

    async def ping(self) -> bool:
        return True

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the raw stored value, or None when absent or expired."""

    @abstractmethod
    async def set_with_expiry(self, key: str, ttl: int, value: str) -> None:
        """Store value under key, expiring after ttl seconds."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys in one call and return how many existed."""

    @abstractmethod
    async def list_keys(self, pattern: str) -> List[str]:
        """Return live keys matching a glob pattern."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether a live entry exists for key."""


class RedisCacheBackend(CacheBackend):
    """Redis store (production, shared across workers)."""

    name = "redis"

    def __init__(self, url: str):
        self.url = url
        self.redis: Optional[redis.Redis] = None

    async def startup(self) -> None:
        self.redis = redis.from_url(
            self.url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True
        )
        await self.redis.ping()
        logger.info("Redis cache initialized", url=self.url)

    async def shutdown(self) -> None:
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Redis cache connections closed")

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise ConnectionError("Redis cache backend is not connected")
        return self.redis

    async def ping(self) -> bool:
        return bool(await self._client().ping())

    async def get(self, key: str) -> Optional[str]:
        return await self._client().get(key)

    async def set_with_expiry(self, key: str, ttl: int, value: str) -> None:
        await self._client().setex(key, ttl, value)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._client().delete(*keys))

    async def list_keys(self, pattern: str) -> List[str]:
        return list(await self._client().keys(pattern))

    async def exists(self, key: str) -> bool:
        return bool(await self._client().exists(key))


def glob_to_like(pattern: str) -> str:
    """Translate a Redis-style glob (``*`` and ``?``) to a SQL LIKE pattern using ``\\`` as escape."""
    escaped = pattern.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped.replace("*", "%").replace("?", "_")


class SQLiteCacheBackend(CacheBackend):
    """Cache rows in the application database (single-process deployments)."""

    name = "sqlite"

    def __init__(self, database: "Database", clock: Callable[[], float] = time.time):
        self.database = database
        self.clock = clock

    async def ping(self) -> bool:
        async with self.database.get_session() as session:
            await session.execute(select(CacheEntry.key).limit(1))
        return True

    async def get(self, key: str) -> Optional[str]:
        async with self.database.get_session() as session:
            entry = await session.get(CacheEntry, key)
            if entry is None:
                return None
            if entry.expires_at is not None and entry.expires_at <= self.clock():
                await session.execute(
                    sa_delete(CacheEntry).where(CacheEntry.key == key, CacheEntry.expires_at <= self.clock())
                )
                await session.commit()
                return None
            return entry.value

    async def set_with_expiry(self, key: str, ttl: int, value: str) -> None:
        now = self.clock()
        stmt = sqlite_insert(CacheEntry).values(key=key, value=value, expires_at=now + ttl, created_at=now)
        # concurrent writers of one key must not collide on the primary key
        stmt = stmt.on_conflict_do_update(
            index_elements=[CacheEntry.key],
            set_={
                "value": stmt.excluded.value,
                "expires_at": stmt.excluded.expires_at,
                "created_at": stmt.excluded.created_at,
            },
        )
        async with self.database.get_session() as session:
            await session.execute(stmt)
            await session.commit()

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        async with self.database.get_session() as session:
            result = await session.execute(sa_delete(CacheEntry).where(CacheEntry.key.in_(keys)))
            await session.commit()
            return result.rowcount or 0

    async def list_keys(self, pattern: str) -> List[str]:
        now = self.clock()
        async with self.database.get_session() as session:
            stmt = select(CacheEntry.key).where(
                CacheEntry.key.like(glob_to_like(pattern), escape="\\"),
                (CacheEntry.expires_at.is_(None)) | (CacheEntry.expires_at > now)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def exists(self, key: str) -> bool:
        async with self.database.get_session() as session:
            entry = await session.get(CacheEntry, key)
            if entry is None:
                return False
            return entry.expires_at is None or entry.expires_at > self.clock()

    async def cleanup_expired(self) -> int:
        """Remove all expired rows. Returns count deleted."""
        async with self.database.get_session() as session:
            result = await session.execute(
                sa_delete(CacheEntry).where(
                    CacheEntry.expires_at.isnot(None),
                    CacheEntry.expires_at <= self.clock()
                )
            )
            await session.commit()
            count = result.rowcount or 0
        if count:
            logger.info("Cleaned up expired cache entries", count=count)
        return count


class MemoryCacheBackend(CacheBackend):
    """In-process store for development and tests. Not shared between workers."""

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    def _live(self, key: str) -> Optional[str]:
        item = self._entries.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at <= self.clock():
            del self._entries[key]
            return None
        return value

    async def shutdown(self) -> None:
        self._entries.clear()

    async def get(self, key: str) -> Optional[str]:
        return self._live(key)

    async def set_with_expiry(self, key: str, ttl: int, value: str) -> None:
        self._entries[key] = (value, self.clock() + ttl)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._live(key) is not None:
                deleted += 1
            self._entries.pop(key, None)
        return deleted

    async def list_keys(self, pattern: str) -> List[str]:
        return [k for k in list(self._entries) if fnmatch.fnmatchcase(k, pattern) and self._live(k) is not None]

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None


def create_cache_backend(settings: "Settings", database: Optional["Database"] = None) -> CacheBackend:
    """Pick the configured backend.

    ``auto`` prefers Redis when enabled, then the SQLite table when a database
    is available, then memory. Connectivity is verified later by
    CacheService.startup, which falls back if Redis cannot be reached.
    """
    choice = settings.cache_backend
    if choice == "auto":
        if settings.redis_enabled and settings.redis_url:
            choice = "redis"
        elif database is not None:
            choice = "sqlite"
        else:
            choice = "memory"

    if choice == "redis":
        if not settings.redis_url:
            raise ValueError("CACHE_BACKEND=redis requires REDIS_URL")
        return RedisCacheBackend(settings.redis_url)
    if choice == "sqlite":
        if database is None:
            raise ValueError("CACHE_BACKEND=sqlite requires a database")
        return SQLiteCacheBackend(database)
    return MemoryCacheBackend()
