"""Health check utilities for the /health endpoint."""
import time
from typing import Dict, Any, TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    from core.config import Settings
    from core.database import Database
    from core.cache import CacheService

_startup_time: float = 0.0

HEALTH_CHECK_KEY = "_health_check"


def set_startup_time() -> None:
    """Record the application startup time. Call once during lifespan startup."""
    global _startup_time
    _startup_time = time.time()


def get_uptime() -> float:
    """Get uptime in seconds since startup."""
    return time.time() - _startup_time if _startup_time else 0.0


async def check_database(database: "Database") -> bool:
    """Check database connectivity."""
    try:
        async with database.get_session() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


async def check_cache(cache: "CacheService") -> bool:
    """Round-trip a value through the cache store."""
    if not await cache.set(HEALTH_CHECK_KEY, "ok", ttl=10):
        return False
    result = await cache.get(HEALTH_CHECK_KEY)
    await cache.delete(HEALTH_CHECK_KEY)
    return result == "ok"


async def get_health_status(
    database: "Database",
    cache: "CacheService",
    settings: "Settings"
) -> Dict[str, Any]:
    """Overall status plus per-dependency checks.

    A failing cache only degrades the service: requests still succeed by
    computing directly.
    """
    db_healthy = await check_database(database)
    cache_healthy = await check_cache(cache)

    if not db_healthy:
        overall_status = "unhealthy"
    elif not cache_healthy:
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return {
        "status": overall_status,
        "uptime_seconds": round(get_uptime(), 1),
        "environment": "development" if settings.is_development else "production",
        "checks": {
            "database": db_healthy,
            "cache": cache_healthy,
        },
        "cache_backend": cache.backend_name,
    }
