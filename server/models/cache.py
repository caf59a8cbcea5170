"""SQLite-backed cache table used when Redis is not configured."""

import time
from typing import Optional
from sqlmodel import SQLModel, Field


class CacheEntry(SQLModel, table=True):
    """Key-value cache row with optional expiration (unix timestamp)."""

    __tablename__ = "cache_entries"

    key: str = Field(primary_key=True, max_length=512)
    value: str = Field(max_length=1000000)  # JSON serialized, up to 1MB
    expires_at: Optional[float] = Field(default=None, index=True)
    created_at: float = Field(default_factory=time.time)
