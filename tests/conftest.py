"""
Pytest configuration and fixtures for the dashboard service tests.
"""

import os
import tempfile
from datetime import date
from pathlib import Path
from typing import List, Optional

import pytest

# Settings are read when main is imported; point them at throwaway storage first.
_DATA_DIR = Path(tempfile.mkdtemp(prefix="bizdash-tests-"))
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-1234")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DATA_DIR / 'app.db'}"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["REDIS_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_FORMAT"] = "console"

from core.cache import CacheService  # noqa: E402
from core.cache_backends import MemoryCacheBackend  # noqa: E402
from core.config import Settings  # noqa: E402
from core.database import Database  # noqa: E402
from models.database import BusinessProfile, Transaction  # noqa: E402


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransactions:
    """Stands in for TransactionService.find_by_user and counts queries."""

    def __init__(self, transactions: Optional[List[Transaction]] = None):
        self.transactions = list(transactions or [])
        self.calls = 0

    async def find_by_user(self, user_id, start_date=None, end_date=None, category=None, type=None):
        self.calls += 1
        return [
            t for t in self.transactions
            if t.user_id == user_id
            and (start_date is None or t.date >= start_date)
            and (end_date is None or t.date <= end_date)
            and (category is None or t.category == category)
            and (type is None or t.type == type)
        ]


def make_txn(amount: float, type: str, on: date, user_id: str = "user-1", category: Optional[str] = None,
             customer_id: Optional[str] = None, product_id: Optional[str] = None) -> Transaction:
    return Transaction(
        user_id=user_id,
        amount=amount,
        type=type,
        category=category,
        description=f"{type} {amount}",
        date=on,
        customer_id=customer_id,
        product_id=product_id,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_backend(clock: FakeClock) -> MemoryCacheBackend:
    return MemoryCacheBackend(clock=clock)


@pytest.fixture
def cache(memory_backend: MemoryCacheBackend) -> CacheService:
    return CacheService(memory_backend)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        jwt_secret_key="test-secret-key-that-is-long-enough-1234",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        cache_backend="memory",
    )


@pytest.fixture
async def database(settings: Settings) -> Database:
    """Initialized database on a temp file."""
    db = Database(settings)
    await db.startup()
    yield db
    await db.shutdown()


@pytest.fixture
def profile() -> BusinessProfile:
    return BusinessProfile(
        user_id="user-1",
        business_name="Chai Corner",
        business_type="cafe",
        industry="food-beverage",
        location="Pune",
        target_audience="college students",
    )
