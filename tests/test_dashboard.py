"""
Tests for dashboard metrics, alerts, insights and their caching.
"""

from datetime import date, timedelta

import pytest

from conftest import FakeTransactions, make_txn
from core.cache import CacheService
from core.cache_keys import CacheKeys
from services.dashboard import DashboardService, calculate_direction, invalidate_dashboard_cache

TODAY = date(2026, 3, 31)
CURRENT = TODAY - timedelta(days=3)       # inside the current 30-day and 7-day windows
PREVIOUS = TODAY - timedelta(days=40)     # inside the previous 30-day window


@pytest.fixture
def transactions() -> FakeTransactions:
    return FakeTransactions([
        make_txn(1000, "income", CURRENT, customer_id="c1", product_id="prod-aaaaaaaaaa"),
        make_txn(500, "income", CURRENT, customer_id="c2", product_id="prod-bbbbbbbbbb"),
        make_txn(200, "income", CURRENT, customer_id="c2", product_id="prod-bbbbbbbbbb"),
        make_txn(1000, "income", PREVIOUS, customer_id="c1"),
        make_txn(999, "income", CURRENT, user_id="someone-else"),
    ])


@pytest.fixture
def dashboard(cache: CacheService, transactions: FakeTransactions) -> DashboardService:
    return DashboardService(cache, transactions, today=lambda: TODAY)


class TestKeyMetrics:
    @pytest.mark.asyncio
    async def test_window_comparison(self, dashboard: DashboardService) -> None:
        metrics = await dashboard.calculate_key_metrics("user-1")

        assert metrics["dailyRevenue"] == 1700
        assert metrics["totalCustomers"] == 2
        assert metrics["revenueChange"] == pytest.approx(70.0)
        assert metrics["customerChange"] == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_top_products(self, dashboard: DashboardService) -> None:
        top = (await dashboard.calculate_key_metrics("user-1"))["topProducts"]

        assert [p["productId"] for p in top] == ["prod-aaaaaaaaaa", "prod-bbbbbbbbbb"]
        assert top[0]["name"] == "Product prod-aaa"
        assert top[1]["revenue"] == 700
        assert top[1]["unitsSold"] == 2

    @pytest.mark.asyncio
    async def test_cached_until_invalidated(self, dashboard, cache, transactions) -> None:
        await dashboard.calculate_key_metrics("user-1")
        await dashboard.calculate_key_metrics("user-1")
        assert transactions.calls == 2  # one current and one previous query

        transactions.transactions.append(make_txn(300, "income", CURRENT, customer_id="c3"))
        await invalidate_dashboard_cache(cache, "user-1")

        metrics = await dashboard.calculate_key_metrics("user-1")
        assert transactions.calls == 4
        assert metrics["dailyRevenue"] == 2000
        assert metrics["totalCustomers"] == 3


class TestTrends:
    @pytest.mark.asyncio
    async def test_known_metrics_only(self, dashboard: DashboardService) -> None:
        trends = await dashboard.get_metric_trends("user-1", ["customers", "revenue", "bogus"])

        assert [t["metric"] for t in trends] == ["customers", "revenue"]
        revenue = trends[1]
        assert revenue["current"] == 1700
        assert revenue["previous"] == 0
        assert revenue["change"] == 0
        assert revenue["direction"] == "up"

    @pytest.mark.asyncio
    async def test_metric_order_shares_cache_entry(self, dashboard, transactions) -> None:
        await dashboard.get_metric_trends("user-1", ["revenue", "customers"])
        calls = transactions.calls
        await dashboard.get_metric_trends("user-1", ["customers", "revenue"])
        assert transactions.calls == calls

    def test_direction(self) -> None:
        assert calculate_direction(2, 1) == "up"
        assert calculate_direction(1, 2) == "down"
        assert calculate_direction(1, 1) == "stable"


class TestAlerts:
    def test_breached_thresholds(self, dashboard: DashboardService) -> None:
        alerts = dashboard.generate_alerts({"dailyRevenue": 500, "revenueChange": -20.0, "customerChange": 0})

        assert [a["metric"] for a in alerts] == ["dailyRevenue", "revenueChange"]
        assert alerts[0]["severity"] == "medium"
        assert alerts[0]["message"] == "dailyRevenue is 500.00, which is below the threshold of 1000"
        assert alerts[1]["severity"] == "high"
        assert alerts[1]["message"] == "revenueChange is -20.0%, which is below the threshold of -10%"
        assert alerts[1]["currentValue"] == -20.0

    def test_healthy_metrics_raise_nothing(self, dashboard: DashboardService) -> None:
        assert dashboard.generate_alerts({"dailyRevenue": 5000, "revenueChange": 3, "customerChange": -5}) == []

    def test_customer_drop(self, dashboard: DashboardService) -> None:
        alerts = dashboard.generate_alerts({"dailyRevenue": 5000, "revenueChange": 0, "customerChange": -20})
        assert [a["metric"] for a in alerts] == ["customerChange"]


class TestInsights:
    @pytest.mark.asyncio
    async def test_declines_sorted_by_priority(self, cache: CacheService) -> None:
        txns = FakeTransactions([
            make_txn(1000, "income", CURRENT),
            make_txn(900, "expense", CURRENT, category="Rent"),
            make_txn(2000, "income", PREVIOUS),
            make_txn(1000, "expense", PREVIOUS, category="Rent"),
        ])
        dashboard = DashboardService(cache, txns, today=lambda: TODAY)

        insights = await dashboard.generate_insights("user-1")

        assert [i["priority"] for i in insights] == ["high", "high", "medium", "low", "low"]
        assert insights[0]["title"] == "Revenue Decline Detected"
        assert insights[0]["description"] == "Revenue has decreased by 50.0% compared to the previous period."
        assert insights[1]["title"] == "Profit Margin Declining"
        assert insights[2]["title"] == "Low Profit Margin Detected"
        assert {i["title"] for i in insights[3:]} == {"High Spending in One Category", "Revenue Growth Opportunity"}

    @pytest.mark.asyncio
    async def test_growth(self, dashboard: DashboardService) -> None:
        titles = [i["title"] for i in await dashboard.generate_insights("user-1")]
        assert "Strong Revenue Growth" in titles
        assert "Revenue Decline Detected" not in titles


class TestDashboardData:
    @pytest.mark.asyncio
    async def test_shape_and_caching(self, dashboard, cache, transactions) -> None:
        data = await dashboard.get_dashboard_data("user-1")

        assert set(data) == {"keyMetrics", "trends", "insights", "alerts", "lastUpdated"}
        assert [t["metric"] for t in data["trends"]] == ["revenue", "customers"]
        assert await cache.get(CacheKeys.dashboard_data("user-1")) == data

        calls = transactions.calls
        assert await dashboard.get_dashboard_data("user-1") == data
        assert transactions.calls == calls

    @pytest.mark.asyncio
    async def test_invalidation_clears_every_dashboard_key(self, dashboard, cache) -> None:
        await dashboard.get_dashboard_data("user-1")
        await cache.set(CacheKeys.dashboard_metrics("user-2"), {"other": True}, 300)

        await invalidate_dashboard_cache(cache, "user-1")

        assert await cache.exists(CacheKeys.dashboard_data("user-1")) is False
        assert await cache.exists(CacheKeys.dashboard_metrics("user-1")) is False
        assert await cache.exists(CacheKeys.dashboard_insights("user-1")) is False
        assert await cache.exists(CacheKeys.dashboard_metrics("user-2")) is True

    @pytest.mark.asyncio
    async def test_refresh_recomputes(self, dashboard, transactions) -> None:
        await dashboard.get_dashboard_data("user-1")
        calls = transactions.calls

        await dashboard.refresh_metrics("user-1")
        assert transactions.calls > calls
