"""
Tests for financial aggregation helpers and cash-flow forecasting.
"""

from datetime import date

import pytest

from conftest import FakeTransactions, make_txn
from core.exceptions import ValidationFailedError
from services.finance import (
    FinanceService,
    calculate_metrics,
    coefficient_of_variation,
    expense_breakdown,
    forecast_cash_flow,
    forecast_confidence,
    percent_change,
    period_ranges,
    unique_customers,
)

DAY = date(2026, 3, 31)


class TestCalculateMetrics:
    def test_totals_and_margin(self) -> None:
        txns = [
            make_txn(1000, "income", DAY, category="Sales"),
            make_txn(-250, "expense", DAY, category="Rent"),
            make_txn(150, "expense", DAY),
        ]
        metrics = calculate_metrics(txns)

        assert metrics["totalIncome"] == 1000
        assert metrics["totalExpenses"] == 400
        assert metrics["netProfit"] == 600
        assert metrics["profitMargin"] == 60
        assert [c["category"] for c in metrics["categoryBreakdown"]] == ["Sales", "Rent", "Uncategorized"]
        assert metrics["categoryBreakdown"][1] == {"category": "Rent", "total": 250, "count": 1}

    def test_no_income_gives_zero_margin(self) -> None:
        metrics = calculate_metrics([make_txn(100, "expense", DAY)])
        assert metrics["profitMargin"] == 0
        assert metrics["netProfit"] == -100

    def test_empty(self) -> None:
        metrics = calculate_metrics([])
        assert metrics["totalIncome"] == 0
        assert metrics["categoryBreakdown"] == []

    def test_expense_breakdown_ignores_income(self) -> None:
        txns = [
            make_txn(5000, "income", DAY, category="Sales"),
            make_txn(300, "expense", DAY, category="Supplies"),
        ]
        assert expense_breakdown(txns) == [{"category": "Supplies", "total": 300, "count": 1}]


def test_unique_customers_skips_missing_ids() -> None:
    txns = [
        make_txn(1, "income", DAY, customer_id="c1"),
        make_txn(1, "income", DAY, customer_id="c1"),
        make_txn(1, "income", DAY, customer_id="c2"),
        make_txn(1, "income", DAY),
    ]
    assert unique_customers(txns) == 2


def test_percent_change() -> None:
    assert percent_change(150, 100) == 50
    assert percent_change(50, 100) == -50
    assert percent_change(10, 0) == 0


def test_period_ranges_do_not_overlap() -> None:
    current, previous = period_ranges(7, DAY)
    assert current == (date(2026, 3, 25), date(2026, 3, 31))
    assert previous == (date(2026, 3, 18), date(2026, 3, 24))


class TestForecast:
    def test_average_month_without_seasonal_match(self) -> None:
        txns = [
            make_txn(1000, "income", date(2026, 1, 10)),
            make_txn(400, "expense", date(2026, 1, 12)),
            make_txn(3000, "income", date(2026, 2, 3)),
            make_txn(600, "expense", date(2026, 2, 20)),
        ]
        forecast = forecast_cash_flow(txns, 2, DAY)

        assert [p["month"] for p in forecast["projections"]] == ["2026-04", "2026-05"]
        assert forecast["projections"][0]["projectedIncome"] == 2000
        assert forecast["projections"][0]["projectedExpenses"] == 500
        assert forecast["projections"][0]["projectedNetCashFlow"] == 1500
        assert forecast["confidence"] == 0.5
        assert "Using 2 months of historical data" in forecast["assumptions"]

    def test_seasonal_factor_scales_matching_month(self) -> None:
        txns = [
            make_txn(3000, "income", date(2025, 4, 15)),
            make_txn(1000, "income", date(2026, 2, 15)),
        ]
        april = forecast_cash_flow(txns, 1, DAY)["projections"][0]

        assert april["month"] == "2026-04"
        assert april["projectedIncome"] == 3000
        assert april["projectedExpenses"] == 0

    def test_months_roll_into_next_year(self) -> None:
        txns = [make_txn(100, "income", date(2026, 11, 1))]
        forecast = forecast_cash_flow(txns, 3, date(2026, 12, 5))
        assert [p["month"] for p in forecast["projections"]] == ["2027-01", "2027-02", "2027-03"]

    def test_no_history_is_rejected(self) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            forecast_cash_flow([], 3, DAY)
        assert exc_info.value.code == "INSUFFICIENT_DATA"

    def test_confidence_grows_with_consistent_history(self) -> None:
        steady = [{"income": 1000, "expenses": 500}] * 6
        assert forecast_confidence(steady[:4]) == 0.7
        assert forecast_confidence(steady) == 0.9

        erratic = [{"income": v, "expenses": v} for v in (0, 0, 0, 0, 0, 6000)]
        assert forecast_confidence(erratic) == 0.6

    def test_coefficient_of_variation(self) -> None:
        assert coefficient_of_variation([]) == 0
        assert coefficient_of_variation([0, 0]) == 0
        assert coefficient_of_variation([5, 15]) == 0.5


class TestFinanceService:
    @pytest.fixture
    def finance(self) -> FinanceService:
        txns = FakeTransactions([
            make_txn(1000, "income", DAY, category="Sales"),
            make_txn(200, "expense", DAY, category="Rent"),
            make_txn(50, "expense", date(2026, 3, 1), category="Supplies"),
            make_txn(9999, "income", date(2024, 1, 1)),
            make_txn(500, "income", DAY, user_id="user-2"),
        ])
        return FinanceService(txns, today=lambda: DAY)

    @pytest.mark.asyncio
    async def test_metrics_for_period(self, finance: FinanceService) -> None:
        metrics = await finance.metrics("user-1", date(2026, 3, 15), DAY)
        assert metrics["totalIncome"] == 1000
        assert metrics["totalExpenses"] == 200
        assert metrics["period"] == {"startDate": "2026-03-15", "endDate": "2026-03-31"}

    @pytest.mark.asyncio
    async def test_inverted_period_rejected(self, finance: FinanceService) -> None:
        with pytest.raises(ValidationFailedError):
            await finance.metrics("user-1", DAY, date(2026, 3, 1))

    @pytest.mark.asyncio
    async def test_categories_by_type(self, finance: FinanceService) -> None:
        categories = await finance.categories("user-1", "expense", date(2026, 3, 1), DAY)
        assert categories == [
            {"category": "Rent", "total": 200, "count": 1},
            {"category": "Supplies", "total": 50, "count": 1},
        ]

    @pytest.mark.asyncio
    async def test_forecast_ignores_history_older_than_a_year(self, finance: FinanceService) -> None:
        forecast = await finance.forecast("user-1", months=1)
        assert forecast["projections"][0]["projectedIncome"] == 1000
        assert "Using 1 months of historical data" in forecast["assumptions"]
