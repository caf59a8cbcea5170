"""Financial aggregation over transactions, and cash-flow forecasting."""

import math
import time
from datetime import date, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TYPE_CHECKING

from core.exceptions import ValidationFailedError
from core.logging import get_logger, log_execution_time
from models.database import Transaction

if TYPE_CHECKING:
    from services.transactions import TransactionService

logger = get_logger(__name__)

DateRange = Tuple[date, date]


def period_ranges(days: int, today: Optional[date] = None) -> Tuple[DateRange, DateRange]:
    """Return (current, previous) inclusive windows of ``days`` days each.

    The current window ends today; the previous one ends the day before the
    current one starts, so no date falls in both.
    """
    end = today or date.today()
    start = end - timedelta(days=days - 1)
    previous_end = start - timedelta(days=1)
    return (start, end), (previous_end - timedelta(days=days - 1), previous_end)


def calculate_metrics(transactions: Iterable[Transaction]) -> Dict[str, Any]:
    """Totals, profit margin and per-category breakdown.

    Amounts are taken as absolute values; uncategorized entries are grouped
    under "Uncategorized". The breakdown is sorted by total, largest first.
    """
    total_income = 0.0
    total_expenses = 0.0
    categories: Dict[str, Dict[str, float]] = {}

    for txn in transactions:
        amount = abs(txn.amount)
        if txn.type == "income":
            total_income += amount
        elif txn.type == "expense":
            total_expenses += amount

        bucket = categories.setdefault(txn.category or "Uncategorized", {"total": 0.0, "count": 0})
        bucket["total"] += amount
        bucket["count"] += 1

    net_profit = total_income - total_expenses
    profit_margin = (net_profit / total_income) * 100 if total_income > 0 else 0.0

    breakdown = sorted(
        (
            {"category": name, "total": data["total"], "count": int(data["count"])}
            for name, data in categories.items()
        ),
        key=lambda item: item["total"],
        reverse=True,
    )

    return {
        "totalIncome": total_income,
        "totalExpenses": total_expenses,
        "netProfit": net_profit,
        "profitMargin": profit_margin,
        "categoryBreakdown": breakdown,
    }


def expense_breakdown(transactions: Iterable[Transaction]) -> List[Dict[str, Any]]:
    """Category breakdown restricted to expenses."""
    return calculate_metrics(t for t in transactions if t.type == "expense")["categoryBreakdown"]


def unique_customers(transactions: Sequence[Transaction]) -> int:
    return len({t.customer_id for t in transactions if t.customer_id})


def percent_change(current: float, previous: float) -> float:
    """Relative change in percent; 0 when there is no previous value to compare with."""
    if previous > 0:
        return ((current - previous) / previous) * 100
    return 0.0


def _month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def _shift_month(day: date, months: int) -> Tuple[str, int]:
    """(YYYY-MM, month number) ``months`` calendar months after ``day``."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    return f"{year:04d}-{month + 1:02d}", month + 1


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population standard deviation over mean; 0 for empty or zero-mean input."""
    mean = _mean(values)
    if not values or mean == 0:
        return 0.0
    variance = _mean([(v - mean) ** 2 for v in values])
    return math.sqrt(variance) / mean


def monthly_totals(transactions: Iterable[Transaction]) -> List[Dict[str, Any]]:
    """Income and expenses per calendar month, oldest first."""
    months: Dict[str, Dict[str, Any]] = {}
    for txn in transactions:
        key = _month_key(txn.date)
        bucket = months.setdefault(
            key, {"month": key, "monthNumber": txn.date.month, "income": 0.0, "expenses": 0.0}
        )
        if txn.type == "income":
            bucket["income"] += abs(txn.amount)
        else:
            bucket["expenses"] += abs(txn.amount)
    return [months[key] for key in sorted(months)]


def seasonal_factors(monthly: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Per calendar month, that month's average relative to the overall monthly average."""
    avg_income = _mean([m["income"] for m in monthly])
    avg_expenses = _mean([m["expenses"] for m in monthly])

    by_month: Dict[int, List[Dict[str, Any]]] = {}
    for entry in monthly:
        by_month.setdefault(entry["monthNumber"], []).append(entry)

    return [
        {
            "month": number,
            "incomeFactor": _mean([e["income"] for e in entries]) / avg_income if avg_income > 0 else 1.0,
            "expenseFactor": _mean([e["expenses"] for e in entries]) / avg_expenses if avg_expenses > 0 else 1.0,
        }
        for number, entries in sorted(by_month.items())
    ]


def forecast_confidence(monthly: Sequence[Dict[str, Any]]) -> float:
    """0.5 with under 3 months of history, 0.7 under 6, then 0.6-0.9 by consistency."""
    if len(monthly) < 3:
        return 0.5
    if len(monthly) < 6:
        return 0.7

    variation = (coefficient_of_variation([m["income"] for m in monthly])
                 + coefficient_of_variation([m["expenses"] for m in monthly])) / 2
    if variation < 0.3:
        return 0.9
    if variation < 0.6:
        return 0.8
    if variation < 1.0:
        return 0.7
    return 0.6


def forecast_cash_flow(transactions: Sequence[Transaction], months: int, today: date) -> Dict[str, Any]:
    """Project income and expenses for the ``months`` calendar months after ``today``.

    The baseline is the average month of history, scaled by the seasonal
    factor of the target month when that month appears in the history.
    """
    if not transactions:
        raise ValidationFailedError(
            "Insufficient data: need some historical transactions for forecasting",
            code="INSUFFICIENT_DATA",
            suggestion="Record income and expenses for a few months first",
        )

    monthly = monthly_totals(transactions)
    factors = {f["month"]: f for f in seasonal_factors(monthly)}
    avg_income = _mean([m["income"] for m in monthly])
    avg_expenses = _mean([m["expenses"] for m in monthly])

    projections = []
    for offset in range(1, months + 1):
        label, number = _shift_month(today, offset)
        factor = factors.get(number)
        income = avg_income * factor["incomeFactor"] if factor else avg_income
        expenses = avg_expenses * factor["expenseFactor"] if factor else avg_expenses
        projections.append({
            "month": label,
            "projectedIncome": income,
            "projectedExpenses": expenses,
            "projectedNetCashFlow": income - expenses,
        })

    return {
        "projections": projections,
        "confidence": forecast_confidence(monthly),
        "seasonalFactors": list(factors.values()),
        "assumptions": [
            "Based on historical transaction patterns",
            f"Using {len(monthly)} months of historical data",
            "Seasonal patterns incorporated where detected",
            "Assumes similar business conditions continue",
        ],
    }


class FinanceService:
    """Period metrics, category totals and cash-flow forecasts for one user."""

    FORECAST_LOOKBACK_DAYS = 365

    def __init__(self, transactions: "TransactionService", today: Callable[[], date] = date.today):
        self.transactions = transactions
        self.today = today

    @staticmethod
    def _check_period(start_date: date, end_date: date) -> None:
        if start_date > end_date:
            raise ValidationFailedError(
                "startDate must not be after endDate",
                details={"startDate": start_date.isoformat(), "endDate": end_date.isoformat()},
            )

    async def metrics(self, user_id: str, start_date: date, end_date: date) -> Dict[str, Any]:
        self._check_period(start_date, end_date)
        txns = await self.transactions.find_by_user(user_id, start_date=start_date, end_date=end_date)
        return {
            **calculate_metrics(txns),
            "period": {"startDate": start_date.isoformat(), "endDate": end_date.isoformat()},
        }

    async def categories(self, user_id: str, type: str, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        self._check_period(start_date, end_date)
        txns = await self.transactions.find_by_user(
            user_id, start_date=start_date, end_date=end_date, type=type
        )
        return calculate_metrics(txns)["categoryBreakdown"]

    async def forecast(self, user_id: str, months: int = 3) -> Dict[str, Any]:
        today = self.today()
        start = time.time()
        txns = await self.transactions.find_by_user(
            user_id, start_date=today - timedelta(days=self.FORECAST_LOOKBACK_DAYS), end_date=today
        )
        result = forecast_cash_flow(txns, months, today)
        log_execution_time(logger, "cash_flow_forecast", start, time.time(), user_id=user_id, months=months)
        return result
