"""Dashboard metrics, trends, alerts and insights.

Every computed view is served through CacheService.get_or_set, so repeated
dashboard loads within CacheTTL.DASHBOARD_DATA hit the cache instead of the
transaction table. Writes to transactions evict the user's entries through
invalidate_dashboard_cache.
"""

import time
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence, TYPE_CHECKING

from core.cache import CacheService
from core.cache_keys import CacheKeys, CacheTTL
from core.logging import get_logger, log_execution_time
from services.finance import (
    calculate_metrics,
    expense_breakdown,
    percent_change,
    period_ranges,
    unique_customers,
)

if TYPE_CHECKING:
    from models.database import Transaction
    from services.transactions import TransactionService

logger = get_logger(__name__)

DEFAULT_TREND_METRICS = ("revenue", "customers")
KEY_METRICS_WINDOW_DAYS = 30
TREND_WINDOW_DAYS = 7
TOP_PRODUCTS_LIMIT = 5
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


@dataclass(frozen=True)
class MetricThreshold:
    metric: str
    threshold: float
    comparison: Literal["above", "below"]
    severity: Literal["low", "medium", "high"]

    def breached(self, value: float) -> bool:
        if self.comparison == "below":
            return value < self.threshold
        return value > self.threshold


DEFAULT_THRESHOLDS = (
    MetricThreshold("dailyRevenue", 1000, "below", "medium"),
    MetricThreshold("revenueChange", -10, "below", "high"),
    MetricThreshold("customerChange", -15, "below", "medium"),
)


async def invalidate_dashboard_cache(cache: CacheService, user_id: str) -> int:
    """Evict every cached dashboard entry of a user.

    ``dashboard:{user}`` has no sub-namespace so the glob does not reach it;
    it is deleted explicitly.
    """
    deleted = await cache.delete_pattern(CacheKeys.dashboard_pattern(user_id))
    if await cache.delete(CacheKeys.dashboard_data(user_id)):
        deleted += 1
    logger.info("Dashboard cache invalidated", user_id=user_id, deleted=deleted)
    return deleted


def calculate_direction(current: float, previous: float) -> str:
    if current > previous:
        return "up"
    if current < previous:
        return "down"
    return "stable"


def _stamp() -> int:
    return int(time.time() * 1000)


class DashboardService:
    """Computes the dashboard views for one user at a time."""

    def __init__(
        self,
        cache: CacheService,
        transactions: "TransactionService",
        today: Callable[[], date] = date.today,
    ):
        self.cache = cache
        self.transactions = transactions
        self.today = today

    async def get_dashboard_data(self, user_id: str) -> Dict[str, Any]:
        async def produce() -> Dict[str, Any]:
            started = time.perf_counter()
            key_metrics = await self.calculate_key_metrics(user_id)
            trends = await self.get_metric_trends(user_id, list(DEFAULT_TREND_METRICS))
            alerts = self.generate_alerts(key_metrics)
            insights = await self.generate_insights(user_id)
            log_execution_time(logger, "dashboard_data", started, time.perf_counter(), user_id=user_id)
            return {
                "keyMetrics": key_metrics,
                "trends": trends,
                "insights": insights,
                "alerts": alerts,
                "lastUpdated": datetime.now(timezone.utc).isoformat(),
            }

        return await self.cache.get_or_set(
            CacheKeys.dashboard_data(user_id), CacheTTL.DASHBOARD_DATA, produce
        )

    async def calculate_key_metrics(self, user_id: str) -> Dict[str, Any]:
        return await self.cache.get_or_set(
            CacheKeys.dashboard_metrics(user_id),
            CacheTTL.DASHBOARD_DATA,
            lambda: self._calculate_key_metrics(user_id),
        )

    async def _load_periods(self, user_id: str, days: int):
        current_range, previous_range = period_ranges(days, self.today())
        current = await self.transactions.find_by_user(
            user_id, start_date=current_range[0], end_date=current_range[1]
        )
        previous = await self.transactions.find_by_user(
            user_id, start_date=previous_range[0], end_date=previous_range[1]
        )
        return current, previous

    async def _calculate_key_metrics(self, user_id: str) -> Dict[str, Any]:
        current, previous = await self._load_periods(user_id, KEY_METRICS_WINDOW_DAYS)
        current_metrics = calculate_metrics(current)
        previous_metrics = calculate_metrics(previous)
        current_customers = unique_customers(current)
        previous_customers = unique_customers(previous)

        return {
            # income over the whole current window, not a single day
            "dailyRevenue": current_metrics["totalIncome"],
            "totalCustomers": current_customers,
            "topProducts": self.calculate_top_products(current),
            "revenueChange": percent_change(current_metrics["totalIncome"], previous_metrics["totalIncome"]),
            "customerChange": percent_change(current_customers, previous_customers),
        }

    @staticmethod
    def calculate_top_products(transactions: Sequence["Transaction"]) -> List[Dict[str, Any]]:
        """Top products by income revenue; each income transaction counts as one unit."""
        totals: Dict[str, Dict[str, float]] = {}
        for txn in transactions:
            if txn.product_id and txn.type == "income":
                entry = totals.setdefault(txn.product_id, {"revenue": 0.0, "unitsSold": 0})
                entry["revenue"] += abs(txn.amount)
                entry["unitsSold"] += 1

        ranked = sorted(totals.items(), key=lambda item: item[1]["revenue"], reverse=True)
        return [
            {
                "productId": product_id,
                "name": f"Product {product_id[:8]}",
                "revenue": data["revenue"],
                "unitsSold": int(data["unitsSold"]),
            }
            for product_id, data in ranked[:TOP_PRODUCTS_LIMIT]
        ]

    async def get_metric_trends(self, user_id: str, metrics: Sequence[str]) -> List[Dict[str, Any]]:
        return await self.cache.get_or_set(
            CacheKeys.dashboard_trends(user_id, metrics),
            CacheTTL.DASHBOARD_DATA,
            lambda: self._get_metric_trends(user_id, metrics),
        )

    async def _get_metric_trends(self, user_id: str, metrics: Sequence[str]) -> List[Dict[str, Any]]:
        current, previous = await self._load_periods(user_id, TREND_WINDOW_DAYS)
        values = {
            "revenue": (calculate_metrics(current)["totalIncome"], calculate_metrics(previous)["totalIncome"]),
            "customers": (unique_customers(current), unique_customers(previous)),
        }

        trends = []
        for metric in metrics:
            if metric not in values:
                continue
            current_value, previous_value = values[metric]
            trends.append({
                "metric": metric,
                "current": current_value,
                "previous": previous_value,
                "change": percent_change(current_value, previous_value),
                "direction": calculate_direction(current_value, previous_value),
            })
        return trends

    def generate_alerts(
        self,
        key_metrics: Dict[str, Any],
        thresholds: Sequence[MetricThreshold] = DEFAULT_THRESHOLDS,
    ) -> List[Dict[str, Any]]:
        alerts = []
        for threshold in thresholds:
            value = key_metrics.get(threshold.metric, 0)
            if not threshold.breached(value):
                continue
            alerts.append({
                "id": f"alert-{threshold.metric}-{_stamp()}",
                "metric": threshold.metric,
                "message": self._alert_message(threshold, value),
                "severity": threshold.severity,
                "threshold": threshold.threshold,
                "currentValue": value,
            })
        return alerts

    @staticmethod
    def _alert_message(threshold: MetricThreshold, value: float) -> str:
        if "Change" in threshold.metric:
            shown, limit = f"{value:.1f}%", f"{threshold.threshold:g}%"
        else:
            shown, limit = f"{value:.2f}", f"{threshold.threshold:g}"
        return (
            f"{threshold.metric} is {shown}, which is {threshold.comparison} "
            f"the threshold of {limit}"
        )

    async def generate_insights(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.cache.get_or_set(
            CacheKeys.dashboard_insights(user_id),
            CacheTTL.DASHBOARD_DATA,
            lambda: self._generate_insights(user_id),
        )

    async def _generate_insights(self, user_id: str) -> List[Dict[str, Any]]:
        current, previous = await self._load_periods(user_id, KEY_METRICS_WINDOW_DAYS)
        current_metrics = calculate_metrics(current)
        previous_metrics = calculate_metrics(previous)

        insights = (
            self._decline_insights(current_metrics, previous_metrics, current, previous)
            + self._improvement_insights(current_metrics, previous_metrics)
            + self._performance_insights(current_metrics, current)
        )
        # stable sort keeps generation order within a priority
        return sorted(insights, key=lambda insight: PRIORITY_ORDER[insight["priority"]])

    def _decline_insights(self, current: Dict[str, Any], previous: Dict[str, Any],
                          current_txns: Sequence["Transaction"],
                          previous_txns: Sequence["Transaction"]) -> List[Dict[str, Any]]:
        insights = []

        if previous["totalIncome"] > 0:
            revenue_change = percent_change(current["totalIncome"], previous["totalIncome"])
            if revenue_change < -10:
                customer_change = percent_change(unique_customers(current_txns), unique_customers(previous_txns))
                if customer_change < -10:
                    cause = "Customer count has decreased significantly, indicating customer retention issues"
                    measures = ("Implement customer retention programs, reach out to inactive customers, "
                                "and improve customer service")
                else:
                    cause = "Average transaction value has decreased, suggesting pricing or product mix issues"
                    measures = ("Review pricing strategy, promote higher-value products, "
                                "and consider upselling opportunities")
                insights.append({
                    "id": f"insight-revenue-decline-{_stamp()}",
                    "priority": "high",
                    "title": "Revenue Decline Detected",
                    "description": (f"Revenue has decreased by {abs(revenue_change):.1f}% "
                                    "compared to the previous period."),
                    "recommendedAction": "Immediate action required to reverse the declining trend",
                    "expectedImpact": ("Reversing this trend could recover "
                                       f"₹{previous['totalIncome'] - current['totalIncome']:.2f}"),
                    "category": "finance",
                    "likelyCause": cause,
                    "correctiveMeasures": measures,
                    "relatedMetric": "revenue",
                })

        if previous["profitMargin"] > 0:
            margin_change = current["profitMargin"] - previous["profitMargin"]
            if margin_change < -5:
                expense_change = percent_change(current["totalExpenses"], previous["totalExpenses"])
                if expense_change > 10:
                    cause = "Operating expenses have increased significantly, reducing profitability"
                    measures = "Conduct expense audit, negotiate with suppliers, and eliminate unnecessary costs"
                else:
                    cause = "Revenue growth is not keeping pace with expense growth"
                    measures = "Focus on revenue-generating activities and optimize pricing strategy"
                insights.append({
                    "id": f"insight-margin-decline-{_stamp()}",
                    "priority": "high",
                    "title": "Profit Margin Declining",
                    "description": f"Profit margin has decreased by {abs(margin_change):.1f} percentage points.",
                    "recommendedAction": "Review cost structure and pricing to improve profitability",
                    "expectedImpact": ("Restoring previous margin could increase profit by "
                                       f"₹{current['totalIncome'] * abs(margin_change) / 100:.2f}"),
                    "category": "finance",
                    "likelyCause": cause,
                    "correctiveMeasures": measures,
                    "relatedMetric": "profitMargin",
                })

        return insights

    def _improvement_insights(self, current: Dict[str, Any], previous: Dict[str, Any]) -> List[Dict[str, Any]]:
        insights = []

        if previous["totalIncome"] > 0:
            revenue_change = percent_change(current["totalIncome"], previous["totalIncome"])
            if revenue_change > 15:
                insights.append({
                    "id": f"insight-revenue-improvement-{_stamp()}",
                    "priority": "medium",
                    "title": "Strong Revenue Growth",
                    "description": f"Revenue has increased by {revenue_change:.1f}% compared to the previous period.",
                    "recommendedAction": "Continue current strategies and consider scaling successful initiatives",
                    "expectedImpact": "Maintaining this growth rate could double revenue in 6 months",
                    "category": "finance",
                    "isImprovement": True,
                    "nextSteps": ("Analyze what drove this growth and replicate those strategies. "
                                  "Consider investing in marketing to accelerate growth."),
                    "relatedMetric": "revenue",
                })

        if previous["profitMargin"] > 0:
            margin_change = current["profitMargin"] - previous["profitMargin"]
            if margin_change > 5:
                insights.append({
                    "id": f"insight-margin-improvement-{_stamp()}",
                    "priority": "medium",
                    "title": "Profit Margin Improving",
                    "description": f"Profit margin has increased by {margin_change:.1f} percentage points.",
                    "recommendedAction": "Document and maintain the practices that led to this improvement",
                    "expectedImpact": "Sustaining this margin improvement will significantly boost profitability",
                    "category": "finance",
                    "isImprovement": True,
                    "nextSteps": ("Review recent cost-cutting or pricing changes and make them permanent. "
                                  "Share best practices across the business."),
                    "relatedMetric": "profitMargin",
                })

        return insights

    def _performance_insights(self, metrics: Dict[str, Any],
                              transactions: Sequence["Transaction"]) -> List[Dict[str, Any]]:
        insights = []

        if 0 < metrics["profitMargin"] < 20:
            insights.append({
                "id": f"insight-profit-{_stamp()}",
                "priority": "medium",
                "title": "Low Profit Margin Detected",
                "description": (f"Your profit margin is {metrics['profitMargin']:.1f}%, "
                                "which is below the healthy threshold of 20%."),
                "recommendedAction": "Review your pricing strategy and identify areas to reduce costs",
                "expectedImpact": ("Improving profit margin by 5% could increase monthly profit by "
                                   f"₹{metrics['totalIncome'] * 0.05:.2f}"),
                "category": "finance",
            })

        top_expense = next(
            (c for c in expense_breakdown(transactions) if c["category"] != "Uncategorized"),
            None,
        )
        if top_expense and top_expense["total"] > metrics["totalExpenses"] * 0.4:
            share = top_expense["total"] / metrics["totalExpenses"] * 100
            insights.append({
                "id": f"insight-expense-{_stamp()}",
                "priority": "low",
                "title": "High Spending in One Category",
                "description": f"{top_expense['category']} accounts for {share:.1f}% of your expenses.",
                "recommendedAction": (f"Review {top_expense['category']} expenses "
                                      "and look for cost-saving opportunities"),
                "expectedImpact": f"Reducing this category by 10% could save ₹{top_expense['total'] * 0.1:.2f}",
                "category": "operations",
            })

        if metrics["totalIncome"] > 0:
            insights.append({
                "id": f"insight-growth-{_stamp()}",
                "priority": "low",
                "title": "Revenue Growth Opportunity",
                "description": ("Your business is generating consistent revenue. "
                                "Consider expanding your marketing efforts."),
                "recommendedAction": "Invest 5-10% of revenue in targeted marketing campaigns",
                "expectedImpact": "Could increase customer base by 15-20% in the next quarter",
                "category": "marketing",
            })

        return insights

    async def refresh_metrics(self, user_id: str) -> Dict[str, Any]:
        """Drop the user's cached dashboard and rebuild it."""
        await invalidate_dashboard_cache(self.cache, user_id)
        return await self.get_dashboard_data(user_id)
