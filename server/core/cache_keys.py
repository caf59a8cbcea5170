"""Cache key builders and TTL policy.

Every key is ``namespace[:sub]:entity[:qualifier]`` so that a user's entries
can be swept with a single glob pattern after the underlying data changes.
"""

import hashlib
from typing import Iterable, Optional, Union

Number = Union[int, float]


def _format_number(value: Number) -> str:
    # 5000.0 and 5000 must map to the same key
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class CacheKeys:
    """Deterministic key builders, one per cached feature."""

    @staticmethod
    def dashboard_data(user_id: str) -> str:
        return f"dashboard:{user_id}"

    @staticmethod
    def dashboard_metrics(user_id: str) -> str:
        return f"dashboard:metrics:{user_id}"

    @staticmethod
    def dashboard_trends(user_id: str, metrics: Iterable[str]) -> str:
        """Trend key; metric order does not matter."""
        return f"dashboard:trends:{user_id}:{','.join(sorted(metrics))}"

    @staticmethod
    def dashboard_insights(user_id: str) -> str:
        return f"dashboard:insights:{user_id}"

    @staticmethod
    def marketing_strategies(user_id: str, budget: Optional[Number] = None) -> str:
        budget_str = _format_number(budget) if budget is not None else "all"
        return f"marketing:strategies:{user_id}:{budget_str}"

    @staticmethod
    def content_suggestions(user_id: str, count: int) -> str:
        return f"marketing:content:{user_id}:{count}"

    @staticmethod
    def sentiment_analysis(feedback_hash: str) -> str:
        return f"marketing:sentiment:{feedback_hash}"

    @staticmethod
    def dashboard_pattern(user_id: str) -> str:
        """Glob matching the user's dashboard sub-namespaces (metrics, trends, insights)."""
        return f"dashboard:*:{user_id}*"

    @staticmethod
    def marketing_pattern(user_id: str) -> str:
        return f"marketing:*:{user_id}*"


def feedback_hash(texts: Iterable[str]) -> str:
    """Order-insensitive identifier for a set of feedback texts."""
    joined = "|".join(sorted(texts))
    return hashlib.md5(joined.encode("utf-8")).hexdigest()


class CacheTTL:
    """Cache lifetimes in seconds."""

    DASHBOARD_DATA = 5 * 60
    MARKETING_STRATEGIES = 60 * 60
    SENTIMENT_ANALYSIS = 24 * 60 * 60
    CONTENT_SUGGESTIONS = 60 * 60
