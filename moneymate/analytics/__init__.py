"""Analytics: budget alerts and the financial health score."""

from moneymate.analytics.alerts import DEFAULT_WARNING_THRESHOLD, evaluate_budgets
from moneymate.analytics.health import FinancialHealthScorer

__all__ = [
    "DEFAULT_WARNING_THRESHOLD",
    "FinancialHealthScorer",
    "evaluate_budgets",
]
