"""
Budget-Alert Evaluator

Joins budget limits with ledger spend on the normalized category name.
Pure: no storage, no clock.
"""

import math
from decimal import Decimal
from typing import Mapping

from moneymate.models.budget import (
    AlertSeverity,
    BudgetAlert,
    BudgetItem,
    BudgetReport,
    BudgetStatus,
)
from moneymate.models.transaction import Number, normalize_category, to_decimal


DEFAULT_WARNING_THRESHOLD = 80.0


def evaluate_budgets(
    budgets: Mapping[str, Number],
    spend_by_category: Mapping[str, Number],
    warning_threshold: float = DEFAULT_WARNING_THRESHOLD,
) -> BudgetReport:
    """
    Compare every budget with what was spent in its category.

    - percentage >= 100          -> exceeded, "danger" alert
    - percentage >= threshold    -> warning, "warning" alert
    - otherwise                  -> ok, no alert

    A zero limit counts as exceeded as soon as anything is spent.
    """
    spend = {normalize_category(k): to_decimal(v) for k, v in spend_by_category.items()}

    items = []
    alerts = []
    for raw_category, raw_limit in budgets.items():
        category = normalize_category(raw_category)
        limit = to_decimal(raw_limit)
        spent = spend.get(category, Decimal("0"))

        if limit <= 0:
            percentage = 100.0 if spent > 0 else 0.0
        else:
            percentage = float(spent / limit * 100)

        if percentage >= 100:
            status = BudgetStatus.EXCEEDED
            alerts.append(BudgetAlert(
                category=category,
                severity=AlertSeverity.DANGER,
                message=f"Budget exceeded for {category}",
            ))
        elif percentage >= warning_threshold:
            status = BudgetStatus.WARNING
            alerts.append(BudgetAlert(
                category=category,
                severity=AlertSeverity.WARNING,
                message=f"{category} budget is {math.floor(percentage)}% used",
            ))
        else:
            status = BudgetStatus.OK

        items.append(BudgetItem(
            category=category,
            limit=limit,
            spent=spent,
            remaining=limit - spent,
            percentage=percentage,
            status=status,
        ))

    return BudgetReport(items=items, alerts=alerts)
