"""
Budget Models

Budgets themselves are a flat `category -> limit` mapping owned by the
BudgetRegistry. These models describe the derived budget-vs-spend view.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BudgetStatus(str, Enum):
    """Where a category stands against its limit."""
    OK = "ok"
    WARNING = "warning"
    EXCEEDED = "exceeded"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    DANGER = "danger"


class BudgetItem(BaseModel):
    """Spend against one budgeted category."""
    model_config = ConfigDict(frozen=True)

    category: str
    limit: Decimal
    spent: Decimal = Decimal("0")
    remaining: Decimal
    percentage: float = Field(
        ...,
        ge=0.0,
        description="spent / limit * 100"
    )
    status: BudgetStatus


class BudgetAlert(BaseModel):
    """A budget that needs the user's attention."""
    model_config = ConfigDict(frozen=True)

    category: str
    severity: AlertSeverity
    message: str


class BudgetReport(BaseModel):
    """Output of the budget-alert evaluator."""

    items: list[BudgetItem] = Field(default_factory=list)
    alerts: list[BudgetAlert] = Field(default_factory=list)

    @property
    def has_alerts(self) -> bool:
        return bool(self.alerts)

    def item_for(self, category: str) -> BudgetItem | None:
        for item in self.items:
            if item.category == category:
                return item
        return None
