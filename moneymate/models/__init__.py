"""
Data Models Package

This package contains all Pydantic models used in MoneyMate.
All data flowing through the system must conform to these schemas.
"""

from moneymate.models.transaction import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    LedgerStats,
    Transaction,
    TransactionType,
    TrendPoint,
    ValidationIssue,
    ValidationResult,
    Number,
    categories_for,
    normalize_category,
    format_decimal,
    to_decimal,
)
from moneymate.models.budget import (
    AlertSeverity,
    BudgetAlert,
    BudgetItem,
    BudgetReport,
    BudgetStatus,
)
from moneymate.models.health import (
    BreakdownDetail,
    HealthBreakdown,
    HealthScore,
)
from moneymate.models.session import (
    GUEST_ID_PREFIX,
    Session,
    UserAccount,
)
from moneymate.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "LedgerStats",
    "Transaction",
    "TransactionType",
    "TrendPoint",
    "ValidationIssue",
    "ValidationResult",
    "Number",
    "categories_for",
    "normalize_category",
    "format_decimal",
    "to_decimal",
    # Budget models
    "AlertSeverity",
    "BudgetAlert",
    "BudgetItem",
    "BudgetReport",
    "BudgetStatus",
    # Health models
    "BreakdownDetail",
    "HealthBreakdown",
    "HealthScore",
    # Session models
    "GUEST_ID_PREFIX",
    "Session",
    "UserAccount",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
