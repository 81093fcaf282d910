"""
Core Data Models for MoneyMate

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and export

DESIGN DECISION: Amounts are Decimal, not float. Sums over the ledger
never accumulate binary rounding error, and stored or exported amounts
are exact decimal strings ("12.50"), never JSON floats.
"""

import datetime as dt
import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)


# =============================================================================
# ENUMS AND CATEGORY VOCABULARY
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


INCOME_CATEGORIES = frozenset({
    "salary",
    "freelance",
    "investment",
    "business",
    "gift",
    "other-income",
})

EXPENSE_CATEGORIES = frozenset({
    "food",
    "transport",
    "shopping",
    "entertainment",
    "bills",
    "health",
    "education",
    "rent",
    "travel",
    "other-expense",
})

_SEPARATORS = re.compile(r"[\s_]+")


def normalize_category(value: str) -> str:
    """
    Canonical form of a category name.

    Trims, lowercases and turns runs of whitespace/underscores into a
    single hyphen: "  Other Income " -> "other-income".
    """
    return _SEPARATORS.sub("-", value.strip().lower())


Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert a stored or user-supplied number to Decimal without float noise."""
    if isinstance(value, bool):
        raise ValueError("Booleans are not amounts")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def format_decimal(value: Decimal) -> str:
    """Exact fixed-point text for an amount: Decimal("1E+3") -> "1000"."""
    return format(value, "f")


def categories_for(tx_type: TransactionType) -> frozenset[str]:
    """Get the category vocabulary for a transaction type."""
    if TransactionType(tx_type) == TransactionType.INCOME:
        return INCOME_CATEGORIES
    return EXPENSE_CATEGORIES


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense record.

    Immutable: an edit is a delete of the old timestamp followed by an
    add, so history snapshots can share instances safely.

    `timestamp` is the unique key within a ledger (epoch milliseconds).
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount; direction comes from `type`"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=50,
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction (no time of day)"
    )
    description: str = Field(
        default="",
        max_length=200,
    )
    recurring: bool = Field(
        default=False,
        description="Template for monthly regeneration"
    )
    timestamp: int = Field(
        ...,
        ge=0,
        description="Unique id and creation instant in epoch milliseconds"
    )
    series_id: Optional[int] = Field(
        default=None,
        ge=0,
        description="Timestamp of the recurring template this row was cloned from"
    )

    @field_validator('category')
    @classmethod
    def normalize(cls, v: str) -> str:
        normalized = normalize_category(v)
        if not normalized:
            raise ValueError("Category cannot be empty")
        return normalized

    @field_validator('description', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator('timestamp', mode='before')
    @classmethod
    def floor_legacy_timestamp(cls, v: Any) -> Any:
        """Older exports carry a fractional tie-breaker; keep the millisecond."""
        if isinstance(v, float):
            return int(v)
        return v

    @field_serializer('amount', when_used='json')
    def amount_as_text(self, v: Decimal) -> str:
        return format_decimal(v)

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def series(self) -> int:
        """Recurring lineage: the originating template's timestamp."""
        return self.series_id if self.series_id is not None else self.timestamp

    def to_storage(self) -> dict:
        """Convert to the JSON-compatible dict persisted by the ledger."""
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# AGGREGATE MODELS
# =============================================================================

class LedgerStats(BaseModel):
    """Totals over the live ledger."""
    model_config = ConfigDict(frozen=True)

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class TrendPoint(BaseModel):
    """Total expense for one calendar day."""
    model_config = ConfigDict(frozen=True)

    date: dt.date
    amount: Decimal = Decimal("0")


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'insufficient_balance')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of validating a transaction or budget before it is applied."""

    validated_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def messages(self) -> list[str]:
        return [issue.message for issue in self.issues]
