"""
Validation Layer

DESIGN DECISION: Validation happens BEFORE anything is mutated.

FORM VALIDATION (TransactionValidator):
- Amount, category, date and description checks on a new transaction
- Balance check for expenses
- Budget limit checks

IMPORT VALIDATION (validate_import_payload):
- Structural checks over a whole imported document
- Every problem is collected, not just the first one
- Either the whole payload validates or nothing is applied

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can show them to the user.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from moneymate.models.transaction import (
    EXPENSE_CATEGORIES,
    Number,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    categories_for,
    normalize_category,
    to_decimal,
)


MAX_DESCRIPTION_LENGTH = 200


class TransactionValidationError(Exception):
    """A transaction or budget failed form validation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.messages) or "Validation failed")


class ImportValidationError(Exception):
    """An import payload failed validation; nothing was applied."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__(f"Import rejected: {len(problems)} problem(s)")


# =============================================================================
# FORM VALIDATION
# =============================================================================

class TransactionValidator:
    """
    Validates user input before it reaches the ledger.

    The ledger itself never applies business rules; this class is the
    gate in front of it.
    """

    def validate(
        self,
        tx_type: TransactionType,
        amount: Optional[Number],
        category: Optional[str],
        tx_date: Optional[dt.date],
        description: Optional[str] = "",
        balance: Number = 0,
        today: Optional[dt.date] = None,
    ) -> ValidationResult:
        """
        Check a prospective transaction.

        Args:
            tx_type: income or expense
            amount: positive amount as entered
            category: category name (normalized before checking)
            tx_date: calendar date of the transaction
            description: free text, up to 200 characters
            balance: current ledger balance, for the expense check
            today: reference date for the future-date check

        Returns:
            ValidationResult with all issues found
        """
        issues = []
        today = today or dt.date.today()

        try:
            tx_type = TransactionType(tx_type)
        except ValueError:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Unknown transaction type: {tx_type}",
                severity="error",
                suggested_fix="Choose either income or expense",
            ))
            tx_type = None

        parsed_amount = self._check_amount(amount, issues)

        normalized = normalize_category(category or "")
        if not normalized:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
                severity="error",
                suggested_fix="Pick a category from the list",
            ))
        elif tx_type is not None and normalized not in categories_for(tx_type):
            issues.append(ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message=f"'{normalized}' is not a valid {tx_type.value} category",
                severity="error",
                suggested_fix="Pick a category from the list",
            ))

        if tx_date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
                severity="error",
            ))
        elif tx_date > today:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({tx_date}) is in the future",
                severity="error",
                suggested_fix="Use today's date or an earlier one",
            ))

        if description and len(description.strip()) > MAX_DESCRIPTION_LENGTH:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
                severity="error",
                suggested_fix="Shorten the description",
            ))

        if (
            tx_type == TransactionType.EXPENSE
            and parsed_amount is not None
            and parsed_amount > to_decimal(balance)
        ):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="insufficient_balance",
                message=f"Insufficient balance: expense of {parsed_amount} exceeds balance of {to_decimal(balance)}",
                severity="error",
                suggested_fix="Record the matching income first",
            ))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def validate_budget(self, category: Optional[str], limit: Optional[Number]) -> ValidationResult:
        """Budgets apply to expense categories and need a positive limit."""
        issues = []

        normalized = normalize_category(category or "")
        if normalized not in EXPENSE_CATEGORIES:
            issues.append(ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message=f"'{normalized or category}' is not an expense category",
                severity="error",
                suggested_fix="Budgets can only be set on expense categories",
            ))

        self._check_amount(limit, issues, field="limit", label="Budget limit")

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    @staticmethod
    def _check_amount(
        value: Optional[Number],
        issues: list[ValidationIssue],
        field: str = "amount",
        label: str = "Amount",
    ) -> Optional[Decimal]:
        if value is None or (isinstance(value, str) and not value.strip()):
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{label} is required",
                severity="error",
            ))
            return None
        try:
            parsed = to_decimal(value)
        except ValueError:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{label} must be a number",
                severity="error",
            ))
            return None
        if parsed <= 0:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{label} must be greater than zero",
                severity="error",
                suggested_fix="Enter a positive amount",
            ))
            return None
        return parsed

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Summary of a validation result for display in the UI.
        """
        if result.is_valid and not result.issues:
            return "✅ All checks passed."

        lines = []
        errors = [issue for issue in result.issues if issue.severity == "error"]
        warnings = [issue for issue in result.issues if issue.severity == "warning"]

        if errors:
            lines.append("❌ Please fix the following:")
            for issue in errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for issue in warnings:
                lines.append(f"   • {issue.message}")

        return "\n".join(lines)


# =============================================================================
# IMPORT VALIDATION
# =============================================================================

class ImportedTransaction(BaseModel):
    """A transaction from an import file; the timestamp may be missing."""

    transaction: Transaction
    has_timestamp: bool


class ImportPayload(BaseModel):
    """A fully validated import document, ready to apply."""

    transactions: list[ImportedTransaction] = Field(default_factory=list)
    budgets: dict[str, Decimal] = Field(default_factory=dict)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else first.get("msg", str(error))


def validate_import_payload(payload: Any) -> ImportPayload:
    """
    Validate an import document without touching any state.

    Expected shape: {"transactions": [...], "budgets": {...}}, both keys
    optional. Raises ImportValidationError listing every problem found.
    """
    if not isinstance(payload, dict):
        raise ImportValidationError(["Import data must be a JSON object"])

    problems = []
    parsed_transactions = []
    parsed_budgets = {}

    raw_transactions = payload.get("transactions", [])
    if raw_transactions is None:
        raw_transactions = []
    if not isinstance(raw_transactions, list):
        problems.append("'transactions' must be a list")
        raw_transactions = []

    for index, item in enumerate(raw_transactions):
        label = f"Transaction {index + 1}"
        if not isinstance(item, dict):
            problems.append(f"{label}: must be an object")
            continue

        if item.get("type") not in (TransactionType.INCOME.value, TransactionType.EXPENSE.value):
            problems.append(f"{label}: type must be 'income' or 'expense'")
            continue
        missing = [name for name in ("amount", "category", "date") if _is_blank(item.get(name))]
        if missing:
            problems.append(f"{label}: missing {', '.join(missing)}")
            continue

        has_timestamp = item.get("timestamp") is not None
        data = dict(item)
        if not has_timestamp:
            data["timestamp"] = 0
        try:
            parsed_transactions.append(ImportedTransaction(
                transaction=Transaction.model_validate(data),
                has_timestamp=has_timestamp,
            ))
        except ValidationError as e:
            problems.append(f"{label}: {_first_error(e)}")

    raw_budgets = payload.get("budgets", {})
    if raw_budgets is None:
        raw_budgets = {}
    if not isinstance(raw_budgets, dict):
        problems.append("'budgets' must be an object of category -> limit")
        raw_budgets = {}

    for category, limit in raw_budgets.items():
        normalized = normalize_category(str(category))
        if not normalized:
            problems.append("Budget with an empty category name")
            continue
        try:
            parsed = to_decimal(limit)
        except ValueError:
            problems.append(f"Budget '{normalized}': limit must be a number")
            continue
        if parsed <= 0:
            problems.append(f"Budget '{normalized}': limit must be greater than zero")
            continue
        parsed_budgets[normalized] = parsed

    if problems:
        raise ImportValidationError(problems)

    return ImportPayload(transactions=parsed_transactions, budgets=parsed_budgets)
