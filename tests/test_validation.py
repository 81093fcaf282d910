"""
Tests for form validation and import payload validation.
"""

import pytest
from datetime import timedelta
from decimal import Decimal

from moneymate.models.transaction import TransactionType, ValidationResult
from moneymate.validation import (
    ImportValidationError,
    TransactionValidator,
    validate_import_payload,
)

from helpers import TODAY


@pytest.fixture
def validator():
    return TransactionValidator()


def issue_types(result: ValidationResult) -> set[tuple[str, str]]:
    return {(issue.field, issue.issue_type) for issue in result.issues}


class TestTransactionValidator:
    """Tests for TransactionValidator.validate."""

    def test_valid_income(self, validator):
        result = validator.validate("income", "5000", "Salary", TODAY, today=TODAY)
        assert result.is_valid
        assert result.issues == []

    def test_expense_within_balance(self, validator):
        result = validator.validate(
            TransactionType.EXPENSE, 100, "food", TODAY, balance=100, today=TODAY
        )
        assert result.is_valid

    def test_expense_exceeding_balance(self, validator):
        result = validator.validate("expense", "100.01", "food", TODAY, balance=100, today=TODAY)
        assert not result.is_valid
        assert ("amount", "insufficient_balance") in issue_types(result)

    def test_income_ignores_balance(self, validator):
        result = validator.validate("income", 1000, "gift", TODAY, balance=-500, today=TODAY)
        assert result.is_valid

    @pytest.mark.parametrize("amount", [None, "", "   ", "abc", 0, "-5", "nan", True])
    def test_bad_amounts(self, validator, amount):
        result = validator.validate("income", amount, "salary", TODAY, today=TODAY)
        assert not result.is_valid
        assert any(issue.field == "amount" for issue in result.issues)

    def test_category_must_match_type(self, validator):
        result = validator.validate("income", 10, "food", TODAY, today=TODAY)
        assert ("category", "invalid_value") in issue_types(result)

    def test_missing_category(self, validator):
        result = validator.validate("expense", 10, "  ", TODAY, balance=100, today=TODAY)
        assert ("category", "missing") in issue_types(result)

    def test_future_date(self, validator):
        result = validator.validate("income", 10, "salary", TODAY + timedelta(days=1), today=TODAY)
        assert ("date", "future_date") in issue_types(result)

    def test_missing_date(self, validator):
        result = validator.validate("income", 10, "salary", None, today=TODAY)
        assert ("date", "missing") in issue_types(result)

    def test_description_limit(self, validator):
        assert validator.validate("income", 10, "salary", TODAY, "x" * 200, today=TODAY).is_valid
        result = validator.validate("income", 10, "salary", TODAY, "x" * 201, today=TODAY)
        assert ("description", "too_long") in issue_types(result)

    def test_unknown_type(self, validator):
        result = validator.validate("transfer", 10, "food", TODAY, today=TODAY)
        assert ("type", "invalid_value") in issue_types(result)

    def test_collects_every_issue(self, validator):
        result = validator.validate("expense", -1, "", TODAY + timedelta(days=3), today=TODAY)
        assert result.error_count == 3


class TestBudgetValidation:
    """Tests for TransactionValidator.validate_budget."""

    def test_valid_budget(self, validator):
        assert validator.validate_budget("Food", "250").is_valid

    def test_income_category_rejected(self, validator):
        result = validator.validate_budget("salary", 100)
        assert ("category", "invalid_value") in issue_types(result)

    def test_non_positive_limit(self, validator):
        result = validator.validate_budget("food", 0)
        assert ("limit", "invalid_value") in issue_types(result)


class TestSummary:
    """Tests for the user-facing summary text."""

    def test_all_passed(self, validator):
        result = validator.validate("income", 10, "salary", TODAY, today=TODAY)
        assert "All checks passed" in validator.get_user_friendly_summary(result)

    def test_lists_errors_with_fixes(self, validator):
        result = validator.validate("income", 10, "food", TODAY, today=TODAY)
        summary = validator.get_user_friendly_summary(result)
        assert "Please fix the following" in summary
        assert "'food' is not a valid income category" in summary
        assert "Pick a category from the list" in summary


class TestImportPayload:
    """Tests for validate_import_payload."""

    def test_valid_payload(self):
        payload = validate_import_payload({
            "transactions": [
                {"type": "income", "amount": 5000, "category": "salary",
                 "date": "2024-06-01", "timestamp": 1717200000000},
                {"type": "expense", "amount": "20.5", "category": "Food",
                 "date": "2024-06-02", "description": None},
            ],
            "budgets": {"Food": 300},
        })
        first, second = payload.transactions
        assert first.has_timestamp is True
        assert first.transaction.timestamp == 1717200000000
        assert second.has_timestamp is False
        assert second.transaction.category == "food"
        assert second.transaction.description == ""
        assert payload.budgets == {"food": Decimal("300")}

    def test_missing_keys_are_empty(self):
        payload = validate_import_payload({})
        assert payload.transactions == []
        assert payload.budgets == {}

    def test_not_an_object(self):
        with pytest.raises(ImportValidationError) as exc:
            validate_import_payload([1, 2, 3])
        assert exc.value.problems == ["Import data must be a JSON object"]

    def test_collects_every_problem(self):
        with pytest.raises(ImportValidationError) as exc:
            validate_import_payload({
                "transactions": [
                    {"type": "refund", "amount": 1, "category": "food", "date": "2024-06-01"},
                    {"type": "expense", "category": "food"},
                    "not a record",
                    {"type": "expense", "amount": -3, "category": "food", "date": "2024-06-01"},
                ],
                "budgets": {"food": 0, "rent": "lots"},
            })

        problems = exc.value.problems
        assert len(problems) == 6
        assert problems[0] == "Transaction 1: type must be 'income' or 'expense'"
        assert problems[1] == "Transaction 2: missing amount, date"
        assert problems[2] == "Transaction 3: must be an object"
        assert problems[3].startswith("Transaction 4: amount")
        assert "Budget 'food': limit must be greater than zero" in problems
        assert "Budget 'rent': limit must be a number" in problems

    def test_wrong_container_types(self):
        with pytest.raises(ImportValidationError) as exc:
            validate_import_payload({"transactions": {}, "budgets": []})
        assert len(exc.value.problems) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
