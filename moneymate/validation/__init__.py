"""Validation package: form checks and import payload checks."""

from moneymate.validation.validator import (
    ImportedTransaction,
    ImportPayload,
    ImportValidationError,
    TransactionValidationError,
    TransactionValidator,
    validate_import_payload,
)

__all__ = [
    "ImportedTransaction",
    "ImportPayload",
    "ImportValidationError",
    "TransactionValidationError",
    "TransactionValidator",
    "validate_import_payload",
]
