"""
Audit Models for MoneyMate

Every ledger and budget mutation is logged for audit purposes.
This provides:
1. Traceability of what changed the ledger and when
2. Debugging information when storage writes fail
3. A user-visible activity history

DESIGN DECISION: Events are only ever appended; the store trims the oldest
once it holds its maximum.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_EDITED = "transaction_edited"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_REJECTED = "transaction_rejected"
    UNDO = "undo"
    REDO = "redo"
    RECURRING_PROCESSED = "recurring_processed"

    # Budgets
    BUDGET_SET = "budget_set"
    BUDGET_DELETED = "budget_deleted"
    BUDGETS_CLEARED = "budgets_cleared"

    # Import / export
    IMPORT_APPLIED = "import_applied"
    IMPORT_REJECTED = "import_rejected"
    EXPORT_GENERATED = "export_generated"

    # Accounts
    USER_REGISTERED = "user_registered"
    USER_LOGGED_IN = "user_logged_in"
    USER_LOGGED_OUT = "user_logged_out"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    One line of the activity history.
    Each facade mutation, login and storage failure produces one.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'budget', 'user')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Key of the entity (transaction timestamp, category, user id)"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Session user that triggered the event"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Flat key/values for structlog.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(tx.timestamp, "expense", "food", "12.50", user_id)
        event = AuditEventBuilder.storage_error("set", "disk full", user_id)
    """

    @staticmethod
    def transaction_added(
        timestamp: int,
        tx_type: str,
        category: str,
        amount: str,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=str(timestamp),
            user_id=user_id,
            description=f"Added {tx_type}: {category} {amount}",
            details={
                "type": tx_type,
                "category": category,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_edited(
        old_timestamp: int,
        new_timestamp: int,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_EDITED,
            entity_type="transaction",
            entity_id=str(new_timestamp),
            user_id=user_id,
            description="Transaction edited",
            details={
                "old_timestamp": old_timestamp,
                "new_timestamp": new_timestamp,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        timestamp: int,
        removed: bool,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=str(timestamp),
            user_id=user_id,
            description="Transaction deleted" if removed else "Delete of unknown transaction ignored",
            details={"removed": removed},
            is_user_action=True,
        )

    @staticmethod
    def transaction_rejected(
        issues: list[str],
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            user_id=user_id,
            description=f"Transaction rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def history_moved(
        direction: str,
        transaction_count: int,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        event_type = AuditEventType.UNDO if direction == "undo" else AuditEventType.REDO
        return AuditEvent(
            event_type=event_type,
            entity_type="ledger",
            user_id=user_id,
            description=f"{direction.capitalize()} restored {transaction_count} transactions",
            details={"transaction_count": transaction_count},
            is_user_action=True,
        )

    @staticmethod
    def recurring_processed(
        created: list[int],
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_PROCESSED,
            entity_type="ledger",
            user_id=user_id,
            description=f"Recurring processing created {len(created)} transactions",
            details={"created": created},
        )

    @staticmethod
    def budget_changed(
        category: Optional[str],
        limit: Optional[str],
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        if category is None:
            event_type = AuditEventType.BUDGETS_CLEARED
            description = "All budgets cleared"
        elif limit is None:
            event_type = AuditEventType.BUDGET_DELETED
            description = f"Budget deleted: {category}"
        else:
            event_type = AuditEventType.BUDGET_SET
            description = f"Budget set: {category} = {limit}"
        return AuditEvent(
            event_type=event_type,
            entity_type="budget",
            entity_id=category,
            user_id=user_id,
            description=description,
            details={"limit": limit},
            is_user_action=True,
        )

    @staticmethod
    def import_applied(
        mode: str,
        transaction_count: int,
        budget_count: int,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_APPLIED,
            entity_type="ledger",
            user_id=user_id,
            description=(
                f"Import ({mode}) applied {transaction_count} transactions "
                f"and {budget_count} budgets"
            ),
            details={
                "mode": mode,
                "transactions": transaction_count,
                "budgets": budget_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_rejected(
        problems: list[str],
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            user_id=user_id,
            description=f"Import rejected with {len(problems)} problems",
            details={"problems": problems[:20]},
            is_user_action=True,
        )

    @staticmethod
    def export_generated(
        export_format: str,
        transaction_count: int,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            entity_type="ledger",
            user_id=user_id,
            description=f"Exported {transaction_count} transactions as {export_format}",
            details={"format": export_format, "transactions": transaction_count},
            is_user_action=True,
        )

    @staticmethod
    def account_event(
        event_type: AuditEventType,
        user_id: str,
        email: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description=f"{event_type.value.replace('_', ' ').capitalize()}: {email or user_id}",
            details={"email": email},
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"Storage write may not be durable: {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
