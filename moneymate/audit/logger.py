"""
Audit Logger

DESIGN DECISION: Every mutation of user data is logged.
This provides:
1. Traceability of what changed the ledger and budgets
2. Debugging capability when a storage write fails
3. A user-visible activity history

The audit logger:
- Is async so it fits the storage calls around it
- Gracefully handles failures (doesn't crash the app if logging fails)
- Tags every event with the session's user id
"""

from decimal import Decimal
from typing import Optional

import structlog

from moneymate.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from moneymate.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The key-value store (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        user_id: Optional[str] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            user_id: Session user stamped on every event.
        """
        self._storage = storage
        self._user_id = user_id
        self._logger = structlog.get_logger()

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        if event.user_id is None and self._user_id is not None:
            event = event.model_copy(update={"user_id": self._user_id})

        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_added(
        self,
        timestamp: int,
        tx_type: str,
        category: str,
        amount: Decimal,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            timestamp=timestamp,
            tx_type=tx_type,
            category=category,
            amount=str(amount),
        ))

    async def log_transaction_edited(self, old_timestamp: int, new_timestamp: int) -> None:
        await self.log(AuditEventBuilder.transaction_edited(
            old_timestamp=old_timestamp,
            new_timestamp=new_timestamp,
        ))

    async def log_transaction_deleted(self, timestamp: int, removed: bool) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            timestamp=timestamp,
            removed=removed,
        ))

    async def log_transaction_rejected(self, issues: list[str]) -> None:
        """Log a transaction that failed validation."""
        await self.log(AuditEventBuilder.transaction_rejected(issues=issues))

    async def log_history_moved(self, direction: str, transaction_count: int) -> None:
        await self.log(AuditEventBuilder.history_moved(
            direction=direction,
            transaction_count=transaction_count,
        ))

    async def log_recurring_processed(self, created: list[int]) -> None:
        await self.log(AuditEventBuilder.recurring_processed(created=created))

    async def log_budget_set(self, category: str, limit: Decimal) -> None:
        await self.log(AuditEventBuilder.budget_changed(category=category, limit=str(limit)))

    async def log_budget_deleted(self, category: str) -> None:
        await self.log(AuditEventBuilder.budget_changed(category=category, limit=None))

    async def log_budgets_cleared(self) -> None:
        await self.log(AuditEventBuilder.budget_changed(category=None, limit=None))

    async def log_import_applied(
        self,
        mode: str,
        transaction_count: int,
        budget_count: int,
    ) -> None:
        await self.log(AuditEventBuilder.import_applied(
            mode=mode,
            transaction_count=transaction_count,
            budget_count=budget_count,
        ))

    async def log_import_rejected(self, problems: list[str]) -> None:
        await self.log(AuditEventBuilder.import_rejected(problems=problems))

    async def log_export_generated(self, export_format: str, transaction_count: int) -> None:
        await self.log(AuditEventBuilder.export_generated(
            export_format=export_format,
            transaction_count=transaction_count,
        ))

    async def log_account_event(
        self,
        event_type: AuditEventType,
        user_id: str,
        email: Optional[str] = None,
    ) -> None:
        """Log registration, login or logout."""
        await self.log(AuditEventBuilder.account_event(
            event_type=event_type,
            user_id=user_id,
            email=email,
        ))

    async def log_storage_error(self, operation: str, error_message: str) -> None:
        """Log a storage write that failed after the in-memory change was made."""
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))
