"""
Main Orchestrator for MoneyMate

This module ties together all the components and defines the
end-to-end flows for:
1. Recording transactions (validate → timestamp → add → audit)
2. Budgets and the reports derived from them
3. Recurring processing, gated to once per check interval
4. Export and all-or-nothing import

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the ledger without passing validation
- An import is validated completely before anything is applied
- A failed storage write never loses the in-memory change; the caller
  is told the write may not be durable
- Every mutation is audited

The session is passed in explicitly. There is no global current user.
"""

import json
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Awaitable, Optional

import structlog
from pydantic import BaseModel, Field

from moneymate.analytics import FinancialHealthScorer, evaluate_budgets
from moneymate.audit import AuditLogger
from moneymate.auth import AuthService
from moneymate.config import AppSettings, get_settings
from moneymate.ledger import BudgetRegistry, Ledger
from moneymate.models.audit import AuditEvent
from moneymate.models.budget import BudgetReport
from moneymate.models.health import HealthScore
from moneymate.models.session import Session
from moneymate.models.transaction import (
    Number,
    Transaction,
    TransactionType,
    normalize_category,
    to_decimal,
)
from moneymate.queries import Page, ViewQuery, apply_view
from moneymate.services.exchange import merge_transactions, parse_csv, to_csv, to_json
from moneymate.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStoreInterface,
    NamespacedKeyValueStore,
    StorageError,
)
from moneymate.validation import (
    ImportValidationError,
    TransactionValidationError,
    TransactionValidator,
    validate_import_payload,
)


LAST_RECURRING_CHECK_KEY = "lastRecurringCheck"
IMPORT_MODES = ("merge", "replace")

logger = structlog.get_logger(__name__)


class TransactionNotFoundError(Exception):
    """The transaction being edited no longer exists."""
    pass


class OperationResult(BaseModel):
    """
    Outcome of a facade mutation.

    `persisted` is False when the change was applied in memory but the
    storage write failed; the change may or may not survive a reload.
    """

    success: bool = True
    persisted: bool = True
    message: str = ""
    transaction: Optional[Transaction] = None
    created: list[Transaction] = Field(default_factory=list)


class FinanceTracker:
    """
    One user's finances: ledger, budgets and the views over them.

    Usage:
        tracker = FinanceTracker(session, store)
        await tracker.load()
        await tracker.add_transaction("income", 1000, "salary", date.today())
        tracker.budget_report()
    """

    def __init__(
        self,
        session: Session,
        store: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        ledger: Optional[Ledger] = None,
    ):
        self._session = session
        self._store = store
        self._settings = settings or get_settings().app
        self._audit = audit_logger or AuditLogger(user_id=session.user_id)
        self.ledger = ledger or Ledger(store, history_limit=self._settings.history_limit)
        self.budgets = BudgetRegistry(store)
        self.validator = TransactionValidator()
        self.scorer = FinancialHealthScorer()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def settings(self) -> AppSettings:
        return self._settings

    async def load(self) -> tuple[int, int]:
        """
        Load ledger and budgets from storage.

        Returns (transaction_count, budget_count).

        Raises:
            StorageError: the stored data could not be read; the failure
                is audited before it propagates
        """
        try:
            transactions = await self.ledger.load()
            budgets = await self.budgets.load()
        except StorageError as e:
            logger.error("tracker_load_failed", user_id=self._session.user_id, error=str(e))
            await self._audit.log_error(
                "load_failed", str(e), {"error_class": type(e).__name__}
            )
            raise
        logger.info(
            "tracker_loaded",
            user_id=self._session.user_id,
            transactions=transactions,
            budgets=budgets,
        )
        return transactions, budgets

    async def _persisting(self, operation: str, action: Awaitable[Any]) -> tuple[bool, Any]:
        """
        Await a ledger or registry call, absorbing storage failures.

        Returns (persisted, value). The in-memory change stays applied
        either way.
        """
        try:
            return True, await action
        except StorageError as e:
            logger.error("storage_write_failed", operation=operation, error=str(e))
            await self._audit.log_storage_error(operation, str(e))
            return False, None

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _validate_or_raise(
        self,
        tx_type: TransactionType,
        amount: Number,
        category: str,
        tx_date: date,
        description: str,
        balance: Decimal,
        today: Optional[date],
    ):
        result = self.validator.validate(
            tx_type=tx_type,
            amount=amount,
            category=category,
            tx_date=tx_date,
            description=description,
            balance=balance,
            today=today,
        )
        if not result.is_valid:
            raise TransactionValidationError(result)
        return result

    async def add_transaction(
        self,
        tx_type: TransactionType,
        amount: Number,
        category: str,
        tx_date: date,
        description: str = "",
        recurring: bool = False,
        today: Optional[date] = None,
    ) -> OperationResult:
        """
        Validate and record a new transaction.

        Raises:
            TransactionValidationError: nothing was recorded
        """
        try:
            self._validate_or_raise(
                tx_type, amount, category, tx_date, description,
                self.ledger.get_stats().balance, today,
            )
        except TransactionValidationError as e:
            await self._audit.log_transaction_rejected(e.result.messages)
            raise

        tx = Transaction(
            type=tx_type,
            amount=to_decimal(amount),
            category=category,
            date=tx_date,
            description=description or "",
            recurring=recurring,
            timestamp=self.ledger.next_timestamp(),
        )
        persisted, _ = await self._persisting("add_transaction", self.ledger.add(tx))
        await self._audit.log_transaction_added(tx.timestamp, tx.type.value, tx.category, tx.amount)
        return OperationResult(
            persisted=persisted,
            message="Transaction added",
            transaction=tx,
        )

    async def edit_transaction(
        self,
        timestamp: int,
        tx_type: TransactionType,
        amount: Number,
        category: str,
        tx_date: date,
        description: str = "",
        recurring: bool = False,
        today: Optional[date] = None,
    ) -> OperationResult:
        """
        Replace a transaction with an edited copy.

        The old record is removed and the edited one appended with a fresh
        timestamp, as a single undoable step. The balance check ignores
        the transaction being replaced. A recurring edit stays in its series.

        Raises:
            TransactionNotFoundError: the transaction vanished meanwhile
            TransactionValidationError: nothing was changed
        """
        old = self.ledger.find(timestamp)
        if old is None:
            raise TransactionNotFoundError(f"No transaction with timestamp {timestamp}")

        balance = self.ledger.get_stats().balance
        balance += old.amount if old.is_expense else -old.amount
        try:
            self._validate_or_raise(
                tx_type, amount, category, tx_date, description, balance, today,
            )
        except TransactionValidationError as e:
            await self._audit.log_transaction_rejected(e.result.messages)
            raise

        remaining = [tx for tx in self.ledger.get_all() if tx.timestamp != timestamp]
        edited = Transaction(
            type=tx_type,
            amount=to_decimal(amount),
            category=category,
            date=tx_date,
            description=description or "",
            recurring=recurring,
            timestamp=self.ledger.unique_timestamp({tx.timestamp for tx in self.ledger.get_all()}),
            series_id=old.series if recurring and old.recurring else None,
        )
        persisted, _ = await self._persisting(
            "edit_transaction", self.ledger.replace_all(remaining + [edited])
        )
        await self._audit.log_transaction_edited(timestamp, edited.timestamp)
        return OperationResult(
            persisted=persisted,
            message="Transaction updated",
            transaction=edited,
        )

    async def delete_transaction(self, timestamp: int) -> OperationResult:
        """Delete by timestamp; an unknown timestamp is a no-op."""
        persisted, removed = await self._persisting(
            "delete_transaction", self.ledger.delete(timestamp)
        )
        if not persisted:
            # The write is only attempted after something was removed
            removed = True
        await self._audit.log_transaction_deleted(timestamp, bool(removed))
        return OperationResult(
            success=bool(removed),
            persisted=persisted,
            message="Transaction deleted" if removed else "Transaction not found",
        )

    async def undo(self) -> OperationResult:
        return await self._move_history("undo")

    async def redo(self) -> OperationResult:
        return await self._move_history("redo")

    async def _move_history(self, direction: str) -> OperationResult:
        move = self.ledger.undo if direction == "undo" else self.ledger.redo
        available = self.ledger.can_undo() if direction == "undo" else self.ledger.can_redo()
        if not available:
            return OperationResult(success=False, message=f"Nothing to {direction}")

        persisted, _ = await self._persisting(direction, move())
        await self._audit.log_history_moved(direction, len(self.ledger))
        return OperationResult(
            persisted=persisted,
            message=f"{direction.capitalize()} successful",
        )

    async def process_recurring_if_due(self, now: Optional[datetime] = None) -> OperationResult:
        """
        Run recurring processing at most once per check interval.

        Skips when the last check was on the same calendar day as `now`
        or less than `recurring_check_interval_hours` ago. The check
        marker is written after processing.
        """
        now = now or datetime.now()
        marker = await self._store.get(LAST_RECURRING_CHECK_KEY)
        if isinstance(marker, (int, float)):
            last = datetime.fromtimestamp(marker / 1000)
            interval = timedelta(hours=self._settings.recurring_check_interval_hours)
            if last.date() == now.date() or now - last < interval:
                return OperationResult(success=False, message="Recurring check not due")

        persisted, created = await self._persisting(
            "process_recurring", self.ledger.process_recurring(today=now.date())
        )
        if created is None:
            created = []
        marker_written, _ = await self._persisting(
            "recurring_marker",
            self._store.set(LAST_RECURRING_CHECK_KEY, int(now.timestamp() * 1000)),
        )
        if created:
            await self._audit.log_recurring_processed([tx.timestamp for tx in created])
        return OperationResult(
            persisted=persisted and marker_written,
            message=f"{len(created)} recurring transaction(s) added",
            created=created,
        )

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    async def set_budget(self, category: str, limit: Number) -> OperationResult:
        """
        Raises:
            TransactionValidationError: category is not an expense category
                or the limit is not positive
        """
        result = self.validator.validate_budget(category, limit)
        if not result.is_valid:
            raise TransactionValidationError(result)

        category = normalize_category(category)
        limit = to_decimal(limit)
        persisted, _ = await self._persisting("set_budget", self.budgets.set(category, limit))
        await self._audit.log_budget_set(category, limit)
        return OperationResult(persisted=persisted, message=f"Budget set for {category}")

    async def delete_budget(self, category: str) -> OperationResult:
        persisted, removed = await self._persisting(
            "delete_budget", self.budgets.delete(category)
        )
        if not persisted:
            removed = True
        if removed:
            await self._audit.log_budget_deleted(normalize_category(category))
        return OperationResult(
            success=bool(removed),
            persisted=persisted,
            message="Budget deleted" if removed else "No budget for that category",
        )

    async def clear_budgets(self) -> OperationResult:
        """Drop every budget limit in one step."""
        persisted, _ = await self._persisting("clear_budgets", self.budgets.clear())
        await self._audit.log_budgets_cleared()
        return OperationResult(persisted=persisted, message="All budgets cleared")

    def budget_report(self) -> BudgetReport:
        return evaluate_budgets(
            self.budgets.get_all(),
            self.ledger.get_spending_by_category(),
            warning_threshold=self._settings.budget_warning_threshold,
        )

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def health_score(
        self,
        savings_balance: Optional[Number] = None,
        today: Optional[date] = None,
    ) -> HealthScore:
        """
        Score the current ledger.

        Without an explicit savings balance, the ledger balance (floored
        at zero) stands in for savings.
        """
        stats = self.ledger.get_stats()
        if savings_balance is None:
            savings_balance = max(stats.balance, Decimal("0"))
        return self.scorer.calculate(
            income=stats.income,
            expense=stats.expense,
            budgets=self.budgets.get_all(),
            spend_by_category=self.ledger.get_spending_by_category(),
            transactions=self.ledger.get_all(),
            savings_balance=savings_balance,
            today=today,
        )

    def view(self, query: Optional[ViewQuery] = None) -> Page:
        query = query or ViewQuery(page_size=self._settings.page_size)
        return apply_view(self.ledger.get_all(), query)

    async def recent_activity(self, limit: int = 20) -> list[AuditEvent]:
        """Newest audit events for this session, if an audit store is wired."""
        if self._audit.storage is None:
            return []
        return await self._audit.storage.get_recent_events(limit=limit)

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    async def export_json(self) -> str:
        transactions = self.ledger.get_all()
        await self._audit.log_export_generated("json", len(transactions))
        return to_json(transactions, self.budgets.get_all())

    async def export_csv(self) -> str:
        transactions = self.ledger.get_all()
        await self._audit.log_export_generated("csv", len(transactions))
        return to_csv(transactions)

    async def import_data(self, payload: Any, mode: str = "merge") -> OperationResult:
        """
        Validate an import document completely, then apply it.

        `payload` is a parsed mapping or JSON text. In "merge" mode the
        transactions are appended (fresh timestamps where missing or
        colliding) and budgets upserted; "replace" clears both first.
        The ledger change is a single undoable step.

        Raises:
            ImportValidationError: nothing was changed
        """
        if mode not in IMPORT_MODES:
            raise ValueError(f"Import mode must be one of {IMPORT_MODES}")

        try:
            if isinstance(payload, (str, bytes)):
                try:
                    payload = json.loads(payload)
                except json.JSONDecodeError as e:
                    raise ImportValidationError([f"Invalid JSON: {e.msg}"])
            parsed = validate_import_payload(payload)
        except ImportValidationError as e:
            await self._audit.log_import_rejected(e.problems)
            raise

        base = self.ledger.get_all() if mode == "merge" else []
        transactions = merge_transactions(base, parsed, self.ledger.unique_timestamp)
        budgets = {**self.budgets.get_all(), **parsed.budgets} if mode == "merge" else parsed.budgets

        ledger_ok, _ = await self._persisting("import_transactions", self.ledger.replace_all(transactions))
        budgets_ok, _ = await self._persisting("import_budgets", self.budgets.replace_all(budgets))

        await self._audit.log_import_applied(mode, len(parsed.transactions), len(parsed.budgets))
        return OperationResult(
            persisted=ledger_ok and budgets_ok,
            message=(
                f"Imported {len(parsed.transactions)} transaction(s) "
                f"and {len(parsed.budgets)} budget(s)"
            ),
        )

    async def import_csv(self, text: str, mode: str = "merge") -> OperationResult:
        """Import a CSV export. Budgets are untouched in merge mode."""
        try:
            rows = parse_csv(text)
        except ImportValidationError as e:
            await self._audit.log_import_rejected(e.problems)
            raise
        return await self.import_data({"transactions": rows}, mode=mode)


# =============================================================================
# FACTORIES
# =============================================================================

def build_store(settings: Optional[AppSettings] = None) -> KeyValueStoreInterface:
    """
    Create the raw backend selected by `storage_backend`.

    Falls back to an in-memory store when Google Sheets is selected but
    not configured.
    """
    settings = settings or get_settings().app

    if settings.storage_backend == "memory":
        return InMemoryKeyValueStore()
    if settings.storage_backend == "json":
        return JsonFileKeyValueStore(settings.data_path)

    try:
        return GoogleSheetsKeyValueStore(GoogleSheetsClient())
    except Exception as e:
        # Storage not configured - continue without it
        logger.warning("google_sheets_not_configured", error=str(e))
        return InMemoryKeyValueStore()


def create_auth_service(
    settings: Optional[AppSettings] = None,
    store: Optional[KeyValueStoreInterface] = None,
) -> AuthService:
    """Auth service over the application-prefixed (not per-user) store."""
    settings = settings or get_settings().app
    base = store if store is not None else build_store(settings)
    return AuthService(
        NamespacedKeyValueStore(base, prefix=settings.storage_prefix),
        remember_me_days=settings.remember_me_days,
        min_password_length=settings.min_password_length,
    )


def create_app_components(
    session: Session,
    settings: Optional[AppSettings] = None,
    store: Optional[KeyValueStoreInterface] = None,
) -> tuple[FinanceTracker, AuthService]:
    """
    Factory function to create all application components.

    Args:
        session: Who is using the tracker; decides the storage namespace.
        settings: Application settings. Loaded from the environment if None.
        store: Raw backend to use. Built from settings if None.

    Returns:
        (tracker, auth_service)
    """
    settings = settings or get_settings().app
    base = store if store is not None else build_store(settings)

    user_store = NamespacedKeyValueStore(
        base,
        prefix=settings.storage_prefix,
        namespace=session.storage_namespace,
    )
    audit_logger = AuditLogger(KeyValueAuditStorage(user_store), user_id=session.user_id)

    tracker = FinanceTracker(
        session=session,
        store=user_store,
        audit_logger=audit_logger,
        settings=settings,
    )
    return tracker, create_auth_service(settings, base)
