"""
Transaction Ledger

DESIGN DECISION: The ledger is the single source of truth.
- It owns the live list of transactions and its undo/redo history
- Every mutation persists the whole list under one storage key
- It never applies business rules: validation happens before `add`
- Aggregations are recomputed from the live list on every call

Public operations are serialized with an asyncio.Lock, so two
overlapping calls against one ledger never interleave their writes.
"""

import asyncio
import calendar
import time
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional

import structlog
from pydantic import ValidationError

from moneymate.ledger.history import HistoryLog
from moneymate.models.transaction import (
    LedgerStats,
    Transaction,
    TransactionType,
    TrendPoint,
)
from moneymate.services.storage import KeyValueStoreInterface, SerializationError


TRANSACTIONS_KEY = "transactions"
TREND_DAYS = 7

logger = structlog.get_logger(__name__)


def add_months(start: date, months: int = 1) -> date:
    """
    Calendar-month arithmetic with the day clamped to the target month.

    Jan 31 + 1 month -> Feb 28 (or 29), never early March.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _now_ms() -> int:
    return int(time.time() * 1000)


class Ledger:
    """
    Ordered collection of transactions with linear undo/redo.

    Usage:
        ledger = Ledger(store)
        await ledger.load()
        await ledger.add(tx)
        ledger.get_stats()
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        history_limit: int = 20,
        clock: Callable[[], int] = _now_ms,
    ):
        self._store = store
        self._transactions: list[Transaction] = []
        self._history = HistoryLog(history_limit)
        self._history.reset(self._transactions)
        self._lock = asyncio.Lock()
        self._clock = clock

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def load(self) -> int:
        """
        Load transactions from storage and reset the history.

        Returns the number of transactions loaded.
        """
        async with self._lock:
            raw = await self._store.get(TRANSACTIONS_KEY) or []
            if not isinstance(raw, list):
                raise SerializationError(
                    f"Stored '{TRANSACTIONS_KEY}' is not a list"
                )
            try:
                self._transactions = [Transaction.model_validate(item) for item in raw]
            except ValidationError as e:
                raise SerializationError(f"Stored transaction is malformed: {e}")
            self._history.reset(self._transactions)
            logger.info("ledger_loaded", count=len(self._transactions))
            return len(self._transactions)

    async def _persist(self) -> None:
        await self._store.set(
            TRANSACTIONS_KEY,
            [tx.to_storage() for tx in self._transactions],
        )

    async def _commit(self, transactions: list[Transaction]) -> None:
        """Swap in a new live list, record it in history, then persist."""
        self._transactions = transactions
        self._history.record(self._transactions)
        await self._persist()

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def add(self, tx: Transaction) -> None:
        """Append a transaction. No business validation happens here."""
        async with self._lock:
            await self._commit(self._transactions + [tx])

    async def delete(self, timestamp: int) -> bool:
        """
        Remove every transaction with this timestamp.

        Deleting an unknown timestamp is a silent no-op and adds no
        history step. Returns True if something was removed.
        """
        async with self._lock:
            remaining = [tx for tx in self._transactions if tx.timestamp != timestamp]
            if len(remaining) == len(self._transactions):
                return False
            await self._commit(remaining)
            return True

    async def replace_all(self, transactions: Iterable[Transaction]) -> None:
        """Replace the whole live set as one undoable step."""
        async with self._lock:
            await self._commit(list(transactions))

    async def process_recurring(self, today: Optional[date] = None) -> list[Transaction]:
        """
        Materialize recurring transactions that are due.

        Each recurring template starts its own series, and every copy made
        from it carries the template's timestamp as `series_id`. Only the
        most recent occurrence of a series is considered: when it plus one
        calendar month is on or before `today`, a copy dated `today` is
        added. Templates with identical fields stay separate series.

        The candidates come from a snapshot taken before any additions,
        and all copies land in a single history step.
        """
        today = today or date.today()
        async with self._lock:
            latest: dict[int, Transaction] = {}
            for tx in tuple(self._transactions):
                if not tx.recurring:
                    continue
                if tx.series not in latest or tx.date > latest[tx.series].date:
                    latest[tx.series] = tx

            taken = {tx.timestamp for tx in self._transactions}
            created = []
            for tx in latest.values():
                if add_months(tx.date) > today:
                    continue
                timestamp = self.unique_timestamp(taken)
                taken.add(timestamp)
                created.append(tx.model_copy(
                    update={"date": today, "timestamp": timestamp, "series_id": tx.series}
                ))

            if created:
                await self._commit(self._transactions + created)
                logger.info("recurring_processed", created=len(created))
            return created

    # -------------------------------------------------------------------------
    # Undo / redo
    # -------------------------------------------------------------------------

    def can_undo(self) -> bool:
        return self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    async def undo(self) -> bool:
        async with self._lock:
            if not self._history.can_undo():
                return False
            self._transactions = list(self._history.undo())
            await self._persist()
            return True

    async def redo(self) -> bool:
        async with self._lock:
            if not self._history.can_redo():
                return False
            self._transactions = list(self._history.redo())
            await self._persist()
            return True

    # -------------------------------------------------------------------------
    # Reads and aggregations
    # -------------------------------------------------------------------------

    def get_all(self) -> list[Transaction]:
        """Defensive copy of the live set."""
        return list(self._transactions)

    def find(self, timestamp: int) -> Optional[Transaction]:
        for tx in self._transactions:
            if tx.timestamp == timestamp:
                return tx
        return None

    def __len__(self) -> int:
        return len(self._transactions)

    def next_timestamp(self) -> int:
        """A fresh timestamp no live transaction uses."""
        return self.unique_timestamp({tx.timestamp for tx in self._transactions})

    def unique_timestamp(self, taken: set[int]) -> int:
        """The clock reading, bumped by one until it is not in `taken`."""
        candidate = self._clock()
        while candidate in taken:
            candidate += 1
        return candidate

    def get_stats(self) -> LedgerStats:
        income = Decimal("0")
        expense = Decimal("0")
        for tx in self._transactions:
            if tx.type == TransactionType.INCOME:
                income += tx.amount
            else:
                expense += tx.amount
        return LedgerStats(income=income, expense=expense, balance=income - expense)

    def get_spending_by_category(self) -> dict[str, Decimal]:
        """Expense totals per category; categories without spend are absent."""
        spending: dict[str, Decimal] = defaultdict(Decimal)
        for tx in self._transactions:
            if tx.type == TransactionType.EXPENSE:
                spending[tx.category] += tx.amount
        return dict(spending)

    def get_spending_trend(self, today: Optional[date] = None) -> list[TrendPoint]:
        """Daily expense totals for the 7 days ending `today`, oldest first."""
        today = today or date.today()
        days = [today - timedelta(days=offset) for offset in range(TREND_DAYS - 1, -1, -1)]
        totals: dict[date, Decimal] = {day: Decimal("0") for day in days}
        for tx in self._transactions:
            if tx.type == TransactionType.EXPENSE and tx.date in totals:
                totals[tx.date] += tx.amount
        return [TrendPoint(date=day, amount=totals[day]) for day in days]
