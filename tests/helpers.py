"""Builders shared by the test modules."""

import itertools
from datetime import date
from decimal import Decimal

from moneymate.models.transaction import Transaction, TransactionType
from moneymate.services.storage import InMemoryKeyValueStore, StorageError


TODAY = date(2024, 6, 15)


def make_tx(
    tx_type="expense",
    amount="100",
    category="food",
    tx_date=TODAY,
    description="",
    recurring=False,
    timestamp=1,
    series_id=None,
) -> Transaction:
    return Transaction(
        type=TransactionType(tx_type),
        amount=Decimal(str(amount)),
        category=category,
        date=tx_date,
        description=description,
        recurring=recurring,
        timestamp=timestamp,
        series_id=series_id,
    )


def counting_clock(start: int = 1_700_000_000_000):
    """A ledger clock that advances one second per reading."""
    counter = itertools.count(start, 1000)
    return lambda: next(counter)


class FailingStore(InMemoryKeyValueStore):
    """Memory store whose writes can be switched off."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False

    async def set(self, key, value):
        if self.fail_writes:
            raise StorageError("write refused")
        return await super().set(key, value)
