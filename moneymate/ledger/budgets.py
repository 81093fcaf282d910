"""
Budget Registry

A flat `category -> monthly limit` map. It shares nothing with the
ledger except the category string space: a budget may name a category
no transaction uses yet, and vice versa.
"""

import asyncio
from decimal import Decimal
from typing import Mapping, Optional

import structlog

from moneymate.models.transaction import Number, format_decimal, normalize_category, to_decimal
from moneymate.services.storage import KeyValueStoreInterface, SerializationError


BUDGETS_KEY = "budgets"

logger = structlog.get_logger(__name__)


class BudgetRegistry:
    """
    Per-category monthly limits.

    Every mutating call persists the entire map under one key.
    """

    def __init__(self, store: KeyValueStoreInterface):
        self._store = store
        self._budgets: dict[str, Decimal] = {}
        self._lock = asyncio.Lock()

    async def load(self) -> int:
        async with self._lock:
            raw = await self._store.get(BUDGETS_KEY) or {}
            if not isinstance(raw, dict):
                raise SerializationError(f"Stored '{BUDGETS_KEY}' is not a mapping")
            try:
                self._budgets = {
                    normalize_category(category): to_decimal(limit)
                    for category, limit in raw.items()
                }
            except ValueError as e:
                raise SerializationError(f"Stored budget is malformed: {e}")
            logger.info("budgets_loaded", count=len(self._budgets))
            return len(self._budgets)

    async def _persist(self) -> None:
        await self._store.set(
            BUDGETS_KEY,
            {category: format_decimal(limit) for category, limit in self._budgets.items()},
        )

    async def set(self, category: str, limit: Number) -> None:
        async with self._lock:
            self._budgets[normalize_category(category)] = to_decimal(limit)
            await self._persist()

    def get(self, category: str) -> Optional[Decimal]:
        return self._budgets.get(normalize_category(category))

    def get_all(self) -> dict[str, Decimal]:
        return dict(self._budgets)

    async def delete(self, category: str) -> bool:
        async with self._lock:
            if self._budgets.pop(normalize_category(category), None) is None:
                return False
            await self._persist()
            return True

    async def clear(self) -> None:
        async with self._lock:
            self._budgets = {}
            await self._persist()

    async def replace_all(self, budgets: Mapping[str, Number]) -> None:
        async with self._lock:
            self._budgets = {
                normalize_category(category): to_decimal(limit)
                for category, limit in budgets.items()
            }
            await self._persist()

    def __len__(self) -> int:
        return len(self._budgets)

    def __contains__(self, category: str) -> bool:
        return normalize_category(category) in self._budgets
