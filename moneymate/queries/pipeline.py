"""
Derived-View Pipeline

DESIGN DECISION: Views are DERIVED, never stored.
The transactions page is recomputed from the live ledger on every
render: filter, then sort, then paginate. Nothing here mutates input.
"""

import math
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from moneymate.models.transaction import Transaction, TransactionType, normalize_category


DEFAULT_PAGE_SIZE = 10


class SortOrder(str, Enum):
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    AMOUNT_DESC = "amount-desc"
    AMOUNT_ASC = "amount-asc"


class ViewQuery(BaseModel):
    """What the user asked to see on the transactions page."""
    model_config = ConfigDict(str_strip_whitespace=True)

    search: str = Field(
        default="",
        description="Case-insensitive substring of description or category"
    )
    type: Optional[TransactionType] = Field(
        default=None,
        description="Only this direction; None means all"
    )
    category: Optional[str] = Field(
        default=None,
        description="Only this category; None means all"
    )
    sort: SortOrder = SortOrder.DATE_DESC
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)

    @field_validator('category')
    @classmethod
    def normalize(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return normalize_category(v) or None


class Page(BaseModel):
    """One page of a derived view."""

    items: list[Transaction] = Field(default_factory=list)
    page: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def filter_transactions(
    transactions: Iterable[Transaction],
    search: str = "",
    tx_type: Optional[TransactionType] = None,
    category: Optional[str] = None,
) -> list[Transaction]:
    """All filters are AND-ed; an empty filter matches everything."""
    needle = search.strip().lower()
    wanted_category = normalize_category(category) if category else None

    result = []
    for tx in transactions:
        if needle and needle not in tx.description.lower() and needle not in tx.category:
            continue
        if tx_type is not None and tx.type != TransactionType(tx_type):
            continue
        if wanted_category and tx.category != wanted_category:
            continue
        result.append(tx)
    return result


def sort_transactions(
    transactions: Iterable[Transaction],
    order: SortOrder = SortOrder.DATE_DESC,
) -> list[Transaction]:
    """Stable sort; equal keys keep their ledger order."""
    order = SortOrder(order)
    if order == SortOrder.DATE_ASC:
        return sorted(transactions, key=lambda tx: tx.date)
    if order == SortOrder.AMOUNT_DESC:
        return sorted(transactions, key=lambda tx: tx.amount, reverse=True)
    if order == SortOrder.AMOUNT_ASC:
        return sorted(transactions, key=lambda tx: tx.amount)
    return sorted(transactions, key=lambda tx: tx.date, reverse=True)


def paginate(
    transactions: list[Transaction],
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Page:
    """
    Slice one page out of an already filtered and sorted list.

    Pages are 1-based. A page past the end comes back empty rather
    than raising.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    total_items = len(transactions)
    start = (page - 1) * page_size
    items = transactions[start:start + page_size] if page >= 1 else []
    return Page(
        items=items,
        page=page,
        page_size=page_size,
        total_items=total_items,
        total_pages=math.ceil(total_items / page_size),
    )


def apply_view(transactions: Iterable[Transaction], query: ViewQuery) -> Page:
    filtered = filter_transactions(
        transactions,
        search=query.search,
        tx_type=query.type,
        category=query.category,
    )
    return paginate(
        sort_transactions(filtered, query.sort),
        page=query.page,
        page_size=query.page_size,
    )
