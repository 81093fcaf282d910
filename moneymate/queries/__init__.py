"""Derived views over the ledger: filter, sort, paginate."""

from moneymate.queries.pipeline import (
    DEFAULT_PAGE_SIZE,
    Page,
    SortOrder,
    ViewQuery,
    apply_view,
    filter_transactions,
    paginate,
    sort_transactions,
)

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "Page",
    "SortOrder",
    "ViewQuery",
    "apply_view",
    "filter_transactions",
    "paginate",
    "sort_transactions",
]
