"""Ledger package: transactions, undo/redo history and budgets."""

from moneymate.ledger.budgets import BUDGETS_KEY, BudgetRegistry
from moneymate.ledger.history import HistoryLog
from moneymate.ledger.transactions import TRANSACTIONS_KEY, Ledger, add_months

__all__ = [
    "BUDGETS_KEY",
    "BudgetRegistry",
    "HistoryLog",
    "Ledger",
    "TRANSACTIONS_KEY",
    "add_months",
]
