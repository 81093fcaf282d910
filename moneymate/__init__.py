"""
MoneyMate - Source Package

A personal finance tracker that records income and expenses,
enforces per-category budgets and derives analytics from a
single transaction ledger.

DESIGN PRINCIPLES:
1. The ledger is the only source of truth
2. Every mutation is undoable
3. Validate first, mutate second
4. Analytics are pure functions over snapshots
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "MoneyMate Team"
