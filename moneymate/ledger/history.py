"""
Undo/Redo History

A bounded, linear list of full ledger snapshots plus a cursor.

Snapshots are tuples of frozen Transaction models, so consecutive
snapshots share their unchanged records instead of copying them.
"""

from typing import Sequence

from moneymate.models.transaction import Transaction


Snapshot = tuple[Transaction, ...]


class HistoryLog:
    """
    Standard linear undo/redo.

    - `record` drops every snapshot after the cursor, appends, and evicts
      the oldest snapshot once `capacity` is exceeded.
    - The cursor always points at the snapshot matching the live ledger.
    """

    def __init__(self, capacity: int = 20):
        if capacity < 2:
            raise ValueError("History capacity must be at least 2")
        self._capacity = capacity
        self._snapshots: list[Snapshot] = []
        self._index = -1

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def index(self) -> int:
        return self._index

    def __len__(self) -> int:
        return len(self._snapshots)

    def reset(self, state: Sequence[Transaction]) -> None:
        """Forget all history and seed it with `state`."""
        self._snapshots = [tuple(state)]
        self._index = 0

    def record(self, state: Sequence[Transaction]) -> None:
        del self._snapshots[self._index + 1:]
        self._snapshots.append(tuple(state))

        if len(self._snapshots) > self._capacity:
            self._snapshots.pop(0)
        else:
            self._index += 1

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._snapshots) - 1

    def undo(self) -> Snapshot:
        if not self.can_undo():
            raise IndexError("Nothing to undo")
        self._index -= 1
        return self._snapshots[self._index]

    def redo(self) -> Snapshot:
        if not self.can_redo():
            raise IndexError("Nothing to redo")
        self._index += 1
        return self._snapshots[self._index]
