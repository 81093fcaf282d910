"""
Tests for the transaction ledger and its undo/redo history.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from moneymate.ledger import TRANSACTIONS_KEY, HistoryLog, Ledger, add_months
from moneymate.services.storage import InMemoryKeyValueStore, SerializationError, StorageError

from helpers import TODAY, FailingStore, counting_clock, make_tx


class TestAddMonths:
    """Tests for calendar-month arithmetic."""

    def test_simple_month(self):
        assert add_months(date(2024, 3, 10)) == date(2024, 4, 10)

    def test_clamps_to_month_end(self):
        assert add_months(date(2024, 1, 31)) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31)) == date(2023, 2, 28)

    def test_year_rollover(self):
        assert add_months(date(2024, 12, 15)) == date(2025, 1, 15)


class TestHistoryLog:
    """Tests for the bounded history."""

    def test_capacity_minimum(self):
        with pytest.raises(ValueError):
            HistoryLog(capacity=1)

    def test_record_discards_redo_branch(self):
        history = HistoryLog(capacity=5)
        history.reset([])
        history.record([make_tx(timestamp=1)])
        history.record([make_tx(timestamp=1), make_tx(timestamp=2)])
        history.undo()
        assert history.can_redo() is True

        history.record([make_tx(timestamp=3)])
        assert history.can_redo() is False
        assert len(history) == 3

    def test_undo_past_start_raises(self):
        history = HistoryLog()
        history.reset([])
        with pytest.raises(IndexError):
            history.undo()


class TestLedgerMutations:
    """Tests for add/delete and the balance invariant."""

    @pytest.mark.asyncio
    async def test_balance_invariant_after_each_mutation(self, ledger):
        """Balance always equals income minus expense."""
        steps = [
            make_tx("income", "1000", "salary", timestamp=1),
            make_tx("expense", "250.25", "food", timestamp=2),
            make_tx("expense", "100", "rent", timestamp=3),
        ]
        for tx in steps:
            await ledger.add(tx)
            stats = ledger.get_stats()
            assert stats.balance == stats.income - stats.expense

        await ledger.delete(2)
        stats = ledger.get_stats()
        assert stats.income == Decimal("1000")
        assert stats.expense == Decimal("100")
        assert stats.balance == Decimal("900")

    @pytest.mark.asyncio
    async def test_add_persists_whole_list(self, ledger, store):
        await ledger.add(make_tx(timestamp=1))
        await ledger.add(make_tx(timestamp=2))
        stored = await store.get(TRANSACTIONS_KEY)
        assert [item["timestamp"] for item in stored] == [1, 2]

    @pytest.mark.asyncio
    async def test_delete_unknown_is_noop_without_history_step(self, ledger):
        await ledger.add(make_tx(timestamp=1))
        assert await ledger.delete(999) is False
        assert len(ledger) == 1
        assert await ledger.undo() is True
        assert len(ledger) == 0
        assert ledger.can_undo() is False

    @pytest.mark.asyncio
    async def test_get_all_is_a_copy(self, ledger):
        await ledger.add(make_tx(timestamp=1))
        ledger.get_all().clear()
        assert len(ledger) == 1

    @pytest.mark.asyncio
    async def test_load_round_trip(self, store):
        first = Ledger(store, clock=counting_clock())
        await first.add(make_tx("income", "500", "salary", timestamp=1))
        await first.add(make_tx("expense", "20.5", "food", timestamp=2))

        second = Ledger(store)
        assert await second.load() == 2
        assert second.get_all() == first.get_all()
        assert second.can_undo() is False

    @pytest.mark.asyncio
    async def test_load_rejects_malformed_data(self):
        store = InMemoryKeyValueStore({TRANSACTIONS_KEY: {"not": "a list"}})
        with pytest.raises(SerializationError):
            await Ledger(store).load()

        store = InMemoryKeyValueStore({TRANSACTIONS_KEY: [{"type": "expense"}]})
        with pytest.raises(SerializationError):
            await Ledger(store).load()

    @pytest.mark.asyncio
    async def test_storage_failure_keeps_in_memory_change(self):
        store = FailingStore()
        ledger = Ledger(store, clock=counting_clock())
        store.fail_writes = True

        with pytest.raises(StorageError):
            await ledger.add(make_tx(timestamp=1))

        assert len(ledger) == 1
        assert ledger.can_undo() is True


class TestUndoRedo:
    """Tests for linear undo/redo."""

    @pytest.mark.asyncio
    async def test_round_trip(self, ledger):
        """Undo then redo restores the exact state."""
        a = make_tx(timestamp=1)
        b = make_tx(timestamp=2, amount="50")
        await ledger.add(a)
        await ledger.add(b)

        assert await ledger.undo() is True
        assert ledger.get_all() == [a]
        assert ledger.can_redo() is True

        assert await ledger.redo() is True
        assert ledger.get_all() == [a, b]
        assert ledger.can_redo() is False
        assert ledger.can_undo() is True

    @pytest.mark.asyncio
    async def test_undo_persists(self, ledger, store):
        await ledger.add(make_tx(timestamp=1))
        await ledger.undo()
        assert await store.get(TRANSACTIONS_KEY) == []

    @pytest.mark.asyncio
    async def test_nothing_to_undo_or_redo(self, ledger):
        assert await ledger.undo() is False
        assert await ledger.redo() is False

    @pytest.mark.asyncio
    async def test_new_mutation_clears_redo(self, ledger):
        await ledger.add(make_tx(timestamp=1))
        await ledger.undo()
        await ledger.add(make_tx(timestamp=2))
        assert ledger.can_redo() is False

    @pytest.mark.asyncio
    async def test_history_eviction(self, ledger):
        """After more than 20 mutations at most 19 undos are possible."""
        for timestamp in range(1, 26):
            await ledger.add(make_tx(timestamp=timestamp))

        undos = 0
        while await ledger.undo():
            undos += 1
        assert undos == 19
        assert len(ledger) == 6


class TestAggregations:
    """Tests for stats, category spend and the 7-day trend."""

    @pytest.mark.asyncio
    async def test_spending_by_category(self, ledger):
        await ledger.add(make_tx("expense", "100", "food", timestamp=1))
        await ledger.add(make_tx("expense", "50", "food", timestamp=2))
        await ledger.add(make_tx("income", "1000", "salary", timestamp=3))
        assert ledger.get_spending_by_category() == {"food": Decimal("150")}

    @pytest.mark.asyncio
    async def test_empty_ledger_aggregates(self, ledger):
        stats = ledger.get_stats()
        assert stats.income == stats.expense == stats.balance == Decimal("0")
        assert ledger.get_spending_by_category() == {}

    @pytest.mark.asyncio
    async def test_trend_has_seven_consecutive_days(self, ledger):
        await ledger.add(make_tx("expense", "30", tx_date=TODAY, timestamp=1))
        await ledger.add(make_tx("expense", "20", tx_date=TODAY - timedelta(days=6), timestamp=2))
        await ledger.add(make_tx("expense", "99", tx_date=TODAY - timedelta(days=7), timestamp=3))
        await ledger.add(make_tx("income", "500", "salary", tx_date=TODAY, timestamp=4))

        trend = ledger.get_spending_trend(today=TODAY)

        assert [point.date for point in trend] == [TODAY - timedelta(days=n) for n in range(6, -1, -1)]
        assert trend[0].amount == Decimal("20")
        assert trend[-1].amount == Decimal("30")
        assert sum(point.amount for point in trend[1:-1]) == 0


class TestRecurring:
    """Tests for recurring-transaction materialization."""

    @pytest.mark.asyncio
    async def test_due_template_is_cloned_once(self, ledger):
        template = make_tx("income", "5000", "salary", tx_date=date(2024, 5, 10),
                           recurring=True, timestamp=1)
        await ledger.add(template)

        created = await ledger.process_recurring(today=TODAY)
        assert len(created) == 1
        clone = created[0]
        assert clone.date == TODAY
        assert clone.amount == template.amount
        assert clone.recurring is True
        assert clone.timestamp != template.timestamp

        # The clone is now the latest occurrence and not yet due
        assert await ledger.process_recurring(today=TODAY) == []
        assert len(ledger) == 2

    @pytest.mark.asyncio
    async def test_not_due_before_a_month(self, ledger):
        await ledger.add(make_tx(tx_date=date(2024, 5, 20), recurring=True, timestamp=1))
        assert await ledger.process_recurring(today=TODAY) == []

    @pytest.mark.asyncio
    async def test_non_recurring_ignored(self, ledger):
        await ledger.add(make_tx(tx_date=date(2024, 1, 1), timestamp=1))
        assert await ledger.process_recurring(today=TODAY) == []

    @pytest.mark.asyncio
    async def test_clones_are_one_history_step(self, ledger):
        await ledger.add(make_tx("income", "100", "salary", tx_date=date(2024, 4, 1),
                                 recurring=True, timestamp=1))
        await ledger.add(make_tx("expense", "40", "bills", tx_date=date(2024, 4, 2),
                                 recurring=True, timestamp=2))

        created = await ledger.process_recurring(today=TODAY)
        assert len(created) == 2
        assert len({tx.timestamp for tx in ledger.get_all()}) == 4

        await ledger.undo()
        assert len(ledger) == 2

    @pytest.mark.asyncio
    async def test_only_latest_occurrence_of_a_series_counts(self, ledger):
        await ledger.add(make_tx(tx_date=date(2024, 3, 1), recurring=True, timestamp=1))
        await ledger.add(make_tx(tx_date=date(2024, 4, 1), recurring=True, timestamp=2,
                                 series_id=1))
        created = await ledger.process_recurring(today=TODAY)
        assert len(created) == 1
        assert created[0].series_id == 1

    @pytest.mark.asyncio
    async def test_identical_templates_are_separate_series(self, ledger):
        """Two $40 bills with the same fields each get their own copy."""
        await ledger.add(make_tx("expense", "40", "bills", tx_date=date(2024, 5, 1),
                                 recurring=True, timestamp=1))
        await ledger.add(make_tx("expense", "40", "bills", tx_date=date(2024, 5, 15),
                                 recurring=True, timestamp=2))

        created = await ledger.process_recurring(today=TODAY)
        assert len(created) == 2
        assert sorted(tx.series_id for tx in created) == [1, 2]
        assert await ledger.process_recurring(today=TODAY) == []

    @pytest.mark.asyncio
    async def test_series_survives_reload(self, store):
        first = Ledger(store, clock=counting_clock())
        await first.add(make_tx(tx_date=date(2024, 5, 1), recurring=True, timestamp=1))
        await first.process_recurring(today=TODAY)

        second = Ledger(store, clock=counting_clock(2_000_000_000_000))
        await second.load()
        assert await second.process_recurring(today=TODAY) == []
        assert len(await second.process_recurring(today=date(2024, 7, 15))) == 1


class TestTimestamps:
    """Tests for unique timestamp generation."""

    @pytest.mark.asyncio
    async def test_collisions_are_bumped(self, store):
        ledger = Ledger(store, clock=lambda: 100)
        await ledger.add(make_tx(timestamp=100))
        await ledger.add(make_tx(timestamp=101))
        assert ledger.next_timestamp() == 102
        assert ledger.unique_timestamp({100}) == 101


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
