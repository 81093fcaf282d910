"""
Tests for the key-value storage backends.
"""

import pytest
from unittest.mock import MagicMock

from moneymate.models.audit import AuditEventBuilder, AuditEventType
from moneymate.services.storage import (
    GoogleSheetsKeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    NamespacedKeyValueStore,
    SerializationError,
    StorageError,
)


class TestInMemoryStore:
    """Tests for InMemoryKeyValueStore."""

    @pytest.mark.asyncio
    async def test_set_get_remove(self, store):
        assert await store.get("missing") is None
        await store.set("budgets", {"food": 100})
        assert await store.get("budgets") == {"food": 100}
        assert await store.remove("budgets") is True
        assert await store.remove("budgets") is False

    @pytest.mark.asyncio
    async def test_values_are_copies(self, store):
        value = [1, 2]
        await store.set("list", value)
        value.append(3)
        assert await store.get("list") == [1, 2]

    @pytest.mark.asyncio
    async def test_rejects_non_json(self, store):
        with pytest.raises(SerializationError):
            await store.set("bad", {1, 2})

    @pytest.mark.asyncio
    async def test_keys_by_prefix(self, store):
        for key in ("a_1", "a_2", "b_1"):
            await store.set(key, True)
        assert await store.keys("a_") == ["a_1", "a_2"]


class TestJsonFileStore:
    """Tests for JsonFileKeyValueStore."""

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, tmp_path):
        path = tmp_path / "data" / "store.json"
        await JsonFileKeyValueStore(path).set("transactions", [{"amount": 1}])

        reopened = JsonFileKeyValueStore(path)
        assert await reopened.get("transactions") == [{"amount": 1}]
        assert await reopened.keys() == ["transactions"]

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "nothing.json")
        assert await store.get("anything") is None
        assert await store.remove("anything") is False

    @pytest.mark.asyncio
    async def test_corrupt_file(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SerializationError):
            await JsonFileKeyValueStore(path).get("transactions")

    @pytest.mark.asyncio
    async def test_non_object_document(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(SerializationError):
            await JsonFileKeyValueStore(path).keys()

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "store.json")
        await store.set("a", 1)
        await store.set("b", 2)
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]

    @pytest.mark.asyncio
    async def test_failed_replace_removes_temp_file(self, tmp_path, monkeypatch):
        path = tmp_path / "store.json"
        store = JsonFileKeyValueStore(path)
        await store.set("a", 1)

        def refuse(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("moneymate.services.storage.json_file.os.replace", refuse)
        with pytest.raises(StorageError, match="disk full"):
            await store.set("b", 2)

        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]
        assert await store.get("b") is None
        assert await store.get("a") == 1


class TestNamespacedStore:
    """Tests for NamespacedKeyValueStore."""

    @pytest.mark.asyncio
    async def test_keys_are_prefixed(self, store):
        user_store = NamespacedKeyValueStore(store, namespace="u1_")
        await user_store.set("transactions", [])
        assert await store.keys() == ["finance_tracker_u1_transactions"]
        assert await user_store.keys() == ["transactions"]
        assert await user_store.get("transactions") == []

    @pytest.mark.asyncio
    async def test_namespaces_are_isolated(self, store):
        alice = NamespacedKeyValueStore(store, namespace="alice_")
        bob = NamespacedKeyValueStore(store, namespace="bob_")
        await alice.set("budgets", {"food": 1})
        assert await bob.get("budgets") is None

    @pytest.mark.asyncio
    async def test_clear_only_touches_own_keys(self, store):
        alice = NamespacedKeyValueStore(store, namespace="alice_")
        bob = NamespacedKeyValueStore(store, namespace="bob_")
        await alice.set("transactions", [])
        await alice.set("budgets", {})
        await bob.set("budgets", {})

        assert await alice.clear() == 2
        assert await store.keys() == ["finance_tracker_bob_budgets"]


class TestAuditStorage:
    """Tests for KeyValueAuditStorage."""

    @pytest.mark.asyncio
    async def test_newest_first_and_capped(self, store):
        audit = KeyValueAuditStorage(store, max_events=3)
        for n in range(5):
            await audit.append_event(
                AuditEventBuilder.transaction_deleted(n, True, user_id="u1")
            )

        events = await audit.get_recent_events()
        assert [event.entity_id for event in events] == ["4", "3", "2"]

    @pytest.mark.asyncio
    async def test_filter_by_type(self, store):
        audit = KeyValueAuditStorage(store)
        await audit.append_event(AuditEventBuilder.transaction_deleted(1, True))
        await audit.append_event(AuditEventBuilder.storage_error("set", "disk full"))

        events = await audit.get_recent_events(event_type="storage_error")
        assert len(events) == 1
        assert events[0].event_type == AuditEventType.STORAGE_ERROR

    @pytest.mark.asyncio
    async def test_write_failure_returns_false(self):
        class BrokenStore(InMemoryKeyValueStore):
            async def set(self, key, value):
                raise StorageError("read-only")

        audit = KeyValueAuditStorage(BrokenStore())
        assert await audit.append_event(AuditEventBuilder.transaction_deleted(1, True)) is False


@pytest.fixture
def sheet():
    worksheet = MagicMock()
    worksheet.get_all_values.return_value = [
        ["key", "value_json"],
        ["finance_tracker_guest_budgets", '{"food": 100}'],
        ["finance_tracker_guest_transactions", "[]"],
    ]
    return worksheet


@pytest.fixture
def sheets_store(sheet):
    client = MagicMock()
    client.get_kv_sheet.return_value = sheet
    return GoogleSheetsKeyValueStore(client=client)


class TestGoogleSheetsStore:
    """Tests for GoogleSheetsKeyValueStore against a mocked worksheet."""

    @pytest.mark.asyncio
    async def test_get(self, sheets_store):
        assert await sheets_store.get("finance_tracker_guest_budgets") == {"food": 100}
        assert await sheets_store.get("unknown") is None

    @pytest.mark.asyncio
    async def test_set_updates_existing_row(self, sheets_store, sheet):
        await sheets_store.set("finance_tracker_guest_transactions", [{"amount": 5}])
        sheet.update_cell.assert_called_once_with(3, 2, '[{"amount": 5}]')
        sheet.append_row.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_appends_new_key(self, sheets_store, sheet):
        await sheets_store.set("finance_tracker_users", {})
        sheet.append_row.assert_called_once_with(
            ["finance_tracker_users", "{}"], value_input_option="RAW"
        )

    @pytest.mark.asyncio
    async def test_remove(self, sheets_store, sheet):
        assert await sheets_store.remove("finance_tracker_guest_budgets") is True
        sheet.delete_rows.assert_called_once_with(2)
        assert await sheets_store.remove("unknown") is False

    @pytest.mark.asyncio
    async def test_keys(self, sheets_store):
        assert await sheets_store.keys("finance_tracker_guest_b") == [
            "finance_tracker_guest_budgets"
        ]

    @pytest.mark.asyncio
    async def test_corrupt_cell(self, sheets_store, sheet):
        sheet.get_all_values.return_value = [["key", "value_json"], ["k", "{oops"]]
        with pytest.raises(SerializationError):
            await sheets_store.get("k")

    @pytest.mark.asyncio
    async def test_api_failure_is_storage_error(self, sheets_store, sheet):
        sheet.get_all_values.side_effect = RuntimeError("quota exceeded")
        with pytest.raises(StorageError):
            await sheets_store.get("finance_tracker_guest_budgets")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
