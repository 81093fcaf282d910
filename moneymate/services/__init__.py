"""Services package."""

from moneymate.services.exchange import (
    merge_transactions,
    parse_csv,
    to_csv,
    to_json,
)
from moneymate.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStoreInterface,
    NamespacedKeyValueStore,
    SerializationError,
    StorageError,
)

__all__ = [
    # Exchange services
    "merge_transactions",
    "parse_csv",
    "to_csv",
    "to_json",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueAuditStorage",
    "KeyValueStoreInterface",
    "NamespacedKeyValueStore",
    "SerializationError",
    "StorageError",
]
