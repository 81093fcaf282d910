"""
Storage Services Package

Provides the abstract key-value interface and concrete backends:
in-memory, JSON file and Google Sheets, plus a namespacing wrapper
and an audit log stored alongside the data.
"""

from moneymate.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    KeyValueStoreInterface,
    SerializationError,
    StorageError,
)
from moneymate.services.storage.memory import InMemoryKeyValueStore
from moneymate.services.storage.json_file import JsonFileKeyValueStore
from moneymate.services.storage.namespaced import NamespacedKeyValueStore
from moneymate.services.storage.audit import KeyValueAuditStorage
from moneymate.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    # Exceptions
    "ConnectionError",
    "SerializationError",
    "StorageError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueAuditStorage",
    "NamespacedKeyValueStore",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStore",
]
