"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep everything in memory for tests and guest sessions
2. Persist to a local JSON file so data survives a reload
3. Swap in Google Sheets without touching the ledger
4. Namespace keys per user transparently

The interface is intentionally tiny: named JSON blobs.
The ledger and budget registry each write their whole state under one
key, so there are no transactions across keys.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from moneymate.models.audit import AuditEvent


JSONValue = Any


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for a persistent key-value store.

    Values must be JSON-serializable. Every operation is async so that
    backends doing real I/O can suspend.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[JSONValue]:
        """
        Read the value stored under a key.

        Returns:
            The decoded JSON value, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: JSONValue) -> bool:
        """
        Store a value under a key (upsert).

        Returns:
            True if stored successfully

        Raises:
            SerializationError: If the value is not JSON-serializable
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed and was removed
        """
        pass

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with `prefix`."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class SerializationError(StorageError):
    """Value could not be encoded or decoded as JSON."""
    pass
