"""
In-Memory Key-Value Storage

Used for tests and guest sessions. Values are round-tripped through JSON
on every write and read, so callers get the same copy semantics (and the
same serialization failures) as the persistent backends.
"""

import json
from typing import Optional

from moneymate.services.storage.interface import (
    JSONValue,
    KeyValueStoreInterface,
    SerializationError,
)


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Dictionary-backed store holding JSON text per key."""

    def __init__(self, initial: Optional[dict[str, JSONValue]] = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = self._encode(value)

    @staticmethod
    def _encode(value: JSONValue) -> str:
        try:
            return json.dumps(value)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Value is not JSON-serializable: {e}")

    async def get(self, key: str) -> Optional[JSONValue]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: JSONValue) -> bool:
        self._data[key] = self._encode(value)
        return True

    async def remove(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))

    def __len__(self) -> int:
        return len(self._data)
