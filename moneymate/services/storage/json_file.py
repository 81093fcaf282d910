"""
JSON File Key-Value Storage

DESIGN DECISION: The whole store is one JSON document on disk.
Personal ledgers are small, so reading and rewriting the file on each
operation is fine and keeps the file human-readable.

TRADEOFFS:
- Two processes sharing the file clobber each other's last write
  (single-writer assumption, documented limitation)
- Writes go to a temporary file that replaces the original, so a crash
  mid-write never leaves a half-written document
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from moneymate.services.storage.interface import (
    JSONValue,
    KeyValueStoreInterface,
    SerializationError,
    StorageError,
)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """Key-value store persisted as a single JSON object file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, JSONValue]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Corrupt data file {self._path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}")
        if not isinstance(data, dict):
            raise SerializationError(f"Data file {self._path} does not hold a JSON object")
        return data

    def _write(self, data: dict[str, JSONValue]) -> None:
        try:
            payload = json.dumps(data, indent=2, sort_keys=True)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Value is not JSON-serializable: {e}")

        tmp_name = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=self._path.name,
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self._path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to write {self._path}: {e}")

    async def get(self, key: str) -> Optional[JSONValue]:
        async with self._lock:
            return self._read().get(key)

    async def set(self, key: str, value: JSONValue) -> bool:
        async with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)
            return True

    async def remove(self, key: str) -> bool:
        async with self._lock:
            data = self._read()
            if key not in data:
                return False
            del data[key]
            self._write(data)
            return True

    async def keys(self, prefix: str = "") -> list[str]:
        async with self._lock:
            return sorted(k for k in self._read() if k.startswith(prefix))
