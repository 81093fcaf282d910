"""
Namespaced Key-Value Storage

Wraps any store so that every key is prefixed with the application
prefix and, for signed-in users, the user's id. The ledger keeps
using plain keys ("transactions", "budgets") and never sees the prefix.
"""

from typing import Optional

from moneymate.services.storage.interface import JSONValue, KeyValueStoreInterface


class NamespacedKeyValueStore(KeyValueStoreInterface):
    """Prefixing view over another store."""

    def __init__(
        self,
        inner: KeyValueStoreInterface,
        prefix: str = "finance_tracker_",
        namespace: str = "",
    ):
        self._inner = inner
        self._prefix = f"{prefix}{namespace}"

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def inner(self) -> KeyValueStoreInterface:
        return self._inner

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Optional[JSONValue]:
        return await self._inner.get(self._key(key))

    async def set(self, key: str, value: JSONValue) -> bool:
        return await self._inner.set(self._key(key), value)

    async def remove(self, key: str) -> bool:
        return await self._inner.remove(self._key(key))

    async def keys(self, prefix: str = "") -> list[str]:
        full = await self._inner.keys(self._key(prefix))
        return [k[len(self._prefix):] for k in full]

    async def clear(self) -> int:
        """Remove every key in this namespace. Returns how many were removed."""
        removed = 0
        for key in await self.keys():
            if await self.remove(key):
                removed += 1
        return removed
