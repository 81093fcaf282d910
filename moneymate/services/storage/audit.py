"""Audit log kept inside the key-value store."""

from typing import Optional

from moneymate.models.audit import AuditEvent
from moneymate.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
    StorageError,
)


AUDIT_KEY = "auditLog"


class KeyValueAuditStorage(AuditStorageInterface):
    """
    Keeps the newest `max_events` audit events under one key.

    Audit events are append-only; the oldest fall off the end once the
    cap is reached.
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        max_events: int = 200,
        key: str = AUDIT_KEY,
    ):
        self._store = store
        self._max_events = max_events
        self._key = key

    async def _load(self) -> list[dict]:
        raw = await self._store.get(self._key)
        return raw if isinstance(raw, list) else []

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            events = await self._load()
            events.append(event.model_dump(mode="json"))
            await self._store.set(self._key, events[-self._max_events:])
            return True
        except StorageError:
            # Audit logging must not break the main flow
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
        event_type: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = []
        for raw in reversed(await self._load()):
            try:
                event = AuditEvent.model_validate(raw)
            except ValueError:
                continue  # Skip malformed entries
            if event_type and event.event_type.value != event_type:
                continue
            events.append(event)
            if len(events) >= limit:
                break
        return events
