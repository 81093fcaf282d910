"""Shared fixtures: in-memory storage and a deterministic ledger clock."""

import pytest

from moneymate.config import AppSettings
from moneymate.ledger import Ledger
from moneymate.services.storage import InMemoryKeyValueStore

from helpers import counting_clock


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def ledger(store):
    return Ledger(store, history_limit=20, clock=counting_clock())


@pytest.fixture
def settings():
    return AppSettings(storage_backend="memory")
