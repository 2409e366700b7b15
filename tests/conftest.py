"""
Pytest configuration and shared fixtures.

This file adds the project root to the Python path so that tests can import
from the domain, repositories and services packages.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Optional, Set

import pytest

# Add the project directory to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.errors import PersistenceError  # noqa: E402
from repositories.record_store import RecordStore  # noqa: E402
from repositories.storage import InMemoryStorage  # noqa: E402
from services.ids import SequentialIdGenerator  # noqa: E402
from services.mutation_service import MutationCoordinator  # noqa: E402

# Shop timezone used throughout the tests (UTC+5, no DST).
SHOP_TZ = timezone(timedelta(hours=5))

# Pinned "now": 2025-03-15 14:30 shop time.
FIXED_NOW = datetime(2025, 3, 15, 14, 30, 0, tzinfo=SHOP_TZ)


class FailingStorage(InMemoryStorage):
    """
    In-memory storage whose writes can be made to fail per key.

    `fail_keys` fail every write; `fail_after` lets the first N writes to a key
    succeed before failing (used to break a rollback).
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        super().__init__(initial)
        self.fail_keys: Set[str] = set()
        self.fail_after: Dict[str, int] = {}
        self.writes: Dict[str, int] = {}

    def write(self, key: str, value: str) -> None:
        count = self.writes.get(key, 0)
        self.writes[key] = count + 1
        if key in self.fail_keys:
            raise PersistenceError(f"quota exceeded writing {key!r}")
        if key in self.fail_after and count >= self.fail_after[key]:
            raise PersistenceError(f"quota exceeded writing {key!r}")
        super().write(key, value)


@pytest.fixture
def storage() -> FailingStorage:
    return FailingStorage()


@pytest.fixture
def store(storage: FailingStorage) -> RecordStore:
    return RecordStore(storage)


@pytest.fixture
def coordinator(store: RecordStore) -> MutationCoordinator:
    return MutationCoordinator(store, ids=SequentialIdGenerator(), clock=lambda: FIXED_NOW)
