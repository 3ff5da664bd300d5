"""
Root test configuration and fixtures for the intake project.

This conftest.py provides common fixtures for all test categories:
- unit/intake/: Domain services against a temporary SQLite cache
- unit/api/: HTTP endpoints through FastAPI's TestClient

Note: sys.path manipulation is handled here to ensure imports work correctly.
"""

from __future__ import annotations

import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest

# Add project root to path to allow imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from intake.models import RequestDraft  # noqa: E402
from intake.storage.backends import FallbackPersistence, LocalBackend, Query  # noqa: E402
from intake.storage.local_cache import LocalCache  # noqa: E402

START_TIME = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Controllable clock; call it like utcnow()."""

    def __init__(self, start: datetime = START_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeRemoteBackend(LocalBackend):
    """Stands in for the remote store: a separate SQLite file that can be told to fail."""

    name = "remote"

    def __init__(self, cache: LocalCache):
        super().__init__(cache)
        self.configured = True
        self.fail = False
        self.calls: list[str] = []

    def is_configured(self) -> bool:
        return self.configured

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if self.fail:
            raise ConnectionError("remote store unreachable")

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        self._check("insert")
        return await super().insert(table, record)

    async def select(self, table: str, query: Query | None = None) -> list[dict[str, Any]]:
        self._check("select")
        return await super().select(table, query)

    async def update(self, table: str, record_id: str, changes: dict[str, Any]) -> bool:
        self._check("update")
        return await super().update(table, record_id, changes)


def create_mock_pocketbase() -> Mock:
    """Create a mock PocketBase client with one shared collection mock."""
    mock_pb = Mock()
    mock_collection = Mock()

    mock_list_response = Mock()
    mock_list_response.items = []
    mock_list_response.total_items = 0

    mock_collection.get_full_list = Mock(return_value=[])
    mock_collection.get_list = Mock(return_value=mock_list_response)
    mock_collection.create = Mock(return_value=None)
    mock_collection.update = Mock()

    mock_pb.collection = Mock(return_value=mock_collection)
    mock_pb.auth_store = Mock()
    return mock_pb


def make_draft(**overrides: Any) -> RequestDraft:
    """A submission that passes validation unless overridden."""
    fields: dict[str, Any] = {
        "client_name": "Ana Lima",
        "email": "ana@example.com",
        "service_type": "logo",
        "description": "A minimalist fox logo in orange tones",
        "contact_info": "ana#1234",
        "contact_handle": "",
        "budget": None,
    }
    fields.update(overrides)
    return RequestDraft(**fields)


@pytest.fixture
def draft_factory():
    """Factory for valid drafts; keyword arguments override single fields."""
    return make_draft


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def local_cache(tmp_path: Path) -> LocalCache:
    """Local cache in a throwaway SQLite file."""
    return LocalCache(tmp_path / "local.sqlite3")


@pytest.fixture
def remote_backend(tmp_path: Path) -> FakeRemoteBackend:
    return FakeRemoteBackend(LocalCache(tmp_path / "remote.sqlite3"))


@pytest.fixture
def local_only_persistence(local_cache: LocalCache) -> FallbackPersistence:
    """Persistence with no remote store configured."""
    return FallbackPersistence(None, LocalBackend(local_cache))


@pytest.fixture
def persistence(local_cache: LocalCache, remote_backend: FakeRemoteBackend) -> FallbackPersistence:
    """Remote-first persistence over two temporary SQLite files."""
    return FallbackPersistence(remote_backend, LocalBackend(local_cache), remote_timeout=2.0)


@pytest.fixture
def mock_pocketbase() -> Mock:
    return create_mock_pocketbase()
