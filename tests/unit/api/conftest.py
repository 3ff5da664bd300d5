"""Fixtures for API tests: a fully wired service graph on a temporary cache."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from api.dependencies import Services, build_services, get_client_key, service_state
from api.settings import Settings

ADMIN_PASSCODE = "correct-horse-battery"


def client_key_from_test_header(request: Request) -> str:
    """Every TestClient reports the same address; let tests name the caller."""
    return request.headers.get("x-test-client", "testclient")


@pytest.fixture
def api_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        admin_passcode=ADMIN_PASSCODE,
        local_cache_path=str(tmp_path / "api_cache.sqlite3"),
        remote_url="",
        notify_endpoint="",
        broadcast_poll_seconds=0,
    )


@pytest.fixture
def services(api_settings: Settings) -> Iterator[Services]:
    service_state.services = build_services(api_settings)
    yield service_state.services
    service_state.services = None


@pytest.fixture
def app(services: Services):
    from api.main import app

    app.dependency_overrides[get_client_key] = client_key_from_test_header
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client: TestClient) -> TestClient:
    """Client carrying a live admin session token."""
    response = client.post("/api/admin/login", json={"passcode": ADMIN_PASSCODE})
    assert response.status_code == 200
    client.headers["Authorization"] = f"Bearer {response.json()['session_token']}"
    return client


@pytest.fixture
def other_client(app) -> TestClient:
    """A second caller that never logs in."""
    return TestClient(app, headers={"X-Test-Client": "other-device"})


@pytest.fixture
def submission() -> dict[str, str]:
    return {
        "client_name": "Al",
        "email": "a@b.com",
        "service_type": "Logo",
        "description": "Need a logo for my bakery business, modern style",
        "contact_info": "IG @albakes",
    }
