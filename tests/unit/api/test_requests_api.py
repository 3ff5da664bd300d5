"""Tests for the request submission and moderation endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

from intake.lifecycle import LifecycleOutcome
from intake.storage.request_store import StoreResult

WEBHOOK_URL = "https://discord.com/api/webhooks/123456789/abcdefTOKEN"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "intake-api"}


class TestSubmit:
    def test_valid_submission_created_pending(self, client, submission):
        response = client.post("/api/requests", json=submission)

        assert response.status_code == 201
        body = response.json()
        assert body["request"]["status"] == "pending"
        assert body["request"]["client_name"] == "Al"
        assert body["request"]["created_at"] == body["request"]["updated_at"]
        assert body["warnings"] == []

    def test_invalid_submission_lists_every_reason(self, client):
        response = client.post("/api/requests", json={"client_name": "A", "email": "nope"})

        assert response.status_code == 422
        errors = response.json()["errors"]
        assert "Name must be at least 2 characters long" in errors
        assert "Please enter a valid email address" in errors
        assert "Please provide valid contact information" in errors

    def test_second_submission_is_rate_limited(self, client, submission):
        assert client.post("/api/requests", json=submission).status_code == 201

        response = client.post("/api/requests", json={**submission, "email": "A@B.com"})

        assert response.status_code == 429
        retry_after = response.json()["retry_after_seconds"]
        assert 3500 < retry_after <= 3600
        assert response.headers["Retry-After"] == str(retry_after)

    def test_admin_submission_bypasses_rate_limit(self, admin_client, submission):
        assert admin_client.post("/api/requests", json=submission).status_code == 201
        assert admin_client.post("/api/requests", json=submission).status_code == 201

    def test_notification_failure_is_reported_as_warning(self, client, services, submission):
        services.runtime_config.notify_endpoint = WEBHOOK_URL

        with patch.object(services.dispatcher, "_post", new_callable=AsyncMock, return_value=(500, "oops")):
            response = client.post("/api/requests", json=submission)

        assert response.status_code == 201
        assert len(response.json()["warnings"]) == 1

    def test_storage_failure_is_503(self, client, services, submission, monkeypatch):
        async def failing_create(request):
            return StoreResult.failed("disk full")

        monkeypatch.setattr(services.store, "create", failing_create)

        response = client.post("/api/requests", json=submission)

        assert response.status_code == 503

    def test_missing_request_in_outcome_is_503(self, client, services, submission, monkeypatch):
        async def empty_submit(draft, is_privileged=False):
            return LifecycleOutcome(request=None)

        monkeypatch.setattr(services.lifecycle, "submit", empty_submit)

        response = client.post("/api/requests", json=submission)

        assert response.status_code == 503

    def test_closed_orders_reject_submission(self, admin_client, submission):
        admin_client.put("/api/orders/status", json={"accepting_orders": False, "message": "Back in May"})
        admin_client.post("/api/admin/logout")

        response = admin_client.post("/api/requests", json=submission)

        assert response.status_code == 409
        assert response.json()["detail"] == "Back in May"


class TestModeration:
    def test_list_requires_admin(self, client):
        assert client.get("/api/requests").status_code == 401

    def test_decide_requires_admin(self, client, submission):
        request_id = client.post("/api/requests", json=submission).json()["request"]["id"]

        response = client.patch(f"/api/requests/{request_id}/status", json={"status": "accepted"})

        assert response.status_code == 401

    def test_accept_request(self, admin_client, submission):
        request_id = admin_client.post("/api/requests", json=submission).json()["request"]["id"]

        response = admin_client.patch(
            f"/api/requests/{request_id}/status", json={"status": "accepted", "admin_notes": "Starting Monday"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["updated"] is True
        assert body["request"]["status"] == "accepted"
        assert body["request"]["admin_notes"] == "Starting Monday"

        listed = admin_client.get("/api/requests").json()
        assert [r["status"] for r in listed] == ["accepted"]

    def test_unknown_request_is_not_an_error(self, admin_client):
        response = admin_client.patch("/api/requests/doesnotexist123/status", json={"status": "rejected"})

        assert response.status_code == 200
        assert response.json()["updated"] is False
        assert response.json()["request"] is None

    def test_invalid_status_rejected(self, admin_client):
        response = admin_client.patch("/api/requests/abc/status", json={"status": "approved"})
        assert response.status_code == 422


class TestCallerIsolation:
    """An admin logged in elsewhere grants nothing to other callers."""

    def test_anonymous_caller_cannot_list(self, admin_client, other_client, submission):
        other_client.post("/api/requests", json=submission)

        assert admin_client.get("/api/requests").status_code == 200
        assert other_client.get("/api/requests").status_code == 401

    def test_anonymous_caller_cannot_decide(self, admin_client, other_client, submission):
        request_id = other_client.post("/api/requests", json=submission).json()["request"]["id"]

        response = other_client.patch(f"/api/requests/{request_id}/status", json={"status": "accepted"})

        assert response.status_code == 401
        assert admin_client.get("/api/requests").json()[0]["status"] == "pending"

    def test_anonymous_submissions_stay_rate_limited(self, admin_client, other_client, submission):
        first = other_client.post("/api/requests", json=submission)
        second = other_client.post("/api/requests", json=submission)

        assert [first.status_code, second.status_code] == [201, 429]

    def test_anonymous_submissions_respect_closed_orders(self, admin_client, other_client, submission):
        admin_client.put("/api/orders/status", json={"accepting_orders": False})

        assert other_client.post("/api/requests", json=submission).status_code == 409
        assert admin_client.post("/api/requests", json=submission).status_code == 201

    def test_forged_token_is_rejected(self, admin_client, other_client):
        response = other_client.get("/api/requests", headers={"Authorization": "Bearer not-a-real-session"})
        assert response.status_code == 401
