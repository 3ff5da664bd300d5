"""Tests for runtime configuration endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

WEBHOOK_URL = "https://discord.com/api/webhooks/123456789/abcdefTOKEN"


def test_requires_admin(client):
    assert client.get("/api/settings").status_code == 401
    assert client.put("/api/settings/webhook", json={"url": WEBHOOK_URL}).status_code == 401


def test_initial_status(admin_client):
    body = admin_client.get("/api/settings").json()
    assert body == {
        "remote_configured": False,
        "remote_url": "Not configured",
        "notify_configured": False,
        "notify_url": "Not configured",
    }


class TestWebhook:
    def test_non_discord_url_rejected(self, admin_client, services):
        response = admin_client.put("/api/settings/webhook", json={"url": "https://example.com/hook"})

        assert response.status_code == 400
        assert services.runtime_config.notify_endpoint == ""

    def test_set_test_and_remove(self, admin_client, services):
        updated = admin_client.put("/api/settings/webhook", json={"url": WEBHOOK_URL})
        assert updated.status_code == 200
        assert updated.json()["notify_configured"] is True
        assert "abcdefTOKEN" not in updated.json()["notify_url"]
        assert services.dispatcher.is_configured()

        with patch.object(services.dispatcher, "_post", new_callable=AsyncMock, return_value=(204, "")):
            tested = admin_client.post("/api/settings/webhook/test").json()
        assert tested == {"success": True, "message": "Webhook connection successful"}

        removed = admin_client.delete("/api/settings/webhook")
        assert removed.json()["notify_configured"] is False

    def test_unconfigured_webhook_test(self, admin_client):
        body = admin_client.post("/api/settings/webhook/test").json()
        assert body == {"success": False, "message": "Webhook URL not configured"}


class TestRemote:
    def test_set_and_remove(self, admin_client, services):
        updated = admin_client.put("/api/settings/remote", json={"url": "https://pb.example.com/", "key": "token"})

        assert updated.json()["remote_configured"] is True
        assert updated.json()["remote_url"] == "https://pb.example.com"
        assert services.remote.is_configured()

        removed = admin_client.delete("/api/settings/remote")
        assert removed.json()["remote_configured"] is False

    def test_invalid_url_rejected(self, admin_client):
        response = admin_client.put("/api/settings/remote", json={"url": "pb.example.com"})
        assert response.status_code == 400

    def test_connection_check_reports_result(self, admin_client, services):
        with patch.object(
            services.remote, "probe", new_callable=AsyncMock, return_value=(True, "Remote store connection successful")
        ):
            body = admin_client.post("/api/settings/remote/test").json()

        assert body == {"success": True, "message": "Remote store connection successful"}


def test_admin_session_elsewhere_does_not_open_settings(admin_client, other_client):
    assert admin_client.get("/api/settings").status_code == 200

    assert other_client.get("/api/settings").status_code == 401
    assert other_client.put("/api/settings/webhook", json={"url": WEBHOOK_URL}).status_code == 401
    assert other_client.delete("/api/settings/remote").status_code == 401
