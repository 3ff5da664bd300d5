"""Tests for broadcast message and order status endpoints."""

from __future__ import annotations

import asyncio

from intake.broadcast import BroadcastPoller
from intake.models import BroadcastMessage
from intake.storage.backends import BROADCAST_TABLE

PHONE = {"X-Device-Id": "phone-1"}
TABLET = {"X-Device-Id": "tablet-2"}


class TestMessages:
    def test_publish_requires_admin(self, client):
        response = client.post("/api/messages", json={"message": "Hello"})
        assert response.status_code == 401

    def test_publish_list_dismiss(self, admin_client):
        created = admin_client.post(
            "/api/messages", json={"title": "Notice", "message": "Studio closed Friday", "type": "warning"}
        )
        assert created.status_code == 201
        message_id = created.json()["message"]["id"]

        listed = admin_client.get("/api/messages", headers=PHONE).json()
        assert [m["id"] for m in listed] == [message_id]
        assert listed[0]["type"] == "warning"

        dismissed = admin_client.post(f"/api/messages/{message_id}/dismiss", headers=PHONE)
        assert dismissed.json() == {"id": message_id, "dismissed": True}

        assert admin_client.get("/api/messages", headers=PHONE).json() == []
        assert len(admin_client.get("/api/messages", headers=PHONE, params={"include_dismissed": True}).json()) == 1

    def test_dismissal_is_per_device(self, admin_client, other_client):
        message_id = admin_client.post("/api/messages", json={"message": "Hello"}).json()["message"]["id"]

        other_client.post(f"/api/messages/{message_id}/dismiss", headers=TABLET)

        assert other_client.get("/api/messages", headers=TABLET).json() == []
        assert [m["id"] for m in admin_client.get("/api/messages", headers=PHONE).json()] == [message_id]
        assert [m["id"] for m in admin_client.get("/api/messages").json()] == [message_id]

    def test_dismiss_requires_device_id(self, client):
        response = client.post("/api/messages/abc/dismiss")
        assert response.status_code == 400

    def test_expiry_in_minutes_sets_expires_at(self, admin_client):
        created = admin_client.post("/api/messages", json={"message": "Flash sale", "expires_in_minutes": 15})
        assert created.json()["message"]["expires_at"] is not None

    def test_invalid_type_rejected(self, admin_client):
        response = admin_client.post("/api/messages", json={"message": "Hello", "type": "urgent"})
        assert response.status_code == 422

    def test_withdraw(self, admin_client):
        message_id = admin_client.post("/api/messages", json={"message": "Hello"}).json()["message"]["id"]

        response = admin_client.delete(f"/api/messages/{message_id}")

        assert response.json() == {"id": message_id, "deactivated": True}
        assert admin_client.get("/api/messages").json() == []

    def test_publish_requires_admin_on_this_request(self, admin_client, other_client):
        assert other_client.post("/api/messages", json={"message": "Hello"}).status_code == 401


class TestPolledSnapshot:
    def test_reads_come_from_snapshot_once_polled(self, admin_client, services):
        services.poller = BroadcastPoller(services.broadcasts, interval_seconds=3600)
        assert services.poller.snapshot() is None

        published = admin_client.post("/api/messages", json={"message": "Hello"}).json()["message"]["id"]
        assert [m.id for m in services.poller.snapshot()] == [published]

        unpolled = BroadcastMessage(id="unpolled1234567", message="Not yet polled")
        asyncio.run(services.persistence.local.insert(BROADCAST_TABLE, unpolled.to_record()))

        assert [m["id"] for m in admin_client.get("/api/messages").json()] == [published]

    def test_withdraw_refreshes_snapshot(self, admin_client, services):
        services.poller = BroadcastPoller(services.broadcasts, interval_seconds=3600)
        message_id = admin_client.post("/api/messages", json={"message": "Hello"}).json()["message"]["id"]

        admin_client.delete(f"/api/messages/{message_id}")

        assert services.poller.snapshot() == []
        assert admin_client.get("/api/messages").json() == []


class TestOrderStatus:
    def test_open_by_default(self, client):
        body = client.get("/api/orders/status").json()
        assert body["accepting_orders"] is True

    def test_change_requires_admin(self, client):
        response = client.put("/api/orders/status", json={"accepting_orders": False})
        assert response.status_code == 401

    def test_close_and_reopen(self, admin_client):
        closed = admin_client.put("/api/orders/status", json={"accepting_orders": False})
        assert closed.status_code == 200
        assert closed.json()["accepting_orders"] is False
        assert admin_client.get("/api/orders/status").json()["accepting_orders"] is False

        admin_client.put("/api/orders/status", json={"accepting_orders": True, "message": "We're back"})

        body = admin_client.get("/api/orders/status").json()
        assert body["accepting_orders"] is True
        assert body["message"] == "We're back"
