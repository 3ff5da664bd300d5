"""Discord webhook notifications for request and admin events.

Notifications are optional: with no endpoint configured, notify() returns
False straight away. Delivery is one POST with a bounded timeout and no
retry; failures are logged and reported as False, never raised, so the
operation that triggered the notification is unaffected.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any

import aiohttp

from .models import format_timestamp, utcnow
from .runtime_config import RuntimeConfig, mask_url

logger = logging.getLogger(__name__)

USER_AGENT = "LogifyMakers/2.0"
FOOTER_TEXT = "Logify Makers - Design Request System v2.0"

# Embed colors
COLOR_BLURPLE = 0x5865F2
COLOR_GREEN = 0x4CAF50
COLOR_RED = 0xFF4444
COLOR_ORANGE = 0xFF9800
COLOR_TEST = 0x00FF00

STATUS_COLORS = {
    "pending": COLOR_BLURPLE,
    "accepted": COLOR_GREEN,
    "in_progress": COLOR_BLURPLE,
    "completed": COLOR_GREEN,
    "rejected": COLOR_RED,
    "cancelled": COLOR_RED,
}

# Discord rejects embed field values longer than this
MAX_FIELD_VALUE = 1024


class NotificationKind(Enum):
    """Events that produce a notification"""

    NEW_REQUEST = "new_request"
    STATUS_UPDATE = "status_update"
    ADMIN_ALERT = "admin_alert"
    ORDER_STATUS = "order_status"


def _field(name: str, value: Any, inline: bool = True) -> dict[str, Any]:
    text = str(value) if value not in (None, "") else "Not specified"
    if len(text) > MAX_FIELD_VALUE:
        text = text[: MAX_FIELD_VALUE - 3] + "..."
    return {"name": name, "value": text, "inline": inline}


def _readable(now: datetime) -> str:
    return now.strftime("%Y-%m-%d %H:%M UTC")


def build_message(kind: NotificationKind, payload: dict[str, Any], now: datetime) -> dict[str, Any]:
    """Build the webhook body for an event.

    Args:
        kind: Event kind, selects title, color and the labelled fields
        payload: Event data (request fields, status, action description, ...)
        now: Timestamp stamped into the embed

    Returns:
        JSON body with a `content` banner and a single embed
    """
    if kind is NotificationKind.NEW_REQUEST:
        content = "🔔 **NEW DESIGN REQUEST ALERT** 🔔\nA new client needs our design services!"
        embed = {
            "title": "🎨 New Design Request Received",
            "description": (
                f"A new **{payload.get('service_type', 'design')}** request has been submitted by "
                f"**{payload.get('client_name', 'Unknown')}**!"
            ),
            "color": COLOR_BLURPLE,
            "fields": [
                _field("👤 Client Name", payload.get("client_name")),
                _field("🎯 Service Type", payload.get("service_type")),
                _field("💰 Budget", payload.get("budget")),
                _field("📝 Project Description", payload.get("description"), inline=False),
                _field("📞 Contact Information", payload.get("contact_info"), inline=False),
                _field("📅 Submitted", _readable(now)),
                _field("🆔 Request ID", payload.get("id")),
            ],
        }
    elif kind is NotificationKind.STATUS_UPDATE:
        status = str(payload.get("status", "pending"))
        content = "🔔 **REQUEST STATUS UPDATE** 🔔"
        embed = {
            "title": f"📋 Request {status.replace('_', ' ').title()}",
            "description": (
                f"Request **{payload.get('id')}** from **{payload.get('client_name', 'Unknown')}** "
                f"is now **{status}**."
            ),
            "color": STATUS_COLORS.get(status, COLOR_BLURPLE),
            "fields": [
                _field("🆔 Request ID", payload.get("id")),
                _field("📊 Status", status),
                _field("🎯 Service Type", payload.get("service_type")),
                _field("🗒️ Admin Notes", payload.get("admin_notes"), inline=False),
                _field("⏰ Updated", _readable(now)),
            ],
        }
    elif kind is NotificationKind.ADMIN_ALERT:
        content = "🔔 **ADMIN ALERT** 🔔\nAn administrative action has been performed."
        embed = {
            "title": "🛡️ Admin Action Alert",
            "description": payload.get("message", "Administrative action"),
            "color": COLOR_ORANGE,
            "fields": [
                _field("🔧 Action Performed", payload.get("action"), inline=False),
                _field("⏰ Timestamp", _readable(now)),
                _field("🔐 Security Level", "Admin Authenticated"),
            ],
        }
    elif kind is NotificationKind.ORDER_STATUS:
        accepting = bool(payload.get("accepting_orders"))
        content = "🔔 **ORDER STATUS UPDATE** 🔔\n" + (
            "🎉 We're back and ready for new projects!" if accepting else "⏸️ Taking a short break - we'll be back soon!"
        )
        embed = {
            "title": "✅ Orders Now Open!" if accepting else "❌ Orders Temporarily Closed",
            "description": payload.get("message", ""),
            "color": COLOR_GREEN if accepting else COLOR_RED,
            "fields": [
                _field("📊 Status", "🟢 **ACCEPTING ORDERS**" if accepting else "🔴 **ORDERS CLOSED**"),
                _field("⏰ Updated", _readable(now)),
            ],
        }
    else:
        raise ValueError(f"Unsupported notification kind: {kind}")

    embed["timestamp"] = format_timestamp(now)
    embed["footer"] = {"text": FOOTER_TEXT}
    return {"content": content, "embeds": [embed]}


class NotificationDispatcher:
    """Formats and delivers event notifications to the configured webhook."""

    def __init__(
        self,
        config: RuntimeConfig,
        timeout_seconds: float = 5.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.timeout_seconds = timeout_seconds
        self.clock = clock

    def is_configured(self) -> bool:
        return self.config.notify_configured

    def status(self) -> dict[str, Any]:
        return {
            "configured": self.is_configured(),
            "url": mask_url(self.config.notify_endpoint),
        }

    async def _post(self, body: dict[str, Any]) -> tuple[int, str]:
        """POST body to the webhook; returns (status, response text)."""
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        async with (
            aiohttp.ClientSession(timeout=timeout) as session,
            session.post(self.config.notify_endpoint, json=body, headers=headers) as response,
        ):
            text = await response.text()
            return response.status, text

    async def notify(self, kind: NotificationKind, payload: dict[str, Any]) -> bool:
        """Deliver one notification; True only on a 2xx answer."""
        if not self.is_configured():
            logger.debug(f"Notification endpoint not configured, skipping {kind.value}")
            return False

        body = build_message(kind, payload, self.clock())
        try:
            status, text = await self._post(body)
        except TimeoutError:
            logger.error(f"Discord webhook timed out after {self.timeout_seconds:g}s for {kind.value}")
            return False
        except aiohttp.ClientError as e:
            logger.error(f"Failed to send {kind.value} to Discord: {type(e).__name__}: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error sending {kind.value} to Discord: {type(e).__name__}: {e}")
            return False

        if 200 <= status < 300:
            logger.info(f"Sent {kind.value} notification to Discord")
            return True

        logger.error(f"Discord webhook failed for {kind.value}: HTTP {status} {text[:500]}")
        return False

    async def test_connection(self) -> tuple[bool, str]:
        """Send a test message and describe the result."""
        if not self.is_configured():
            return False, "Webhook URL not configured"

        now = self.clock()
        body = {
            "content": "🧪 **Webhook Test**",
            "embeds": [
                {
                    "title": "🔧 Connection Test",
                    "description": "This is a test message to verify webhook connectivity.",
                    "color": COLOR_TEST,
                    "fields": [],
                    "timestamp": format_timestamp(now),
                    "footer": {"text": "Logify Makers - Webhook Test"},
                }
            ],
        }
        try:
            status, text = await self._post(body)
        except TimeoutError:
            return False, f"Webhook did not answer within {self.timeout_seconds:g} seconds"
        except aiohttp.ClientError as e:
            return False, f"{type(e).__name__}: {e}"

        if 200 <= status < 300:
            return True, "Webhook connection successful"
        logger.warning(f"Webhook test failed: HTTP {status} {text[:200]}")
        return False, f"HTTP {status}"
