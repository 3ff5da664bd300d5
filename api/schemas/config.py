"""
Pydantic schemas for runtime configuration and order status endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class WebhookConfigUpdate(BaseModel):
    """Request model for setting the notification webhook."""

    url: str = Field(..., description="Discord webhook URL")


class RemoteConfigUpdate(BaseModel):
    """Request model for configuring the remote store."""

    url: str = Field(..., description="PocketBase server URL")
    key: str = Field(default="", description="Access token for the remote store")


class ConnectionTestResponse(BaseModel):
    success: bool
    message: str


class ConfigStatusResponse(BaseModel):
    """What is configured, with secrets masked."""

    remote_configured: bool
    remote_url: str
    notify_configured: bool
    notify_url: str


class OrderStatusUpdate(BaseModel):
    """Request model for opening or closing order intake."""

    accepting_orders: bool
    message: str | None = None


class OrderStatusResponse(BaseModel):
    accepting_orders: bool
    message: str | None = None
    updated_at: datetime
    warnings: list[str] = []
