"""
Pydantic schemas for the Intake API.

Re-exports all schemas for convenient importing.
"""

from __future__ import annotations

from .admin import LoginRequest, SessionResponse
from .config import (
    ConfigStatusResponse,
    ConnectionTestResponse,
    OrderStatusResponse,
    OrderStatusUpdate,
    RemoteConfigUpdate,
    WebhookConfigUpdate,
)
from .messages import BroadcastMessageCreate, BroadcastMessageResponse, PublishResponse
from .requests import (
    DecisionResponse,
    DesignRequestCreate,
    DesignRequestResponse,
    StatusDecision,
    SubmitResponse,
)

__all__ = [
    # Admin
    "LoginRequest",
    "SessionResponse",
    # Config
    "ConfigStatusResponse",
    "ConnectionTestResponse",
    "OrderStatusResponse",
    "OrderStatusUpdate",
    "RemoteConfigUpdate",
    "WebhookConfigUpdate",
    # Messages
    "BroadcastMessageCreate",
    "BroadcastMessageResponse",
    "PublishResponse",
    # Requests
    "DecisionResponse",
    "DesignRequestCreate",
    "DesignRequestResponse",
    "StatusDecision",
    "SubmitResponse",
]
