"""
Intake - Core business logic for the design request pipeline.

This package contains:
- models: Domain models (DesignRequest, BroadcastMessage, SubmissionRecord, etc.)
- storage: Remote-first persistence with a local SQLite fallback
- rate_limiter: Per-identity anti-spam window
- notifications: Discord webhook delivery
- admin_session: Time-boxed admin authentication
- broadcast: System-wide announcements
- lifecycle: Submission and moderation orchestration
"""

from intake.errors import (
    AuthorizationError,
    ConfigurationError,
    IntakeError,
    NotificationError,
    OrdersClosedError,
    PersistenceError,
    RateLimitedError,
    ValidationError,
)
from intake.models import (
    BroadcastMessage,
    DesignRequest,
    MessageType,
    RequestDraft,
    RequestStatus,
)

__all__ = [
    "AuthorizationError",
    "BroadcastMessage",
    "ConfigurationError",
    "DesignRequest",
    "IntakeError",
    "MessageType",
    "NotificationError",
    "OrdersClosedError",
    "PersistenceError",
    "RateLimitedError",
    "RequestDraft",
    "RequestStatus",
    "ValidationError",
]
