"""
Pydantic schemas for broadcast message endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from intake.models import BroadcastMessage, MessageType


class BroadcastMessageCreate(BaseModel):
    """Request model for publishing a broadcast message."""

    title: str | None = None
    message: str = Field(..., min_length=1, max_length=1000)
    type: str = "info"
    expires_at: datetime | None = None
    expires_in_minutes: int | None = Field(default=None, ge=1, description="Alternative to expires_at")

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        valid = [t.value for t in MessageType]
        if v not in valid:
            raise ValueError(f"invalid message type: {v}. Must be one of {valid}")
        return v


class BroadcastMessageResponse(BaseModel):
    """Response model for a broadcast message."""

    id: str
    title: str | None = None
    message: str
    type: str
    created_at: datetime
    expires_at: datetime | None = None
    is_active: bool

    @classmethod
    def from_domain(cls, message: BroadcastMessage) -> BroadcastMessageResponse:
        return cls(
            id=message.id,
            title=message.title,
            message=message.message,
            type=message.type.value,
            created_at=message.created_at,
            expires_at=message.expires_at,
            is_active=message.is_active,
        )


class PublishResponse(BaseModel):
    message: BroadcastMessageResponse
    warnings: list[str] = []
