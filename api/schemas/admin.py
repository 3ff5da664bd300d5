"""
Pydantic schemas for admin session endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Request model for admin login."""

    passcode: str = Field(..., description="Shared admin passcode")


class SessionResponse(BaseModel):
    """Current admin session state as seen by the login form."""

    authenticated: bool
    session_token: str | None = Field(None, description="Returned once, on login; send as a Bearer token")
    login_time: datetime | None = None
    expires_at: datetime | None = None
    locked: bool = False
    remaining_attempts: int
