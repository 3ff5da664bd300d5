"""
Application settings using pydantic-settings for type-safe configuration.

All environment variables are centralized here with proper typing, validation,
and sensible defaults. Settings are loaded once at startup and cached.

Remote store and notification values set here are only the startup defaults;
an admin can replace them at runtime (see intake.runtime_config).
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from intake.runtime_config import is_valid_webhook_url

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for local development.
    Production values should be set via environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # === Admin ===
    admin_passcode: str = Field(
        default="",
        description="Shared admin passcode (required for any admin action)",
    )
    admin_session_minutes: int = Field(
        default=30,
        ge=1,
        description="Lifetime of an admin session after login or the last privileged action",
    )
    max_login_attempts: int = Field(
        default=3,
        ge=1,
        description="Consecutive failed logins before the login form locks",
    )
    login_lockout_minutes: int = Field(
        default=15,
        ge=1,
        description="How long a client stays locked out after too many failed logins",
    )

    # === Remote store (PocketBase) ===
    remote_url: str = Field(
        default="",
        description="PocketBase server URL; empty runs on the local cache only",
    )
    remote_key: str = Field(
        default="",
        description="Access token loaded into the PocketBase auth store",
    )
    remote_timeout_seconds: float = Field(
        default=8.0,
        gt=0,
        description="Upper bound for one remote store call before falling back to local",
    )

    # === Local cache ===
    local_cache_path: str = Field(
        default="data/intake_cache.sqlite3",
        description="SQLite file holding the local cache",
    )

    # === Notifications ===
    notify_endpoint: str = Field(
        default="",
        description="Discord webhook URL for request and admin notifications",
    )
    notify_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for a single webhook delivery",
    )

    # === Anti-spam ===
    rate_limit_window_seconds: int = Field(
        default=3600,
        ge=1,
        description="One submission per identity within this window",
    )

    # === Broadcast messages ===
    broadcast_poll_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Interval of the background broadcast poll; 0 disables it",
    )

    # === CORS Configuration ===
    allowed_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:8081",
        alias="ALLOWED_ORIGINS",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins(self) -> list[str]:
        """Parse comma-separated origins string into list."""
        return [origin.strip() for origin in self.allowed_origins_str.split(",") if origin.strip()]

    @field_validator("admin_passcode", mode="after")
    @classmethod
    def validate_admin_passcode(cls, v: str) -> str:
        """Warn when the passcode is missing or trivially guessable."""
        if len(v) < 8:
            logger.warning(
                "SECURITY WARNING: ADMIN_PASSCODE is not set or shorter than 8 characters. "
                "Set a strong passcode in your .env file for production use."
            )
        return v

    @field_validator("notify_endpoint", mode="after")
    @classmethod
    def validate_notify_endpoint(cls, v: str) -> str:
        """Reject webhook URLs that are not Discord webhooks."""
        v = v.strip()
        if v and not is_valid_webhook_url(v):
            raise ValueError("NOTIFY_ENDPOINT must start with https://discord.com/api/webhooks/")
        return v

    @field_validator("remote_url", mode="after")
    @classmethod
    def normalize_remote_url(cls, v: str) -> str:
        return v.strip().rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the application.
    """
    return Settings()
