"""Time-boxed admin sessions gating privileged actions.

There is a single shared passcode. Each successful login opens its own
session, identified by an opaque token that only the caller holds. A session
is valid for a fixed duration (30 minutes by default) and is persisted in the
local cache so it survives a restart within that window. Every check
re-validates the expiry; an expired session is cleared, never silently
extended.

Only a SHA-256 digest of each token is stored. Failed-attempt lockout is the
caller's job (see api.services.login_guard).
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from .models import AdminSessionState, utcnow
from .storage.local_cache import ADMIN_SESSION_KEY, LocalCache

logger = logging.getLogger(__name__)

DEFAULT_SESSION_DURATION = timedelta(minutes=30)


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AdminSession:
    """Per token: logged out / authenticated. A token nobody issued is logged out."""

    def __init__(
        self,
        cache: LocalCache,
        passcode: str,
        duration: timedelta = DEFAULT_SESSION_DURATION,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.cache = cache
        self._passcode = passcode
        self.duration = duration
        self.clock = clock
        self._lock = asyncio.Lock()

    async def _load_all(self) -> dict[str, Any]:
        stored = await self.cache.get(ADMIN_SESSION_KEY, default={})
        return stored if isinstance(stored, dict) else {}

    async def _load(self, token: str | None) -> AdminSessionState | None:
        if not token:
            return None
        key = _digest(token)
        data = (await self._load_all()).get(key)
        if not data:
            return None
        try:
            return AdminSessionState.from_record(data)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable admin session: {e}")
            await self._drop(key)
            return None

    async def _save(self, key: str, state: AdminSessionState) -> None:
        async with self._lock:
            sessions = await self._load_all()
            now = self.clock()
            live: dict[str, Any] = {}
            for other, record in sessions.items():
                try:
                    if AdminSessionState.from_record(record).is_valid(now):
                        live[other] = record
                except (AttributeError, TypeError, ValueError):
                    continue
            live[key] = state.to_record()
            await self.cache.set(ADMIN_SESSION_KEY, live)

    async def _drop(self, key: str) -> None:
        async with self._lock:
            sessions = await self._load_all()
            if sessions.pop(key, None) is not None:
                await self.cache.set(ADMIN_SESSION_KEY, sessions)

    async def authenticate(self, secret: str) -> str | None:
        """Check the passcode; on success open a session and return its token."""
        if not self._passcode:
            logger.error("Admin passcode is not configured; refusing login")
            return None

        if not hmac.compare_digest(secret.encode("utf-8"), self._passcode.encode("utf-8")):
            logger.warning("Invalid admin passcode attempt")
            return None

        token = secrets.token_urlsafe(32)
        state = AdminSessionState.start(self.clock(), self.duration)
        try:
            await self._save(_digest(token), state)
        except Exception as e:
            logger.error(f"Error saving admin session: {e}")
            return None

        logger.info("Admin authenticated successfully")
        return token

    async def is_authenticated(self, token: str | None) -> bool:
        state = await self._load(token)
        if state is None:
            return False

        if not state.is_valid(self.clock()):
            await self.logout(token)
            logger.info("Admin session expired")
            return False

        return state.is_authenticated

    async def extend_session(self, token: str | None) -> bool:
        """Push the expiry out by a full duration; fails when not logged in."""
        if not token:
            return False
        state = await self._load(token)
        now = self.clock()
        if state is None or not state.is_valid(now):
            if state is not None:
                await self.logout(token)
            return False

        await self._save(_digest(token), state.extended(now, self.duration))
        logger.debug("Admin session extended")
        return True

    async def logout(self, token: str | None) -> None:
        if not token:
            return
        await self._drop(_digest(token))
        logger.info("Admin logged out")

    async def session_info(self, token: str | None) -> AdminSessionState | None:
        """The caller's session if still valid."""
        state = await self._load(token)
        if state is None or not state.is_valid(self.clock()):
            return None
        return state
