"""
Login Guard - caller-side lockout for the admin passcode form.

Failures are counted per client (the caller's network address). After
max_attempts consecutive failures that client is refused, even with the
right passcode, until the lockout period has passed or an authenticated
admin clears it. Counters live in process memory only; a restart clears them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from intake.models import utcnow

logger = logging.getLogger(__name__)

DEFAULT_LOCKOUT = timedelta(minutes=15)


class LoginLockedError(Exception):
    """Raised when a login is attempted while the caller is locked out."""

    def __init__(self, message: str, retry_after_seconds: int):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


@dataclass
class _Attempts:
    failures: int = 0
    locked_until: datetime | None = None


class LoginAttemptGuard:
    """Counts consecutive failed logins per client key."""

    def __init__(
        self,
        max_attempts: int = 3,
        lockout: timedelta = DEFAULT_LOCKOUT,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.max_attempts = max_attempts
        self.lockout = lockout
        self.clock = clock
        self._attempts: dict[str, _Attempts] = {}

    def _current(self, key: str) -> _Attempts:
        attempts = self._attempts.get(key)
        if attempts is None:
            return _Attempts()
        if attempts.locked_until is not None and self.clock() >= attempts.locked_until:
            # lockout served; the form starts over
            del self._attempts[key]
            return _Attempts()
        return attempts

    def locked(self, key: str) -> bool:
        return self._current(key).locked_until is not None

    def remaining_attempts(self, key: str) -> int:
        return max(0, self.max_attempts - self._current(key).failures)

    def ensure_unlocked(self, key: str) -> None:
        attempts = self._current(key)
        if attempts.locked_until is not None:
            retry_after = max(1, int((attempts.locked_until - self.clock()).total_seconds()))
            raise LoginLockedError(
                f"Too many failed attempts ({attempts.failures}). Try again in {retry_after} seconds.",
                retry_after_seconds=retry_after,
            )

    def record_failure(self, key: str) -> None:
        attempts = self._current(key)
        attempts.failures += 1
        if attempts.failures >= self.max_attempts:
            attempts.locked_until = self.clock() + self.lockout
            logger.warning(f"Admin login locked for {key} after {attempts.failures} failed attempts")
        self._attempts[key] = attempts

    def record_success(self, key: str) -> None:
        self._attempts.pop(key, None)

    def reset(self, key: str | None = None) -> None:
        """Clear one client's lockout, or every lockout when key is None."""
        if key is None:
            cleared = len(self._attempts)
            self._attempts.clear()
        else:
            cleared = 1 if self._attempts.pop(key, None) is not None else 0
        if cleared:
            logger.info(f"Admin login lockout reset ({cleared} client(s))")
