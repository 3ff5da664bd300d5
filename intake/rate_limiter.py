"""Per-identity submission rate limiting.

A submitter may send one request per window (one hour by default). Identity
is the pair (email, contact handle) and a match on either field counts, so a
new email does not get around the limit while the handle is unchanged.

Lookups fail open: when no backend can answer, the submission is allowed and
the condition is logged as degraded mode.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .errors import PersistenceError
from .models import SubmissionIdentity, SubmissionRecord, format_timestamp, utcnow
from .storage.backends import SUBMISSIONS_TABLE, FallbackPersistence, PersistenceBackend, Query

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=1)


@dataclass(frozen=True)
class RateLimitDecision:
    """Whether a submission may proceed, and when to retry if not"""

    allowed: bool
    retry_after_seconds: int | None = None

    @classmethod
    def allow(cls) -> RateLimitDecision:
        return cls(allowed=True)


class RateLimiter:
    """Sliding-window anti-spam check over the submission ledger."""

    def __init__(
        self,
        persistence: FallbackPersistence,
        window: timedelta = DEFAULT_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.persistence = persistence
        self.window = window
        self.clock = clock

    async def _latest_submission(self, identity: SubmissionIdentity, now: datetime) -> SubmissionRecord | None:
        query = Query(
            any_of={"email": identity.email, "contact_handle": identity.contact_handle},
            since=("submitted_at", format_timestamp(now - self.window)),
            order_by="submitted_at",
            descending=True,
            limit=1,
        )

        async def select(backend: PersistenceBackend) -> list[dict[str, Any]]:
            return await backend.select(SUBMISSIONS_TABLE, query)

        records, _ = await self.persistence.run("rate limit lookup", select)
        return SubmissionRecord.from_record(records[0]) if records else None

    async def check_allowed(self, identity: SubmissionIdentity, is_privileged: bool = False) -> RateLimitDecision:
        if is_privileged:
            return RateLimitDecision.allow()

        if not identity.email and not identity.contact_handle:
            return RateLimitDecision.allow()

        now = self.clock()
        try:
            latest = await self._latest_submission(identity, now)
        except (PersistenceError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Rate limiter degraded, allowing submission from {identity.email}: {e}")
            return RateLimitDecision.allow()

        if latest is None:
            return RateLimitDecision.allow()

        elapsed = now - latest.submitted_at
        if elapsed >= self.window:
            return RateLimitDecision.allow()

        retry_after = max(1, math.ceil((self.window - elapsed).total_seconds()))
        logger.info(f"Rate limited {identity.email}: last submission {int(elapsed.total_seconds())}s ago")
        return RateLimitDecision(allowed=False, retry_after_seconds=retry_after)

    async def record_submission(self, identity: SubmissionIdentity) -> bool:
        """Append a ledger entry; failure is logged and never blocks the submission."""
        record = SubmissionRecord(
            email=identity.email,
            contact_handle=identity.contact_handle,
            submitted_at=self.clock(),
        ).to_record()

        async def insert(backend: PersistenceBackend) -> dict[str, Any]:
            return await backend.insert(SUBMISSIONS_TABLE, record)

        try:
            await self.persistence.run("record submission", insert)
        except PersistenceError as e:
            logger.warning(f"Could not record submission for {identity.email}: {e}")
            return False
        return True
