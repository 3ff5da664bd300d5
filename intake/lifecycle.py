"""Request lifecycle orchestration.

submit: validate -> order intake open -> rate limit -> persist -> record -> notify
decide: admin session -> persist status -> notify -> extend session

Stages run strictly in sequence. Notification always comes after a
successful persist and its failure never undoes or fails the operation;
it is reported back as a warning instead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .admin_session import AdminSession
from .broadcast import BroadcastMessageService
from .errors import (
    AuthorizationError,
    NotificationError,
    OrdersClosedError,
    PersistenceError,
    RateLimitedError,
    ValidationError,
)
from .models import (
    BroadcastMessage,
    DesignRequest,
    MessageType,
    OrderStatus,
    RequestDraft,
    RequestStatus,
    SubmissionIdentity,
    new_record_id,
    utcnow,
)
from .notifications import NotificationDispatcher, NotificationKind
from .order_status import OrderStatusService
from .rate_limiter import RateLimiter
from .storage.request_store import RequestStore
from .validation import validate_draft

logger = logging.getLogger(__name__)


@dataclass
class LifecycleOutcome:
    """Result of a completed lifecycle step plus non-blocking warnings"""

    request: DesignRequest | None = None
    changed: bool = True
    warnings: list[NotificationError] = field(default_factory=list)

    @property
    def warning_messages(self) -> list[str]:
        return [str(w) for w in self.warnings]


class RequestLifecycle:
    """Composes validation, rate limiting, storage, notification and admin auth."""

    def __init__(
        self,
        store: RequestStore,
        rate_limiter: RateLimiter,
        dispatcher: NotificationDispatcher,
        session: AdminSession,
        broadcasts: BroadcastMessageService,
        order_status: OrderStatusService,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.dispatcher = dispatcher
        self.session = session
        self.broadcasts = broadcasts
        self.order_status = order_status
        self.clock = clock

    async def _notify(self, kind: NotificationKind, payload: dict[str, Any], warnings: list[NotificationError]) -> None:
        if not self.dispatcher.is_configured():
            return
        delivered = await self.dispatcher.notify(kind, payload)
        if not delivered:
            warnings.append(NotificationError(f"Saved, but the {kind.value} notification could not be delivered"))

    async def _require_admin(self, session_token: str | None) -> None:
        if not await self.session.is_authenticated(session_token):
            raise AuthorizationError("Admin session expired or missing; please log in again")

    async def _finish_privileged(self, session_token: str | None) -> None:
        if not await self.session.extend_session(session_token):
            logger.warning("Privileged action completed but the admin session could not be extended")

    async def submit(self, draft: RequestDraft, is_privileged: bool = False) -> LifecycleOutcome:
        errors = validate_draft(draft)
        if errors:
            raise ValidationError(errors)

        status = await self.order_status.current()
        if not status.accepting_orders and not is_privileged:
            raise OrdersClosedError(status.message or "We are not accepting new orders at the moment.")

        identity = SubmissionIdentity.from_draft(draft)
        decision = await self.rate_limiter.check_allowed(identity, is_privileged=is_privileged)
        if not decision.allowed:
            raise RateLimitedError(decision.retry_after_seconds or 1)

        request = draft.to_request(now=self.clock())
        result = await self.store.create(request)
        if not result.success:
            raise PersistenceError(result.error or "Request could not be saved")

        outcome = LifecycleOutcome(request=request)
        await self.rate_limiter.record_submission(identity)
        await self._notify(NotificationKind.NEW_REQUEST, request.to_record(), outcome.warnings)

        logger.info(f"Request {request.id} submitted by {identity.email} ({request.service_type})")
        return outcome

    async def decide(
        self,
        request_id: str,
        decision: RequestStatus,
        notes: str | None = None,
        *,
        session_token: str | None = None,
    ) -> LifecycleOutcome:
        await self._require_admin(session_token)

        result = await self.store.update_status(request_id, decision, notes)
        if not result.success:
            raise PersistenceError(result.error or f"Request {request_id} could not be updated")

        outcome = LifecycleOutcome(changed=bool(result.data))
        if outcome.changed:
            lookup = await self.store.get(request_id)
            if lookup.success and lookup.data is not None:
                outcome.request = lookup.data

            payload: dict[str, Any] = (
                outcome.request.to_record()
                if outcome.request is not None
                else {"id": request_id, "status": decision.value, "admin_notes": notes}
            )
            await self._notify(NotificationKind.STATUS_UPDATE, payload, outcome.warnings)
            await self._notify(
                NotificationKind.ADMIN_ALERT,
                {
                    "message": f"Request {request_id} was marked {decision.value}.",
                    "action": f"Status change: {decision.value}" + (f" ({notes.strip()})" if notes and notes.strip() else ""),
                },
                outcome.warnings,
            )

        await self._finish_privileged(session_token)
        return outcome

    async def list_requests(self, *, session_token: str | None = None) -> list[DesignRequest]:
        await self._require_admin(session_token)
        result = await self.store.list()
        if not result.success:
            raise PersistenceError(result.error or "Requests could not be loaded")
        return result.data

    async def announce(
        self,
        message: str,
        title: str | None = None,
        message_type: MessageType = MessageType.INFO,
        expires_at: datetime | None = None,
        *,
        session_token: str | None = None,
    ) -> tuple[BroadcastMessage, list[NotificationError]]:
        await self._require_admin(session_token)

        broadcast = BroadcastMessage(
            id=new_record_id(),
            title=title,
            message=message,
            type=message_type,
            created_at=self.clock(),
            expires_at=expires_at,
            is_active=True,
        )
        result = await self.broadcasts.create(broadcast)
        if not result.success:
            raise PersistenceError(result.error or "Message could not be saved")

        warnings: list[NotificationError] = []
        await self._notify(
            NotificationKind.ADMIN_ALERT,
            {"message": f"Broadcast published: {title or message[:80]}", "action": "Broadcast message created"},
            warnings,
        )
        await self._finish_privileged(session_token)
        return broadcast, warnings

    async def withdraw(self, message_id: str, *, session_token: str | None = None) -> bool:
        await self._require_admin(session_token)

        result = await self.broadcasts.deactivate(message_id)
        if not result.success:
            raise PersistenceError(result.error or f"Message {message_id} could not be deactivated")

        await self._notify(
            NotificationKind.ADMIN_ALERT,
            {"message": f"Broadcast {message_id} withdrawn", "action": "Broadcast message deactivated"},
            [],
        )
        await self._finish_privileged(session_token)
        return bool(result.data)

    async def set_order_status(
        self, accepting: bool, message: str | None = None, *, session_token: str | None = None
    ) -> tuple[OrderStatus, list[NotificationError]]:
        await self._require_admin(session_token)

        status = await self.order_status.set_accepting(accepting, message)
        warnings: list[NotificationError] = []
        await self._notify(NotificationKind.ORDER_STATUS, status.to_record(), warnings)
        await self._finish_privileged(session_token)
        return status, warnings
