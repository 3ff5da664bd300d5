"""
Shared dependencies for the Intake API.

This module provides:
- Service wiring (local cache, runtime config, backends, lifecycle)
- The per-client login guard
- FastAPI dependency functions: services, the caller's session token, admin checks
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from fastapi import Depends, Header, HTTPException, Request

from intake.admin_session import AdminSession
from intake.broadcast import BroadcastMessageService, BroadcastPoller, DismissedMessages
from intake.lifecycle import RequestLifecycle
from intake.notifications import NotificationDispatcher
from intake.order_status import OrderStatusService
from intake.rate_limiter import RateLimiter
from intake.runtime_config import RuntimeConfig, RuntimeConfigManager
from intake.storage.backends import FallbackPersistence, LocalBackend, PocketBaseBackend
from intake.storage.local_cache import LocalCache
from intake.storage.request_store import RequestStore

from .services.login_guard import LoginAttemptGuard
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the routers need, built once per process."""

    settings: Settings
    cache: LocalCache
    runtime_config: RuntimeConfig
    config_manager: RuntimeConfigManager
    remote: PocketBaseBackend
    persistence: FallbackPersistence
    store: RequestStore
    rate_limiter: RateLimiter
    dispatcher: NotificationDispatcher
    session: AdminSession
    broadcasts: BroadcastMessageService
    dismissed: DismissedMessages
    order_status: OrderStatusService
    lifecycle: RequestLifecycle
    login_guard: LoginAttemptGuard
    poller: BroadcastPoller | None = None


def build_services(settings: Settings) -> Services:
    """Wire the service graph; RuntimeConfig is shared by reference."""
    cache = LocalCache(settings.local_cache_path)
    runtime_config = RuntimeConfig(
        remote_url=settings.remote_url,
        remote_key=settings.remote_key,
        notify_endpoint=settings.notify_endpoint,
    )
    remote = PocketBaseBackend(runtime_config)
    persistence = FallbackPersistence(remote, LocalBackend(cache), remote_timeout=settings.remote_timeout_seconds)

    store = RequestStore(persistence)
    rate_limiter = RateLimiter(persistence, window=timedelta(seconds=settings.rate_limit_window_seconds))
    dispatcher = NotificationDispatcher(runtime_config, timeout_seconds=settings.notify_timeout_seconds)
    session = AdminSession(cache, settings.admin_passcode, duration=timedelta(minutes=settings.admin_session_minutes))
    broadcasts = BroadcastMessageService(persistence)
    order_status = OrderStatusService(persistence)

    lifecycle = RequestLifecycle(
        store=store,
        rate_limiter=rate_limiter,
        dispatcher=dispatcher,
        session=session,
        broadcasts=broadcasts,
        order_status=order_status,
    )

    poller = None
    if settings.broadcast_poll_seconds > 0:
        poller = BroadcastPoller(broadcasts, interval_seconds=settings.broadcast_poll_seconds)

    return Services(
        settings=settings,
        cache=cache,
        runtime_config=runtime_config,
        config_manager=RuntimeConfigManager(cache, runtime_config),
        remote=remote,
        persistence=persistence,
        store=store,
        rate_limiter=rate_limiter,
        dispatcher=dispatcher,
        session=session,
        broadcasts=broadcasts,
        dismissed=DismissedMessages(cache),
        order_status=order_status,
        lifecycle=lifecycle,
        login_guard=LoginAttemptGuard(
            max_attempts=settings.max_login_attempts,
            lockout=timedelta(minutes=settings.login_lockout_minutes),
        ),
        poller=poller,
    )


class ServiceState:
    """Holds the process-wide Services instance."""

    services: Services | None = None


service_state = ServiceState()


def get_services() -> Services:
    """FastAPI dependency returning the wired services."""
    if service_state.services is None:
        service_state.services = build_services(get_settings())
    return service_state.services


def extract_bearer_token(authorization_header: str | None) -> str | None:
    """Extract bearer token from Authorization header."""
    if not authorization_header:
        return None

    parts = authorization_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


def get_session_token(authorization: str | None = Header(None)) -> str | None:
    """The admin session token the caller presents, if any."""
    return extract_bearer_token(authorization)


def get_client_key(request: Request) -> str:
    """Key for per-client login throttling: the caller's network address."""
    return request.client.host if request.client else "unknown"


async def is_admin_caller(
    services: Services = Depends(get_services),
    token: str | None = Depends(get_session_token),
) -> bool:
    """True when this request carries a live admin session."""
    return await services.session.is_authenticated(token)


async def require_admin_session(
    services: Services = Depends(get_services),
    token: str | None = Depends(get_session_token),
) -> Services:
    """
    Dependency to require a live admin session on this request.

    Usage:
        @router.get("/admin/protected")
        async def admin_route(services: Services = Depends(require_admin_session)):
            ...
    """
    if not await services.session.is_authenticated(token):
        raise HTTPException(status_code=401, detail="Admin session expired or missing")
    return services


__all__ = [
    "Services",
    "build_services",
    "get_client_key",
    "get_services",
    "get_session_token",
    "is_admin_caller",
    "require_admin_session",
    "service_state",
]
