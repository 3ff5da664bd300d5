"""
Admin Router - passcode login, session extension and logout.

A successful login returns an opaque session token; privileged calls carry
it as "Authorization: Bearer <token>". The login form lockout
(LoginAttemptGuard) is enforced here per client, in front of AdminSession,
so that the session object itself stays a plain state machine.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import Services, get_client_key, get_services, get_session_token, require_admin_session
from ..schemas.admin import LoginRequest, SessionResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


async def _session_response(
    services: Services, token: str | None, client_key: str, issued: bool = False
) -> SessionResponse:
    state = await services.session.session_info(token)
    guard = services.login_guard
    return SessionResponse(
        authenticated=state is not None,
        session_token=token if issued and state is not None else None,
        login_time=state.login_time if state else None,
        expires_at=state.expires_at if state else None,
        locked=guard.locked(client_key),
        remaining_attempts=guard.remaining_attempts(client_key),
    )


@router.post("/login", response_model=SessionResponse)
async def login(
    body: LoginRequest,
    services: Services = Depends(get_services),
    client_key: str = Depends(get_client_key),
) -> SessionResponse:
    """Authenticate with the shared passcode and receive a session token."""
    guard = services.login_guard
    guard.ensure_unlocked(client_key)

    token = await services.session.authenticate(body.passcode)
    if token is None:
        guard.record_failure(client_key)
        raise HTTPException(
            status_code=401,
            detail={
                "message": "Invalid passcode",
                "remaining_attempts": guard.remaining_attempts(client_key),
                "locked": guard.locked(client_key),
            },
        )

    guard.record_success(client_key)
    return await _session_response(services, token, client_key, issued=True)


@router.get("/session", response_model=SessionResponse)
async def get_session(
    services: Services = Depends(get_services),
    token: str | None = Depends(get_session_token),
    client_key: str = Depends(get_client_key),
) -> SessionResponse:
    return await _session_response(services, token, client_key)


@router.post("/extend", response_model=SessionResponse)
async def extend_session(
    services: Services = Depends(get_services),
    token: str | None = Depends(get_session_token),
    client_key: str = Depends(get_client_key),
) -> SessionResponse:
    """Reset the session expiry; fails when no session is active."""
    if not await services.session.extend_session(token):
        raise HTTPException(status_code=401, detail="No active admin session")
    return await _session_response(services, token, client_key)


@router.post("/logout", response_model=SessionResponse)
async def logout(
    services: Services = Depends(get_services),
    token: str | None = Depends(get_session_token),
    client_key: str = Depends(get_client_key),
) -> SessionResponse:
    await services.session.logout(token)
    return await _session_response(services, None, client_key)


@router.delete("/lockouts")
async def clear_lockouts(services: Services = Depends(require_admin_session)) -> dict[str, bool]:
    """Lift every login lockout (admin only)."""
    services.login_guard.reset()
    return {"cleared": True}
