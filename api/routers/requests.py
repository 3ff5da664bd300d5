"""
Requests Router - design request submission and moderation.

Clients submit requests here; admins list them and record decisions.
Domain errors (validation, rate limit, authorization, persistence) are
translated to HTTP responses by the handlers registered in api.main.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from intake.errors import PersistenceError
from intake.models import RequestStatus

from ..dependencies import Services, get_services, get_session_token, is_admin_caller
from ..schemas.requests import (
    DecisionResponse,
    DesignRequestCreate,
    DesignRequestResponse,
    StatusDecision,
    SubmitResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/requests", tags=["requests"])


@router.post("", response_model=SubmitResponse, status_code=201)
async def submit_request(
    body: DesignRequestCreate,
    services: Services = Depends(get_services),
    is_admin: bool = Depends(is_admin_caller),
) -> SubmitResponse:
    """Submit a new design request.

    Callers presenting a live admin session bypass the anti-spam window and
    the order-intake switch.
    """
    outcome = await services.lifecycle.submit(body.to_draft(), is_privileged=is_admin)
    if outcome.request is None:
        raise PersistenceError("Request was not returned after saving")

    return SubmitResponse(
        request=DesignRequestResponse.from_domain(outcome.request),
        warnings=outcome.warning_messages,
    )


@router.get("", response_model=list[DesignRequestResponse])
async def list_requests(
    services: Services = Depends(get_services),
    token: str | None = Depends(get_session_token),
) -> list[DesignRequestResponse]:
    """List all requests newest-first (admin only)."""
    requests = await services.lifecycle.list_requests(session_token=token)
    return [DesignRequestResponse.from_domain(r) for r in requests]


@router.patch("/{request_id}/status", response_model=DecisionResponse)
async def decide_request(
    request_id: str,
    body: StatusDecision,
    services: Services = Depends(get_services),
    token: str | None = Depends(get_session_token),
) -> DecisionResponse:
    """Accept, reject or otherwise move a request (admin only)."""
    status = RequestStatus(body.status)
    outcome = await services.lifecycle.decide(request_id, status, body.admin_notes, session_token=token)

    return DecisionResponse(
        request_id=request_id,
        status=status.value,
        updated=outcome.changed,
        request=DesignRequestResponse.from_domain(outcome.request) if outcome.request else None,
        warnings=outcome.warning_messages,
    )
