"""
Messages Router - system-wide broadcast announcements.

Anyone can read active messages; publishing and withdrawing need an admin
session. Reads are served from the background poller's snapshot when it is
running. Dismissal is remembered per device: clients identify themselves
with an X-Device-Id header.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from intake.models import BroadcastMessage, MessageType, utcnow

from ..dependencies import Services, get_services, get_session_token
from ..schemas.messages import BroadcastMessageCreate, BroadcastMessageResponse, PublishResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["messages"])


async def _active_messages(services: Services) -> list[BroadcastMessage]:
    if services.poller is not None:
        snapshot = services.poller.snapshot()
        if snapshot is not None:
            return snapshot

    result = await services.broadcasts.list_active()
    if not result.success:
        raise HTTPException(status_code=503, detail=result.error)
    return result.data


async def _refresh_snapshot(services: Services) -> None:
    if services.poller is not None:
        await services.poller.poll_once()


@router.get("", response_model=list[BroadcastMessageResponse])
async def list_messages(
    include_dismissed: bool = Query(False, description="Also return messages this device dismissed"),
    device_id: str | None = Header(None, alias="X-Device-Id", min_length=1, max_length=128),
    services: Services = Depends(get_services),
) -> list[BroadcastMessageResponse]:
    """Active, unexpired messages, newest first."""
    messages = await _active_messages(services)
    if device_id and not include_dismissed:
        messages = await services.dismissed.filter_unseen(device_id, messages)
    return [BroadcastMessageResponse.from_domain(m) for m in messages]


@router.post("", response_model=PublishResponse, status_code=201)
async def publish_message(
    body: BroadcastMessageCreate,
    services: Services = Depends(get_services),
    token: str | None = Depends(get_session_token),
) -> PublishResponse:
    """Publish a broadcast message (admin only)."""
    expires_at = body.expires_at
    if expires_at is None and body.expires_in_minutes:
        expires_at = utcnow() + timedelta(minutes=body.expires_in_minutes)

    message, warnings = await services.lifecycle.announce(
        body.message,
        title=body.title,
        message_type=MessageType(body.type),
        expires_at=expires_at,
        session_token=token,
    )
    await _refresh_snapshot(services)
    return PublishResponse(
        message=BroadcastMessageResponse.from_domain(message),
        warnings=[str(w) for w in warnings],
    )


@router.delete("/{message_id}")
async def deactivate_message(
    message_id: str,
    services: Services = Depends(get_services),
    token: str | None = Depends(get_session_token),
) -> dict[str, object]:
    """Withdraw a broadcast message (admin only)."""
    updated = await services.lifecycle.withdraw(message_id, session_token=token)
    await _refresh_snapshot(services)
    return {"id": message_id, "deactivated": updated}


@router.post("/{message_id}/dismiss")
async def dismiss_message(
    message_id: str,
    device_id: str | None = Header(None, alias="X-Device-Id", min_length=1, max_length=128),
    services: Services = Depends(get_services),
) -> dict[str, object]:
    """Hide a message on the calling device."""
    if not device_id:
        raise HTTPException(status_code=400, detail="X-Device-Id header is required to dismiss a message")
    await services.dismissed.dismiss(device_id, message_id)
    return {"id": message_id, "dismissed": True}
