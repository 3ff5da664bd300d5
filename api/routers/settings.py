"""
Settings Router - runtime configuration of the remote store and webhook.

Each value can be set, tested and removed independently while the service
runs. All endpoints require an admin session; a successful change extends it.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from intake.runtime_config import mask_url

from ..dependencies import Services, get_session_token, require_admin_session
from ..schemas.config import (
    ConfigStatusResponse,
    ConnectionTestResponse,
    RemoteConfigUpdate,
    WebhookConfigUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])


def _status(services: Services) -> ConfigStatusResponse:
    config = services.runtime_config
    return ConfigStatusResponse(
        remote_configured=config.remote_configured,
        remote_url=config.remote_url or "Not configured",
        notify_configured=config.notify_configured,
        notify_url=mask_url(config.notify_endpoint),
    )


@router.get("", response_model=ConfigStatusResponse)
async def get_config_status(services: Services = Depends(require_admin_session)) -> ConfigStatusResponse:
    return _status(services)


@router.put("/webhook", response_model=ConfigStatusResponse)
async def set_webhook(
    body: WebhookConfigUpdate,
    services: Services = Depends(require_admin_session),
    token: str | None = Depends(get_session_token),
) -> ConfigStatusResponse:
    """Store a new webhook URL; non-Discord URLs are rejected before storing."""
    await services.config_manager.set_notify_endpoint(body.url)
    await services.session.extend_session(token)
    return _status(services)


@router.post("/webhook/test", response_model=ConnectionTestResponse)
async def test_webhook(services: Services = Depends(require_admin_session)) -> ConnectionTestResponse:
    success, message = await services.dispatcher.test_connection()
    return ConnectionTestResponse(success=success, message=message)


@router.delete("/webhook", response_model=ConfigStatusResponse)
async def remove_webhook(
    services: Services = Depends(require_admin_session),
    token: str | None = Depends(get_session_token),
) -> ConfigStatusResponse:
    await services.config_manager.remove_notify_endpoint()
    await services.session.extend_session(token)
    return _status(services)


@router.put("/remote", response_model=ConfigStatusResponse)
async def set_remote(
    body: RemoteConfigUpdate,
    services: Services = Depends(require_admin_session),
    token: str | None = Depends(get_session_token),
) -> ConfigStatusResponse:
    await services.config_manager.set_remote(body.url, body.key)
    await services.session.extend_session(token)
    return _status(services)


@router.post("/remote/test", response_model=ConnectionTestResponse)
async def test_remote(services: Services = Depends(require_admin_session)) -> ConnectionTestResponse:
    success, message = await services.remote.probe(timeout=services.settings.remote_timeout_seconds)
    return ConnectionTestResponse(success=success, message=message)


@router.delete("/remote", response_model=ConfigStatusResponse)
async def remove_remote(
    services: Services = Depends(require_admin_session),
    token: str | None = Depends(get_session_token),
) -> ConfigStatusResponse:
    await services.config_manager.remove_remote()
    await services.session.extend_session(token)
    return _status(services)
