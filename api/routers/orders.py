"""
Orders Router - open or close order intake.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..dependencies import Services, get_services, get_session_token
from ..schemas.config import OrderStatusResponse, OrderStatusUpdate

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("/status", response_model=OrderStatusResponse)
async def get_order_status(services: Services = Depends(get_services)) -> OrderStatusResponse:
    status = await services.order_status.current()
    return OrderStatusResponse(
        accepting_orders=status.accepting_orders,
        message=status.message,
        updated_at=status.updated_at,
    )


@router.put("/status", response_model=OrderStatusResponse)
async def set_order_status(
    body: OrderStatusUpdate,
    services: Services = Depends(get_services),
    token: str | None = Depends(get_session_token),
) -> OrderStatusResponse:
    """Open or close order intake (admin only)."""
    status, warnings = await services.lifecycle.set_order_status(
        body.accepting_orders, body.message, session_token=token
    )
    return OrderStatusResponse(
        accepting_orders=status.accepting_orders,
        message=status.message,
        updated_at=status.updated_at,
        warnings=[str(w) for w in warnings],
    )
