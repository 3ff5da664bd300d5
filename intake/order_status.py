"""Order intake open/closed switch.

Every change is stored as a new record; the most recent one is current.
With no record at all the studio is considered open.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from .errors import PersistenceError
from .models import OrderStatus, utcnow
from .storage.backends import ORDER_STATUS_TABLE, FallbackPersistence, PersistenceBackend, Query

logger = logging.getLogger(__name__)

DEFAULT_OPEN_MESSAGE = "We are now accepting new design requests! Submit your projects now."
DEFAULT_CLOSED_MESSAGE = "We have temporarily closed new orders. Join our Discord for updates on when we reopen."


class OrderStatusService:
    def __init__(self, persistence: FallbackPersistence, clock: Callable[[], datetime] = utcnow):
        self.persistence = persistence
        self.clock = clock

    async def current(self) -> OrderStatus:
        """Latest status; falls back to open when nothing can be read."""

        async def select(backend: PersistenceBackend) -> list[dict[str, Any]]:
            return await backend.select(ORDER_STATUS_TABLE, Query(order_by="updated_at", limit=1))

        try:
            records, _ = await self.persistence.run("read order status", select)
        except PersistenceError as e:
            logger.warning(f"Order status unavailable, assuming open: {e}")
            return OrderStatus(accepting_orders=True, updated_at=self.clock())

        if not records:
            return OrderStatus(accepting_orders=True, updated_at=self.clock())
        return OrderStatus.from_record(records[0])

    async def set_accepting(self, accepting: bool, message: str | None = None) -> OrderStatus:
        """Persist a new status; raises PersistenceError if no backend accepts it."""
        text = (message or "").strip() or (DEFAULT_OPEN_MESSAGE if accepting else DEFAULT_CLOSED_MESSAGE)
        status = OrderStatus(accepting_orders=accepting, message=text, updated_at=self.clock())
        record = status.to_record()

        async def insert(backend: PersistenceBackend) -> dict[str, Any]:
            return await backend.insert(ORDER_STATUS_TABLE, record)

        _, backend = await self.persistence.run("set order status", insert)
        if backend is not self.persistence.local:
            try:
                await self.persistence.local.insert(ORDER_STATUS_TABLE, record)
            except Exception as e:
                logger.warning(f"Could not mirror order status locally: {e}")

        logger.info(f"Order intake {'opened' if accepting else 'closed'} ({backend.name} store)")
        return status
