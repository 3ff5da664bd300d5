"""Request store with remote-first persistence and local reconciliation.

Handles all persistence of DesignRequest records. Every operation returns a
StoreResult instead of raising, so callers decide how a failure surfaces."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..errors import PersistenceError
from ..models import DesignRequest, RequestStatus, format_timestamp, utcnow
from .backends import REQUESTS_TABLE, FallbackPersistence, PersistenceBackend, Query

logger = logging.getLogger(__name__)


@dataclass
class StoreResult:
    """Outcome of a store operation"""

    success: bool
    data: Any = None
    error: str | None = None
    backend: str | None = None

    @classmethod
    def ok(cls, data: Any = None, backend: PersistenceBackend | None = None) -> StoreResult:
        return cls(success=True, data=data, backend=backend.name if backend else None)

    @classmethod
    def failed(cls, error: str) -> StoreResult:
        return cls(success=False, error=error)


class RequestStore:
    """Durable CRUD for design requests over FallbackPersistence.

    When the remote store answers, the local cache is brought in line with it:
    writes are mirrored, and a full list overwrites the local collection.
    """

    def __init__(self, persistence: FallbackPersistence, clock: Callable[[], datetime] = utcnow):
        self.persistence = persistence
        self.clock = clock

    async def _mirror(self, description: str, action: Any) -> None:
        try:
            await action
        except Exception as e:
            logger.warning(f"Could not mirror {description} into the local cache: {e}")

    async def create(self, request: DesignRequest) -> StoreResult:
        record = request.to_record()

        async def insert(backend: PersistenceBackend) -> dict[str, Any]:
            return await backend.insert(REQUESTS_TABLE, record)

        try:
            _, backend = await self.persistence.run(f"create request {request.id}", insert)
        except PersistenceError as e:
            return StoreResult.failed(str(e))

        if backend is not self.persistence.local:
            await self._mirror(f"request {request.id}", self.persistence.local.insert(REQUESTS_TABLE, record))

        logger.info(f"Request {request.id} saved to {backend.name} store")
        return StoreResult.ok(request, backend)

    async def list(self) -> StoreResult:
        """All requests, newest first."""

        async def select(backend: PersistenceBackend) -> list[dict[str, Any]]:
            return await backend.select(REQUESTS_TABLE, Query(order_by="created_at", descending=True))

        try:
            records, backend = await self.persistence.run("list requests", select)
        except PersistenceError as e:
            return StoreResult.failed(str(e))

        if backend is not self.persistence.local:
            await self._mirror(
                f"{len(records)} requests", self.persistence.local.replace_all(REQUESTS_TABLE, records)
            )

        requests: list[DesignRequest] = []
        for record in records:
            try:
                requests.append(DesignRequest.from_record(record))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed request record {record.get('id')}: {e}")

        requests.sort(key=lambda r: r.created_at, reverse=True)
        logger.debug(f"Loaded {len(requests)} requests from {backend.name} store")
        return StoreResult.ok(requests, backend)

    async def get(self, request_id: str) -> StoreResult:
        """One request by id; data is None when it does not exist."""

        async def select(backend: PersistenceBackend) -> list[dict[str, Any]]:
            return await backend.select(REQUESTS_TABLE, Query(equals={"id": request_id}, limit=1))

        try:
            records, backend = await self.persistence.run(f"get request {request_id}", select)
        except PersistenceError as e:
            return StoreResult.failed(str(e))

        request = DesignRequest.from_record(records[0]) if records else None
        return StoreResult.ok(request, backend)

    async def update_status(self, request_id: str, status: RequestStatus, notes: str | None = None) -> StoreResult:
        """Set status (and notes when non-empty); an unknown id is a no-op success.

        data is True when a record was changed, False for the no-op case.
        """
        changes: dict[str, Any] = {
            "status": status.value,
            "updated_at": format_timestamp(self.clock()),
        }
        if notes and notes.strip():
            changes["admin_notes"] = notes.strip()

        async def update(backend: PersistenceBackend) -> bool:
            return await backend.update(REQUESTS_TABLE, request_id, changes)

        try:
            found, backend = await self.persistence.run(f"update request {request_id}", update)
        except PersistenceError as e:
            return StoreResult.failed(str(e))

        if backend is not self.persistence.local:
            await self._mirror(
                f"status of {request_id}", self.persistence.local.update(REQUESTS_TABLE, request_id, changes)
            )

        if found:
            logger.info(f"Request {request_id} marked {status.value} in {backend.name} store")
        else:
            logger.info(f"Request {request_id} not found in {backend.name} store; nothing to update")
        return StoreResult.ok(found, backend)
