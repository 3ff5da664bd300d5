"""System-wide broadcast messages.

Messages are stored with the same remote-first / local-fallback policy as
design requests. A message is shown while it is active and not expired;
each device additionally remembers which messages it has dismissed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from .errors import PersistenceError
from .models import BroadcastMessage, utcnow
from .storage.backends import BROADCAST_TABLE, FallbackPersistence, PersistenceBackend, Query
from .storage.local_cache import DISMISSED_MESSAGES_KEY, LocalCache
from .storage.request_store import StoreResult

logger = logging.getLogger(__name__)


class BroadcastMessageService:
    """Create, list and deactivate broadcast messages."""

    def __init__(self, persistence: FallbackPersistence, clock: Callable[[], datetime] = utcnow):
        self.persistence = persistence
        self.clock = clock

    async def create(self, message: BroadcastMessage) -> StoreResult:
        record = message.to_record()

        async def insert(backend: PersistenceBackend) -> dict[str, Any]:
            return await backend.insert(BROADCAST_TABLE, record)

        try:
            _, backend = await self.persistence.run(f"create message {message.id}", insert)
        except PersistenceError as e:
            return StoreResult.failed(str(e))

        if backend is not self.persistence.local:
            try:
                await self.persistence.local.insert(BROADCAST_TABLE, record)
            except Exception as e:
                logger.warning(f"Could not mirror message {message.id} locally: {e}")

        logger.info(f"Broadcast message {message.id} saved to {backend.name} store")
        return StoreResult.ok(message, backend)

    async def list_active(self) -> StoreResult:
        """Active, unexpired messages, newest first."""

        async def select(backend: PersistenceBackend) -> list[dict[str, Any]]:
            return await backend.select(BROADCAST_TABLE, Query(equals={"is_active": True}))

        try:
            records, backend = await self.persistence.run("list messages", select)
        except PersistenceError as e:
            return StoreResult.failed(str(e))

        if backend is not self.persistence.local:
            try:
                await self.persistence.local.replace_all(BROADCAST_TABLE, records)
            except Exception as e:
                logger.warning(f"Could not refresh local messages: {e}")

        now = self.clock()
        messages: list[BroadcastMessage] = []
        for record in records:
            try:
                message = BroadcastMessage.from_record(record)
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed message record {record.get('id')}: {e}")
                continue
            if message.is_displayable(now):
                messages.append(message)

        messages.sort(key=lambda m: m.created_at, reverse=True)
        return StoreResult.ok(messages, backend)

    async def deactivate(self, message_id: str) -> StoreResult:
        async def update(backend: PersistenceBackend) -> bool:
            return await backend.update(BROADCAST_TABLE, message_id, {"is_active": False})

        try:
            found, backend = await self.persistence.run(f"deactivate message {message_id}", update)
        except PersistenceError as e:
            return StoreResult.failed(str(e))

        if backend is not self.persistence.local:
            try:
                await self.persistence.local.update(BROADCAST_TABLE, message_id, {"is_active": False})
            except Exception as e:
                logger.warning(f"Could not mirror deactivation of {message_id}: {e}")

        logger.info(f"Broadcast message {message_id} deactivated in {backend.name} store")
        return StoreResult.ok(found, backend)


class DismissedMessages:
    """Per-device sets of message ids the user has already dismissed.

    All devices share one cache entry, a mapping of device id to the sorted
    list of dismissed ids.
    """

    def __init__(self, cache: LocalCache):
        self.cache = cache
        self._lock = asyncio.Lock()

    async def _load_all(self) -> dict[str, list[str]]:
        stored = await self.cache.get(DISMISSED_MESSAGES_KEY, default={})
        return stored if isinstance(stored, dict) else {}

    async def load(self, device_id: str) -> set[str]:
        stored = (await self._load_all()).get(device_id, [])
        return set(stored) if isinstance(stored, list) else set()

    async def dismiss(self, device_id: str, message_id: str) -> None:
        async with self._lock:
            devices = await self._load_all()
            dismissed = set(devices.get(device_id) or [])
            if message_id in dismissed:
                return
            dismissed.add(message_id)
            devices[device_id] = sorted(dismissed)
            await self.cache.set(DISMISSED_MESSAGES_KEY, devices)

    async def filter_unseen(self, device_id: str, messages: list[BroadcastMessage]) -> list[BroadcastMessage]:
        dismissed = await self.load(device_id)
        return [m for m in messages if m.id not in dismissed]


class BroadcastPoller:
    """Periodically reads active messages; the API serves reads from its snapshot.

    Read-only: it never touches request or submission state.
    """

    def __init__(
        self,
        service: BroadcastMessageService,
        interval_seconds: float = 30.0,
        on_update: Callable[[list[BroadcastMessage]], Awaitable[None]] | None = None,
    ):
        self.service = service
        self.interval_seconds = interval_seconds
        self.on_update = on_update
        self.latest: list[BroadcastMessage] = []
        self.last_polled_at: datetime | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def snapshot(self) -> list[BroadcastMessage] | None:
        """Latest polled messages still displayable now, or None before the first poll."""
        if self.last_polled_at is None:
            return None
        now = self.service.clock()
        return [m for m in self.latest if m.is_displayable(now)]

    async def poll_once(self) -> list[BroadcastMessage]:
        result = await self.service.list_active()
        if not result.success:
            logger.warning(f"Broadcast poll failed: {result.error}")
            return self.latest

        self.latest = result.data
        self.last_polled_at = self.service.clock()
        if self.on_update is not None:
            try:
                await self.on_update(self.latest)
            except Exception as e:
                logger.error(f"Broadcast update callback failed: {e}")
        return self.latest

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception as e:
                logger.error(f"Broadcast poll raised, will retry next interval: {e}")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="broadcast-poller")
        logger.info(f"Broadcast poller started (every {self.interval_seconds:g}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Broadcast poller stopped")
