"""Persistence backends for the remote-first / local-fallback policy.

PersistenceBackend is the contract shared by the PocketBase remote store and
the SQLite local cache. FallbackPersistence composes the two: it runs an
operation against the remote backend when one is configured, and against the
local cache when the remote is missing, fails, or times out. Exactly one
backend satisfies each call; results are never merged."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import httpx

from pocketbase import PocketBase
from pocketbase.client import ClientResponseError  # type: ignore[attr-defined]

from ..errors import PersistenceError
from ..logging_config import TRACE
from ..runtime_config import RuntimeConfig
from .local_cache import (
    DESIGN_REQUESTS_KEY,
    GLOBAL_MESSAGES_KEY,
    ORDER_STATUS_KEY,
    SUBMISSION_RECORDS_KEY,
    LocalCache,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Logical tables and the local cache key that mirrors each of them
REQUESTS_TABLE = "requests"
BROADCAST_TABLE = "broadcast_messages"
SUBMISSIONS_TABLE = "submission_records"
ORDER_STATUS_TABLE = "order_status"

LOCAL_KEYS = {
    REQUESTS_TABLE: DESIGN_REQUESTS_KEY,
    BROADCAST_TABLE: GLOBAL_MESSAGES_KEY,
    SUBMISSIONS_TABLE: SUBMISSION_RECORDS_KEY,
    ORDER_STATUS_TABLE: ORDER_STATUS_KEY,
}

# Attributes the PocketBase SDK sets on Record objects that are not our fields
_SDK_RECORD_ATTRS = {"collection_id", "collection_name", "expand", "created", "updated"}


class BackendUnavailableError(Exception):
    """Raised by a backend that is not configured or cannot be reached."""

    pass


@dataclass(frozen=True)
class Query:
    """Filtered select over one table.

    equals: every column must match (AND)
    any_of: at least one column must match (OR); empty values are ignored
    since: (column, iso_timestamp) lower bound, inclusive
    """

    equals: dict[str, Any] = field(default_factory=dict)
    any_of: dict[str, Any] = field(default_factory=dict)
    since: tuple[str, str] | None = None
    order_by: str = "created_at"
    descending: bool = True
    limit: int | None = None

    def matches(self, record: dict[str, Any]) -> bool:
        if any(record.get(column) != value for column, value in self.equals.items()):
            return False
        candidates = {column: value for column, value in self.any_of.items() if value not in (None, "")}
        if self.any_of and not any(record.get(column) == value for column, value in candidates.items()):
            return False
        if self.since is not None:
            column, bound = self.since
            value = record.get(column)
            if not value or str(value) < bound:
                return False
        return True


class PersistenceBackend(ABC):
    """Abstract contract for a record store with insert, select and update-by-id."""

    name: str = "backend"

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether this backend should be attempted at all"""
        pass

    @abstractmethod
    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        """Insert a record and return it as stored"""
        pass

    @abstractmethod
    async def select(self, table: str, query: Query | None = None) -> list[dict[str, Any]]:
        """Return records matching query, ordered as requested"""
        pass

    @abstractmethod
    async def update(self, table: str, record_id: str, changes: dict[str, Any]) -> bool:
        """Apply changes to one record; returns False if the id does not exist"""
        pass


def _sort_records(records: list[dict[str, Any]], query: Query) -> list[dict[str, Any]]:
    ordered = sorted(records, key=lambda r: str(r.get(query.order_by) or ""), reverse=query.descending)
    if query.limit is not None:
        ordered = ordered[: query.limit]
    return ordered


class LocalBackend(PersistenceBackend):
    """Backend over the local key/value cache; each table is one JSON list."""

    name = "local"

    def __init__(self, cache: LocalCache):
        self.cache = cache

    def is_configured(self) -> bool:
        return True

    def _key(self, table: str) -> str:
        try:
            return LOCAL_KEYS[table]
        except KeyError as e:
            raise ValueError(f"Unknown table: {table}") from e

    async def _load(self, table: str) -> list[dict[str, Any]]:
        records = await self.cache.get(self._key(table), default=[])
        return records if isinstance(records, list) else []

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        records = await self._load(table)
        # Same id replaces the previous copy so a mirrored insert never duplicates
        records = [r for r in records if r.get("id") != record.get("id")]
        records.append(dict(record))
        await self.cache.set(self._key(table), records)
        return dict(record)

    async def select(self, table: str, query: Query | None = None) -> list[dict[str, Any]]:
        query = query or Query()
        records = [r for r in await self._load(table) if query.matches(r)]
        return _sort_records(records, query)

    async def update(self, table: str, record_id: str, changes: dict[str, Any]) -> bool:
        records = await self._load(table)
        found = False
        for record in records:
            if record.get("id") == record_id:
                record.update(changes)
                found = True
        if found:
            await self.cache.set(self._key(table), records)
        return found

    async def replace_all(self, table: str, records: list[dict[str, Any]]) -> None:
        """Overwrite the local copy of a table with the authoritative set."""
        await self.cache.set(self._key(table), [dict(r) for r in records])


def _quote(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_filter(query: Query) -> str:
    """Render a Query as a PocketBase filter expression."""
    parts = [f"{column} = {_quote(value)}" for column, value in query.equals.items()]

    alternatives = [f"{column} = {_quote(value)}" for column, value in query.any_of.items() if value not in (None, "")]
    if alternatives:
        parts.append("(" + " || ".join(alternatives) + ")")

    if query.since is not None:
        column, bound = query.since
        parts.append(f"{column} >= {_quote(bound)}")

    return " && ".join(parts)


def record_to_dict(record: Any) -> dict[str, Any]:
    """Convert a PocketBase Record (or an already-plain dict) to our field dict."""
    if isinstance(record, dict):
        return dict(record)
    return {key: value for key, value in vars(record).items() if not key.startswith("_") and key not in _SDK_RECORD_ATTRS}


class PocketBaseBackend(PersistenceBackend):
    """Authoritative remote store on PocketBase.

    The SDK is synchronous, so each call runs in a worker thread. The client
    is rebuilt whenever the shared RuntimeConfig changes URL or key.
    """

    name = "remote"

    def __init__(self, config: RuntimeConfig):
        self.config = config
        self._client: PocketBase | None = None
        self._client_identity: tuple[str, str] | None = None

    def is_configured(self) -> bool:
        return self.config.remote_configured

    def _get_client(self) -> PocketBase:
        if not self.is_configured():
            raise BackendUnavailableError("Remote store not configured")

        identity = (self.config.remote_url, self.config.remote_key)
        if self._client is None or self._client_identity != identity:
            client = PocketBase(self.config.remote_url)
            if self.config.remote_key:
                client.auth_store.save(self.config.remote_key, None)
            self._client = client
            self._client_identity = identity
        return self._client

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        client = self._get_client()
        created = await asyncio.to_thread(client.collection(table).create, record)
        return record_to_dict(created) if created is not None else dict(record)

    async def select(self, table: str, query: Query | None = None) -> list[dict[str, Any]]:
        query = query or Query()
        client = self._get_client()

        params: dict[str, Any] = {"sort": f"{'-' if query.descending else ''}{query.order_by}"}
        filter_str = build_filter(query)
        if filter_str:
            params["filter"] = filter_str
        logger.log(TRACE, f"PocketBase select {table} with params: {params}")

        if query.limit is not None:
            result = await asyncio.to_thread(
                client.collection(table).get_list, 1, query.limit, query_params=params
            )
            items = result.items
        else:
            items = await asyncio.to_thread(client.collection(table).get_full_list, query_params=params)

        return [record_to_dict(item) for item in items]

    async def update(self, table: str, record_id: str, changes: dict[str, Any]) -> bool:
        client = self._get_client()
        try:
            await asyncio.to_thread(client.collection(table).update, record_id, changes)
        except ClientResponseError as e:
            # Unknown id is an answer from the authoritative store, not an outage
            if getattr(e, "status", None) == 404:
                logger.info(f"No {table} record with id {record_id} on the remote store")
                return False
            raise
        return True

    async def probe(self, timeout: float = 5.0) -> tuple[bool, str]:
        """Connectivity check against the server's health endpoint."""
        if not self.is_configured():
            return False, "Remote store not configured"
        url = f"{self.config.remote_url.rstrip('/')}/api/health"
        try:
            async with httpx.AsyncClient(timeout=timeout) as http:
                response = await http.get(url)
        except httpx.TimeoutException:
            return False, f"Remote store did not answer within {timeout:g} seconds"
        except httpx.HTTPError as e:
            return False, f"Remote store unreachable: {type(e).__name__}: {e}"

        if response.status_code == 200:
            return True, "Remote store connection successful"
        return False, f"HTTP {response.status_code}: {response.text[:200]}"


class FallbackPersistence:
    """Remote-first execution with a local fallback, one backend per call."""

    def __init__(self, remote: PersistenceBackend | None, local: LocalBackend, remote_timeout: float = 8.0):
        self.remote = remote
        self.local = local
        self.remote_timeout = remote_timeout

    def remote_available(self) -> bool:
        return self.remote is not None and self.remote.is_configured()

    async def run(
        self,
        operation: str,
        action: Callable[[PersistenceBackend], Awaitable[T]],
    ) -> tuple[T, PersistenceBackend]:
        """Run action on the remote backend, falling back to the local one.

        Returns the result together with the backend that produced it.
        Raises PersistenceError when the local fallback fails as well.
        """
        if self.remote is not None and self.remote.is_configured():
            try:
                result = await asyncio.wait_for(action(self.remote), timeout=self.remote_timeout)
                return result, self.remote
            except TimeoutError:
                logger.warning(f"{operation}: remote store timed out after {self.remote_timeout:g}s, using local cache")
            except Exception as e:
                logger.warning(f"{operation}: remote store failed ({type(e).__name__}: {e}), using local cache")

        try:
            result = await action(self.local)
        except Exception as e:
            logger.error(f"{operation}: local cache failed: {type(e).__name__}: {e}")
            raise PersistenceError(f"{operation} failed on every backend: {e}") from e
        return result, self.local
