"""Local key/value cache backed by SQLite.

Holds whole JSON-serializable collections under fixed keys, the way the
mobile client keeps them in device storage. Each call opens its own
connection in a worker thread, so the cache is safe to use from the event
loop and from the broadcast poller concurrently."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Fixed keys (shared with the mobile client's storage layout)
DESIGN_REQUESTS_KEY = "design_requests"
GLOBAL_MESSAGES_KEY = "global_messages"
DISMISSED_MESSAGES_KEY = "dismissed_global_messages"
ADMIN_SESSION_KEY = "admin_session"
WEBHOOK_URL_KEY = "discord_webhook_url"
REMOTE_URL_KEY = "supabase_url"
REMOTE_KEY_KEY = "supabase_anon_key"
SUBMISSION_RECORDS_KEY = "submission_records"
ORDER_STATUS_KEY = "order_status"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class LocalCache:
    """Persistent get/set/remove of JSON values under string keys."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        if not self._initialized:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path), timeout=5.0)
        if not self._initialized:
            conn.execute(_SCHEMA)
            conn.commit()
            self._initialized = True
        return conn

    def _get_sync(self, key: str) -> str | None:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return row[0] if row else None

    def _set_sync(self, key: str, payload: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, payload),
            )
            conn.commit()
        finally:
            conn.close()

    def _remove_sync(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    async def get(self, key: str, default: Any = None) -> Any:
        """Return the decoded value for key, or default when absent or unreadable."""
        raw = await asyncio.to_thread(self._get_sync, key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding corrupt local cache entry for {key!r}")
            return default

    async def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        await asyncio.to_thread(self._set_sync, key, payload)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._remove_sync, key)
