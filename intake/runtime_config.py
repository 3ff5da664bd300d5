"""Runtime configuration for the remote store and the notification endpoint.

Environment settings provide the initial values; an admin can set, test and
remove each of them while the service runs. Runtime values are persisted in
the local cache and win over the environment on the next start.

A single RuntimeConfig instance is created at startup and shared by
reference with the remote backend and the notification dispatcher, so a
change made through RuntimeConfigManager is seen by both immediately.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import ConfigurationError
from .storage.local_cache import (
    REMOTE_KEY_KEY,
    REMOTE_URL_KEY,
    WEBHOOK_URL_KEY,
    LocalCache,
)

logger = logging.getLogger(__name__)

WEBHOOK_URL_PREFIXES = (
    "https://discord.com/api/webhooks/",
    "https://discordapp.com/api/webhooks/",
)


def is_valid_webhook_url(url: str | None) -> bool:
    """Check that url looks like a Discord webhook and is not a template placeholder."""
    if not url:
        return False
    return url.startswith(WEBHOOK_URL_PREFIXES) and "YOUR_WEBHOOK" not in url


def mask_url(url: str | None, keep: int = 50) -> str:
    """Shorten a secret-bearing URL for logs and status responses."""
    if not url:
        return "Not configured"
    return url if len(url) <= keep else url[:keep] + "..."


@dataclass
class RuntimeConfig:
    """Recognized options: remote_url, remote_key, notify_endpoint."""

    remote_url: str = ""
    remote_key: str = ""
    notify_endpoint: str = ""

    @property
    def remote_configured(self) -> bool:
        return bool(self.remote_url) and self.remote_url.startswith(("http://", "https://"))

    @property
    def notify_configured(self) -> bool:
        return is_valid_webhook_url(self.notify_endpoint)


class RuntimeConfigManager:
    """Loads, changes and persists the shared RuntimeConfig."""

    def __init__(self, cache: LocalCache, config: RuntimeConfig):
        self.cache = cache
        self.config = config

    async def load(self) -> RuntimeConfig:
        """Overlay values stored at runtime onto the environment defaults."""
        stored_webhook = await self.cache.get(WEBHOOK_URL_KEY)
        stored_url = await self.cache.get(REMOTE_URL_KEY)
        stored_key = await self.cache.get(REMOTE_KEY_KEY)

        if stored_webhook:
            if is_valid_webhook_url(stored_webhook):
                self.config.notify_endpoint = stored_webhook
            else:
                logger.warning("Ignoring stored webhook URL with an unexpected format")

        if stored_url:
            self.config.remote_url = stored_url
            self.config.remote_key = stored_key or ""

        logger.info(
            f"Runtime config loaded: remote={'configured' if self.config.remote_configured else 'local only'}, "
            f"notifications={'configured' if self.config.notify_configured else 'disabled'}"
        )
        return self.config

    async def set_notify_endpoint(self, url: str) -> None:
        url = url.strip()
        if not is_valid_webhook_url(url):
            raise ConfigurationError(
                f"Invalid Discord webhook URL format. Must start with {WEBHOOK_URL_PREFIXES[0]!r}"
            )
        await self.cache.set(WEBHOOK_URL_KEY, url)
        self.config.notify_endpoint = url
        logger.info(f"Notification endpoint updated: {mask_url(url)}")

    async def remove_notify_endpoint(self) -> None:
        await self.cache.remove(WEBHOOK_URL_KEY)
        self.config.notify_endpoint = ""
        logger.info("Notification endpoint removed")

    async def set_remote(self, url: str, key: str) -> None:
        url = url.strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise ConfigurationError("Remote store URL must start with http:// or https://")
        await self.cache.set(REMOTE_URL_KEY, url)
        await self.cache.set(REMOTE_KEY_KEY, key)
        self.config.remote_url = url
        self.config.remote_key = key
        logger.info(f"Remote store configured: {url}")

    async def remove_remote(self) -> None:
        await self.cache.remove(REMOTE_URL_KEY)
        await self.cache.remove(REMOTE_KEY_KEY)
        self.config.remote_url = ""
        self.config.remote_key = ""
        logger.info("Remote store removed; running on the local cache only")
