"""
Logging setup for the intake service.

Every line goes to stdout as:
    2026-01-06T14:05:52Z [api] LEVEL message

LOG_LEVEL selects INFO (default), DEBUG or TRACE. TRACE adds the raw remote
store queries. Webhook tokens and bearer credentials are masked before a
line is written, and uvicorn access lines for /health are dropped unless
running at DEBUG or below.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from datetime import UTC, datetime

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_LEVELS = {"TRACE": TRACE, "DEBUG": logging.DEBUG, "INFO": logging.INFO, "WARNING": logging.WARNING}

_SECRET_PATTERNS = (
    (re.compile(r"(discord(?:app)?\.com/api/webhooks/\d+/)[\w-]+"), r"\1***"),
    (re.compile(r"(Bearer\s+)\S+", re.IGNORECASE), r"\1***"),
)


def redact(text: str) -> str:
    """Mask webhook tokens and bearer credentials in a log message."""
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class ISO8601Formatter(logging.Formatter):
    """UTC timestamp, bracketed source, level name, redacted message."""

    def __init__(self, source: str = "api"):
        self.source = source
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{timestamp} [{self.source}] {record.levelname} {redact(message)}"


class HealthCheckFilter(logging.Filter):
    """Drops uvicorn access lines for the health endpoint above DEBUG."""

    def __init__(self, path: str = "/health"):
        super().__init__()
        self.path = path

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name != "uvicorn.access" or record.levelno <= logging.DEBUG:
            return True
        # uvicorn passes (client, method, path, http_version, status)
        args = record.args if isinstance(record.args, tuple) else ()
        return not (len(args) >= 3 and args[1] == "GET" and str(args[2]).split("?")[0] == self.path)


def resolve_level(level: int | str | None = None) -> int:
    if isinstance(level, int):
        return level
    name = (level or os.getenv("LOG_LEVEL", "")).upper()
    return _LEVELS.get(name, logging.INFO)


def configure_logging(source: str = "api", level: int | str | None = None) -> logging.Logger:
    """Install the stdout handler on the root logger and route uvicorn through it."""
    resolved = resolve_level(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ISO8601Formatter(source=source))
    handler.addFilter(HealthCheckFilter())

    root_logger = logging.getLogger()
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(resolved)

    # uvicorn's default config attaches its own handlers; send everything to root instead
    for name in ("uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    for noisy in ("httpx", "httpcore", "aiohttp"):
        logging.getLogger(noisy).setLevel(max(resolved, logging.WARNING))

    return root_logger
