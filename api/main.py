#!/usr/bin/env python3
"""
Intake API - HTTP API layer for the design request pipeline.

This is the FastAPI application behind the mobile client. It exposes:
- Request submission (validated, rate-limited, notified)
- Admin moderation of requests behind a passcode session
- Broadcast messages and the order intake switch
- Runtime configuration of the remote store and the Discord webhook
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from intake.errors import (
    AuthorizationError,
    ConfigurationError,
    IntakeError,
    OrdersClosedError,
    PersistenceError,
    RateLimitedError,
    ValidationError,
)
from intake.logging_config import configure_logging

from .dependencies import get_services
from .services.login_guard import LoginLockedError
from .settings import get_settings

# Format: 2026-01-06T14:05:52Z [api] LEVEL message
configure_logging(source="api")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle - startup and shutdown."""
    services = get_services()

    # Startup
    await services.config_manager.load()
    if not services.settings.admin_passcode:
        logger.warning("ADMIN_PASSCODE is empty; admin login is disabled")
    if services.poller is not None:
        services.poller.start()

    yield

    # Shutdown
    if services.poller is not None:
        await services.poller.stop()


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": "Invalid submission", "errors": exc.errors})

    @app.exception_handler(RateLimitedError)
    async def rate_limited_handler(request: Request, exc: RateLimitedError) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={"detail": str(exc), "retry_after_seconds": exc.retry_after_seconds},
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )

    @app.exception_handler(AuthorizationError)
    async def authorization_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @app.exception_handler(OrdersClosedError)
    async def orders_closed_handler(request: Request, exc: OrdersClosedError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ConfigurationError)
    async def configuration_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error(f"Persistence failure on {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable, please try again later"})

    @app.exception_handler(LoginLockedError)
    async def login_locked_handler(request: Request, exc: LoginLockedError) -> JSONResponse:
        return JSONResponse(
            status_code=423,
            content={"detail": str(exc), "locked": True, "retry_after_seconds": exc.retry_after_seconds},
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )

    @app.exception_handler(IntakeError)
    async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
        logger.error(f"Unhandled intake error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Intake API", description="Design request intake and moderation API", lifespan=lifespan)

    _register_exception_handlers(app)

    settings = get_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    from .routers import admin, messages, orders, requests
    from .routers import settings as settings_router

    app.include_router(requests.router)
    app.include_router(admin.router)
    app.include_router(messages.router)
    app.include_router(orders.router)
    app.include_router(settings_router.router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "service": "intake-api"}

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, log_config=None)


# Create app instance for uvicorn
app = create_app()
