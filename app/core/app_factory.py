"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated instances.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import campaigns_router, contacts_router, dashboard_router, health_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import reap_stale_windows

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the idle rate-window reaper for the lifetime of the app."""

    interval = settings.app.email_rate_limit_reap_interval_seconds
    reaper: asyncio.Task | None = None
    if interval > 0:
        reaper = asyncio.create_task(reap_stale_windows(interval))
        logger.info("rate_limit.reaper_started", extra={"interval_s": interval})
    try:
        yield
    finally:
        if reaper is not None:
            reaper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reaper


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Email Campaign API",
        description=(
            "Manage contact lists and email campaigns. Campaigns are sent "
            "sequentially under a per-user email quota, can be cancelled while "
            "running and resumed from their last checkpoint. Requires X-API-Key."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(campaigns_router, prefix="/v1")
    app.include_router(contacts_router, prefix="/v1")
    app.include_router(dashboard_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
