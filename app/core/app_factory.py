"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) to
improve testability and separation of concerns compared to a monolithic main.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import admin_router, health_router, resource_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.metrics import RequestCounter
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import close_counter_store, get_limiter_chain

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Build the chain eagerly so invalid limits fail at startup.
    chain = get_limiter_chain()
    logger.info(
        "app.started",
        extra={
            "store_backend": settings.store.backend,
            "limits": [str(entry.spec) for entry in chain.entries],
        },
    )
    yield
    await close_counter_store()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Rate Limiter API",
        description=(
            "HTTP rate limiting layer backed by a shared counter store. "
            "Supports fixed-window and weighted sliding-window limits, "
            "chained limits, and admin endpoints to inspect or reset a "
            "client's counters."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )
    app.state.request_counter = RequestCounter()

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(resource_router, prefix="/v1")
    app.include_router(admin_router, prefix="/admin")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags)
    apply_openapi_customizations(app)

    return app
