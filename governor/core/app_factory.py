"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and the
governor's background tickers) to keep main.py trivial and tests isolated.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from governor.api.routes import governor_router, health_router, resources_router
from governor.core.config import settings
from governor.core.dependencies import get_governor
from governor.core.exception_handlers import setup_exception_handlers
from governor.core.logging import configure_logging
from governor.core.middleware import request_id_middleware
from governor.core.openapi import TAGS_METADATA, apply_openapi_customizations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the drain and cache-sweep tickers for the app's lifetime."""

    governor = get_governor()
    governor.runtime.start()
    logger.info("app.started", extra={"app_env": settings.app_env})
    try:
        yield
    finally:
        await governor.runtime.stop()
        governor.orchestrator.cancel_retries()
        pending = governor.recovery.pending_warmup
        if pending is not None:
            pending.cancel()
        await governor.store.aclose()
        logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Request Governor",
        description=(
            "Admission control, TTL caching and deferred queuing in front of a "
            "remote data store that fails under load. Reads degrade to stale "
            "snapshots instead of errors whenever one exists."
        ),
        version="0.1.0",
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
        debug=settings.app.debug,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(resources_router, prefix="/v1")
    app.include_router(governor_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
