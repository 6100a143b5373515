"""
FastAPI application entry point.

Builds the app, wires middleware and routers, and owns the process
lifespan: logging is configured on startup, and on shutdown in-flight
background tasks (first-window triggers, bulk assignments) are drained
before database connections are closed.

Dependencies: fastapi, uvicorn, knowledge_sync.api, knowledge_sync.observability
System role: Application initialization and configuration
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from knowledge_sync.api import api_router
from knowledge_sync.api.deps import get_service_cache
from knowledge_sync.boundary.db import dispose_async_engine
from knowledge_sync.configs import get_settings
from knowledge_sync.observability.logger import configure_logging
from knowledge_sync.observability.middleware import (
    CorrelationMiddleware,
    RequestLoggingMiddleware,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        f"{__name__}:lifespan - Starting {settings.service_name}",
        extra={"environment": settings.environment},
    )

    yield

    cache = get_service_cache()
    if cache.is_initialized:
        dispatcher = cache.engine.dispatcher
        logger.info(
            f"{__name__}:lifespan - Draining background tasks",
            extra={"pending": dispatcher.pending},
        )
        await dispatcher.shutdown(timeout=settings.shutdown_grace_seconds)
        cache.clear()
    await dispose_async_engine()
    logger.info(f"{__name__}:lifespan - Shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Middleware added first runs last, so correlation ids are set before
    the request line is logged.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()
    app = FastAPI(
        title="Knowledge Sync API",
        description="Document ingestion, embedding and agent knowledge synchronization",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID"],
    )

    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "knowledge_sync.main:app",
        host="0.0.0.0",
        port=8082,
        reload=not get_settings().is_production,
    )
