"""
Database connection management.

One async engine and one session factory per process. Request handlers
get a session through get_async_db(); background work (first-window
triggers, bulk assignments) opens its own session from the same factory
because it outlives the request.

Dependencies: sqlalchemy, asyncpg, knowledge_sync.configs
System role: Database connection lifecycle management
"""

import logging
from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from knowledge_sync.configs import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_async_engine() -> AsyncEngine:
    """
    Create the pooled asyncpg engine.

    Connections are pinged before use and recycled after
    pool_recycle_seconds, and every connection carries the service name
    and statement timeout as server settings.

    Returns:
        AsyncEngine: Process-wide engine
    """
    settings = get_settings()
    db_config = settings.database

    logger.info(
        f"{__name__}:get_async_engine - Creating database engine",
        extra={"db_host": db_config.host, "db_name": db_config.db, "pool_size": db_config.pool_size},
    )
    return create_async_engine(
        db_config.async_database_url,
        echo=db_config.echo_sql,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_recycle=db_config.pool_recycle_seconds,
        pool_pre_ping=True,
        connect_args={"server_settings": db_config.server_settings(settings.service_name)},
    )


@lru_cache
def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Session factory shared by requests and background tasks.

    autoflush=False and expire_on_commit=False: pipeline code commits once
    per unit of work and keeps reading plain attributes after the commit.
    """
    return async_sessionmaker(
        bind=get_async_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding a request-scoped session.

    Anything left uncommitted when the request fails is rolled back.

    Usage:
        @router.get("/jobs/{id}")
        async def get_job(id: UUID, db: AsyncSession = Depends(get_async_db)):
            return await job_crud.get_by_id(db, id)
    """
    SessionFactory = get_async_session_factory()
    async with SessionFactory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def dispose_async_engine() -> None:
    """Close pooled connections if the engine was ever created."""
    if get_async_engine.cache_info().currsize:
        await get_async_engine().dispose()
        logger.info(f"{__name__}:dispose_async_engine - Database engine disposed")
