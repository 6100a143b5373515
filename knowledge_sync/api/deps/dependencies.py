"""
Dependency injection container.

Factory functions for FastAPI dependencies.

Dependencies: knowledge_sync.configs, knowledge_sync.application, knowledge_sync.core
System role: DI container for service injection
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.configs import get_settings
from knowledge_sync.boundary.db import get_async_db
from knowledge_sync.application.services import (
    AssignmentService,
    DocumentService,
    JobService,
    PipelineService,
)
from knowledge_sync.core.document_processing import PipelineEngine


class ServiceCache:
    """Container for cached service instances."""

    def __init__(self):
        self._engine = None

    @property
    def engine(self) -> PipelineEngine:
        """Get cached pipeline engine."""
        if self._engine is None:
            self._engine = PipelineEngine(settings=get_settings())
        return self._engine

    @property
    def is_initialized(self) -> bool:
        """Whether the engine has been built."""
        return self._engine is not None

    def clear(self) -> None:
        """Clear all cached instances."""
        self._engine = None


# Global service cache
_service_cache = ServiceCache()


def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return _service_cache


def get_pipeline_engine() -> PipelineEngine:
    """
    Get the shared pipeline engine.

    Returns:
        PipelineEngine: Engine wired from settings on first use
    """
    return get_service_cache().engine


def get_document_service(
    db: AsyncSession = Depends(get_async_db),
    engine: PipelineEngine = Depends(get_pipeline_engine),
) -> DocumentService:
    """
    Get document service instance.

    Args:
        db: Async database session (injected via Depends)
        engine: Shared pipeline engine (injected via Depends)

    Returns:
        DocumentService: Document service instance
    """
    return DocumentService(db=db, engine=engine)


def get_job_service(
    db: AsyncSession = Depends(get_async_db),
    engine: PipelineEngine = Depends(get_pipeline_engine),
) -> JobService:
    """
    Get job service instance.

    Args:
        db: Async database session (injected via Depends)
        engine: Shared pipeline engine (injected via Depends)

    Returns:
        JobService: Job service instance
    """
    return JobService(db=db, engine=engine)


def get_pipeline_service(
    db: AsyncSession = Depends(get_async_db),
    engine: PipelineEngine = Depends(get_pipeline_engine),
) -> PipelineService:
    """Get pipeline sweep service instance."""
    return PipelineService(db=db, engine=engine)


def get_assignment_service(
    db: AsyncSession = Depends(get_async_db),
    engine: PipelineEngine = Depends(get_pipeline_engine),
) -> AssignmentService:
    """Get assignment service instance."""
    return AssignmentService(db=db, engine=engine)
