"""
Test suite for dependency injection container.

Tests the lazily built pipeline engine cache and the service factories.

System role: Verification of DI container
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.api.deps import (
    get_assignment_service,
    get_document_service,
    get_job_service,
    get_pipeline_service,
)
from knowledge_sync.api.deps.dependencies import ServiceCache
from knowledge_sync.application.services import (
    AssignmentService,
    DocumentService,
    JobService,
    PipelineService,
)


@pytest.fixture
def mock_db_session() -> AsyncSession:
    """Provide mock async database session."""
    return AsyncMock(spec=AsyncSession)


class TestServiceCache:
    """Test suite for ServiceCache."""

    def test_engine_should_be_built_once(self) -> None:
        cache = ServiceCache()
        assert cache.is_initialized is False

        with patch("knowledge_sync.api.deps.dependencies.PipelineEngine") as engine_cls:
            first = cache.engine
            second = cache.engine

        assert first is second
        assert engine_cls.call_count == 1
        assert cache.is_initialized is True

    def test_clear_should_drop_cached_engine(self) -> None:
        cache = ServiceCache()
        with patch("knowledge_sync.api.deps.dependencies.PipelineEngine") as engine_cls:
            engine_cls.side_effect = [MagicMock(name="first"), MagicMock(name="second")]
            first = cache.engine
            cache.clear()
            assert cache.is_initialized is False
            second = cache.engine

        assert first is not second


class TestServiceFactories:
    """Test suite for the per-request service factories."""

    def test_factories_should_bind_session_and_engine(self, mock_db_session) -> None:
        engine = MagicMock()
        factories = [
            (get_document_service, DocumentService),
            (get_job_service, JobService),
            (get_pipeline_service, PipelineService),
            (get_assignment_service, AssignmentService),
        ]

        for factory, service_cls in factories:
            service = factory(db=mock_db_session, engine=engine)
            assert isinstance(service, service_cls)
            assert service.db is mock_db_session
            assert service.engine is engine
