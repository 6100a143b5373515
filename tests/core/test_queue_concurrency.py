"""
Tests for concurrent processQueue calls.

System role: Verification that two process_batch calls on separate
sessions never run the same job twice
"""

import asyncio
from collections import Counter

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from knowledge_sync.boundary.db.base import Base
from knowledge_sync.boundary.db.CRUD import job_crud
from knowledge_sync.boundary.db.models import JobStatus, JobType
from knowledge_sync.core.document_processing.models import HandlerOutcome
from knowledge_sync.core.document_processing.variants import PIPELINE_A

from conftest import make_text


@pytest.fixture
async def session_factory(tmp_path):
    """File-backed SQLite, so every session holds its own connection."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'queue.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )

    await engine.dispose()


class TestConcurrentProcessBatch:
    """Test suite for overlapping processQueue invocations."""

    async def test_concurrent_batches_should_run_each_job_once(
        self, engine, session_factory
    ) -> None:
        """Two calls over the same pending jobs split them without overlap."""
        # Arrange
        job_count = 6
        async with session_factory() as session:
            for index in range(job_count):
                await engine.lifecycle.create_document(
                    session, PIPELINE_A, name=f"notes-{index}.txt", text=make_text(300)
                )
            await session.commit()

        calls: Counter = Counter()

        async def counting_extract(session, variant, job):
            calls[job.id] += 1
            await asyncio.sleep(0)
            return HandlerOutcome()

        engine.handlers._handlers[JobType.EXTRACT] = counting_extract

        # Act
        async with session_factory() as first, session_factory() as second:
            results = await asyncio.gather(
                engine.queue.process_batch(first, job_count),
                engine.queue.process_batch(second, job_count),
            )

        # Assert
        assert sum(result.processed for result in results) == job_count
        assert sum(result.failed for result in results) == 0
        assert len(calls) == job_count
        assert set(calls.values()) == {1}
        async with session_factory() as session:
            completed = await job_crud.count(
                session, job_crud.model.status == JobStatus.COMPLETED
            )
        assert completed == job_count
