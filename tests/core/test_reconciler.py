"""
Tests for the stuck/failed reconciler.

System role: Verification of stuck-job recovery, failed-job cooldown
recovery, abandoned splits, orphan recovery, agent link cleanup, the
document backstop and idempotence
"""

from datetime import timedelta

from knowledge_sync.boundary.db.base import utc_now
from knowledge_sync.boundary.db.CRUD import job_crud, maintenance_log_crud
from knowledge_sync.boundary.db.models import (
    DocumentStatus,
    EmbeddingStatus,
    JobStatus,
    JobType,
)
from knowledge_sync.core.document_processing.variants import (
    PIPELINE_A,
    PIPELINE_A_HYBRID,
    PIPELINE_B,
)

from conftest import make_text


async def aged_job(engine, session, minutes, status=JobStatus.PROCESSING, retry_count=0):
    """Create a text document and age its extract job into the given state."""
    document = await engine.lifecycle.create_document(
        session, PIPELINE_A, name="notes.txt", text=make_text(300)
    )
    job = (await job_crud.get_by_document(session, document.id))[0]
    await job_crud.update_by_id(
        session,
        job.id,
        status=status,
        retry_count=retry_count,
        updated_at=utc_now() - timedelta(minutes=minutes),
    )
    await session.commit()
    return document.id, job.id


class TestStuckSweep:
    """Test suite for processing jobs past the staleness threshold."""

    async def test_reconcile_should_requeue_stuck_job(self, engine, db_session) -> None:
        """A job processing for 11 minutes goes back to pending with one more retry."""
        # Arrange
        document_id, job_id = await aged_job(engine, db_session, minutes=11)

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.stuck_reset == 1
        assert result.stuck_failed == 0
        job = await job_crud.get_by_id(db_session, job_id)
        assert job.status == JobStatus.PENDING
        assert job.retry_count == 1
        assert job.error_message.startswith("timeout: job stuck in processing")
        document = await PIPELINE_A.documents.get_by_id(db_session, document_id)
        assert document.processing_status == DocumentStatus.INGESTED

    async def test_reconcile_should_fail_stuck_job_at_retry_ceiling(
        self, engine, db_session
    ) -> None:
        # Arrange
        document_id, job_id = await aged_job(engine, db_session, minutes=11, retry_count=2)

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.stuck_failed == 1
        job = await job_crud.get_by_id(db_session, job_id)
        assert job.status == JobStatus.FAILED
        assert job.retry_count == 3
        document = await PIPELINE_A.documents.get_by_id(db_session, document_id)
        assert document.processing_status == DocumentStatus.FAILED
        assert "timeout" in document.error_message

    async def test_reconcile_should_leave_recent_processing_job_alone(
        self, engine, db_session
    ) -> None:
        # Arrange
        _, job_id = await aged_job(engine, db_session, minutes=2)

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.changes == 0
        job = await job_crud.get_by_id(db_session, job_id)
        assert job.status == JobStatus.PROCESSING
        assert job.retry_count == 0

    async def test_reconcile_should_cap_stuck_jobs_per_pass(self, engine, db_session) -> None:
        # Arrange
        for _ in range(4):
            await aged_job(engine, db_session, minutes=30)

        # Act
        first = await engine.reconciler.reconcile(db_session)

        # Assert
        assert first.stuck_reset == 3


class TestFailedRecoverySweep:
    """Test suite for failed jobs under the retry ceiling."""

    async def test_reconcile_should_recover_failed_job_after_cooldown(
        self, engine, db_session
    ) -> None:
        # Arrange
        document_id, job_id = await aged_job(
            engine, db_session, minutes=16, status=JobStatus.FAILED, retry_count=1
        )
        await engine.lifecycle.fail_document(db_session, PIPELINE_A, document_id, "parse error")
        await db_session.commit()

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.failed_recovered == 1
        job = await job_crud.get_by_id(db_session, job_id)
        assert job.status == JobStatus.PENDING
        assert job.retry_count == 1
        assert job.error_message is None
        document = await PIPELINE_A.documents.get_by_id(db_session, document_id)
        assert document.processing_status == DocumentStatus.INGESTED
        assert document.error_message is None

    async def test_reconcile_should_wait_for_cooldown(self, engine, db_session) -> None:
        # Arrange
        _, job_id = await aged_job(
            engine, db_session, minutes=5, status=JobStatus.FAILED, retry_count=1
        )

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.failed_recovered == 0
        job = await job_crud.get_by_id(db_session, job_id)
        assert job.status == JobStatus.FAILED

    async def test_reconcile_should_never_recover_job_at_retry_ceiling(
        self, engine, db_session
    ) -> None:
        # Arrange
        _, job_id = await aged_job(
            engine, db_session, minutes=60, status=JobStatus.FAILED, retry_count=3
        )

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.failed_recovered == 0
        job = await job_crud.get_by_id(db_session, job_id)
        assert job.status == JobStatus.FAILED


class TestOrphanSweep:
    """Test suite for failed documents left without any job."""

    async def test_reconcile_should_recover_timeout_orphan(self, engine, db_session) -> None:
        # Arrange
        document = await PIPELINE_B.documents.create(
            db_session,
            name="orphan.txt",
            content=make_text(120),
            text_length=120,
            processing_status=DocumentStatus.FAILED,
            error_message="extract handler timeout after 300s",
        )
        await db_session.commit()

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.orphans_recovered == 1
        stored = await PIPELINE_B.documents.get_by_id(db_session, document.id)
        assert stored.processing_status == DocumentStatus.INGESTED
        assert stored.error_message is None
        jobs = await job_crud.get_by_document(db_session, document.id)
        assert [(job.job_type, job.status) for job in jobs] == [
            (JobType.EXTRACT, JobStatus.PENDING)
        ]

    async def test_reconcile_should_ignore_non_timeout_failures(self, engine, db_session) -> None:
        # Arrange
        document = await PIPELINE_A.documents.create(
            db_session,
            name="broken.txt",
            processing_status=DocumentStatus.FAILED,
            error_message="Unsupported file format",
        )
        await db_session.commit()

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.orphans_recovered == 0
        stored = await PIPELINE_A.documents.get_by_id(db_session, document.id)
        assert stored.processing_status == DocumentStatus.FAILED


class TestSplitSweep:
    """Test suite for documents abandoned in splitting."""

    async def split_document(self, session, minutes):
        document = await PIPELINE_A_HYBRID.documents.create(
            session,
            name="book.pdf",
            storage_ref="uploads/book.pdf",
            processing_status=DocumentStatus.SPLITTING,
        )
        await PIPELINE_A_HYBRID.documents.update_by_id(
            session, document.id, updated_at=utc_now() - timedelta(minutes=minutes)
        )
        await session.commit()
        return document.id

    async def test_reconcile_should_send_abandoned_split_back_to_extraction(
        self, engine, db_session
    ) -> None:
        """A split left for 11 minutes fails with a timeout and is picked up as an orphan."""
        # Arrange
        document_id = await self.split_document(db_session, minutes=11)

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.splits_abandoned == 1
        assert result.orphans_recovered == 1
        stored = await PIPELINE_A_HYBRID.documents.get_by_id(db_session, document_id)
        assert stored.processing_status == DocumentStatus.INGESTED
        jobs = await job_crud.get_by_document(db_session, document_id)
        assert [(job.job_type, job.status) for job in jobs] == [
            (JobType.EXTRACT, JobStatus.PENDING)
        ]
        logs = await maintenance_log_crud.get_latest(db_session)
        assert logs[0].splits_abandoned == 1

    async def test_reconcile_should_leave_recent_split_alone(self, engine, db_session) -> None:
        # Arrange
        document_id = await self.split_document(db_session, minutes=2)

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.splits_abandoned == 0
        stored = await PIPELINE_A_HYBRID.documents.get_by_id(db_session, document_id)
        assert stored.processing_status == DocumentStatus.SPLITTING

    async def test_reconcile_should_cap_abandoned_splits_per_pass(
        self, engine, db_session
    ) -> None:
        # Arrange
        for _ in range(4):
            await self.split_document(db_session, minutes=30)

        # Act
        first = await engine.reconciler.reconcile(db_session)
        second = await engine.reconciler.reconcile(db_session)

        # Assert
        assert first.splits_abandoned == 3
        assert second.splits_abandoned == 1


class TestLinkSweep:
    """Test suite for agent links left pointing at dead chunks."""

    async def linked_chunks(self, session, agent_id, count=3):
        document = await PIPELINE_A.documents.create(
            session, name="linked.txt", processing_status=DocumentStatus.READY
        )
        await PIPELINE_A.chunks.create_many(
            session, document.id, [f"chunk {index}" for index in range(count)]
        )
        chunks = await PIPELINE_A.chunks.get_pending(session, 10, document_id=document.id)
        chunk_ids = [chunk.id for chunk in chunks]
        await PIPELINE_A.knowledge.link_chunks(session, agent_id, chunk_ids)
        await session.commit()
        return chunk_ids

    async def active_links(self, session, agent_id) -> int:
        model = PIPELINE_A.knowledge.model
        return await PIPELINE_A.knowledge.count(
            session, model.agent_id == agent_id, model.is_active.is_(True)
        )

    async def test_reconcile_should_deactivate_links_to_inactive_chunks(
        self, engine, db_session, agent
    ) -> None:
        # Arrange
        chunk_ids = await self.linked_chunks(db_session, agent.id)
        await PIPELINE_A.chunks.update_by_id(db_session, chunk_ids[0], is_active=False)
        await db_session.commit()

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.links_cleaned == 1
        assert await self.active_links(db_session, agent.id) == 2
        logs = await maintenance_log_crud.get_latest(db_session)
        assert logs[0].links_cleaned == 1

    async def test_reconcile_should_cap_link_cleanup_per_pass(
        self, engine, db_session, agent
    ) -> None:
        # Arrange
        engine.reconciler.settings = engine.reconciler.settings.model_copy(
            update={"link_cleanup_batch_size": 2}
        )
        chunk_ids = await self.linked_chunks(db_session, agent.id)
        for chunk_id in chunk_ids:
            await PIPELINE_A.chunks.update_by_id(db_session, chunk_id, is_active=False)
        await db_session.commit()

        # Act
        first = await engine.reconciler.reconcile(db_session)
        second = await engine.reconciler.reconcile(db_session)
        third = await engine.reconciler.reconcile(db_session)

        # Assert
        assert (first.links_cleaned, second.links_cleaned, third.links_cleaned) == (2, 1, 0)
        assert await self.active_links(db_session, agent.id) == 0

    async def test_reconcile_should_keep_links_to_live_chunks(
        self, engine, db_session, agent
    ) -> None:
        # Arrange
        await self.linked_chunks(db_session, agent.id)

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.links_cleaned == 0
        assert await self.active_links(db_session, agent.id) == 3


class TestDocumentSweep:
    """Test suite for the document status backstop."""

    async def test_reconcile_should_queue_embed_for_idle_chunked_document(
        self, engine, db_session
    ) -> None:
        # Arrange
        document = await PIPELINE_A.documents.create(
            db_session, name="chunked.txt", processing_status=DocumentStatus.CHUNKED
        )
        await PIPELINE_A.chunks.create_many(db_session, document.id, ["one", "two"])
        await db_session.commit()

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.documents_reconciled == 1
        jobs = await job_crud.get_by_document(db_session, document.id, JobType.EMBED)
        assert len(jobs) == 1

    async def test_reconcile_should_mark_fully_embedded_document_ready(
        self, engine, db_session
    ) -> None:
        # Arrange
        document = await PIPELINE_A.documents.create(
            db_session, name="done.txt", processing_status=DocumentStatus.PROCESSING
        )
        await PIPELINE_A.chunks.create_many(db_session, document.id, ["one", "two"])
        for chunk in await PIPELINE_A.chunks.get_pending(db_session, 10, document_id=document.id):
            await PIPELINE_A.chunks.update_by_id(
                db_session, chunk.id, embedding_status=EmbeddingStatus.READY
            )
        await db_session.commit()

        # Act
        result = await engine.reconciler.reconcile(db_session)

        # Assert
        assert result.documents_reconciled == 1
        stored = await PIPELINE_A.documents.get_by_id(db_session, document.id)
        assert stored.processing_status == DocumentStatus.READY


class TestReconcileIdempotence:
    """Test suite for repeated passes and the execution log."""

    async def test_reconcile_should_write_execution_log_on_change(
        self, engine, db_session
    ) -> None:
        # Arrange
        await aged_job(engine, db_session, minutes=11)

        # Act
        await engine.reconciler.reconcile(db_session)

        # Assert
        logs = await maintenance_log_crud.get_latest(db_session)
        assert len(logs) == 1
        assert logs[0].execution_status == "success"
        assert logs[0].stuck_reset == 1

    async def test_second_pass_should_be_a_no_op(self, engine, db_session) -> None:
        """Running reconcile twice changes nothing on the second pass."""
        # Arrange
        await aged_job(engine, db_session, minutes=11)
        await engine.reconciler.reconcile(db_session)

        # Act
        second = await engine.reconciler.reconcile(db_session)

        # Assert
        assert second.changes == 0
        assert second.errors == []
        assert await maintenance_log_crud.count(db_session) == 1

    async def test_reconcile_should_do_nothing_on_empty_database(
        self, engine, db_session
    ) -> None:
        result = await engine.reconciler.reconcile(db_session)

        assert result.changes == 0
        assert await maintenance_log_crud.count(db_session) == 0
