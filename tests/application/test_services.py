"""
Tests for the application service layer.

Drives documents through DocumentService, JobService, PipelineService and
AssignmentService against the in-memory database and fake collaborators.

System role: Verification of request-level orchestration and commits
"""

import uuid

import pytest

from knowledge_sync.application.services import (
    AssignmentService,
    DocumentService,
    JobService,
    PipelineService,
)
from knowledge_sync.core.exceptions import (
    BackupNotFoundError,
    DocumentNotFoundError,
    JobNotFoundError,
    UnknownPipelineError,
    ValidationError,
)
from knowledge_sync.models.assignment import AssignDocumentsRequest, RestoreBackupRequest
from knowledge_sync.models.document import CreateDocumentRequest
from knowledge_sync.models.job import EnqueueJobRequest

from conftest import make_text


@pytest.fixture
def document_service(db_session, engine) -> DocumentService:
    return DocumentService(db_session, engine)


@pytest.fixture
def pipeline_service(db_session, engine) -> PipelineService:
    return PipelineService(db_session, engine)


class TestDocumentService:
    """Test suite for DocumentService."""

    async def test_text_document_should_become_ready_after_two_sweeps(
        self, document_service, pipeline_service
    ) -> None:
        # Arrange
        created = await document_service.create_document(
            CreateDocumentRequest(name="faq.txt", text=make_text(3600))
        )

        # Act
        await pipeline_service.process_queue()
        await pipeline_service.process_queue()
        status = await document_service.get_document_status(created.document_id, "a")

        # Assert
        assert created.processing_status == "ingested"
        assert status.processing_status == "ready"
        assert status.chunks.ready == 45
        assert status.chunks.pending == 0
        assert status.processed_at is not None

    async def test_create_document_should_reject_unknown_pipeline(self, document_service) -> None:
        with pytest.raises(UnknownPipelineError):
            await document_service.create_document(
                CreateDocumentRequest(name="faq.txt", text="hello", pipeline="z")
            )

    async def test_create_document_should_require_a_source(self, document_service) -> None:
        with pytest.raises(ValidationError):
            await document_service.create_document(CreateDocumentRequest(name="faq.txt"))

    async def test_create_chunks_should_queue_embedding(
        self, document_service, pipeline_service
    ) -> None:
        # Arrange
        created = await document_service.create_document(
            CreateDocumentRequest(name="manual.pdf", storage_ref="uploads/manual.pdf")
        )

        # Act
        count = await document_service.create_chunks(created.document_id, "a", ["one", "two"])
        status = await document_service.get_document_status(created.document_id, "a")

        # Assert
        assert count == 2
        assert status.processing_status == "chunked"
        assert status.chunks.pending == 2

    async def test_split_document_should_map_windows(
        self, document_service, engine, object_store
    ) -> None:
        # Arrange
        engine.splitter.dispatcher = None
        object_store.objects["uploads/book.pdf"] = "\f".join(["page"] * 25).encode("utf-8")
        created = await document_service.create_document(
            CreateDocumentRequest(name="book.pdf", storage_ref="uploads/book.pdf", pipeline="a-hybrid")
        )

        # Act
        response = await document_service.split_document(created.document_id, "a-hybrid")

        # Assert
        assert created.processing_status == "created"
        assert response.total_pages == 25
        assert [(w.page_start, w.page_end) for w in response.windows] == [(1, 20), (21, 25)]
        assert len(response.job_ids) == 2

    async def test_reconcile_document_should_report_no_change_for_fresh_document(
        self, document_service
    ) -> None:
        # Arrange
        created = await document_service.create_document(
            CreateDocumentRequest(name="faq.txt", text="hello world")
        )

        # Act
        response = await document_service.reconcile_document(created.document_id, "a")

        # Assert
        assert response.processing_status == "ingested"
        assert response.changed_to is None
        assert response.queued is None

    async def test_get_document_status_should_raise_for_other_variant(
        self, document_service
    ) -> None:
        created = await document_service.create_document(
            CreateDocumentRequest(name="faq.txt", text="hello world", pipeline="b")
        )

        with pytest.raises(DocumentNotFoundError):
            await document_service.get_document_status(created.document_id, "a")


class TestJobService:
    """Test suite for JobService."""

    async def test_enqueue_job_should_create_pending_job(
        self, db_session, engine, document_service
    ) -> None:
        # Arrange
        service = JobService(db_session, engine)
        created = await document_service.create_document(
            CreateDocumentRequest(name="faq.txt", text="hello world")
        )

        # Act
        job = await service.enqueue_job(
            EnqueueJobRequest(document_id=created.document_id, job_type="EMBED")
        )
        fetched = await service.get_job_status(job.id)

        # Assert
        assert job.status == "pending"
        assert job.retry_count == 0
        assert fetched.job_type == "embed"

    async def test_enqueue_job_should_reject_unknown_type(self, db_session, engine) -> None:
        service = JobService(db_session, engine)

        with pytest.raises(ValidationError, match="Unknown job type"):
            await service.enqueue_job(EnqueueJobRequest(document_id=uuid.uuid4(), job_type="index"))

    async def test_enqueue_job_should_require_existing_document(self, db_session, engine) -> None:
        service = JobService(db_session, engine)

        with pytest.raises(DocumentNotFoundError):
            await service.enqueue_job(EnqueueJobRequest(document_id=uuid.uuid4()))

    async def test_get_job_status_should_raise_when_missing(self, db_session, engine) -> None:
        service = JobService(db_session, engine)

        with pytest.raises(JobNotFoundError):
            await service.get_job_status(uuid.uuid4())


class TestPipelineAndAssignmentServices:
    """Test suite for sweeps and assignment through the service layer."""

    async def test_embed_sweep_should_report_ready_document(
        self, db_session, engine, document_service, pipeline_service
    ) -> None:
        # Arrange
        created = await document_service.create_document(
            CreateDocumentRequest(name="manual.pdf", storage_ref="uploads/manual.pdf", pipeline="b")
        )
        await document_service.create_chunks(created.document_id, "b", ["one", "two"])
        # The extract job queued at creation is not needed once chunks exist
        await pipeline_service.process_queue(batch_size=1)

        # Act
        response = await pipeline_service.embed_sweep("b")

        # Assert
        assert response.pipeline == "b"
        assert response.processed == 2
        assert response.documents_ready == [created.document_id]

    async def test_reconcile_should_return_counters(self, pipeline_service) -> None:
        response = await pipeline_service.reconcile()

        assert response.stuck_reset == 0
        assert response.errors == []

    async def test_assign_should_acknowledge(
        self, db_session, engine, agent, document_service
    ) -> None:
        # Arrange
        service = AssignmentService(db_session, engine)
        created = await document_service.create_document(
            CreateDocumentRequest(name="faq.txt", text="hello world")
        )

        # Act
        response = await service.assign(
            AssignDocumentsRequest(agent_id=agent.id, document_ids=[created.document_id])
        )
        await engine.dispatcher.drain()

        # Assert
        assert response.accepted is True
        assert response.agent_name == "Support Agent"
        assert response.document_count == 1

    async def test_list_backups_and_restore_should_round_trip(
        self, db_session, engine, agent, document_service
    ) -> None:
        """An assignment leaves a backup that the service can list and restore."""
        # Arrange
        service = AssignmentService(db_session, engine)
        created = await document_service.create_document(
            CreateDocumentRequest(name="faq.txt", text="hello world")
        )
        await service.assign(
            AssignDocumentsRequest(agent_id=agent.id, document_ids=[created.document_id])
        )
        await engine.dispatcher.drain()

        # Act
        backups = await service.list_backups(agent_id=agent.id)
        restored = await service.restore(backups[0].id, RestoreBackupRequest())

        # Assert
        assert len(backups) == 1
        assert backups[0].reason == "pre_bulk_assignment"
        assert backups[0].chunk_count == 0
        assert restored.agent_id == agent.id
        assert (restored.chunks_in_backup, restored.links_restored) == (0, 0)
        assert await service.list_backups(agent_id=uuid.uuid4()) == []

    async def test_restore_should_raise_for_unknown_backup(self, db_session, engine) -> None:
        service = AssignmentService(db_session, engine)

        with pytest.raises(BackupNotFoundError):
            await service.restore(uuid.uuid4(), RestoreBackupRequest())
