"""
Tests for validate/embed stage handlers and pipeline variant lookup.

System role: Verification of stage-specific behavior not covered by the
queue flow tests
"""

from datetime import timedelta

import pytest

from knowledge_sync.boundary.db.base import utc_now
from knowledge_sync.boundary.db.CRUD import job_crud
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
    all_variants,
    get_variant,
)
from knowledge_sync.core.exceptions import UnknownPipelineError, ValidationError

from conftest import FakeEmbeddingProvider, make_text


class TestVariants:
    """Test suite for variant lookup."""

    @pytest.mark.parametrize(
        "tag, expected",
        [("a", PIPELINE_A), ("A-Hybrid", PIPELINE_A_HYBRID), ("b", PIPELINE_B)],
    )
    def test_get_variant_should_resolve_tags_case_insensitively(self, tag, expected) -> None:
        assert get_variant(tag) is expected

    @pytest.mark.parametrize("tag", ["", "c", "a_hybrid"])
    def test_get_variant_should_reject_unknown_tags(self, tag) -> None:
        with pytest.raises(UnknownPipelineError):
            get_variant(tag)

    def test_unknown_pipeline_should_be_a_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            get_variant("z")

    def test_variants_should_own_separate_tables(self) -> None:
        tables = {variant.documents.model.__tablename__ for variant in all_variants()}

        assert len(tables) == 3
        assert PIPELINE_A_HYBRID.split_by_default is True


class TestValidateStage:
    """Test suite for the validate handler."""

    @pytest.fixture
    def validating_engine(self, engine):
        settings = engine.lifecycle.settings.model_copy(update={"validate_before_extract": True})
        engine.lifecycle.settings = settings
        engine.handlers.settings = settings
        return engine

    async def test_validate_should_queue_extract_for_existing_blob(
        self, validating_engine, db_session, object_store
    ) -> None:
        # Arrange
        object_store.objects["uploads/notes.txt"] = make_text(150).encode("utf-8")
        document = await validating_engine.lifecycle.create_document(
            db_session, PIPELINE_A, name="notes.txt", storage_ref="uploads/notes.txt"
        )
        await db_session.commit()

        # Act
        first = await validating_engine.queue.process_batch(db_session)
        second = await validating_engine.queue.process_batch(db_session)

        # Assert
        assert (first.processed, second.processed) == (1, 1)
        jobs = await job_crud.get_by_document(db_session, document.id)
        assert {job.job_type for job in jobs} >= {JobType.VALIDATE, JobType.EXTRACT}
        stored = await PIPELINE_A.documents.get_by_id(db_session, document.id)
        assert stored.processing_status == DocumentStatus.CHUNKED

    async def test_validate_should_fail_attempt_for_missing_blob(
        self, validating_engine, db_session
    ) -> None:
        # Arrange
        document = await validating_engine.lifecycle.create_document(
            db_session, PIPELINE_A, name="gone.txt", storage_ref="uploads/gone.txt"
        )
        await db_session.commit()

        # Act
        result = await validating_engine.queue.process_batch(db_session)

        # Assert
        assert result.failed == 1
        job = (await job_crud.get_by_document(db_session, document.id))[0]
        assert job.job_type == JobType.VALIDATE
        assert "Source blob not found" in job.error_message


class TestEmbedStage:
    """Test suite for the embed handler."""

    async def test_embed_should_fail_attempt_when_a_chunk_fails(
        self, engine, db_session
    ) -> None:
        # Arrange
        engine.worker.provider = FakeEmbeddingProvider(fail_on="poison")
        document = await engine.lifecycle.create_document(
            db_session, PIPELINE_B, name="mixed.txt", storage_ref="uploads/mixed.txt"
        )
        await engine.lifecycle.create_chunks(
            db_session, PIPELINE_B, document.id, ["clean", "poison pill"]
        )
        extract = (await job_crud.get_by_document(db_session, document.id, JobType.EXTRACT))[0]
        await job_crud.update_by_id(db_session, extract.id, status=JobStatus.COMPLETED)
        await db_session.commit()

        # Act
        result = await engine.queue.process_batch(db_session)

        # Assert
        assert result.failed == 1
        assert "1 of 2 chunks failed to embed (0 pending, 0 processing)" in result.errors[0]
        embed = (await job_crud.get_by_document(db_session, document.id, JobType.EMBED))[0]
        assert embed.status == JobStatus.PENDING
        assert embed.retry_count == 1
        stored = await PIPELINE_B.documents.get_by_id(db_session, document.id)
        assert stored.processing_status == DocumentStatus.PROCESSING

    async def test_embed_should_retry_failed_chunks_on_next_attempt(
        self, engine, db_session
    ) -> None:
        # Arrange
        engine.worker.provider = FakeEmbeddingProvider(fail_on="poison")
        document = await engine.lifecycle.create_document(
            db_session, PIPELINE_B, name="mixed.txt", text="poison"
        )
        await db_session.commit()
        await engine.queue.process_batch(db_session)
        await engine.queue.process_batch(db_session)

        # Act
        engine.worker.provider = FakeEmbeddingProvider()
        result = await engine.queue.process_batch(db_session)

        # Assert
        assert result.processed == 1
        stored = await PIPELINE_B.documents.get_by_id(db_session, document.id)
        assert stored.processing_status == DocumentStatus.READY

    async def _chunked_document_with_held_chunk(self, engine, db_session):
        document = await engine.lifecycle.create_document(
            db_session, PIPELINE_B, name="shared.txt", text=make_text(3600)
        )
        await db_session.commit()
        await engine.queue.process_batch(db_session)
        held = (await PIPELINE_B.chunks.get_pending(db_session, 1, document_id=document.id))[0]
        assert await PIPELINE_B.chunks.claim(db_session, held.id)
        await db_session.commit()
        return document, held

    async def test_embed_should_not_fail_on_chunks_held_by_another_worker(
        self, engine, db_session
    ) -> None:
        """A live claim elsewhere is not a failure and never burns retries."""
        # Arrange
        document, held = await self._chunked_document_with_held_chunk(engine, db_session)

        # Act
        results = [await engine.queue.process_batch(db_session) for _ in range(3)]

        # Assert
        assert results[0].processed == 1
        assert all(result.failed == 0 for result in results)
        embed = (await job_crud.get_by_document(db_session, document.id, JobType.EMBED))[0]
        assert embed.status == JobStatus.COMPLETED
        assert embed.retry_count == 0
        counts = await PIPELINE_B.chunks.status_counts(db_session, document.id)
        assert counts[EmbeddingStatus.READY] == 44
        assert counts[EmbeddingStatus.PROCESSING] == 1
        stored = await PIPELINE_B.documents.get_by_id(db_session, document.id)
        assert stored.processing_status == DocumentStatus.PROCESSING

        # The holder finishes its chunk and flips the document
        assert await PIPELINE_B.chunks.mark_ready(db_session, held.id, [0.0] * 8)
        assert await engine.lifecycle.mark_ready_if_complete(db_session, PIPELINE_B, document.id)
        await db_session.commit()
        stored = await PIPELINE_B.documents.get_by_id(db_session, document.id)
        assert stored.processing_status == DocumentStatus.READY

    async def test_embed_should_reclaim_chunks_abandoned_in_processing(
        self, engine, db_session
    ) -> None:
        """A claim older than the stuck threshold is reset and embedded."""
        # Arrange
        document, held = await self._chunked_document_with_held_chunk(engine, db_session)
        await PIPELINE_B.chunks.update_by_id(
            db_session, held.id, updated_at=utc_now() - timedelta(minutes=30)
        )
        await db_session.commit()

        # Act
        result = await engine.queue.process_batch(db_session)

        # Assert
        assert result.processed == 1
        counts = await PIPELINE_B.chunks.status_counts(db_session, document.id)
        assert counts[EmbeddingStatus.READY] == 45
        stored = await PIPELINE_B.documents.get_by_id(db_session, document.id)
        assert stored.processing_status == DocumentStatus.READY


class TestExtractStage:
    """Test suite for the extract handler."""

    async def test_extract_should_fail_on_whitespace_only_text(self, engine, db_session) -> None:
        # Arrange
        document = await engine.lifecycle.create_document(
            db_session, PIPELINE_A, name="blank.txt", text="   \n  \t"
        )
        await db_session.commit()

        # Act
        result = await engine.queue.process_batch(db_session)

        # Assert
        assert result.failed == 1
        assert "No text extracted" in result.errors[0]
        assert await PIPELINE_A.chunks.count_for_document(db_session, document.id) == 0
