"""
Tests for page-window computation and the batch splitter.

System role: Verification of window boundaries, all-or-nothing splits and
the first-window fast path
"""

from unittest.mock import MagicMock

import pytest

from knowledge_sync.boundary.db.CRUD import job_crud
from knowledge_sync.boundary.db.models import DocumentStatus, JobStatus, JobType
from knowledge_sync.core.document_processing import BatchSplitter, compute_page_windows
from knowledge_sync.core.document_processing.variants import PIPELINE_A_HYBRID
from knowledge_sync.core.exceptions import BatchSplitError, ValidationError

from conftest import FakeObjectStore, FakePageDecoder


def make_pdf(pages: int) -> bytes:
    return "\f".join(f"page {number} text" for number in range(1, pages + 1)).encode("utf-8")


async def create_split_document(engine, session, storage_ref="uploads/report.pdf"):
    document = await engine.lifecycle.create_document(
        session, PIPELINE_A_HYBRID, name="report.pdf", storage_ref=storage_ref
    )
    await session.commit()
    return document.id


class TestComputePageWindows:
    """Test suite for compute_page_windows()."""

    def test_compute_page_windows_should_split_47_pages_into_3_windows(self) -> None:
        """47 pages with window 20 give [1,20], [21,40], [41,47]."""
        # Act
        windows = compute_page_windows(47, 20)

        # Assert
        assert [(w.page_start, w.page_end) for w in windows] == [(1, 20), (21, 40), (41, 47)]
        assert [w.batch_index for w in windows] == [0, 1, 2]

    def test_compute_page_windows_should_return_one_window_for_short_document(self) -> None:
        windows = compute_page_windows(5, 20)
        assert [(w.page_start, w.page_end) for w in windows] == [(1, 5)]

    def test_compute_page_windows_should_handle_exact_multiple(self) -> None:
        windows = compute_page_windows(40, 20)
        assert [(w.page_start, w.page_end) for w in windows] == [(1, 20), (21, 40)]

    def test_compute_page_windows_should_return_nothing_for_zero_pages(self) -> None:
        assert compute_page_windows(0, 20) == []

    def test_compute_page_windows_should_reject_non_positive_window(self) -> None:
        with pytest.raises(ValidationError):
            compute_page_windows(10, 0)


class TestBatchSplitter:
    """Test suite for BatchSplitter.split()."""

    async def test_split_should_create_one_job_per_window(self, engine, db_session, object_store) -> None:
        """A 47-page source becomes 3 pending page_batch jobs with page bounds."""
        # Arrange
        object_store.objects["uploads/report.pdf"] = make_pdf(47)
        engine.splitter.dispatcher = None
        document_id = await create_split_document(engine, db_session)

        # Act
        result = await engine.splitter.split(db_session, PIPELINE_A_HYBRID, document_id)

        # Assert
        assert result.created is True
        assert result.total_pages == 47
        jobs = await job_crud.get_by_document(db_session, document_id, JobType.PAGE_BATCH)
        assert [(job.page_start, job.page_end) for job in jobs] == [(1, 20), (21, 40), (41, 47)]
        assert all(job.status == JobStatus.PENDING for job in jobs)
        assert all(job.total_batches == 3 for job in jobs)
        assert [job.input_ref for job in jobs] == [
            f"batches/{document_id}/report_batch_{index}.pdf" for index in range(3)
        ]
        document = await PIPELINE_A_HYBRID.documents.get_by_id(db_session, document_id)
        assert document.processing_status == DocumentStatus.INGESTED
        assert document.total_pages == 47

    async def test_split_should_return_existing_jobs_without_reuploading(
        self, engine, db_session, object_store
    ) -> None:
        """Splitting twice returns the first split's jobs."""
        # Arrange
        object_store.objects["uploads/report.pdf"] = make_pdf(30)
        engine.splitter.dispatcher = None
        document_id = await create_split_document(engine, db_session)
        first = await engine.splitter.split(db_session, PIPELINE_A_HYBRID, document_id)
        uploads = len(object_store.upload_attempts)

        # Act
        second = await engine.splitter.split(db_session, PIPELINE_A_HYBRID, document_id)

        # Assert
        assert second.created is False
        assert second.job_ids == first.job_ids
        assert len(object_store.upload_attempts) == uploads

    async def test_split_should_retry_transient_upload_failures(
        self, engine, db_session, object_store
    ) -> None:
        """Two failed attempts followed by success still produce the window."""
        # Arrange
        object_store.objects["uploads/report.pdf"] = make_pdf(10)
        object_store.fail_uploads = 2
        engine.splitter.dispatcher = None
        document_id = await create_split_document(engine, db_session)

        # Act
        result = await engine.splitter.split(db_session, PIPELINE_A_HYBRID, document_id)

        # Assert
        assert len(result.job_ids) == 1
        assert len(object_store.upload_attempts) == 3

    async def test_split_should_fail_document_when_uploads_are_exhausted(
        self, engine, db_session, object_store
    ) -> None:
        """Exhausted upload retries leave no jobs and a failed document."""
        # Arrange
        object_store.objects["uploads/report.pdf"] = make_pdf(47)
        object_store.fail_uploads = -1
        engine.splitter.dispatcher = None
        document_id = await create_split_document(engine, db_session)

        # Act
        with pytest.raises(BatchSplitError):
            await engine.splitter.split(db_session, PIPELINE_A_HYBRID, document_id)

        # Assert
        assert len(object_store.upload_attempts) == 3
        jobs = await job_crud.get_by_document(db_session, document_id)
        assert jobs == []
        document = await PIPELINE_A_HYBRID.documents.get_by_id(db_session, document_id)
        assert document.processing_status == DocumentStatus.FAILED
        assert "SlowDown" in document.error_message

    async def test_split_should_remove_uploaded_artifacts_on_failure(
        self, engine, db_session, object_store
    ) -> None:
        """Windows uploaded before a failing window are deleted again."""
        # Arrange
        object_store.objects["uploads/report.pdf"] = make_pdf(47)
        engine.splitter.dispatcher = None
        document_id = await create_split_document(engine, db_session)
        original_upload = object_store.upload_bytes

        def fail_third_window(key, data, content_type="application/octet-stream"):
            if key.endswith("_batch_2.pdf"):
                raise BatchSplitError("disk full")
            return original_upload(key, data, content_type)

        object_store.upload_bytes = fail_third_window

        # Act
        with pytest.raises(BatchSplitError):
            await engine.splitter.split(db_session, PIPELINE_A_HYBRID, document_id)

        # Assert
        assert object_store.deleted == [
            f"batches/{document_id}/report_batch_0.pdf",
            f"batches/{document_id}/report_batch_1.pdf",
        ]
        assert await job_crud.get_by_document(db_session, document_id) == []

    async def test_split_should_reject_document_not_awaiting_split(
        self, engine, db_session
    ) -> None:
        """A document that already has text cannot be split."""
        # Arrange
        document = await engine.lifecycle.create_document(
            db_session, PIPELINE_A_HYBRID, name="notes.txt", storage_ref="uploads/notes.txt", text="hello"
        )
        await db_session.commit()

        # Act / Assert
        with pytest.raises(ValidationError):
            await engine.splitter.split(db_session, PIPELINE_A_HYBRID, document.id)

    async def test_split_should_submit_first_window_to_dispatcher(
        self, pipeline_settings, db_session, engine
    ) -> None:
        """Only the first window is triggered immediately."""
        # Arrange
        store = FakeObjectStore({"uploads/report.pdf": make_pdf(47)})
        dispatcher = MagicMock()
        triggered = []

        def trigger(job_id):
            triggered.append(job_id)
            return MagicMock(name="coroutine")

        splitter = BatchSplitter(
            store,
            FakePageDecoder(),
            engine.lifecycle,
            pipeline_settings,
            dispatcher=dispatcher,
            trigger=trigger,
        )
        document_id = await create_split_document(engine, db_session)

        # Act
        result = await splitter.split(db_session, PIPELINE_A_HYBRID, document_id)

        # Assert
        assert triggered == [result.job_ids[0]]
        dispatcher.submit.assert_called_once()
        assert dispatcher.submit.call_args.args[0] == f"page_batch:{result.job_ids[0]}"

    async def test_split_should_process_first_window_in_background(
        self, engine, db_session, object_store
    ) -> None:
        """With the real dispatcher the first window completes without a queue sweep."""
        # Arrange
        object_store.objects["uploads/report.pdf"] = make_pdf(47)
        document_id = await create_split_document(engine, db_session)

        # Act
        result = await engine.splitter.split(db_session, PIPELINE_A_HYBRID, document_id)
        await engine.dispatcher.drain()

        # Assert
        first = await job_crud.get_by_id(db_session, result.job_ids[0])
        second = await job_crud.get_by_id(db_session, result.job_ids[1])
        assert first.status == JobStatus.COMPLETED
        assert second.status == JobStatus.PENDING
