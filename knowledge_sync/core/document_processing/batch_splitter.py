"""
Batch splitter.

Cuts a paged source into fixed-size page windows, uploads each window as
a standalone artifact and queues one page_batch job per window. The split
is all-or-nothing: if any window cannot be uploaded the uploaded artifacts
are removed, no job is left behind and the document is marked failed.

Dependencies: tenacity, knowledge_sync.boundary.aws, knowledge_sync.boundary.extraction
System role: Page-window fan-out for large documents (Pipeline A-Hybrid)
"""

import logging
from pathlib import PurePosixPath
from typing import Awaitable, Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from knowledge_sync.boundary.aws import S3DocumentClient
from knowledge_sync.boundary.db.CRUD import job_crud
from knowledge_sync.boundary.db.models import DocumentStatus, JobType
from knowledge_sync.boundary.extraction import PdfPageDecoder
from knowledge_sync.configs import PipelineSettings
from knowledge_sync.core.document_processing.external import call_blocking
from knowledge_sync.core.document_processing.lifecycle import DocumentLifecycle
from knowledge_sync.core.document_processing.models import PageWindow, SplitResult
from knowledge_sync.core.document_processing.variants import PipelineVariant
from knowledge_sync.core.exceptions import BatchSplitError, StorageError, ValidationError
from knowledge_sync.workers.dispatcher import TaskDispatcher

logger = logging.getLogger(__name__)


def compute_page_windows(total_pages: int, pages_per_batch: int) -> list[PageWindow]:
    """
    Partition pages 1..total_pages into consecutive windows.

    Window k covers pages k*W+1 .. min((k+1)*W, total_pages), so 47 pages
    with W=20 give [1,20], [21,40], [41,47].

    Raises:
        ValidationError: If pages_per_batch is not positive
    """
    if pages_per_batch <= 0:
        raise ValidationError("pages_per_batch must be positive", field="pages_per_batch")
    return [
        PageWindow(
            batch_index=index,
            page_start=start + 1,
            page_end=min(start + pages_per_batch, total_pages),
        )
        for index, start in enumerate(range(0, max(total_pages, 0), pages_per_batch))
    ]


class BatchSplitter:
    """Splits a created document into page-window jobs."""

    def __init__(
        self,
        object_store: S3DocumentClient,
        decoder: PdfPageDecoder,
        lifecycle: DocumentLifecycle,
        settings: PipelineSettings,
        batches_prefix: str = "batches",
        dispatcher: TaskDispatcher | None = None,
        trigger: Callable[[UUID], Awaitable] | None = None,
    ) -> None:
        """
        Args:
            object_store: Source download and artifact upload
            decoder: Page counting and page-range slicing
            lifecycle: Document state transitions
            settings: Window size, upload retry policy and timeouts
            batches_prefix: Key prefix for window artifacts
            dispatcher: Background task submission for the first-window fast path
            trigger: Coroutine factory that processes one job by id
        """
        self.object_store = object_store
        self.decoder = decoder
        self.lifecycle = lifecycle
        self.settings = settings
        self.batches_prefix = batches_prefix.strip("/")
        self.dispatcher = dispatcher
        self.trigger = trigger

    def artifact_key(self, document_id: UUID, name: str, batch_index: int) -> str:
        """Object key of one window's artifact."""
        stem = PurePosixPath(name).stem or "document"
        return f"{self.batches_prefix}/{document_id}/{stem}_batch_{batch_index}.pdf"

    async def _upload_with_retry(self, key: str, data: bytes) -> None:
        """Upload one artifact with exponential backoff and jitter."""
        attempts = self.settings.upload_max_attempts
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type((StorageError, TimeoutError)),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential_jitter(
                initial=self.settings.upload_backoff_base_seconds,
                jitter=self.settings.upload_backoff_jitter_seconds,
            ),
            before_sleep=lambda retry_state: logger.warning(
                f"{__name__}:_upload_with_retry - Retry {retry_state.attempt_number}/{attempts} for {key}"
            ),
            reraise=True,
        ):
            with attempt:
                await call_blocking(
                    self.object_store.upload_bytes,
                    key,
                    data,
                    "application/pdf",
                    timeout=self.settings.external_call_timeout_seconds,
                    description=f"upload of {key}",
                )

    async def _remove_artifacts(self, keys: list[str]) -> None:
        for key in keys:
            try:
                await call_blocking(
                    self.object_store.delete,
                    key,
                    timeout=self.settings.external_call_timeout_seconds,
                    description=f"delete of {key}",
                )
            except (StorageError, TimeoutError) as e:
                logger.warning(
                    f"{__name__}:_remove_artifacts - Could not remove artifact",
                    extra={"key": key, "error": str(e)},
                )

    async def split(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
    ) -> SplitResult:
        """
        Split a document into page-window jobs.

        Re-splitting a document that already has page_batch jobs returns the
        existing set. A fresh split moves the document created -> splitting
        -> ingested and, once committed, submits the first window for
        immediate processing.

        Args:
            session: Async database session (committed by this method)
            variant: Owning pipeline variant
            document_id: Document to split

        Returns:
            SplitResult: Windows and job ids

        Raises:
            DocumentNotFoundError: If the document does not exist
            ValidationError: If the document is not awaiting a split
            BatchSplitError: If the split failed (the document is then failed)
        """
        document = await self.lifecycle.get_document(session, variant, document_id)
        existing = await job_crud.get_by_document(session, document_id, JobType.PAGE_BATCH)
        if existing:
            return SplitResult(
                document_id=document_id,
                total_pages=document.total_pages,
                job_ids=[job.id for job in existing],
                windows=[
                    PageWindow(
                        batch_index=job.batch_index,
                        page_start=job.page_start,
                        page_end=job.page_end,
                    )
                    for job in existing
                ],
                created=False,
            )

        if not document.storage_ref:
            raise ValidationError("Document has no source to split", field="storage_ref")
        name, storage_ref = document.name, document.storage_ref

        moved = await variant.documents.transition(
            session,
            document_id,
            DocumentStatus.SPLITTING,
            from_statuses=[DocumentStatus.CREATED],
        )
        if not moved:
            raise ValidationError(
                f"Document cannot be split from status {document.processing_status.value}",
                field="processing_status",
                details={"document_id": str(document_id)},
            )
        await session.commit()

        timeout = self.settings.external_call_timeout_seconds
        uploaded: list[str] = []
        try:
            data = await call_blocking(
                self.object_store.download_bytes,
                storage_ref,
                timeout=timeout,
                description="source download",
            )
            total_pages = await call_blocking(
                self.decoder.count_pages, data, timeout=timeout, description="page count"
            )
            if total_pages <= 0:
                raise BatchSplitError("Source has no pages", str(document_id))

            windows = compute_page_windows(total_pages, self.settings.pages_per_batch)
            for window in windows:
                artifact = await call_blocking(
                    self.decoder.extract_pages,
                    data,
                    window.page_start,
                    window.page_end,
                    timeout=timeout,
                    description="page window extraction",
                )
                key = self.artifact_key(document_id, name, window.batch_index)
                await self._upload_with_retry(key, artifact)
                uploaded.append(key)

            job_ids = []
            for window, key in zip(windows, uploaded):
                job = await job_crud.enqueue(
                    session,
                    document_id,
                    variant.name,
                    JobType.PAGE_BATCH,
                    batch_index=window.batch_index,
                    input_ref=key,
                    total_batches=len(windows),
                    page_start=window.page_start,
                    page_end=window.page_end,
                )
                job_ids.append(job.id)

            await variant.documents.transition(
                session,
                document_id,
                DocumentStatus.INGESTED,
                from_statuses=[DocumentStatus.SPLITTING],
                total_pages=total_pages,
                processing_metadata={
                    "pages_per_batch": self.settings.pages_per_batch,
                    "total_batches": len(windows),
                },
            )
            await session.commit()
        except Exception as e:
            await session.rollback()
            await self._remove_artifacts(uploaded)
            await self.lifecycle.fail_document(session, variant, document_id, e)
            await session.commit()
            logger.error(
                f"{__name__}:split - Split aborted",
                extra={
                    "document_id": str(document_id),
                    "pipeline": variant.name,
                    "uploaded": len(uploaded),
                    "error": str(e),
                },
            )
            if isinstance(e, BatchSplitError):
                raise
            raise BatchSplitError(f"Failed to split document: {e}", str(document_id)) from e

        logger.info(
            f"{__name__}:split - Document split into page windows",
            extra={
                "document_id": str(document_id),
                "pipeline": variant.name,
                "total_pages": total_pages,
                "windows": len(windows),
            },
        )

        if self.dispatcher is not None and self.trigger is not None:
            first_job = job_ids[0]
            self.dispatcher.submit(f"page_batch:{first_job}", self.trigger(first_job))

        return SplitResult(
            document_id=document_id,
            total_pages=total_pages,
            job_ids=job_ids,
            windows=windows,
            created=True,
        )
