"""
Stage handlers dispatched by the job queue processor.

One coroutine per JobType. A handler receives the claimed job snapshot,
does its unit of work and returns a HandlerOutcome for verification; any
exception is the job's failure. Handlers are idempotent: re-running one
on a unit that already finished is a no-op that reports the same result.

Dependencies: knowledge_sync.boundary (object store, extractor), chunker
System role: extract / validate / page_batch / embed stages
"""

import logging
from datetime import timedelta
from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.aws import S3DocumentClient
from knowledge_sync.boundary.db.base import utc_now
from knowledge_sync.boundary.db.CRUD import job_crud
from knowledge_sync.boundary.db.models import DocumentStatus, EmbeddingStatus, JobType
from knowledge_sync.boundary.extraction import DocumentTextExtractor
from knowledge_sync.configs import PipelineSettings
from knowledge_sync.core.document_processing.chunker import chunk_text, normalize_text
from knowledge_sync.core.document_processing.embedding_worker import EmbeddingWorker
from knowledge_sync.core.document_processing.external import call_blocking
from knowledge_sync.core.document_processing.lifecycle import DocumentLifecycle
from knowledge_sync.core.document_processing.models import ClaimedJob, HandlerOutcome
from knowledge_sync.core.document_processing.variants import PipelineVariant
from knowledge_sync.core.exceptions import (
    BatchSplitError,
    EmbeddingError,
    ExtractionError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Window chunks are indexed batch_index * stride + i so windows never collide
CHUNK_INDEX_STRIDE = 10000

StageHandler = Callable[[AsyncSession, PipelineVariant, ClaimedJob], Awaitable[HandlerOutcome]]


class StageHandlers:
    """Stage handler set shared by all pipeline variants."""

    def __init__(
        self,
        lifecycle: DocumentLifecycle,
        worker: EmbeddingWorker,
        object_store: S3DocumentClient,
        extractor: DocumentTextExtractor,
        settings: PipelineSettings,
    ) -> None:
        self.lifecycle = lifecycle
        self.worker = worker
        self.object_store = object_store
        self.extractor = extractor
        self.settings = settings
        self._handlers: dict[JobType, StageHandler] = {
            JobType.EXTRACT: self.extract,
            JobType.VALIDATE: self.validate,
            JobType.PAGE_BATCH: self.page_batch,
            JobType.EMBED: self.embed,
        }

    def handler_for(self, job_type: JobType) -> StageHandler:
        """
        Raises:
            ValidationError: If no handler is registered for the job type
        """
        handler = self._handlers.get(job_type)
        if handler is None:
            raise ValidationError(f"No handler for job type: {job_type}", field="job_type")
        return handler

    async def _extract_text(self, key: str, file_name: str, document_id: str) -> str:
        timeout = self.settings.external_call_timeout_seconds
        data = await call_blocking(
            self.object_store.download_bytes, key, timeout=timeout, description="source download"
        )
        text, error = await call_blocking(
            self.extractor.extract, data, file_name, timeout=timeout, description="text extraction"
        )
        if error:
            raise ExtractionError(error, document_id)
        return normalize_text(text)

    async def extract(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        job: ClaimedJob,
    ) -> HandlerOutcome:
        """Extract (if needed), chunk and persist a whole document."""
        document = await self.lifecycle.get_document(session, variant, job.document_id)

        existing = await variant.chunks.count_for_document(session, job.document_id)
        if existing:
            await self.lifecycle.mark_chunked(session, variant, job.document_id)
            return HandlerOutcome(chunks_created=existing, verify=True, require_chunks=True)

        text = document.content
        if text is None:
            if not document.storage_ref:
                raise ExtractionError("Document has neither text nor a source", str(job.document_id))
            text = await self._extract_text(document.storage_ref, document.name, str(job.document_id))
            await variant.documents.transition(
                session,
                job.document_id,
                DocumentStatus.INGESTED,
                from_statuses=[DocumentStatus.CREATED, DocumentStatus.INGESTED],
                content=text,
                text_length=len(text),
            )

        if not text.strip():
            raise ExtractionError("No text extracted from document", str(job.document_id))
        contents = chunk_text(text, self.settings.chunk_size, self.settings.chunk_overlap)

        created = await variant.chunks.create_many(session, job.document_id, contents)
        await self.lifecycle.mark_chunked(session, variant, job.document_id)
        logger.info(
            f"{__name__}:extract - Document chunked",
            extra={
                "document_id": str(job.document_id),
                "pipeline": variant.name,
                "text_length": len(text),
                "chunks": created,
            },
        )
        return HandlerOutcome(chunks_created=created, verify=True, require_chunks=True)

    async def validate(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        job: ClaimedJob,
    ) -> HandlerOutcome:
        """Check the source is usable, then queue extraction."""
        document = await self.lifecycle.get_document(session, variant, job.document_id)

        if document.content is not None:
            if len(document.content.strip()) < self.settings.min_text_length:
                raise ValidationError(
                    f"Document text shorter than {self.settings.min_text_length} characters",
                    field="content",
                    details={"document_id": str(job.document_id)},
                )
        else:
            exists = await call_blocking(
                self.object_store.file_exists,
                document.storage_ref,
                timeout=self.settings.external_call_timeout_seconds,
                description="source lookup",
            )
            if not exists:
                raise StorageError("Source blob not found", document.storage_ref)

        if not await job_crud.has_active(session, job.document_id, [JobType.EXTRACT]):
            await job_crud.enqueue(session, job.document_id, variant.name, JobType.EXTRACT)
        return HandlerOutcome()

    async def page_batch(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        job: ClaimedJob,
    ) -> HandlerOutcome:
        """Extract and chunk one page window, replacing any earlier attempt's chunks."""
        if not job.input_ref:
            raise BatchSplitError("Page window job has no input artifact", str(job.document_id))

        text = await self._extract_text(job.input_ref, job.input_ref, str(job.document_id))
        await variant.chunks.delete_for_batch(session, job.document_id, job.batch_index)

        created = 0
        if text.strip():
            contents = chunk_text(text, self.settings.chunk_size, self.settings.chunk_overlap)
            created = await variant.chunks.create_many(
                session,
                job.document_id,
                contents,
                start_index=job.batch_index * CHUNK_INDEX_STRIDE,
                page_number=job.page_start,
                batch_index=job.batch_index,
            )
        logger.info(
            f"{__name__}:page_batch - Page window chunked",
            extra={
                "document_id": str(job.document_id),
                "pipeline": variant.name,
                "batch_index": job.batch_index,
                "page_start": job.page_start,
                "page_end": job.page_end,
                "chunks": created,
            },
        )
        return HandlerOutcome(chunks_created=created, verify=True, batch_index=job.batch_index)

    async def embed(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        job: ClaimedJob,
    ) -> HandlerOutcome:
        """
        Embed every chunk of one document.

        Failed chunks (and chunks abandoned in processing by a crashed
        worker) go back to pending first, so each embed attempt retries them
        once within this job's retry budget. Chunks another live worker
        holds are left to it: that worker flips the document to ready.
        """
        document = await self.lifecycle.get_document(session, variant, job.document_id)
        if document.processing_status == DocumentStatus.READY:
            return HandlerOutcome()

        await self.lifecycle.start_embedding(session, variant, job.document_id)
        await variant.chunks.reset_failed(session, job.document_id)
        stale_before = utc_now() - timedelta(minutes=self.settings.stuck_threshold_minutes)
        await variant.chunks.reset_stale_processing(session, job.document_id, stale_before)
        await session.commit()

        run = await self.worker.run_for_document(session, variant, job.document_id)

        counts = await variant.chunks.status_counts(session, job.document_id)
        stalled = await variant.chunks.count_stale_processing(
            session, job.document_id, stale_before
        )
        failed = counts[EmbeddingStatus.FAILED]
        pending = counts[EmbeddingStatus.PENDING]
        in_flight = counts[EmbeddingStatus.PROCESSING] - stalled
        if failed or stalled or (pending and not in_flight):
            raise EmbeddingError(
                f"{failed} of {sum(counts.values())} chunks failed to embed "
                f"({pending} pending, {counts[EmbeddingStatus.PROCESSING]} processing)",
                str(job.document_id),
                details={"processed": run.processed, "failed": run.failed, "stalled": stalled},
            )
        if in_flight:
            logger.info(
                f"{__name__}:embed - Chunks still held by another worker",
                extra={
                    "document_id": str(job.document_id),
                    "pipeline": variant.name,
                    "in_flight": in_flight,
                    "pending": pending,
                },
            )
            return HandlerOutcome()
        await self.lifecycle.mark_ready_if_complete(session, variant, job.document_id)
        return HandlerOutcome()

    async def after_success(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        job: ClaimedJob,
    ) -> None:
        """Follow-up run in the same transaction as the job's completion."""
        if job.job_type == JobType.PAGE_BATCH:
            await self.lifecycle.aggregate_batches(session, variant, job.document_id)
