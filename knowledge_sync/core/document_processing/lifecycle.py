"""
Document lifecycle orchestrator.

Owns the document state machine:

    created -> (splitting ->)? ingested -> chunked -> processing -> ready
    failed is reachable from any non-ready state

There is no polling loop here. The job queue, the embedding worker, the
batch splitter and the reconciler call into this module, and every
transition is a conditional UPDATE guarded by the statuses it may leave.

Dependencies: sqlalchemy, knowledge_sync.boundary.db
System role: Document state machine shared by all pipeline variants
"""

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.db.CRUD import job_crud
from knowledge_sync.boundary.db.models import (
    DocumentStatus,
    EmbeddingStatus,
    JobStatus,
    JobType,
    ProcessingJobModel,
)
from knowledge_sync.configs import PipelineSettings
from knowledge_sync.core.document_processing.chunker import normalize_text
from knowledge_sync.core.document_processing.variants import PipelineVariant
from knowledge_sync.core.exceptions import DocumentNotFoundError, ValidationError
from knowledge_sync.observability.log_utils import truncate_error

logger = logging.getLogger(__name__)

# Statuses from which the document can still be driven forward by jobs
PRE_CHUNK_STATUSES = (DocumentStatus.CREATED, DocumentStatus.INGESTED)
EMBEDDABLE_STATUSES = (DocumentStatus.CHUNKED, DocumentStatus.PROCESSING)
RECONCILABLE_STATUSES = (
    DocumentStatus.INGESTED,
    DocumentStatus.CHUNKED,
    DocumentStatus.PROCESSING,
    DocumentStatus.READY,
)


class DocumentLifecycle:
    """
    Document state machine operations.

    Stateless apart from settings; every method takes the session and the
    variant whose tables it should touch. Callers own commit/rollback.
    """

    def __init__(self, settings: PipelineSettings) -> None:
        self.settings = settings

    async def get_document(self, session: AsyncSession, variant: PipelineVariant, document_id: UUID):
        """
        Load a document or raise.

        Raises:
            DocumentNotFoundError: If the id is not in the variant's table
        """
        document = await variant.documents.get_by_id(session, document_id)
        if document is None:
            raise DocumentNotFoundError(str(document_id), {"pipeline": variant.name})
        return document

    async def create_document(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        name: str,
        storage_ref: str | None = None,
        size_bytes: int | None = None,
        text: str | None = None,
        split: bool | None = None,
    ):
        """
        Create a document and queue its first stage.

        A document created with text starts ingested; one that only points
        at a blob starts created. Blobs destined for the batch splitter get
        no job here: the splitter materializes their page-window jobs.

        Args:
            session: Async database session
            variant: Owning pipeline variant
            name: Display name
            storage_ref: Object store key of the source blob
            size_bytes: Source size in bytes
            text: Already-extracted text, when the caller has it
            split: Route through the batch splitter (variant default when None)

        Returns:
            The created document

        Raises:
            ValidationError: If the name is empty or there is neither text nor a blob
        """
        if not name or not name.strip():
            raise ValidationError("Document name is required", field="name")
        if text is None and not storage_ref:
            raise ValidationError(
                "Either text or storage_ref is required", field="storage_ref"
            )
        if split is None:
            split = variant.split_by_default and text is None

        fields = {
            "name": name.strip(),
            "storage_ref": storage_ref,
            "size_bytes": size_bytes,
        }
        if text is not None:
            content = normalize_text(text)
            fields.update(
                content=content,
                text_length=len(content),
                processing_status=DocumentStatus.INGESTED,
            )
        else:
            fields["processing_status"] = DocumentStatus.CREATED

        document = await variant.documents.create(session, **fields)

        if text is not None or not split:
            first_stage = (
                JobType.VALIDATE if self.settings.validate_before_extract else JobType.EXTRACT
            )
            await job_crud.enqueue(session, document.id, variant.name, first_stage)

        logger.info(
            f"{__name__}:create_document - Document created",
            extra={
                "document_id": str(document.id),
                "pipeline": variant.name,
                "processing_status": document.processing_status.value,
                "split": bool(split and text is None),
            },
        )
        return document

    async def create_chunks(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
        contents: Sequence[str],
    ) -> int:
        """
        Append pending chunks to a document and hand it to the embed stage.

        Returns:
            Number of chunks created

        Raises:
            DocumentNotFoundError: If the document does not exist
            ValidationError: If contents is empty
        """
        if not contents:
            raise ValidationError("At least one chunk is required", field="contents")
        await self.get_document(session, variant, document_id)

        start_index = await variant.chunks.count_for_document(session, document_id)
        created = await variant.chunks.create_many(
            session, document_id, list(contents), start_index=start_index
        )
        await self.mark_chunked(session, variant, document_id)
        return created

    async def enqueue_job(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
        job_type: JobType = JobType.EXTRACT,
        batch_index: int = 0,
        input_ref: str | None = None,
        **fields,
    ) -> ProcessingJobModel:
        """Queue a pending job for an existing document."""
        await self.get_document(session, variant, document_id)
        job = await job_crud.enqueue(
            session,
            document_id,
            variant.name,
            job_type,
            batch_index=batch_index,
            input_ref=input_ref,
            **fields,
        )
        logger.info(
            f"{__name__}:enqueue_job - Job queued",
            extra={
                "job_id": str(job.id),
                "document_id": str(document_id),
                "pipeline": variant.name,
                "job_type": job_type.value,
                "batch_index": batch_index,
            },
        )
        return job

    async def ensure_embed_job(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
    ) -> ProcessingJobModel | None:
        """Queue an embed job unless one is already pending or running."""
        if await job_crud.has_active(session, document_id, [JobType.EMBED]):
            return None
        return await job_crud.enqueue(session, document_id, variant.name, JobType.EMBED)

    async def mark_chunked(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
    ) -> bool:
        """
        Move a document whose chunks are written to chunked.

        Documents already further along keep their status; in every case an
        embed job is ensured while chunks remain unembedded.

        Returns:
            True if the status changed
        """
        moved = await variant.documents.transition(
            session,
            document_id,
            DocumentStatus.CHUNKED,
            from_statuses=PRE_CHUNK_STATUSES,
            error_message=None,
        )
        document = await self.get_document(session, variant, document_id)
        if document.processing_status in EMBEDDABLE_STATUSES:
            counts = await variant.chunks.status_counts(session, document_id)
            if sum(counts.values()) > counts[EmbeddingStatus.READY]:
                await self.ensure_embed_job(session, variant, document_id)
        return moved

    async def start_embedding(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
    ) -> bool:
        """chunked -> processing."""
        return await variant.documents.transition(
            session,
            document_id,
            DocumentStatus.PROCESSING,
            from_statuses=[DocumentStatus.CHUNKED],
        )

    async def is_complete(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
    ) -> bool:
        """
        True when every chunk is ready and every non-embed job completed.

        Embed jobs are excluded because the embed handler itself asks this
        question while its own job is still processing.
        """
        counts = await variant.chunks.status_counts(session, document_id)
        total = sum(counts.values())
        if total == 0 or counts[EmbeddingStatus.READY] != total:
            return False
        unfinished = await job_crud.count_unfinished(
            session, document_id, exclude_types=(JobType.EMBED,)
        )
        return unfinished == 0

    async def mark_ready_if_complete(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
    ) -> bool:
        """
        Flip the document to ready if it is complete.

        Returns:
            True if the document moved to ready in this call
        """
        if not await self.is_complete(session, variant, document_id):
            return False
        moved = await variant.documents.transition(
            session,
            document_id,
            DocumentStatus.READY,
            from_statuses=[
                DocumentStatus.INGESTED,
                DocumentStatus.CHUNKED,
                DocumentStatus.PROCESSING,
            ],
            error_message=None,
        )
        if moved:
            logger.info(
                f"{__name__}:mark_ready_if_complete - Document ready",
                extra={"document_id": str(document_id), "pipeline": variant.name},
            )
        return moved

    async def fail_document(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
        error: BaseException | str,
    ) -> bool:
        """Mark a non-ready document failed with a truncated, human-readable reason."""
        message = truncate_error(error)
        failed = await variant.documents.mark_failed(session, document_id, message)
        if failed:
            logger.warning(
                f"{__name__}:fail_document - Document failed",
                extra={
                    "document_id": str(document_id),
                    "pipeline": variant.name,
                    "error": message,
                },
            )
        return failed

    async def aggregate_batches(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
    ) -> DocumentStatus | None:
        """
        Fold completed page-window jobs into the document status.

        Runs after each page_batch success. Only when every window has
        completed does the document move on: to chunked if the windows
        produced any chunk, otherwise to failed.

        Returns:
            The status the document moved to, or None while windows remain
        """
        jobs = await job_crud.get_by_document(session, document_id, JobType.PAGE_BATCH)
        if not jobs or any(job.status != JobStatus.COMPLETED for job in jobs):
            return None

        total = await variant.chunks.count_for_document(session, document_id)
        if total == 0:
            await self.fail_document(
                session,
                variant,
                document_id,
                f"No text extracted from any of {len(jobs)} page windows",
            )
            return DocumentStatus.FAILED

        await self.mark_chunked(session, variant, document_id)
        logger.info(
            f"{__name__}:aggregate_batches - All page windows completed",
            extra={
                "document_id": str(document_id),
                "pipeline": variant.name,
                "windows": len(jobs),
                "chunks": total,
            },
        )
        return DocumentStatus.CHUNKED

    async def reconcile_document_status(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
    ) -> DocumentStatus | None:
        """
        Recompute a document's status from its children.

        No chunks at all resets it to ingested; all chunks ready (with no
        unfinished non-embed job) makes it ready; anything else is left
        unchanged. Documents that are created, splitting or failed belong
        to other owners and are skipped. Running this any number of times
        converges to the same state.

        Returns:
            The new status if it changed, else None
        """
        document = await self.get_document(session, variant, document_id)
        current = document.processing_status
        if current not in RECONCILABLE_STATUSES:
            return None

        counts = await variant.chunks.status_counts(session, document_id)
        total = sum(counts.values())

        if total == 0:
            target = DocumentStatus.INGESTED
        elif await self.is_complete(session, variant, document_id):
            target = DocumentStatus.READY
        else:
            return None

        if target == current:
            return None
        moved = await variant.documents.transition(
            session, document_id, target, from_statuses=[current]
        )
        if not moved:
            return None
        logger.info(
            f"{__name__}:reconcile_document_status - Document status reconciled",
            extra={
                "document_id": str(document_id),
                "pipeline": variant.name,
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return target

    async def rederive_jobs(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
    ) -> JobType | None:
        """
        Queue whatever work a document needs to make progress again.

        ingested without chunks gets an extract job (or window aggregation
        when it was split); ingested with chunks is moved on to chunked;
        chunked or processing with unembedded chunks gets an embed job.

        Returns:
            The job type queued, or None when nothing was needed
        """
        document = await self.get_document(session, variant, document_id)
        status = document.processing_status
        counts = await variant.chunks.status_counts(session, document_id)
        total = sum(counts.values())

        if status == DocumentStatus.INGESTED:
            if total > 0:
                unfinished = await job_crud.count_unfinished(
                    session, document_id, exclude_types=(JobType.EMBED,)
                )
                if unfinished == 0:
                    await self.mark_chunked(session, variant, document_id)
                    return JobType.EMBED
                return None
            if await job_crud.has_active(session, document_id):
                return None
            windows = await job_crud.get_by_document(session, document_id, JobType.PAGE_BATCH)
            if windows:
                await self.aggregate_batches(session, variant, document_id)
                return None
            await job_crud.enqueue(session, document_id, variant.name, JobType.EXTRACT)
            return JobType.EXTRACT

        if status in EMBEDDABLE_STATUSES and total > counts[EmbeddingStatus.READY]:
            job = await self.ensure_embed_job(session, variant, document_id)
            return JobType.EMBED if job is not None else None

        return None

    async def restore_after_recovery(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
        job_type: JobType,
    ) -> DocumentStatus | None:
        """
        Bring a failed document back to the entry state of a recovered job.

        Embed jobs restart from chunked with their failed chunks pending
        again; every other stage restarts from ingested (or created when
        no text has been extracted yet).

        Returns:
            The restored status, or None if the document was not failed
        """
        document = await self.get_document(session, variant, document_id)
        if document.processing_status != DocumentStatus.FAILED:
            return None

        if job_type == JobType.EMBED:
            target = DocumentStatus.CHUNKED
            await variant.chunks.reset_failed(session, document_id)
        elif job_type == JobType.PAGE_BATCH or document.content is not None:
            target = DocumentStatus.INGESTED
        else:
            target = DocumentStatus.CREATED

        moved = await variant.documents.transition(
            session,
            document_id,
            target,
            from_statuses=[DocumentStatus.FAILED],
            error_message=None,
        )
        return target if moved else None
