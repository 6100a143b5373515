"""
Job queue processor.

Claims pending jobs oldest-first and runs the stage handler for each.
A claim is a conditional pending -> processing UPDATE; whoever gets
rowcount 1 owns the job, so concurrent processQueue invocations never
double-process a job. Every handler failure is caught here and turned
into a persisted retry or terminal failure; nothing propagates to the
scheduler that invoked the sweep.

Dependencies: sqlalchemy, knowledge_sync.boundary.db
System role: processQueue entrypoint of the ingestion pipeline
"""

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_sync.boundary.db.CRUD import job_crud
from knowledge_sync.boundary.db.models import JobStatus
from knowledge_sync.configs import PipelineSettings
from knowledge_sync.core.document_processing.external import await_with_timeout
from knowledge_sync.core.document_processing.handlers import StageHandlers
from knowledge_sync.core.document_processing.lifecycle import DocumentLifecycle
from knowledge_sync.core.document_processing.models import (
    ClaimedJob,
    HandlerOutcome,
    JobRunResult,
    QueueResult,
)
from knowledge_sync.core.document_processing.variants import (
    VARIANTS,
    PipelineVariant,
    get_variant,
)
from knowledge_sync.core.exceptions import (
    DocumentProcessingError,
    ValidationError,
    VerificationError,
)
from knowledge_sync.observability.log_utils import log_exception_with_context, truncate_error

logger = logging.getLogger(__name__)


class JobQueueProcessor:
    """Runs claimed processing jobs through their stage handlers."""

    def __init__(
        self,
        handlers: StageHandlers,
        lifecycle: DocumentLifecycle,
        settings: PipelineSettings,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        """
        Args:
            handlers: Stage handler set
            lifecycle: Used to propagate terminal failures to documents
            settings: Retry ceiling, default batch size and job timeout
            session_factory: Opens sessions for run_job (background use)
        """
        self.handlers = handlers
        self.lifecycle = lifecycle
        self.settings = settings
        self.session_factory = session_factory

    async def process_batch(
        self,
        session: AsyncSession,
        batch_size: int | None = None,
    ) -> QueueResult:
        """
        Claim and run up to batch_size pending jobs.

        Candidates are read once at the start, so jobs enqueued by the
        handlers of this call wait for the next call.

        Args:
            session: Async database session (committed per job)
            batch_size: Maximum jobs to claim (settings default when None)

        Returns:
            QueueResult: processed, failed and one error line per failure

        Raises:
            ValidationError: If batch_size is not positive
        """
        limit = batch_size if batch_size is not None else self.settings.queue_batch_size
        if limit <= 0:
            raise ValidationError("batch_size must be positive", field="batch_size")

        candidates = await job_crud.get_claimable(session, limit, self.settings.max_retries)
        job_ids = [job.id for job in candidates]
        await session.commit()

        result = QueueResult()
        for job_id in job_ids:
            outcome = await self.process_job(session, job_id)
            if outcome is None:
                continue
            if outcome.success:
                result.processed += 1
            else:
                result.failed += 1
                result.errors.append(f"{job_id}: {outcome.error}")

        logger.info(
            f"{__name__}:process_batch - Queue batch finished",
            extra={
                "candidates": len(job_ids),
                "processed": result.processed,
                "failed": result.failed,
            },
        )
        return result

    async def process_job(self, session: AsyncSession, job_id: UUID) -> JobRunResult | None:
        """
        Claim one job and run it.

        Returns:
            JobRunResult, or None when another claimant owns the job
        """
        if not await job_crud.claim(session, job_id):
            await session.rollback()
            logger.debug(
                f"{__name__}:process_job - Job already claimed",
                extra={"job_id": str(job_id)},
            )
            return None
        job = ClaimedJob.model_validate(await job_crud.get_by_id(session, job_id))
        await session.commit()

        try:
            variant = get_variant(job.pipeline)
            handler = self.handlers.handler_for(job.job_type)
            outcome = await await_with_timeout(
                handler(session, variant, job),
                self.settings.job_timeout_seconds,
                f"{job.job_type.value} handler",
            )
            await self._verify(session, variant, job, outcome)
            if not await job_crud.mark_completed(session, job.id, outcome.chunks_created):
                raise DocumentProcessingError(
                    "Job left processing while its handler ran", str(job.document_id)
                )
            await self.handlers.after_success(session, variant, job)
            await session.commit()
        except Exception as e:
            await session.rollback()
            return await self._record_failure(session, job, e)

        logger.info(
            f"{__name__}:process_job - Job completed",
            extra={
                "job_id": str(job.id),
                "document_id": str(job.document_id),
                "pipeline": job.pipeline,
                "job_type": job.job_type.value,
                "chunks_created": outcome.chunks_created,
            },
        )
        return JobRunResult(job_id=job.id, success=True, status=JobStatus.COMPLETED)

    async def run_job(self, job_id: UUID) -> JobRunResult | None:
        """Process one job in a session of its own (first-window fast path)."""
        if self.session_factory is None:
            raise RuntimeError("JobQueueProcessor.run_job requires a session factory")
        async with self.session_factory() as session:
            return await self.process_job(session, job_id)

    async def _verify(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        job: ClaimedJob,
        outcome: HandlerOutcome,
    ) -> None:
        """
        Confirm the handler's reported side effect is persisted.

        The persisted active chunk count (for the window when the outcome
        names one) must equal what the handler reported, and be non-zero
        when the stage requires chunks.

        Raises:
            VerificationError: On a missing or partial write
        """
        if not outcome.verify:
            return
        expected = outcome.chunks_created or 0
        actual = await variant.chunks.count_for_document(
            session, job.document_id, batch_index=outcome.batch_index, active_only=True
        )
        if outcome.require_chunks and actual < 1:
            raise VerificationError(
                "Handler succeeded but no chunks were persisted",
                str(job.document_id),
                expected=expected,
                actual=actual,
            )
        if actual != expected:
            raise VerificationError(
                f"Handler reported {expected} chunks but {actual} were persisted",
                str(job.document_id),
                expected=expected,
                actual=actual,
            )

    async def _record_failure(
        self,
        session: AsyncSession,
        job: ClaimedJob,
        error: Exception,
    ) -> JobRunResult:
        """Count the failed attempt and fail the document once the job is terminal."""
        message = truncate_error(error)
        try:
            new_status = await job_crud.record_failure(
                session, job.id, job.retry_count, self.settings.max_retries, message
            )
            variant = VARIANTS.get(job.pipeline)
            if new_status == JobStatus.FAILED and variant is not None:
                await self.lifecycle.fail_document(session, variant, job.document_id, message)
            await session.commit()
        except SQLAlchemyError as db_error:
            await session.rollback()
            log_exception_with_context(
                logger,
                f"{__name__}:_record_failure - Could not record job failure",
                db_error,
                job_id=job.id,
                document_id=job.document_id,
            )
            return JobRunResult(
                job_id=job.id,
                success=False,
                error=f"{message} (failure not recorded: {type(db_error).__name__})",
            )

        logger.warning(
            f"{__name__}:_record_failure - Job attempt failed",
            extra={
                "job_id": str(job.id),
                "document_id": str(job.document_id),
                "pipeline": job.pipeline,
                "job_type": job.job_type.value,
                "retry_count": job.retry_count + 1,
                "job_status": new_status.value if new_status else None,
                "error": message,
            },
        )
        return JobRunResult(job_id=job.id, success=False, status=new_status, error=message)
