"""
Processing job CRUD operations.

Every status change here is a conditional UPDATE keyed on the status the
caller last observed. Ownership of a job is decided by the rowcount of
that UPDATE, never by a lock, so independent invocations can race safely.

Dependencies: sqlalchemy, knowledge_sync.boundary.db.models
System role: Job queue persistence and claim-by-compare-and-swap
"""

from datetime import datetime
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.db.base import utc_now
from knowledge_sync.boundary.db.models.job_model import JobStatus, JobType, ProcessingJobModel
from knowledge_sync.boundary.db.CRUD.base_crud import BULK_WRITE_OPTIONS, BaseCRUD

ACTIVE_STATUSES = (JobStatus.PENDING, JobStatus.PROCESSING)


class JobCRUD(BaseCRUD[ProcessingJobModel]):
    """
    CRUD operations for ProcessingJobModel.

    Extends BaseCRUD with enqueue, claim and the transitions used by the
    Job Queue Processor and the Reconciler.
    """

    def __init__(self) -> None:
        """Initialize JobCRUD with ProcessingJobModel."""
        super().__init__(ProcessingJobModel)

    async def enqueue(
        self,
        session: AsyncSession,
        document_id: UUID,
        pipeline: str,
        job_type: JobType,
        batch_index: int = 0,
        input_ref: str | None = None,
        **fields,
    ) -> ProcessingJobModel:
        """
        Create a pending job with retry_count=0.

        Args:
            session: Async database session
            document_id: Owning document UUID
            pipeline: Variant tag
            job_type: Stage handler selector
            batch_index: Ordinal of the unit within its document
            input_ref: Object store key of the unit's input
            **fields: page_start, page_end, total_batches

        Returns:
            Created ProcessingJobModel
        """
        return await self.create(
            session,
            document_id=document_id,
            pipeline=pipeline,
            job_type=job_type,
            batch_index=batch_index,
            input_ref=input_ref,
            status=JobStatus.PENDING,
            retry_count=0,
            **fields,
        )

    async def get_claimable(
        self,
        session: AsyncSession,
        limit: int,
        max_retries: int,
    ) -> Sequence[ProcessingJobModel]:
        """
        Pending jobs still under the retry ceiling, oldest first.

        Args:
            session: Async database session
            limit: Maximum number of jobs to return
            max_retries: Retry ceiling; jobs at or above it are skipped

        Returns:
            Sequence of candidate jobs (not yet claimed)
        """
        stmt = (
            select(ProcessingJobModel)
            .where(
                ProcessingJobModel.status == JobStatus.PENDING,
                ProcessingJobModel.retry_count < max_retries,
            )
            .order_by(ProcessingJobModel.created_at, ProcessingJobModel.batch_index)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def claim(self, session: AsyncSession, id: UUID) -> bool:
        """
        Atomically move a job PENDING -> PROCESSING.

        Args:
            session: Async database session
            id: Job UUID

        Returns:
            True if this caller now owns the job, False if another claimant
            (or a status change) got there first
        """
        stmt = (
            update(ProcessingJobModel)
            .where(
                ProcessingJobModel.id == id,
                ProcessingJobModel.status == JobStatus.PENDING,
            )
            .values(status=JobStatus.PROCESSING, started_at=utc_now())
        )
        result = await session.execute(stmt, execution_options=BULK_WRITE_OPTIONS)
        return result.rowcount == 1

    async def mark_completed(
        self,
        session: AsyncSession,
        id: UUID,
        chunks_created: int | None = None,
    ) -> bool:
        """PROCESSING -> COMPLETED, stamping completion time and clearing the error."""
        stmt = (
            update(ProcessingJobModel)
            .where(
                ProcessingJobModel.id == id,
                ProcessingJobModel.status == JobStatus.PROCESSING,
            )
            .values(
                status=JobStatus.COMPLETED,
                completed_at=utc_now(),
                error_message=None,
                chunks_created=chunks_created,
            )
        )
        result = await session.execute(stmt, execution_options=BULK_WRITE_OPTIONS)
        return result.rowcount == 1

    async def record_failure(
        self,
        session: AsyncSession,
        id: UUID,
        observed_retry_count: int,
        max_retries: int,
        error_message: str,
        from_status: JobStatus = JobStatus.PROCESSING,
    ) -> JobStatus | None:
        """
        Count one failed attempt and requeue or terminally fail the job.

        The new retry_count is observed_retry_count + 1. Reaching
        max_retries makes the job FAILED; otherwise it returns to PENDING
        with the error kept for diagnostics.

        Args:
            session: Async database session
            id: Job UUID
            observed_retry_count: retry_count read when the job was claimed
            max_retries: Retry ceiling
            error_message: Failure reason (already truncated)
            from_status: Status the caller expects the row to be in

        Returns:
            The new status, or None if the row was no longer in from_status
        """
        new_count = observed_retry_count + 1
        new_status = JobStatus.FAILED if new_count >= max_retries else JobStatus.PENDING
        stmt = (
            update(ProcessingJobModel)
            .where(
                ProcessingJobModel.id == id,
                ProcessingJobModel.status == from_status,
                ProcessingJobModel.retry_count == observed_retry_count,
            )
            .values(
                status=new_status,
                retry_count=new_count,
                error_message=error_message,
            )
        )
        result = await session.execute(stmt, execution_options=BULK_WRITE_OPTIONS)
        return new_status if result.rowcount == 1 else None

    async def get_stuck(
        self,
        session: AsyncSession,
        older_than: datetime,
        limit: int,
    ) -> Sequence[ProcessingJobModel]:
        """PROCESSING jobs whose last update is older than the threshold."""
        stmt = (
            select(ProcessingJobModel)
            .where(
                ProcessingJobModel.status == JobStatus.PROCESSING,
                ProcessingJobModel.updated_at < older_than,
            )
            .order_by(ProcessingJobModel.updated_at)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_recoverable(
        self,
        session: AsyncSession,
        older_than: datetime,
        max_retries: int,
        limit: int,
    ) -> Sequence[ProcessingJobModel]:
        """FAILED jobs under the retry ceiling whose cooldown has elapsed."""
        stmt = (
            select(ProcessingJobModel)
            .where(
                ProcessingJobModel.status == JobStatus.FAILED,
                ProcessingJobModel.retry_count < max_retries,
                ProcessingJobModel.updated_at < older_than,
            )
            .order_by(ProcessingJobModel.updated_at)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def recover(self, session: AsyncSession, id: UUID, max_retries: int) -> bool:
        """FAILED -> PENDING with the error cleared, only while under the ceiling."""
        stmt = (
            update(ProcessingJobModel)
            .where(
                ProcessingJobModel.id == id,
                ProcessingJobModel.status == JobStatus.FAILED,
                ProcessingJobModel.retry_count < max_retries,
            )
            .values(status=JobStatus.PENDING, error_message=None)
        )
        result = await session.execute(stmt, execution_options=BULK_WRITE_OPTIONS)
        return result.rowcount == 1

    async def get_by_document(
        self,
        session: AsyncSession,
        document_id: UUID,
        job_type: JobType | None = None,
    ) -> Sequence[ProcessingJobModel]:
        """All jobs of a document in ordinal order, optionally of one type."""
        stmt = select(ProcessingJobModel).where(ProcessingJobModel.document_id == document_id)
        if job_type is not None:
            stmt = stmt.where(ProcessingJobModel.job_type == job_type)
        stmt = stmt.order_by(
            ProcessingJobModel.batch_index, ProcessingJobModel.created_at
        ).execution_options(populate_existing=True)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def has_active(
        self,
        session: AsyncSession,
        document_id: UUID,
        job_types: Iterable[JobType] | None = None,
    ) -> bool:
        """True if the document has a PENDING or PROCESSING job (of the given types)."""
        criteria = [
            ProcessingJobModel.document_id == document_id,
            ProcessingJobModel.status.in_(ACTIVE_STATUSES),
        ]
        if job_types is not None:
            criteria.append(ProcessingJobModel.job_type.in_(list(job_types)))
        return await self.count(session, *criteria) > 0

    async def count_unfinished(
        self,
        session: AsyncSession,
        document_id: UUID,
        exclude_types: Iterable[JobType] = (),
    ) -> int:
        """Jobs of the document not yet COMPLETED, ignoring the excluded stages."""
        criteria = [
            ProcessingJobModel.document_id == document_id,
            ProcessingJobModel.status != JobStatus.COMPLETED,
        ]
        excluded = list(exclude_types)
        if excluded:
            criteria.append(ProcessingJobModel.job_type.not_in(excluded))
        return await self.count(session, *criteria)


job_crud = JobCRUD()
