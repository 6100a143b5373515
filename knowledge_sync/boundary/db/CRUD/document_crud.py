"""
Document CRUD operations.

Provides Create, Read, Update operations for the per-variant document
tables, including the conditional status transitions used by the
lifecycle orchestrator and the reconciler's sweep queries.

Dependencies: sqlalchemy, knowledge_sync.boundary.db.models
System role: Document persistence operations
"""

from datetime import datetime
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.db.base import utc_now
from knowledge_sync.boundary.db.models.document_model import DocumentMixin, DocumentStatus
from knowledge_sync.boundary.db.models.job_model import JobStatus, JobType, ProcessingJobModel
from knowledge_sync.boundary.db.CRUD.base_crud import BULK_WRITE_OPTIONS, BaseCRUD


class DocumentCRUD(BaseCRUD[DocumentMixin]):
    """
    CRUD operations for one variant's document table.

    Instantiated once per pipeline variant; the model argument selects
    which table every query targets.
    """

    async def get_existing_ids(
        self,
        session: AsyncSession,
        ids: Sequence[UUID],
    ) -> set[UUID]:
        """Return the subset of ids present in this variant's table."""
        if not ids:
            return set()
        stmt = select(self.model.id).where(self.model.id.in_(list(ids)))
        result = await session.execute(stmt)
        return set(result.scalars().all())

    async def transition(
        self,
        session: AsyncSession,
        id: UUID,
        to_status: DocumentStatus,
        from_statuses: Iterable[DocumentStatus] | None = None,
        **fields,
    ) -> bool:
        """
        Move a document to a new status, optionally only from given statuses.

        The guard is part of the UPDATE's WHERE clause, so a concurrent
        writer that already moved the row makes this a no-op.

        Args:
            session: Async database session
            id: Document UUID
            to_status: Target status
            from_statuses: Allowed current statuses (None for any)
            **fields: Extra columns to set alongside the status

        Returns:
            True if the row was updated
        """
        stmt = update(self.model).where(self.model.id == id)
        if from_statuses is not None:
            stmt = stmt.where(self.model.processing_status.in_(list(from_statuses)))
        if to_status == DocumentStatus.READY:
            fields.setdefault("processed_at", utc_now())
        stmt = stmt.values(processing_status=to_status, **fields)
        result = await session.execute(stmt, execution_options=BULK_WRITE_OPTIONS)
        return result.rowcount > 0

    async def mark_failed(
        self,
        session: AsyncSession,
        id: UUID,
        error_message: str,
    ) -> bool:
        """
        Mark a non-ready document as failed with a human-readable reason.

        Args:
            session: Async database session
            id: Document UUID
            error_message: Failure reason (already truncated)

        Returns:
            True if the row was updated
        """
        return await self.transition(
            session,
            id,
            DocumentStatus.FAILED,
            from_statuses=[s for s in DocumentStatus if s != DocumentStatus.READY],
            error_message=error_message,
        )

    async def get_without_active_jobs(
        self,
        session: AsyncSession,
        statuses: Iterable[DocumentStatus],
        limit: int,
    ) -> Sequence[DocumentMixin]:
        """
        Documents in the given statuses with no PENDING or PROCESSING job.

        These are the candidates whose status or job set may have drifted:
        nothing queued will move them forward on its own.
        """
        active_job = exists().where(
            ProcessingJobModel.document_id == self.model.id,
            ProcessingJobModel.status.in_([JobStatus.PENDING, JobStatus.PROCESSING]),
        )
        stmt = (
            select(self.model)
            .where(self.model.processing_status.in_(list(statuses)), ~active_job)
            .order_by(self.model.updated_at)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_timeout_orphans(
        self,
        session: AsyncSession,
        marker: str,
        limit: int,
    ) -> Sequence[DocumentMixin]:
        """
        Failed documents whose error mentions the marker and that own no job rows.

        Args:
            session: Async database session
            marker: Case-insensitive substring of error_message (e.g. "timeout")
            limit: Maximum number of documents to return

        Returns:
            Sequence of orphaned documents
        """
        has_job = exists().where(ProcessingJobModel.document_id == self.model.id)
        stmt = (
            select(self.model)
            .where(
                self.model.processing_status == DocumentStatus.FAILED,
                func.lower(self.model.error_message).contains(marker.lower()),
                ~has_job,
            )
            .order_by(self.model.updated_at)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_abandoned_splits(
        self,
        session: AsyncSession,
        older_than: datetime,
        limit: int,
    ) -> Sequence[DocumentMixin]:
        """Documents left in splitting since before older_than with no page-window jobs."""
        has_window = exists().where(
            ProcessingJobModel.document_id == self.model.id,
            ProcessingJobModel.job_type == JobType.PAGE_BATCH,
        )
        stmt = (
            select(self.model)
            .where(
                self.model.processing_status == DocumentStatus.SPLITTING,
                self.model.updated_at < older_than,
                ~has_window,
            )
            .order_by(self.model.updated_at)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()
