"""
Chunk CRUD operations.

Provides bulk chunk creation and the embedding status transitions used by
the Embedding Worker. Content is never updated after insert.

Dependencies: sqlalchemy, knowledge_sync.boundary.db.models
System role: Chunk persistence operations
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.db.base import utc_now
from knowledge_sync.boundary.db.models.chunk_model import ChunkMixin, EmbeddingStatus
from knowledge_sync.boundary.db.CRUD.base_crud import BULK_WRITE_OPTIONS, BaseCRUD


class ChunkCRUD(BaseCRUD[ChunkMixin]):
    """CRUD operations for one variant's chunk table."""

    async def create_many(
        self,
        session: AsyncSession,
        document_id: UUID,
        contents: Sequence[str],
        start_index: int = 0,
        page_number: int | None = None,
        batch_index: int | None = None,
    ) -> int:
        """
        Insert chunks for a document, all with embedding_status=PENDING.

        Args:
            session: Async database session
            document_id: Owning document UUID
            contents: Chunk texts in order
            start_index: chunk_index of the first chunk
            page_number: Source page for windowed chunks
            batch_index: Splitter window that produced the chunks

        Returns:
            Number of chunks inserted
        """
        session.add_all(
            [
                self.model(
                    document_id=document_id,
                    chunk_index=start_index + offset,
                    content=content,
                    embedding_status=EmbeddingStatus.PENDING,
                    page_number=page_number,
                    batch_index=batch_index,
                )
                for offset, content in enumerate(contents)
            ]
        )
        await session.flush()
        return len(contents)

    async def delete_for_batch(
        self,
        session: AsyncSession,
        document_id: UUID,
        batch_index: int,
    ) -> int:
        """Remove chunks a previous run of the same window wrote."""
        stmt = delete(self.model).where(
            self.model.document_id == document_id,
            self.model.batch_index == batch_index,
        )
        result = await session.execute(stmt, execution_options=BULK_WRITE_OPTIONS)
        return result.rowcount

    async def get_pending(
        self,
        session: AsyncSession,
        limit: int,
        document_id: UUID | None = None,
    ) -> Sequence[ChunkMixin]:
        """
        Retrieve pending chunks, oldest first.

        Args:
            session: Async database session
            limit: Maximum number of chunks to return
            document_id: Restrict to one document when given

        Returns:
            Sequence of pending chunks ordered by creation time
        """
        stmt = select(self.model).where(
            self.model.embedding_status == EmbeddingStatus.PENDING
        )
        if document_id is not None:
            stmt = stmt.where(self.model.document_id == document_id)
        stmt = (
            stmt.order_by(self.model.created_at, self.model.chunk_index)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def claim(self, session: AsyncSession, id: UUID) -> bool:
        """
        Conditionally move a chunk from PENDING to PROCESSING.

        Returns:
            True if this caller won the transition
        """
        stmt = (
            update(self.model)
            .where(
                self.model.id == id,
                self.model.embedding_status == EmbeddingStatus.PENDING,
            )
            .values(embedding_status=EmbeddingStatus.PROCESSING)
        )
        result = await session.execute(stmt, execution_options=BULK_WRITE_OPTIONS)
        return result.rowcount == 1

    async def mark_ready(
        self,
        session: AsyncSession,
        id: UUID,
        vector: list[float],
    ) -> bool:
        """Store the vector and flip PROCESSING -> READY."""
        stmt = (
            update(self.model)
            .where(
                self.model.id == id,
                self.model.embedding_status == EmbeddingStatus.PROCESSING,
            )
            .values(
                embedding=vector,
                embedding_status=EmbeddingStatus.READY,
                embedding_error=None,
                embedded_at=utc_now(),
            )
        )
        result = await session.execute(stmt, execution_options=BULK_WRITE_OPTIONS)
        return result.rowcount == 1

    async def mark_failed(
        self,
        session: AsyncSession,
        id: UUID,
        error_message: str,
    ) -> bool:
        """Record the error and flip PROCESSING -> FAILED."""
        stmt = (
            update(self.model)
            .where(
                self.model.id == id,
                self.model.embedding_status == EmbeddingStatus.PROCESSING,
            )
            .values(
                embedding_status=EmbeddingStatus.FAILED,
                embedding_error=error_message,
                embedding=None,
            )
        )
        result = await session.execute(stmt, execution_options=BULK_WRITE_OPTIONS)
        return result.rowcount == 1

    async def reset_failed(self, session: AsyncSession, document_id: UUID) -> int:
        """
        Return a document's FAILED chunks to PENDING.

        READY chunks are never touched.

        Returns:
            Number of chunks reset
        """
        stmt = (
            update(self.model)
            .where(
                self.model.document_id == document_id,
                self.model.embedding_status == EmbeddingStatus.FAILED,
            )
            .values(embedding_status=EmbeddingStatus.PENDING, embedding_error=None)
        )
        result = await session.execute(stmt, execution_options=BULK_WRITE_OPTIONS)
        return result.rowcount

    async def reset_stale_processing(
        self,
        session: AsyncSession,
        document_id: UUID,
        older_than: datetime,
    ) -> int:
        """Return PROCESSING chunks abandoned by a crashed worker to PENDING."""
        stmt = (
            update(self.model)
            .where(
                self.model.document_id == document_id,
                self.model.embedding_status == EmbeddingStatus.PROCESSING,
                self.model.updated_at < older_than,
            )
            .values(embedding_status=EmbeddingStatus.PENDING)
        )
        result = await session.execute(stmt, execution_options=BULK_WRITE_OPTIONS)
        return result.rowcount

    async def count_for_document(
        self,
        session: AsyncSession,
        document_id: UUID,
        batch_index: int | None = None,
        active_only: bool = False,
    ) -> int:
        """Count a document's chunks, optionally for one window or the active pool only."""
        criteria = [self.model.document_id == document_id]
        if batch_index is not None:
            criteria.append(self.model.batch_index == batch_index)
        if active_only:
            criteria.append(self.model.is_active.is_(True))
        return await self.count(session, *criteria)

    async def status_counts(
        self,
        session: AsyncSession,
        document_id: UUID,
    ) -> dict[EmbeddingStatus, int]:
        """
        Tally a document's chunks by embedding status.

        Returns:
            Mapping of every EmbeddingStatus to its count (zeros included)
        """
        stmt = (
            select(self.model.embedding_status, func.count())
            .where(self.model.document_id == document_id)
            .group_by(self.model.embedding_status)
        )
        result = await session.execute(stmt)
        counts = {status: 0 for status in EmbeddingStatus}
        for status, total in result.all():
            counts[EmbeddingStatus(status)] = int(total)
        return counts

    async def get_ready_ids(
        self,
        session: AsyncSession,
        document_ids: Sequence[UUID],
    ) -> list[UUID]:
        """Ids of active READY chunks belonging to any of the documents."""
        if not document_ids:
            return []
        stmt = select(self.model.id).where(
            self.model.document_id.in_(list(document_ids)),
            self.model.embedding_status == EmbeddingStatus.READY,
            self.model.is_active.is_(True),
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def count_stale_processing(
        self,
        session: AsyncSession,
        document_id: UUID,
        older_than: datetime,
    ) -> int:
        """Count a document's PROCESSING chunks not touched since older_than."""
        return await self.count(
            session,
            self.model.document_id == document_id,
            self.model.embedding_status == EmbeddingStatus.PROCESSING,
            self.model.updated_at < older_than,
        )

    async def filter_existing_ids(
        self,
        session: AsyncSession,
        ids: Sequence[UUID],
        document_ids: Sequence[UUID] | None = None,
    ) -> list[UUID]:
        """
        Return the ids still present, optionally only those of the given documents.

        Order follows ids.
        """
        if not ids:
            return []
        stmt = select(self.model.id).where(self.model.id.in_(list(ids)))
        if document_ids is not None:
            stmt = stmt.where(self.model.document_id.in_(list(document_ids)))
        result = await session.execute(stmt)
        found = set(result.scalars().all())
        return [id for id in ids if id in found]
