"""
Embedding worker.

Drains pending chunks oldest-first in fixed-size batches. Each chunk is
claimed (pending -> processing) with a conditional update, embedded, and
stored as ready or failed. There is no in-worker retry: a failed chunk
waits for the reconciler or the next embed job to return it to pending.

Dependencies: sqlalchemy, knowledge_sync.boundary.embeddings
System role: Embedding stage of document ingestion
"""

import asyncio
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.embeddings import EmbeddingProvider
from knowledge_sync.configs import PipelineSettings
from knowledge_sync.core.document_processing.external import await_with_timeout
from knowledge_sync.core.document_processing.lifecycle import DocumentLifecycle
from knowledge_sync.core.document_processing.models import EmbeddingRunResult
from knowledge_sync.core.document_processing.variants import PipelineVariant
from knowledge_sync.core.exceptions import EmbeddingError
from knowledge_sync.observability.log_utils import truncate_error

logger = logging.getLogger(__name__)


class EmbeddingWorker:
    """Embeds pending chunks of one pipeline variant."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        lifecycle: DocumentLifecycle,
        settings: PipelineSettings,
    ) -> None:
        """
        Args:
            provider: Opaque embed(text) -> vector provider
            lifecycle: Used to flip finished documents to ready
            settings: Batch size, throttle delay and call timeout
        """
        self.provider = provider
        self.lifecycle = lifecycle
        self.settings = settings

    def _check_dimension(self, vector: list[float], chunk_id: UUID) -> list[float]:
        expected = self.provider.dimension
        if len(vector) != expected:
            raise EmbeddingError(
                f"Embedding dimension mismatch: expected {expected}, got {len(vector)}",
                details={"chunk_id": str(chunk_id)},
            )
        return [float(value) for value in vector]

    async def run_batch(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID | None = None,
    ) -> EmbeddingRunResult:
        """
        Process one batch of pending chunks.

        Each chunk's claim and outcome are committed on their own, so a
        crash mid-batch loses at most the chunk in flight (left processing
        for the embed job or the reconciler to pick up).

        Args:
            session: Async database session (committed by this method)
            variant: Variant whose chunk table to drain
            document_id: Restrict to one document (document mode)

        Returns:
            EmbeddingRunResult: Counts and the documents that became ready
        """
        result = EmbeddingRunResult()
        pending = await variant.chunks.get_pending(
            session, self.settings.embedding_batch_size, document_id=document_id
        )
        # Plain values survive the commits below; ORM rows would expire
        batch = [(chunk.id, chunk.document_id, chunk.content) for chunk in pending]
        result.picked = len(batch)
        if not batch:
            return result

        delay = self.settings.embedding_delay_ms / 1000
        timeout = self.settings.external_call_timeout_seconds
        touched: list[UUID] = []

        for position, (chunk_id, owner_id, content) in enumerate(batch):
            if position and delay:
                await asyncio.sleep(delay)

            claimed = await variant.chunks.claim(session, chunk_id)
            await session.commit()
            if not claimed:
                result.skipped += 1
                continue
            if owner_id not in touched:
                touched.append(owner_id)

            try:
                vector = await await_with_timeout(
                    self.provider.embed(content), timeout, "embedding provider"
                )
                vector = self._check_dimension(vector, chunk_id)
            except Exception as e:
                error_message = truncate_error(e)
                await variant.chunks.mark_failed(session, chunk_id, error_message)
                await session.commit()
                result.failed += 1
                logger.warning(
                    f"{__name__}:run_batch - Chunk embedding failed",
                    extra={
                        "chunk_id": str(chunk_id),
                        "document_id": str(owner_id),
                        "pipeline": variant.name,
                        "error": error_message,
                    },
                )
                continue

            await variant.chunks.mark_ready(session, chunk_id, vector)
            await session.commit()
            result.processed += 1

        for owner_id in touched:
            if await self.lifecycle.mark_ready_if_complete(session, variant, owner_id):
                result.documents_ready.append(owner_id)
        await session.commit()

        logger.info(
            f"{__name__}:run_batch - Embedding batch finished",
            extra={
                "pipeline": variant.name,
                "document_id": str(document_id) if document_id else None,
                "picked": result.picked,
                "processed": result.processed,
                "failed": result.failed,
                "skipped": result.skipped,
            },
        )
        return result

    async def run_for_document(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        document_id: UUID,
    ) -> EmbeddingRunResult:
        """Run batches for one document until none of its chunks are pending."""
        total = EmbeddingRunResult()
        while True:
            batch = await self.run_batch(session, variant, document_id=document_id)
            total.merge(batch)
            if batch.picked < self.settings.embedding_batch_size or batch.skipped == batch.picked:
                return total
