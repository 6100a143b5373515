"""
Pipeline service orchestrator.

Entry points invoked by external schedulers: processQueue, the embedding
sweep and reconcile. Each runs one bounded pass and reports counts.

Dependencies: knowledge_sync.core.document_processing
System role: Scheduled pipeline sweeps
"""

from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.core.document_processing import PipelineEngine, get_variant
from knowledge_sync.models.pipeline import (
    EmbedSweepResponse,
    ProcessQueueResponse,
    ReconcileResponse,
)


class PipelineService:
    """Scheduled pipeline sweeps."""

    def __init__(self, db: AsyncSession, engine: PipelineEngine) -> None:
        self.db = db
        self.engine = engine

    async def process_queue(self, batch_size: int | None = None) -> ProcessQueueResponse:
        """Claim and run up to batch_size pending jobs."""
        result = await self.engine.queue.process_batch(self.db, batch_size)
        return ProcessQueueResponse(**result.model_dump())

    async def embed_sweep(self, pipeline: str) -> EmbedSweepResponse:
        """Embed one batch of pending chunks across a variant's documents."""
        variant = get_variant(pipeline)
        result = await self.engine.worker.run_batch(self.db, variant)
        return EmbedSweepResponse(pipeline=variant.name, **result.model_dump())

    async def reconcile(self) -> ReconcileResponse:
        """Run one reconciliation pass."""
        result = await self.engine.reconciler.reconcile(self.db)
        return ReconcileResponse(**result.model_dump())
