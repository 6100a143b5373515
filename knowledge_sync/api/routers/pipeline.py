"""
Pipeline entrypoint API endpoints.

Routes: POST /pipeline/process-queue, POST /pipeline/embed, POST /pipeline/reconcile

These are invoked by external schedulers. Each call runs one bounded pass
and reports counts; failures inside a pass are persisted, not raised.

Dependencies: knowledge_sync.application.services
System role: Scheduled sweep HTTP API
"""

from fastapi import APIRouter, Depends, Query

from knowledge_sync.api.deps import get_pipeline_service
from knowledge_sync.api.routers.router_utils import handle_pipeline_errors
from knowledge_sync.application.services.pipeline_service import PipelineService
from knowledge_sync.models.pipeline import (
    EmbedSweepResponse,
    ProcessQueueResponse,
    ReconcileResponse,
)

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


@router.post("/process-queue", response_model=ProcessQueueResponse)
@handle_pipeline_errors
async def process_queue(
    batch_size: int | None = Query(default=None, description="Jobs to claim (default from settings)"),
    pipeline_service: PipelineService = Depends(get_pipeline_service),
) -> ProcessQueueResponse:
    """Claim and run pending jobs."""
    return await pipeline_service.process_queue(batch_size)


@router.post("/embed", response_model=EmbedSweepResponse)
@handle_pipeline_errors
async def embed_sweep(
    pipeline: str = Query(default="a", description="Pipeline variant tag"),
    pipeline_service: PipelineService = Depends(get_pipeline_service),
) -> EmbedSweepResponse:
    """Embed one batch of pending chunks."""
    return await pipeline_service.embed_sweep(pipeline)


@router.post("/reconcile", response_model=ReconcileResponse)
@handle_pipeline_errors
async def reconcile(
    pipeline_service: PipelineService = Depends(get_pipeline_service),
) -> ReconcileResponse:
    """Recover stuck, failed and orphaned work."""
    return await pipeline_service.reconcile()
