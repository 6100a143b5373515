"""
Job API endpoints.

Routes: POST /jobs, GET /jobs/{id}

Dependencies: knowledge_sync.application.job_service, knowledge_sync.models
System role: Job queue HTTP API
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from knowledge_sync.api.deps import get_job_service
from knowledge_sync.api.routers.router_utils import handle_pipeline_errors
from knowledge_sync.application.services.job_service import JobService
from knowledge_sync.models.job import EnqueueJobRequest, JobStatusResponse

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("", response_model=JobStatusResponse, status_code=status.HTTP_201_CREATED)
@handle_pipeline_errors
async def enqueue_job(
    request: EnqueueJobRequest,
    job_service: JobService = Depends(get_job_service),
) -> JobStatusResponse:
    """
    Queue a pending job for a document.

    The job is picked up by the next processQueue call.

    Raises:
        HTTPException(400): Unknown job type or pipeline
        HTTPException(404): Document not found
    """
    return await job_service.enqueue_job(request)


@router.get("/{job_id}", response_model=JobStatusResponse)
@handle_pipeline_errors
async def get_job_status(
    job_id: UUID,
    job_service: JobService = Depends(get_job_service),
) -> JobStatusResponse:
    """
    Get job status for polling.

    Args:
        job_id: Job UUID
        job_service: Injected JobService

    Returns:
        JobStatusResponse: Status, retry count, error and window bounds

    Raises:
        HTTPException(404): Job not found

    Example Response:
        {
            "id": "123e4567-e89b-12d3-a456-426614174000",
            "document_id": "9b2f0c1e-5d7a-4c1b-8f3e-2a6d4e8b1c90",
            "pipeline": "a-hybrid",
            "job_type": "page_batch",
            "status": "pending",
            "batch_index": 1,
            "total_batches": 3,
            "page_start": 21,
            "page_end": 40,
            "retry_count": 1,
            "error_message": "timeout: job stuck in processing for more than 10 minutes"
        }
    """
    return await job_service.get_job_status(job_id)
