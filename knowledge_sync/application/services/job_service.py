"""
Job service orchestrator.

Queues processing jobs and reports their status.
Wraps JobCRUD and the lifecycle orchestrator for job operations.

Dependencies: knowledge_sync.boundary.db.CRUD, knowledge_sync.core.document_processing
System role: Job management orchestration
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.db.CRUD import job_crud
from knowledge_sync.boundary.db.models import JobType
from knowledge_sync.core.document_processing import PipelineEngine, get_variant
from knowledge_sync.core.exceptions import JobNotFoundError, ValidationError
from knowledge_sync.models.job import EnqueueJobRequest, JobStatusResponse


class JobService:
    """
    Job service orchestrator.

    Manages processing job creation and status lookup.
    """

    def __init__(self, db: AsyncSession, engine: PipelineEngine) -> None:
        """
        Initialize job service.

        Args:
            db: AsyncSession for database operations
            engine: Wired pipeline components
        """
        self.db = db
        self.engine = engine

    async def enqueue_job(self, request: EnqueueJobRequest) -> JobStatusResponse:
        """
        Queue a pending job with retry_count=0.

        Raises:
            ValidationError: If the job type is unknown
            UnknownPipelineError: If the pipeline tag is not registered
            DocumentNotFoundError: If the document does not exist
        """
        try:
            job_type = JobType(request.job_type.lower())
        except ValueError as e:
            raise ValidationError(
                f"Unknown job type: {request.job_type}", field="job_type"
            ) from e
        variant = get_variant(request.pipeline)
        job = await self.engine.lifecycle.enqueue_job(
            self.db,
            variant,
            request.document_id,
            job_type,
            batch_index=request.batch_index,
            input_ref=request.input_ref,
        )
        response = self._to_response(job)
        await self.db.commit()
        return response

    async def get_job_status(self, job_id: UUID) -> JobStatusResponse:
        """
        Get job status for polling.

        Args:
            job_id: Job UUID

        Returns:
            JobStatusResponse: Current job state

        Raises:
            JobNotFoundError: If job doesn't exist
        """
        job = await job_crud.get_by_id(self.db, job_id)
        if job is None:
            raise JobNotFoundError(str(job_id))
        return self._to_response(job)

    @staticmethod
    def _to_response(job) -> JobStatusResponse:
        return JobStatusResponse(
            id=job.id,
            document_id=job.document_id,
            pipeline=job.pipeline,
            job_type=job.job_type.value,
            status=job.status.value,
            batch_index=job.batch_index,
            total_batches=job.total_batches,
            page_start=job.page_start,
            page_end=job.page_end,
            input_ref=job.input_ref,
            retry_count=job.retry_count,
            error_message=job.error_message,
            chunks_created=job.chunks_created,
            created_at=job.created_at,
            updated_at=job.updated_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
        )
