"""Service orchestrators."""

from .assignment_service import AssignmentService
from .document_service import DocumentService
from .job_service import JobService
from .pipeline_service import PipelineService

__all__ = [
    "AssignmentService",
    "DocumentService",
    "JobService",
    "PipelineService",
]
