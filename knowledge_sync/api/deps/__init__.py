"""API-specific dependencies."""

# Re-export common dependencies
from .dependencies import (
    get_assignment_service,
    get_document_service,
    get_job_service,
    get_pipeline_engine,
    get_pipeline_service,
    get_service_cache,
)

__all__ = [
    "get_assignment_service",
    "get_document_service",
    "get_job_service",
    "get_pipeline_engine",
    "get_pipeline_service",
    "get_service_cache",
]
