"""API routers."""

from .assignments import router as assignments_router
from .documents import router as documents_router
from .health import router as health_router
from .jobs import router as jobs_router
from .pipeline import router as pipeline_router

__all__ = [
    "assignments_router",
    "documents_router",
    "health_router",
    "jobs_router",
    "pipeline_router",
]
