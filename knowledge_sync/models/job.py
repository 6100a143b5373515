"""
Job domain models and schemas.

Request/response schemas for processing jobs.

Dependencies: pydantic
System role: Job API contracts
"""

from pydantic import BaseModel, Field
import uuid
from datetime import datetime


class EnqueueJobRequest(BaseModel):
    """Request schema for queueing a processing job."""

    document_id: uuid.UUID
    pipeline: str = Field(default="a", description="Pipeline variant tag")
    job_type: str = Field(default="extract", description="extract, validate, page_batch or embed")
    batch_index: int = Field(default=0, ge=0, description="Ordinal of the unit within its document")
    input_ref: str | None = Field(default=None, description="Object store key of the unit's input")


class JobStatusResponse(BaseModel):
    """Response schema for job status."""

    id: uuid.UUID
    document_id: uuid.UUID
    pipeline: str
    job_type: str
    status: str
    batch_index: int
    total_batches: int | None = None
    page_start: int | None = None
    page_end: int | None = None
    input_ref: str | None = None
    retry_count: int
    error_message: str | None = None
    chunks_created: int | None = None
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
