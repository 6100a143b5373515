"""
Document domain models and schemas.

Request/response schemas for document operations.

Dependencies: pydantic
System role: Document API contracts
"""

from pydantic import BaseModel, Field
import uuid
from datetime import datetime


class CreateDocumentRequest(BaseModel):
    """Request schema for creating a document."""

    name: str = Field(min_length=1, description="Display name of the source artifact")
    storage_ref: str | None = Field(default=None, description="Object store key of the source blob")
    size_bytes: int | None = Field(default=None, ge=0, description="Source size in bytes")
    text: str | None = Field(default=None, description="Already-extracted text, if available")
    pipeline: str = Field(default="a", description="Pipeline variant tag (a, a-hybrid, b)")
    split: bool | None = Field(
        default=None,
        description="Route the blob through the batch splitter (variant default when omitted)",
    )


class CreateDocumentResponse(BaseModel):
    """Response schema after creating a document."""

    document_id: uuid.UUID
    pipeline: str
    processing_status: str


class CreateChunksRequest(BaseModel):
    """Request schema for appending chunks to a document."""

    contents: list[str] = Field(min_length=1, description="Chunk texts in order")
    pipeline: str = Field(default="a", description="Pipeline variant tag")


class CreateChunksResponse(BaseModel):
    """Response schema after creating chunks."""

    document_id: uuid.UUID
    chunks_created: int


class ChunkStatusCounts(BaseModel):
    """Chunk tally by embedding status."""

    pending: int = 0
    processing: int = 0
    ready: int = 0
    failed: int = 0


class DocumentStatusResponse(BaseModel):
    """Response schema for document status."""

    id: uuid.UUID
    pipeline: str
    name: str
    processing_status: str
    error_message: str | None = None
    text_length: int | None = None
    total_pages: int | None = None
    chunks: ChunkStatusCounts
    created_at: datetime
    updated_at: datetime
    processed_at: datetime | None = None


class PageWindowResponse(BaseModel):
    """One page window of a split."""

    batch_index: int
    page_start: int
    page_end: int


class SplitDocumentResponse(BaseModel):
    """Response schema after splitting a document."""

    document_id: uuid.UUID
    total_pages: int | None
    job_ids: list[uuid.UUID]
    windows: list[PageWindowResponse]
    created: bool


class ReconcileDocumentResponse(BaseModel):
    """Response schema for per-document reconciliation."""

    document_id: uuid.UUID
    processing_status: str
    changed_to: str | None = None
    queued: str | None = None
