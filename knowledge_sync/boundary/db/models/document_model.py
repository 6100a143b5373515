"""
Document ORM models.

One document table per pipeline variant. The columns are declared once in
DocumentMixin; each variant binds the mixin to its own table name and tag.

Dependencies: sqlalchemy, knowledge_sync.boundary.db.base
System role: Per-variant document persistence and lifecycle status
"""

import enum
from datetime import datetime
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from knowledge_sync.boundary.db.base import Base, TimestampMixin, UUIDMixin, status_enum


class DocumentStatus(str, enum.Enum):
    """
    Document lifecycle states, in pipeline order.

    CREATED: Row exists, no text yet (binary source awaiting split or extraction)
    SPLITTING: Batch splitter is materializing page-window jobs
    INGESTED: Text available or page windows queued; no chunks yet
    CHUNKED: All chunks written, embeddings pending
    PROCESSING: Embedding in progress
    READY: Every chunk embedded and every sub-job completed
    FAILED: Terminal failure; error_message holds the reason
    """

    CREATED = "created"
    SPLITTING = "splitting"
    INGESTED = "ingested"
    CHUNKED = "chunked"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


class DocumentMixin(UUIDMixin, TimestampMixin):
    """
    Columns shared by every variant's document table.

    Attributes:
        name: Display name of the source artifact
        storage_ref: Object store key of the source blob
        size_bytes: Source size in bytes
        text_length: Length of extracted text (None until extracted)
        content: Extracted text, when supplied at creation or extracted
        total_pages: Page count recorded by the batch splitter
        processing_status: Lifecycle status (see DocumentStatus)
        error_message: Human-readable failure reason
        processing_metadata: Free-form metadata (split info, timings)
        processed_at: Time the document reached READY
        pipeline: Variant tag of the owning table
    """

    __pipeline__: ClassVar[str]

    name: Mapped[str] = mapped_column(String(512), nullable=False)
    storage_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    text_length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_pages: Mapped[int | None] = mapped_column(Integer, nullable=True)

    processing_status: Mapped[DocumentStatus] = mapped_column(
        status_enum(DocumentStatus),
        nullable=False,
        default=DocumentStatus.CREATED,
        index=True,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    processing_metadata: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @declared_attr
    def pipeline(cls) -> Mapped[str]:
        return mapped_column(String(32), nullable=False, default=cls.__pipeline__)


class PipelineADocument(Base, DocumentMixin):
    """Pipeline A documents (shared pool, direct chunk embedding)."""

    __tablename__ = "pipeline_a_documents"
    __pipeline__ = "a"


class PipelineAHybridDocument(Base, DocumentMixin):
    """Pipeline A-Hybrid documents (page-window batch processing)."""

    __tablename__ = "pipeline_a_hybrid_documents"
    __pipeline__ = "a-hybrid"


class PipelineBDocument(Base, DocumentMixin):
    """Pipeline B documents (per-agent knowledge sync)."""

    __tablename__ = "pipeline_b_documents"
    __pipeline__ = "b"
