"""
Processing job ORM model.

Queue of retryable units of work shared by every pipeline variant. A job
is claimed by a conditional UPDATE on its status column, so at most one
invocation ever holds it in PROCESSING.

Dependencies: sqlalchemy, knowledge_sync.boundary.db.base
System role: Persistent job queue for the stage handlers
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_sync.boundary.db.base import Base, TimestampMixin, UUIDMixin, status_enum


class JobType(str, enum.Enum):
    """
    Stage handler selector.

    EXTRACT: Document text -> chunks
    VALIDATE: Pre-extraction quality gate
    PAGE_BATCH: One splitter page window -> chunks
    EMBED: Embed every pending chunk of one document
    """

    EXTRACT = "extract"
    VALIDATE = "validate"
    PAGE_BATCH = "page_batch"
    EMBED = "embed"


class JobStatus(str, enum.Enum):
    """
    Job execution states.

    PENDING: Waiting to be claimed
    PROCESSING: Claimed by exactly one invocation
    COMPLETED: Handler succeeded and its side effects were verified
    FAILED: Retry budget exhausted (or failed pending recovery)
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ProcessingJobModel(Base, UUIDMixin, TimestampMixin):
    """
    Processing job ORM model.

    Attributes:
        id: UUID primary key (auto-generated)
        document_id: Owning document in the variant's document table
        pipeline: Variant tag selecting tables and handlers
        job_type: Stage handler (see JobType)
        batch_index: Ordinal of the unit within its document
        total_batches: Number of sibling windows (PAGE_BATCH only)
        page_start: First page of the window, 1-indexed inclusive
        page_end: Last page of the window, 1-indexed inclusive
        input_ref: Object store key of the unit's input
        status: See JobStatus
        retry_count: Failed attempts so far; never decreases
        error_message: Last failure, kept across retries for diagnostics
        chunks_created: Chunk rows written by the last successful run
        started_at: Time of the last claim
        completed_at: Time of completion
        created_at: Enqueue time; queue drains oldest first
        updated_at: Last transition; the reconciler's staleness clock

    Workflow:
        1. Producer enqueues with status=PENDING, retry_count=0
        2. Job Queue Processor claims: PENDING -> PROCESSING (conditional)
        3. Success -> COMPLETED; failure -> PENDING (retry_count+1) or FAILED at max
        4. Reconciler resets stuck PROCESSING rows and recovers FAILED rows
    """

    __tablename__ = "processing_jobs"
    __table_args__ = (
        Index("ix_processing_jobs_status_created_at", "status", "created_at"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
    )
    pipeline: Mapped[str] = mapped_column(String(32), nullable=False)
    job_type: Mapped[JobType] = mapped_column(status_enum(JobType), nullable=False)

    batch_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_batches: Mapped[int | None] = mapped_column(Integer, nullable=True)
    page_start: Mapped[int | None] = mapped_column(Integer, nullable=True)
    page_end: Mapped[int | None] = mapped_column(Integer, nullable=True)
    input_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    status: Mapped[JobStatus] = mapped_column(
        status_enum(JobStatus),
        nullable=False,
        default=JobStatus.PENDING,
    )
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    chunks_created: Mapped[int | None] = mapped_column(Integer, nullable=True)

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
