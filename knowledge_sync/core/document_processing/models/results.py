"""
Result and snapshot models for the pipeline engine.

Dependencies: pydantic
System role: Return types of the queue, reconciler, worker, splitter and dispatcher
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from knowledge_sync.boundary.db.models.job_model import JobStatus, JobType


class PageWindow(BaseModel):
    """One splitter window, pages 1-indexed and inclusive."""

    batch_index: int = Field(description="Zero-based window ordinal")
    page_start: int = Field(description="First page, 1-indexed")
    page_end: int = Field(description="Last page, 1-indexed, inclusive")


class ClaimedJob(BaseModel):
    """Immutable snapshot of a job taken at claim time."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    document_id: UUID
    pipeline: str
    job_type: JobType
    batch_index: int
    total_batches: int | None = None
    page_start: int | None = None
    page_end: int | None = None
    input_ref: str | None = None
    retry_count: int


class HandlerOutcome(BaseModel):
    """
    What a stage handler reports back for verification.

    chunks_created is the number of chunk rows the handler wrote or found;
    when verify is set the processor re-counts persisted rows (scoped to
    batch_index when given) and requires an exact match.
    """

    chunks_created: int | None = None
    verify: bool = False
    require_chunks: bool = False
    batch_index: int | None = None


class JobRunResult(BaseModel):
    """Outcome of one claimed job."""

    job_id: UUID
    success: bool
    status: JobStatus | None = None
    error: str | None = None


class QueueResult(BaseModel):
    """processQueue result."""

    processed: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)


class EmbeddingRunResult(BaseModel):
    """Embedding Worker result for one or more batches."""

    picked: int = 0
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    documents_ready: list[UUID] = Field(default_factory=list)

    def merge(self, other: "EmbeddingRunResult") -> None:
        self.picked += other.picked
        self.processed += other.processed
        self.failed += other.failed
        self.skipped += other.skipped
        self.documents_ready.extend(
            doc_id for doc_id in other.documents_ready if doc_id not in self.documents_ready
        )


class SplitResult(BaseModel):
    """Batch Splitter result."""

    document_id: UUID
    total_pages: int | None
    job_ids: list[UUID]
    windows: list[PageWindow]
    created: bool = Field(description="False when the split already existed")


class ReconcileResult(BaseModel):
    """reconcile() result; one counter per sweep plus the document backstop."""

    stuck_reset: int = 0
    stuck_failed: int = 0
    failed_recovered: int = 0
    splits_abandoned: int = 0
    orphans_recovered: int = 0
    links_cleaned: int = 0
    documents_reconciled: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def changes(self) -> int:
        return (
            self.stuck_reset
            + self.stuck_failed
            + self.failed_recovered
            + self.splits_abandoned
            + self.orphans_recovered
            + self.links_cleaned
            + self.documents_reconciled
        )


class AssignmentAck(BaseModel):
    """Immediate acknowledgment of a bulk assignment."""

    accepted: bool = True
    agent_id: UUID
    agent_name: str
    document_count: int
    pipeline: str | None = None


class AssignmentReport(BaseModel):
    """Aggregate outcome of a background bulk assignment."""

    agent_id: UUID
    document_count: int
    success_count: int = 0
    failure_count: int = 0
    chunks_synced: int = 0
    batches: int = 0
    errors: list[str] = Field(default_factory=list)


class RestoreResult(BaseModel):
    """Outcome of restoring an agent's links from a backup."""

    backup_id: UUID
    agent_id: UUID
    pipeline: str
    chunks_in_backup: int
    chunks_missing: int = 0
    links_restored: int = 0
