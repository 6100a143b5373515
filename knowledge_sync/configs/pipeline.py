"""
Pipeline tuning settings.

Every knob of the ingestion and synchronization pipeline: chunking,
embedding throttle, retry ceiling, reconciler thresholds, splitter window
and assignment fan-out.

Dependencies: pydantic, pydantic_settings
System role: Centralized pipeline configuration
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Settings for the document ingestion and knowledge-sync pipeline."""

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Chunking settings
    chunk_size: int = Field(default=1000, gt=0, description="Maximum chunk size in characters")
    chunk_overlap: int = Field(default=200, ge=0, description="Overlap between consecutive chunks")

    # Embedding worker
    embedding_batch_size: int = Field(
        default=20, gt=0, description="Pending chunks claimed per embedding batch"
    )
    embedding_delay_ms: int = Field(
        default=100, ge=0, description="Delay between embedding provider calls"
    )

    # Retry and reconciliation
    max_retries: int = Field(default=3, gt=0, description="Retry ceiling per processing job")
    stuck_threshold_minutes: int = Field(
        default=10, gt=0, description="Age after which a processing job counts as stuck"
    )
    failed_recovery_cooldown_minutes: int = Field(
        default=15, gt=0, description="Cooldown before a failed job is re-queued"
    )
    reconcile_batch_size: int = Field(
        default=3, gt=0, description="Items handled per sweep in one reconcile pass"
    )
    orphan_error_marker: str = Field(
        default="timeout",
        description="Error text that marks a failed document as orphaned by a timeout",
    )
    link_cleanup_batch_size: int = Field(
        default=500, gt=0, description="Orphaned agent links deactivated per reconcile pass"
    )

    # Job queue
    queue_batch_size: int = Field(default=10, gt=0, description="Default jobs per processQueue call")
    job_timeout_seconds: float = Field(
        default=300.0, gt=0, description="Upper bound on a single stage handler run"
    )
    external_call_timeout_seconds: float = Field(
        default=60.0, gt=0, description="Timeout for embedding, extraction and storage calls"
    )
    validate_before_extract: bool = Field(
        default=False, description="Queue a validate job ahead of extraction"
    )
    min_text_length: int = Field(
        default=1, ge=0, description="Minimum extracted text length accepted by validation"
    )

    # Batch splitter
    pages_per_batch: int = Field(default=20, gt=0, description="Pages per splitter window")
    upload_max_attempts: int = Field(default=3, gt=0, description="Upload attempts per window")
    upload_backoff_base_seconds: float = Field(
        default=0.5, ge=0, description="Base delay for exponential upload backoff"
    )
    upload_backoff_jitter_seconds: float = Field(
        default=0.5, ge=0, description="Maximum random jitter added to each backoff"
    )

    # Bulk assignment
    assignment_batch_size: int = Field(
        default=50, gt=0, description="Documents per background sync batch"
    )

    @model_validator(mode="after")
    def _check_overlap(self) -> "PipelineSettings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self
