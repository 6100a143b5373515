"""
Pipeline entrypoint schemas.

Response schemas for the scheduled pipeline entrypoints.

Dependencies: pydantic
System role: Pipeline sweep API contracts
"""

from pydantic import BaseModel, Field
import uuid


class ProcessQueueResponse(BaseModel):
    """processQueue result."""

    processed: int
    failed: int
    errors: list[str] = Field(default_factory=list)


class EmbedSweepResponse(BaseModel):
    """Embedding worker sweep result."""

    pipeline: str
    picked: int
    processed: int
    failed: int
    skipped: int
    documents_ready: list[uuid.UUID] = Field(default_factory=list)


class ReconcileResponse(BaseModel):
    """reconcile() result."""

    stuck_reset: int
    stuck_failed: int
    failed_recovered: int
    splits_abandoned: int = 0
    orphans_recovered: int
    links_cleaned: int = 0
    documents_reconciled: int
    errors: list[str] = Field(default_factory=list)
