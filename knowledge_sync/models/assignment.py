"""
Assignment schemas.

Request/response schemas for bulk agent assignment and link backups.

Dependencies: pydantic
System role: Assignment API contracts
"""

from pydantic import BaseModel, Field
import uuid
from datetime import datetime


class AssignDocumentsRequest(BaseModel):
    """Request schema for assigning documents to an agent."""

    agent_id: uuid.UUID
    document_ids: list[uuid.UUID] = Field(min_length=1, description="Documents to assign")
    pipeline: str | None = Field(
        default=None,
        description="Variant shared by all documents; resolved per document when omitted",
    )


class AssignDocumentsResponse(BaseModel):
    """Immediate acknowledgment of an accepted assignment."""

    accepted: bool
    agent_id: uuid.UUID
    agent_name: str
    document_count: int
    pipeline: str | None = None


class BackupSummary(BaseModel):
    """A link snapshot taken before a bulk assignment."""

    id: uuid.UUID
    agent_id: uuid.UUID
    pipeline: str
    reason: str
    chunk_count: int
    created_at: datetime


class RestoreBackupRequest(BaseModel):
    """Request schema for restoring links from a backup."""

    document_ids: list[uuid.UUID] | None = Field(
        default=None,
        description="Only restore chunks of these documents; all when omitted",
    )


class RestoreBackupResponse(BaseModel):
    """Result of a backup restore."""

    backup_id: uuid.UUID
    agent_id: uuid.UUID
    pipeline: str
    chunks_in_backup: int
    chunks_missing: int
    links_restored: int
