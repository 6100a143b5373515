"""
Write-once audit records.

Maintenance execution logs (one per reconcile pass that changed state),
assignment audit logs (one per completed bulk assignment) and assignment
backups (snapshot of an agent's links before a bulk assignment).

Dependencies: sqlalchemy, knowledge_sync.boundary.db.base
System role: Operator-visible audit trail
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Integer, JSON, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_sync.boundary.db.base import Base, TimestampMixin, UUIDMixin


class MaintenanceExecutionLogModel(Base, UUIDMixin, TimestampMixin):
    """Outcome of one reconcile pass."""

    __tablename__ = "maintenance_execution_logs"

    execution_status: Mapped[str] = mapped_column(String(32), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    stuck_reset: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stuck_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_recovered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    splits_abandoned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    orphans_recovered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    links_cleaned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    documents_reconciled: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)


class AssignmentAuditLogModel(Base, UUIDMixin, TimestampMixin):
    """Aggregate result of one background bulk assignment."""

    __tablename__ = "assignment_audit_logs"

    agent_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    pipeline: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    document_count: Mapped[int] = mapped_column(Integer, nullable=False)
    success_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failure_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    chunks_synced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)


class AssignmentBackupModel(Base, UUIDMixin, TimestampMixin):
    """Snapshot of an agent's chunk links taken before a bulk assignment."""

    __tablename__ = "assignment_backups"

    agent_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    pipeline: Mapped[str] = mapped_column(String(32), nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    chunk_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
