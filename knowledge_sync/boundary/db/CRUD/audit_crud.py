"""
Audit record CRUD operations.

Audit rows are write-once: these classes only create and read.

Dependencies: sqlalchemy, knowledge_sync.boundary.db.models
System role: Maintenance and assignment audit persistence
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.db.models.audit_model import (
    AssignmentAuditLogModel,
    AssignmentBackupModel,
    MaintenanceExecutionLogModel,
)
from knowledge_sync.boundary.db.CRUD.base_crud import BaseCRUD, ModelT


class AuditCRUD(BaseCRUD[ModelT]):
    """Create-and-list access to an append-only audit table."""

    async def get_latest(
        self,
        session: AsyncSession,
        limit: int = 20,
        agent_id: UUID | None = None,
    ) -> Sequence[ModelT]:
        """Most recent records first, optionally for one agent."""
        stmt = select(self.model)
        if agent_id is not None:
            stmt = stmt.where(self.model.agent_id == agent_id)
        stmt = stmt.order_by(self.model.created_at.desc()).limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()


maintenance_log_crud = AuditCRUD(MaintenanceExecutionLogModel)
assignment_audit_crud = AuditCRUD(AssignmentAuditLogModel)
assignment_backup_crud = AuditCRUD(AssignmentBackupModel)
