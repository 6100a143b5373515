"""
Assignment service orchestrator.

Accepts bulk agent assignments and hands them to the background
dispatcher. Completion is reported only through assignment audit rows.
Also lists link backups and restores an agent's links from one.

Dependencies: knowledge_sync.core.document_processing
System role: Agent knowledge assignment orchestration
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.db.CRUD import assignment_backup_crud
from knowledge_sync.core.document_processing import PipelineEngine
from knowledge_sync.models.assignment import (
    AssignDocumentsRequest,
    AssignDocumentsResponse,
    BackupSummary,
    RestoreBackupRequest,
    RestoreBackupResponse,
)


class AssignmentService:
    """Bulk assignment entry point."""

    def __init__(self, db: AsyncSession, engine: PipelineEngine) -> None:
        self.db = db
        self.engine = engine

    async def assign(self, request: AssignDocumentsRequest) -> AssignDocumentsResponse:
        """
        Accept an assignment and return before any document is processed.

        Raises:
            ValidationError: If document_ids is empty or the pipeline is unknown
            AgentNotFoundError: If the agent does not exist
        """
        ack = await self.engine.assignments.assign(
            self.db, request.agent_id, request.document_ids, request.pipeline
        )
        return AssignDocumentsResponse(**ack.model_dump())

    async def list_backups(
        self,
        agent_id: UUID | None = None,
        limit: int = 20,
    ) -> list[BackupSummary]:
        """Most recent link backups first."""
        backups = await assignment_backup_crud.get_latest(self.db, limit=limit, agent_id=agent_id)
        return [
            BackupSummary(
                id=backup.id,
                agent_id=backup.agent_id,
                pipeline=backup.pipeline,
                reason=backup.reason,
                chunk_count=len(backup.chunk_ids),
                created_at=backup.created_at,
            )
            for backup in backups
        ]

    async def restore(
        self,
        backup_id: UUID,
        request: RestoreBackupRequest,
    ) -> RestoreBackupResponse:
        """
        Restore an agent's links from a backup.

        Raises:
            BackupNotFoundError: If the backup does not exist
            AgentNotFoundError: If the backed-up agent was deleted
        """
        result = await self.engine.assignments.restore_backup(
            self.db, backup_id, request.document_ids
        )
        return RestoreBackupResponse(**result.model_dump())
