"""
Assignment API endpoints.

Routes: POST /assignments, GET /assignments/backups,
        POST /assignments/backups/{backup_id}/restore

Dependencies: knowledge_sync.application.services
System role: Agent knowledge assignment HTTP API
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from knowledge_sync.api.deps import get_assignment_service
from knowledge_sync.api.routers.router_utils import handle_pipeline_errors
from knowledge_sync.application.services.assignment_service import AssignmentService
from knowledge_sync.models.assignment import (
    AssignDocumentsRequest,
    AssignDocumentsResponse,
    BackupSummary,
    RestoreBackupRequest,
    RestoreBackupResponse,
)

router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.post("", response_model=AssignDocumentsResponse, status_code=status.HTTP_202_ACCEPTED)
@handle_pipeline_errors
async def assign_documents(
    request: AssignDocumentsRequest,
    assignment_service: AssignmentService = Depends(get_assignment_service),
) -> AssignDocumentsResponse:
    """
    Assign documents' ready chunks to an agent.

    Returns as soon as the work is accepted. Progress and the final
    outcome are recorded in the assignment audit log.

    Raises:
        HTTPException(400): Empty document list or unknown pipeline
        HTTPException(404): Agent not found
    """
    return await assignment_service.assign(request)


@router.get("/backups", response_model=list[BackupSummary])
@handle_pipeline_errors
async def list_backups(
    agent_id: UUID | None = Query(default=None, description="Only this agent's backups"),
    limit: int = Query(default=20, ge=1, le=200),
    assignment_service: AssignmentService = Depends(get_assignment_service),
) -> list[BackupSummary]:
    """List the link snapshots taken before bulk assignments, newest first."""
    return await assignment_service.list_backups(agent_id=agent_id, limit=limit)


@router.post("/backups/{backup_id}/restore", response_model=RestoreBackupResponse)
@handle_pipeline_errors
async def restore_backup(
    backup_id: UUID,
    request: RestoreBackupRequest | None = None,
    assignment_service: AssignmentService = Depends(get_assignment_service),
) -> RestoreBackupResponse:
    """
    Re-link the backup's agent to the chunks the backup recorded.

    Links created since the backup are kept.

    Raises:
        HTTPException(404): Backup or agent not found
    """
    return await assignment_service.restore(backup_id, request or RestoreBackupRequest())
