"""
CRUD operations for database models.

Exports the base CRUD class, the table-parameterized classes bound by
each pipeline variant, and singletons for the shared tables.

Usage:
    from knowledge_sync.boundary.db.CRUD import job_crud

    job = await job_crud.get_by_id(db, job_id)
    claimed = await job_crud.claim(db, job_id)
"""

from knowledge_sync.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_sync.boundary.db.CRUD.agent_crud import AgentCRUD, AgentKnowledgeCRUD, agent_crud
from knowledge_sync.boundary.db.CRUD.audit_crud import (
    AuditCRUD,
    assignment_audit_crud,
    assignment_backup_crud,
    maintenance_log_crud,
)
from knowledge_sync.boundary.db.CRUD.chunk_crud import ChunkCRUD
from knowledge_sync.boundary.db.CRUD.document_crud import DocumentCRUD
from knowledge_sync.boundary.db.CRUD.job_crud import JobCRUD, job_crud

__all__ = [
    "AgentCRUD",
    "AgentKnowledgeCRUD",
    "AuditCRUD",
    "BaseCRUD",
    "ChunkCRUD",
    "DocumentCRUD",
    "JobCRUD",
    "agent_crud",
    "assignment_audit_crud",
    "assignment_backup_crud",
    "job_crud",
    "maintenance_log_crud",
]
