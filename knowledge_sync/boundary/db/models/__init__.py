"""
Database models package.

Exports:
  - Per-variant document, chunk and agent-knowledge models and their mixins
  - ProcessingJobModel with JobStatus and JobType
  - AgentModel and the write-once audit models

Dependencies: sqlalchemy, knowledge_sync.boundary.db.base
System role: Database model definitions for domain entities
"""

from knowledge_sync.boundary.db.models.agent_model import (
    AgentKnowledgeMixin,
    AgentModel,
    PipelineAAgentKnowledge,
    PipelineAHybridAgentKnowledge,
    PipelineBAgentKnowledge,
)
from knowledge_sync.boundary.db.models.audit_model import (
    AssignmentAuditLogModel,
    AssignmentBackupModel,
    MaintenanceExecutionLogModel,
)
from knowledge_sync.boundary.db.models.chunk_model import (
    ChunkMixin,
    EmbeddingStatus,
    PipelineAChunk,
    PipelineAHybridChunk,
    PipelineBChunk,
)
from knowledge_sync.boundary.db.models.document_model import (
    DocumentMixin,
    DocumentStatus,
    PipelineADocument,
    PipelineAHybridDocument,
    PipelineBDocument,
)
from knowledge_sync.boundary.db.models.job_model import JobStatus, JobType, ProcessingJobModel

__all__ = [
    "AgentKnowledgeMixin",
    "AgentModel",
    "AssignmentAuditLogModel",
    "AssignmentBackupModel",
    "ChunkMixin",
    "DocumentMixin",
    "DocumentStatus",
    "EmbeddingStatus",
    "JobStatus",
    "JobType",
    "MaintenanceExecutionLogModel",
    "PipelineAAgentKnowledge",
    "PipelineAChunk",
    "PipelineADocument",
    "PipelineAHybridAgentKnowledge",
    "PipelineAHybridChunk",
    "PipelineAHybridDocument",
    "PipelineBAgentKnowledge",
    "PipelineBChunk",
    "PipelineBDocument",
    "ProcessingJobModel",
]
