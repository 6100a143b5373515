"""
Core business logic module.

Contains domain business logic, exception hierarchy, and core components.
All business rules and domain-specific logic reside here; the pipeline
engine lives in knowledge_sync.core.document_processing.
"""

from knowledge_sync.core.exceptions import (
    AgentNotFoundError,
    BackupNotFoundError,
    BatchSplitError,
    DocumentNotFoundError,
    DocumentProcessingError,
    EmbeddingError,
    ExtractionError,
    JobNotFoundError,
    KnowledgeSyncError,
    StorageError,
    UnknownPipelineError,
    ValidationError,
    VerificationError,
)

__all__ = [
    "AgentNotFoundError",
    "BackupNotFoundError",
    "BatchSplitError",
    "DocumentNotFoundError",
    "DocumentProcessingError",
    "EmbeddingError",
    "ExtractionError",
    "JobNotFoundError",
    "KnowledgeSyncError",
    "StorageError",
    "UnknownPipelineError",
    "ValidationError",
    "VerificationError",
]
