"""
Exception hierarchy for the knowledge-sync pipeline.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class KnowledgeSyncError(Exception):
    """Base exception for all knowledge-sync errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(KnowledgeSyncError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class UnknownPipelineError(ValidationError):
    """Raised when a pipeline variant tag is not registered."""

    def __init__(self, pipeline: str) -> None:
        super().__init__(f"Unknown pipeline variant: {pipeline}", field="pipeline")


class DocumentNotFoundError(KnowledgeSyncError):
    """Raised when a document cannot be found in its variant's tables."""

    def __init__(self, document_id: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize document not found error.

        Args:
            document_id: ID of the missing document
            details: Additional context
        """
        details = details or {}
        details["document_id"] = document_id
        super().__init__(f"Document not found: {document_id}", details)


class AgentNotFoundError(KnowledgeSyncError):
    """Raised when an assignment targets an agent that does not exist."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent not found: {agent_id}", {"agent_id": agent_id})


class JobNotFoundError(KnowledgeSyncError):
    """Raised when a processing job cannot be found."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job not found: {job_id}", {"job_id": job_id})


class BackupNotFoundError(KnowledgeSyncError):
    """Raised when a link backup cannot be found."""

    def __init__(self, backup_id: str) -> None:
        super().__init__(f"Backup not found: {backup_id}", {"backup_id": backup_id})


class DocumentProcessingError(KnowledgeSyncError):
    """Base exception for document processing errors."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize document processing error.

        Args:
            message: Error message
            document_id: ID of the document that failed
            details: Additional context
        """
        details = details or {}
        if document_id:
            details["document_id"] = document_id
        super().__init__(message, details)


class ExtractionError(DocumentProcessingError):
    """Raised when text extraction fails or yields no usable content."""

    pass


class EmbeddingError(DocumentProcessingError):
    """Raised when embedding generation fails."""

    pass


class VerificationError(DocumentProcessingError):
    """Raised when a handler reported success but its side effects are missing."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if expected is not None:
            details["expected"] = expected
        if actual is not None:
            details["actual"] = actual
        super().__init__(message, document_id, details)


class BatchSplitError(DocumentProcessingError):
    """Raised when a document cannot be split into page windows."""

    pass


class StorageError(KnowledgeSyncError):
    """Raised when object store operations fail."""

    def __init__(
        self,
        message: str,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize storage error.

        Args:
            message: Error message
            key: Object key involved in the failed operation
            details: Additional context
        """
        details = details or {}
        if key:
            details["key"] = key
        super().__init__(message, details)
