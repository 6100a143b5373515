"""
Models for the pipeline engine.

Exports the result and snapshot types returned by the engine components.
"""

from .results import (
    AssignmentAck,
    AssignmentReport,
    ClaimedJob,
    EmbeddingRunResult,
    HandlerOutcome,
    JobRunResult,
    PageWindow,
    QueueResult,
    ReconcileResult,
    RestoreResult,
    SplitResult,
)

__all__ = [
    "AssignmentAck",
    "AssignmentReport",
    "ClaimedJob",
    "EmbeddingRunResult",
    "HandlerOutcome",
    "JobRunResult",
    "PageWindow",
    "QueueResult",
    "ReconcileResult",
    "RestoreResult",
    "SplitResult",
]
