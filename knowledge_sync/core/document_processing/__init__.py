"""
Document ingestion and knowledge-sync pipeline.

One generic engine parameterized by PipelineVariant descriptors:
chunker, embedding worker, batch splitter, job queue processor,
reconciler, lifecycle orchestrator and bulk assignment dispatcher.

Dependencies: sqlalchemy, tenacity, pydantic, langchain_text_splitters
System role: Document ingestion pipeline entrypoint
"""

from .assignment import BulkAssignmentDispatcher
from .batch_splitter import BatchSplitter, compute_page_windows
from .chunker import chunk_text, normalize_text
from .embedding_worker import EmbeddingWorker
from .engine import PipelineEngine
from .handlers import StageHandlers
from .job_queue import JobQueueProcessor
from .lifecycle import DocumentLifecycle
from .reconciler import Reconciler
from .variants import PipelineVariant, all_variants, get_variant

__all__ = [
    "BatchSplitter",
    "BulkAssignmentDispatcher",
    "DocumentLifecycle",
    "EmbeddingWorker",
    "JobQueueProcessor",
    "PipelineEngine",
    "PipelineVariant",
    "Reconciler",
    "StageHandlers",
    "all_variants",
    "chunk_text",
    "compute_page_windows",
    "get_variant",
    "normalize_text",
]
