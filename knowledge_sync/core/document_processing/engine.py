"""
Pipeline engine composition.

Builds every pipeline component once from settings and shared
collaborators, so the API layer, scheduled entrypoints and tests all wire
the same graph.

Dependencies: knowledge_sync.boundary, knowledge_sync.workers
System role: Composition root of the ingestion and sync pipeline
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_sync.boundary.aws import S3DocumentClient
from knowledge_sync.boundary.db.connection import get_async_session_factory
from knowledge_sync.boundary.embeddings import EmbeddingProvider, GeminiEmbeddingProvider
from knowledge_sync.boundary.extraction import DocumentTextExtractor, PdfPageDecoder
from knowledge_sync.configs import Settings, get_settings
from knowledge_sync.core.document_processing.assignment import BulkAssignmentDispatcher
from knowledge_sync.core.document_processing.batch_splitter import BatchSplitter
from knowledge_sync.core.document_processing.embedding_worker import EmbeddingWorker
from knowledge_sync.core.document_processing.handlers import StageHandlers
from knowledge_sync.core.document_processing.job_queue import JobQueueProcessor
from knowledge_sync.core.document_processing.lifecycle import DocumentLifecycle
from knowledge_sync.core.document_processing.reconciler import Reconciler
from knowledge_sync.workers.dispatcher import TaskDispatcher

logger = logging.getLogger(__name__)


class PipelineEngine:
    """
    Wired pipeline components.

    Attributes:
        lifecycle: Document state machine
        worker: Embedding worker
        handlers: Stage handlers
        queue: Job queue processor (processQueue)
        splitter: Batch splitter
        reconciler: Stuck/failed reconciler (reconcile)
        assignments: Bulk assignment dispatcher (assign)
        dispatcher: Background task submission shared by splitter and assignments
    """

    def __init__(
        self,
        settings: Settings | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        object_store: S3DocumentClient | None = None,
        embedding_provider: EmbeddingProvider | None = None,
        extractor: DocumentTextExtractor | None = None,
        decoder: PdfPageDecoder | None = None,
        dispatcher: TaskDispatcher | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        pipeline = self.settings.pipeline
        s3 = self.settings.s3_documents

        self.session_factory = session_factory or get_async_session_factory()
        self.object_store = object_store or S3DocumentClient(bucket=s3.bucket, region=s3.region)
        self.embedding_provider = embedding_provider or GeminiEmbeddingProvider(
            self.settings.embedding
        )
        self.extractor = extractor or DocumentTextExtractor()
        self.decoder = decoder or PdfPageDecoder()
        self.dispatcher = dispatcher or TaskDispatcher()

        self.lifecycle = DocumentLifecycle(pipeline)
        self.worker = EmbeddingWorker(self.embedding_provider, self.lifecycle, pipeline)
        self.handlers = StageHandlers(
            self.lifecycle, self.worker, self.object_store, self.extractor, pipeline
        )
        self.queue = JobQueueProcessor(
            self.handlers, self.lifecycle, pipeline, self.session_factory
        )
        self.splitter = BatchSplitter(
            self.object_store,
            self.decoder,
            self.lifecycle,
            pipeline,
            batches_prefix=s3.batches_prefix,
            dispatcher=self.dispatcher,
            trigger=self.queue.run_job,
        )
        self.reconciler = Reconciler(self.lifecycle, pipeline)
        self.assignments = BulkAssignmentDispatcher(
            self.session_factory, self.dispatcher, pipeline
        )
        logger.info(
            f"{__name__}:__init__ - Pipeline engine initialized",
            extra={
                "embedding_dimension": self.embedding_provider.dimension,
                "bucket": self.object_store.bucket,
            },
        )
