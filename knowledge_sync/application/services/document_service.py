"""
Document service orchestrator.

Coordinates document creation, chunk creation, page-window splitting and
status reporting. Wraps the lifecycle orchestrator and the batch splitter
and owns the request's commit.

Dependencies: knowledge_sync.core.document_processing, knowledge_sync.boundary.db
System role: Document management orchestration
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.core.document_processing import PipelineEngine, get_variant
from knowledge_sync.models.document import (
    ChunkStatusCounts,
    CreateDocumentRequest,
    CreateDocumentResponse,
    DocumentStatusResponse,
    PageWindowResponse,
    ReconcileDocumentResponse,
    SplitDocumentResponse,
)


class DocumentService:
    """
    Document service orchestrator.

    Every method resolves the pipeline variant from its tag first, so an
    unknown tag fails before anything is written.
    """

    def __init__(self, db: AsyncSession, engine: PipelineEngine) -> None:
        """
        Initialize document service.

        Args:
            db: AsyncSession scoped to the request
            engine: Wired pipeline components
        """
        self.db = db
        self.engine = engine

    async def create_document(self, request: CreateDocumentRequest) -> CreateDocumentResponse:
        """
        Create a document and queue its first stage.

        Args:
            request: Document fields and routing flags

        Returns:
            CreateDocumentResponse: New id and initial status

        Raises:
            UnknownPipelineError: If the pipeline tag is not registered
            ValidationError: If neither text nor storage_ref is given
        """
        variant = get_variant(request.pipeline)
        document = await self.engine.lifecycle.create_document(
            self.db,
            variant,
            name=request.name,
            storage_ref=request.storage_ref,
            size_bytes=request.size_bytes,
            text=request.text,
            split=request.split,
        )
        response = CreateDocumentResponse(
            document_id=document.id,
            pipeline=variant.name,
            processing_status=document.processing_status.value,
        )
        await self.db.commit()
        return response

    async def create_chunks(self, document_id: UUID, pipeline: str, contents: list[str]) -> int:
        """Append pending chunks to a document; returns the number created."""
        variant = get_variant(pipeline)
        created = await self.engine.lifecycle.create_chunks(self.db, variant, document_id, contents)
        await self.db.commit()
        return created

    async def split_document(self, document_id: UUID, pipeline: str) -> SplitDocumentResponse:
        """
        Run the batch splitter for a created document.

        The splitter commits its own state transitions.

        Raises:
            BatchSplitError: If download, page counting or upload fails
        """
        variant = get_variant(pipeline)
        result = await self.engine.splitter.split(self.db, variant, document_id)
        return SplitDocumentResponse(
            document_id=result.document_id,
            total_pages=result.total_pages,
            job_ids=result.job_ids,
            windows=[PageWindowResponse(**window.model_dump()) for window in result.windows],
            created=result.created,
        )

    async def reconcile_document(self, document_id: UUID, pipeline: str) -> ReconcileDocumentResponse:
        """Recompute one document's status from its chunks and re-derive its jobs."""
        variant = get_variant(pipeline)
        lifecycle = self.engine.lifecycle
        changed_to = await lifecycle.reconcile_document_status(self.db, variant, document_id)
        queued = await lifecycle.rederive_jobs(self.db, variant, document_id)
        await self.db.commit()
        document = await lifecycle.get_document(self.db, variant, document_id)
        return ReconcileDocumentResponse(
            document_id=document_id,
            processing_status=document.processing_status.value,
            changed_to=changed_to.value if changed_to else None,
            queued=queued.value if queued else None,
        )

    async def get_document_status(self, document_id: UUID, pipeline: str) -> DocumentStatusResponse:
        """
        Get a document's lifecycle status and chunk tally.

        Raises:
            DocumentNotFoundError: If the document does not exist in the variant
        """
        variant = get_variant(pipeline)
        document = await self.engine.lifecycle.get_document(self.db, variant, document_id)
        counts = await variant.chunks.status_counts(self.db, document_id)
        return DocumentStatusResponse(
            id=document.id,
            pipeline=variant.name,
            name=document.name,
            processing_status=document.processing_status.value,
            error_message=document.error_message,
            text_length=document.text_length,
            total_pages=document.total_pages,
            chunks=ChunkStatusCounts(**{status.value: total for status, total in counts.items()}),
            created_at=document.created_at,
            updated_at=document.updated_at,
            processed_at=document.processed_at,
        )
