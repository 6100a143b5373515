"""
Document API endpoints.

Routes: POST /documents, GET /documents/{id}, POST /documents/{id}/chunks,
POST /documents/{id}/split, POST /documents/{id}/reconcile

Dependencies: knowledge_sync.application.services, knowledge_sync.models
System role: Document lifecycle HTTP API
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from knowledge_sync.api.deps import get_document_service
from knowledge_sync.api.routers.router_utils import handle_pipeline_errors
from knowledge_sync.application.services.document_service import DocumentService
from knowledge_sync.models.document import (
    CreateChunksRequest,
    CreateChunksResponse,
    CreateDocumentRequest,
    CreateDocumentResponse,
    DocumentStatusResponse,
    ReconcileDocumentResponse,
    SplitDocumentResponse,
)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", response_model=CreateDocumentResponse, status_code=status.HTTP_201_CREATED)
@handle_pipeline_errors
async def create_document(
    request: CreateDocumentRequest,
    document_service: DocumentService = Depends(get_document_service),
) -> CreateDocumentResponse:
    """
    Create a document record and queue its first stage.

    Documents carrying text start at ingested; documents with only a
    storage_ref start at created. Split documents wait for /split.

    Raises:
        HTTPException(400): Unknown pipeline or missing source
    """
    return await document_service.create_document(request)


@router.get("/{document_id}", response_model=DocumentStatusResponse)
@handle_pipeline_errors
async def get_document_status(
    document_id: UUID,
    pipeline: str = Query(default="a", description="Pipeline variant tag"),
    document_service: DocumentService = Depends(get_document_service),
) -> DocumentStatusResponse:
    """
    Get document status and chunk counts for polling.

    Raises:
        HTTPException(404): Document not found in the variant
    """
    return await document_service.get_document_status(document_id, pipeline)


@router.post(
    "/{document_id}/chunks",
    response_model=CreateChunksResponse,
    status_code=status.HTTP_201_CREATED,
)
@handle_pipeline_errors
async def create_chunks(
    document_id: UUID,
    request: CreateChunksRequest,
    document_service: DocumentService = Depends(get_document_service),
) -> CreateChunksResponse:
    """Append pending chunks to a document."""
    created = await document_service.create_chunks(document_id, request.pipeline, request.contents)
    return CreateChunksResponse(document_id=document_id, chunks_created=created)


@router.post("/{document_id}/split", response_model=SplitDocumentResponse)
@handle_pipeline_errors
async def split_document(
    document_id: UUID,
    pipeline: str = Query(default="a-hybrid", description="Pipeline variant tag"),
    document_service: DocumentService = Depends(get_document_service),
) -> SplitDocumentResponse:
    """
    Split a created document into page-window jobs.

    The first window's job starts in the background; the rest wait for
    the next processQueue sweep.
    """
    return await document_service.split_document(document_id, pipeline)


@router.post("/{document_id}/reconcile", response_model=ReconcileDocumentResponse)
@handle_pipeline_errors
async def reconcile_document(
    document_id: UUID,
    pipeline: str = Query(default="a", description="Pipeline variant tag"),
    document_service: DocumentService = Depends(get_document_service),
) -> ReconcileDocumentResponse:
    """Recompute a document's status from its chunks."""
    return await document_service.reconcile_document(document_id, pipeline)
