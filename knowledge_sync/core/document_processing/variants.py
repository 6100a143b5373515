"""
Pipeline variant descriptors.

Pipelines A, A-Hybrid and B share one state machine and one retry and
reconciliation policy, but own separate tables. A PipelineVariant binds a
tag to its tables (through CRUD instances) and its agent sync handler; the
engine components take a variant instead of hardcoding any table.

Dependencies: knowledge_sync.boundary.db
System role: Table and handler bindings for the generic pipeline engine
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.db.CRUD import AgentKnowledgeCRUD, ChunkCRUD, DocumentCRUD
from knowledge_sync.boundary.db.models import (
    PipelineAAgentKnowledge,
    PipelineAChunk,
    PipelineADocument,
    PipelineAHybridAgentKnowledge,
    PipelineAHybridChunk,
    PipelineAHybridDocument,
    PipelineBAgentKnowledge,
    PipelineBChunk,
    PipelineBDocument,
)
from knowledge_sync.core.document_processing.sync_handlers import (
    link_ready_chunks,
    sync_agent_knowledge,
)
from knowledge_sync.core.exceptions import UnknownPipelineError

SyncHandler = Callable[
    [AsyncSession, "PipelineVariant", UUID, Sequence[UUID]], Awaitable[int]
]


@dataclass(frozen=True)
class PipelineVariant:
    """
    Table and handler bindings for one pipeline variant.

    Attributes:
        name: Variant tag stored on documents and jobs ("a", "a-hybrid", "b")
        label: Human-readable name
        documents: CRUD bound to the variant's document table
        chunks: CRUD bound to the variant's chunk table
        knowledge: CRUD bound to the variant's agent-knowledge table
        sync_handler: Links a batch of documents to an agent
        split_by_default: Large sources go through the batch splitter
    """

    name: str
    label: str
    documents: DocumentCRUD
    chunks: ChunkCRUD
    knowledge: AgentKnowledgeCRUD
    sync_handler: SyncHandler
    split_by_default: bool = False


PIPELINE_A = PipelineVariant(
    name="a",
    label="Pipeline A",
    documents=DocumentCRUD(PipelineADocument),
    chunks=ChunkCRUD(PipelineAChunk),
    knowledge=AgentKnowledgeCRUD(PipelineAAgentKnowledge),
    sync_handler=link_ready_chunks,
)

PIPELINE_A_HYBRID = PipelineVariant(
    name="a-hybrid",
    label="Pipeline A-Hybrid",
    documents=DocumentCRUD(PipelineAHybridDocument),
    chunks=ChunkCRUD(PipelineAHybridChunk),
    knowledge=AgentKnowledgeCRUD(PipelineAHybridAgentKnowledge),
    sync_handler=link_ready_chunks,
    split_by_default=True,
)

PIPELINE_B = PipelineVariant(
    name="b",
    label="Pipeline B",
    documents=DocumentCRUD(PipelineBDocument),
    chunks=ChunkCRUD(PipelineBChunk),
    knowledge=AgentKnowledgeCRUD(PipelineBAgentKnowledge),
    sync_handler=sync_agent_knowledge,
)

VARIANTS: dict[str, PipelineVariant] = {
    variant.name: variant for variant in (PIPELINE_A, PIPELINE_A_HYBRID, PIPELINE_B)
}


def get_variant(name: str) -> PipelineVariant:
    """
    Look up a variant by tag (case-insensitive).

    Raises:
        UnknownPipelineError: If the tag is not registered
    """
    variant = VARIANTS.get(name.lower()) if name else None
    if variant is None:
        raise UnknownPipelineError(name)
    return variant


def all_variants() -> tuple[PipelineVariant, ...]:
    """Every registered variant, in registration order."""
    return tuple(VARIANTS.values())
