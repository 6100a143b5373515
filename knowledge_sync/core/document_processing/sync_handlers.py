"""
Per-variant agent sync handlers.

A sync handler links the ready chunks of a batch of documents to an agent
and returns how many links it created or re-activated. Both handlers are
idempotent upserts on (agent_id, chunk_id).

Dependencies: sqlalchemy
System role: Knowledge linking used by the Bulk Assignment Dispatcher
"""

from typing import TYPE_CHECKING, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

if TYPE_CHECKING:
    from knowledge_sync.core.document_processing.variants import PipelineVariant


async def link_ready_chunks(
    session: AsyncSession,
    variant: "PipelineVariant",
    agent_id: UUID,
    document_ids: Sequence[UUID],
) -> int:
    """Link ready chunks to the agent, leaving existing links untouched."""
    chunk_ids = await variant.chunks.get_ready_ids(session, document_ids)
    return await variant.knowledge.link_chunks(session, agent_id, chunk_ids)


async def sync_agent_knowledge(
    session: AsyncSession,
    variant: "PipelineVariant",
    agent_id: UUID,
    document_ids: Sequence[UUID],
) -> int:
    """Link ready chunks to the agent and re-activate links switched off earlier."""
    chunk_ids = await variant.chunks.get_ready_ids(session, document_ids)
    return await variant.knowledge.link_chunks(session, agent_id, chunk_ids, reactivate=True)
