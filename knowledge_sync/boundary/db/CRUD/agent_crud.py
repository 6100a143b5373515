"""
Agent and agent-knowledge CRUD operations.

Dependencies: sqlalchemy, knowledge_sync.boundary.db.models
System role: Agent lookup and idempotent knowledge-link upserts
"""

import uuid
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.db.base import utc_now
from knowledge_sync.boundary.db.models.agent_model import AgentKnowledgeMixin, AgentModel
from knowledge_sync.boundary.db.models.chunk_model import ChunkMixin
from knowledge_sync.boundary.db.CRUD.base_crud import BULK_WRITE_OPTIONS, BaseCRUD

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class AgentCRUD(BaseCRUD[AgentModel]):
    """CRUD operations for AgentModel."""

    def __init__(self) -> None:
        """Initialize AgentCRUD with AgentModel."""
        super().__init__(AgentModel)


class AgentKnowledgeCRUD(BaseCRUD[AgentKnowledgeMixin]):
    """CRUD operations for one variant's agent-knowledge link table."""

    async def link_chunks(
        self,
        session: AsyncSession,
        agent_id: UUID,
        chunk_ids: Sequence[UUID],
        reactivate: bool = False,
    ) -> int:
        """
        Upsert active links from an agent to chunks.

        Uses INSERT ... ON CONFLICT (agent_id, chunk_id). Existing pairs are
        left alone, or switched back on when reactivate is set, so repeating
        an assignment is a no-op.

        Args:
            session: Async database session
            agent_id: Agent UUID
            chunk_ids: Chunk UUIDs to link
            reactivate: Flip inactive existing links back to active

        Returns:
            Number of links created or re-activated
        """
        if not chunk_ids:
            return 0
        dialect = session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise NotImplementedError(f"Knowledge link upsert unsupported on {dialect}")

        now = utc_now()
        stmt = insert(self.model).values(
            [
                {
                    "id": uuid.uuid4(),
                    "agent_id": agent_id,
                    "chunk_id": chunk_id,
                    "is_active": True,
                    "created_at": now,
                    "updated_at": now,
                }
                for chunk_id in dict.fromkeys(chunk_ids)
            ]
        )
        if reactivate:
            stmt = stmt.on_conflict_do_update(
                index_elements=["agent_id", "chunk_id"],
                set_={"is_active": True, "updated_at": now},
                where=self.model.is_active.is_(False),
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=["agent_id", "chunk_id"])
        result = await session.execute(stmt.returning(self.model.id))
        return len(result.scalars().all())

    async def get_chunk_ids(self, session: AsyncSession, agent_id: UUID) -> list[UUID]:
        """Chunk ids currently linked to the agent."""
        stmt = select(self.model.chunk_id).where(self.model.agent_id == agent_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def deactivate_orphaned(
        self,
        session: AsyncSession,
        chunk_model: type[ChunkMixin],
        limit: int,
    ) -> int:
        """
        Switch off active links whose chunk is inactive or gone.

        At most limit links are touched per call.

        Args:
            session: Async database session
            chunk_model: The chunk table this link table points at
            limit: Maximum links to deactivate

        Returns:
            Number of links deactivated
        """
        live_chunks = select(chunk_model.id).where(chunk_model.is_active.is_(True))
        stmt = (
            select(self.model.id)
            .where(
                self.model.is_active.is_(True),
                self.model.chunk_id.not_in(live_chunks),
            )
            .limit(limit)
        )
        ids = list((await session.execute(stmt)).scalars().all())
        if not ids:
            return 0
        result = await session.execute(
            update(self.model)
            .where(self.model.id.in_(ids), self.model.is_active.is_(True))
            .values(is_active=False, updated_at=utc_now()),
            execution_options=BULK_WRITE_OPTIONS,
        )
        return result.rowcount


agent_crud = AgentCRUD()
