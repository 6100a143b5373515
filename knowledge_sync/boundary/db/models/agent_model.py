"""
Agent and agent-knowledge ORM models.

Agents are owned by the chat application; the pipeline only reads them to
validate assignments. Knowledge links attach ready chunks to an agent,
one link table per variant, unique on (agent_id, chunk_id).

Dependencies: sqlalchemy, knowledge_sync.boundary.db.base
System role: Agent lookup and per-variant agent knowledge links
"""

import uuid
from typing import ClassVar

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from knowledge_sync.boundary.db.base import Base, TimestampMixin, UUIDMixin


class AgentModel(Base, UUIDMixin, TimestampMixin):
    """Expert agent that documents can be assigned to."""

    __tablename__ = "agents"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AgentKnowledgeMixin(UUIDMixin, TimestampMixin):
    """Link between an agent and one ready chunk of a variant."""

    __chunk_table__: ClassVar[str]

    agent_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @declared_attr
    def chunk_id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            UUID(as_uuid=True),
            ForeignKey(f"{cls.__chunk_table__}.id", ondelete="CASCADE"),
            nullable=False,
        )

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        return (UniqueConstraint("agent_id", "chunk_id"),)


class PipelineAAgentKnowledge(Base, AgentKnowledgeMixin):
    __tablename__ = "pipeline_a_agent_knowledge"
    __chunk_table__ = "pipeline_a_chunks"


class PipelineAHybridAgentKnowledge(Base, AgentKnowledgeMixin):
    __tablename__ = "pipeline_a_hybrid_agent_knowledge"
    __chunk_table__ = "pipeline_a_hybrid_chunks"


class PipelineBAgentKnowledge(Base, AgentKnowledgeMixin):
    __tablename__ = "pipeline_b_agent_knowledge"
    __chunk_table__ = "pipeline_b_chunks"
