"""
Chunk ORM models.

Chunk content is written once when a document is chunked; afterwards only
the embedding columns move. Each variant has its own chunk table with a
foreign key to that variant's document table.

Dependencies: sqlalchemy, knowledge_sync.boundary.db.base
System role: Per-variant chunk persistence and embedding status
"""

import enum
import uuid
from datetime import datetime
from typing import ClassVar

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from knowledge_sync.boundary.db.base import Base, TimestampMixin, UUIDMixin, status_enum


class EmbeddingStatus(str, enum.Enum):
    """Chunk embedding states: pending -> processing -> ready | failed."""

    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


class ChunkMixin(UUIDMixin, TimestampMixin):
    """
    Columns shared by every variant's chunk table.

    Attributes:
        document_id: Owning document (variant document table)
        chunk_index: Position within the document; window chunks use
            batch_index * 10000 + i so windows never collide
        content: Chunk text (immutable)
        embedding: Vector, present iff embedding_status is READY
        embedding_status: See EmbeddingStatus
        embedding_error: Last embedding failure message
        embedded_at: Time the vector was stored
        page_number: First page of the source window, for windowed chunks
        batch_index: Splitter window that produced the chunk
        is_active: Visible to the shared pool
    """

    __document_table__: ClassVar[str]

    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list[float] | None] = mapped_column(JSON, nullable=True)
    embedding_status: Mapped[EmbeddingStatus] = mapped_column(
        status_enum(EmbeddingStatus),
        nullable=False,
        default=EmbeddingStatus.PENDING,
        index=True,
    )
    embedding_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    embedded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    page_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    batch_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @declared_attr
    def document_id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            UUID(as_uuid=True),
            ForeignKey(f"{cls.__document_table__}.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        return (UniqueConstraint("document_id", "chunk_index"),)


class PipelineAChunk(Base, ChunkMixin):
    __tablename__ = "pipeline_a_chunks"
    __document_table__ = "pipeline_a_documents"


class PipelineAHybridChunk(Base, ChunkMixin):
    __tablename__ = "pipeline_a_hybrid_chunks"
    __document_table__ = "pipeline_a_hybrid_documents"


class PipelineBChunk(Base, ChunkMixin):
    __tablename__ = "pipeline_b_chunks"
    __document_table__ = "pipeline_b_documents"
