"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin, utc_now: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(), dispose_async_engine(): Async connection management
  - Model and CRUD packages under .models and .CRUD

Dependencies: sqlalchemy, knowledge_sync.configs
System role: Database adapter providing persistent storage for documents,
chunks, processing jobs, agent links and audit records.
"""

from knowledge_sync.boundary.db.base import Base, TimestampMixin, UUIDMixin, utc_now
from knowledge_sync.boundary.db.connection import (
    dispose_async_engine,
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)
from knowledge_sync.boundary.db import models  # noqa: F401  (registers tables on Base.metadata)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "dispose_async_engine",
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    "utc_now",
]
