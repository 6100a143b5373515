"""
Background task module.

Fire-and-forget submission for work that must continue after the
invoking request returns (bulk assignment, first-window fast path).

Dependencies: asyncio (stdlib)
System role: Background task processing
"""

from knowledge_sync.workers.dispatcher import TaskDispatcher

__all__ = ["TaskDispatcher"]
