"""
Correlation ID context.

A correlation id follows one request (or one scheduled sweep) through
every log line it produces. It lives in a ContextVar, and asyncio tasks
copy the current context, so background work submitted by a request
starts with the request's id. The dispatcher then narrows it to
"<parent>/<task>" so the task's lines can be told apart.

Dependencies: contextvars
System role: Request and background-task tracing
"""

import uuid
from contextvars import ContextVar

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:16]


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Set the correlation id for the current context.

    Args:
        correlation_id: Incoming id (a fresh one is generated when empty)

    Returns:
        str: The id now in effect
    """
    value = correlation_id or new_correlation_id()
    correlation_id_ctx.set(value)
    return value


def get_correlation_id() -> str:
    """Current correlation id, or an empty string outside any request or task."""
    return correlation_id_ctx.get()


def derive_correlation_id(label: str) -> str:
    """Set and return "<current>/<label>", starting a new root id when none is set."""
    parent = correlation_id_ctx.get() or new_correlation_id()
    return set_correlation_id(f"{parent}/{label}")


def clear_correlation_id() -> None:
    correlation_id_ctx.set("")
