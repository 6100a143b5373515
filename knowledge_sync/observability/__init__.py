"""
Observability module.

Provides stdout logging, correlation ID tracking and the request
middleware that binds an ID to each API call.
"""

from knowledge_sync.observability.correlation import (
    derive_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from knowledge_sync.observability.logger import configure_logging

__all__ = [
    "configure_logging",
    "derive_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]
