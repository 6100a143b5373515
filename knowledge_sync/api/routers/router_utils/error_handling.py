"""
Pipeline error handling utilities.

Provides a decorator for consistent error handling across pipeline API
endpoints, mapping domain exceptions to HTTP status codes.
"""

import functools
import logging
from typing import Any, Callable, TypeVar

from fastapi import HTTPException, status

from knowledge_sync.core.exceptions import (
    AgentNotFoundError,
    BackupNotFoundError,
    DocumentNotFoundError,
    JobNotFoundError,
    KnowledgeSyncError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Type for the decorated function
F = TypeVar("F", bound=Callable[..., Any])

NOT_FOUND_ERRORS = (
    AgentNotFoundError,
    BackupNotFoundError,
    DocumentNotFoundError,
    JobNotFoundError,
)


def handle_pipeline_errors(func: F) -> F:
    """
    Decorator to handle pipeline errors and transform them into HTTPExceptions.

    This centralizes:
    - Logging of errors with context
    - Mapping specific exceptions to HTTP status codes
    """
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)

        except NOT_FOUND_ERRORS as e:
            logger.warning("Resource not found", extra={"error": str(e), **e.details})
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

        except ValidationError as e:
            logger.warning("Invalid pipeline request", extra={"error": str(e)})
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

        except StorageError as e:
            logger.error("Object store failure", extra={"error": str(e)})
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

        except KnowledgeSyncError as e:
            logger.exception("Pipeline operation failed", extra={"error": str(e)})
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=e.message,
            )

    return wrapper  # type: ignore
