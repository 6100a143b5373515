"""
Logging utilities for safe structured logging.

Provides helpers for safe logging without string concatenation errors,
and the truncation applied to error text persisted on pipeline rows.

Dependencies: logging (stdlib)
System role: Logging helper functions
"""

import logging
from enum import Enum
from typing import Any

MAX_ERROR_LENGTH = 2000


def safe_log_value(value: Any, max_length: int = 500) -> str:
    """
    Render a value for a log record's extra fields.

    Enums log their value. Collections log only their size, so chunk id
    lists never flood a record.

    Args:
        value: Value to convert
        max_length: Maximum length before truncating

    Returns:
        str: Safe string representation
    """
    try:
        if value is None:
            return "None"
        if isinstance(value, Enum):
            val_str = str(value.value)
        elif isinstance(value, str):
            val_str = value
        elif isinstance(value, (list, tuple, set, frozenset)):
            val_str = f"{type(value).__name__}({len(value)} items)"
        elif isinstance(value, dict):
            val_str = f"dict({len(value)} keys)"
        else:
            val_str = str(value)

        if len(val_str) > max_length:
            return val_str[:max_length] + f"... (truncated, {len(val_str)} total)"
        return val_str
    except Exception as e:
        return f"<unable to log: {type(e).__name__}>"


def truncate_error(error: BaseException | str, max_length: int = MAX_ERROR_LENGTH) -> str:
    """
    Render an error for storage in an error_message column.

    Args:
        error: Exception or message
        max_length: Column-safe maximum length

    Returns:
        str: Message text; timeout errors always mention "timeout"
    """
    if isinstance(error, BaseException):
        text = str(error) or type(error).__name__
        if isinstance(error, TimeoutError) and "timeout" not in text.lower():
            text = f"timeout: {text}"
    else:
        text = error
    return text[:max_length]


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: Exception,
    **context,
) -> None:
    """
    Log an exception with full context.

    Args:
        logger: Logger instance
        message: Log message
        exc: Exception instance
        **context: Additional context dict
    """
    safe_context = {
        key: safe_log_value(val) for key, val in context.items()
    }
    safe_context.update({
        "error_type": type(exc).__name__,
        "error_msg": truncate_error(exc),
    })
    logger.error(message, exc_info=exc, extra=safe_context)
