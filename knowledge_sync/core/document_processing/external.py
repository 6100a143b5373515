"""
Timeout wrappers for external calls.

Every call leaving the process (object store, extractor, embedding
provider) goes through one of these so a hung dependency becomes a
recorded "timeout" failure instead of a stuck job.

Dependencies: asyncio (stdlib)
System role: Explicit timeouts at the pipeline's external boundaries
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


async def await_with_timeout(awaitable: Awaitable[T], timeout: float, description: str) -> T:
    """
    Await with a deadline.

    Raises:
        TimeoutError: "<description> timeout after <n>s"
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise TimeoutError(f"{description} timeout after {timeout:g}s") from e


async def call_blocking(
    func: Callable[..., T],
    *args: Any,
    timeout: float,
    description: str,
    **kwargs: Any,
) -> T:
    """Run a blocking client call in a worker thread under a deadline."""
    return await await_with_timeout(
        asyncio.to_thread(func, *args, **kwargs),
        timeout=timeout,
        description=description,
    )
