"""
In-process background task dispatcher.

submit() schedules a coroutine and returns immediately; the caller never
awaits the outcome. Outcomes are observable only through logs and the
audit rows the task itself writes. Tasks inherit the submitter's context,
with the correlation id narrowed to "<parent>/<task name>". The
dispatcher keeps strong references to running tasks so they are not
garbage collected mid-flight, and drains them on application shutdown.

Dependencies: asyncio (stdlib), knowledge_sync.observability
System role: Explicit task submission replacing "continue after response"
"""

import asyncio
import logging
from typing import Any, Coroutine

from knowledge_sync.observability.correlation import derive_correlation_id

logger = logging.getLogger(__name__)


class TaskDispatcher:
    """Tracks fire-and-forget asyncio tasks."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of submitted tasks not yet finished."""
        return len(self._tasks)

    async def _run(self, name: str, coro: Coroutine[Any, Any, Any]) -> Any:
        derive_correlation_id(name)
        try:
            result = await coro
        except asyncio.CancelledError:
            logger.warning(f"{__name__}:_run - Background task cancelled", extra={"task_name": name})
            raise
        except Exception as e:
            logger.error(
                f"{__name__}:_run - Background task failed",
                exc_info=e,
                extra={"task_name": name, "error": str(e)},
            )
            return None
        logger.info(f"{__name__}:_run - Background task finished", extra={"task_name": name})
        return result

    def submit(self, name: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """
        Schedule a coroutine on the running loop and return without awaiting it.

        Args:
            name: Label used in logs
            coro: Coroutine to run

        Returns:
            asyncio.Task: The scheduled task
        """
        task = asyncio.create_task(self._run(name, coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"{__name__}:submit - Background task submitted", extra={"task_name": name})
        return task

    async def drain(self) -> None:
        """Wait until every submitted task, including ones submitted meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = 30.0) -> None:
        """Drain with a deadline, cancelling whatever is still running after it."""
        try:
            await asyncio.wait_for(self.drain(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"{__name__}:shutdown - Cancelling unfinished background tasks",
                extra={"pending": len(self._tasks)},
            )
            for task in list(self._tasks):
                task.cancel()
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
