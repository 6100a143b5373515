"""
Tests for the in-process background task dispatcher.

System role: Verification of fire-and-forget submission, failure
isolation and shutdown draining
"""

import asyncio

from knowledge_sync.observability.correlation import (
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from knowledge_sync.workers import TaskDispatcher


class TestTaskDispatcher:
    """Test suite for TaskDispatcher."""

    async def test_submit_should_return_before_task_finishes(self) -> None:
        # Arrange
        dispatcher = TaskDispatcher()
        release = asyncio.Event()

        async def work() -> str:
            await release.wait()
            return "done"

        # Act
        task = dispatcher.submit("work", work())

        # Assert
        assert dispatcher.pending == 1
        release.set()
        assert await task == "done"
        await asyncio.sleep(0)
        assert dispatcher.pending == 0

    async def test_failing_task_should_not_raise_to_caller(self) -> None:
        # Arrange
        dispatcher = TaskDispatcher()

        async def boom() -> None:
            raise RuntimeError("background failure")

        # Act
        task = dispatcher.submit("boom", boom())
        await dispatcher.drain()

        # Assert
        assert task.result() is None

    async def test_drain_should_wait_for_tasks_submitted_meanwhile(self) -> None:
        # Arrange
        dispatcher = TaskDispatcher()
        finished: list[str] = []

        async def child() -> None:
            finished.append("child")

        async def parent() -> None:
            dispatcher.submit("child", child())
            finished.append("parent")

        # Act
        dispatcher.submit("parent", parent())
        await dispatcher.drain()

        # Assert
        assert sorted(finished) == ["child", "parent"]
        assert dispatcher.pending == 0

    async def test_shutdown_should_cancel_tasks_past_deadline(self) -> None:
        # Arrange
        dispatcher = TaskDispatcher()
        task = dispatcher.submit("slow", asyncio.sleep(10))

        # Act
        await dispatcher.shutdown(timeout=0.05)

        # Assert
        assert task.cancelled()
        assert dispatcher.pending == 0

    async def test_task_should_carry_derived_correlation_id(self) -> None:
        # Arrange
        dispatcher = TaskDispatcher()
        set_correlation_id("req-1")

        async def read_id() -> str:
            return get_correlation_id()

        # Act
        task = dispatcher.submit("assignment:42", read_id())
        seen = await task

        # Assert
        assert seen == "req-1/assignment:42"
        assert get_correlation_id() == "req-1"
        clear_correlation_id()
