"""
Tests for logging helpers and correlation id propagation.

System role: Verification of error truncation and log context safety
"""

import asyncio
import logging

from knowledge_sync.boundary.db.models import JobStatus
from knowledge_sync.observability.correlation import (
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from knowledge_sync.observability.log_utils import (
    log_exception_with_context,
    safe_log_value,
    truncate_error,
)
from knowledge_sync.observability.logger import CorrelationIdFilter


class TestTruncateError:
    """Test suite for truncate_error()."""

    def test_truncate_error_should_cap_length(self) -> None:
        assert len(truncate_error("x" * 5000)) == 2000

    def test_truncate_error_should_mark_timeouts(self) -> None:
        message = truncate_error(TimeoutError())

        assert "timeout" in message.lower()

    def test_truncate_error_should_keep_existing_timeout_text(self) -> None:
        message = truncate_error(TimeoutError("extract handler timeout after 5s"))

        assert message == "extract handler timeout after 5s"

    def test_truncate_error_should_fall_back_to_type_name(self) -> None:
        assert truncate_error(RuntimeError()) == "RuntimeError"


class TestSafeLogValue:
    """Test suite for safe_log_value()."""

    def test_safe_log_value_should_summarize_collections(self) -> None:
        assert safe_log_value([1, 2, 3]) == "list(3 items)"
        assert safe_log_value({"a": 1}) == "dict(1 keys)"
        assert safe_log_value(None) == "None"

    def test_safe_log_value_should_truncate_long_strings(self) -> None:
        assert safe_log_value("y" * 20, max_length=5).startswith("yyyyy... (truncated")

    def test_safe_log_value_should_render_enum_values(self) -> None:
        assert safe_log_value(JobStatus.PROCESSING) == "processing"


class TestCorrelation:
    """Test suite for correlation id context handling."""

    def test_filter_should_attach_correlation_id(self) -> None:
        # Arrange
        set_correlation_id("req-123")
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)

        # Act
        CorrelationIdFilter().filter(record)

        # Assert
        assert record.correlation_id == "req-123"
        clear_correlation_id()

    def test_filter_should_use_placeholder_without_id(self) -> None:
        clear_correlation_id()
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)

        CorrelationIdFilter().filter(record)

        assert record.correlation_id == "-"

    async def test_background_task_should_inherit_correlation_id(self) -> None:
        set_correlation_id("sweep-7")

        seen = await asyncio.create_task(asyncio.to_thread(get_correlation_id))

        assert seen == "sweep-7"
        clear_correlation_id()


def test_log_exception_with_context_should_record_error_fields(caplog) -> None:
    logger = logging.getLogger("knowledge_sync.tests")

    with caplog.at_level(logging.ERROR, logger="knowledge_sync.tests"):
        log_exception_with_context(logger, "Sweep failed", ValueError("bad row"), sweep="stuck")

    record = caplog.records[-1]
    assert record.error_type == "ValueError"
    assert record.error_msg == "bad row"
    assert record.sweep == "stuck"
