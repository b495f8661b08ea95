"""Tests for logging setup and request correlation."""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from dblineage.config.models import LoggingConfig, LogOutputConfig
from dblineage.core.logging import (
    _add_request_id,
    clear_request_id,
    configure_logging,
    get_request_id,
    set_request_id,
)


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    yield
    clear_request_id()
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


class TestRequestId:
    def test_given_no_id_when_set_then_generated(self) -> None:
        rid = set_request_id()

        assert len(rid) == 12
        assert get_request_id() == rid

    def test_given_bound_id_when_event_processed_then_attached(self) -> None:
        set_request_id("scan-1")

        event = _add_request_id(None, "info", {"event": "trace_started"})

        assert event["request_id"] == "scan-1"

    def test_given_cleared_id_when_event_processed_then_absent(self) -> None:
        set_request_id("scan-1")
        clear_request_id()

        event = _add_request_id(None, "info", {"event": "trace_started"})

        assert "request_id" not in event


class TestConfigureLogging:
    def test_given_file_output_when_logged_then_json_line_written(self, temp_dir: Path) -> None:
        # Given
        log_file = temp_dir / "logs" / "dblineage.log"
        config = LoggingConfig(
            level="INFO", outputs=[LogOutputConfig(format="json", destination=str(log_file))]
        )
        configure_logging(config=config)
        set_request_id("req-42")

        # When
        structlog.get_logger().info("lineage_generated", table="orders")
        structlog.get_logger().debug("usage_recorded", line=3)
        for handler in logging.getLogger().handlers:
            handler.flush()

        # Then
        text = log_file.read_text()
        assert '"event": "lineage_generated"' in text
        assert '"request_id": "req-42"' in text
        assert "usage_recorded" not in text

    def test_given_level_only_when_configured_then_single_stderr_handler(self) -> None:
        configure_logging(level="WARNING")

        [handler] = logging.getLogger().handlers
        assert handler.level == logging.WARNING
        assert logging.getLogger().level == logging.WARNING
