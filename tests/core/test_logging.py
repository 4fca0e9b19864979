"""Tests for structured logging."""

import json
import logging
from pathlib import Path

import pytest

from driftflow.config.models import LoggingConfig, LogOutputConfig
from driftflow.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)


class TestRunIdCorrelation:
    """Run ID context variable tests."""

    def setup_method(self) -> None:
        """Clear run ID before each test."""
        clear_run_id()

    def test_given_run_id_when_set_then_can_retrieve(self) -> None:
        """Run ID can be set and retrieved."""
        result = set_run_id("run-123")

        assert result == "run-123"
        assert get_run_id() == "run-123"

    def test_given_no_id_when_set_then_generates_uuid(self) -> None:
        """Set generates UUID-based ID when none provided."""
        rid = set_run_id()

        assert len(rid) == 12  # uuid4().hex[:12]
        assert get_run_id() == rid

    def test_given_set_id_when_clear_then_removes_id(self) -> None:
        """Clear removes the current run ID."""
        set_run_id("to-clear")

        clear_run_id()

        assert get_run_id() is None


class TestConfigureLogging:
    """Logging configuration tests."""

    def teardown_method(self) -> None:
        clear_run_id()
        logging.getLogger().handlers.clear()

    def test_given_level_when_configured_then_root_level_set(self) -> None:
        """Simple configuration sets the root level."""
        configure_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG

    def test_given_multiple_outputs_when_configured_then_one_handler_each(
        self, tmp_path: Path
    ) -> None:
        """Each output gets its own handler."""
        config = LoggingConfig(
            level="INFO",
            outputs=[
                LogOutputConfig(format="console", destination="stderr"),
                LogOutputConfig(format="json", destination=str(tmp_path / "flow.log")),
            ],
        )

        configure_logging(config=config)

        assert len(logging.getLogger().handlers) == 2

    def test_given_json_file_output_when_logging_then_run_id_included(
        self, tmp_path: Path
    ) -> None:
        """Events written to a JSON file carry the event name and run id."""
        log_file = tmp_path / "flow.log"
        config = LoggingConfig(
            level="INFO",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )
        configure_logging(config=config)
        set_run_id("abc123")

        get_logger("test").info("enhancement_applied", enhancement="safety-drop-table")
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["event"] == "enhancement_applied"
        assert record["run_id"] == "abc123"
        assert record["enhancement"] == "safety-drop-table"

    def test_given_relative_file_destination_then_rejected(self) -> None:
        """File destinations must be absolute."""
        with pytest.raises(ValueError):
            LogOutputConfig(destination="relative/flow.log")
