"""Tests for logging configuration."""

import json
import logging

import pytest
from pydantic import ValidationError
from groupsync.common import LogContext, get_logger, setup_logging
from groupsync.common.logging import StructuredFormatter
from groupsync.common.logging_config import LoggingConfig


class TestLoggingConfig:
    """Test LoggingConfig validation."""

    def test_valid_config(self):
        """Test valid logging configuration."""
        config = LoggingConfig(level="INFO", format="json")
        assert config.level == "INFO"
        assert config.format == "json"

    def test_default_values(self):
        """Test default values."""
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.format == "simple"
        assert config.file is None

    def test_rejects_invalid_log_level(self):
        """Test that invalid log levels are rejected."""
        with pytest.raises(ValidationError):
            LoggingConfig(level="TRACE")

        with pytest.raises(ValidationError):
            LoggingConfig(level="CRITICAL")

    def test_rejects_invalid_format(self):
        """Test that invalid formats are rejected."""
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")

    def test_case_insensitive_log_level(self):
        """Test that log level is case-insensitive."""
        config = LoggingConfig(level="info")
        assert config.level == "INFO"

        config = LoggingConfig(level="Debug")
        assert config.level == "DEBUG"

    def test_case_insensitive_format(self):
        """Test that format is case-insensitive."""
        config = LoggingConfig(format="JSON")
        assert config.format == "json"

    def test_rejects_unknown_fields(self):
        """Test that unknown keys are rejected."""
        with pytest.raises(ValidationError):
            LoggingConfig(colour=True)

    def test_serialization(self):
        """Test that config can be serialized."""
        config = LoggingConfig(level="DEBUG", format="detailed")
        assert config.model_dump() == {
            "level": "DEBUG",
            "format": "detailed",
            "file": None,
        }


class TestStructuredLogging:
    """Tests for formatters and LogContext."""

    def _record(self, message="Hello: {'n': 1}"):
        return logging.LogRecord("groupsync.test", logging.INFO, __file__, 10, message, None, None)

    def test_structured_formatter_emits_json(self):
        """Test that the JSON formatter produces one parseable object."""
        data = json.loads(StructuredFormatter().format(self._record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "groupsync.test"
        assert data["message"] == "Hello: {'n': 1}"
        assert "thread" in data

    def test_log_context_adds_fields(self):
        """Test that LogContext fields reach records created inside it."""
        logger = logging.getLogger("groupsync.test")
        with LogContext(logger, tree="MemFS"):
            record = logging.getLogRecordFactory()(
                "groupsync.test", logging.INFO, __file__, 1, "inside", None, None
            )
        assert record.extra_fields == {"tree": "MemFS"}

        data = json.loads(StructuredFormatter().format(record))
        assert data["tree"] == "MemFS"

    def test_log_context_restores_factory(self):
        """Test that the previous record factory is restored on exit."""
        before = logging.getLogRecordFactory()
        with LogContext(logging.getLogger("x"), a=1):
            assert logging.getLogRecordFactory() is not before
        assert logging.getLogRecordFactory() is before

    def test_get_logger(self):
        """Test that get_logger returns the named standard logger."""
        assert get_logger("groupsync.folder_scanner") is logging.getLogger("groupsync.folder_scanner")

    def test_setup_logging_with_file(self, tmp_path):
        """Test that a log file gets JSON lines."""
        log_file = tmp_path / "logs" / "scan.log"
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging(level="DEBUG", format="detailed", log_file=log_file)
            logging.getLogger("groupsync.test").info("Written: {'ok': True}")
            for handler in root.handlers:
                handler.flush()
            line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
            assert json.loads(line)["message"] == "Written: {'ok': True}"
            assert logging.getLogger("PIL").level == logging.WARNING
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
