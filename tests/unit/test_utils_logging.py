"""Unit tests for structured logging."""

import json
import logging

from srma.utils.logging import JSONFormatter, get_logger


def make_record(message: str = "pooled") -> logging.LogRecord:
    """Helper to construct a LogRecord for testing."""
    return logging.LogRecord("srma.test", logging.INFO, __file__, 1, message, None, None)


class TestJSONFormatter:
    """Tests for the JSON log formatter."""

    def test_basic_fields(self) -> None:
        payload = json.loads(JSONFormatter().format(make_record()))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "srma.test"
        assert payload["message"] == "pooled"

    def test_extra_fields_merged(self) -> None:
        """Test structured stats attached as ``extra`` appear in the output."""
        record = make_record()
        record.extra = {"n_studies": 3, "i2": 75.0}
        payload = json.loads(JSONFormatter().format(record))
        assert payload["n_studies"] == 3
        assert payload["i2"] == 75.0


class TestGetLogger:
    """Tests for logger setup."""

    def test_single_handler(self) -> None:
        """Test repeated calls do not stack handlers."""
        first = get_logger("srma.test.handlers")
        second = get_logger("srma.test.handlers")
        assert first is second
        assert len(second.handlers) == 1
