# tests/unit/logging/test_logger.py
"""Tests for logging/logger.py: formatters and logger setup."""

from __future__ import annotations

import io
import json
import logging
import sys
from logging.handlers import RotatingFileHandler

import pytest

from docreview.logging.context import clear_context, set_session_context, set_stage_context
from docreview.logging.logger import (
    JsonFormatter,
    TextFormatter,
    _parse_size,
    create_rotating_handler,
    setup_logging,
)


def _record(msg: str = "Hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=logging.INFO, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )


class TestJsonFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context(self):
        set_session_context("file_1_abc")
        set_stage_context("design")
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["context"] == {"session_id": "file_1_abc", "stage": "design"}

    def test_non_ascii_kept(self):
        output = JsonFormatter().format(_record("Résumé"))
        assert "Résumé" in output

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()
        parsed = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in parsed["exception"]


class TestTextFormatter:
    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert "Hello text" in output
        assert "INFO" in output

    def test_format_with_context(self):
        set_session_context("file_1_abc")
        set_stage_context("risk")
        output = TextFormatter().format(_record())
        assert "[file_1_abc]" in output
        assert "(risk)" in output


class TestParseSize:
    @pytest.mark.parametrize("raw,expected", [
        ("10KB", 10 * 1024),
        ("10MB", 10 * 1024**2),
        ("1gb", 1024**3),
    ])
    def test_valid(self, raw, expected):
        assert _parse_size(raw) == expected

    def test_invalid(self):
        with pytest.raises(ValueError):
            _parse_size("ten megabytes")


class TestSetupLogging:
    def teardown_method(self):
        logging.getLogger("docreview").handlers.clear()

    def test_console_handler(self):
        stream = io.StringIO()
        setup_logging(level="DEBUG", log_format="json", stream=stream)
        root = logging.getLogger("docreview")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        logging.getLogger("docreview.test").info("hi")
        assert json.loads(stream.getvalue().strip())["message"] == "hi"

    def test_no_duplicate_handlers(self):
        setup_logging(stream=io.StringIO())
        setup_logging(stream=io.StringIO())
        assert len(logging.getLogger("docreview").handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "app.log"
        setup_logging(log_format="text", log_file=str(log_file), stream=io.StringIO())
        handlers = logging.getLogger("docreview").handlers
        assert any(isinstance(h, RotatingFileHandler) for h in handlers)
        assert log_file.parent.exists()

    def test_rotating_handler_settings(self, tmp_path):
        handler = create_rotating_handler(str(tmp_path / "a.log"), rotation="1MB", retention=3)
        try:
            assert handler.maxBytes == 1024**2
            assert handler.backupCount == 3
        finally:
            handler.close()
