"""Tests for logging configuration."""

import json
import logging
import sys

import pytest

from botrunner.config.schema import LoggingConfig
from botrunner.logging_config import (
    DetailedFormatter,
    LogContext,
    SimpleFormatter,
    StructuredFormatter,
    get_logger,
    setup_logging,
)


def make_record(msg="hello", **attrs):
    record = logging.LogRecord(
        name="botrunner.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
        func="test_func",
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestFormatters:
    """Test the three output formats."""

    def test_structured_formatter_fields(self):
        record = make_record(extra_fields={"update_id": 5}, context_fields={"bot": "echo_bot"})

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["logger"] == "botrunner.test"
        assert data["update_id"] == 5
        assert data["bot"] == "echo_bot"

    def test_structured_formatter_exception(self):
        try:
            raise ValueError("broken")
        except ValueError:
            record = make_record(exc_info=sys.exc_info())

        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "broken"
        assert "Traceback" in data["exception"]["traceback"]

    def test_structured_formatter_non_json_values(self):
        record = make_record(extra_fields={"path": object()})
        data = json.loads(StructuredFormatter().format(record))
        assert "object" in data["path"]

    def test_simple_and_detailed(self):
        record = make_record()

        assert SimpleFormatter().format(record) == "INFO     | botrunner.test | hello"
        detailed = DetailedFormatter().format(record)
        assert "botrunner.test:test_func:10" in detailed
        assert detailed.endswith("| hello")


class TestSetupLogging:
    """Test handler setup."""

    def test_defaults(self, restore_root_logger):
        setup_logging()

        root = restore_root_logger
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, SimpleFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_json_and_file(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "bot.log"
        setup_logging(LoggingConfig(level="debug", format="json", file=str(log_file)))

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert all(isinstance(h.formatter, StructuredFormatter) for h in root.handlers)

        get_logger("botrunner.test").info("to file", extra={"extra_fields": {"k": "v"}})
        for handler in root.handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["k"] == "v"

        for handler in root.handlers:
            handler.close()


class TestLogContext:
    """Test context fields."""

    def test_fields_added_inside_block_only(self):
        logger = get_logger("botrunner.test")

        with LogContext(logger, bot="echo_bot"):
            inside = logging.getLogRecordFactory()("botrunner.test", logging.INFO, __file__, 1, "x", (), None)
        outside = logging.getLogRecordFactory()("botrunner.test", logging.INFO, __file__, 1, "x", (), None)

        assert inside.context_fields == {"bot": "echo_bot"}
        assert not hasattr(outside, "context_fields")

    def test_extra_fields_still_allowed(self, caplog):
        logger = get_logger("botrunner.test")

        with caplog.at_level(logging.INFO, logger="botrunner.test"):
            with LogContext(logger, bot="echo_bot"):
                logger.info("tagged", extra={"extra_fields": {"update_id": 1}})

        record = caplog.records[-1]
        assert record.context_fields == {"bot": "echo_bot"}
        assert record.extra_fields == {"update_id": 1}
