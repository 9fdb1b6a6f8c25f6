"""Tests for logging setup and contextual loggers."""

import json
import logging

import pytest

from catalog_probe.utils.logging import (
    StandardFormatter,
    StructuredFormatter,
    get_contextual_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_logging():
    """Tests here reconfigure the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_contextual_logger_attaches_fields(caplog):
    """The adapter context ends up in extra_fields."""
    log = get_contextual_logger("catalog_probe.test", {"candidate": "sqlite_stat1"})

    with caplog.at_level(logging.INFO, logger="catalog_probe.test"):
        log.info("probing", extra={"extra_fields": {"attempt": 1}})

    record = caplog.records[0]
    assert record.extra_fields == {"candidate": "sqlite_stat1", "attempt": 1}


def test_structured_formatter_includes_context():
    """JSON output carries the message and the context fields."""
    record = logging.LogRecord("catalog_probe.x", logging.ERROR, __file__, 10, "failed %s", ("a",), None)
    record.extra_fields = {"candidate": "a", "datasource": "main"}

    data = json.loads(StructuredFormatter().format(record))

    assert data["message"] == "failed a"
    assert data["level"] == "ERROR"
    assert data["candidate"] == "a"
    assert data["datasource"] == "main"


def test_setup_logging(tmp_path):
    """Setup installs a console handler and an optional file handler."""
    log_file = tmp_path / "catprobe.log"

    setup_logging("debug", structured=True, log_file=str(log_file))
    logging.getLogger("catalog_probe.test").debug("hello")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 2
    assert isinstance(root.handlers[0].formatter, StructuredFormatter)
    for handler in root.handlers:
        handler.flush()
    assert json.loads(log_file.read_text().splitlines()[-1])["message"] == "hello"


def test_setup_logging_standard_format():
    """Plain text is the default format."""
    setup_logging("WARNING")

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0].formatter, StandardFormatter)


def test_standard_formatter_appends_context():
    """Plain text lines end with the record's context."""
    record = logging.LogRecord("catalog_probe.x", logging.ERROR, __file__, 10, "failed", (), None)
    record.extra_fields = {"datasource": "main", "candidate": "a"}

    line = StandardFormatter().format(record)

    assert line.endswith("failed [candidate=a datasource=main]")
