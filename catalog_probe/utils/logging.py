"""Logging setup with optional JSON output and per-probe context."""

import logging
import sys
import json
from typing import Optional, Dict, Any, MutableMapping, Tuple
from datetime import datetime, timezone

# Libraries whose INFO chatter drowns out discovery logs
_QUIET_LOGGERS = ("psycopg2", "sqlglot")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; context fields are merged at top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(getattr(record, "extra_fields", {}))
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable lines, with any context appended as ``key=value`` pairs."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, "extra_fields", None)
        if not fields:
            return line
        context = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        head, sep, rest = line.partition("\n")
        return f"{head} [{context}]{sep}{rest}"


def setup_logging(
    level: str = "INFO",
    structured: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure the root logger for catprobe.

    Records go to stderr so discovery output on stdout stays clean, and
    to ``log_file`` as well when one is given.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR); unknown names mean INFO
        structured: Emit JSON lines instead of plain text
        log_file: Optional extra destination
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = StructuredFormatter() if structured else StandardFormatter()

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter that stores its context as ``extra_fields`` on every record.

    Fields passed per call through ``extra={"extra_fields": ...}`` are merged
    over the adapter's own.
    """

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> Tuple[str, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        fields = dict(self.extra)
        fields.update(extra.pop("extra_fields", {}))
        extra["extra_fields"] = fields
        kwargs["extra"] = extra
        return msg, kwargs


def get_contextual_logger(name: str, context: Dict[str, Any]) -> LoggerAdapter:
    """Get a logger whose records carry the given context.

    Example:
        >>> log = get_contextual_logger(__name__, {"candidate": "sqlite_stat1"})
        >>> log.error("Probe failed")  # record.extra_fields carries the candidate
    """
    return LoggerAdapter(logging.getLogger(name), context)
