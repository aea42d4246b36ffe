"""Logging setup for the ``kv_gcs`` package.

Store and blob log calls attach the record's location through ``extra``
(see ``store_context``). Both formatters render those fields, so a log line
can be traced back to the bucket, store path and object it concerns.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO

# Record attributes describing where in GCS an event happened.
CONTEXT_FIELDS = ("bucket", "store_path", "object_name")

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def store_context(bucket: str, store_path: str, object_name: str | None = None) -> dict:
    """Build the ``extra`` mapping for a log call about a store or object."""
    context = {"bucket": bucket, "store_path": store_path}
    if object_name is not None:
        context["object_name"] = object_name
    return context


def _context_of(record: logging.LogRecord) -> dict:
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line, context fields as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context_of(record),
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ContextFormatter(logging.Formatter):
    """Plain text lines with context fields appended as ``key=value``."""

    def __init__(self) -> None:
        super().__init__(_TEXT_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context_of(record)
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        # Keep the traceback, if any, at the end.
        head, sep, tail = line.partition("\n")
        return f"{head} [{pairs}]{sep}{tail}"


def configure_logging(
    level: str = "INFO", fmt: str = "text", stream: IO[str] | None = None
) -> logging.Logger:
    """Install a single handler on the ``kv_gcs`` logger.

    Calling it again replaces the previous handler. The root logger is left
    alone, so applications keep control of their own logging.

    Args:
        level: Log level name; unknown names fall back to INFO.
        fmt: 'text' or 'json'.
        stream: Destination, stderr by default.

    Returns:
        The configured ``kv_gcs`` logger.

    Raises:
        ValueError: If ``fmt`` is neither 'text' nor 'json'.
    """
    if fmt == "json":
        formatter: logging.Formatter = JSONFormatter()
    elif fmt == "text":
        formatter = ContextFormatter()
    else:
        raise ValueError(f"Unknown log format: {fmt!r}")

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger("kv_gcs")
    logger.setLevel(numeric_level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger
