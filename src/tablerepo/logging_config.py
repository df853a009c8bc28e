"""Logging configuration for tablerepo.

Provides a JSON formatted logger named ``tablerepo`` and simple statement
statistics collected by the database driver.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from .config.settings import settings

LOG_NAME = "tablerepo"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5

# Attributes present on every LogRecord. Anything else is considered an extra field.
DEFAULT_LOG_RECORD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "asctime",
}


class JsonFormatter(logging.Formatter):
    """Formatter returning log records as JSON strings."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - short description
        base: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in DEFAULT_LOG_RECORD_ATTRS
        }
        request_id = extras.pop("request_id", None)
        if request_id is not None:
            base["request_id"] = request_id
        if record.exc_info:
            base["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
        if extras:
            base["extra"] = extras
        return json.dumps(base, ensure_ascii=False, default=str)


def get_logger(log_file: Path | None = None) -> logging.Logger:
    """Return the configured package logger.

    The file handler writes to ``log_file``, or to ``settings.log_file``
    when omitted. Module loggers (``logging.getLogger(__name__)``) are
    children of this logger, so configuring it once routes every repository
    message through the JSON handlers.
    """
    logger = logging.getLogger(LOG_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    formatter = JsonFormatter()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.DEBUG)
    stream_handler.setFormatter(formatter)

    path = log_file or settings.log_file
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)

    logger.addHandler(stream_handler)
    logger.addHandler(file_handler)
    logger.propagate = False
    return logger


class QueryStats:
    """Per-kind counter of executed SQL statements."""

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()
        self._logger = logging.getLogger(LOG_NAME)

    def record(self, sql: str) -> None:
        """Record one executed statement under its leading keyword."""
        keyword = sql.lstrip().split(None, 1)[0].upper() if sql.strip() else "EMPTY"
        self._counts[keyword] += 1

    def count(self, kind: str) -> int:
        return self._counts[kind.upper()]

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def reset(self) -> None:
        self._counts.clear()

    def log_summary(self) -> None:
        """Log the statement counts collected so far."""
        self._logger.info(
            "Statement summary", extra={"statements": dict(self._counts), "total": self.total}
        )
