"""Construction of the package's internal logger."""

from __future__ import annotations

import gzip
import json
import logging
import os
import shutil
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}

_ALLOWED_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_MEGABYTE = 1024 * 1024
_DEFAULT_ROTATE_MB = 100


class _KeyValueFormatter(logging.Formatter):
    """Base for formatters that render a record as key/value pairs."""

    def __init__(self, with_context: bool = True):
        super().__init__()
        self.with_context = with_context

    def _pairs(self, record: logging.LogRecord) -> list[tuple[str, Any]]:
        pairs: list[tuple[str, Any]] = []
        if self.with_context:
            stamp = datetime.fromtimestamp(record.created, timezone.utc)
            pairs.append(("time", stamp.isoformat(timespec="microseconds").replace("+00:00", "Z")))
            pairs.append(("caller", f"{record.filename}:{record.lineno}"))
        level = _LEVEL_NAMES.get(record.levelno, record.levelname.lower())
        pairs.append(("level", level))
        pairs.append(("msg", record.getMessage()))
        pairs.extend(getattr(record, "fields", {}).items())
        return pairs


def _logfmt_value(value: Any) -> str:
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif value is None:
        return "null"
    else:
        text = str(value)
    if text == "null" or any(ch <= " " or ch in '="' for ch in text):
        return json.dumps(text, ensure_ascii=False)
    return text


class _LogfmtFormatter(_KeyValueFormatter):
    def format(self, record: logging.LogRecord) -> str:
        return " ".join(f"{key}={_logfmt_value(value)}" for key, value in self._pairs(record))


class _JsonFormatter(_KeyValueFormatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(dict(self._pairs(record)), sort_keys=True, default=str, ensure_ascii=False)


def _gzip_rotate(source: str, dest: str) -> None:
    with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
        shutil.copyfileobj(src, dst)
    os.remove(source)


class _CompressingRotatingFileHandler(RotatingFileHandler):
    """Size-rotated log file whose backups are gzip-compressed."""

    def __init__(self, filename: str, max_bytes: int, backup_count: int):
        super().__init__(
            filename, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8", delay=True
        )
        self.namer = lambda name: name + ".gz"
        self.rotator = _gzip_rotate


def _rotating_handler(file_name: str, max_size: str, backup_count: str) -> logging.Handler:
    size_mb = 10 if max_size == "0" else 0
    backups = 10 if backup_count == "0" else 0
    return _CompressingRotatingFileHandler(file_name, (size_mb or _DEFAULT_ROTATE_MB) * _MEGABYTE, backups)


def generate_inner_logger(
    log_file_name: str,
    is_json_type: str,
    log_max_size: str,
    log_file_backup_count: str,
    allow_log_level: str,
) -> logging.Logger:
    """Build a logger from string settings.

    With no file name, every level goes to standard output in logfmt, without
    time or caller. A file name of "stdout" writes to a rotating file of that
    name, in logfmt when ``is_json_type`` is "true" and JSON otherwise; any
    other name writes to standard output, in JSON when ``is_json_type`` is
    "true". Levels below ``allow_log_level`` (default "info") are dropped.
    """
    logger = logging.Logger("slslog")
    logger.propagate = False

    if not log_file_name:
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_LogfmtFormatter(with_context=False))
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        return logger

    json_requested = is_json_type == "true"
    if log_file_name == "stdout":
        handler = _rotating_handler(log_file_name, log_max_size, log_file_backup_count)
        formatter: logging.Formatter = _LogfmtFormatter() if json_requested else _JsonFormatter()
    else:
        handler = logging.StreamHandler(sys.stdout)
        formatter = _JsonFormatter() if json_requested else _LogfmtFormatter()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(_ALLOWED_LEVELS.get(allow_log_level, logging.INFO))
    return logger


def default_logger() -> logging.Logger:
    """Build the logger described by the SLSLOG_* environment variables."""
    return generate_inner_logger(
        os.environ.get("SLSLOG_LOG_FILE_NAME", ""),
        os.environ.get("SLSLOG_IS_JSON_TYPE", ""),
        os.environ.get("SLSLOG_LOG_MAX_SIZE", ""),
        os.environ.get("SLSLOG_LOG_FILE_BACKUP_COUNT", ""),
        os.environ.get("SLSLOG_ALLOW_LOG_LEVEL", ""),
    )