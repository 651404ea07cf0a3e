"""Logger used by a producer, built from its configuration."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from slslog.logsetup import (
    _ALLOWED_LEVELS,
    _CompressingRotatingFileHandler,
    _JsonFormatter,
    _LogfmtFormatter,
)
from slslog.producer.config import ProducerConfig

_MEGABYTE = 1024 * 1024
_DEFAULT_LOG_MAX_SIZE = 10
_DEFAULT_LOG_MAX_BACKUPS = 10


def _file_handler(config: ProducerConfig) -> logging.Handler:
    if config.log_max_size == 0:
        config.log_max_size = _DEFAULT_LOG_MAX_SIZE
    if config.log_max_backups == 0:
        config.log_max_backups = _DEFAULT_LOG_MAX_BACKUPS
    max_bytes = config.log_max_size * _MEGABYTE
    if config.log_compress:
        return _CompressingRotatingFileHandler(
            config.log_file_name, max_bytes, config.log_max_backups
        )
    return RotatingFileHandler(
        config.log_file_name,
        maxBytes=max_bytes,
        backupCount=config.log_max_backups,
        encoding="utf-8",
        delay=True,
    )


def configure_logger(config: ProducerConfig) -> logging.Logger:
    """Build the producer's logger.

    Without a file name the logger writes to standard output; otherwise to a
    size-rotated file, filling in ten megabytes and ten backups where the
    configuration leaves them at zero. Records are JSON or logfmt, and levels
    below ``allow_log_level`` (default "info") are dropped.
    """
    if config.log_file_name:
        handler = _file_handler(config)
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if config.is_json_type else _LogfmtFormatter())

    logger = logging.Logger("slslog.producer")
    logger.propagate = False
    logger.addHandler(handler)
    logger.setLevel(_ALLOWED_LEVELS.get(config.allow_log_level, logging.INFO))
    return logger