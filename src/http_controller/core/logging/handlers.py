"""Console and rotating-file handlers."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

from .config import DEFAULT_MAX_BYTES


def _prepare(handler, level, formatter, filters):
    handler.setLevel(level)
    handler.setFormatter(formatter)
    for log_filter in filters or ():
        handler.addFilter(log_filter)
    return handler


def create_console_handler(
    level: int,
    formatter: logging.Formatter,
    filters: Optional[Iterable[logging.Filter]] = None,
) -> logging.StreamHandler:
    return _prepare(logging.StreamHandler(sys.stdout), level, formatter, filters)


def create_file_handler(
    file_path: str,
    level: int,
    formatter: logging.Formatter,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = 5,
    filters: Optional[Iterable[logging.Filter]] = None,
) -> RotatingFileHandler:
    """
    Rotating file handler; missing parent directories are created.

    ``controller.log`` is the live file, ``controller.log.1`` the most
    recent rotation, up to ``backup_count`` files.
    """
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        file_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8',
    )
    return _prepare(handler, level, formatter, filters)
