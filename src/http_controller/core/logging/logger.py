"""
Structured logger for the request controller.
"""

import logging
from typing import Optional, Any

from .config import LoggingConfig, LogLevel
from .formatters import get_formatter
from .filters import RequestContextFilter, ExtraFieldsFilter
from .handlers import create_console_handler, create_file_handler
from ...utils.sanitizer import mask_sensitive_data

ROOT_LOGGER_NAME = "http_controller"


class ControllerLogger:
    """
    Logger with keyword fields.

    Keyword arguments become ``extra`` fields after secrets are masked.

    Without a config nothing is installed: records go to the
    ``http_controller`` logger and whatever the application configured.
    With a config the ``http_controller`` logger tree gets its own
    handlers and stops propagating to the root logger.

    Example:
        >>> logger = ControllerLogger(LoggingConfig.create(level="DEBUG", format="json"))
        >>> logger.info("Request scheduled", method="GET", url="https://api.example.com/users")
    """

    def __init__(self, config: Optional[LoggingConfig] = None, name: str = ROOT_LOGGER_NAME):
        self.config = config
        self.name = name
        self._closed = False
        self._logger = logging.getLogger(name)

        if config is None:
            return

        self._saved_state = (self._logger.level, self._logger.propagate)

        level = self._get_level(config.level)
        self._logger.setLevel(level)
        self._logger.propagate = False

        # Remove existing handlers (if reinitializing)
        for handler in self._logger.handlers[:]:
            if not isinstance(handler, logging.NullHandler):
                handler.close()
                self._logger.removeHandler(handler)

        filters = []
        if config.enable_request_context:
            filters.append(RequestContextFilter())
        if config.extra_fields:
            filters.append(ExtraFieldsFilter(config.extra_fields))

        formatter = get_formatter(config.format.value)

        if config.enable_console:
            self._logger.addHandler(create_console_handler(level, formatter, filters))

        if config.enable_file and config.file_path:
            self._logger.addHandler(create_file_handler(
                file_path=config.file_path,
                level=level,
                formatter=formatter,
                max_bytes=config.max_bytes,
                backup_count=config.backup_count,
                filters=filters
            ))

    @staticmethod
    def _get_level(level: LogLevel) -> int:
        return getattr(logging, level.value)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _log(self, level: int, message: str, kwargs: dict, exc_info: bool = False) -> None:
        self._logger.log(level, message, extra=mask_sensitive_data(kwargs), exc_info=exc_info)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """
        Example:
            >>> logger.info("Credential installed", identifier="my-api")
        """
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log with traceback. Call from an exception handler."""
        self._log(logging.ERROR, message, kwargs, exc_info=True)

    def close(self) -> None:
        """
        Flush and close handlers installed from the config and restore
        the previous level and propagation of the logger.

        Idempotent. Does nothing for a logger created without a config.
        """
        if self._closed or self.config is None:
            self._closed = True
            return

        for handler in self._logger.handlers[:]:
            if isinstance(handler, logging.NullHandler):
                continue
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)

        level, propagate = self._saved_state
        self._logger.setLevel(level)
        self._logger.propagate = propagate
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
