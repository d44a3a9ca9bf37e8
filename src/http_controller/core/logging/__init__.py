"""
Logging system for http_controller.

Example:
    >>> from http_controller.core.logging import LoggingConfig
    >>> config = LoggingConfig.create(
    ...     level="DEBUG",
    ...     format="json",
    ...     enable_file=True,
    ...     file_path="/var/log/api.log"
    ... )
    >>> controller = RequestController(config=ControllerConfig(logging=config))
"""

from .config import LoggingConfig, LogLevel, LogFormat
from .logger import ControllerLogger, ROOT_LOGGER_NAME
from .formatters import JSONFormatter, TextFormatter, get_formatter
from .filters import (
    RequestContextFilter,
    ExtraFieldsFilter,
    request_context,
    set_request_context,
    get_request_context,
    clear_request_context,
)
from .handlers import create_console_handler, create_file_handler

__all__ = [
    # Config
    "LoggingConfig",
    "LogLevel",
    "LogFormat",
    # Logger
    "ControllerLogger",
    "ROOT_LOGGER_NAME",
    # Formatters
    "JSONFormatter",
    "TextFormatter",
    "get_formatter",
    # Filters
    "RequestContextFilter",
    "ExtraFieldsFilter",
    "request_context",
    "set_request_context",
    "get_request_context",
    "clear_request_context",
    # Handlers
    "create_console_handler",
    "create_file_handler",
]
