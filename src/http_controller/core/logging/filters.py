"""
Log filters for request context and static fields.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Any, Iterator, Optional


# Thread-local storage for the request being processed
_request_context = threading.local()


def set_request_context(task_id: Optional[int] = None, tag: Optional[int] = None) -> None:
    """
    Set request context for current thread.

    Example:
        >>> set_request_context(task_id=42, tag=5)
        >>> logger.info("Delivering")  # Will include task_id=42 tag=5
    """
    _request_context.task_id = task_id
    _request_context.tag = tag


def get_request_context() -> Dict[str, Any]:
    """Context fields that are set for current thread."""
    context = {}
    for key in ('task_id', 'tag'):
        value = getattr(_request_context, key, None)
        if value is not None:
            context[key] = value
    return context


def clear_request_context() -> None:
    for key in ('task_id', 'tag'):
        if hasattr(_request_context, key):
            delattr(_request_context, key)


@contextmanager
def request_context(task_id: Optional[int] = None, tag: Optional[int] = None) -> Iterator[None]:
    """
    Example:
        >>> with request_context(task_id=7, tag=0):
        ...     dispatcher.dispatch(pending, 7, result)
    """
    previous = get_request_context()
    set_request_context(task_id, tag)
    try:
        yield
    finally:
        set_request_context(previous.get('task_id'), previous.get('tag'))


class RequestContextFilter(logging.Filter):
    """
    Adds ``task_id`` and ``tag`` of the current request to log records.

    Fields passed explicitly through ``extra`` win.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in get_request_context().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ExtraFieldsFilter(logging.Filter):
    """
    Filter that adds extra static fields to all log records.

    Example:
        >>> handler.addFilter(ExtraFieldsFilter({"service": "api", "environment": "production"}))
    """

    def __init__(self, extra_fields: Dict[str, Any]):
        super().__init__()
        self.extra_fields = extra_fields

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.extra_fields.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
