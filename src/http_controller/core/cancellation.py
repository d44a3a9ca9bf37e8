"""Explicit cancellation passed at submission time."""

import logging
import threading
from typing import Callable, List

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Cancels the work it was handed to.

    Once cancelled, dispatched tasks are cancelled, requests still waiting
    on a credential refresh are dropped, and completions are not delivered.
    Callbacks added after cancellation run immediately.

    Example:
        >>> token = CancellationToken()
        >>> controller.get("users", completion=on_done, cancellation_token=token)
        >>> token.cancel()
    """

    def __init__(self):
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(callback)
                return
        callback()

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks, self._callbacks = self._callbacks, []

        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancellation callback failed")
