"""
Execution contexts on which completions and progress are delivered.

Transport events arrive on session delegate threads. The controller never
calls user code from there: it redispatches onto one callback context so
consumers need no synchronization of their own.
"""

import atexit
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class CallbackContext(ABC):
    """Where callbacks run."""

    @abstractmethod
    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        """Schedule ``fn(*args)``. Must not block on ``fn``."""

    def close(self) -> None:
        pass


def _run_safely(fn: Callable[..., Any], *args: Any) -> None:
    try:
        fn(*args)
    except Exception:
        # User callback errors must not kill the delivery thread
        logger.exception("Callback %r raised", fn)


class SerialCallbackContext(CallbackContext):
    """
    Runs callbacks one at a time, in submission order, on a single
    dedicated thread.

    Args:
        name: Thread name
    """

    def __init__(self, name: str = "http_controller.main"):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._closed = False
        self._lock = threading.Lock()

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        with self._lock:
            if self._closed:
                logger.warning("Callback context closed, dropping %r", fn)
                return
            self._executor.submit(_run_safely, fn, *args)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until everything submitted so far has run."""
        done = threading.Event()
        self.submit(done.set)
        return done.wait(timeout)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=False)


class ImmediateCallbackContext(CallbackContext):
    """Runs callbacks inline on the calling thread. Useful in tests."""

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        _run_safely(fn, *args)


class ExecutorCallbackContext(CallbackContext):
    """Adapts any ``concurrent.futures.Executor``. The executor is not owned."""

    def __init__(self, executor: Executor):
        self._executor = executor

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        self._executor.submit(_run_safely, fn, *args)


_main_context: Optional[SerialCallbackContext] = None
_main_lock = threading.Lock()


def main_callback_context() -> SerialCallbackContext:
    """Process-wide default context, created on first use."""
    global _main_context

    with _main_lock:
        if _main_context is None:
            _main_context = SerialCallbackContext()
            atexit.register(_main_context.close)
        return _main_context
