# src/http_controller/core/task_registry.py
"""
Completion/progress handlers for transfers keyed by transport task id.

Downloads and uploads report through delegate-style events on the session
delegate queues instead of a single completion callback; this registry
routes those events back to the handlers registered at dispatch time.
"""
import logging
import threading
from typing import Any, Callable, Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)

CompletionHandler = Callable[[Any], None]
ProgressHandler = Callable[[int, int], None]


class TaskRegistration(NamedTuple):
    completion: CompletionHandler
    progress: Optional[ProgressHandler]


class TaskRegistry:
    """
    Thread-safe map task id -> (completion, progress).

    Invariants:
        - a registration is removed exactly once, by the first terminal event
        - late progress or a repeated terminal event is a silent no-op
        - handlers are invoked outside the lock

    Example:
        >>> registry = TaskRegistry()
        >>> registry.register(7, on_complete, on_progress)
        True
        >>> registry.deliver_progress(7, 512, 1024)
        >>> registry.deliver_terminal(7, result)
        True
        >>> registry.deliver_terminal(7, result)  # already delivered
        False
    """

    def __init__(self):
        self._entries: Dict[int, TaskRegistration] = {}
        self._lock = threading.Lock()

    def register(
        self,
        task_id: int,
        completion: CompletionHandler,
        progress: Optional[ProgressHandler] = None,
    ) -> bool:
        """
        Register handlers for ``task_id``.

        Task ids are unique per in-flight transfer. A duplicate is logged
        and the new handlers replace the old ones.

        Returns:
            False if an entry for ``task_id`` already existed
        """
        with self._lock:
            duplicate = task_id in self._entries
            self._entries[task_id] = TaskRegistration(completion, progress)

        if duplicate:
            logger.warning(
                "Completion handler already registered for task %s, replacing it",
                task_id,
            )
        return not duplicate

    def deliver_progress(self, task_id: int, bytes_done: int, bytes_total: int) -> bool:
        with self._lock:
            entry = self._entries.get(task_id)

        if entry is None or entry.progress is None:
            return False
        entry.progress(bytes_done, bytes_total)
        return True

    def deliver_terminal(self, task_id: int, result: Any) -> bool:
        """Pop and invoke the completion for ``task_id``."""
        with self._lock:
            entry = self._entries.pop(task_id, None)

        if entry is None:
            logger.debug("No completion handler for task %s (already delivered?)", task_id)
            return False
        entry.completion(result)
        return True

    def discard(self, task_id: int) -> bool:
        with self._lock:
            return self._entries.pop(task_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, task_id: int) -> bool:
        with self._lock:
            return task_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
