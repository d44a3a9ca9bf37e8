"""Intermediate redirect responses keyed by task id."""

import threading
from typing import Dict, Optional

from .response import Response


class RedirectTracker:
    """
    Remembers the pre-redirect response of a task until its final response
    is built. Redirects themselves are always followed.
    """

    def __init__(self):
        self._responses: Dict[int, Response] = {}
        self._lock = threading.Lock()

    def record(self, task_id: int, response: Response) -> None:
        # Redirect chains keep the most recent hop
        with self._lock:
            self._responses[task_id] = response

    def take_and_clear(self, task_id: Optional[int]) -> Optional[Response]:
        if task_id is None:
            return None
        with self._lock:
            return self._responses.pop(task_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._responses)
