"""
Observer registration for request lifecycle events.

Listeners subscribe on a controller's :class:`EventEmitter`; there is no
process-global bus.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .request import Request
    from .response import Response

logger = logging.getLogger(__name__)


class RequestEvent(str, Enum):
    RESPONSE_RECEIVED = "response_received"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class RequestEventData:
    event: RequestEvent
    request: 'Request'
    response: 'Response'
    error: Optional[BaseException] = None


Listener = Callable[[RequestEventData], None]


class EventEmitter:
    """
    Thread-safe listener registry.

    Listeners run synchronously on the emitting thread, in subscription
    order. A failing listener is logged and does not stop the others.

    Example:
        >>> unsubscribe = controller.events.subscribe(
        ...     RequestEvent.SERVER_ERROR, lambda e: print(e.response.status)
        ... )
        >>> unsubscribe()
    """

    def __init__(self):
        self._listeners: Dict[RequestEvent, List[Listener]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event: RequestEvent, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.setdefault(event, []).append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(event, listener)

        return unsubscribe

    def unsubscribe(self, event: RequestEvent, listener: Listener) -> bool:
        with self._lock:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)
                return True
        return False

    def emit(self, data: RequestEventData) -> None:
        with self._lock:
            listeners = list(self._listeners.get(data.event, ()))

        for listener in listeners:
            try:
                listener(data)
            except Exception:
                logger.exception("Listener for %s failed", data.event.value)

    def listener_count(self, event: RequestEvent) -> int:
        with self._lock:
            return len(self._listeners.get(event, ()))
