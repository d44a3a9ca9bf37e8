"""
Process-wide User-Agent override.

When set, every controller in the process sends this value as
``User-Agent``, overriding the engine default but not a header the caller
set explicitly on a request.
"""

import threading
from typing import Optional

_user_agent: Optional[str] = None
_lock = threading.Lock()


def set_user_agent(user_agent: Optional[str]) -> None:
    """
    Examples:
        >>> set_user_agent("MyApp/2.1 (build 44)")
    """
    global _user_agent
    with _lock:
        _user_agent = user_agent or None


def get_user_agent() -> Optional[str]:
    with _lock:
        return _user_agent


def clear_user_agent() -> None:
    set_user_agent(None)
