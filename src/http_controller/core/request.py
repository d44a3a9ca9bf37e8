# src/http_controller/core/request.py
"""Request descriptor: the immutable description of one outgoing request."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"


# Поля, которые можно менять после диспетчеризации
_MUTABLE_AFTER_DISPATCH = frozenset({'task_id', '_dispatched'})


@dataclass(eq=False)
class Request:
    """
    Дескриптор запроса.

    После ``mark_dispatched()`` дескриптор неизменяем: единственное
    исключение - ``task_id``, который транспорт назначает при каждой
    диспетчеризации (включая retry).

    Attributes:
        method: HTTP метод
        base_url: Базовый URL (None - ``path`` должен быть абсолютным)
        path: Путь относительно base_url или абсолютный URL
        params: Query параметры
        headers: Заголовки (уже объединённые с shared headers)
        body: Тело запроса
        content_type: Content-Type тела
        tag: Произвольная метка для cancel_requests_with_tag
        use_ephemeral_session: Выполнять в ephemeral сессии
        task_id: Идентификатор транспортной задачи

    Example:
        >>> req = Request(HTTPMethod.GET, "https://api.example.com/", "users/1", {"verbose": "true"})
        >>> req.url
        'https://api.example.com/users/1?verbose=true'
    """

    method: HTTPMethod
    base_url: Optional[str] = None
    path: str = ""
    params: Mapping[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    content_type: Optional[str] = None
    tag: int = 0
    use_ephemeral_session: bool = False
    task_id: Optional[int] = None
    # Authorization взят из shared headers и обновляется до диспетчеризации
    shared_authorization: bool = field(default=False, repr=False)
    _dispatched: bool = field(default=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.method, HTTPMethod):
            object.__setattr__(self, 'method', HTTPMethod(str(self.method).upper()))

    def __setattr__(self, name, value):
        """Запретить изменение после диспетчеризации (кроме task_id)."""
        if getattr(self, '_dispatched', False) and name not in _MUTABLE_AFTER_DISPATCH:
            raise RuntimeError(
                f"Cannot modify '{name}' - request was already dispatched."
            )
        object.__setattr__(self, name, value)

    def mark_dispatched(self) -> None:
        object.__setattr__(self, '_dispatched', True)

    @property
    def is_dispatched(self) -> bool:
        return self._dispatched

    @property
    def url(self) -> str:
        """Полный URL: base_url + path + query."""
        url = build_url(self.base_url, self.path)
        if self.params:
            query = urlencode(
                {k: v for k, v in self.params.items() if v is not None},
                doseq=True,
            )
            if query:
                url += ('&' if '?' in url else '?') + query
        return url

    def header(self, name: str) -> Optional[str]:
        """Значение заголовка без учёта регистра."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def __repr__(self) -> str:
        return (
            f"Request({self.method.value} {self.url}, tag={self.tag}, "
            f"task_id={self.task_id})"
        )


def build_url(base_url: Optional[str], path: str) -> str:
    """
    Склеить base_url и path.

    Абсолютный ``path`` (http:// или https://) используется как есть.

    Examples:
        >>> build_url("https://api.example.com/", "/users/1")
        'https://api.example.com/users/1'
    """
    if path.startswith(("http://", "https://")):
        return path

    if not base_url:
        return path

    base = base_url.rstrip("/")
    endpoint = path.lstrip("/")
    if not endpoint:
        return base
    return f"{base}/{endpoint}"
