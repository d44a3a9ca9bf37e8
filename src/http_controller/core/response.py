"""Response wrapper handed to completion callbacks."""

import json
from typing import Any, Mapping, Optional, TYPE_CHECKING

from requests.structures import CaseInsensitiveDict

from .exceptions import InvalidResponseError

if TYPE_CHECKING:
    from ..transport.base import RawResponse

_UNSET = object()


class Response:
    """
    Результат выполненного запроса.

    Создаётся один раз на каждый завершённый запрос. При ошибке транспорта
    ``status`` равен 0, а ``data`` пустое.

    Attributes:
        status: HTTP статус код
        headers: Заголовки ответа (без учёта регистра)
        data: Сырое тело ответа
        url: Итоговый URL (после редиректов)
        file_path: Путь к скачанному файлу (только для download)
        redirect_response: Промежуточный ответ-редирект, если он был

    Example:
        >>> response.status
        200
        >>> response.json()["id"]
        1
    """

    def __init__(
        self,
        status: int = 0,
        headers: Optional[Mapping[str, str]] = None,
        data: bytes = b"",
        url: Optional[str] = None,
        file_path: Optional[str] = None,
        redirect_response: Optional['Response'] = None,
    ):
        self.status = status
        self.headers = CaseInsensitiveDict(headers or {})
        self.data = data or b""
        self.url = url
        self.file_path = file_path
        self.redirect_response = redirect_response
        self._parsed = _UNSET

    @classmethod
    def from_raw(cls, raw: Optional['RawResponse'], file_path: Optional[str] = None) -> 'Response':
        if raw is None:
            return cls(file_path=file_path)
        return cls(
            status=raw.status_code,
            headers=raw.headers,
            data=raw.body,
            url=raw.url,
            file_path=file_path,
        )

    @property
    def status_code(self) -> int:
        """Alias in requests style."""
        return self.status

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get('Content-Type')

    @property
    def encoding(self) -> str:
        content_type = self.content_type or ''
        for part in content_type.split(';')[1:]:
            key, _, value = part.strip().partition('=')
            if key.lower() == 'charset' and value:
                return value.strip('"')
        return 'utf-8'

    @property
    def text(self) -> str:
        return self.data.decode(self.encoding, errors='replace')

    def json(self) -> Any:
        """
        Разобрать тело как JSON.

        Raises:
            InvalidResponseError: Тело не является валидным JSON
        """
        try:
            return json.loads(self.data.decode(self.encoding))
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidResponseError(f"Response body is not valid JSON: {e}") from e

    @property
    def parsed(self) -> Any:
        """JSON-представление тела или None, если тело не JSON."""
        if self._parsed is _UNSET:
            if not self.data:
                self._parsed = None
            else:
                try:
                    self._parsed = self.json()
                except InvalidResponseError:
                    self._parsed = None
        return self._parsed

    def __repr__(self) -> str:
        return f"<Response [{self.status}] {self.url}>"
