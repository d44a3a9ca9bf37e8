"""
Иерархия исключений RequestController.

Классификация по ErrorKind:
- TRANSPORT - непрозрачная ошибка транспорта (сеть, TLS, DNS, отмена)
- HTTP_STATUS - синтезирована из 4xx/5xx ответа без ошибки транспорта
- AUTH_REFRESH_FAILED - OAuth2 менеджер не смог обновить credential

Исключения не выбрасываются из планирования запросов: они доставляются
в completion callback, обёрнутые в RecoverableError.
"""

from enum import Enum
from typing import Optional, TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from .recovery import ErrorRecoveryAttempter, ErrorRecoveryOption


class ErrorKind(str, Enum):
    """Класс ошибки, доставленной в callback."""
    TRANSPORT = "transport"
    HTTP_STATUS = "http-status"
    AUTH_REFRESH_FAILED = "auth-refresh-failed"

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class RequestControllerException(Exception):
    """Базовое исключение http_controller."""

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TRANSPORT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TransportError(RequestControllerException):
    """
    Ошибка транспортного движка.

    Args:
        message: Сообщение об ошибке
        url: URL запроса
        cause: Исходное исключение движка (если есть)
    """
    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, url: Optional[str] = None, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        full_message = message
        if url:
            full_message += f" (url: {url})"
        super().__init__(full_message)


class TimeoutError(TransportError):
    """Таймаут подключения или чтения."""
    pass


class ConnectionError(TransportError):
    """
    Ошибка подключения.

    Примеры:
    - Connection refused
    - Connection reset
    - DNS resolution failed
    """
    pass


class ProxyError(TransportError):
    """Ошибка прокси."""
    pass


class SSLError(TransportError):
    """Ошибка TLS рукопожатия или проверки сертификата."""
    pass


class RequestCancelledError(TransportError):
    """Задача отменена (cancel_all, cancel_by_tag, токен отмены)."""

    def __init__(self, url: Optional[str] = None):
        super().__init__("Request cancelled", url)


class SessionInvalidatedError(TransportError):
    """Сессия уничтожена через invalidate_and_cancel(); новые задачи не создаются."""
    pass

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# HTTP STATUS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class HTTPStatusError(RequestControllerException):
    """
    4xx/5xx ответ без ошибки транспорта.

    Args:
        status_code: HTTP статус
        url: URL
        reason: Стандартная reason phrase для статуса
    """
    kind = ErrorKind.HTTP_STATUS

    def __init__(self, status_code: int, url: Optional[str] = None, reason: str = ""):
        self.status_code = status_code
        self.url = url
        self.reason = reason

        msg = f"HTTP {status_code}"
        if reason:
            msg += f" {reason}"
        if url:
            msg += f" for {url}"
        super().__init__(msg)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# AUTH
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class AuthRefreshError(RequestControllerException):
    """
    OAuth2 менеджер вернул ошибку при обновлении credential.

    Args:
        message: Сообщение
        cause: Ошибка, которую вернул менеджер
    """
    kind = ErrorKind.AUTH_REFRESH_FAILED

    def __init__(self, message: str = "Credential refresh failed", cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ПРОЧИЕ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class InvalidResponseError(RequestControllerException):
    """Тело ответа не удалось разобрать (битый JSON, кодировка)."""
    pass


class ConfigurationError(RequestControllerException):
    """Ошибка конфигурации."""
    pass

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RECOVERABLE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class RecoverableError(RequestControllerException):
    """
    Ошибка вместе с именованными вариантами восстановления.

    Именно она (а не исходная ошибка) приходит в completion callback.

    Args:
        error: Исходная ошибка
        attempter: Набор вариантов восстановления

    Example:
        >>> def on_done(response, error):
        ...     if isinstance(error, RecoverableError) and error.status_code == 503:
        ...         error.retry()
    """

    def __init__(self, error: BaseException, attempter: 'ErrorRecoveryAttempter'):
        self.error = error
        self.attempter = attempter
        super().__init__(str(error))

    @property
    def kind(self) -> Optional[ErrorKind]:  # type: ignore[override]
        return getattr(self.error, 'kind', None)

    @property
    def status_code(self) -> Optional[int]:
        return getattr(self.error, 'status_code', None)

    @property
    def options(self):
        return self.attempter.options

    def option(self, title: str) -> Optional['ErrorRecoveryOption']:
        return self.attempter.option(title)

    def attempt_recovery(self, option) -> bool:
        """Вызвать вариант восстановления по объекту, индексу или названию."""
        return self.attempter.attempt_recovery(option)

    def retry(self) -> bool:
        """Повторить запрос с тем же дескриптором и тем же callback."""
        return self.attempter.attempt_recovery("Retry")

    def cancel(self) -> bool:
        return self.attempter.attempt_recovery("Cancel")

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# УТИЛИТЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def classify_transport_exception(exc: BaseException, url: Optional[str] = None) -> TransportError:
    """
    Конвертировать исключения requests/OS в TransportError.

    Examples:
        >>> err = classify_transport_exception(requests.exceptions.ConnectTimeout(), "https://a.b")
        >>> assert isinstance(err, TimeoutError)
        >>> assert err.kind is ErrorKind.TRANSPORT
    """
    if isinstance(exc, TransportError):
        return exc

    if isinstance(exc, requests.exceptions.Timeout):
        return TimeoutError("Request timeout", url, cause=exc)

    # ProxyError и SSLError - подклассы ConnectionError, проверяем раньше
    if isinstance(exc, requests.exceptions.ProxyError):
        return ProxyError("Proxy error", url, cause=exc)

    if isinstance(exc, requests.exceptions.SSLError):
        return SSLError("SSL error", url, cause=exc)

    if isinstance(exc, requests.exceptions.ConnectionError):
        return ConnectionError("Connection error", url, cause=exc)

    if isinstance(exc, requests.exceptions.TooManyRedirects):
        return TransportError("Too many redirects", url, cause=exc)

    # RequestException наследует IOError, поэтому до проверки OSError
    if isinstance(exc, requests.exceptions.RequestException):
        return TransportError(f"Request failed: {exc}", url, cause=exc)

    if isinstance(exc, OSError):
        return TransportError(f"I/O error: {exc}", url, cause=exc)

    return TransportError(f"Request failed: {exc}", url, cause=exc)
