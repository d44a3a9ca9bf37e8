# src/http_controller/utils/sanitizer.py
"""
Маскирование секретов перед записью в лог.

Контроллер логирует заголовки и тела каждого запроса; Authorization,
токены OAuth2 и пароли не должны туда попадать.
"""

import json
import re
import threading
from typing import Any, Dict, Mapping, Optional, Set

REDACTED = "***REDACTED***"

# Ключи сравниваются без учёта регистра и по вхождению ("x-api-key" -> "api-key")
_SENSITIVE_KEYS: Set[str] = {
    # Заголовки
    'authorization', 'proxy-authorization', 'cookie', 'set-cookie',
    'x-api-key', 'api-key', 'x-auth-token',
    # OAuth2 / credential
    'password', 'passwd', 'token', 'access_token', 'refresh_token',
    'authorization_token', 'id_token', 'client_secret', 'secret',
    'api_key', 'apikey',
    # Сессии
    'sessionid', 'csrf',
}
_keys_lock = threading.Lock()

_STRING_PATTERNS = [
    # Bearer/Basic значения где угодно в строке
    (re.compile(r'\b(Bearer|Basic)\s+[A-Za-z0-9\-._~+/]+=*', re.IGNORECASE), rf'\1 {REDACTED}'),
    # key=value в query и form телах
    (
        re.compile(
            r'((?:access_token|refresh_token|token|password|client_secret|api[_-]?key)=)([^&\s]+)',
            re.IGNORECASE,
        ),
        rf'\1{REDACTED}',
    ),
]


def is_sensitive_key(key: Any) -> bool:
    lowered = str(key).lower()
    with _keys_lock:
        keys = tuple(_SENSITIVE_KEYS)
    return any(sensitive in lowered for sensitive in keys)


def mask_sensitive_data(data: Any, mask: str = REDACTED) -> Any:
    """
    Рекурсивно маскирует секреты в dict/list/str.

    Examples:
        >>> mask_sensitive_data({"user": "alice", "password": "s3cret"})
        {'user': 'alice', 'password': '***REDACTED***'}
    """
    if data is None or isinstance(data, (bool, int, float)):
        return data

    if isinstance(data, str):
        return mask_string(data, mask)

    if isinstance(data, Mapping):
        return {
            key: mask if is_sensitive_key(key) else mask_sensitive_data(value, mask)
            for key, value in data.items()
        }

    if isinstance(data, (list, tuple)):
        return type(data)(mask_sensitive_data(item, mask) for item in data)

    return data


def mask_string(text: str, mask: str = REDACTED) -> str:
    for pattern, replacement in _STRING_PATTERNS:
        text = pattern.sub(replacement.replace(REDACTED, mask), text)
    return text


def mask_headers(headers: Optional[Mapping[str, str]], mask: str = REDACTED) -> Dict[str, str]:
    """
    Examples:
        >>> mask_headers({"Authorization": "Bearer abc", "Accept": "application/json"})
        {'Authorization': '***REDACTED***', 'Accept': 'application/json'}
    """
    if not headers:
        return {}
    return {key: mask if is_sensitive_key(key) else value for key, value in headers.items()}


def mask_url(url: str, mask: str = REDACTED) -> str:
    """Пароль из userinfo и секретные query параметры."""
    url = re.sub(r'://([^:/@]+):([^@]+)@', rf'://\1:{mask}@', url)
    return mask_string(url, mask)


def mask_body(body: Optional[str], mask: str = REDACTED) -> Optional[str]:
    """
    Тело запроса/ответа: JSON маскируется по ключам, остальное по шаблонам.

    Examples:
        >>> mask_body('{"refresh_token": "r1", "grant_type": "refresh_token"}')
        '{"refresh_token": "***REDACTED***", "grant_type": "refresh_token"}'
    """
    if not body:
        return body
    try:
        parsed = json.loads(body)
    except ValueError:
        return mask_string(body, mask)
    if isinstance(parsed, (dict, list)):
        return json.dumps(mask_sensitive_data(parsed, mask), ensure_ascii=False)
    return mask_string(body, mask)


def add_sensitive_keys(*keys: str) -> None:
    """
    Examples:
        >>> add_sensitive_keys('x-tenant-secret')
    """
    with _keys_lock:
        _SENSITIVE_KEYS.update(key.lower() for key in keys)


def remove_sensitive_keys(*keys: str) -> None:
    with _keys_lock:
        for key in keys:
            _SENSITIVE_KEYS.discard(key.lower())


def get_sensitive_keys() -> Set[str]:
    with _keys_lock:
        return set(_SENSITIVE_KEYS)
