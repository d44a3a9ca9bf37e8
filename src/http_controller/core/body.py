"""
Default body encoder.

Content-type specific encoding is pluggable: the controller accepts any
callable with the :data:`BodyEncoder` signature. This one covers raw bytes,
text, JSON and url-encoded forms.
"""

import json
from enum import Enum
from typing import Any, Callable, Optional, Tuple
from urllib.parse import urlencode

from .exceptions import ConfigurationError


class ContentType(str, Enum):
    JSON = "application/json"
    FORM_URLENCODED = "application/x-www-form-urlencoded"
    PLAIN_TEXT = "text/plain"
    OCTET_STREAM = "application/octet-stream"


BodyEncoder = Callable[[Any, Optional[str]], Tuple[Optional[bytes], Optional[str]]]


def encode_body(body: Any, content_type: Optional[str] = None) -> Tuple[Optional[bytes], Optional[str]]:
    """
    Encode ``body`` and return ``(payload, content_type)``.

    - ``None`` stays ``None``;
    - ``bytes`` pass through (octet-stream unless a type is given);
    - ``str`` is UTF-8 encoded (text/plain by default);
    - mappings and lists become JSON, or a url-encoded form when
      ``content_type`` says so.

    Raises:
        ConfigurationError: the body cannot be encoded as requested.
    """
    if isinstance(content_type, ContentType):
        content_type = content_type.value

    if body is None:
        return None, content_type

    if isinstance(body, (bytes, bytearray)):
        return bytes(body), content_type or ContentType.OCTET_STREAM.value

    if isinstance(body, str):
        return body.encode("utf-8"), content_type or f"{ContentType.PLAIN_TEXT.value}; charset=utf-8"

    if content_type and content_type.startswith(ContentType.FORM_URLENCODED.value):
        if not hasattr(body, "items"):
            raise ConfigurationError("Form bodies must be mappings")
        return urlencode(body, doseq=True).encode("utf-8"), content_type

    if content_type is None or "json" in content_type:
        try:
            payload = json.dumps(body, ensure_ascii=False, default=str).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Body is not JSON serializable: {e}") from e
        return payload, content_type or ContentType.JSON.value

    raise ConfigurationError(
        f"Don't know how to encode {type(body).__name__} as {content_type}"
    )
