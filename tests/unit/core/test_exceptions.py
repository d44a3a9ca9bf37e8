"""
Tests for the exception hierarchy and transport error classification.
"""

import requests

from http_controller.core.exceptions import (
    AuthRefreshError,
    ConnectionError,
    ErrorKind,
    HTTPStatusError,
    ProxyError,
    RecoverableError,
    RequestCancelledError,
    SessionInvalidatedError,
    SSLError,
    TimeoutError,
    TransportError,
    classify_transport_exception,
)
from http_controller.core.recovery import ErrorRecoveryAttempter


class TestErrorKinds:
    """ErrorKind of each class."""

    def test_transport_kind(self):
        assert TransportError("boom").kind is ErrorKind.TRANSPORT
        assert RequestCancelledError().kind is ErrorKind.TRANSPORT
        assert SessionInvalidatedError("pool was invalidated").kind is ErrorKind.TRANSPORT

    def test_http_status_kind(self):
        error = HTTPStatusError(404, "https://api.example.com/x", "Not Found")

        assert error.kind is ErrorKind.HTTP_STATUS
        assert str(error) == "HTTP 404 Not Found for https://api.example.com/x"

    def test_auth_refresh_kind(self):
        error = AuthRefreshError(cause=ValueError("invalid_grant"))

        assert error.kind is ErrorKind.AUTH_REFRESH_FAILED
        assert "invalid_grant" in str(error)

    def test_transport_error_message_includes_url(self):
        error = TransportError("Connection error", "https://api.example.com/")

        assert error.url == "https://api.example.com/"
        assert "https://api.example.com/" in str(error)

    def test_recoverable_error_exposes_inner_error(self):
        inner = HTTPStatusError(503)
        error = ErrorRecoveryAttempter().recoverable_error(inner)

        assert isinstance(error, RecoverableError)
        assert error.error is inner
        assert error.kind is ErrorKind.HTTP_STATUS
        assert error.status_code == 503


class TestClassifyTransportException:
    """requests exceptions -> TransportError subclasses."""

    def test_timeout(self):
        assert isinstance(classify_transport_exception(requests.exceptions.ReadTimeout()), TimeoutError)
        assert isinstance(classify_transport_exception(requests.exceptions.ConnectTimeout()), TimeoutError)

    def test_ssl_before_connection(self):
        assert isinstance(classify_transport_exception(requests.exceptions.SSLError()), SSLError)

    def test_proxy_before_connection(self):
        assert isinstance(classify_transport_exception(requests.exceptions.ProxyError()), ProxyError)

    def test_connection(self):
        error = classify_transport_exception(requests.exceptions.ConnectionError("refused"), "https://a.b")

        assert isinstance(error, ConnectionError)
        assert error.url == "https://a.b"
        assert isinstance(error.cause, requests.exceptions.ConnectionError)

    def test_generic_request_exception(self):
        error = classify_transport_exception(requests.exceptions.ChunkedEncodingError("cut"))

        assert type(error) is TransportError

    def test_os_error(self):
        error = classify_transport_exception(FileNotFoundError("missing.bin"))

        assert type(error) is TransportError
        assert "missing.bin" in str(error)

    def test_transport_error_passes_through(self):
        original = RequestCancelledError("https://a.b")

        assert classify_transport_exception(original) is original
