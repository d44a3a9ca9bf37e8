"""
Tests for body encoding and the Response wrapper.
"""

import json

import pytest

from http_controller.core.body import ContentType, encode_body
from http_controller.core.exceptions import ConfigurationError, InvalidResponseError
from http_controller.core.response import Response
from http_controller.transport.base import RawResponse


class TestEncodeBody:
    """Default body encoder."""

    def test_none(self):
        assert encode_body(None) == (None, None)

    def test_dict_becomes_json(self):
        payload, content_type = encode_body({"name": "Alice"})

        assert json.loads(payload) == {"name": "Alice"}
        assert content_type == "application/json"

    def test_form(self):
        payload, content_type = encode_body({"a": "1", "b": "x y"}, ContentType.FORM_URLENCODED)

        assert payload == b"a=1&b=x+y"
        assert content_type == "application/x-www-form-urlencoded"

    def test_bytes_pass_through(self):
        assert encode_body(b"\x00\x01") == (b"\x00\x01", "application/octet-stream")

    def test_text(self):
        payload, content_type = encode_body("héllo")

        assert payload == "héllo".encode("utf-8")
        assert content_type.startswith("text/plain")

    def test_form_requires_mapping(self):
        with pytest.raises(ConfigurationError):
            encode_body([1, 2], ContentType.FORM_URLENCODED.value)

    def test_unknown_content_type(self):
        with pytest.raises(ConfigurationError):
            encode_body({"a": 1}, "application/xml")


class TestResponse:
    """Response wrapper."""

    def test_defaults_for_transport_failure(self):
        response = Response.from_raw(None)

        assert response.status == 0
        assert response.data == b""
        assert response.parsed is None

    def test_from_raw(self):
        raw = RawResponse(200, {"Content-Type": "application/json"}, b'{"id": 1}', "https://api.example.com/users/1")

        response = Response.from_raw(raw)

        assert response.status == 200
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {"id": 1}
        assert response.parsed == {"id": 1}
        assert response.url == "https://api.example.com/users/1"

    def test_charset_from_content_type(self):
        response = Response(200, {"Content-Type": "text/plain; charset=latin-1"}, "café".encode("latin-1"))

        assert response.encoding == "latin-1"
        assert response.text == "café"

    def test_invalid_json_raises(self):
        response = Response(200, {}, b"<html>")

        with pytest.raises(InvalidResponseError):
            response.json()
        assert response.parsed is None

    def test_file_path_for_downloads(self):
        response = Response.from_raw(RawResponse(200), file_path="/tmp/download-1")

        assert response.file_path == "/tmp/download-1"
