"""
Tests for the request descriptor and URL composition.
"""

import pytest

from http_controller.core.request import HTTPMethod, Request, build_url


class TestBuildUrl:
    """build_url joins base and path."""

    @pytest.mark.parametrize("base, path, expected", [
        ("https://api.example.com/", "users/1", "https://api.example.com/users/1"),
        ("https://api.example.com", "/users/1", "https://api.example.com/users/1"),
        ("https://api.example.com/v2/", "/users", "https://api.example.com/v2/users"),
        ("https://api.example.com/", "", "https://api.example.com"),
        (None, "https://other.example.com/x", "https://other.example.com/x"),
        ("https://api.example.com/", "http://other.example.com/x", "http://other.example.com/x"),
    ])
    def test_build_url(self, base, path, expected):
        assert build_url(base, path) == expected


class TestRequestUrl:
    """Request.url adds the query string."""

    def test_get_with_query(self):
        request = Request(HTTPMethod.GET, "https://api.example.com/", "users/1", {"verbose": "true"})

        assert request.url == "https://api.example.com/users/1?verbose=true"

    def test_none_params_are_skipped(self):
        request = Request(HTTPMethod.GET, "https://api.example.com/", "users", {"page": 2, "q": None})

        assert request.url == "https://api.example.com/users?page=2"

    def test_list_params_repeat(self):
        request = Request(HTTPMethod.GET, "https://api.example.com/", "users", {"id": [1, 2]})

        assert request.url == "https://api.example.com/users?id=1&id=2"

    def test_existing_query_is_extended(self):
        request = Request(HTTPMethod.GET, None, "https://api.example.com/users?a=1", {"b": "2"})

        assert request.url == "https://api.example.com/users?a=1&b=2"

    def test_method_string_is_normalized(self):
        request = Request("post", "https://api.example.com/", "users")

        assert request.method is HTTPMethod.POST


class TestRequestImmutability:
    """After dispatch only task_id may change."""

    def test_mutable_before_dispatch(self):
        request = Request(HTTPMethod.GET, "https://api.example.com/", "users")

        request.path = "teams"

        assert request.url == "https://api.example.com/teams"

    def test_frozen_after_dispatch(self):
        request = Request(HTTPMethod.GET, "https://api.example.com/", "users")
        request.mark_dispatched()

        with pytest.raises(RuntimeError, match="already dispatched"):
            request.path = "teams"

        assert request.is_dispatched

    def test_task_id_assignable_after_dispatch(self):
        request = Request(HTTPMethod.GET, "https://api.example.com/", "users")
        request.mark_dispatched()

        request.task_id = 42

        assert request.task_id == 42

    def test_header_lookup_is_case_insensitive(self):
        request = Request(HTTPMethod.GET, headers={"Content-Type": "application/json"})

        assert request.header("content-type") == "application/json"
        assert request.header("Accept") is None
