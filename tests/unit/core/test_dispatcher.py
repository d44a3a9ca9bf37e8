"""
Tests for ResponseDispatcher: classification, events, recovery options.
"""

import logging

import pytest
import requests

from http_controller.core.callback_context import ImmediateCallbackContext
from http_controller.core.cancellation import CancellationToken
from http_controller.core.dispatcher import ResponseDispatcher, reason_phrase, status_is_error
from http_controller.core.events import EventEmitter, RequestEvent
from http_controller.core.exceptions import (
    AuthRefreshError,
    ConnectionError,
    ErrorKind,
    HTTPStatusError,
    RecoverableError,
)
from http_controller.core.oauth2 import PendingRequest
from http_controller.core.redirect_tracker import RedirectTracker
from http_controller.core.request import HTTPMethod, Request
from http_controller.core.response import Response
from http_controller.transport.base import RawResponse, TransportResult

from conftest import Recorder


class Harness:
    def __init__(self):
        self.tracker = RedirectTracker()
        self.events = EventEmitter()
        self.retried = []
        self.dispatcher = ResponseDispatcher(
            self.tracker,
            self.events,
            ImmediateCallbackContext(),
            retry=self.retried.append,
        )


@pytest.fixture
def harness():
    return Harness()


def _pending(completion, **kwargs):
    request = Request(HTTPMethod.GET, "https://api.example.com/", "users/1",
                      headers={"Authorization": "Bearer secret-token"})
    return PendingRequest(request, completion, **kwargs)


def _raw(status, body=b"", headers=None):
    return RawResponse(status, headers or {}, body, "https://api.example.com/users/1")


@pytest.mark.parametrize("status,expected", [
    (200, False),
    (204, False),
    (302, False),
    (399, False),
    (400, True),
    (404, True),
    (500, True),
    (599, True),
    (600, False),
])
def test_status_is_error(status, expected):
    assert status_is_error(status) is expected


def test_reason_phrase():
    assert reason_phrase(404) == "Not Found"
    assert reason_phrase(799) == ""


class TestDispatch:

    def test_success(self, harness):
        recorder = Recorder()

        response, error = harness.dispatcher.dispatch(
            _pending(recorder), 1, TransportResult(response=_raw(200, b'{"id": 1}'))
        )

        assert error is None
        assert recorder.error is None
        assert recorder.response is response
        assert response.json() == {"id": 1}

    def test_404_becomes_recoverable_http_status_error(self, harness):
        recorder = Recorder()

        harness.dispatcher.dispatch(_pending(recorder), 1, TransportResult(response=_raw(404)))

        error = recorder.error
        assert isinstance(error, RecoverableError)
        assert error.kind is ErrorKind.HTTP_STATUS
        assert error.status_code == 404
        assert isinstance(error.error, HTTPStatusError)
        assert "Not Found" in str(error)
        assert [o.title for o in error.options] == ["Retry", "Cancel"]
        assert recorder.response.status == 404

    def test_transport_error_wins_over_status(self, harness):
        recorder = Recorder()
        engine_error = requests.exceptions.ConnectionError("refused")

        harness.dispatcher.dispatch(_pending(recorder), 1, TransportResult(error=engine_error))

        assert isinstance(recorder.error.error, ConnectionError)
        assert recorder.error.kind is ErrorKind.TRANSPORT
        assert recorder.response.status == 0

    def test_redirect_response_attached_and_cleared(self, harness):
        recorder = Recorder()
        redirect = Response(301, {"Location": "https://api.example.com/users/2"})
        harness.tracker.record(5, redirect)

        harness.dispatcher.dispatch(_pending(recorder), 5, TransportResult(response=_raw(200)))

        assert recorder.response.redirect_response is redirect
        assert len(harness.tracker) == 0

    def test_events(self, harness):
        received, server_errors = [], []
        harness.events.subscribe(RequestEvent.RESPONSE_RECEIVED, received.append)
        harness.events.subscribe(RequestEvent.SERVER_ERROR, server_errors.append)

        harness.dispatcher.dispatch(_pending(Recorder()), 1, TransportResult(response=_raw(200)))
        harness.dispatcher.dispatch(_pending(Recorder()), 2, TransportResult(response=_raw(503)))

        assert len(received) == 2
        assert len(server_errors) == 1
        assert server_errors[0].response.status == 503
        assert isinstance(server_errors[0].error, HTTPStatusError)

    def test_retry_reissues_same_request(self, harness):
        recorder = Recorder()
        pending = _pending(recorder)

        harness.dispatcher.dispatch(pending, 1, TransportResult(response=_raw(500)))
        assert recorder.error.retry()

        assert len(harness.retried) == 1
        assert harness.retried[0].request is pending.request
        assert harness.retried[0].completion is recorder

    def test_cancel_option_does_nothing(self, harness):
        recorder = Recorder()

        harness.dispatcher.dispatch(_pending(recorder), 1, TransportResult(response=_raw(500)))

        assert recorder.error.cancel()
        assert harness.retried == []

    def test_cancelled_token_suppresses_completion(self, harness):
        recorder = Recorder()
        token = CancellationToken()
        token.cancel()

        harness.dispatcher.dispatch(
            _pending(recorder, cancellation_token=token), 1, TransportResult(response=_raw(200))
        )

        assert recorder.calls == []

    def test_no_completion(self, harness):
        response, error = harness.dispatcher.dispatch(
            _pending(None), 1, TransportResult(response=_raw(404))
        )

        assert response.status == 404
        assert isinstance(error, RecoverableError)


class TestFail:

    def test_fail_delivers_without_response_or_events(self, harness):
        recorder = Recorder()
        received = []
        harness.events.subscribe(RequestEvent.RESPONSE_RECEIVED, received.append)

        harness.dispatcher.fail(_pending(recorder), AuthRefreshError(cause=ValueError("denied")))

        assert recorder.response is None
        assert recorder.error.kind is ErrorKind.AUTH_REFRESH_FAILED
        assert received == []


class TestLogging:

    def test_failure_is_logged_with_masked_headers(self, harness, caplog):
        with caplog.at_level(logging.WARNING, logger="http_controller"):
            harness.dispatcher.dispatch(_pending(Recorder()), 1, TransportResult(response=_raw(404)))

        record = [r for r in caplog.records if r.name == "http_controller.core.dispatcher"][-1]
        assert record.status_code == 404
        assert record.request_headers["Authorization"] == "***REDACTED***"
        assert "secret-token" not in caplog.text

    def test_success_logged_at_debug(self, harness, caplog):
        with caplog.at_level(logging.DEBUG, logger="http_controller"):
            harness.dispatcher.dispatch(_pending(Recorder()), 1, TransportResult(response=_raw(200)))

        records = [r for r in caplog.records if r.name == "http_controller.core.dispatcher"]
        assert records and records[-1].levelno == logging.DEBUG
