"""
Pytest configuration and fixtures for http-controller tests.
"""

from typing import Callable, List, Optional

import pytest
import responses as responses_lib

from http_controller.core.callback_context import ImmediateCallbackContext
from http_controller.core.config import ControllerConfig
from http_controller.core.controller import RequestController
from http_controller.core.exceptions import SessionInvalidatedError
from http_controller.core.logging.config import LoggingConfig
from http_controller.transport.base import (
    RawResponse,
    SessionKind,
    TransportDelegate,
    TransportResult,
    TransportSession,
    TransportTask,
)
from http_controller.transport.session_pool import ActivityCounter
from http_controller.utils.user_agent import clear_user_agent


class FakeTransportSession(TransportSession):
    """
    Deterministic session: tasks only finish when the test says so.

    ``perform`` answers through ``responder(task)`` (200 with empty body
    by default).
    """

    def __init__(
        self,
        kind: SessionKind,
        delegate: TransportDelegate,
        responder: Optional[Callable[[TransportTask], TransportResult]] = None,
    ):
        super().__init__(kind, delegate)
        self.responder = responder
        self.started: List[TransportTask] = []
        self.performed: List[TransportTask] = []
        self.invalidated = False

    def resume(self, task: TransportTask) -> None:
        if self.invalidated:
            raise SessionInvalidatedError("fake session invalidated")
        self.started.append(task)

    def perform(self, task: TransportTask) -> TransportResult:
        if self.invalidated:
            raise SessionInvalidatedError("fake session invalidated")
        self.performed.append(task)
        if self.responder is not None:
            return self.responder(task)
        return TransportResult(response=RawResponse(200, {}, b"", task.request.url))

    def invalidate_and_cancel(self) -> None:
        self.invalidated = True
        for task in self.started:
            task.cancel()

    # Test helpers - deliver events like the delegate queue would

    def complete(self, task, status=200, body=b"", headers=None, error=None, file_path=None):
        raw = None if error is not None else RawResponse(status, headers or {}, body, task.request.url)
        self.delegate.on_complete(task, TransportResult(response=raw, error=error, file_path=file_path))

    def redirect(self, task, status=301, location="https://api.example.com/moved"):
        self.delegate.on_redirect(task, RawResponse(status, {"Location": location}, b"", task.request.url))

    def progress(self, task, done, total):
        self.delegate.on_progress(task, done, total)


class FakeSessionFactory:
    """Creates FakeTransportSession and remembers every session it built."""

    def __init__(self, responder=None):
        self.responder = responder
        self.created: List[FakeTransportSession] = []

    def __call__(self, kind: SessionKind, delegate: TransportDelegate) -> FakeTransportSession:
        session = FakeTransportSession(kind, delegate, self.responder)
        self.created.append(session)
        return session

    def current(self, kind: SessionKind) -> FakeTransportSession:
        return [s for s in self.created if s.kind is kind][-1]

    def started(self, kind: Optional[SessionKind] = None) -> List[TransportTask]:
        tasks = []
        for session in self.created:
            if kind is None or session.kind is kind:
                tasks.extend(session.started)
        return tasks


class Recorder:
    """Completion callback that records (response, error) pairs."""

    def __init__(self):
        self.calls = []

    def __call__(self, response, error):
        self.calls.append((response, error))

    @property
    def response(self):
        return self.calls[-1][0]

    @property
    def error(self):
        return self.calls[-1][1]


@pytest.fixture(autouse=True)
def reset_user_agent():
    yield
    clear_user_agent()


@pytest.fixture
def base_url():
    """Base URL for testing."""
    return "https://api.example.com/"


@pytest.fixture
def mock_responses():
    """Mock HTTP responses using responses library."""
    with responses_lib.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def callback_context():
    return ImmediateCallbackContext()


@pytest.fixture
def sessions():
    return FakeSessionFactory()


@pytest.fixture
def activity():
    return ActivityCounter()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def controller(base_url, sessions, callback_context, activity):
    """Controller on fake sessions, callbacks delivered inline."""
    controller = RequestController(
        base_url,
        callback_context=callback_context,
        session_factory=sessions,
        activity_indicator=activity,
    )
    yield controller
    controller.close()


@pytest.fixture
def http_controller(base_url, callback_context):
    """Controller on the real requests engine."""
    controller = RequestController(base_url, callback_context=callback_context)
    yield controller
    controller.close()


@pytest.fixture
def logging_config_with_file(tmp_path):
    """LoggingConfig with file logging into a temporary directory."""
    log_file = tmp_path / "controller.log"
    return LoggingConfig.create(
        level="DEBUG",
        format="json",
        enable_console=False,
        enable_file=True,
        file_path=str(log_file)
    )


@pytest.fixture
def controller_config(base_url):
    return ControllerConfig(base_url=base_url)
