"""
Tests for OAuth2Gate: single-flight refresh and FIFO replay.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from http_controller.core.credential import Credential
from http_controller.core.exceptions import AuthRefreshError
from http_controller.core.oauth2 import GateDecision, GateState, OAuth2Gate, OAuth2Manager, PendingRequest
from http_controller.core.request import HTTPMethod, Request


class DeferredManager(OAuth2Manager):
    """Менеджер, который отвечает только когда тест вызовет callback."""

    auth_identifier = "test-api"

    def __init__(self):
        self.calls = []

    def reauthenticate(self, credential, callback):
        self.calls.append((credential, callback))

    def succeed(self, credential, save=False, index=-1):
        self.calls[index][1](credential, None, save)

    def fail(self, error, index=-1):
        self.calls[index][1](None, error, False)


class RaisingManager(OAuth2Manager):
    auth_identifier = "raising"

    def reauthenticate(self, credential, callback):
        raise RuntimeError("token endpoint unreachable")


def _pending(name="users"):
    return PendingRequest(Request(HTTPMethod.GET, "https://api.example.com/", name))


def _expired():
    return Credential.oauth2("old", expiration_date=datetime.now(timezone.utc) - timedelta(minutes=1))


def _fresh(token="new"):
    return Credential.oauth2(token, expiration_date=datetime.now(timezone.utc) + timedelta(hours=1))


class GateHarness:
    def __init__(self):
        self.replayed = []
        self.failed = []
        self.installed = []
        self.gate = OAuth2Gate(
            replay=self.replayed.append,
            fail=lambda pending, error: self.failed.append((pending, error)),
            install=lambda credential, save: self.installed.append((credential, save)),
        )


@pytest.fixture
def harness():
    return GateHarness()


@pytest.fixture
def manager(harness):
    manager = DeferredManager()
    harness.gate.manager = manager
    return manager


class TestAdmission:

    def test_without_manager_everything_proceeds(self, harness):
        harness.gate.credential = _expired()

        assert harness.gate.admit(_pending()) is GateDecision.PROCEED

    def test_valid_credential_proceeds(self, harness, manager):
        harness.gate.credential = _fresh()

        assert harness.gate.admit(_pending()) is GateDecision.PROCEED
        assert manager.calls == []

    def test_credential_without_expiry_proceeds(self, harness, manager):
        harness.gate.credential = Credential.token("static")

        assert harness.gate.admit(_pending()) is GateDecision.PROCEED

    def test_expired_credential_triggers_refresh(self, harness, manager):
        expired = _expired()
        harness.gate.credential = expired

        assert harness.gate.admit(_pending()) is GateDecision.REFRESHING
        assert harness.gate.state is GateState.REFRESHING
        assert len(manager.calls) == 1
        assert manager.calls[0][0] is expired

    def test_missing_credential_triggers_refresh(self, harness, manager):
        assert harness.gate.admit(_pending()) is GateDecision.REFRESHING
        assert manager.calls[0][0] is None

    def test_requests_during_refresh_are_queued(self, harness, manager):
        harness.gate.admit(_pending("a"))

        assert harness.gate.admit(_pending("b")) is GateDecision.QUEUED
        assert harness.gate.admit(_pending("c")) is GateDecision.QUEUED
        assert harness.gate.queued == 2
        assert len(manager.calls) == 1


class TestRefreshCompletion:

    def test_success_installs_then_replays_trigger_first(self, harness, manager):
        trigger, second, third = _pending("a"), _pending("b"), _pending("c")
        harness.gate.admit(trigger)
        harness.gate.admit(second)
        harness.gate.admit(third)

        fresh = _fresh()
        manager.succeed(fresh, save=True)

        assert harness.installed == [(fresh, True)]
        assert harness.replayed == [trigger, second, third]
        assert harness.gate.state is GateState.IDLE
        assert harness.gate.credential is fresh
        assert harness.gate.queued == 0
        assert harness.gate.wait_until_idle(0)

    def test_failure_fails_trigger_and_replays_queue(self, harness, manager):
        trigger, queued = _pending("a"), _pending("b")
        harness.gate.admit(trigger)
        harness.gate.admit(queued)

        cause = ValueError("invalid_grant")
        manager.fail(cause)

        assert len(harness.failed) == 1
        failed, error = harness.failed[0]
        assert failed is trigger
        assert isinstance(error, AuthRefreshError)
        assert error.cause is cause
        assert harness.replayed == [queued]
        assert harness.installed == []
        assert harness.gate.state is GateState.IDLE

    def test_no_credential_and_no_error_is_failure(self, harness, manager):
        harness.gate.admit(_pending())

        manager.calls[0][1](None, None, False)

        assert len(harness.failed) == 1
        assert harness.gate.state is GateState.IDLE

    def test_expired_credential_from_manager_is_failure(self, harness, manager):
        trigger = _pending()
        harness.gate.admit(trigger)

        manager.succeed(_expired())

        assert harness.installed == []
        assert harness.failed[0][0] is trigger
        assert isinstance(harness.failed[0][1], AuthRefreshError)
        assert "expired" in str(harness.failed[0][1])
        assert harness.gate.credential is None

    def test_inline_manager_returning_expired_credential_terminates(self):
        """Каждый запрос получает свою ошибку, без бесконечной цепочки refresh."""
        calls = []

        class ExpiredManager(OAuth2Manager):
            auth_identifier = "expired"

            def reauthenticate(self, credential, callback):
                calls.append(credential)
                if len(calls) == 1:
                    # Остальные запросы встают в очередь, пока идёт первый refresh
                    for name in ("b", "c"):
                        gate.admit(_pending(name))
                callback(_expired(), None, True)

        failed = []
        gate = OAuth2Gate(
            replay=lambda pending: gate.admit(pending),
            fail=lambda pending, error: failed.append(pending.request.path),
            install=lambda credential, save: None,
        )
        gate.manager = ExpiredManager()

        gate.admit(_pending("a"))

        assert failed == ["a", "b", "c"]
        assert len(calls) == 3
        assert gate.state is GateState.IDLE

    def test_requests_arriving_during_install_are_queued(self, manager):
        replayed = []
        decisions = []

        def install(credential, save):
            # Credential уже записан в gate, но заголовок ещё не установлен
            decisions.append(gate.admit(_pending("late")))

        gate = OAuth2Gate(replay=replayed.append, fail=lambda p, e: None, install=install)
        gate.manager = manager
        trigger = _pending("trigger")
        gate.admit(trigger)

        manager.succeed(_fresh())

        assert decisions == [GateDecision.QUEUED]
        assert [p.request.path for p in replayed] == ["trigger", "late"]
        assert gate.state is GateState.IDLE

    def test_duplicate_callback_is_ignored(self, harness, manager, caplog):
        harness.gate.admit(_pending())
        manager.succeed(_fresh("first"))
        manager.succeed(_fresh("second"))

        assert len(harness.installed) == 1
        assert harness.gate.credential.authorization_token == "first"
        assert "more than once" in caplog.text

    def test_stale_callback_does_not_finish_new_flight(self, harness, manager):
        harness.gate.admit(_pending("a"))
        manager.fail(ValueError("invalid_grant"))

        # Первый refresh закончился, следующий запрос запускает новый
        assert harness.gate.admit(_pending("b")) is GateDecision.REFRESHING
        manager.succeed(_fresh("stale"), index=0)

        assert harness.gate.state is GateState.REFRESHING
        manager.succeed(_fresh("current"), index=1)
        assert harness.gate.credential.authorization_token == "current"

    def test_manager_raising_is_reported_as_failure(self, harness):
        harness.gate.manager = RaisingManager()
        trigger = _pending()

        assert harness.gate.admit(trigger) is GateDecision.REFRESHING

        assert harness.failed[0][0] is trigger
        assert "token endpoint unreachable" in str(harness.failed[0][1])
        assert harness.gate.state is GateState.IDLE

    def test_synchronous_callback_inside_reauthenticate(self, harness):
        fresh = _fresh()

        class InlineManager(OAuth2Manager):
            auth_identifier = "inline"

            def reauthenticate(self, credential, callback):
                callback(fresh, None, False)

        harness.gate.manager = InlineManager()
        trigger = _pending()

        assert harness.gate.admit(trigger) is GateDecision.REFRESHING
        assert harness.replayed == [trigger]
        assert harness.gate.admit(_pending()) is GateDecision.PROCEED


class TestSingleFlight:

    def test_concurrent_admissions_start_one_refresh(self, harness, manager):
        """N потоков одновременно видят истёкший credential - refresh ровно один."""
        harness.gate.credential = _expired()
        barrier = threading.Barrier(16)
        decisions = []
        lock = threading.Lock()

        def worker(i):
            barrier.wait()
            decision = harness.gate.admit(_pending(str(i)))
            with lock:
                decisions.append(decision)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(manager.calls) == 1
        assert decisions.count(GateDecision.REFRESHING) == 1
        assert decisions.count(GateDecision.QUEUED) == 15

        manager.succeed(_fresh())
        assert len(harness.replayed) == 16


class TestPurge:

    def test_purge_removes_matching_requests(self, harness, manager):
        harness.gate.admit(_pending("trigger"))
        keep, drop = _pending("keep"), _pending("drop")
        harness.gate.admit(keep)
        harness.gate.admit(drop)

        removed = harness.gate.purge(lambda p: p.request.path == "drop")

        assert removed == [drop]
        assert harness.gate.queued == 1

        manager.succeed(_fresh())
        assert drop not in harness.replayed
        assert keep in harness.replayed


class TestPendingRequest:

    def test_for_retry_is_async_copy(self):
        pending = PendingRequest(_pending().request, completion=print, synchronous=True)
        pending.ready.set()

        retry = pending.for_retry()

        assert retry.request is pending.request
        assert retry.completion is print
        assert not retry.synchronous
        assert not retry.ready.is_set()
