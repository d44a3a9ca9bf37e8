# src/http_controller/core/oauth2.py
"""
OAuth2 gate: single-flight обновление credential.

Каждый исходящий запрос проходит через :meth:`OAuth2Gate.admit`:

    IDLE + credential валиден      -> PROCEED     (запрос уходит сразу)
    IDLE + credential истёк/нет    -> REFRESHING  (этот запрос запускает refresh)
    REFRESHING                     -> QUEUED      (ждёт конца refresh)

Переход IDLE -> REFRESHING выполняется под блокировкой до вызова
менеджера, поэтому одновременно идёт не больше одного refresh.
Запрос, запустивший refresh, не отправляется до его завершения.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional, TYPE_CHECKING

from .cancellation import CancellationToken
from .credential import Credential
from .exceptions import AuthRefreshError
from ..transport.base import TaskKind

if TYPE_CHECKING:
    from .controller import RequestController
    from .request import Request

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[Optional[Credential], Optional[BaseException], bool], None]


class OAuth2Manager(ABC):
    """
    Внешний объект, умеющий обновлять credential.

    ``request_controller`` - отдельный, полностью настроенный контроллер
    для запросов к token endpoint. Его передаёт
    :meth:`RequestController.configure_oauth2`; менеджер не должен
    использовать контроллер, через который идут гейтуемые запросы.

    Example:
        >>> class MyManager(OAuth2Manager):
        ...     auth_identifier = "my-api"
        ...     def reauthenticate(self, credential, callback):
        ...         def done(response, error):
        ...             if error:
        ...                 callback(None, error, False)
        ...             else:
        ...                 callback(Credential.oauth2(response.json()["access_token"]), None, True)
        ...         self.request_controller.post("token", body={...}, completion=done)
    """

    request_controller: Optional['RequestController'] = None

    @property
    @abstractmethod
    def auth_identifier(self) -> str:
        """Идентификатор для CredentialStore."""

    @abstractmethod
    def reauthenticate(self, credential: Optional[Credential], callback: RefreshCallback) -> None:
        """
        Обновить ``credential`` и вызвать ``callback(credential, error, save)``
        ровно один раз (с любого потока).
        """


class GateState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class GateDecision(str, Enum):
    PROCEED = "proceed"
    QUEUED = "queued"
    REFRESHING = "refreshing"


@dataclass(eq=False)
class PendingRequest:
    """
    Запрос вместе со всем, что нужно для его (повторной) отправки.

    Attributes:
        request: Дескриптор
        completion: ``completion(response, error)``
        kind: Тип задачи
        progress: ``progress(bytes_done, bytes_total)`` для передач
        upload_path: Файл для upload
        upload_data: Данные для upload
        not_before: Не начинать раньше
        cancellation_token: Токен отмены
        synchronous: Выполнять на вызывающем потоке
    """
    request: 'Request'
    completion: Optional[Callable[..., Any]] = None
    kind: TaskKind = TaskKind.DATA
    progress: Optional[Callable[[int, int], None]] = None
    upload_path: Optional[str] = None
    upload_data: Optional[bytes] = None
    not_before: Optional[datetime] = None
    cancellation_token: Optional[CancellationToken] = None
    synchronous: bool = False

    # Синхронный вызывающий поток ждёт здесь конца refresh
    ready: threading.Event = field(default_factory=threading.Event, repr=False)
    refresh_error: Optional[AuthRefreshError] = field(default=None, repr=False)

    @property
    def cancelled(self) -> bool:
        return self.cancellation_token is not None and self.cancellation_token.cancelled

    def for_retry(self) -> 'PendingRequest':
        """Тот же запрос и completion, асинхронно."""
        return replace(self, synchronous=False, ready=threading.Event(), refresh_error=None)


class OAuth2Gate:
    """
    Конечный автомат refresh + FIFO очередь ожидающих запросов.

    Args:
        replay: Отправить запрос после refresh (снова через admit)
        fail: Доставить ошибку refresh запросу, который его запустил
        install: Установить новый credential (``install(credential, save)``)

    Example:
        >>> gate = OAuth2Gate(replay=controller._admit, fail=..., install=...)
        >>> gate.configure(manager, credential)
        >>> gate.admit(PendingRequest(request, completion))
        <GateDecision.PROCEED: 'proceed'>
    """

    def __init__(
        self,
        replay: Callable[[PendingRequest], None],
        fail: Callable[[PendingRequest, AuthRefreshError], None],
        install: Callable[[Credential, bool], None],
    ):
        self._replay = replay
        self._fail = fail
        self._install = install

        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()

        self._manager: Optional[OAuth2Manager] = None
        self._credential: Optional[Credential] = None
        self._state = GateState.IDLE
        self._queue: List[PendingRequest] = []
        self._trigger: Optional[PendingRequest] = None
        self._flight = 0
        self._active_flight: Optional[int] = None

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # STATE
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    @property
    def manager(self) -> Optional[OAuth2Manager]:
        with self._lock:
            return self._manager

    @manager.setter
    def manager(self, manager: Optional[OAuth2Manager]) -> None:
        with self._lock:
            self._manager = manager

    @property
    def credential(self) -> Optional[Credential]:
        with self._lock:
            return self._credential

    @credential.setter
    def credential(self, credential: Optional[Credential]) -> None:
        with self._lock:
            self._credential = credential

    @property
    def state(self) -> GateState:
        with self._lock:
            return self._state

    @property
    def queued(self) -> int:
        with self._lock:
            return len(self._queue)

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        return self._idle.wait(timeout)

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # ADMISSION
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def admit(self, pending: PendingRequest) -> GateDecision:
        with self._lock:
            manager = self._manager
            if manager is None:
                return GateDecision.PROCEED

            if self._state is GateState.REFRESHING:
                self._queue.append(pending)
                return GateDecision.QUEUED

            credential = self._credential
            if credential is not None and not credential.has_expired():
                return GateDecision.PROCEED

            self._state = GateState.REFRESHING
            self._idle.clear()
            self._flight += 1
            flight = self._flight
            self._active_flight = flight
            self._trigger = pending

        logger.info(
            "Credential %s, refreshing before %s",
            "expired" if credential is not None else "missing",
            pending.request.url,
        )

        callback = self._refresh_callback(flight)
        try:
            manager.reauthenticate(credential, callback)
        except Exception as e:
            logger.exception("OAuth2 manager raised during reauthenticate")
            callback(None, e, False)

        return GateDecision.REFRESHING

    def _refresh_callback(self, flight: int) -> RefreshCallback:
        def callback(credential: Optional[Credential], error: Optional[BaseException] = None, save: bool = False) -> None:
            self._complete(flight, credential, error, save)
        return callback

    def _complete(
        self,
        flight: int,
        credential: Optional[Credential],
        error: Optional[BaseException],
        save: bool,
    ) -> None:
        if error is None and credential is None:
            error = ValueError("OAuth2 manager returned no credential")
        elif error is None and credential.has_expired():
            error = ValueError("OAuth2 manager returned an expired credential")
        succeeded = error is None

        with self._lock:
            if self._active_flight != flight:
                logger.warning("Refresh callback invoked more than once, ignoring")
                return

            self._active_flight = None
            trigger, self._trigger = self._trigger, None
            queued, self._queue = self._queue, []
            if succeeded:
                self._credential = credential

        # До установки заголовка gate остаётся REFRESHING, новые запросы ждут в очереди
        try:
            if succeeded:
                self._install(credential, save)
        finally:
            with self._lock:
                queued.extend(self._queue)
                self._queue = []
                self._state = GateState.IDLE
                self._idle.set()

        if succeeded:
            logger.info("Credential refreshed, replaying %d request(s)", len(queued) + 1)
            if trigger is not None:
                self._replay(trigger)
        else:
            logger.error("Credential refresh failed: %s", error)
            if trigger is not None:
                self._fail(trigger, AuthRefreshError(cause=error))

        for pending in queued:
            self._replay(pending)

    def purge(self, predicate: Callable[[PendingRequest], bool]) -> List[PendingRequest]:
        """Убрать из очереди подходящие запросы и вернуть их."""
        with self._lock:
            removed = [p for p in self._queue if predicate(p)]
            self._queue = [p for p in self._queue if not predicate(p)]
        return removed
