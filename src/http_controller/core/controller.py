# src/http_controller/core/controller.py
"""
RequestController - публичный фасад.

Путь запроса:
    дескриптор -> OAuth2 gate -> SessionPool -> события транспорта
    -> TaskRegistry / RedirectTracker -> ResponseDispatcher -> callback
"""

import threading
from datetime import datetime
from functools import partial
from typing import Any, Callable, Dict, Mapping, Optional

from requests.structures import CaseInsensitiveDict

from .body import BodyEncoder, encode_body
from .callback_context import CallbackContext, main_callback_context
from .cancellation import CancellationToken
from .config import ControllerConfig
from .credential import Credential
from .credential_store import CredentialStore, InMemoryCredentialStore
from .dispatcher import ResponseDispatcher
from .events import EventEmitter
from .exceptions import (
    AuthRefreshError,
    ConfigurationError,
    RequestCancelledError,
    SessionInvalidatedError,
)
from .logging import ControllerLogger, request_context
from .oauth2 import GateDecision, OAuth2Gate, OAuth2Manager, PendingRequest
from .redirect_tracker import RedirectTracker
from .request import HTTPMethod, Request
from .response import Response
from .task_registry import TaskRegistry
from ..transport.base import (
    AuthChallenge,
    RawResponse,
    SessionFactory,
    TaskKind,
    TransportDelegate,
    TransportResult,
    TransportTask,
)
from ..transport.requests_session import session_factory as requests_session_factory
from ..transport.session_pool import ActivityIndicator, SessionPool
from ..utils.user_agent import get_user_agent

Completion = Callable[[Optional[Response], Optional[BaseException]], None]
ProgressHandler = Callable[[int, int], None]


class RequestController(TransportDelegate):
    """
    HTTP Request Controller.

    Особенности:
    - три транспортные сессии (standard, ephemeral, background)
    - single-flight обновление OAuth2 credential с FIFO очередью
    - completion/progress вызываются на одном callback context
    - ошибки приходят как RecoverableError с вариантами Retry / Cancel

    Args:
        base_url: Базовый URL (перекрывает config.base_url)
        config: Конфигурация
        callback_context: Где вызывать callbacks (по умолчанию общий
            последовательный "main" контекст процесса)
        credential_store: Хранилище credential
        activity_indicator: Индикатор сетевой активности
        session_factory: Фабрика транспортных сессий
        body_encoder: Кодировщик тела запроса

    Example:
        >>> controller = RequestController("https://api.example.com/")
        >>> def on_done(response, error):
        ...     if error is None:
        ...         print(response.json())
        >>> controller.get("users/1", {"verbose": "true"}, completion=on_done)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        config: Optional[ControllerConfig] = None,
        *,
        callback_context: Optional[CallbackContext] = None,
        credential_store: Optional[CredentialStore] = None,
        activity_indicator: Optional[ActivityIndicator] = None,
        session_factory: Optional[SessionFactory] = None,
        body_encoder: Optional[BodyEncoder] = None,
    ):
        config = config or ControllerConfig()
        if base_url is not None:
            config = config._replace(base_url=base_url)
        self._config = config

        self._logger = ControllerLogger(config.logging)

        self._headers: Dict[str, str] = dict(config.headers)
        self._headers_lock = threading.Lock()

        self._callback_context = callback_context or main_callback_context()
        self._credential_store = credential_store or InMemoryCredentialStore()
        self._encode_body = body_encoder or encode_body

        self.events = EventEmitter()
        self._registry = TaskRegistry()
        self._redirects = RedirectTracker()
        self._gate = OAuth2Gate(
            replay=self._replay,
            fail=self._fail,
            install=self._install_refreshed,
        )
        self._dispatcher = ResponseDispatcher(
            self._redirects,
            self.events,
            self._callback_context,
            retry=self._schedule,
        )
        self._pool = SessionPool(
            self,
            session_factory or requests_session_factory(config),
            activity_indicator,
        )

        self._logger.debug("RequestController created", base_url=config.base_url)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        """Отменить все задачи и уничтожить сессии. Идемпотентно."""
        self._pool.invalidate_and_cancel()
        self._logger.close()

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # PROPERTIES
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    @property
    def config(self) -> ControllerConfig:
        return self._config

    @property
    def base_url(self) -> Optional[str]:
        return self._config.base_url

    @property
    def callback_context(self) -> CallbackContext:
        return self._callback_context

    @property
    def session_pool(self) -> SessionPool:
        return self._pool

    @property
    def oauth2_gate(self) -> OAuth2Gate:
        return self._gate

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # SHARED HEADERS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    @property
    def shared_request_headers(self) -> Dict[str, str]:
        """Копия заголовков, добавляемых к каждому запросу."""
        with self._headers_lock:
            return dict(self._headers)

    def set_shared_header(self, name: str, value: str) -> None:
        with self._headers_lock:
            _remove_header(self._headers, name)
            self._headers[name] = value

    def remove_shared_header(self, name: str) -> None:
        with self._headers_lock:
            _remove_header(self._headers, name)

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # CREDENTIALS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    @property
    def shared_request_credential(self) -> Optional[Credential]:
        return self._gate.credential

    @shared_request_credential.setter
    def shared_request_credential(self, credential: Optional[Credential]) -> None:
        self.set_shared_request_credential(credential)

    def set_shared_request_credential(self, credential: Optional[Credential], save: bool = False) -> None:
        """
        Установить credential.

        Токен credential становится shared заголовком
        ``Authorization: <token_type> <token>``.

        Args:
            credential: Новый credential (None - сбросить)
            save: Сохранить в CredentialStore под ``credential_identifier``
        """
        self._gate.credential = credential

        header = credential.authorization_header if credential is not None else None
        if header is not None:
            self.set_shared_header('Authorization', header)
        elif credential is None:
            self.remove_shared_header('Authorization')

        if save:
            identifier = self.credential_identifier
            self._credential_store.store(credential, identifier)
            self._logger.info("Credential stored", identifier=identifier)

    @property
    def credential_identifier(self) -> str:
        """Идентификатор OAuth2 менеджера или производный от base URL."""
        manager = self._gate.manager
        if manager is not None:
            return manager.auth_identifier
        return f"http_controller-{self._config.base_url}"

    def configure_oauth2(
        self,
        manager: Optional[OAuth2Manager],
        auth_controller: Optional['RequestController'] = None,
    ) -> None:
        """
        Подключить OAuth2 менеджер.

        Сохранённый credential под ``manager.auth_identifier``
        восстанавливается сразу.

        Args:
            manager: Менеджер (None - отключить OAuth2)
            auth_controller: Отдельный контроллер для запросов менеджера
                к token endpoint

        Raises:
            ConfigurationError: auth_controller - этот же контроллер
        """
        if auth_controller is self:
            raise ConfigurationError(
                "OAuth2 manager needs its own controller, not the one it gates"
            )

        self._gate.manager = manager
        if manager is None:
            return

        if auth_controller is not None:
            manager.request_controller = auth_controller

        stored = self._credential_store.retrieve(manager.auth_identifier)
        if stored is not None:
            self.set_shared_request_credential(stored)
            self._logger.info("Restored stored credential", identifier=manager.auth_identifier)

    def _install_refreshed(self, credential: Credential, save: bool) -> None:
        self.set_shared_request_credential(credential, save=save)

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # BUILDING REQUESTS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def build_request(
        self,
        method: HTTPMethod,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        content_type: Optional[str] = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        tag: int = 0,
        use_ephemeral_session: bool = False,
    ) -> Request:
        """
        Собрать дескриптор: shared headers + User-Agent + заголовки вызова.

        GET никогда не несёт Content-Type.

        Raises:
            ConfigurationError: тело нельзя закодировать
        """
        method = HTTPMethod(method.upper()) if isinstance(method, str) else method
        payload, body_type = self._encode_body(body, content_type)

        merged = CaseInsensitiveDict(self.shared_request_headers)
        shared_authorization = 'Authorization' in merged

        user_agent = get_user_agent()
        if user_agent:
            merged['User-Agent'] = user_agent
        if body_type and payload is not None:
            merged['Content-Type'] = body_type
        if headers:
            merged.update(headers)
            if any(key.lower() == 'authorization' for key in headers):
                shared_authorization = False

        if method is HTTPMethod.GET:
            merged.pop('Content-Type', None)

        return Request(
            method=method,
            base_url=self._config.base_url,
            path=path,
            params=dict(params or {}),
            headers=dict(merged),
            body=payload,
            content_type=None if method is HTTPMethod.GET else body_type,
            tag=tag,
            use_ephemeral_session=use_ephemeral_session,
            shared_authorization=shared_authorization,
        )

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # VERBS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def request(
        self,
        method: HTTPMethod,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        content_type: Optional[str] = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        tag: int = 0,
        completion: Optional[Completion] = None,
        synchronous: bool = False,
        cancellation_token: Optional[CancellationToken] = None,
        use_ephemeral_session: bool = False,
    ) -> Request:
        """
        Построить и отправить запрос.

        Результат всегда приходит в ``completion(response, error)``.
        При ``synchronous=True`` completion вызывается на этом же потоке
        до возврата из метода.

        Returns:
            Дескриптор запроса (``task_id`` назначается при отправке)
        """
        request = self.build_request(
            method,
            path,
            params,
            body,
            content_type,
            headers=headers,
            tag=tag,
            use_ephemeral_session=use_ephemeral_session,
        )
        return self.schedule_request(
            request,
            completion,
            synchronous=synchronous,
            cancellation_token=cancellation_token,
        )

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None, body: Any = None,
            content_type: Optional[str] = None, **kwargs: Any) -> Request:
        """
        GET запрос.

        Example:
            >>> controller.get("users/1", {"verbose": "true"}, completion=on_done)
        """
        return self.request(HTTPMethod.GET, path, params, body, content_type, **kwargs)

    def post(self, path: str, params: Optional[Mapping[str, Any]] = None, body: Any = None,
             content_type: Optional[str] = None, **kwargs: Any) -> Request:
        """
        POST запрос.

        Example:
            >>> controller.post("users", body={"name": "Alice"}, completion=on_done)
        """
        return self.request(HTTPMethod.POST, path, params, body, content_type, **kwargs)

    def put(self, path: str, params: Optional[Mapping[str, Any]] = None, body: Any = None,
            content_type: Optional[str] = None, **kwargs: Any) -> Request:
        return self.request(HTTPMethod.PUT, path, params, body, content_type, **kwargs)

    def patch(self, path: str, params: Optional[Mapping[str, Any]] = None, body: Any = None,
              content_type: Optional[str] = None, **kwargs: Any) -> Request:
        return self.request(HTTPMethod.PATCH, path, params, body, content_type, **kwargs)

    def delete(self, path: str, params: Optional[Mapping[str, Any]] = None, body: Any = None,
               content_type: Optional[str] = None, **kwargs: Any) -> Request:
        return self.request(HTTPMethod.DELETE, path, params, body, content_type, **kwargs)

    def head(self, path: str, params: Optional[Mapping[str, Any]] = None, body: Any = None,
             content_type: Optional[str] = None, **kwargs: Any) -> Request:
        return self.request(HTTPMethod.HEAD, path, params, body, content_type, **kwargs)

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # TRANSFERS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def download_file(
        self,
        path: str,
        *,
        not_before: Optional[datetime] = None,
        on_progress: Optional[ProgressHandler] = None,
        completion: Optional[Completion] = None,
        tag: int = 0,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> Request:
        """
        Скачать файл в background сессии.

        ``completion(response, error)`` получает ``response.file_path`` -
        временный файл в ``config.transfer.download_directory``; забрать
        его - забота вызывающего.

        Args:
            path: Путь или абсолютный URL
            not_before: Не начинать раньше этого момента
            on_progress: ``on_progress(bytes_done, bytes_total)``;
                bytes_total = -1, если размер неизвестен
        """
        request = self.build_request(HTTPMethod.GET, path, tag=tag)
        return self.schedule_request(
            request,
            completion,
            kind=TaskKind.DOWNLOAD,
            on_progress=on_progress,
            not_before=not_before,
            cancellation_token=cancellation_token,
        )

    def upload_file(
        self,
        to_path: str,
        *,
        file_path: Optional[str] = None,
        data: Optional[bytes] = None,
        content_type: Optional[str] = None,
        on_progress: Optional[ProgressHandler] = None,
        completion: Optional[Completion] = None,
        tag: int = 0,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> Request:
        """
        Выгрузить файл (POST). Из файла - background сессия, из памяти - standard.

        Raises:
            ConfigurationError: не задан ровно один из file_path / data
        """
        if (file_path is None) == (data is None):
            raise ConfigurationError("upload_file needs exactly one of file_path or data")

        headers = {'Content-Type': content_type or 'application/octet-stream'}
        request = self.build_request(HTTPMethod.POST, to_path, headers=headers, tag=tag)
        return self.schedule_request(
            request,
            completion,
            kind=TaskKind.UPLOAD,
            on_progress=on_progress,
            upload_path=file_path,
            upload_data=data,
            cancellation_token=cancellation_token,
        )

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # SCHEDULING
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def schedule_request(
        self,
        request: Request,
        completion: Optional[Completion] = None,
        *,
        kind: TaskKind = TaskKind.DATA,
        on_progress: Optional[ProgressHandler] = None,
        upload_path: Optional[str] = None,
        upload_data: Optional[bytes] = None,
        not_before: Optional[datetime] = None,
        synchronous: bool = False,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> Request:
        """Отправить готовый дескриптор через OAuth2 gate."""
        pending = PendingRequest(
            request=request,
            completion=completion,
            kind=kind,
            progress=on_progress,
            upload_path=upload_path,
            upload_data=upload_data,
            not_before=not_before,
            cancellation_token=cancellation_token,
            synchronous=synchronous,
        )
        self._logger.debug(
            "Request scheduled",
            method=request.method.value,
            url=request.url,
            tag=request.tag,
            kind=kind.value,
        )
        self._schedule(pending)
        return request

    def _schedule(self, pending: PendingRequest) -> None:
        """Полный путь планирования; Retry проходит его заново."""
        if pending.cancelled:
            return

        if pending.synchronous:
            self._run_synchronously(pending)
            return

        if self._gate.admit(pending) is GateDecision.PROCEED:
            self._dispatch(pending)

    def _run_synchronously(self, pending: PendingRequest) -> None:
        while self._gate.admit(pending) is not GateDecision.PROCEED:
            pending.ready.wait()
            pending.ready.clear()

            if pending.refresh_error is not None:
                self._deliver_error(pending, pending.refresh_error)
                return
            if pending.cancelled:
                return

        self._dispatch(pending)

    def _replay(self, pending: PendingRequest) -> None:
        if pending.synchronous:
            # Вызывающий поток сам пройдёт gate ещё раз
            pending.ready.set()
        else:
            self._schedule(pending)

    def _fail(self, pending: PendingRequest, error: AuthRefreshError) -> None:
        if pending.synchronous:
            pending.refresh_error = error
            pending.ready.set()
        else:
            self._deliver_error(pending, error)

    def _deliver_error(self, pending: PendingRequest, error: BaseException) -> None:
        """Ошибка без ответа транспорта (refresh, отмена в очереди, сессия уничтожена)."""
        self._dispatcher.fail(pending, error)

    def _dispatch(self, pending: PendingRequest) -> None:
        request = pending.request
        if pending.cancelled:
            return

        self._refresh_authorization(request)

        try:
            task = self._pool.create_task(
                request,
                pending.kind,
                upload_path=pending.upload_path,
                upload_data=pending.upload_data,
                not_before=pending.not_before,
            )
        except SessionInvalidatedError as e:
            self._deliver_error(pending, e)
            return

        request.task_id = task.task_id
        request.mark_dispatched()

        finish = partial(self._finish, pending, task)
        if pending.synchronous:
            # Progress синхронной передачи вызывается на этом же потоке, до completion
            if pending.kind is not TaskKind.DATA and pending.progress is not None:
                self._registry.register(task.task_id, finish, pending.progress)
        elif pending.kind is TaskKind.DATA:
            task.completion = finish
        else:
            self._registry.register(task.task_id, finish, self._progress_handler(pending))

        if pending.cancellation_token is not None:
            pending.cancellation_token.add_callback(task.cancel)

        with request_context(task.task_id, request.tag):
            self._logger.debug(
                "Dispatching",
                method=request.method.value,
                url=request.url,
                session=task.session_kind.value,
            )

        if pending.synchronous:
            try:
                result = self._pool.perform(task)
            except SessionInvalidatedError as e:
                result = TransportResult(error=e)
            finally:
                self._registry.discard(task.task_id)
            finish(result)
            return

        try:
            self._pool.resume(task)
        except SessionInvalidatedError as e:
            self._registry.discard(task.task_id)
            finish(TransportResult(error=e))

    def _progress_handler(self, pending: PendingRequest) -> Optional[ProgressHandler]:
        if pending.progress is None:
            return None

        def on_progress(bytes_done: int, bytes_total: int) -> None:
            self._callback_context.submit(pending.progress, bytes_done, bytes_total)

        return on_progress

    def _finish(self, pending: PendingRequest, task: TransportTask, result: TransportResult) -> None:
        with request_context(task.task_id, pending.request.tag):
            self._dispatcher.dispatch(pending, task.task_id, result)

    def _refresh_authorization(self, request: Request) -> None:
        """Запрос, ждавший refresh, уходит с актуальным Authorization."""
        if request.is_dispatched or not request.shared_authorization:
            return
        current = CaseInsensitiveDict(self.shared_request_headers).get('Authorization')
        _remove_header(request.headers, 'Authorization')
        if current is not None:
            request.headers['Authorization'] = current

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # CANCELLATION
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def cancel_all_requests(self) -> None:
        """
        Отменить все задачи и пересоздать сессии.

        Запросы, ждущие refresh, тоже отменяются. Их completion получает
        RequestCancelledError, как и у отменённых задач.
        """
        self._pool.cancel_all()
        self._cancel_queued(lambda pending: True)

    def cancel_requests_with_tag(self, tag: int) -> int:
        """
        Отменить запросы с тегом ``tag``: живые задачи и ждущие refresh.

        Returns:
            Количество отменённых запросов
        """
        cancelled = self._pool.cancel_by_tag(tag)
        cancelled += self._cancel_queued(lambda pending: pending.request.tag == tag)
        self._logger.info("Cancelled requests with tag", tag=tag, count=cancelled)
        return cancelled

    def _cancel_queued(self, predicate: Callable[[PendingRequest], bool]) -> int:
        purged = self._gate.purge(predicate)
        for pending in purged:
            error = RequestCancelledError(pending.request.url)
            if pending.synchronous:
                pending.refresh_error = error
                pending.ready.set()
            else:
                self._deliver_error(pending, error)
        return len(purged)

    def invalidate_and_cancel(self) -> None:
        """Уничтожить сессии без пересоздания. Последующие запросы получат SessionInvalidatedError."""
        self._pool.invalidate_and_cancel()

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # TRANSPORT DELEGATE
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def on_redirect(self, task: TransportTask, response: RawResponse) -> None:
        self._redirects.record(task.task_id, Response.from_raw(response))

    def on_progress(self, task: TransportTask, bytes_done: int, bytes_total: int) -> None:
        self._registry.deliver_progress(task.task_id, bytes_done, bytes_total)

    def on_complete(self, task: TransportTask, result: TransportResult) -> None:
        self._registry.deliver_terminal(task.task_id, result)

    def on_challenge(self, task: TransportTask, challenge: AuthChallenge, previous_failures: int):
        """Первая неудача - credential (username, password); дальше - по умолчанию."""
        if previous_failures > 0:
            return None
        credential = self._gate.credential
        if credential is None:
            return None
        return credential.transport_credential

    def __repr__(self) -> str:
        return f"<RequestController base_url={self._config.base_url!r}>"


def _remove_header(headers: Dict[str, str], name: str) -> None:
    lowered = name.lower()
    for key in [k for k in headers if k.lower() == lowered]:
        del headers[key]
