# src/http_controller/transport/requests_session.py
"""
Транспортная сессия на базе requests.

Каждая сессия владеет:
- пулом рабочих потоков (блокирующий I/O requests);
- последовательной delegate-очередью (один поток), на которой по порядку
  доставляются события redirect/progress/complete.
"""

import io
import logging
import os
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter

from ..core.config import ControllerConfig
from ..core.exceptions import RequestCancelledError, SessionInvalidatedError
from .base import (
    AuthChallenge,
    RawResponse,
    SessionKind,
    TaskKind,
    TransportDelegate,
    TransportResult,
    TransportSession,
    TransportTask,
)

logger = logging.getLogger(__name__)

# Размер неизвестен (нет Content-Length)
UNKNOWN_LENGTH = -1


class RequestsTransportSession(TransportSession):
    """
    TransportSession поверх ``requests.Session``.

    - STANDARD и BACKGROUND держат один ``requests.Session`` на всё время
      жизни (cookies и connection pool общие для задач);
    - EPHEMERAL создаёт новый ``requests.Session`` на каждую задачу и
      закрывает его сразу после неё.

    Отмена кооперативная: задача проверяет флаг до отправки, между чанками
    и после получения ответа. Уже отправленный запрос дожидается ответа
    или таймаута.

    Example:
        >>> session = RequestsTransportSession(SessionKind.STANDARD, pool, config)
        >>> task = session.create_task(request, completion=on_result)
        >>> session.resume(task)
    """

    def __init__(
        self,
        kind: SessionKind,
        delegate: TransportDelegate,
        config: Optional[ControllerConfig] = None,
    ):
        super().__init__(kind, delegate)
        self._config = config or ControllerConfig()

        workers = self._config.transfer.max_workers
        if kind is SessionKind.BACKGROUND:
            workers = self._config.transfer.background_max_workers

        self._workers = ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix=f"http_controller.{kind.value}",
        )
        self._delegate_queue = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=f"http_controller.{kind.value}.delegate",
        )

        self._http: Optional[requests.Session] = None
        if kind is not SessionKind.EPHEMERAL:
            self._http = self._create_http_session()

        self._tasks: Dict[int, TransportTask] = {}
        self._lock = threading.Lock()
        self._invalidated = False

    def _create_http_session(self) -> requests.Session:
        """Create configured session."""
        session = requests.Session()

        adapter = HTTPAdapter(
            pool_connections=self._config.pool.pool_connections,
            pool_maxsize=self._config.pool.pool_maxsize,
            pool_block=self._config.pool.pool_block,
            max_retries=0,  # Повтор только через RecoverableError.retry()
        )
        session.mount('http://', adapter)
        session.mount('https://', adapter)
        session.max_redirects = self._config.pool.max_redirects

        return session

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # ЖИЗНЕННЫЙ ЦИКЛ
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def resume(self, task: TransportTask) -> None:
        with self._lock:
            if self._invalidated:
                raise SessionInvalidatedError(f"{self.kind.value} session was invalidated")
            self._tasks[task.task_id] = task
            self._workers.submit(self._run, task)

    def perform(self, task: TransportTask) -> TransportResult:
        with self._lock:
            if self._invalidated:
                raise SessionInvalidatedError(f"{self.kind.value} session was invalidated")
            self._tasks[task.task_id] = task
        try:
            return self._execute(task, inline=True)
        finally:
            with self._lock:
                self._tasks.pop(task.task_id, None)

    def invalidate_and_cancel(self) -> None:
        with self._lock:
            if self._invalidated:
                return
            self._invalidated = True
            tasks = list(self._tasks.values())

        for task in tasks:
            task.cancel()

        logger.debug("Invalidating %s session, %d task(s) cancelled", self.kind.value, len(tasks))

        # Отменённые задачи ещё отчитываются через delegate-очередь
        threading.Thread(
            target=self._shutdown,
            name=f"http_controller.{self.kind.value}.shutdown",
            daemon=True,
        ).start()

    def _shutdown(self) -> None:
        self._workers.shutdown(wait=True)
        self._delegate_queue.shutdown(wait=True)
        if self._http is not None:
            self._http.close()

    @property
    def invalidated(self) -> bool:
        with self._lock:
            return self._invalidated

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # ВЫПОЛНЕНИЕ
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def _run(self, task: TransportTask) -> None:
        try:
            result = self._execute(task, inline=False)
        finally:
            with self._lock:
                self._tasks.pop(task.task_id, None)
        self._post(False, self.delegate.on_complete, task, result)

    def _execute(self, task: TransportTask, inline: bool) -> TransportResult:
        url = task.request.url

        if task.not_before is not None:
            delay = (_aware(task.not_before) - datetime.now(timezone.utc)).total_seconds()
            if delay > 0 and task.wait_cancelled(delay):
                return TransportResult(error=RequestCancelledError(url))

        if task.cancelled:
            return TransportResult(error=RequestCancelledError(url))

        try:
            if task.kind is TaskKind.DOWNLOAD:
                return self._download(task, inline)
            if task.kind is TaskKind.UPLOAD:
                return self._upload(task, inline)
            return self._data(task, inline)
        except Exception as e:
            # Классификация ошибки - забота диспетчера
            logger.debug("Task %s failed: %s", task.task_id, e)
            return TransportResult(error=e)

    def _data(self, task: TransportTask, inline: bool) -> TransportResult:
        body = task.request.body
        response = self._send(task, inline, lambda: body)
        try:
            if task.cancelled:
                return TransportResult(error=RequestCancelledError(task.request.url))
            return TransportResult(response=_raw(response, response.content))
        finally:
            response.close()

    def _download(self, task: TransportTask, inline: bool) -> TransportResult:
        url = task.request.url
        response = self._send(task, inline, lambda: task.request.body, stream=True)

        total = int(response.headers.get('Content-Length') or UNKNOWN_LENGTH)
        downloaded = 0

        fd, file_path = tempfile.mkstemp(
            prefix=f"download-{task.task_id}-",
            dir=self._config.transfer.download_directory,
        )
        try:
            with os.fdopen(fd, 'wb') as f:
                for chunk in response.iter_content(chunk_size=self._config.transfer.chunk_size):
                    if task.cancelled:
                        raise RequestCancelledError(url)
                    if chunk:  # Filter out keep-alive chunks
                        f.write(chunk)
                        downloaded += len(chunk)
                        self._post(inline, self.delegate.on_progress, task, downloaded, total)
        except Exception:
            # Clean up partial file
            if os.path.exists(file_path):
                os.remove(file_path)
            raise
        finally:
            response.close()

        return TransportResult(response=_raw(response, b""), file_path=file_path)

    def _upload(self, task: TransportTask, inline: bool) -> TransportResult:
        def open_body():
            if task.upload_path is not None:
                source = open(task.upload_path, 'rb')
                length = os.fstat(source.fileno()).st_size
            else:
                data = task.upload_data or b""
                source = io.BytesIO(data)
                length = len(data)
            return _ProgressReader(
                source,
                length,
                lambda done, total: self._post(inline, self.delegate.on_progress, task, done, total),
                self._config.transfer.chunk_size,
            )

        response = self._send(task, inline, open_body)
        try:
            if task.cancelled:
                return TransportResult(error=RequestCancelledError(task.request.url))
            return TransportResult(response=_raw(response, response.content))
        finally:
            response.close()

    def _send(
        self,
        task: TransportTask,
        inline: bool,
        body_factory: Callable[[], Any],
        stream: bool = False,
    ) -> requests.Response:
        """
        Отправить запрос, отвечая на auth challenge через делегата.

        Redirect'ы requests проходит сам; промежуточные ответы из
        ``response.history`` уходят делегату до терминального события.
        """
        request = task.request
        http = self._http or self._create_http_session()
        auth: Optional[Tuple[str, str]] = None
        failures = 0

        try:
            while True:
                body = body_factory()
                try:
                    response = http.request(
                        request.method.value,
                        request.url,
                        headers=request.headers,
                        data=body,
                        auth=auth,
                        timeout=self._config.timeout.as_tuple(),
                        verify=self._config.security.verify_ssl,
                        allow_redirects=self._config.security.allow_redirects,
                        stream=stream,
                    )
                finally:
                    if hasattr(body, 'close'):
                        body.close()

                challenge = _challenge(response)
                if challenge is None or task.cancelled:
                    break

                auth = self._call(inline, self.delegate.on_challenge, task, challenge, failures)
                if auth is None:
                    break
                failures += 1
                response.close()
        finally:
            if http is not self._http:
                http.close()

        for hop in response.history:
            self._post(inline, self.delegate.on_redirect, task, _raw(hop, hop.content))

        return response

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # DELEGATE QUEUE
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def _post(self, inline: bool, fn: Callable[..., Any], *args: Any) -> None:
        if inline:
            fn(*args)
        else:
            self._delegate_queue.submit(_log_errors, fn, *args)

    def _call(self, inline: bool, fn: Callable[..., Any], *args: Any) -> Any:
        """Вызвать делегата и дождаться результата."""
        if inline:
            return fn(*args)
        return self._delegate_queue.submit(fn, *args).result()

    def __repr__(self) -> str:
        return f"<RequestsTransportSession {self.kind.value}>"


class _ProgressReader:
    """
    File-like тело запроса, которое сообщает о прогрессе чтения.

    ``__len__`` позволяет requests выставить Content-Length.
    """

    def __init__(self, source, length: int, on_progress: Callable[[int, int], None], chunk_size: int):
        self._source = source
        self._length = length
        self._on_progress = on_progress
        self._chunk_size = chunk_size
        self._read = 0

    def __len__(self) -> int:
        return self._length

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = self._chunk_size
        chunk = self._source.read(size)
        if chunk:
            self._read += len(chunk)
            self._on_progress(self._read, self._length)
        return chunk

    def close(self) -> None:
        self._source.close()


def session_factory(config: Optional[ControllerConfig] = None):
    """
    Фабрика сессий для SessionPool.

    Example:
        >>> pool = SessionPool(controller, session_factory(config))
    """
    def create(kind: SessionKind, delegate: TransportDelegate) -> TransportSession:
        return RequestsTransportSession(kind, delegate, config)
    return create


def _raw(response: requests.Response, body: bytes) -> RawResponse:
    return RawResponse(
        status_code=response.status_code,
        headers=dict(response.headers),
        body=body,
        url=response.url,
    )


def _challenge(response: requests.Response) -> Optional[AuthChallenge]:
    if response.status_code != 401:
        return None
    header = response.headers.get('WWW-Authenticate')
    if not header:
        return None

    scheme, _, params = header.partition(' ')
    realm = None
    for part in params.split(','):
        key, _, value = part.strip().partition('=')
        if key.lower() == 'realm':
            realm = value.strip('"')
    return AuthChallenge(scheme=scheme, realm=realm, url=response.url)


def _log_errors(fn: Callable[..., Any], *args: Any) -> None:
    try:
        fn(*args)
    except Exception:
        logger.exception("Transport delegate %r raised", fn)


def _aware(value: datetime) -> datetime:
    # naive datetime считается локальным временем
    if value.tzinfo is None:
        return value.astimezone()
    return value
