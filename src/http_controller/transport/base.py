# src/http_controller/transport/base.py
"""
Абстракция транспортного движка.

Контроллер не знает, как именно выполняются запросы: он создаёт задачи
в :class:`TransportSession` и получает события через
:class:`TransportDelegate` на последовательной delegate-очереди сессии.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.request import Request


class SessionKind(str, Enum):
    """Три логические сессии с разной семантикой хранения."""
    STANDARD = "standard"        # постоянные cookies/cache
    EPHEMERAL = "ephemeral"      # ничего не сохраняет
    BACKGROUND = "background"    # переживает приостановку приложения


class TaskKind(str, Enum):
    DATA = "data"
    DOWNLOAD = "download"
    UPLOAD = "upload"


@dataclass(frozen=True)
class RawResponse:
    """Ответ транспорта до оборачивания в Response."""
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: Optional[str] = None


@dataclass(frozen=True)
class TransportResult:
    """
    Терминальное событие задачи.

    Attributes:
        response: Ответ (None при ошибке до получения ответа)
        error: Исходное исключение движка
        file_path: Временный файл с телом (download)
    """
    response: Optional[RawResponse] = None
    error: Optional[BaseException] = None
    file_path: Optional[str] = None


@dataclass(frozen=True)
class AuthChallenge:
    """Запрос аутентификации от сервера (401 + WWW-Authenticate)."""
    scheme: str
    realm: Optional[str] = None
    url: Optional[str] = None


DataCompletion = Callable[[TransportResult], None]

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TASK
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_task_ids = itertools.count(1)
_task_ids_lock = threading.Lock()


def next_task_id() -> int:
    """Идентификаторы уникальны в пределах процесса."""
    with _task_ids_lock:
        return next(_task_ids)


class TransportTask:
    """
    Одна единица работы транспорта.

    Задача ссылается на свой дескриптор, поэтому cancel_by_tag не нужна
    отдельная таблица task -> request.

    Args:
        request: Дескриптор запроса
        kind: Тип задачи
        session_kind: Сессия, которой принадлежит задача
        completion: Completion для DATA задач
        upload_path: Файл для upload
        upload_data: Данные для upload
        not_before: Не начинать раньше этого момента
    """

    def __init__(
        self,
        request: 'Request',
        kind: TaskKind,
        session_kind: SessionKind,
        completion: Optional[DataCompletion] = None,
        upload_path: Optional[str] = None,
        upload_data: Optional[bytes] = None,
        not_before: Optional[datetime] = None,
    ):
        self.task_id = next_task_id()
        self.request = request
        self.kind = kind
        self.session_kind = session_kind
        self.completion = completion
        self.upload_path = upload_path
        self.upload_data = upload_data
        self.not_before = not_before
        self._cancel_event = threading.Event()

    @property
    def tag(self) -> int:
        return self.request.tag

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        self._cancel_event.set()

    def wait_cancelled(self, timeout: float) -> bool:
        """Ждать отмены не дольше ``timeout``; True если задача отменена."""
        return self._cancel_event.wait(timeout)

    def __repr__(self) -> str:
        return (
            f"TransportTask(id={self.task_id}, kind={self.kind.value}, "
            f"session={self.session_kind.value}, tag={self.tag})"
        )

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# DELEGATE / SESSION
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TransportDelegate(ABC):
    """
    Получатель событий сессии.

    Все методы вызываются на delegate-очереди сессии, по порядку.
    """

    def on_redirect(self, task: TransportTask, response: RawResponse) -> None:
        pass

    def on_progress(self, task: TransportTask, bytes_done: int, bytes_total: int) -> None:
        pass

    @abstractmethod
    def on_complete(self, task: TransportTask, result: TransportResult) -> None:
        """Терминальное событие: ровно одно на задачу."""

    def on_challenge(
        self, task: TransportTask, challenge: AuthChallenge, previous_failures: int
    ) -> Optional[Tuple[str, str]]:
        """Вернуть (username, password) или None (обработка по умолчанию)."""
        return None


class TransportSession(ABC):
    """
    Транспортная сессия.

    Задача создаётся в приостановленном состоянии (``create_task``) и
    запускается ``resume``. ``perform`` выполняет задачу на вызывающем
    потоке и возвращает результат; события redirect/progress при этом
    всё равно уходят делегату.
    """

    def __init__(self, kind: SessionKind, delegate: TransportDelegate):
        self.kind = kind
        self.delegate = delegate

    def create_task(
        self,
        request: 'Request',
        kind: TaskKind = TaskKind.DATA,
        completion: Optional[DataCompletion] = None,
        upload_path: Optional[str] = None,
        upload_data: Optional[bytes] = None,
        not_before: Optional[datetime] = None,
    ) -> TransportTask:
        return TransportTask(
            request,
            kind,
            self.kind,
            completion=completion,
            upload_path=upload_path,
            upload_data=upload_data,
            not_before=not_before,
        )

    @abstractmethod
    def resume(self, task: TransportTask) -> None:
        """Запустить задачу асинхронно."""

    @abstractmethod
    def perform(self, task: TransportTask) -> TransportResult:
        """Выполнить задачу синхронно на вызывающем потоке."""

    @abstractmethod
    def invalidate_and_cancel(self) -> None:
        """Отменить все задачи и освободить ресурсы. Сессия больше не используется."""


SessionFactory = Callable[[SessionKind, TransportDelegate], TransportSession]
