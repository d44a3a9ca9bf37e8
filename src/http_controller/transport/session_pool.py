# src/http_controller/transport/session_pool.py
"""
Пул из трёх транспортных сессий: standard, ephemeral, background.

Пул - делегат своих сессий. Он ведёт учёт живых задач (для cancel_by_tag
и индикатора активности) и пересылает события контроллеру.
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple, TYPE_CHECKING

from ..core.exceptions import SessionInvalidatedError
from .base import (
    AuthChallenge,
    DataCompletion,
    RawResponse,
    SessionFactory,
    SessionKind,
    TaskKind,
    TransportDelegate,
    TransportResult,
    TransportSession,
    TransportTask,
)

if TYPE_CHECKING:
    from ..core.request import Request

logger = logging.getLogger(__name__)


class ActivityIndicator(ABC):
    """Индикатор сетевой активности (UI). show/hide парные, 1:1 на задачу."""

    @abstractmethod
    def show(self) -> None:
        pass

    @abstractmethod
    def hide(self) -> None:
        pass


class ActivityCounter(ActivityIndicator):
    """
    Счётчик активности: индикатор виден, пока ``active > 0``.

    Example:
        >>> counter = ActivityCounter()
        >>> counter.show(); counter.visible
        True
    """

    def __init__(self):
        self._active = 0
        self._lock = threading.Lock()

    def show(self) -> None:
        with self._lock:
            self._active += 1

    def hide(self) -> None:
        with self._lock:
            if self._active == 0:
                logger.warning("Activity indicator hidden more times than shown")
                return
            self._active -= 1

    @property
    def active(self) -> int:
        with self._lock:
            return self._active

    @property
    def visible(self) -> bool:
        return self.active > 0


class SessionPool(TransportDelegate):
    """
    Владелец трёх сессий.

    Выбор сессии:
        - DATA -> standard (ephemeral, если запрос этого просит)
        - UPLOAD из памяти -> standard
        - UPLOAD из файла и любой DOWNLOAD -> background

    Args:
        delegate: Получатель событий (контроллер)
        session_factory: Создаёт сессию по типу
        activity_indicator: Индикатор активности (опционально)

    Example:
        >>> pool = SessionPool(controller, session_factory(config))
        >>> task = pool.create_task(request, completion=on_result)
        >>> pool.resume(task)
        >>> pool.cancel_by_tag(5)
    """

    def __init__(
        self,
        delegate: TransportDelegate,
        session_factory: SessionFactory,
        activity_indicator: Optional[ActivityIndicator] = None,
    ):
        self._delegate = delegate
        self._session_factory = session_factory
        self._activity = activity_indicator

        self._lock = threading.Lock()
        self._live: Dict[int, TransportTask] = {}
        self._active_ids: Set[int] = set()
        self._invalidated = False
        self._sessions: Dict[SessionKind, TransportSession] = self._build()

    def _build(self) -> Dict[SessionKind, TransportSession]:
        return {kind: self._session_factory(kind, self) for kind in SessionKind}

    @staticmethod
    def session_kind_for(request: 'Request', kind: TaskKind, upload_from_file: bool = False) -> SessionKind:
        if kind is TaskKind.DOWNLOAD:
            return SessionKind.BACKGROUND
        if kind is TaskKind.UPLOAD:
            return SessionKind.BACKGROUND if upload_from_file else SessionKind.STANDARD
        if request.use_ephemeral_session:
            return SessionKind.EPHEMERAL
        return SessionKind.STANDARD

    def session(self, kind: SessionKind) -> TransportSession:
        with self._lock:
            if self._invalidated:
                raise SessionInvalidatedError("Session pool was invalidated")
            return self._sessions[kind]

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # DISPATCH
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def create_task(
        self,
        request: 'Request',
        kind: TaskKind = TaskKind.DATA,
        completion: Optional[DataCompletion] = None,
        upload_path: Optional[str] = None,
        upload_data: Optional[bytes] = None,
        not_before: Optional[datetime] = None,
    ) -> TransportTask:
        """Создать задачу в нужной сессии (ещё не запущена)."""
        session_kind = self.session_kind_for(request, kind, upload_from_file=upload_path is not None)
        return self.session(session_kind).create_task(
            request,
            kind,
            completion=completion,
            upload_path=upload_path,
            upload_data=upload_data,
            not_before=not_before,
        )

    def resume(self, task: TransportTask) -> None:
        session = self.session(task.session_kind)
        self._track(task)
        try:
            session.resume(task)
        except Exception:
            self._untrack(task)
            raise

    def perform(self, task: TransportTask) -> TransportResult:
        """Выполнить задачу на вызывающем потоке."""
        session = self.session(task.session_kind)
        self._track(task)
        try:
            return session.perform(task)
        finally:
            self._untrack(task)

    def _track(self, task: TransportTask) -> None:
        with self._lock:
            self._live[task.task_id] = task
            self._active_ids.add(task.task_id)
        if self._activity is not None:
            self._activity.show()

    def _untrack(self, task: TransportTask) -> bool:
        """Снять задачу с учёта. True только при первом вызове для задачи."""
        with self._lock:
            self._live.pop(task.task_id, None)
            first = task.task_id in self._active_ids
            self._active_ids.discard(task.task_id)
        if first and self._activity is not None:
            self._activity.hide()
        return first

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # CANCELLATION
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def cancel_all(self) -> None:
        """Уничтожить все три сессии и сразу создать новые."""
        with self._lock:
            if self._invalidated:
                return
            old = self._sessions
            self._sessions = self._build()
            # _active_ids остаются: hide() придёт с терминальным событием
            self._live.clear()

        for session in old.values():
            session.invalidate_and_cancel()
        logger.info("All sessions cancelled and rebuilt")

    def cancel_by_tag(self, tag: int) -> int:
        """
        Отменить живые задачи с данным тегом.

        Returns:
            Количество отменённых задач
        """
        with self._lock:
            matched = [task for task in self._live.values() if task.tag == tag]

        for task in matched:
            task.cancel()
        logger.debug("Cancelled %d task(s) with tag %s", len(matched), tag)
        return len(matched)

    def invalidate_and_cancel(self) -> None:
        """Уничтожить сессии без пересоздания."""
        with self._lock:
            if self._invalidated:
                return
            self._invalidated = True
            old = self._sessions
            self._sessions = {}
            self._live.clear()

        for session in old.values():
            session.invalidate_and_cancel()

    @property
    def invalidated(self) -> bool:
        with self._lock:
            return self._invalidated

    def live_tasks(self) -> List[TransportTask]:
        with self._lock:
            return list(self._live.values())

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # TRANSPORT DELEGATE
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def on_redirect(self, task: TransportTask, response: RawResponse) -> None:
        self._delegate.on_redirect(task, response)

    def on_progress(self, task: TransportTask, bytes_done: int, bytes_total: int) -> None:
        self._delegate.on_progress(task, bytes_done, bytes_total)

    def on_complete(self, task: TransportTask, result: TransportResult) -> None:
        if not self._untrack(task):
            logger.debug("Duplicate terminal event for task %s ignored", task.task_id)
            return

        if task.completion is not None:
            task.completion(result)
        else:
            self._delegate.on_complete(task, result)

    def on_challenge(
        self, task: TransportTask, challenge: AuthChallenge, previous_failures: int
    ) -> Optional[Tuple[str, str]]:
        return self._delegate.on_challenge(task, challenge, previous_failures)
