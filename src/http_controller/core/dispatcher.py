# src/http_controller/core/dispatcher.py
"""
Превращает терминальное событие транспорта в (Response, error) для
пользовательского callback.

Порядок:
    1. Response + промежуточный redirect-ответ из RedirectTracker
    2. события RESPONSE_RECEIVED / SERVER_ERROR
    3. классификация: transport -> http-status -> успех
    4. ошибка оборачивается в RecoverableError (Retry / Cancel)
    5. лог и доставка через callback context (или inline в sync режиме)
"""

import logging
from http.client import responses as reason_phrases
from typing import Callable, Optional, Tuple

from .callback_context import CallbackContext
from .events import EventEmitter, RequestEvent, RequestEventData
from .exceptions import (
    HTTPStatusError,
    RecoverableError,
    RequestControllerException,
    classify_transport_exception,
)
from .oauth2 import PendingRequest
from .recovery import ErrorRecoveryAttempter, ErrorRecoveryOption, RecoveryStyle
from .redirect_tracker import RedirectTracker
from .response import Response
from ..transport.base import TransportResult
from ..utils.sanitizer import mask_body, mask_headers, mask_url

logger = logging.getLogger(__name__)

# Сколько байт тела попадает в лог
_LOG_BODY_LIMIT = 2048


def status_is_error(status: int) -> bool:
    """
    4xx и 5xx считаются ошибкой.

    Examples:
        >>> status_is_error(404)
        True
        >>> status_is_error(302)
        False
    """
    return 400 <= status < 600


def reason_phrase(status: int) -> str:
    return reason_phrases.get(status, "")


class ResponseDispatcher:
    """
    Args:
        tracker: Redirect tracker
        events: Эмиттер событий контроллера
        callback_context: Где вызывать completion
        retry: Повторить запрос через полный путь планирования
    """

    def __init__(
        self,
        tracker: RedirectTracker,
        events: EventEmitter,
        callback_context: CallbackContext,
        retry: Callable[[PendingRequest], None],
    ):
        self._tracker = tracker
        self._events = events
        self._callback_context = callback_context
        self._retry = retry

    def dispatch(
        self,
        pending: PendingRequest,
        task_id: Optional[int],
        result: TransportResult,
    ) -> Tuple[Response, Optional[BaseException]]:
        request = pending.request

        response = Response.from_raw(result.response, file_path=result.file_path)
        response.redirect_response = self._tracker.take_and_clear(task_id)

        error = self.classify(result, response, request.url)

        self._events.emit(RequestEventData(RequestEvent.RESPONSE_RECEIVED, request, response, error))
        if isinstance(error, HTTPStatusError):
            self._events.emit(RequestEventData(RequestEvent.SERVER_ERROR, request, response, error))

        self._log(pending, response, error)

        if error is not None:
            error = self._recoverable(pending, error)

        self.deliver(pending, response, error)
        return response, error

    def fail(self, pending: PendingRequest, error: BaseException) -> None:
        """
        Доставить ошибку запросу, который так и не дошёл до транспорта
        (refresh не удался, отмена в очереди, сессии уничтожены).

        Событий нет: ответа не было. ``response`` в callback - None.
        """
        self._log(pending, None, error)
        self.deliver(pending, None, self._recoverable(pending, error))

    @staticmethod
    def classify(result: TransportResult, response: Response, url: str) -> Optional[BaseException]:
        if isinstance(result.error, RequestControllerException):
            return result.error
        if result.error is not None:
            return classify_transport_exception(result.error, url)
        if status_is_error(response.status):
            return HTTPStatusError(response.status, url, reason_phrase(response.status))
        return None

    def _recoverable(self, pending: PendingRequest, error: BaseException) -> RecoverableError:
        def retry(_option: ErrorRecoveryOption) -> None:
            logger.info("Retrying %s %s", pending.request.method.value, pending.request.url)
            self._retry(pending.for_retry())

        attempter = ErrorRecoveryAttempter()
        attempter.add_option(ErrorRecoveryOption("Retry", RecoveryStyle.RETRY, retry))
        attempter.add_option(ErrorRecoveryOption("Cancel", RecoveryStyle.CANCEL))
        return attempter.recoverable_error(error)

    def deliver(self, pending: PendingRequest, response: Optional[Response], error: Optional[BaseException]) -> None:
        """Вызвать completion (если есть и запрос не отменён токеном)."""
        if pending.completion is None:
            return
        if pending.cancelled:
            logger.debug("Completion for %s suppressed, request was cancelled", pending.request.url)
            return

        if pending.synchronous:
            pending.completion(response, error)
        else:
            self._callback_context.submit(pending.completion, response, error)

    def _log(self, pending: PendingRequest, response: Optional[Response], error: Optional[BaseException]) -> None:
        request = pending.request
        body = _preview(request.body)

        if error is not None:
            logger.warning(
                "%s %s failed: %s",
                request.method.value,
                mask_url(request.url),
                error,
                extra={
                    'method': request.method.value,
                    'url': mask_url(request.url),
                    'request_headers': mask_headers(request.headers),
                    'request_body': mask_body(body),
                    'status_code': response.status if response is not None else 0,
                    'error_type': type(error).__name__,
                },
            )
        else:
            logger.debug(
                "%s %s -> %s",
                request.method.value,
                mask_url(request.url),
                response.status,
                extra={
                    'method': request.method.value,
                    'url': mask_url(request.url),
                    'request_headers': mask_headers(request.headers),
                    'request_body': mask_body(body),
                    'status_code': response.status,
                    'response_body': mask_body(_preview(response.data)),
                },
            )


def _preview(data: Optional[bytes]) -> Optional[str]:
    if not data:
        return None
    text = data[:_LOG_BODY_LIMIT].decode('utf-8', errors='replace')
    if len(data) > _LOG_BODY_LIMIT:
        text += '...'
    return text
