"""Named recovery actions attached to errors delivered to callbacks."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from .exceptions import RecoverableError

logger = logging.getLogger(__name__)


class RecoveryStyle(str, Enum):
    CUSTOM = "custom"
    RETRY = "retry"
    CANCEL = "cancel"


@dataclass(frozen=True)
class ErrorRecoveryOption:
    """
    One recovery action. A UI would render it as a button.

    Attributes:
        title: Button title, also used to look the option up
        style: How the option behaves
        handler: Called with the option when selected; None just dismisses
    """

    title: str
    style: RecoveryStyle = RecoveryStyle.CUSTOM
    handler: Optional[Callable[['ErrorRecoveryOption'], None]] = None


class ErrorRecoveryAttempter:
    """
    Bundles recovery options with an error.

    Example:
        >>> attempter = ErrorRecoveryAttempter()
        >>> attempter.add_option(ErrorRecoveryOption("Retry", RecoveryStyle.RETRY, lambda _: retry()))
        >>> attempter.add_option(ErrorRecoveryOption("Cancel", RecoveryStyle.CANCEL))
        >>> error = attempter.recoverable_error(HTTPStatusError(404))
        >>> error.retry()
    """

    def __init__(self, options: Optional[List[ErrorRecoveryOption]] = None):
        self._options: List[ErrorRecoveryOption] = list(options or [])
        self._lock = threading.Lock()

    def add_option(self, option: ErrorRecoveryOption) -> None:
        with self._lock:
            self._options.append(option)

    @property
    def options(self) -> List[ErrorRecoveryOption]:
        with self._lock:
            return list(self._options)

    def option(self, title: str) -> Optional[ErrorRecoveryOption]:
        lowered = title.lower()
        for option in self.options:
            if option.title.lower() == lowered:
                return option
        return None

    def recoverable_error(self, error: BaseException) -> RecoverableError:
        return RecoverableError(error, self)

    def attempt_recovery(self, option: Union[ErrorRecoveryOption, int, str]) -> bool:
        """
        Run the handler of ``option`` (object, index or title).

        Returns False when the option is unknown.
        """
        if isinstance(option, int):
            options = self.options
            if not 0 <= option < len(options):
                return False
            selected = options[option]
        elif isinstance(option, str):
            selected = self.option(option)
        else:
            selected = option if option in self.options else None

        if selected is None:
            logger.warning("Unknown recovery option %r", option)
            return False

        if selected.handler is not None:
            selected.handler(selected)
        return True
