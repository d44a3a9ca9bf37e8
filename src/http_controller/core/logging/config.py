# src/http_controller/core/logging/config.py
"""
Настройки логирования контроллера.

Конфиг применяется ко всему дереву логгеров ``http_controller``:
dispatcher, OAuth2 gate и транспортные сессии пишут через дочерние логгеры.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    JSON = "json"
    TEXT = "text"


DEFAULT_MAX_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class LoggingConfig:
    """
    Куда и как писать логи.

    Attributes:
        level: Минимальный уровень
        format: json (одна запись на строку) или text
        enable_console: Писать в stdout
        enable_file: Писать в файл с ротацией
        file_path: Файл лога (обязателен при enable_file)
        max_bytes: Размер файла до ротации
        backup_count: Сколько старых файлов хранить
        enable_request_context: Добавлять task_id / tag текущего запроса
        extra_fields: Поля, добавляемые в каждую запись (service, env, ...)

    Example:
        >>> LoggingConfig.create(level="debug", format="json",
        ...                      enable_file=True, file_path="/var/log/controller.log")
    """

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.TEXT
    enable_console: bool = True
    enable_file: bool = False
    file_path: Optional[str] = None
    max_bytes: int = DEFAULT_MAX_BYTES
    backup_count: int = 5
    enable_request_context: bool = True
    extra_fields: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.enable_file and not self.file_path:
            raise ValueError("file_path is required when enable_file=True")
        if self.max_bytes < 0 or self.backup_count < 0:
            raise ValueError("max_bytes and backup_count must be non-negative")

    @classmethod
    def create(
        cls,
        level: Union[str, LogLevel] = "INFO",
        format: Union[str, LogFormat] = "text",
        extra_fields: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> "LoggingConfig":
        """
        Конструктор из строк; регистр уровня и формата не важен.

        Raises:
            ValueError: неизвестный уровень или формат
        """
        return cls(
            level=LogLevel(str(getattr(level, 'value', level)).upper()),
            format=LogFormat(str(getattr(format, 'value', format)).lower()),
            extra_fields=dict(extra_fields or {}),
            **kwargs,
        )
