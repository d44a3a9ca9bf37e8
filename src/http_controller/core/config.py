"""
Система конфигурации для RequestController.

Все конфиги immutable (frozen dataclasses) для потокобезопасности:
контроллер читает их из потоков транспорта без блокировок.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .logging import LoggingConfig

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TIMEOUT CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class TimeoutConfig:
    """
    Таймауты транспорта.

    Args:
        connect: Таймаут подключения (сек)
        read: Таймаут чтения данных (сек)

    Examples:
        >>> TimeoutConfig(connect=5, read=30)
    """
    connect: float = 5
    read: float = 30

    def __post_init__(self):
        """Валидация."""
        if self.connect <= 0:
            raise ValueError("connect timeout must be positive")
        if self.read <= 0:
            raise ValueError("read timeout must be positive")

    def as_tuple(self) -> Tuple[float, float]:
        """Вернуть как (connect, read) для requests."""
        return (self.connect, self.read)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CONNECTION POOL CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class ConnectionPoolConfig:
    """
    Конфигурация connection pool каждой транспортной сессии.

    Args:
        pool_connections: Количество connection pools для кеширования
        pool_maxsize: Максимум соединений в пуле
        pool_block: Блокировать при достижении лимита
        max_redirects: Максимум редиректов
    """
    pool_connections: int = 10
    pool_maxsize: int = 10
    pool_block: bool = False
    max_redirects: int = 30

    def __post_init__(self):
        """Валидация."""
        if self.pool_connections <= 0:
            raise ValueError("pool_connections must be positive")
        if self.pool_maxsize <= 0:
            raise ValueError("pool_maxsize must be positive")
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be non-negative")

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SECURITY CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class SecurityConfig:
    """
    Args:
        verify_ssl: Проверять SSL сертификаты
        allow_redirects: Следовать редиректам (промежуточный ответ
            сохраняется в RedirectTracker)
    """
    verify_ssl: bool = True
    allow_redirects: bool = True

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TRANSFER CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class TransferConfig:
    """
    Конфигурация загрузок/выгрузок и пулов потоков сессий.

    Args:
        download_directory: Куда сохранять скачанные файлы
            (None = системная временная директория)
        chunk_size: Размер чанка при стриминге (байты)
        max_workers: Потоков ввода-вывода у standard и ephemeral сессий
        background_max_workers: Потоков ввода-вывода у background сессии

    Examples:
        >>> TransferConfig(download_directory="/tmp/downloads", chunk_size=64 * 1024)
    """
    download_directory: Optional[str] = None
    chunk_size: int = 8192
    max_workers: int = 4
    background_max_workers: int = 2

    def __post_init__(self):
        """Валидация."""
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive")
        if self.background_max_workers <= 0:
            raise ValueError("background_max_workers must be positive")

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# MAIN CONFIG
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class ControllerConfig:
    """
    Главная конфигурация RequestController.

    Args:
        base_url: Базовый URL (опционально)
        headers: Дефолтные заголовки (начальные shared headers)
        timeout: Конфигурация таймаутов
        pool: Конфигурация connection pool
        security: Конфигурация безопасности
        transfer: Конфигурация загрузок/выгрузок
        logging: Конфигурация логирования (None = только библиотечный логгер)

    Examples:
        >>> config = ControllerConfig(base_url="https://api.example.com/")
        >>> config = ControllerConfig.create(timeout=60)
    """
    base_url: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    pool: ConnectionPoolConfig = field(default_factory=ConnectionPoolConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    transfer: TransferConfig = field(default_factory=TransferConfig)
    logging: Optional['LoggingConfig'] = None

    def __post_init__(self):
        """Freeze headers."""
        if isinstance(self.headers, dict):
            object.__setattr__(self, 'headers', MappingProxyType(dict(self.headers)))

    @classmethod
    def create(
        cls,
        base_url: Optional[str] = None,
        timeout: Union[float, Tuple[float, float], TimeoutConfig] = 30,
        verify_ssl: bool = True,
        headers: Optional[Dict[str, str]] = None,
        download_directory: Optional[str] = None,
        max_redirects: Optional[int] = None,
        logging: Optional['LoggingConfig'] = None,
        **kwargs
    ) -> 'ControllerConfig':
        """
        Удобный конструктор конфигурации.

        Args:
            base_url: Базовый URL
            timeout: Таймаут (число, (connect, read) или TimeoutConfig)
            verify_ssl: Проверять SSL
            headers: Заголовки
            download_directory: Директория для скачанных файлов
            max_redirects: Максимальное количество редиректов
            logging: Конфигурация логирования

        Examples:
            >>> config = ControllerConfig.create(timeout=(5, 60), verify_ssl=False)
        """
        pool_cfg = ConnectionPoolConfig(max_redirects=max_redirects) \
            if max_redirects is not None else ConnectionPoolConfig()

        return cls(
            base_url=base_url,
            headers=headers or {},
            timeout=_as_timeout(timeout),
            pool=pool_cfg,
            security=SecurityConfig(verify_ssl=verify_ssl),
            transfer=TransferConfig(download_directory=download_directory),
            logging=logging,
            **kwargs
        )

    def with_timeout(self, timeout: Union[float, Tuple[float, float], TimeoutConfig]) -> 'ControllerConfig':
        """Создать новый конфиг с изменённым timeout."""
        return self._replace(timeout=_as_timeout(timeout))

    def with_headers(self, headers: Dict[str, str]) -> 'ControllerConfig':
        """
        Создать новый конфиг с дополнительными заголовками.

        Example:
            >>> new_config = config.with_headers({"X-API-Key": "secret"})
        """
        merged = dict(self.headers)
        merged.update(headers)
        return self._replace(headers=merged)

    def _replace(self, **changes) -> 'ControllerConfig':
        values = {
            'base_url': self.base_url,
            'headers': self.headers,
            'timeout': self.timeout,
            'pool': self.pool,
            'security': self.security,
            'transfer': self.transfer,
            'logging': self.logging,
        }
        values.update(changes)
        return ControllerConfig(**values)


def _as_timeout(timeout: Union[float, Tuple[float, float], TimeoutConfig]) -> TimeoutConfig:
    if isinstance(timeout, TimeoutConfig):
        return timeout
    if isinstance(timeout, tuple):
        return TimeoutConfig(connect=timeout[0], read=timeout[1])
    return TimeoutConfig(connect=5, read=timeout)
