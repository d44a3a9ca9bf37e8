"""
Configuration loader from environment variables and .env files.
"""

from typing import Optional

from ..config import (
    ControllerConfig,
    ConnectionPoolConfig,
    SecurityConfig,
    TimeoutConfig,
    TransferConfig,
)
from ..logging.config import LoggingConfig, LogFormat, LogLevel
from ...utils.sanitizer import mask_url
from ...utils.user_agent import set_user_agent
from .validator import ControllerSettings


def load_settings(env_file: Optional[str] = None, **overrides) -> ControllerSettings:
    """
    Read and validate settings.

    Raises:
        pydantic.ValidationError: a value is out of range or malformed
    """
    if env_file is not None:
        return ControllerSettings(_env_file=env_file, **overrides)
    return ControllerSettings(**overrides)


def load_from_env(env_file: Optional[str] = None, **overrides) -> ControllerConfig:
    """
    Load ControllerConfig from environment variables.

    Priority (highest to lowest):
    1. **overrides - explicit parameters (settings field names)
    2. Environment variables (HTTP_CONTROLLER_*)
    3. .env file
    4. Defaults

    ``user_agent`` from the environment is applied process-wide.

    Example:
        >>> config = load_from_env()
        >>> config = load_from_env(env_file=".env.staging", log_level="DEBUG")
        >>> controller = RequestController(config=config)
    """
    settings = load_settings(env_file, **overrides)

    if settings.user_agent:
        set_user_agent(settings.user_agent)

    logging_config = None
    if settings.logging_enabled:
        logging_config = LoggingConfig(
            level=LogLevel(settings.log_level),
            format=LogFormat(settings.log_format),
            enable_console=settings.log_enable_console,
            enable_file=settings.log_enable_file,
            file_path=settings.log_file_path,
            max_bytes=settings.log_max_bytes,
            backup_count=settings.log_backup_count,
            enable_request_context=settings.log_enable_request_context,
        )

    return ControllerConfig(
        base_url=settings.base_url or None,
        timeout=TimeoutConfig(connect=settings.timeout_connect, read=settings.timeout_read),
        pool=ConnectionPoolConfig(
            pool_connections=settings.pool_connections,
            pool_maxsize=settings.pool_maxsize,
            pool_block=settings.pool_block,
            max_redirects=settings.max_redirects,
        ),
        security=SecurityConfig(
            verify_ssl=settings.verify_ssl,
            allow_redirects=settings.allow_redirects,
        ),
        transfer=TransferConfig(
            download_directory=settings.download_directory,
            chunk_size=settings.chunk_size,
            max_workers=settings.max_workers,
            background_max_workers=settings.background_max_workers,
        ),
        logging=logging_config,
    )


def config_summary(config: ControllerConfig) -> str:
    """
    Human-readable summary with secrets masked.

    Example:
        >>> print(config_summary(load_from_env()))
        ControllerConfig:
          base_url: https://api.example.com/
          timeout: connect=5.0s, read=30.0s
          ...
    """
    lines = [
        "ControllerConfig:",
        f"  base_url: {mask_url(config.base_url) if config.base_url else None}",
        f"  timeout: connect={config.timeout.connect}s, read={config.timeout.read}s",
        f"  security: verify_ssl={config.security.verify_ssl}, allow_redirects={config.security.allow_redirects}",
        f"  pool: connections={config.pool.pool_connections}, maxsize={config.pool.pool_maxsize}, "
        f"max_redirects={config.pool.max_redirects}",
        f"  transfer: download_directory={config.transfer.download_directory}, "
        f"workers={config.transfer.max_workers}/{config.transfer.background_max_workers}",
    ]
    if config.logging:
        lines.append(f"  logging: level={config.logging.level.value}, format={config.logging.format.value}")
        if config.logging.enable_file:
            lines.append(f"    file: {config.logging.file_path}")
    return "\n".join(lines)
