"""
Pydantic settings for environment configuration.
"""

from typing import Optional, Literal, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ControllerSettings(BaseSettings):
    """
    RequestController configuration from environment variables.

    Reads from (highest priority first):
    1. Keyword arguments
    2. Environment variables (HTTP_CONTROLLER_*)
    3. .env file
    4. Defaults

    Example .env file:
        HTTP_CONTROLLER_BASE_URL=https://api.example.com/
        HTTP_CONTROLLER_TIMEOUT_CONNECT=5
        HTTP_CONTROLLER_TIMEOUT_READ=30
        HTTP_CONTROLLER_DOWNLOAD_DIRECTORY=/var/tmp/downloads
        HTTP_CONTROLLER_LOG_LEVEL=DEBUG
        HTTP_CONTROLLER_LOG_FORMAT=json

    Usage:
        >>> settings = ControllerSettings()
        >>> settings.base_url
        'https://api.example.com/'
    """

    model_config = SettingsConfigDict(
        env_prefix='HTTP_CONTROLLER_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    base_url: Optional[str] = Field(default=None, description="Base URL for all requests")
    user_agent: Optional[str] = Field(default=None, description="Process-wide User-Agent override")

    # Timeouts
    timeout_connect: float = Field(default=5.0, gt=0)
    timeout_read: float = Field(default=30.0, gt=0)

    # Security
    verify_ssl: bool = Field(default=True)
    allow_redirects: bool = Field(default=True)

    # Connection pool
    pool_connections: int = Field(default=10, ge=1)
    pool_maxsize: int = Field(default=10, ge=1)
    pool_block: bool = Field(default=False)
    max_redirects: int = Field(default=30, ge=0)

    # Transfers
    download_directory: Optional[str] = None
    chunk_size: int = Field(default=8192, gt=0)
    max_workers: int = Field(default=4, ge=1)
    background_max_workers: int = Field(default=2, ge=1)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="text")
    log_enable_console: bool = Field(default=True)
    log_enable_file: bool = Field(default=False)
    log_file_path: Optional[str] = None
    log_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_backup_count: int = Field(default=5, ge=0)
    log_enable_request_context: bool = Field(default=True)

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator('log_format', mode='before')
    @classmethod
    def normalize_format(cls, v):
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode='after')
    def validate_log_file(self) -> 'ControllerSettings':
        """file_path is required when file logging is enabled."""
        if self.log_enable_file and not self.log_file_path:
            raise ValueError("log_file_path is required when log_enable_file=True")
        return self

    @property
    def timeout(self) -> Tuple[float, float]:
        return (self.timeout_connect, self.timeout_read)

    @property
    def logging_enabled(self) -> bool:
        return self.log_enable_console or self.log_enable_file
