"""Тесты для системы конфигурации."""

import pytest

from http_controller.core.config import (
    ConnectionPoolConfig,
    ControllerConfig,
    SecurityConfig,
    TimeoutConfig,
    TransferConfig,
)
from http_controller.core.logging import LoggingConfig

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TimeoutConfig
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_timeout_config_defaults():
    """Тест дефолтных значений."""
    config = TimeoutConfig()
    assert config.connect == 5
    assert config.read == 30

def test_timeout_config_as_tuple():
    config = TimeoutConfig(connect=3, read=45)
    assert config.as_tuple() == (3, 45)

@pytest.mark.parametrize("kwargs,message", [
    ({"connect": -1}, "connect timeout must be positive"),
    ({"read": 0}, "read timeout must be positive"),
])
def test_timeout_config_validation(kwargs, message):
    with pytest.raises(ValueError, match=message):
        TimeoutConfig(**kwargs)

def test_timeout_config_immutable():
    """Тест immutability."""
    config = TimeoutConfig()
    with pytest.raises(Exception):  # frozen dataclass
        config.connect = 10

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ConnectionPoolConfig / TransferConfig
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_pool_config_defaults():
    config = ConnectionPoolConfig()
    assert config.pool_connections == 10
    assert config.pool_maxsize == 10
    assert config.max_redirects == 30

@pytest.mark.parametrize("kwargs", [
    {"pool_connections": 0},
    {"pool_maxsize": 0},
    {"max_redirects": -1},
])
def test_pool_config_validation(kwargs):
    with pytest.raises(ValueError):
        ConnectionPoolConfig(**kwargs)

def test_transfer_config_defaults():
    config = TransferConfig()
    assert config.download_directory is None
    assert config.chunk_size == 8192
    assert config.max_workers == 4
    assert config.background_max_workers == 2

@pytest.mark.parametrize("kwargs", [
    {"chunk_size": 0},
    {"max_workers": 0},
    {"background_max_workers": 0},
])
def test_transfer_config_validation(kwargs):
    with pytest.raises(ValueError):
        TransferConfig(**kwargs)

def test_security_config_defaults():
    config = SecurityConfig()
    assert config.verify_ssl is True
    assert config.allow_redirects is True

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ControllerConfig
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_controller_config_defaults():
    config = ControllerConfig()
    assert config.base_url is None
    assert dict(config.headers) == {}
    assert config.logging is None

def test_controller_config_headers_frozen():
    config = ControllerConfig(headers={"X-Api-Key": "k"})
    with pytest.raises(TypeError):
        config.headers["X-Other"] = "v"

def test_controller_config_create():
    config = ControllerConfig.create(
        base_url="https://api.example.com/",
        timeout=(3, 60),
        verify_ssl=False,
        download_directory="/tmp/dl",
        max_redirects=5,
    )
    assert config.timeout.as_tuple() == (3, 60)
    assert config.security.verify_ssl is False
    assert config.transfer.download_directory == "/tmp/dl"
    assert config.pool.max_redirects == 5

def test_controller_config_create_single_timeout_is_read():
    config = ControllerConfig.create(timeout=90)
    assert config.timeout.read == 90
    assert config.timeout.connect == 5

def test_with_headers_returns_new_config():
    config = ControllerConfig(headers={"A": "1"})
    updated = config.with_headers({"B": "2"})

    assert dict(updated.headers) == {"A": "1", "B": "2"}
    assert dict(config.headers) == {"A": "1"}

def test_with_timeout():
    config = ControllerConfig().with_timeout(TimeoutConfig(connect=1, read=2))
    assert config.timeout.as_tuple() == (1, 2)

def test_logging_config_is_carried():
    logging_config = LoggingConfig.create(level="DEBUG")
    config = ControllerConfig.create(logging=logging_config).with_timeout(10)
    assert config.logging is logging_config
