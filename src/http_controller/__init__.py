"""HTTP Request Controller - OAuth2-aware request orchestration on top of requests."""

import logging
from importlib.metadata import version, PackageNotFoundError

from .core.controller import RequestController
from .core.config import (
    ControllerConfig,
    TimeoutConfig,
    ConnectionPoolConfig,
    SecurityConfig,
    TransferConfig,
)
from .core.exceptions import (
    ErrorKind,
    RequestControllerException,
    TransportError,
    TimeoutError,
    ConnectionError,
    ProxyError,
    SSLError,
    RequestCancelledError,
    HTTPStatusError,
    AuthRefreshError,
    InvalidResponseError,
    ConfigurationError,
    SessionInvalidatedError,
    RecoverableError,
)
from .core.credential import Credential
from .core.credential_store import CredentialStore, InMemoryCredentialStore
from .core.request import HTTPMethod, Request
from .core.response import Response
from .core.recovery import ErrorRecoveryAttempter, ErrorRecoveryOption, RecoveryStyle
from .core.cancellation import CancellationToken
from .core.callback_context import (
    CallbackContext,
    SerialCallbackContext,
    ImmediateCallbackContext,
    ExecutorCallbackContext,
)
from .core.events import RequestEvent, RequestEventData
from .core.oauth2 import OAuth2Manager
from .core.logging import LoggingConfig
from .core.env_config import load_from_env
from .transport import ActivityIndicator, ActivityCounter, SessionKind, TaskKind
from .utils.user_agent import set_user_agent, get_user_agent, clear_user_agent

# Set up logging - add NullHandler to prevent "No handler found" warnings
# Users can configure logging themselves using logging.getLogger('http_controller')
logging.getLogger('http_controller').addHandler(logging.NullHandler())

# Version info - read from package metadata (single source of truth in pyproject.toml)
try:
    __version__ = version("http-controller")
except PackageNotFoundError:
    # Package is not installed (development mode)
    __version__ = "0.0.0-dev"

__license__ = "MIT"

__all__ = [
    # Core
    "RequestController",

    # Config
    "ControllerConfig",
    "TimeoutConfig",
    "ConnectionPoolConfig",
    "SecurityConfig",
    "TransferConfig",
    "LoggingConfig",
    "load_from_env",

    # Exceptions
    "ErrorKind",
    "RequestControllerException",
    "TransportError",
    "TimeoutError",
    "ConnectionError",
    "ProxyError",
    "SSLError",
    "RequestCancelledError",
    "HTTPStatusError",
    "AuthRefreshError",
    "InvalidResponseError",
    "ConfigurationError",
    "SessionInvalidatedError",
    "RecoverableError",

    # Model
    "Credential",
    "CredentialStore",
    "InMemoryCredentialStore",
    "HTTPMethod",
    "Request",
    "Response",

    # Recovery
    "ErrorRecoveryAttempter",
    "ErrorRecoveryOption",
    "RecoveryStyle",

    # Callbacks and events
    "CancellationToken",
    "CallbackContext",
    "SerialCallbackContext",
    "ImmediateCallbackContext",
    "ExecutorCallbackContext",
    "RequestEvent",
    "RequestEventData",

    # OAuth2
    "OAuth2Manager",

    # Transport
    "ActivityIndicator",
    "ActivityCounter",
    "SessionKind",
    "TaskKind",

    # User-Agent
    "set_user_agent",
    "get_user_agent",
    "clear_user_agent",
]
