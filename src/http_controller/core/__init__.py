"""Core RequestController модули."""

from .config import (
    TimeoutConfig,
    ConnectionPoolConfig,
    SecurityConfig,
    TransferConfig,
    ControllerConfig,
)
from .exceptions import (
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
    classify_transport_exception,
)
from .credential import Credential
from .credential_store import CredentialStore, InMemoryCredentialStore
from .request import HTTPMethod, Request, build_url
from .response import Response
from .body import ContentType, BodyEncoder, encode_body
from .recovery import ErrorRecoveryAttempter, ErrorRecoveryOption, RecoveryStyle
from .cancellation import CancellationToken
from .callback_context import (
    CallbackContext,
    SerialCallbackContext,
    ImmediateCallbackContext,
    ExecutorCallbackContext,
    main_callback_context,
)
from .events import EventEmitter, RequestEvent, RequestEventData
from .task_registry import TaskRegistry
from .redirect_tracker import RedirectTracker
from .oauth2 import OAuth2Manager, OAuth2Gate, GateState, GateDecision, PendingRequest
from .dispatcher import ResponseDispatcher, status_is_error
from .controller import RequestController

__all__ = [
    # Config
    "TimeoutConfig",
    "ConnectionPoolConfig",
    "SecurityConfig",
    "TransferConfig",
    "ControllerConfig",
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
    "classify_transport_exception",
    # Model
    "Credential",
    "CredentialStore",
    "InMemoryCredentialStore",
    "HTTPMethod",
    "Request",
    "build_url",
    "Response",
    "ContentType",
    "BodyEncoder",
    "encode_body",
    # Recovery
    "ErrorRecoveryAttempter",
    "ErrorRecoveryOption",
    "RecoveryStyle",
    # Callbacks
    "CancellationToken",
    "CallbackContext",
    "SerialCallbackContext",
    "ImmediateCallbackContext",
    "ExecutorCallbackContext",
    "main_callback_context",
    "EventEmitter",
    "RequestEvent",
    "RequestEventData",
    # Components
    "TaskRegistry",
    "RedirectTracker",
    "OAuth2Manager",
    "OAuth2Gate",
    "GateState",
    "GateDecision",
    "PendingRequest",
    "ResponseDispatcher",
    "status_is_error",
    "RequestController",
]
