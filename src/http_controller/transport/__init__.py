"""Transport layer: abstract sessions, the requests engine and the session pool."""

from .base import (
    AuthChallenge,
    RawResponse,
    SessionFactory,
    SessionKind,
    TaskKind,
    TransportDelegate,
    TransportResult,
    TransportSession,
    TransportTask,
)
from .requests_session import RequestsTransportSession, session_factory
from .session_pool import ActivityCounter, ActivityIndicator, SessionPool

__all__ = [
    "AuthChallenge",
    "RawResponse",
    "SessionFactory",
    "SessionKind",
    "TaskKind",
    "TransportDelegate",
    "TransportResult",
    "TransportSession",
    "TransportTask",
    "RequestsTransportSession",
    "session_factory",
    "ActivityCounter",
    "ActivityIndicator",
    "SessionPool",
]
