"""Authentication material owned by the request controller."""

from dataclasses import dataclass, asdict, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Credential:
    """
    Auth material plus expiry. Pure value type, no I/O.

    A credential can carry a username/password pair (offered to the
    transport on an authentication challenge), a bearer-style token
    (sent as the shared ``Authorization`` header), or both.

    Attributes:
        username: Username for challenge-based authentication
        password: Password for challenge-based authentication
        authorization_token: Token sent with every request
        token_type: Token scheme used in the Authorization header
        expiration_date: When the token expires (None = never)
        refresh_token: Token handed back to the OAuth2 endpoint on refresh

    Example:
        >>> cred = Credential.oauth2("abc", refresh_token="r1",
        ...                          expiration_date=datetime(2030, 1, 1, tzinfo=timezone.utc))
        >>> cred.authorization_header
        'Bearer abc'
    """

    username: Optional[str] = None
    password: Optional[str] = None
    authorization_token: Optional[str] = None
    token_type: str = "Bearer"
    expiration_date: Optional[datetime] = None
    refresh_token: Optional[str] = None

    @classmethod
    def basic(cls, username: str, password: str) -> "Credential":
        return cls(username=username, password=password)

    @classmethod
    def token(cls, authorization_token: str, token_type: str = "Bearer") -> "Credential":
        return cls(authorization_token=authorization_token, token_type=token_type)

    @classmethod
    def oauth2(
        cls,
        authorization_token: str,
        refresh_token: Optional[str] = None,
        expiration_date: Optional[datetime] = None,
        token_type: str = "Bearer",
    ) -> "Credential":
        return cls(
            authorization_token=authorization_token,
            refresh_token=refresh_token,
            expiration_date=expiration_date,
            token_type=token_type,
        )

    def has_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Whether ``now`` is past the expiration date.

        Credentials without an expiration date never expire. Naive
        datetimes are treated as UTC.
        """
        if self.expiration_date is None:
            return False
        if now is None:
            now = datetime.now(timezone.utc)
        return _aware(now) > _aware(self.expiration_date)

    @property
    def is_valid(self) -> bool:
        return not self.has_expired()

    @property
    def transport_credential(self) -> Optional[Tuple[str, str]]:
        """(username, password) offered to an authentication challenge."""
        if self.username is None or self.password is None:
            return None
        return (self.username, self.password)

    @property
    def authorization_header(self) -> Optional[str]:
        if not self.authorization_token:
            return None
        return f"{self.token_type} {self.authorization_token}"

    def with_token(self, authorization_token: str, expiration_date: Optional[datetime] = None) -> "Credential":
        return replace(self, authorization_token=authorization_token, expiration_date=expiration_date)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize every field for a credential store."""
        data = asdict(self)
        if self.expiration_date is not None:
            data["expiration_date"] = self.expiration_date.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credential":
        expiration = data.get("expiration_date")
        if isinstance(expiration, str):
            expiration = datetime.fromisoformat(expiration)
        return cls(
            username=data.get("username"),
            password=data.get("password"),
            authorization_token=data.get("authorization_token"),
            token_type=data.get("token_type") or "Bearer",
            expiration_date=expiration,
            refresh_token=data.get("refresh_token"),
        )

    def __repr__(self) -> str:
        # Secrets never reach logs through repr()
        return (
            f"Credential(username={self.username!r}, "
            f"has_password={self.password is not None}, "
            f"has_token={self.authorization_token is not None}, "
            f"token_type={self.token_type!r}, "
            f"expiration_date={self.expiration_date!r})"
        )


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
