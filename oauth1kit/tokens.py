"""OAuth 1.0 token data structures.

Request tokens are single-use and, once the user authorizes them, point at
the access token the consumer will receive. Access tokens are checked on
every protected-resource call and may expire.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .parameters import (
    OAUTH_CALLBACK_CONFIRMED,
    OAUTH_SESSION_HANDLE,
    OAUTH_TOKEN,
    OAUTH_TOKEN_SECRET,
)


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _response_value(parameters: Mapping[str, str], name: str) -> str | None:
    value = parameters.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class TokenBase:
    """Fields shared by request and access tokens.

    Attributes:
        token: The token value
        token_secret: The token secret (never sent back to the provider)
        consumer_key: Consumer the token was issued to
        realm: Protection realm, if any
        session_handle: Handle allowing the token to be renewed
    """

    token: str
    token_secret: str | None = None
    consumer_key: str | None = None
    realm: str | None = None
    session_handle: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for storage."""
        data: dict[str, Any] = {"token": self.token}
        for name in ("token_secret", "consumer_key", "realm", "session_handle"):
            value = getattr(self, name)
            if value:
                data[name] = value
        return data

    @classmethod
    def _base_fields(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "token": data["token"],
            "token_secret": data.get("token_secret"),
            "consumer_key": data.get("consumer_key"),
            "realm": data.get("realm"),
            "session_handle": data.get("session_handle"),
        }

    def __str__(self) -> str:
        return self.token


@dataclass
class AccessToken(TokenBase):
    """An access token.

    Attributes:
        expiry_date: When the token stops being accepted (UTC), None for never
        user_name: The user the token acts for
        issued_at: When the token was issued (UTC)
    """

    expiry_date: datetime | None = None
    user_name: str | None = None
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the token has expired.

        Args:
            now: Current time; defaults to the current UTC time

        Returns:
            True if ``expiry_date`` is set and lies before ``now``
        """
        if self.expiry_date is None:
            return False

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        expiry_date = self.expiry_date
        if expiry_date.tzinfo is None:
            expiry_date = expiry_date.replace(tzinfo=timezone.utc)

        return expiry_date < now

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["issued_at"] = self.issued_at.isoformat()
        if self.expiry_date:
            data["expiry_date"] = self.expiry_date.isoformat()
        if self.user_name:
            data["user_name"] = self.user_name
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AccessToken":
        """Deserialize from a dictionary produced by ``to_dict``."""
        return cls(
            **cls._base_fields(data),
            expiry_date=_parse_datetime(data.get("expiry_date")),
            user_name=data.get("user_name"),
            issued_at=_parse_datetime(data.get("issued_at")) or datetime.now(timezone.utc),
        )

    @classmethod
    def from_response_parameters(
        cls, parameters: Mapping[str, str], consumer_key: str | None = None, realm: str | None = None
    ) -> "AccessToken":
        """Create a token from a parsed token endpoint response."""
        return cls(
            token=_response_value(parameters, OAUTH_TOKEN) or "",
            token_secret=_response_value(parameters, OAUTH_TOKEN_SECRET),
            session_handle=_response_value(parameters, OAUTH_SESSION_HANDLE),
            consumer_key=consumer_key,
            realm=realm,
        )


@dataclass
class RequestToken(TokenBase):
    """A request token.

    Attributes:
        callback_url: Where the user is sent after authorization
        verifier: Verification code issued at authorization time (1.0a)
        used_up: Set once the token has been exchanged
        access_denied: Set when the user refused access
        access_token: The access token bound on authorization
        callback_confirmed: Whether the provider confirmed the callback
            (consumer side, from ``oauth_callback_confirmed``)
    """

    callback_url: str | None = None
    verifier: str | None = None
    used_up: bool = False
    access_denied: bool = False
    access_token: AccessToken | None = None
    callback_confirmed: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.callback_url:
            data["callback_url"] = self.callback_url
        if self.verifier:
            data["verifier"] = self.verifier
        data["used_up"] = self.used_up
        data["access_denied"] = self.access_denied
        data["callback_confirmed"] = self.callback_confirmed
        if self.access_token:
            data["access_token"] = self.access_token.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RequestToken":
        """Deserialize from a dictionary produced by ``to_dict``."""
        access_token = data.get("access_token")
        return cls(
            **cls._base_fields(data),
            callback_url=data.get("callback_url"),
            verifier=data.get("verifier"),
            used_up=bool(data.get("used_up", False)),
            access_denied=bool(data.get("access_denied", False)),
            access_token=AccessToken.from_dict(access_token) if access_token else None,
            callback_confirmed=bool(data.get("callback_confirmed", False)),
        )

    @classmethod
    def from_response_parameters(
        cls, parameters: Mapping[str, str], consumer_key: str | None = None, realm: str | None = None
    ) -> "RequestToken":
        """Create a token from a parsed request token endpoint response."""
        confirmed = _response_value(parameters, OAUTH_CALLBACK_CONFIRMED)
        return cls(
            token=_response_value(parameters, OAUTH_TOKEN) or "",
            token_secret=_response_value(parameters, OAUTH_TOKEN_SECRET),
            session_handle=_response_value(parameters, OAUTH_SESSION_HANDLE),
            consumer_key=consumer_key,
            realm=realm,
            callback_confirmed=confirmed is not None and confirmed.lower() == "true",
        )
