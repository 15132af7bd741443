"""Storage contracts the provider depends on.

Persistence is up to the application: implement these interfaces over
whatever database is in use. ``oauth1kit.provider.memory`` has in-memory
reference implementations.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from ..context import OAuthContext
from ..tokens import AccessToken, RequestToken, TokenBase


class RequestForAccessStatus(str, Enum):
    """Whether the user has acted on a request token yet."""

    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


class ConsumerStore(ABC):
    """Lookup of registered consumers."""

    @abstractmethod
    def is_consumer(self, context: OAuthContext) -> bool:
        """Check the context's consumer key (and realm) belong to a known consumer."""
        ...

    @abstractmethod
    def get_consumer_secret(self, context: OAuthContext) -> str | None:
        """Return the consumer secret for the context's consumer key."""
        ...

    @abstractmethod
    def get_consumer_public_key(self, context: OAuthContext) -> Any:
        """Return the consumer's RSA public key (RSA-SHA1 only)."""
        ...


class NonceStore(ABC):
    """Replay protection."""

    @abstractmethod
    def record_nonce_and_check_is_unique(self, context: OAuthContext, nonce: str) -> bool:
        """Record the nonce for the context's consumer.

        Checking and recording must be a single atomic step: of two
        concurrent calls with the same consumer and nonce, exactly one may
        return True.

        Returns:
            True if the nonce had not been seen before
        """
        ...


class TokenStore(ABC):
    """Token lifecycle: issue, consume, exchange and renew."""

    @abstractmethod
    def create_request_token(self, context: OAuthContext) -> RequestToken:
        """Issue a request token bound to the consumer and callback."""
        ...

    @abstractmethod
    def consume_request_token(self, request_context: OAuthContext) -> None:
        """Mark the request token used.

        Raises:
            OAuthException: If the token is unknown or already used
        """
        ...

    @abstractmethod
    def consume_access_token(self, access_context: OAuthContext) -> None:
        """Check the access token may be used.

        Raises:
            OAuthException: If the token is unknown or expired
        """
        ...

    @abstractmethod
    def get_access_token_associated_with_request_token(self, request_context: OAuthContext) -> AccessToken | None:
        ...

    @abstractmethod
    def get_status_of_request_for_access(self, request_context: OAuthContext) -> RequestForAccessStatus:
        ...

    @abstractmethod
    def get_callback_url_for_token(self, request_context: OAuthContext) -> str | None:
        ...

    @abstractmethod
    def get_verification_code_for_request_token(self, request_context: OAuthContext) -> str | None:
        ...

    @abstractmethod
    def get_request_token_secret(self, context: OAuthContext) -> str | None:
        ...

    @abstractmethod
    def get_access_token_secret(self, context: OAuthContext) -> str | None:
        ...

    @abstractmethod
    def create_access_token(self, context: OAuthContext) -> AccessToken:
        """Issue an access token directly (xAuth)."""
        ...

    @abstractmethod
    def renew_access_token(self, request_context: OAuthContext) -> TokenBase:
        """Issue a replacement for the context's access token."""
        ...
