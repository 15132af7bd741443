"""In-memory reference implementations of the provider stores.

Suitable for tests, examples and single-process deployments. Every store is
an ordinary instance; nothing is shared between instances.
"""

import logging
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .. import errors
from ..context import OAuthContext
from ..parameters import OAUTH_SESSION_HANDLE
from ..tokens import AccessToken, RequestToken, TokenBase
from .stores import ConsumerStore, NonceStore, RequestForAccessStatus, TokenStore

if TYPE_CHECKING:
    from ..config import ProviderConfig

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=TokenBase)

DEFAULT_ACCESS_TOKEN_LIFETIME = timedelta(days=20)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _same_realm(left: str | None, right: str | None) -> bool:
    return (left or "") == (right or "")


@dataclass
class RegisteredConsumer:
    """A consumer known to the provider."""

    consumer_key: str
    consumer_secret: str | None = None
    realm: str | None = None
    public_key: Any = None


class InMemoryConsumerStore(ConsumerStore):
    """Consumers registered in a dict, keyed by consumer key."""

    def __init__(self, consumers: list[RegisteredConsumer] | None = None):
        self._consumers: dict[str, RegisteredConsumer] = {}
        for consumer in consumers or []:
            self.add_consumer(consumer)

    def add_consumer(self, consumer: RegisteredConsumer) -> None:
        self._consumers[consumer.consumer_key] = consumer

    def register(
        self,
        consumer_key: str,
        consumer_secret: str | None = None,
        realm: str | None = None,
        public_key: Any = None,
    ) -> RegisteredConsumer:
        consumer = RegisteredConsumer(consumer_key, consumer_secret, realm, public_key)
        self.add_consumer(consumer)
        return consumer

    def _get(self, context: OAuthContext) -> RegisteredConsumer:
        consumer = self._consumers.get(context.consumer_key or "")
        if consumer is None:
            raise errors.unknown_consumer(context)
        return consumer

    def is_consumer(self, context: OAuthContext) -> bool:
        consumer = self._consumers.get(context.consumer_key or "")
        return consumer is not None and _same_realm(consumer.realm, context.realm)

    def get_consumer_secret(self, context: OAuthContext) -> str | None:
        return self._get(context).consumer_secret

    def get_consumer_public_key(self, context: OAuthContext) -> Any:
        return self._get(context).public_key


class InMemoryNonceStore(NonceStore):
    """Per-consumer nonce sets.

    The set for a consumer is created lazily, re-checked under the store lock
    so two first requests cannot each create their own. Each set has its own
    lock making check-and-record atomic.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._nonces: dict[str, tuple[threading.Lock, set[str]]] = {}

    def _get_nonces_for_consumer(self, consumer_key: str) -> tuple[threading.Lock, set[str]]:
        entry = self._nonces.get(consumer_key)
        if entry is None:
            with self._lock:
                entry = self._nonces.get(consumer_key)
                if entry is None:
                    entry = (threading.Lock(), set())
                    self._nonces[consumer_key] = entry
        return entry

    def record_nonce_and_check_is_unique(self, context: OAuthContext, nonce: str) -> bool:
        lock, nonces = self._get_nonces_for_consumer(context.consumer_key or "")
        with lock:
            if nonce in nonces:
                return False
            nonces.add(nonce)
            return True


class InMemoryTokenRepository(Generic[T]):
    """Tokens of one kind, keyed by token value."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens: dict[str, T] = {}

    def get_token(self, token: str | None) -> T:
        """Look up a token.

        Raises:
            KeyError: If the token is empty or unknown
        """
        if not token:
            raise KeyError("token")
        with self._lock:
            return self._tokens[token]

    def save_token(self, token: T) -> None:
        if not token.token:
            raise ValueError("Cannot save a token without a token value")
        with self._lock:
            self._tokens[token.token] = token

    def delete_token(self, token: str) -> bool:
        with self._lock:
            return self._tokens.pop(token, None) is not None

    def __len__(self) -> int:
        return len(self._tokens)


class InMemoryTokenStore(TokenStore):
    """Token store over two in-memory repositories.

    Request tokens are issued on request, authorized with
    ``authorize_request_token`` (which binds an access token and returns the
    verifier for the user to carry back) and consumed once on exchange.

    Example:
        store = InMemoryTokenStore()
        request_token = provider.grant_request_token(context)
        verifier = store.authorize_request_token(request_token.token, user_name="alice")
    """

    def __init__(
        self,
        access_token_repository: InMemoryTokenRepository[AccessToken] | None = None,
        request_token_repository: InMemoryTokenRepository[RequestToken] | None = None,
        access_token_lifetime: timedelta | None = DEFAULT_ACCESS_TOKEN_LIFETIME,
        now_func: Callable[[], datetime] | None = None,
    ):
        """Initialize the store.

        Args:
            access_token_repository: Where access tokens live
            request_token_repository: Where request tokens live
            access_token_lifetime: Lifetime of issued access tokens, None
                for tokens that never expire
            now_func: Current time source
        """
        self.access_tokens = access_token_repository or InMemoryTokenRepository[AccessToken]()
        self.request_tokens = request_token_repository or InMemoryTokenRepository[RequestToken]()
        self.access_token_lifetime = access_token_lifetime
        self.now_func = now_func or _utc_now
        self._consume_lock = threading.Lock()

    @classmethod
    def from_config(
        cls, config: "ProviderConfig", now_func: Callable[[], datetime] | None = None
    ) -> "InMemoryTokenStore":
        """Create a store whose access token lifetime comes from provider config."""
        return cls(access_token_lifetime=config.access_token_lifetime_delta, now_func=now_func)

    # Lookups

    def _get_request_token(self, context: OAuthContext) -> RequestToken:
        try:
            token = self.request_tokens.get_token(context.token)
        except KeyError as e:
            raise errors.unknown_token(context, context.token) from e
        if token.consumer_key != context.consumer_key:
            raise errors.unknown_token(context, context.token)
        return token

    def _get_access_token(self, context: OAuthContext) -> AccessToken:
        try:
            token = self.access_tokens.get_token(context.token)
        except KeyError as e:
            raise errors.unknown_token(context, context.token) from e
        if token.consumer_key != context.consumer_key:
            raise errors.unknown_token(context, context.token)
        return token

    def _new_access_token(
        self, consumer_key: str | None, realm: str | None, user_name: str | None, session_handle: str | None = None
    ) -> AccessToken:
        now = self.now_func()
        return AccessToken(
            token=secrets.token_urlsafe(24),
            token_secret=secrets.token_urlsafe(32),
            consumer_key=consumer_key,
            realm=realm,
            session_handle=session_handle or secrets.token_urlsafe(16),
            user_name=user_name,
            issued_at=now,
            expiry_date=now + self.access_token_lifetime if self.access_token_lifetime is not None else None,
        )

    # Request tokens

    def create_request_token(self, context: OAuthContext) -> RequestToken:
        token = RequestToken(
            token=secrets.token_urlsafe(24),
            token_secret=secrets.token_urlsafe(32),
            consumer_key=context.consumer_key,
            realm=context.realm,
            callback_url=context.callback_url,
        )
        self.request_tokens.save_token(token)
        logger.debug(f"Created request token for consumer {context.consumer_key}")
        return token

    def consume_request_token(self, request_context: OAuthContext) -> None:
        with self._consume_lock:
            token = self._get_request_token(request_context)
            if token.used_up:
                raise errors.request_token_already_consumed(request_context)
            token.used_up = True
            self.request_tokens.save_token(token)

    def authorize_request_token(self, token: str, user_name: str | None = None) -> str:
        """Record the user's approval of a request token.

        Binds a new access token to the request token and issues a verifier.

        Returns:
            The verifier to hand back to the consumer

        Raises:
            OAuthException: If the request token is unknown
        """
        try:
            request_token = self.request_tokens.get_token(token)
        except KeyError as e:
            raise errors.unknown_token(None, token) from e

        request_token.access_token = self._new_access_token(
            request_token.consumer_key, request_token.realm, user_name
        )
        request_token.verifier = secrets.token_urlsafe(16)
        request_token.access_denied = False

        self.access_tokens.save_token(request_token.access_token)
        self.request_tokens.save_token(request_token)
        logger.debug(f"Request token authorized by user {user_name}")
        return request_token.verifier

    def deny_request_token(self, token: str) -> None:
        """Record that the user refused access."""
        try:
            request_token = self.request_tokens.get_token(token)
        except KeyError as e:
            raise errors.unknown_token(None, token) from e

        request_token.access_denied = True
        request_token.access_token = None
        self.request_tokens.save_token(request_token)

    def get_access_token_associated_with_request_token(self, request_context: OAuthContext) -> AccessToken | None:
        return self._get_request_token(request_context).access_token

    def get_status_of_request_for_access(self, request_context: OAuthContext) -> RequestForAccessStatus:
        token = self._get_request_token(request_context)
        if token.access_denied:
            return RequestForAccessStatus.DENIED
        if token.access_token is None:
            return RequestForAccessStatus.UNKNOWN
        return RequestForAccessStatus.GRANTED

    def get_callback_url_for_token(self, request_context: OAuthContext) -> str | None:
        return self._get_request_token(request_context).callback_url

    def get_verification_code_for_request_token(self, request_context: OAuthContext) -> str | None:
        return self._get_request_token(request_context).verifier

    def get_request_token_secret(self, context: OAuthContext) -> str | None:
        return self._get_request_token(context).token_secret

    # Access tokens

    def get_access_token_secret(self, context: OAuthContext) -> str | None:
        return self._get_access_token(context).token_secret

    def consume_access_token(self, access_context: OAuthContext) -> None:
        token = self._get_access_token(access_context)
        if token.is_expired(self.now_func()):
            logger.warning(f"Expired access token used by consumer {access_context.consumer_key}")
            raise errors.token_expired(access_context)

    def create_access_token(self, context: OAuthContext) -> AccessToken:
        token = self._new_access_token(context.consumer_key, context.realm, context.xauth_username)
        self.access_tokens.save_token(token)
        logger.debug(f"Created access token for consumer {context.consumer_key} via xAuth")
        return token

    def renew_access_token(self, request_context: OAuthContext) -> AccessToken:
        """Replace an access token, keeping its session handle.

        Raises:
            OAuthException: If the token is unknown or the session handle
                does not match
        """
        current = self._get_access_token(request_context)

        if not current.session_handle or current.session_handle != request_context.session_handle:
            raise errors.rejected_required_parameter(request_context, OAUTH_SESSION_HANDLE)

        renewed = self._new_access_token(
            current.consumer_key, current.realm, current.user_name, current.session_handle
        )
        self.access_tokens.save_token(renewed)
        self.access_tokens.delete_token(current.token)
        logger.debug(f"Renewed access token for consumer {request_context.consumer_key}")
        return renewed
