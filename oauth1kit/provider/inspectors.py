"""Request inspectors run by the provider before any token operation.

Each inspector looks at one aspect of an inbound request and raises an
``OAuthException`` to reject it. Inspectors hold no per-request state, so a
single instance can serve concurrent requests.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from .. import errors
from ..context import OAuthContext
from ..parameters import OAUTH_CALLBACK, OAUTH_NONCE, OAUTH_TIMESTAMP, OAUTH_VERIFIER, ProviderPhase, SignatureMethod
from ..signing import OAuthContextSigner, SigningContext, equals_in_constant_time
from .stores import ConsumerStore, NonceStore, TokenStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContextInspector(ABC):
    """A single check in the provider's inspection pipeline."""

    @abstractmethod
    def inspect_context(self, phase: ProviderPhase, context: OAuthContext) -> None:
        """Inspect a request.

        Raises:
            OAuthException: If the request is rejected
        """
        ...


class SignatureValidationInspector(ContextInspector):
    """Recomputes the signature base and validates the request signature."""

    def __init__(self, consumer_store: ConsumerStore, signer: OAuthContextSigner | None = None):
        self.consumer_store = consumer_store
        self.signer = signer or OAuthContextSigner()

    def signature_method_requires_certificate(self, signature_method: str | None) -> bool:
        return signature_method not in (SignatureMethod.HMAC_SHA1.value, SignatureMethod.PLAINTEXT.value)

    def create_signing_context(self, context: OAuthContext) -> SigningContext:
        signing_context = SigningContext(consumer_secret=self.consumer_store.get_consumer_secret(context))

        # Key lookup can be expensive, only RSA needs it
        if self.signature_method_requires_certificate(context.signature_method):
            signing_context.algorithm = self.consumer_store.get_consumer_public_key(context)
            if signing_context.algorithm is None and context.signature_method == SignatureMethod.RSA_SHA1.value:
                logger.warning(f"Consumer {context.consumer_key} signed with RSA-SHA1 but has no public key")
                raise errors.consumer_public_key_missing(context)

        return signing_context

    def inspect_context(self, phase: ProviderPhase, context: OAuthContext) -> None:
        signing_context = self.create_signing_context(context)

        if not self.signer.validate_signature(context, signing_context):
            logger.warning(f"Signature validation failed for consumer {context.consumer_key} ({phase.value})")
            raise errors.failed_to_validate_signature(context)


class NonceStoreInspector(ContextInspector):
    """Rejects a nonce the consumer has used before."""

    def __init__(self, nonce_store: NonceStore):
        self.nonce_store = nonce_store

    def inspect_context(self, phase: ProviderPhase, context: OAuthContext) -> None:
        nonce = context.nonce
        if not nonce:
            raise errors.missing_required_parameter(context, OAUTH_NONCE)

        if not self.nonce_store.record_nonce_and_check_is_unique(context, nonce):
            logger.warning(f"Replayed nonce from consumer {context.consumer_key}")
            raise errors.nonce_has_already_been_used(context)


class TimestampRangeInspector(ContextInspector):
    """Rejects timestamps outside a window around the server's clock.

    Both bounds are inclusive: a timestamp exactly ``max_before_now`` before
    or ``max_after_now`` after the current time is accepted.
    """

    def __init__(
        self,
        max_before_now: timedelta,
        max_after_now: timedelta,
        now_func: Callable[[], datetime] | None = None,
    ):
        """Initialize the inspector.

        Args:
            max_before_now: How old a timestamp may be
            max_after_now: How far in the future a timestamp may be
            now_func: Current time source; naive datetimes are taken as UTC
        """
        self.max_before_now = max_before_now
        self.max_after_now = max_after_now
        self.now_func = now_func or _utc_now

    @classmethod
    def from_window(
        cls, window: timedelta, now_func: Callable[[], datetime] | None = None
    ) -> "TimestampRangeInspector":
        """Split a total window evenly before and after now."""
        return cls(window / 2, window / 2, now_func)

    def _now(self) -> datetime:
        now = self.now_func()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

    def inspect_context(self, phase: ProviderPhase, context: OAuthContext) -> None:
        if not context.timestamp:
            raise errors.missing_required_parameter(context, OAUTH_TIMESTAMP)

        try:
            timestamp = datetime.fromtimestamp(int(context.timestamp), tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            raise errors.rejected_required_parameter(context, OAUTH_TIMESTAMP) from None

        now = self._now()
        earliest = now - self.max_before_now
        latest = now + self.max_after_now

        if timestamp < earliest:
            logger.warning(f"Refused timestamp {context.timestamp} from consumer {context.consumer_key}: too old")
            raise errors.timestamp_too_old(context, self.max_before_now.total_seconds(), earliest, latest)

        if timestamp > latest:
            logger.warning(f"Refused timestamp {context.timestamp} from consumer {context.consumer_key}: too new")
            raise errors.timestamp_too_new(context, self.max_after_now.total_seconds(), earliest, latest)


class ConsumerValidationInspector(ContextInspector):
    """Rejects unknown consumer key / realm combinations."""

    def __init__(self, consumer_store: ConsumerStore):
        self.consumer_store = consumer_store

    def inspect_context(self, phase: ProviderPhase, context: OAuthContext) -> None:
        if not self.consumer_store.is_consumer(context):
            logger.warning(f"Unknown consumer {context.consumer_key}")
            raise errors.unknown_consumer(context)


class OAuth10aInspector(ContextInspector):
    """OAuth 1.0a: callback on request token calls, verifier on exchange."""

    def __init__(self, token_store: TokenStore):
        self.token_store = token_store

    def inspect_context(self, phase: ProviderPhase, context: OAuthContext) -> None:
        if phase is ProviderPhase.GRANT_REQUEST_TOKEN:
            self._validate_callback_url_is_part_of_request(context)
        elif phase is ProviderPhase.EXCHANGE_REQUEST_TOKEN_FOR_ACCESS_TOKEN:
            self._validate_verifier_matches_stored_verifier(context)

    def _validate_callback_url_is_part_of_request(self, context: OAuthContext) -> None:
        if not context.callback_url:
            raise errors.missing_required_parameter(context, OAUTH_CALLBACK)

    def _validate_verifier_matches_stored_verifier(self, context: OAuthContext) -> None:
        actual = context.verifier
        if not actual:
            raise errors.missing_required_parameter(context, OAUTH_VERIFIER)

        expected = self.token_store.get_verification_code_for_request_token(context)
        if not equals_in_constant_time(expected, actual.strip()):
            raise errors.rejected_required_parameter(context, OAUTH_VERIFIER)


class XAuthValidationInspector(ContextInspector):
    """Validates xAuth credentials on direct access token requests."""

    def __init__(self, validate_mode: Callable[[str], bool], authenticate: Callable[[str, str], bool]):
        """Initialize the inspector.

        Args:
            validate_mode: Accepts or rejects an ``x_auth_mode`` value
            authenticate: Checks a username and password
        """
        self.validate_mode = validate_mode
        self.authenticate = authenticate

    def inspect_context(self, phase: ProviderPhase, context: OAuthContext) -> None:
        if phase is not ProviderPhase.CREATE_ACCESS_TOKEN:
            return

        mode = context.xauth_mode
        if not mode:
            raise errors.empty_xauth_mode(context)

        if not self.validate_mode(mode):
            raise errors.invalid_xauth_mode(context)

        username = context.xauth_username
        if not username:
            raise errors.empty_xauth_username(context)

        password = context.xauth_password
        if not password:
            raise errors.empty_xauth_password(context)

        if not self.authenticate(username, password):
            logger.warning(f"xAuth authentication failed for consumer {context.consumer_key}")
            raise errors.failed_xauth_authentication(context)


class BodyHashValidationInspector(ContextInspector):
    """Checks ``oauth_body_hash`` against the raw request body.

    PLAINTEXT requests are not checked. A body hash must not accompany
    form-encoded parameters.
    """

    def inspect_context(self, phase: ProviderPhase, context: OAuthContext) -> None:
        if context.signature_method == SignatureMethod.PLAINTEXT.value:
            return

        body_hash = context.body_hash
        if body_hash is None:
            return

        if context.form_encoded_parameters:
            raise errors.encountered_unexpected_body_hash_in_form_encoded_request(context)

        if not equals_in_constant_time(context.generate_body_hash(), body_hash):
            logger.warning(f"Body hash mismatch for consumer {context.consumer_key}")
            raise errors.failed_to_validate_body_hash(context)
