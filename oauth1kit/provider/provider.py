"""The OAuth provider: inspection pipeline plus token store operations."""

import logging
from collections.abc import Iterable
from datetime import timedelta
from typing import TYPE_CHECKING

from .. import errors
from ..context import OAuthContext
from ..parameters import ProviderPhase
from ..tokens import AccessToken, RequestToken, TokenBase
from .inspectors import (
    BodyHashValidationInspector,
    ConsumerValidationInspector,
    ContextInspector,
    NonceStoreInspector,
    OAuth10aInspector,
    SignatureValidationInspector,
    TimestampRangeInspector,
)
from .stores import ConsumerStore, NonceStore, RequestForAccessStatus, TokenStore

if TYPE_CHECKING:
    from ..config import ProviderConfig

logger = logging.getLogger(__name__)


class OAuthProvider:
    """Validates inbound requests and hands out tokens.

    Every operation first rejects a transmitted ``oauth_token_secret``, then
    loads the stored token secret the phase needs for signature validation,
    then runs the inspectors in registration order. The first inspector to
    raise stops the request.
    """

    def __init__(self, token_store: TokenStore, *inspectors: ContextInspector):
        if token_store is None:
            raise ValueError("A token store is required")

        self.token_store = token_store
        self._inspectors: list[ContextInspector] = list(inspectors)

    @property
    def inspectors(self) -> list[ContextInspector]:
        return list(self._inspectors)

    def add_inspector(self, inspector: ContextInspector) -> None:
        self._inspectors.append(inspector)

    # Operations

    def grant_request_token(self, context: OAuthContext) -> RequestToken:
        """Issue a request token.

        Raises:
            OAuthException: If the context carries a token or fails inspection
        """
        if context.token is not None:
            raise errors.request_for_token_must_not_include_token(context)

        self.inspect_request(ProviderPhase.GRANT_REQUEST_TOKEN, context)

        token = self.token_store.create_request_token(context)
        logger.debug(f"Granted request token to consumer {context.consumer_key}")
        return token

    def exchange_request_token_for_access_token(self, context: OAuthContext) -> AccessToken:
        """Consume an authorized request token and return its access token.

        Raises:
            OAuthException: If inspection fails, the token was already used,
                or the user has not granted (or has denied) access
        """
        self.inspect_request(ProviderPhase.EXCHANGE_REQUEST_TOKEN_FOR_ACCESS_TOKEN, context)

        self.token_store.consume_request_token(context)

        status = self.token_store.get_status_of_request_for_access(context)
        if status is RequestForAccessStatus.UNKNOWN:
            raise errors.consumer_has_not_been_granted_access_yet(context)
        if status is not RequestForAccessStatus.GRANTED:
            raise errors.consumer_has_been_denied_access(context)

        access_token = self.token_store.get_access_token_associated_with_request_token(context)
        if access_token is None:
            raise errors.consumer_has_not_been_granted_access_yet(context)

        logger.debug(f"Exchanged request token for access token (consumer {context.consumer_key})")
        return access_token

    def create_access_token(self, context: OAuthContext) -> AccessToken:
        """Issue an access token without a request token (xAuth)."""
        self.inspect_request(ProviderPhase.CREATE_ACCESS_TOKEN, context)
        return self.token_store.create_access_token(context)

    def access_protected_resource_request(self, context: OAuthContext) -> None:
        """Authorize a protected resource request.

        Raises:
            OAuthException: If inspection fails or the access token is
                unknown or expired
        """
        self.inspect_request(ProviderPhase.ACCESS_PROTECTED_RESOURCE_REQUEST, context)
        self.token_store.consume_access_token(context)

    def renew_access_token(self, context: OAuthContext) -> TokenBase:
        """Issue a replacement for the context's access token."""
        self.inspect_request(ProviderPhase.RENEW_ACCESS_TOKEN, context)
        return self.token_store.renew_access_token(context)

    # Pipeline

    def inspect_request(self, phase: ProviderPhase, context: OAuthContext) -> None:
        if context.token_secret:
            logger.warning(f"Consumer {context.consumer_key} transmitted its token secret")
            raise errors.token_secret_transmitted(context)

        self._add_stored_token_secret_to_context(phase, context)

        for inspector in self._inspectors:
            inspector.inspect_context(phase, context)

    def _add_stored_token_secret_to_context(self, phase: ProviderPhase, context: OAuthContext) -> None:
        if phase is ProviderPhase.EXCHANGE_REQUEST_TOKEN_FOR_ACCESS_TOKEN:
            context.token_secret = self.token_store.get_request_token_secret(context)
        elif phase in (ProviderPhase.ACCESS_PROTECTED_RESOURCE_REQUEST, ProviderPhase.RENEW_ACCESS_TOKEN):
            context.token_secret = self.token_store.get_access_token_secret(context)


def build_provider(
    token_store: TokenStore,
    consumer_store: ConsumerStore,
    nonce_store: NonceStore,
    config: "ProviderConfig | None" = None,
    extra_inspectors: Iterable[ContextInspector] = (),
) -> OAuthProvider:
    """Assemble a provider with the standard inspection pipeline.

    Order: signature, nonce, timestamp, consumer, then the 1.0a and body
    hash checks when enabled, then ``extra_inspectors``.
    """
    if config is None:
        from ..config import ProviderConfig

        config = ProviderConfig()

    provider = OAuthProvider(
        token_store,
        SignatureValidationInspector(consumer_store),
        NonceStoreInspector(nonce_store),
        TimestampRangeInspector(
            timedelta(seconds=config.max_timestamp_age),
            timedelta(seconds=config.max_timestamp_skew),
        ),
        ConsumerValidationInspector(consumer_store),
    )

    if config.require_oauth10a:
        provider.add_inspector(OAuth10aInspector(token_store))

    if config.validate_body_hash:
        provider.add_inspector(BodyHashValidationInspector())

    for inspector in extra_inspectors:
        provider.add_inspector(inspector)

    return provider
