"""Consumer session: the OAuth 1.0a three-legged flow plus xAuth and renewal.

Typical flow:

    session = OAuthSession(
        consumer,
        request_token_uri="https://api.example.com/oauth/request_token",
        user_authorize_uri="https://api.example.com/oauth/authorize",
        access_token_uri="https://api.example.com/oauth/access_token",
        callback_uri="https://app.example.com/callback",
    )

    request_token = session.get_request_token()
    redirect_to = session.get_user_authorization_url_for_token(request_token)
    # ... user authorizes, provider redirects back with oauth_verifier ...
    access_token = session.exchange_request_token_for_access_token(request_token, verifier)

    response = session.request().get().for_url("https://api.example.com/me").send()
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import parse_qsl, urlsplit, urlunsplit

import httpx

from ..context import OAuthContext
from ..encoding import format_query_string
from ..errors import ConsumerConfigurationError, callback_was_not_confirmed
from ..parameters import OAUTH_CALLBACK, OAUTH_TOKEN, OUT_OF_BAND_CALLBACK
from ..tokens import AccessToken, RequestToken, TokenBase
from .context import ConsumerContext
from .request import ConsumerRequest

logger = logging.getLogger(__name__)


def parse_callback_uri(callback_url: str | None) -> str | None:
    """Normalize a configured callback; empty and ``oob`` mean no callback."""
    if not callback_url or callback_url.lower() == OUT_OF_BAND_CALLBACK:
        return None
    return callback_url


def _add_items(destination: dict[str, str], items: Mapping[str, Any] | None, extra: Mapping[str, Any]) -> None:
    for source in (items or {}, extra):
        for key, value in source.items():
            destination[key] = "" if value is None else str(value)


class OAuthSession:
    """A consumer's conversation with one provider.

    Holds the provider endpoints, the current access token and parameters
    added to every request made through the session.
    """

    def __init__(
        self,
        consumer_context: ConsumerContext,
        request_token_uri: str | None = None,
        user_authorize_uri: str | None = None,
        access_token_uri: str | None = None,
        callback_uri: str | None = None,
    ):
        """Initialize the session.

        Args:
            consumer_context: Consumer credentials and signing settings
            request_token_uri: Request token endpoint
            user_authorize_uri: User authorization page
            access_token_uri: Access token endpoint (also used for xAuth
                and renewal)
            callback_uri: Callback URL; None or ``"oob"`` for out-of-band
        """
        self.consumer_context = consumer_context
        self.request_token_uri = request_token_uri
        self.user_authorize_uri = user_authorize_uri
        self.access_token_uri = access_token_uri
        self.callback_uri = parse_callback_uri(callback_uri)

        self.access_token: TokenBase | None = None
        self.add_body_hashes_to_raw_requests = False
        self.callback_must_be_confirmed = False
        self.proxy_server_uri: str | None = None
        self.response_body_action: Callable[[str], None] | None = None

        self._query_parameters: dict[str, str] = {}
        self._form_parameters: dict[str, str] = {}
        self._headers: dict[str, str] = {}
        self._cookies: dict[str, str] = {}

    @classmethod
    def for_endpoint(cls, consumer_context: ConsumerContext, endpoint_uri: str) -> "OAuthSession":
        """Create a session whose three endpoints share one URL."""
        return cls(consumer_context, endpoint_uri, endpoint_uri, endpoint_uri)

    # Session configuration

    def with_query_parameters(self, parameters: Mapping[str, Any] | None = None, **kwargs: Any) -> "OAuthSession":
        _add_items(self._query_parameters, parameters, kwargs)
        return self

    def with_form_parameters(self, parameters: Mapping[str, Any] | None = None, **kwargs: Any) -> "OAuthSession":
        _add_items(self._form_parameters, parameters, kwargs)
        return self

    def with_headers(self, headers: Mapping[str, Any] | None = None, **kwargs: Any) -> "OAuthSession":
        _add_items(self._headers, headers, kwargs)
        return self

    def with_cookies(self, cookies: Mapping[str, Any] | None = None, **kwargs: Any) -> "OAuthSession":
        _add_items(self._cookies, cookies, kwargs)
        return self

    def enable_oauth_request_body_hashes(self) -> "OAuthSession":
        """Sign an ``oauth_body_hash`` of the raw body on every request."""
        self.add_body_hashes_to_raw_requests = True
        return self

    def requires_callback_confirmation(self) -> "OAuthSession":
        """Fail request token calls the provider does not confirm (1.0a)."""
        self.callback_must_be_confirmed = True
        return self

    # Requests

    def request(self, access_token: TokenBase | None = None) -> ConsumerRequest:
        """Start a request seeded with the session-wide parameters."""
        context = OAuthContext(
            use_authorization_header=self.consumer_context.use_header_for_oauth_parameters,
            include_body_hash_in_signature=self.add_body_hashes_to_raw_requests,
        )
        context.cookies.update(self._cookies)
        context.form_encoded_parameters.update(self._form_parameters)
        context.headers.update(self._headers)
        context.query_parameters.update(self._query_parameters)

        consumer_request = ConsumerRequest(context, self.consumer_context, access_token or self.access_token)
        consumer_request.proxy_server_uri = self.proxy_server_uri
        consumer_request.response_body_action = self.response_body_action
        return consumer_request

    def _require(self, uri: str | None, name: str) -> str:
        if not uri:
            raise ConsumerConfigurationError(f"The session has no {name} configured")
        return uri

    def build_request_token_context(self, method: str = "GET") -> ConsumerRequest:
        """Build the signed request token call."""
        uri = self._require(self.request_token_uri, "request_token_uri")

        def set_callback(context: OAuthContext) -> None:
            context.callback_url = self.callback_uri or OUT_OF_BAND_CALLBACK

        def clear_token(context: OAuthContext) -> None:
            context.token = None

        return (
            self.request()
            .for_method(method)
            .alter_context(set_callback)
            .alter_context(clear_token)
            .for_uri(uri)
            .sign_without_token()
        )

    def build_exchange_request_token_for_access_token_context(
        self, request_token: TokenBase, method: str = "GET", verifier: str | None = None
    ) -> ConsumerRequest:
        """Build the signed access token call for a request token."""
        uri = self._require(self.access_token_uri, "access_token_uri")

        def set_verifier(context: OAuthContext) -> None:
            context.verifier = verifier

        return (
            self.request()
            .for_method(method)
            .alter_context(set_verifier)
            .for_uri(uri)
            .sign_with_token(request_token)
        )

    def build_access_token_context(
        self, method: str, xauth_mode: str, xauth_username: str, xauth_password: str
    ) -> ConsumerRequest:
        """Build the signed xAuth access token call."""
        uri = self._require(self.access_token_uri, "access_token_uri")

        def set_xauth(context: OAuthContext) -> None:
            context.xauth_username = xauth_username
            context.xauth_password = xauth_password
            context.xauth_mode = xauth_mode

        return self.request().for_method(method).alter_context(set_xauth).for_uri(uri).sign_without_token()

    def build_renew_access_token_context(
        self, access_token: TokenBase, method: str, session_handle: str
    ) -> ConsumerRequest:
        """Build the signed access token renewal call."""
        uri = self._require(self.access_token_uri, "access_token_uri")

        def set_session_handle(context: OAuthContext) -> None:
            context.session_handle = session_handle

        return (
            self.request()
            .for_method(method)
            .alter_context(set_session_handle)
            .for_uri(uri)
            .sign_with_token(access_token)
        )

    # Flow

    def _request_token_from(self, parameters: dict[str, str]) -> RequestToken:
        token = RequestToken.from_response_parameters(
            parameters,
            consumer_key=self.consumer_context.consumer_key,
            realm=self.consumer_context.realm,
        )
        token.callback_url = self.callback_uri

        if not token.callback_confirmed and self.callback_must_be_confirmed:
            raise callback_was_not_confirmed()

        logger.debug(f"Obtained request token (callback confirmed: {token.callback_confirmed})")
        return token

    def _access_token_from(self, parameters: dict[str, str], consumer_key: str | None) -> AccessToken:
        token = AccessToken.from_response_parameters(
            parameters,
            consumer_key=consumer_key,
            realm=self.consumer_context.realm,
        )
        self.access_token = token
        return token

    def get_request_token(self, method: str = "GET", http_client: httpx.Client | None = None) -> RequestToken:
        """Obtain a request token.

        Raises:
            OAuthException: If the provider rejects the call, or the
                callback must be confirmed and was not
        """
        parameters = self.build_request_token_context(method).to_body_parameters(http_client)
        return self._request_token_from(parameters)

    async def aget_request_token(
        self, method: str = "GET", http_client: httpx.AsyncClient | None = None
    ) -> RequestToken:
        parameters = await self.build_request_token_context(method).ato_body_parameters(http_client)
        return self._request_token_from(parameters)

    def get_user_authorization_url_for_token(self, token: TokenBase, callback_url: str | None = None) -> str:
        """URL to send the user to so they can authorize ``token``.

        Existing query parameters of the authorize URL and the session's
        query parameters are kept.
        """
        uri = self._require(self.user_authorize_uri, "user_authorize_uri")
        parts = urlsplit(uri)

        collection: dict[str, str] = dict(parse_qsl(parts.query, keep_blank_values=True))
        collection.update(self._query_parameters)
        collection[OAUTH_TOKEN] = token.token

        if callback_url:
            collection[OAUTH_CALLBACK] = callback_url

        base = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
        return f"{base}?{format_query_string(collection)}"

    def exchange_request_token_for_access_token(
        self,
        request_token: TokenBase,
        verifier: str | None = None,
        method: str = "GET",
        http_client: httpx.Client | None = None,
    ) -> AccessToken:
        """Exchange an authorized request token for an access token."""
        parameters = self.build_exchange_request_token_for_access_token_context(
            request_token, method, verifier
        ).to_body_parameters(http_client)
        return self._access_token_from(parameters, request_token.consumer_key)

    async def aexchange_request_token_for_access_token(
        self,
        request_token: TokenBase,
        verifier: str | None = None,
        method: str = "GET",
        http_client: httpx.AsyncClient | None = None,
    ) -> AccessToken:
        parameters = await self.build_exchange_request_token_for_access_token_context(
            request_token, method, verifier
        ).ato_body_parameters(http_client)
        return self._access_token_from(parameters, request_token.consumer_key)

    def get_access_token_using_xauth(
        self,
        xauth_mode: str,
        username: str,
        password: str,
        method: str = "GET",
        http_client: httpx.Client | None = None,
    ) -> AccessToken:
        """Obtain an access token directly with user credentials (xAuth)."""
        parameters = self.build_access_token_context(method, xauth_mode, username, password).to_body_parameters(
            http_client
        )
        return self._access_token_from(parameters, self.consumer_context.consumer_key)

    async def aget_access_token_using_xauth(
        self,
        xauth_mode: str,
        username: str,
        password: str,
        method: str = "GET",
        http_client: httpx.AsyncClient | None = None,
    ) -> AccessToken:
        parameters = await self.build_access_token_context(
            method, xauth_mode, username, password
        ).ato_body_parameters(http_client)
        return self._access_token_from(parameters, self.consumer_context.consumer_key)

    def renew_access_token(
        self,
        access_token: TokenBase,
        session_handle: str,
        method: str = "GET",
        http_client: httpx.Client | None = None,
    ) -> AccessToken:
        """Renew an access token using its session handle."""
        parameters = self.build_renew_access_token_context(access_token, method, session_handle).to_body_parameters(
            http_client
        )
        return self._access_token_from(parameters, access_token.consumer_key)

    async def arenew_access_token(
        self,
        access_token: TokenBase,
        session_handle: str,
        method: str = "GET",
        http_client: httpx.AsyncClient | None = None,
    ) -> AccessToken:
        parameters = await self.build_renew_access_token_context(
            access_token, method, session_handle
        ).ato_body_parameters(http_client)
        return self._access_token_from(parameters, access_token.consumer_key)
