"""The per-request OAuth context.

An ``OAuthContext`` is the parameter bag for one HTTP request: the protocol
parameters (consumer key, token, nonce, ...) plus the transport collections
they are carried in. Consumers fill one in and sign it; providers parse an
inbound request into one and inspect it.

Protocol parameters are *bound*: each lives in exactly one of the
authorization header, the query string or the form body, depending on the
request's configuration (see ``OAuthContext.parameter_location``).
"""

import base64
import hashlib
from enum import Enum
from typing import Any
from urllib.parse import parse_qsl, urlsplit

from . import errors
from .encoding import QueryParameter, format_parameters, format_query_string, normalize_uri, url_encode
from .parameters import (
    OAUTH_BODY_HASH,
    OAUTH_CALLBACK,
    OAUTH_CONSUMER_KEY,
    OAUTH_NONCE,
    OAUTH_PARAMETER_PREFIX,
    OAUTH_SESSION_HANDLE,
    OAUTH_SIGNATURE,
    OAUTH_SIGNATURE_METHOD,
    OAUTH_TIMESTAMP,
    OAUTH_TOKEN,
    OAUTH_TOKEN_SECRET,
    OAUTH_VERIFIER,
    OAUTH_VERSION,
    REALM,
    XAUTH_MODE,
    XAUTH_PARAMETER_PREFIX,
    XAUTH_PASSWORD,
    XAUTH_USERNAME,
)


class ParameterLocation(str, Enum):
    """Where bound protocol parameters are stored for a request."""

    AUTHORIZATION_HEADER = "authorization_header"
    QUERY = "query"
    FORM = "form"


def _excluding_token_secret(parameters: dict[str, str]) -> list[QueryParameter]:
    return [(key, value) for key, value in parameters.items() if key != OAUTH_TOKEN_SECRET]


class _BoundParameter:
    """Descriptor exposing a protocol parameter as a context attribute."""

    def __init__(self, name: str):
        self.name = name

    def __set_name__(self, owner: type, attribute: str) -> None:
        self.attribute = attribute

    def __get__(self, instance: "OAuthContext | None", owner: type) -> Any:
        if instance is None:
            return self
        return instance.get_parameter(self.name)

    def __set__(self, instance: "OAuthContext", value: str | None) -> None:
        instance.set_parameter(self.name, value)


class OAuthContext:
    """Parameters and transport data for a single request.

    Attributes:
        request_method: HTTP method, upper case
        normalized_request_url: ``scheme://host[:port]path`` of ``raw_uri``
        raw_content: Raw request body
        raw_content_type: Content type of ``raw_content``
        use_authorization_header: Carry protocol parameters in the
            ``Authorization`` header
        include_body_hash_in_signature: Compute ``oauth_body_hash`` before
            building the signature base
        query_parameters: Decoded query string parameters
        form_encoded_parameters: Decoded form body parameters
        headers: Request headers
        cookies: Request cookies
        authorization_header_parameters: Decoded ``Authorization`` header
            parameters, including ``realm``
    """

    consumer_key = _BoundParameter(OAUTH_CONSUMER_KEY)
    token = _BoundParameter(OAUTH_TOKEN)
    token_secret = _BoundParameter(OAUTH_TOKEN_SECRET)
    signature = _BoundParameter(OAUTH_SIGNATURE)
    signature_method = _BoundParameter(OAUTH_SIGNATURE_METHOD)
    nonce = _BoundParameter(OAUTH_NONCE)
    timestamp = _BoundParameter(OAUTH_TIMESTAMP)
    version = _BoundParameter(OAUTH_VERSION)
    callback_url = _BoundParameter(OAUTH_CALLBACK)
    verifier = _BoundParameter(OAUTH_VERIFIER)
    session_handle = _BoundParameter(OAUTH_SESSION_HANDLE)
    body_hash = _BoundParameter(OAUTH_BODY_HASH)
    xauth_mode = _BoundParameter(XAUTH_MODE)
    xauth_username = _BoundParameter(XAUTH_USERNAME)
    xauth_password = _BoundParameter(XAUTH_PASSWORD)

    def __init__(
        self,
        *,
        request_method: str | None = None,
        raw_uri: str | None = None,
        use_authorization_header: bool = False,
        include_body_hash_in_signature: bool = False,
        raw_content: bytes | None = None,
        raw_content_type: str | None = None,
        **parameters: str | None,
    ):
        """Create a context.

        Args:
            request_method: HTTP method
            raw_uri: Absolute request URL; its query string is parsed into
                ``query_parameters``
            use_authorization_header: Carry protocol parameters in the header
            include_body_hash_in_signature: Sign ``oauth_body_hash``
            raw_content: Raw request body
            raw_content_type: Content type of ``raw_content``
            **parameters: Bound parameters by attribute name (``consumer_key``,
                ``token``, ``realm``, ...), set after the mode fields above
        """
        self.query_parameters: dict[str, str] = {}
        self.form_encoded_parameters: dict[str, str] = {}
        self.headers: dict[str, str] = {}
        self.cookies: dict[str, str] = {}
        self.authorization_header_parameters: dict[str, str] = {}

        self.request_method = request_method.upper() if request_method else None
        self.use_authorization_header = use_authorization_header
        self.include_body_hash_in_signature = include_body_hash_in_signature
        self.raw_content = raw_content
        self.raw_content_type = raw_content_type

        self._raw_uri: str | None = None
        self.normalized_request_url: str | None = None
        if raw_uri is not None:
            self.raw_uri = raw_uri

        for attribute, value in parameters.items():
            if attribute != "realm" and not isinstance(getattr(type(self), attribute, None), _BoundParameter):
                raise TypeError(f"Unknown context parameter: {attribute}")
            setattr(self, attribute, value)

    # Parameter binding

    def parameter_location(self) -> ParameterLocation:
        """Resolve where bound parameters are written for this request."""
        if self.use_authorization_header:
            return ParameterLocation.AUTHORIZATION_HEADER
        if self.request_method == "GET":
            return ParameterLocation.QUERY
        return ParameterLocation.FORM

    def _collection(self, location: ParameterLocation) -> dict[str, str]:
        if location is ParameterLocation.AUTHORIZATION_HEADER:
            return self.authorization_header_parameters
        if location is ParameterLocation.QUERY:
            return self.query_parameters
        return self.form_encoded_parameters

    def get_parameter(self, name: str) -> str | None:
        """Read a protocol parameter from header, then query, then form.

        The first hit wins whatever the current binding mode is, so a
        provider can read requests signed under any mode.
        """
        for location in ParameterLocation:
            value = self._collection(location).get(name)
            if value is not None:
                return value
        return None

    def set_parameter(self, name: str, value: str | None) -> None:
        """Write a protocol parameter into the resolved collection.

        An empty or None value removes the parameter instead.
        """
        collection = self._collection(self.parameter_location())
        if value is None or value == "":
            collection.pop(name, None)
        else:
            collection[name] = str(value)

    @property
    def realm(self) -> str | None:
        return self.authorization_header_parameters.get(REALM)

    @realm.setter
    def realm(self, value: str | None) -> None:
        if value is None:
            self.authorization_header_parameters.pop(REALM, None)
        else:
            self.authorization_header_parameters[REALM] = value

    @property
    def raw_uri(self) -> str | None:
        return self._raw_uri

    @raw_uri.setter
    def raw_uri(self, value: str) -> None:
        self._raw_uri = value
        for key, item in parse_qsl(urlsplit(value).query, keep_blank_values=True):
            self.query_parameters[key] = item
        self.normalized_request_url = normalize_uri(value)

    # Body hash

    def generate_body_hash(self) -> str:
        """Base64 SHA-1 of the raw body (an empty body hashes too)."""
        digest = hashlib.sha1(self.raw_content or b"").digest()
        return base64.b64encode(digest).decode("ascii")

    def generate_and_set_body_hash(self) -> None:
        self.body_hash = self.generate_body_hash()

    # Generation

    def generate_signature_base(self) -> str:
        """Build the signature base string for this request.

        Returns:
            ``METHOD&encoded_url&encoded_parameters``

        Raises:
            OAuthException: If the consumer key, signature method or request
                method is missing
        """
        if not self.consumer_key:
            raise errors.missing_required_parameter(self, OAUTH_CONSUMER_KEY)

        if not self.signature_method:
            raise errors.missing_required_parameter(self, OAUTH_SIGNATURE_METHOD)

        if not self.request_method:
            raise errors.request_method_not_assigned(self)

        if self.include_body_hash_in_signature:
            self.generate_and_set_body_hash()

        all_parameters: list[QueryParameter] = []

        # Only POST bodies take part in the signature
        if self.request_method == "POST":
            all_parameters.extend(_excluding_token_secret(self.form_encoded_parameters))

        all_parameters.extend(_excluding_token_secret(self.query_parameters))
        all_parameters.extend(_excluding_token_secret(self.cookies))
        all_parameters.extend(
            (key, value)
            for key, value in _excluding_token_secret(self.authorization_header_parameters)
            if key != REALM
        )

        all_parameters = [(key, value) for key, value in all_parameters if key != OAUTH_SIGNATURE]

        return format_parameters(self.request_method, self.normalized_request_url, all_parameters)

    def generate_oauth_parameters_for_header(self) -> str:
        """Render the ``Authorization`` header value.

        Returns:
            ``OAuth realm="...",key="value",...`` without the token secret
        """
        items: list[str] = []

        if self.realm is not None:
            items.append(f'realm="{self.realm}"')

        for key, value in _excluding_token_secret(self.authorization_header_parameters):
            if key == REALM:
                continue
            items.append(f'{url_encode(key)}="{url_encode(value)}"')

        return "OAuth " + ",".join(items)

    def _base_url(self) -> str:
        if self.normalized_request_url is None:
            raise ValueError("The context has no request URL")
        return self.normalized_request_url

    def generate_uri(self) -> str:
        """Request URL with the current query parameters, token secret excluded."""
        query = format_query_string(_excluding_token_secret(self.query_parameters))
        return f"{self._base_url()}?{query}" if query else self._base_url()

    def generate_uri_without_oauth_parameters(self) -> str:
        """Request URL with only the non-protocol query parameters."""
        query = format_query_string(
            (key, value)
            for key, value in self.query_parameters.items()
            if not key.startswith(OAUTH_PARAMETER_PREFIX) and not key.startswith(XAUTH_PARAMETER_PREFIX)
        )
        return f"{self._base_url()}?{query}" if query else self._base_url()

    def generate_url(self) -> str:
        """Request URL followed by ``?`` and every query parameter."""
        return f"{self._base_url()}?{format_query_string(self.query_parameters)}"

    def __repr__(self) -> str:
        return (
            f"OAuthContext(request_method={self.request_method!r}, "
            f"url={self.normalized_request_url!r}, "
            f"location={self.parameter_location().value})"
        )
