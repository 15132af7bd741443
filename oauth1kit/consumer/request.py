"""Fluent construction and execution of signed consumer requests."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

import httpx

from ..context import OAuthContext
from ..encoding import format_query_string, parse_form_parameters, url_encode
from ..errors import ConsumerConfigurationError, OAuthException
from ..parameters import AUTHORIZATION_HEADER, HTTP_FORM_ENCODED, OAUTH_PROBLEM, OAUTH_TOKEN_SECRET
from ..problem import OAuthProblemReport
from ..tokens import TokenBase
from .context import ConsumerContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 30.0
DEFAULT_RAW_CONTENT_TYPE = "application/octet-stream"


@dataclass
class RequestDescription:
    """Everything needed to put a signed request on the wire.

    Attributes:
        url: Request URL including the query string
        method: HTTP method
        content_type: Body content type, if there is a body
        body: Text body (form-encoded parameters or encoded raw text)
        raw_body: Binary body
        headers: Request headers, including ``Authorization`` in header mode
    """

    url: str
    method: str
    content_type: str | None = None
    body: str | None = None
    raw_body: bytes | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def content(self) -> bytes | None:
        if self.body:
            return self.body.encode("utf-8")
        if self.raw_body:
            return self.raw_body
        return None


def _merge(destination: dict[str, str], items: Mapping[str, Any] | None, extra: Mapping[str, Any]) -> None:
    for source in (items or {}, extra):
        for key, value in source.items():
            destination[key] = "" if value is None else str(value)


def wrap_http_error(context: OAuthContext, body: str) -> OAuthException | None:
    """Turn an HTTP error carrying a problem report into an ``OAuthException``.

    Returns:
        The exception to raise, or None if the body holds no problem report
    """
    if OAUTH_PROBLEM not in body:
        return None

    report = OAuthProblemReport.parse(body)
    return OAuthException(
        context,
        report.problem,
        report.problem_advice or report.problem or "",
        report,
    )


class ConsumerRequest:
    """A request being built, signed and sent by a consumer.

    Example:
        response = (
            session.request()
            .get()
            .for_url("https://api.example.com/photos")
            .with_query_parameters(size="original")
            .sign_with_token()
            .send()
        )
    """

    def __init__(
        self,
        context: OAuthContext,
        consumer_context: ConsumerContext,
        token: TokenBase | None = None,
    ):
        self.context = context
        self.consumer_context = consumer_context
        self.token = token

        self.accepts_type: str | None = None
        self.proxy_server_uri: str | None = None
        self.request_body: str | None = None
        self.response_body_action: Callable[[str], None] | None = None
        self.timeout: float | None = None

        self._response_body: str | None = None

    # Building

    def for_method(self, method: str) -> "ConsumerRequest":
        self.context.request_method = method.upper()
        return self

    def get(self) -> "ConsumerRequest":
        return self.for_method("GET")

    def post(self) -> "ConsumerRequest":
        return self.for_method("POST")

    def put(self) -> "ConsumerRequest":
        return self.for_method("PUT")

    def delete(self) -> "ConsumerRequest":
        return self.for_method("DELETE")

    def for_uri(self, uri: str | httpx.URL) -> "ConsumerRequest":
        self.context.raw_uri = str(uri)
        return self

    def for_url(self, url: str) -> "ConsumerRequest":
        return self.for_uri(url)

    def alter_context(self, action: Callable[[OAuthContext], Any]) -> "ConsumerRequest":
        """Apply an arbitrary change to the underlying context."""
        action(self.context)
        return self

    def with_query_parameters(self, parameters: Mapping[str, Any] | None = None, **kwargs: Any) -> "ConsumerRequest":
        _merge(self.context.query_parameters, parameters, kwargs)
        return self

    def with_form_parameters(self, parameters: Mapping[str, Any] | None = None, **kwargs: Any) -> "ConsumerRequest":
        _merge(self.context.form_encoded_parameters, parameters, kwargs)
        return self

    def with_headers(self, headers: Mapping[str, Any] | None = None, **kwargs: Any) -> "ConsumerRequest":
        _merge(self.context.headers, headers, kwargs)
        return self

    def with_cookies(self, cookies: Mapping[str, Any] | None = None, **kwargs: Any) -> "ConsumerRequest":
        _merge(self.context.cookies, cookies, kwargs)
        return self

    def with_body(self, body: str) -> "ConsumerRequest":
        """Send a raw text body (url-encoded on the wire)."""
        self.request_body = body
        return self

    def with_raw_content(self, content: bytes, content_type: str = DEFAULT_RAW_CONTENT_TYPE) -> "ConsumerRequest":
        """Send a binary body verbatim."""
        self.context.raw_content = content
        self.context.raw_content_type = content_type
        return self

    def with_accepts_type(self, accepts_type: str) -> "ConsumerRequest":
        self.accepts_type = accepts_type
        return self

    def with_timeout(self, timeout: float) -> "ConsumerRequest":
        self.timeout = timeout
        return self

    # Signing

    def _ensure_not_signed(self) -> None:
        if self.context.signature:
            raise ConsumerConfigurationError("The consumer request has already been signed")

    def sign_without_token(self) -> "ConsumerRequest":
        self._ensure_not_signed()
        self.consumer_context.sign_context(self.context)
        return self

    def sign_with_token(self, token: TokenBase | None = None) -> "ConsumerRequest":
        self._ensure_not_signed()
        token = token or self.token
        if token is None:
            raise ConsumerConfigurationError("No token is available to sign the request with")
        self.consumer_context.sign_context_with_token(self.context, token)
        return self

    def get_request_description(self) -> RequestDescription:
        """Sign the request if needed and describe it.

        The body is the first of: form-encoded parameters, the raw text
        body, or the raw binary content.
        """
        if not self.context.signature:
            if self.token is not None:
                self.consumer_context.sign_context_with_token(self.context, self.token)
            else:
                self.consumer_context.sign_context(self.context)

        description = RequestDescription(
            url=self.context.generate_uri(),
            method=self.context.request_method or "GET",
        )

        form_parameters = [
            (key, value)
            for key, value in self.context.form_encoded_parameters.items()
            if key != OAUTH_TOKEN_SECRET
        ]

        if self.context.form_encoded_parameters:
            description.content_type = HTTP_FORM_ENCODED
            description.body = format_query_string(form_parameters)
        elif self.request_body:
            description.body = url_encode(self.request_body)
        elif self.context.raw_content is not None:
            description.content_type = self.context.raw_content_type
            description.raw_body = self.context.raw_content

        description.headers.update(self.context.headers)

        if self.consumer_context.use_header_for_oauth_parameters:
            description.headers[AUTHORIZATION_HEADER] = self.context.generate_oauth_parameters_for_header()

        return description

    # Sending

    def _build_headers(self, description: RequestDescription) -> dict[str, str]:
        headers = dict(description.headers)
        if self.consumer_context.user_agent:
            headers["User-Agent"] = self.consumer_context.user_agent
        if self.accepts_type:
            headers["Accept"] = self.accepts_type
        if description.content is not None and description.content_type:
            headers["Content-Type"] = description.content_type
        return headers

    def to_httpx_request(self, http_client: httpx.Client | httpx.AsyncClient | None = None) -> httpx.Request:
        """Build the ``httpx.Request`` for this consumer request."""
        description = self.get_request_description()
        headers = self._build_headers(description)

        if http_client is not None:
            return http_client.build_request(
                description.method,
                description.url,
                headers=headers,
                content=description.content,
                timeout=self.timeout if self.timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )

        return httpx.Request(description.method, description.url, headers=headers, content=description.content)

    def _client_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"timeout": self.timeout if self.timeout is not None else DEFAULT_TIMEOUT}
        if self.proxy_server_uri:
            options["proxy"] = self.proxy_server_uri
        return options

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = response.text
            if self.response_body_action:
                self.response_body_action(body)
            wrapped = wrap_http_error(self.context, body)
            if wrapped is not None:
                logger.warning(
                    f"{self.context.request_method} {self.context.normalized_request_url} "
                    f"failed with OAuth problem {wrapped.problem}"
                )
                raise wrapped from e
            raise
        return response

    def send(self, http_client: httpx.Client | None = None) -> httpx.Response:
        """Send the request.

        Args:
            http_client: Optional HTTP client; one is created (and closed)
                when omitted

        Returns:
            The successful response

        Raises:
            OAuthException: If the provider answered with a problem report
            httpx.HTTPError: For any other transport or HTTP failure
        """
        client = http_client or httpx.Client(**self._client_options())
        should_close = http_client is None

        try:
            response = client.send(self.to_httpx_request(client))
            return self._handle_response(response)
        finally:
            if should_close:
                client.close()

    async def asend(self, http_client: httpx.AsyncClient | None = None) -> httpx.Response:
        """Send the request asynchronously (see ``send``)."""
        client = http_client or httpx.AsyncClient(**self._client_options())
        should_close = http_client is None

        try:
            response = await client.send(self.to_httpx_request(client))
            return self._handle_response(response)
        finally:
            if should_close:
                await client.aclose()

    # Reading responses

    def _parse_body_parameters(self, body: str) -> dict[str, str]:
        if self.response_body_action:
            self.response_body_action(body)
        return parse_form_parameters(body)

    def read_body(self, http_client: httpx.Client | None = None) -> str:
        """Send the request once and return the response body."""
        if self._response_body is None:
            self._response_body = self.send(http_client).text
        return self._response_body

    async def aread_body(self, http_client: httpx.AsyncClient | None = None) -> str:
        if self._response_body is None:
            response = await self.asend(http_client)
            self._response_body = response.text
        return self._response_body

    def to_body_parameters(self, http_client: httpx.Client | None = None) -> dict[str, str]:
        """Send the request and parse the form-encoded response body."""
        return self._parse_body_parameters(self.read_body(http_client))

    async def ato_body_parameters(self, http_client: httpx.AsyncClient | None = None) -> dict[str, str]:
        return self._parse_body_parameters(await self.aread_body(http_client))

    def select(self, selector: Callable[[dict[str, str]], T], http_client: httpx.Client | None = None) -> T:
        """Send the request and map the response parameters with ``selector``."""
        return selector(self.to_body_parameters(http_client))

    async def aselect(
        self, selector: Callable[[dict[str, str]], T], http_client: httpx.AsyncClient | None = None
    ) -> T:
        return selector(await self.ato_body_parameters(http_client))
