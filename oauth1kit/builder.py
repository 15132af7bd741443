"""Build ``OAuthContext`` instances from inbound requests.

Providers use this to turn whatever their web framework hands them into the
context shape the inspectors expect.
"""

import logging
import re
from collections.abc import Callable, Mapping
from urllib.parse import unquote_plus, urlsplit

import httpx

from . import errors
from .context import OAuthContext
from .encoding import get_header_parameters, parse_form_parameters
from .parameters import AUTHORIZATION_HEADER, HTTP_FORM_ENCODED

logger = logging.getLogger(__name__)

COOKIE_PATTERN = re.compile(r"^(\S*)=(\S*)$")


def _identity(url: str) -> str:
    return url


class OAuthContextBuilder:
    """Creates contexts from URLs and raw or ``httpx`` requests.

    Example:
        builder = OAuthContextBuilder()
        context = builder.from_request("POST", url, headers=headers, body=body)
        provider.access_protected_resource_request(context)
    """

    def __init__(self, uri_adjuster: Callable[[str], str] | None = None):
        """Initialize the builder.

        Args:
            uri_adjuster: Rewrites the request URL before it is parsed, e.g.
                to restore the public host behind a reverse proxy
        """
        self._uri_adjuster = uri_adjuster or _identity

    def clean_uri(self, url: str) -> str:
        adjusted = self._uri_adjuster(url)
        # Some platforms append a stray "&" to the query string
        if adjusted.endswith("&"):
            adjusted = adjusted[:-1]
        return adjusted

    def from_url(self, http_method: str, url: str) -> OAuthContext:
        """Create a context for a method and URL.

        Raises:
            ValueError: If the URL is empty or not absolute
        """
        if not url:
            raise ValueError("A URL is required")

        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"Failed to parse url: {url} into a valid Uri instance")

        return OAuthContext(request_method=http_method, raw_uri=self.clean_uri(url))

    def from_uri(self, http_method: str, uri: str | httpx.URL) -> OAuthContext:
        return self.from_url(http_method, str(uri))

    def collect_cookies(self, cookie_header: str | None) -> dict[str, str]:
        """Parse a ``Cookie`` header into a dict."""
        cookies: dict[str, str] = {}
        if not cookie_header:
            return cookies

        for cookie in cookie_header.split(";"):
            match = COOKIE_PATTERN.match(cookie.strip())
            if match:
                # "+" must survive decoding
                cookies[match.group(1)] = unquote_plus(match.group(2)).replace(" ", "+")

        return cookies

    def from_request(
        self,
        http_method: str,
        url: str,
        headers: Mapping[str, str] | None = None,
        body: bytes | str | None = None,
    ) -> OAuthContext:
        """Create a context from the parts of an inbound request.

        Form-encoded bodies are parsed into ``form_encoded_parameters``; an
        ``OAuth`` Authorization header switches the context to header mode.

        Args:
            http_method: HTTP method
            url: Full request URL including the query string
            headers: Request headers (looked up case-insensitively)
            body: Raw request body
        """
        context = self.from_url(http_method, url)

        request_headers = httpx.Headers(dict(headers or {}))
        context.headers = dict(request_headers.items())
        context.cookies = self.collect_cookies(request_headers.get("cookie"))

        raw = body.encode("utf-8") if isinstance(body, str) else body
        if raw:
            context.raw_content = raw
            context.raw_content_type = request_headers.get("content-type")

        content_type = request_headers.get("content-type", "")
        if raw and HTTP_FORM_ENCODED in content_type.lower():
            try:
                form_body = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise errors.undecodable_form_body(context) from e
            context.form_encoded_parameters = parse_form_parameters(form_body)

        authorization = request_headers.get(AUTHORIZATION_HEADER)
        if authorization is not None:
            context.authorization_header_parameters = dict(get_header_parameters(authorization) or [])
            context.use_authorization_header = True

        logger.debug(
            f"Built context for {context.request_method} {context.normalized_request_url} "
            f"(location={context.parameter_location().value})"
        )
        return context

    def from_httpx_request(self, request: httpx.Request) -> OAuthContext:
        """Create a context from an ``httpx.Request`` (e.g. in a mock transport)."""
        return self.from_request(
            request.method,
            str(request.url),
            headers=dict(request.headers.items()),
            body=request.content,
        )
