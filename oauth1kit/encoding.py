"""Percent-encoding, URL normalization and parameter formatting.

Everything that ends up on the wire or in a signature base string goes
through this module, so the encoding rules live in exactly one place:

- Values are encoded per RFC 3986 (only ``A-Z a-z 0-9 - . _ ~`` are left
  alone), which also escapes ``! * ' ( )``.
- Signature base parameters are sorted by encoded name, then encoded value.
- Query strings keep their input order.
"""

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import parse_qsl, quote, unquote_plus, urlsplit

from .parameters import (
    OAUTH_CALLBACK_CONFIRMED,
    OAUTH_PARAMETER_PREFIX,
    OAUTH_SESSION_HANDLE,
    OAUTH_TOKEN,
    OAUTH_TOKEN_SECRET,
    XAUTH_PARAMETER_PREFIX,
)


QueryParameter = tuple[str, str]
Parameters = Mapping[str, str] | Iterable[QueryParameter]

OAUTH_AUTHORIZATION_HEADER_START = "OAuth"
QUOTE_CHARACTERS = ('"', "'")

DEFAULT_PORTS = {"http": 80, "https": 443}


def _pairs(parameters: Parameters | None) -> list[QueryParameter]:
    """Flatten a mapping or an iterable of pairs into a list of pairs."""
    if parameters is None:
        return []
    if isinstance(parameters, Mapping):
        return [(key, value) for key, value in parameters.items()]
    return list(parameters)


def url_encode(value: Any) -> str:
    """Percent-encode a value per RFC 3986.

    Args:
        value: The value to encode (converted with ``str`` if not a string)

    Returns:
        The encoded value, or an empty string for None / empty input
    """
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    if not text:
        return ""
    # safe="" leaves only the RFC 3986 unreserved set unescaped
    return quote(text, safe="", encoding="utf-8", errors="strict")


def normalize_uri(uri: str) -> str:
    """Normalize a URL for inclusion in a signature base string.

    Produces ``scheme://host[:port]path``. The port is dropped when it is
    the scheme's default, and the path is dropped when it is just ``/``.

    Args:
        uri: Absolute URL

    Returns:
        Normalized URL without query or fragment
    """
    parts = urlsplit(uri)
    scheme = parts.scheme.lower()
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"

    normalized = f"{scheme}://{host}"

    port = parts.port
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        normalized += f":{port}"

    path = parts.path
    if path and path != "/":
        normalized += path

    return normalized


def normalize_request_parameters(parameters: Parameters) -> str:
    """Normalize parameters as per the OAuth core signature base rules.

    Names and values are encoded, then sorted by name (ordinal) and by value.
    Duplicate names are kept.

    Args:
        parameters: Mapping or iterable of (name, value) pairs

    Returns:
        ``name=value`` pairs joined with ``&``
    """
    encoded = [(url_encode(key), url_encode(value)) for key, value in _pairs(parameters)]
    encoded.sort(key=lambda pair: (pair[0], pair[1]))
    return "&".join(f"{key}={value}" for key, value in encoded)


def format_query_string(parameters: Parameters | None) -> str:
    """Format parameters as a query string, keeping their order.

    Args:
        parameters: Mapping or iterable of (name, value) pairs

    Returns:
        ``name=encoded_value`` pairs joined with ``&``
    """
    return "&".join(f"{key}={url_encode(value)}" for key, value in _pairs(parameters))


def format_parameters(http_method: str, url: str | None, parameters: Parameters) -> str:
    """Build a signature base string from a method, URL and parameters.

    Args:
        http_method: HTTP method (upper-cased in the output)
        url: Request URL (normalized before encoding)
        parameters: All parameters taking part in the signature

    Returns:
        ``METHOD&encoded_url&encoded_parameters``
    """
    if url is None:
        raise ValueError("A URL is required to build a signature base")

    normalized_parameters = normalize_request_parameters(parameters)

    return "&".join(
        [
            http_method.upper(),
            url_encode(normalize_uri(url)),
            url_encode(normalized_parameters),
        ]
    )


def _strip_quotes(quoted_value: str) -> str:
    for quote_character in QUOTE_CHARACTERS:
        if (
            len(quoted_value) > 1
            and quoted_value.startswith(quote_character)
            and quoted_value.endswith(quote_character)
        ):
            return quoted_value[1:-1]
    return quoted_value


def parse_authorization_header_pair(key_equal_value_pair: str) -> QueryParameter:
    """Parse one ``key="value"`` item of an Authorization header.

    Only the first ``=`` separates key from value, since encoded values
    (base64 signatures in particular) may contain more.
    """
    index = key_equal_value_pair.find("=")
    if index > 0:
        key = key_equal_value_pair[:index].strip()
        value = _strip_quotes(key_equal_value_pair[index + 1 :].strip())
        return key, unquote_plus(value)

    return key_equal_value_pair.strip(), ""


def get_header_parameters(header: str | None) -> list[QueryParameter] | None:
    """Extract the parameters of an ``OAuth`` Authorization header.

    Args:
        header: Raw Authorization header value

    Returns:
        List of (name, value) pairs; empty if the header does not use the
        OAuth scheme; None if no header was given
    """
    if header is None:
        return None

    header = header.strip()
    if not header.lower().startswith(OAUTH_AUTHORIZATION_HEADER_START.lower()):
        return []

    remainder = header[len(OAUTH_AUTHORIZATION_HEADER_START) :].strip()

    result: list[QueryParameter] = []
    for item in remainder.split(","):
        if not item.strip():
            continue
        result.append(parse_authorization_header_pair(item))

    return result


def get_query_parameters(query: str) -> list[QueryParameter]:
    """Extract non-protocol parameters from a query string.

    ``oauth_`` and ``x_auth_`` parameters are skipped.

    Args:
        query: Query string, with or without the leading ``?``

    Returns:
        List of decoded (name, value) pairs
    """
    if query.startswith("?"):
        query = query[1:]

    result: list[QueryParameter] = []
    for item in query.split("&"):
        if not item or item.startswith(OAUTH_PARAMETER_PREFIX) or item.startswith(XAUTH_PARAMETER_PREFIX):
            continue
        if "=" in item:
            key, value = item.split("=", 1)
            result.append((unquote_plus(key), unquote_plus(value)))
        else:
            result.append((unquote_plus(item), ""))

    return result


def parse_form_parameters(body: str) -> dict[str, str]:
    """Parse a form-encoded body or query string into an ordered dict.

    Later duplicates overwrite earlier ones.
    """
    return dict(parse_qsl(body.lstrip("?"), keep_blank_values=True))


def format_token_for_response(token: Any, callback_confirmed: bool = False) -> str:
    """Format a token as a provider token-endpoint response body.

    Args:
        token: Object with ``token``, ``token_secret`` and optionally
            ``session_handle`` attributes
        callback_confirmed: Add ``oauth_callback_confirmed=true`` (1.0a
            request token responses)

    Returns:
        ``oauth_token=...&oauth_token_secret=...`` plus optional fields
    """
    parameters: list[QueryParameter] = [
        (OAUTH_TOKEN, token.token),
        (OAUTH_TOKEN_SECRET, token.token_secret),
    ]

    if callback_confirmed:
        parameters.append((OAUTH_CALLBACK_CONFIRMED, "true"))

    session_handle = getattr(token, "session_handle", None)
    if session_handle:
        parameters.append((OAUTH_SESSION_HANDLE, session_handle))

    return format_query_string(parameters)
