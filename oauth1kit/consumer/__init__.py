"""Consumer side: signing credentials, request builder, session."""

from .context import ConsumerContext, epoch_timestamp, generate_nonce
from .request import ConsumerRequest, RequestDescription, wrap_http_error
from .session import OAuthSession, parse_callback_uri

__all__ = [
    "ConsumerContext",
    "ConsumerRequest",
    "OAuthSession",
    "RequestDescription",
    "epoch_timestamp",
    "generate_nonce",
    "parse_callback_uri",
    "wrap_http_error",
]
