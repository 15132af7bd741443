"""Provider side: request inspection, store contracts and in-memory stores."""

from .inspectors import (
    BodyHashValidationInspector,
    ConsumerValidationInspector,
    ContextInspector,
    NonceStoreInspector,
    OAuth10aInspector,
    SignatureValidationInspector,
    TimestampRangeInspector,
    XAuthValidationInspector,
)
from .memory import (
    InMemoryConsumerStore,
    InMemoryNonceStore,
    InMemoryTokenRepository,
    InMemoryTokenStore,
    RegisteredConsumer,
)
from .provider import OAuthProvider, build_provider
from .stores import ConsumerStore, NonceStore, RequestForAccessStatus, TokenStore

__all__ = [
    "BodyHashValidationInspector",
    "ConsumerStore",
    "ConsumerValidationInspector",
    "ContextInspector",
    "InMemoryConsumerStore",
    "InMemoryNonceStore",
    "InMemoryTokenRepository",
    "InMemoryTokenStore",
    "NonceStore",
    "NonceStoreInspector",
    "OAuth10aInspector",
    "OAuthProvider",
    "RegisteredConsumer",
    "RequestForAccessStatus",
    "SignatureValidationInspector",
    "TimestampRangeInspector",
    "TokenStore",
    "XAuthValidationInspector",
    "build_provider",
]
