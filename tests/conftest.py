"""Shared fixtures and utilities for oauth1kit tests."""

import os
from collections.abc import Callable, Generator
from datetime import datetime, timezone

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from oauth1kit.builder import OAuthContextBuilder
from oauth1kit.config import ProviderConfig
from oauth1kit.consumer import ConsumerContext, OAuthSession
from oauth1kit.encoding import format_token_for_response
from oauth1kit.errors import OAuthException
from oauth1kit.parameters import SignatureMethod
from oauth1kit.provider import (
    InMemoryConsumerStore,
    InMemoryNonceStore,
    InMemoryTokenStore,
    OAuthProvider,
    build_provider,
)

CONSUMER_KEY = "key"
CONSUMER_SECRET = "secret"

REQUEST_TOKEN_URL = "https://provider.example.com/oauth/request_token"
AUTHORIZE_URL = "https://provider.example.com/oauth/authorize"
ACCESS_TOKEN_URL = "https://provider.example.com/oauth/access_token"
RESOURCE_URL = "https://provider.example.com/api/photos"
CALLBACK_URL = "https://consumer.example.com/callback"


# ============================================================================
# Key Material Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """Generate an RSA key pair once per test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_public_key(rsa_private_key: rsa.RSAPrivateKey) -> rsa.RSAPublicKey:
    return rsa_private_key.public_key()


# ============================================================================
# Clock Fixtures
# ============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed point in time (UTC)."""
    return datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock(fixed_now: datetime) -> Callable[[], str]:
    """Consumer clock returning the fixed time as epoch seconds."""
    epoch = str(int(fixed_now.timestamp()))
    return lambda: epoch


# ============================================================================
# Provider Fixtures
# ============================================================================


@pytest.fixture
def consumer_store(rsa_public_key: rsa.RSAPublicKey) -> InMemoryConsumerStore:
    """Consumer store with the test consumer registered."""
    store = InMemoryConsumerStore()
    store.register(CONSUMER_KEY, CONSUMER_SECRET, public_key=rsa_public_key)
    return store


@pytest.fixture
def nonce_store() -> InMemoryNonceStore:
    return InMemoryNonceStore()


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore.from_config(ProviderConfig())


@pytest.fixture
def provider(
    token_store: InMemoryTokenStore,
    consumer_store: InMemoryConsumerStore,
    nonce_store: InMemoryNonceStore,
) -> OAuthProvider:
    """Provider with the standard OAuth 1.0a inspection pipeline."""
    return build_provider(token_store, consumer_store, nonce_store)


# ============================================================================
# Consumer Fixtures
# ============================================================================


@pytest.fixture
def consumer_context() -> ConsumerContext:
    """HMAC-SHA1 consumer using the Authorization header."""
    return ConsumerContext(
        consumer_key=CONSUMER_KEY,
        consumer_secret=CONSUMER_SECRET,
        signature_method=SignatureMethod.HMAC_SHA1,
        use_header_for_oauth_parameters=True,
    )


@pytest.fixture
def rsa_consumer_context(rsa_private_key: rsa.RSAPrivateKey) -> ConsumerContext:
    """RSA-SHA1 consumer using the Authorization header."""
    return ConsumerContext(
        consumer_key=CONSUMER_KEY,
        signature_method=SignatureMethod.RSA_SHA1,
        key=rsa_private_key,
        use_header_for_oauth_parameters=True,
    )


@pytest.fixture
def session(consumer_context: ConsumerContext) -> OAuthSession:
    """Session pointed at the example provider endpoints."""
    return OAuthSession(
        consumer_context,
        request_token_uri=REQUEST_TOKEN_URL,
        user_authorize_uri=AUTHORIZE_URL,
        access_token_uri=ACCESS_TOKEN_URL,
        callback_uri=CALLBACK_URL,
    )


# ============================================================================
# Transport Fixtures
# ============================================================================


def provider_transport(provider: OAuthProvider) -> httpx.MockTransport:
    """Mock transport that routes requests through a real provider.

    Token endpoints answer with form-encoded token responses, the resource
    endpoint with ``ok``. Rejections come back as 401 problem reports.
    """
    builder = OAuthContextBuilder()

    def handler(request: httpx.Request) -> httpx.Response:
        context = builder.from_httpx_request(request)
        try:
            if request.url.path.endswith("/request_token"):
                token = provider.grant_request_token(context)
                return httpx.Response(200, text=format_token_for_response(token, callback_confirmed=True))
            if request.url.path.endswith("/access_token"):
                if context.xauth_mode:
                    token = provider.create_access_token(context)
                elif context.session_handle:
                    token = provider.renew_access_token(context)
                else:
                    token = provider.exchange_request_token_for_access_token(context)
                return httpx.Response(200, text=format_token_for_response(token))
            provider.access_protected_resource_request(context)
            return httpx.Response(200, text="ok")
        except OAuthException as e:
            return httpx.Response(401, text=e.report.format())

    return httpx.MockTransport(handler)


@pytest.fixture
def provider_client(provider: OAuthProvider) -> Generator[httpx.Client, None, None]:
    """Sync HTTP client wired to the in-memory provider."""
    with httpx.Client(transport=provider_transport(provider)) as client:
        yield client


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Temporarily clear OAUTH1_ environment variables."""
    old_env = os.environ.copy()
    for key in list(os.environ.keys()):
        if key.startswith("OAUTH1_"):
            del os.environ[key]
    yield
    os.environ.clear()
    os.environ.update(old_env)

