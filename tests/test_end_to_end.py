"""End-to-end tests: a consumer session talking to an in-memory provider."""

from datetime import timedelta

import httpx
import pytest

from oauth1kit.consumer import ConsumerContext, OAuthSession
from oauth1kit.errors import OAuthException
from oauth1kit.parameters import OAuthProblems
from oauth1kit.provider import (
    InMemoryConsumerStore,
    InMemoryNonceStore,
    InMemoryTokenStore,
    OAuthProvider,
    XAuthValidationInspector,
    build_provider,
)

from conftest import ACCESS_TOKEN_URL, AUTHORIZE_URL, CALLBACK_URL, REQUEST_TOKEN_URL, RESOURCE_URL, provider_transport


def three_legged(session: OAuthSession, token_store: InMemoryTokenStore, client: httpx.Client, method: str = "GET"):
    """Run request token, user authorization and exchange."""
    request_token = session.get_request_token(method=method, http_client=client)
    verifier = token_store.authorize_request_token(request_token.token, user_name="alice")
    return session.exchange_request_token_for_access_token(
        request_token, verifier, method=method, http_client=client
    )


def fetch_resource(session: OAuthSession, client: httpx.Client) -> str:
    return session.request().get().for_url(RESOURCE_URL).read_body(client)


class TestThreeLeggedFlow:
    """Tests for the full OAuth 1.0a flow."""

    def test_hmac_header(
        self, session: OAuthSession, token_store: InMemoryTokenStore, provider_client: httpx.Client
    ) -> None:
        """Test the flow with HMAC-SHA1 in the Authorization header."""
        session.requires_callback_confirmation()

        request_token = session.get_request_token(http_client=provider_client)
        assert request_token.callback_confirmed
        assert request_token.callback_url == CALLBACK_URL

        authorize_url = session.get_user_authorization_url_for_token(request_token)
        assert authorize_url == f"{AUTHORIZE_URL}?oauth_token={request_token.token}"

        verifier = token_store.authorize_request_token(request_token.token, user_name="alice")
        access_token = session.exchange_request_token_for_access_token(
            request_token, verifier, http_client=provider_client
        )

        assert access_token.token
        assert access_token.session_handle
        assert fetch_resource(session, provider_client) == "ok"

    def test_rsa(
        self, rsa_consumer_context: ConsumerContext, token_store: InMemoryTokenStore, provider_client: httpx.Client
    ) -> None:
        """Test the flow with RSA-SHA1 signatures."""
        session = OAuthSession(rsa_consumer_context, REQUEST_TOKEN_URL, AUTHORIZE_URL, ACCESS_TOKEN_URL)

        three_legged(session, token_store, provider_client)

        assert fetch_resource(session, provider_client) == "ok"

    @pytest.mark.parametrize("method", ["GET", "POST"])
    def test_parameters_outside_header(
        self, token_store: InMemoryTokenStore, provider_client: httpx.Client, method: str
    ) -> None:
        """Test the flow with protocol parameters in the query or form body."""
        consumer = ConsumerContext(consumer_key="key", consumer_secret="secret", signature_method="HMAC-SHA1")
        session = OAuthSession(consumer, REQUEST_TOKEN_URL, AUTHORIZE_URL, ACCESS_TOKEN_URL)

        three_legged(session, token_store, provider_client, method)

        response = session.request().post().for_url(RESOURCE_URL).with_form_parameters(title="Hi!").send(
            provider_client
        )
        assert response.text == "ok"

    def test_plaintext(self, token_store: InMemoryTokenStore, provider_client: httpx.Client) -> None:
        """Test the flow with PLAINTEXT signatures."""
        consumer = ConsumerContext(consumer_key="key", consumer_secret="secret", use_header_for_oauth_parameters=True)
        session = OAuthSession(consumer, REQUEST_TOKEN_URL, AUTHORIZE_URL, ACCESS_TOKEN_URL)

        three_legged(session, token_store, provider_client)

        assert fetch_resource(session, provider_client) == "ok"

    def test_body_hash(
        self, session: OAuthSession, token_store: InMemoryTokenStore, provider_client: httpx.Client
    ) -> None:
        """Test that raw bodies signed with a body hash are accepted."""
        three_legged(session, token_store, provider_client)
        session.enable_oauth_request_body_hashes()

        response = (
            session.request()
            .post()
            .for_url(RESOURCE_URL)
            .with_raw_content(b'{"title": "Hi!"}', "application/json")
            .send(provider_client)
        )

        assert response.text == "ok"


class TestRejections:
    """Tests for requests the provider refuses."""

    def test_denied_by_user(
        self, session: OAuthSession, token_store: InMemoryTokenStore, provider_client: httpx.Client
    ) -> None:
        """Test that a denied request token cannot be exchanged."""
        request_token = session.get_request_token(http_client=provider_client)
        verifier = token_store.authorize_request_token(request_token.token)
        token_store.deny_request_token(request_token.token)

        with pytest.raises(OAuthException) as exc_info:
            session.exchange_request_token_for_access_token(request_token, verifier, http_client=provider_client)

        assert exc_info.value.problem == OAuthProblems.PERMISSION_DENIED

    def test_replayed_request(
        self, session: OAuthSession, token_store: InMemoryTokenStore, provider_client: httpx.Client
    ) -> None:
        """Test that re-sending a signed request is rejected."""
        three_legged(session, token_store, provider_client)
        request = session.request().get().for_url(RESOURCE_URL)

        request.send(provider_client)

        with pytest.raises(OAuthException) as exc_info:
            request.send(provider_client)

        assert exc_info.value.problem == OAuthProblems.NONCE_USED
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    def test_stale_timestamp(self, provider_client: httpx.Client) -> None:
        """Test that the problem report carries the accepted window back."""
        consumer = ConsumerContext(
            consumer_key="key",
            consumer_secret="secret",
            signature_method="HMAC-SHA1",
            use_header_for_oauth_parameters=True,
            clock=lambda: "1199188800",
        )
        session = OAuthSession(consumer, request_token_uri=REQUEST_TOKEN_URL)

        with pytest.raises(OAuthException, match="too old") as exc_info:
            session.get_request_token(http_client=provider_client)

        assert exc_info.value.problem == OAuthProblems.TIMESTAMP_REFUSED
        assert exc_info.value.report.acceptable_timestamps_from is not None
        assert exc_info.value.report.acceptable_timestamps_to is not None

    def test_unknown_consumer(self, provider_client: httpx.Client) -> None:
        """Test that an unregistered consumer is refused."""
        consumer = ConsumerContext(
            consumer_key="stranger", consumer_secret="secret", signature_method="HMAC-SHA1"
        )
        session = OAuthSession(consumer, request_token_uri=REQUEST_TOKEN_URL)

        with pytest.raises(OAuthException) as exc_info:
            session.get_request_token(http_client=provider_client)

        assert exc_info.value.problem == OAuthProblems.CONSUMER_KEY_UNKNOWN

    def test_expired_access_token(
        self,
        session: OAuthSession,
        consumer_store: InMemoryConsumerStore,
        nonce_store: InMemoryNonceStore,
    ) -> None:
        """Test that an access token past its lifetime is refused."""
        token_store = InMemoryTokenStore(access_token_lifetime=None)
        provider = build_provider(token_store, consumer_store, nonce_store)

        with httpx.Client(transport=provider_transport(provider)) as client:
            access_token = three_legged(session, token_store, client)
            stored = token_store.access_tokens.get_token(access_token.token)
            stored.expiry_date = stored.issued_at - timedelta(seconds=1)

            with pytest.raises(OAuthException) as exc_info:
                fetch_resource(session, client)

        assert exc_info.value.problem == OAuthProblems.TOKEN_EXPIRED


class TestXAuthAndRenewal:
    """Tests for xAuth and session handle renewal."""

    @pytest.fixture
    def provider(
        self,
        token_store: InMemoryTokenStore,
        consumer_store: InMemoryConsumerStore,
        nonce_store: InMemoryNonceStore,
    ) -> OAuthProvider:
        xauth = XAuthValidationInspector(
            validate_mode=lambda mode: mode == "client_auth",
            authenticate=lambda username, password: password == "pa55",
        )
        return build_provider(token_store, consumer_store, nonce_store, extra_inspectors=[xauth])

    def test_xauth_then_renew(self, session: OAuthSession, provider_client: httpx.Client) -> None:
        """Test obtaining a token with xAuth and renewing it."""
        access_token = session.get_access_token_using_xauth("client_auth", "alice", "pa55", http_client=provider_client)

        assert fetch_resource(session, provider_client) == "ok"

        renewed = session.renew_access_token(access_token, access_token.session_handle, http_client=provider_client)

        assert renewed.token != access_token.token
        assert renewed.session_handle == access_token.session_handle
        assert fetch_resource(session, provider_client) == "ok"

        with pytest.raises(OAuthException) as exc_info:
            session.request(access_token).get().for_url(RESOURCE_URL).send(provider_client)

        assert exc_info.value.problem == OAuthProblems.TOKEN_REJECTED

    def test_xauth_bad_password(self, session: OAuthSession, provider_client: httpx.Client) -> None:
        """Test that failed xAuth authentication is reported."""
        with pytest.raises(OAuthException, match="Authentication failed"):
            session.get_access_token_using_xauth("client_auth", "alice", "guess", http_client=provider_client)


class TestAsyncFlow:
    """Tests for the async consumer API against the provider."""

    @pytest.mark.asyncio
    async def test_three_legged(
        self, session: OAuthSession, token_store: InMemoryTokenStore, provider: OAuthProvider
    ) -> None:
        """Test the full flow through an AsyncClient."""
        async with httpx.AsyncClient(transport=provider_transport(provider)) as client:
            request_token = await session.aget_request_token(http_client=client)
            verifier = token_store.authorize_request_token(request_token.token)
            await session.aexchange_request_token_for_access_token(request_token, verifier, http_client=client)

            response = await session.request().get().for_url(RESOURCE_URL).asend(client)

        assert response.text == "ok"
