"""Tests for consumer request building, signing and sending."""

from unittest.mock import MagicMock

import httpx
import pytest

from oauth1kit.consumer import ConsumerContext, ConsumerRequest, wrap_http_error
from oauth1kit.context import OAuthContext
from oauth1kit.errors import ConsumerConfigurationError, OAuthException
from oauth1kit.parameters import OAuthProblems
from oauth1kit.tokens import AccessToken


def make_request(consumer: ConsumerContext, token: AccessToken | None = None) -> ConsumerRequest:
    context = OAuthContext(use_authorization_header=consumer.use_header_for_oauth_parameters)
    return ConsumerRequest(context, consumer, token)


def client_returning(status_code: int, text: str, seen: list[httpx.Request] | None = None) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, text=text)

    return httpx.Client(transport=httpx.MockTransport(handler))


class TestConsumerContext:
    """Tests for ConsumerContext validation and signing."""

    def test_empty_consumer_key(self) -> None:
        """Test that signing without a consumer key fails."""
        with pytest.raises(ConsumerConfigurationError, match="Consumer key is empty"):
            ConsumerContext().ensure_state_is_valid()

    def test_rsa_requires_key(self) -> None:
        """Test that RSA-SHA1 without a private key fails."""
        consumer = ConsumerContext(consumer_key="key", signature_method="RSA-SHA1")

        with pytest.raises(ConsumerConfigurationError, match="RSA-SHA1"):
            consumer.ensure_state_is_valid()

    def test_sign_context_sets_protocol_parameters(self, fixed_clock) -> None:
        """Test that signing fills in every protocol parameter."""
        consumer = ConsumerContext(
            consumer_key="key",
            consumer_secret="secret",
            realm="photos",
            use_header_for_oauth_parameters=True,
            nonce_generator=lambda context: "fixed-nonce",
            clock=fixed_clock,
        )
        context = OAuthContext(request_method="GET", raw_uri="http://localhost/svc")

        consumer.sign_context(context)

        assert context.use_authorization_header
        assert context.consumer_key == "key"
        assert context.nonce == "fixed-nonce"
        assert context.timestamp == fixed_clock()
        assert context.version == "1.0"
        assert context.realm == "photos"
        assert context.signature_method == "PLAINTEXT"
        assert context.signature == "secret&"

    def test_generated_nonces_differ(self, consumer_context: ConsumerContext) -> None:
        """Test that the default nonce generator does not repeat."""
        nonces = {consumer_context.nonce_generator(OAuthContext()) for _ in range(100)}
        assert len(nonces) == 100


class TestRequestDescription:
    """Tests for request assembly."""

    def test_form_parameters_win(self, consumer_context: ConsumerContext) -> None:
        """Test that form parameters become a form-encoded body."""
        description = (
            make_request(consumer_context)
            .post()
            .for_url("http://localhost/svc")
            .with_form_parameters(status="hello world")
            .with_body("ignored")
            .get_request_description()
        )

        assert description.content_type == "application/x-www-form-urlencoded"
        assert description.body == "status=hello%20world"
        assert description.raw_body is None

    def test_text_body_is_url_encoded(self, consumer_context: ConsumerContext) -> None:
        """Test that a raw text body is url-encoded."""
        description = (
            make_request(consumer_context).post().for_url("http://localhost/svc").with_body("a b").get_request_description()
        )

        assert description.body == "a%20b"
        assert description.content == b"a%20b"

    def test_raw_content(self, consumer_context: ConsumerContext) -> None:
        """Test that binary content is sent verbatim with its type."""
        description = (
            make_request(consumer_context)
            .put()
            .for_url("http://localhost/svc")
            .with_raw_content(b"\x00\x01", "image/png")
            .get_request_description()
        )

        assert description.raw_body == b"\x00\x01"
        assert description.content_type == "image/png"
        assert description.body is None

    def test_header_mode_adds_authorization(self, consumer_context: ConsumerContext) -> None:
        """Test that header mode renders the Authorization header."""
        description = make_request(consumer_context).get().for_url("http://localhost/svc").get_request_description()

        assert description.headers["Authorization"].startswith("OAuth ")
        assert 'oauth_consumer_key="key"' in description.headers["Authorization"]
        assert description.url == "http://localhost/svc"

    def test_query_mode_puts_parameters_in_url(self) -> None:
        """Test that GET in query mode signs into the URL."""
        consumer = ConsumerContext(consumer_key="key", consumer_secret="secret")

        description = make_request(consumer).get().for_url("http://localhost/svc?a=1").get_request_description()

        assert "Authorization" not in description.headers
        assert description.url.startswith("http://localhost/svc?a=1&")
        assert "oauth_signature=secret%26" in description.url

    def test_token_secret_never_sent(self) -> None:
        """Test that the token secret is never sent as a parameter."""
        consumer = ConsumerContext(consumer_key="key", consumer_secret="secret", signature_method="HMAC-SHA1")
        token = AccessToken(token="t", token_secret="very-secret")

        get = make_request(consumer, token).get().for_url("http://localhost/svc").get_request_description()
        post = (
            make_request(consumer, token)
            .post()
            .for_url("http://localhost/svc")
            .with_form_parameters(a="1")
            .get_request_description()
        )

        assert "very-secret" not in get.url
        assert "oauth_token_secret" not in get.url
        assert "very-secret" not in (post.body or "")
        assert "oauth_token_secret" not in post.body
        assert "oauth_token=t" in post.body


class TestSigning:
    """Tests for signing state."""

    def test_cannot_sign_twice(self, consumer_context: ConsumerContext) -> None:
        """Test that a signed request cannot be signed again."""
        request = make_request(consumer_context).get().for_url("http://localhost/svc").sign_without_token()

        with pytest.raises(ConsumerConfigurationError, match="already been signed"):
            request.sign_without_token()

    def test_sign_with_token_requires_token(self, consumer_context: ConsumerContext) -> None:
        """Test that signing with a token needs one."""
        with pytest.raises(ConsumerConfigurationError):
            make_request(consumer_context).get().for_url("http://localhost/svc").sign_with_token()

    def test_sign_with_explicit_token(self, consumer_context: ConsumerContext) -> None:
        """Test that an explicit token overrides the request's token."""
        request = make_request(consumer_context, AccessToken(token="default", token_secret="s"))
        request.get().for_url("http://localhost/svc").sign_with_token(AccessToken(token="explicit", token_secret="s"))

        assert request.context.token == "explicit"


class TestSend:
    """Tests for sending requests."""

    def test_success(self, consumer_context: ConsumerContext) -> None:
        """Test a successful send with extra headers."""
        seen: list[httpx.Request] = []
        consumer_context.user_agent = "oauth1kit-tests"
        request = make_request(consumer_context).get().for_url("http://localhost/svc").with_accepts_type("text/plain")

        with client_returning(200, "ok", seen) as client:
            response = request.send(client)

        assert response.text == "ok"
        assert seen[0].headers["User-Agent"] == "oauth1kit-tests"
        assert seen[0].headers["Accept"] == "text/plain"
        assert seen[0].headers["Authorization"].startswith("OAuth ")

    def test_problem_report_becomes_oauth_exception(self, consumer_context: ConsumerContext) -> None:
        """Test that an error response with a problem report is translated."""
        body = "oauth_problem=token_rejected&oauth_problem_advice=Unknown%20token"
        body_action = MagicMock()
        request = make_request(consumer_context).get().for_url("http://localhost/svc")
        request.response_body_action = body_action

        with client_returning(401, body) as client:
            with pytest.raises(OAuthException) as exc_info:
                request.send(client)

        assert exc_info.value.problem == OAuthProblems.TOKEN_REJECTED
        assert exc_info.value.advice == "Unknown token"
        assert exc_info.value.context is request.context
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)
        body_action.assert_called_once_with(body)

    def test_other_errors_propagate(self, consumer_context: ConsumerContext) -> None:
        """Test that errors without a problem report are re-raised unchanged."""
        request = make_request(consumer_context).get().for_url("http://localhost/svc")

        with client_returning(500, "Internal Server Error") as client:
            with pytest.raises(httpx.HTTPStatusError):
                request.send(client)

    def test_read_body_sends_once(self, consumer_context: ConsumerContext) -> None:
        """Test that the response body is cached."""
        seen: list[httpx.Request] = []
        request = make_request(consumer_context).get().for_url("http://localhost/svc")

        with client_returning(200, "a=1&b=2", seen) as client:
            assert request.read_body(client) == "a=1&b=2"
            assert request.to_body_parameters(client) == {"a": "1", "b": "2"}
            assert request.select(lambda parameters: parameters["b"], client) == "2"

        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_asend(self, consumer_context: ConsumerContext) -> None:
        """Test sending through an async client."""

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="oauth_token=t&oauth_token_secret=s")

        request = make_request(consumer_context).get().for_url("http://localhost/svc")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            token = await request.aselect(lambda parameters: parameters["oauth_token"], client)

        assert token == "t"

    @pytest.mark.asyncio
    async def test_asend_problem_report(self, consumer_context: ConsumerContext) -> None:
        """Test problem report translation on the async path."""

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text="oauth_problem=nonce_used")

        request = make_request(consumer_context).get().for_url("http://localhost/svc")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(OAuthException) as exc_info:
                await request.asend(client)

        assert exc_info.value.problem == OAuthProblems.NONCE_USED


class TestWrapHttpError:
    """Tests for wrap_http_error."""

    def test_without_problem(self) -> None:
        """Test that bodies without oauth_problem are not wrapped."""
        assert wrap_http_error(OAuthContext(), "Not Found") is None

    def test_with_problem(self) -> None:
        """Test that the report is parsed into the exception."""
        error = wrap_http_error(OAuthContext(), "oauth_problem=parameter_absent&oauth_parameters_absent=oauth_nonce")

        assert error is not None
        assert error.report.parameters_absent == ["oauth_nonce"]
        assert str(error) == "parameter_absent"
