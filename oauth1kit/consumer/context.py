"""Consumer credentials and request signing."""

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..context import OAuthContext
from ..errors import ConsumerConfigurationError
from ..parameters import OAUTH_VERSION_1_0, SignatureMethod
from ..signing import OAuthContextSigner, SigningContext
from ..tokens import TokenBase

logger = logging.getLogger(__name__)


def generate_nonce(context: OAuthContext) -> str:
    """Generate a random nonce for a request."""
    return secrets.token_hex(16)


def epoch_timestamp() -> str:
    """Current time as whole seconds since the epoch."""
    return str(int(time.time()))


@dataclass
class ConsumerContext:
    """A consumer's credentials and signing preferences.

    Attributes:
        consumer_key: Consumer key issued by the provider
        consumer_secret: Shared secret (PLAINTEXT, HMAC-SHA1)
        key: RSA private key (RSA-SHA1)
        realm: Realm sent in the Authorization header
        signature_method: Signature method to sign with
        use_header_for_oauth_parameters: Send protocol parameters in the
            ``Authorization`` header instead of the query/body
        user_agent: User-Agent header for outgoing requests
        signer: Context signer
        nonce_generator: Produces the nonce for each request
        clock: Produces the ``oauth_timestamp`` for each request
    """

    consumer_key: str | None = None
    consumer_secret: str | None = None
    key: Any = None
    realm: str | None = None
    signature_method: str = SignatureMethod.PLAINTEXT.value
    use_header_for_oauth_parameters: bool = False
    user_agent: str | None = None
    signer: OAuthContextSigner = field(default_factory=OAuthContextSigner)
    nonce_generator: Callable[[OAuthContext], str] = generate_nonce
    clock: Callable[[], str] = epoch_timestamp

    def __post_init__(self) -> None:
        if isinstance(self.signature_method, SignatureMethod):
            self.signature_method = self.signature_method.value

    def ensure_state_is_valid(self) -> None:
        """Check the context can sign.

        Raises:
            ConsumerConfigurationError: If the consumer key or signature
                method is empty, or RSA-SHA1 is used without a key
        """
        if not self.consumer_key:
            raise ConsumerConfigurationError("Consumer key is empty")

        if not self.signature_method:
            raise ConsumerConfigurationError(f'Unknown signature method "{self.signature_method}"')

        if self.signature_method == SignatureMethod.RSA_SHA1.value and self.key is None:
            raise ConsumerConfigurationError(
                "For the RSA-SHA1 signature method you must supply the key (an RSA private key)"
            )

    def sign_context(self, context: OAuthContext) -> None:
        """Fill in the protocol parameters and sign the context."""
        self.ensure_state_is_valid()

        context.use_authorization_header = self.use_header_for_oauth_parameters
        context.nonce = self.nonce_generator(context)
        context.consumer_key = self.consumer_key
        context.realm = self.realm
        context.signature_method = self.signature_method
        context.timestamp = self.clock()
        context.version = OAUTH_VERSION_1_0

        self.signer.sign_context(
            context,
            SigningContext(consumer_secret=self.consumer_secret, algorithm=self.key),
        )

    def sign_context_with_token(self, context: OAuthContext, token: TokenBase) -> None:
        """Sign the context with a request or access token."""
        context.token = token.token
        context.token_secret = token.token_secret
        self.sign_context(context)
