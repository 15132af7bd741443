"""Signature methods and the context signer.

Three methods are supported, selected by the context's
``oauth_signature_method``:

- ``PLAINTEXT``: the signature is ``enc(consumer_secret)&enc(token_secret)``
- ``HMAC-SHA1``: HMAC-SHA1 of the signature base keyed with the same string
- ``RSA-SHA1``: PKCS#1 v1.5 over SHA-1 with the consumer's RSA key

All signature comparisons are constant-time.
"""

import base64
import binascii
import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from . import errors
from .context import OAuthContext
from .encoding import url_encode
from .errors import SigningError
from .parameters import SignatureMethod

logger = logging.getLogger(__name__)


def equals_in_constant_time(value: str | None, other: str | None) -> bool:
    """Compare two strings without leaking how many leading characters match.

    Returns the same result as ``value == other``, including for None.
    """
    if value is None or other is None:
        return value is None and other is None
    return hmac.compare_digest(value.encode("utf-8"), other.encode("utf-8"))


def _signing_key(consumer_secret: str | None, token_secret: str | None) -> str:
    return f"{url_encode(consumer_secret)}&{url_encode(token_secret)}"


@dataclass
class SigningContext:
    """Inputs for a single sign or validate call.

    Attributes:
        consumer_secret: Shared consumer secret (PLAINTEXT, HMAC-SHA1)
        algorithm: RSA private key when signing, RSA public key when
            validating (RSA-SHA1)
        signature_base: Filled in by ``OAuthContextSigner``
    """

    consumer_secret: str | None = None
    algorithm: Any = None
    signature_base: str | None = None


class SignatureImplementation(ABC):
    """A single signature method."""

    method: SignatureMethod

    @abstractmethod
    def sign(self, context: OAuthContext, signing_context: SigningContext) -> None:
        """Compute and set ``context.signature``."""
        ...

    @abstractmethod
    def validate(self, context: OAuthContext, signing_context: SigningContext) -> bool:
        """Check ``context.signature``."""
        ...


class PlainTextSignatureImplementation(SignatureImplementation):
    method = SignatureMethod.PLAINTEXT

    def sign(self, context: OAuthContext, signing_context: SigningContext) -> None:
        context.signature = _signing_key(signing_context.consumer_secret, context.token_secret)

    def validate(self, context: OAuthContext, signing_context: SigningContext) -> bool:
        expected = _signing_key(signing_context.consumer_secret, context.token_secret)
        return equals_in_constant_time(expected, context.signature)


class HmacSha1SignatureImplementation(SignatureImplementation):
    method = SignatureMethod.HMAC_SHA1

    def _compute(self, context: OAuthContext, signing_context: SigningContext) -> str:
        key = _signing_key(signing_context.consumer_secret, context.token_secret)
        digest = hmac.new(
            key.encode("ascii"),
            (signing_context.signature_base or "").encode("ascii"),
            hashlib.sha1,
        ).digest()
        return base64.b64encode(digest).decode("ascii")

    def sign(self, context: OAuthContext, signing_context: SigningContext) -> None:
        context.signature = self._compute(context, signing_context)

    def validate(self, context: OAuthContext, signing_context: SigningContext) -> bool:
        return equals_in_constant_time(self._compute(context, signing_context), context.signature)


class RsaSha1SignatureImplementation(SignatureImplementation):
    """RSA-SHA1 using PKCS#1 v1.5 padding."""

    method = SignatureMethod.RSA_SHA1

    def sign(self, context: OAuthContext, signing_context: SigningContext) -> None:
        key = signing_context.algorithm
        if key is None:
            raise SigningError("The algorithm property must be set on the signing context for RSA-SHA1")
        if not isinstance(key, rsa.RSAPrivateKey):
            raise SigningError("RSA-SHA1 signing requires an RSA private key")

        signature = key.sign(
            (signing_context.signature_base or "").encode("ascii"),
            padding.PKCS1v15(),
            hashes.SHA1(),
        )
        context.signature = base64.b64encode(signature).decode("ascii")

    def validate(self, context: OAuthContext, signing_context: SigningContext) -> bool:
        key = signing_context.algorithm
        if key is None:
            raise SigningError("The algorithm property must be set on the signing context for RSA-SHA1")
        if isinstance(key, rsa.RSAPrivateKey):
            key = key.public_key()

        if not context.signature:
            return False

        try:
            signature = base64.b64decode(context.signature, validate=True)
        except (binascii.Error, ValueError):
            logger.debug("RSA-SHA1 signature is not valid base64")
            return False

        try:
            key.verify(
                signature,
                (signing_context.signature_base or "").encode("ascii"),
                padding.PKCS1v15(),
                hashes.SHA1(),
            )
        except InvalidSignature:
            return False

        return True


def default_implementations() -> list[SignatureImplementation]:
    return [
        RsaSha1SignatureImplementation(),
        HmacSha1SignatureImplementation(),
        PlainTextSignatureImplementation(),
    ]


class OAuthContextSigner:
    """Signs and validates contexts, dispatching on the signature method.

    Example:
        signer = OAuthContextSigner()
        signer.sign_context(context, SigningContext(consumer_secret="secret"))
    """

    def __init__(self, implementations: Iterable[SignatureImplementation] | None = None):
        """Initialize the signer.

        Args:
            implementations: Signature methods to support; all three
                standard methods when omitted. The first implementation
                registered for a method wins.
        """
        self._implementations: dict[str, SignatureImplementation] = {}
        for implementation in implementations if implementations is not None else default_implementations():
            self._implementations.setdefault(implementation.method.value, implementation)

    @property
    def supported_methods(self) -> list[str]:
        return list(self._implementations)

    def _find_implementation(self, context: OAuthContext) -> SignatureImplementation:
        implementation = self._implementations.get(context.signature_method or "")
        if implementation is None:
            raise errors.unknown_signature_method(context, context.signature_method)
        return implementation

    def sign_context(self, context: OAuthContext, signing_context: SigningContext) -> None:
        """Compute the signature base, then sign the context with it."""
        signing_context.signature_base = context.generate_signature_base()
        self._find_implementation(context).sign(context, signing_context)
        logger.debug(f"Signed {context.request_method} {context.normalized_request_url} with {context.signature_method}")

    def validate_signature(self, context: OAuthContext, signing_context: SigningContext) -> bool:
        """Compute the signature base, then validate the context's signature."""
        signing_context.signature_base = context.generate_signature_base()
        return self._find_implementation(context).validate(context, signing_context)
