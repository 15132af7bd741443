"""Loading RSA key material for RSA-SHA1 signing and validation."""

import logging
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import OAuth1Error

logger = logging.getLogger(__name__)


class KeyLoadError(OAuth1Error):
    """A key or certificate file could not be loaded."""

    pass


def _read(path: str | Path) -> bytes:
    filepath = Path(path).expanduser()
    if not filepath.exists():
        raise KeyLoadError(f"The key file could not be located on disk: {filepath}")
    return filepath.read_bytes()


def _is_pem(data: bytes) -> bool:
    return data.lstrip().startswith(b"-----BEGIN")


def load_private_key(path: str | Path, password: str | bytes | None = None) -> rsa.RSAPrivateKey:
    """Load an RSA private key from a PEM or DER file.

    Args:
        path: Key file path
        password: Password for an encrypted key

    Returns:
        The RSA private key

    Raises:
        KeyLoadError: If the file is missing, unreadable or not an RSA key
    """
    data = _read(path)
    if isinstance(password, str):
        password = password.encode("utf-8")

    try:
        if _is_pem(data):
            key = serialization.load_pem_private_key(data, password=password)
        else:
            key = serialization.load_der_private_key(data, password=password)
    except (ValueError, TypeError) as e:
        raise KeyLoadError(f"The private key could not be loaded from {path}: {e}") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyLoadError(f"{path} does not contain an RSA private key")

    logger.debug(f"Loaded RSA private key from {path} ({key.key_size} bits)")
    return key


def load_public_key(path: str | Path) -> rsa.RSAPublicKey:
    """Load an RSA public key from a PEM/DER public key or X.509 certificate.

    Args:
        path: Key or certificate file path

    Returns:
        The RSA public key

    Raises:
        KeyLoadError: If the file is missing, unreadable or not an RSA key
    """
    data = _read(path)
    pem = _is_pem(data)

    key = None
    try:
        if pem and b"CERTIFICATE" in data:
            key = x509.load_pem_x509_certificate(data).public_key()
        elif pem:
            key = serialization.load_pem_public_key(data)
        else:
            try:
                key = x509.load_der_x509_certificate(data).public_key()
            except ValueError:
                key = serialization.load_der_public_key(data)
    except (ValueError, TypeError) as e:
        raise KeyLoadError(f"The public key could not be loaded from {path}: {e}") from e

    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyLoadError(f"{path} does not contain an RSA public key")

    logger.debug(f"Loaded RSA public key from {path}")
    return key
