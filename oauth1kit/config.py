"""Config loading for oauth1kit consumers and providers.

Values come from environment variables, optionally seeded from a ``.env``
file. ``${VAR}`` references inside values are expanded.
"""

import logging
import os
import re
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from .errors import OAuth1Error
from .parameters import SignatureMethod

if TYPE_CHECKING:
    from .consumer.session import OAuthSession

logger = logging.getLogger(__name__)

ENV_PREFIX = "OAUTH1_"

# Env file search paths in priority order
ENV_SEARCH_PATHS = [
    Path(".env"),
]

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigError(OAuth1Error):
    """Raised when a configuration value is invalid."""

    pass


def _resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} patterns in a string from environment variables.

    Missing vars resolve to empty string.
    """
    if "${" not in value:
        return value

    result = value
    for match in re.finditer(r"\$\{([^}]+)\}", value):
        env_var = match.group(1)
        env_value = os.environ.get(env_var, "")
        result = result.replace(match.group(0), env_value)
    return result


def find_env_file(explicit_path: Path | None = None) -> Path | None:
    """Find the .env file, an explicit path taking priority."""
    if explicit_path:
        if explicit_path.exists():
            return explicit_path
        return None

    for path in ENV_SEARCH_PATHS:
        if path.exists():
            return path
    return None


def _get(name: str) -> str | None:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None:
        return None
    value = _resolve_env_vars(value).strip()
    return value or None


def _get_int(name: str, default: int) -> int:
    value = _get(name)
    if value is None:
        return default
    try:
        result = int(value)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {value!r}") from e
    if result < 0:
        raise ConfigError(f"{ENV_PREFIX}{name} must not be negative, got {result}")
    return result


def _get_bool(name: str, default: bool) -> bool:
    value = _get(name)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{ENV_PREFIX}{name} must be a boolean, got {value!r}")


def _get_signature_method(name: str, default: str) -> str:
    value = _get(name)
    if value is None:
        return default
    try:
        return SignatureMethod(value.upper()).value
    except ValueError as e:
        supported = ", ".join(m.value for m in SignatureMethod)
        raise ConfigError(f"{ENV_PREFIX}{name} must be one of {supported}, got {value!r}") from e


@dataclass
class ProviderConfig:
    """Provider validation settings.

    Attributes:
        max_timestamp_age: Seconds a timestamp may lag the server clock
        max_timestamp_skew: Seconds a timestamp may run ahead of it
        require_oauth10a: Enforce callback and verifier (OAuth 1.0a)
        validate_body_hash: Check ``oauth_body_hash`` when present
        access_token_lifetime: Lifetime of issued access tokens in days, 0
            for tokens that never expire
    """

    max_timestamp_age: int = 1800
    max_timestamp_skew: int = 1800
    require_oauth10a: bool = True
    validate_body_hash: bool = True
    access_token_lifetime: int = 20
    env_path: Path | None = None

    @property
    def access_token_lifetime_delta(self) -> timedelta | None:
        if self.access_token_lifetime == 0:
            return None
        return timedelta(days=self.access_token_lifetime)


@dataclass
class ConsumerConfig:
    """Consumer credentials and provider endpoints."""

    consumer_key: str | None = None
    consumer_secret: str | None = None
    signature_method: str = SignatureMethod.HMAC_SHA1.value
    realm: str | None = None
    use_header_for_oauth_parameters: bool = True
    private_key_path: Path | None = None
    private_key_password: str | None = None
    request_token_uri: str | None = None
    user_authorize_uri: str | None = None
    access_token_uri: str | None = None
    callback_uri: str | None = None
    user_agent: str | None = None
    env_path: Path | None = None

    def create_session(self) -> "OAuthSession":
        """Build a session from this configuration.

        Raises:
            ConfigError: If RSA-SHA1 is configured without a private key
            KeyLoadError: If the private key cannot be loaded
        """
        from .consumer.context import ConsumerContext
        from .consumer.session import OAuthSession
        from .keys import load_private_key

        key = None
        if self.signature_method == SignatureMethod.RSA_SHA1.value:
            if self.private_key_path is None:
                raise ConfigError(f"{ENV_PREFIX}PRIVATE_KEY_PATH is required for RSA-SHA1")
            key = load_private_key(self.private_key_path, self.private_key_password)

        consumer = ConsumerContext(
            consumer_key=self.consumer_key,
            consumer_secret=self.consumer_secret,
            key=key,
            realm=self.realm,
            signature_method=self.signature_method,
            use_header_for_oauth_parameters=self.use_header_for_oauth_parameters,
            user_agent=self.user_agent,
        )

        return OAuthSession(
            consumer,
            request_token_uri=self.request_token_uri,
            user_authorize_uri=self.user_authorize_uri,
            access_token_uri=self.access_token_uri,
            callback_uri=self.callback_uri,
        )


def _load_env(env_path: Path | None) -> Path | None:
    env_file = find_env_file(env_path)
    if env_file:
        load_dotenv(env_file)
        logger.debug(f"Loaded environment from {env_file}")
    return env_file


def load_provider_config(env_path: Path | None = None) -> ProviderConfig:
    """Load provider settings from the environment.

    Args:
        env_path: Explicit path to .env file (optional)

    Raises:
        ConfigError: If a value is not a valid number or boolean
    """
    env_file = _load_env(env_path)

    return ProviderConfig(
        max_timestamp_age=_get_int("MAX_TIMESTAMP_AGE", 1800),
        max_timestamp_skew=_get_int("MAX_TIMESTAMP_SKEW", 1800),
        require_oauth10a=_get_bool("REQUIRE_10A", True),
        validate_body_hash=_get_bool("VALIDATE_BODY_HASH", True),
        access_token_lifetime=_get_int("ACCESS_TOKEN_LIFETIME_DAYS", 20),
        env_path=env_file,
    )


def load_consumer_config(env_path: Path | None = None) -> ConsumerConfig:
    """Load consumer settings from the environment.

    Args:
        env_path: Explicit path to .env file (optional)

    Raises:
        ConfigError: If the signature method or a boolean is invalid
    """
    env_file = _load_env(env_path)

    private_key_path = _get("PRIVATE_KEY_PATH")

    return ConsumerConfig(
        consumer_key=_get("CONSUMER_KEY"),
        consumer_secret=_get("CONSUMER_SECRET"),
        signature_method=_get_signature_method("SIGNATURE_METHOD", SignatureMethod.HMAC_SHA1.value),
        realm=_get("REALM"),
        use_header_for_oauth_parameters=_get_bool("USE_AUTHORIZATION_HEADER", True),
        private_key_path=Path(private_key_path).expanduser() if private_key_path else None,
        private_key_password=_get("PRIVATE_KEY_PASSWORD"),
        request_token_uri=_get("REQUEST_TOKEN_URL"),
        user_authorize_uri=_get("AUTHORIZE_URL"),
        access_token_uri=_get("ACCESS_TOKEN_URL"),
        callback_uri=_get("CALLBACK_URL"),
        user_agent=_get("USER_AGENT"),
        env_path=env_file,
    )
