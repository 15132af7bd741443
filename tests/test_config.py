"""Tests for config module."""

import os
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from cryptography.hazmat.primitives import serialization

from oauth1kit.config import (
    ConfigError,
    ConsumerConfig,
    ProviderConfig,
    _resolve_env_vars,
    find_env_file,
    load_consumer_config,
    load_provider_config,
)
from oauth1kit.keys import KeyLoadError


class TestResolveEnvVars:
    """Tests for ${VAR} expansion."""

    def test_plain_value(self):
        """Test that values without references are unchanged."""
        assert _resolve_env_vars("plain") == "plain"

    def test_substitution(self):
        """Test resolving env variable references."""
        with patch.dict(os.environ, {"SHARED_SECRET": "s3cret"}):
            assert _resolve_env_vars("${SHARED_SECRET}") == "s3cret"

    def test_missing_variable(self):
        """Test resolving missing env variable returns empty string."""
        with patch.dict(os.environ, {}, clear=True):
            assert _resolve_env_vars("prefix-${NONEXISTENT_VAR}") == "prefix-"


class TestFindEnvFile:
    """Tests for find_env_file."""

    def test_explicit_path(self, tmp_path):
        """Test that an existing explicit path is used."""
        env_file = tmp_path / "custom.env"
        env_file.write_text("")

        assert find_env_file(env_file) == env_file

    def test_explicit_path_missing(self, tmp_path):
        """Test that a missing explicit path finds nothing."""
        assert find_env_file(tmp_path / "missing.env") is None

    def test_search_paths(self, tmp_path, monkeypatch):
        """Test that .env in the working directory is found."""
        monkeypatch.chdir(tmp_path)
        assert find_env_file() is None

        (tmp_path / ".env").write_text("")
        assert find_env_file() == Path(".env")


class TestLoadProviderConfig:
    """Tests for load_provider_config."""

    def test_defaults(self, clean_env, tmp_path):
        """Test default values when nothing is configured."""
        config = load_provider_config(tmp_path / "missing.env")

        assert config == ProviderConfig()
        assert config.access_token_lifetime_delta == timedelta(days=20)

    def test_from_environment(self, clean_env, tmp_path):
        """Test reading every provider setting."""
        env = {
            "OAUTH1_MAX_TIMESTAMP_AGE": "600",
            "OAUTH1_MAX_TIMESTAMP_SKEW": "60",
            "OAUTH1_REQUIRE_10A": "false",
            "OAUTH1_VALIDATE_BODY_HASH": "No",
            "OAUTH1_ACCESS_TOKEN_LIFETIME_DAYS": "7",
        }
        with patch.dict(os.environ, env):
            config = load_provider_config(tmp_path / "missing.env")

        assert config.max_timestamp_age == 600
        assert config.max_timestamp_skew == 60
        assert not config.require_oauth10a
        assert not config.validate_body_hash
        assert config.access_token_lifetime_delta == timedelta(days=7)

    def test_from_env_file(self, clean_env, tmp_path):
        """Test that values are loaded from a .env file."""
        env_file = tmp_path / ".env"
        env_file.write_text("OAUTH1_MAX_TIMESTAMP_AGE=120\nOAUTH1_REQUIRE_10A=0\n")

        config = load_provider_config(env_file)

        assert config.max_timestamp_age == 120
        assert not config.require_oauth10a
        assert config.env_path == env_file

    @pytest.mark.parametrize(
        "name,value",
        [
            ("OAUTH1_MAX_TIMESTAMP_AGE", "soon"),
            ("OAUTH1_MAX_TIMESTAMP_SKEW", "-5"),
            ("OAUTH1_REQUIRE_10A", "maybe"),
        ],
    )
    def test_invalid_values(self, clean_env, tmp_path, name, value):
        """Test that malformed values raise ConfigError naming the variable."""
        with patch.dict(os.environ, {name: value}):
            with pytest.raises(ConfigError, match=name):
                load_provider_config(tmp_path / "missing.env")


class TestLoadConsumerConfig:
    """Tests for load_consumer_config."""

    def test_defaults(self, clean_env, tmp_path):
        """Test default consumer settings."""
        config = load_consumer_config(tmp_path / "missing.env")

        assert config.consumer_key is None
        assert config.signature_method == "HMAC-SHA1"
        assert config.use_header_for_oauth_parameters

    def test_from_environment(self, clean_env, tmp_path):
        """Test reading consumer settings, including references and blanks."""
        env = {
            "MY_SECRET": "from-reference",
            "OAUTH1_CONSUMER_KEY": " key ",
            "OAUTH1_CONSUMER_SECRET": "${MY_SECRET}",
            "OAUTH1_SIGNATURE_METHOD": "plaintext",
            "OAUTH1_REALM": "",
            "OAUTH1_USE_AUTHORIZATION_HEADER": "off",
            "OAUTH1_REQUEST_TOKEN_URL": "https://provider.example.com/oauth/request_token",
            "OAUTH1_CALLBACK_URL": "oob",
            "OAUTH1_PRIVATE_KEY_PATH": "~/keys/consumer.pem",
        }
        with patch.dict(os.environ, env):
            config = load_consumer_config(tmp_path / "missing.env")

        assert config.consumer_key == "key"
        assert config.consumer_secret == "from-reference"
        assert config.signature_method == "PLAINTEXT"
        assert config.realm is None
        assert not config.use_header_for_oauth_parameters
        assert config.request_token_uri == "https://provider.example.com/oauth/request_token"
        assert config.callback_uri == "oob"
        assert config.private_key_path == Path("~/keys/consumer.pem").expanduser()

    def test_invalid_signature_method(self, clean_env, tmp_path):
        """Test that unsupported signature methods are rejected."""
        with patch.dict(os.environ, {"OAUTH1_SIGNATURE_METHOD": "HMAC-SHA256"}):
            with pytest.raises(ConfigError, match="PLAINTEXT, HMAC-SHA1, RSA-SHA1"):
                load_consumer_config(tmp_path / "missing.env")


class TestConsumerConfigSession:
    """Tests for ConsumerConfig.create_session."""

    def test_hmac_session(self):
        """Test building a session from HMAC settings."""
        config = ConsumerConfig(
            consumer_key="key",
            consumer_secret="secret",
            request_token_uri="https://provider.example.com/oauth/request_token",
            callback_uri="https://consumer.example.com/callback",
        )

        session = config.create_session()

        assert session.consumer_context.consumer_key == "key"
        assert session.consumer_context.signature_method == "HMAC-SHA1"
        assert session.consumer_context.use_header_for_oauth_parameters
        assert session.request_token_uri == "https://provider.example.com/oauth/request_token"
        assert session.callback_uri == "https://consumer.example.com/callback"

    def test_rsa_requires_key_path(self):
        """Test that RSA-SHA1 without a key path is a config error."""
        with pytest.raises(ConfigError, match="PRIVATE_KEY_PATH"):
            ConsumerConfig(consumer_key="key", signature_method="RSA-SHA1").create_session()

    def test_rsa_loads_key(self, tmp_path, rsa_private_key):
        """Test that the private key is loaded for RSA-SHA1."""
        key_path = tmp_path / "consumer.pem"
        key_path.write_bytes(
            rsa_private_key.private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.PKCS8,
                serialization.BestAvailableEncryption(b"hunter2"),
            )
        )
        config = ConsumerConfig(
            consumer_key="key",
            signature_method="RSA-SHA1",
            private_key_path=key_path,
            private_key_password="hunter2",
        )

        session = config.create_session()

        assert session.consumer_context.key.public_key().public_numbers() == rsa_private_key.public_key().public_numbers()

    def test_rsa_missing_key_file(self, tmp_path):
        """Test that a missing key file surfaces as KeyLoadError."""
        config = ConsumerConfig(
            consumer_key="key", signature_method="RSA-SHA1", private_key_path=tmp_path / "missing.pem"
        )

        with pytest.raises(KeyLoadError):
            config.create_session()
