"""oauth1kit - OAuth 1.0/1.0a consumer and provider toolkit."""

from importlib import import_module
from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("oauth1kit")
except PackageNotFoundError:
    __version__ = "0.1.0"  # Fallback for development

__all__ = [
    "__version__",
    # Protocol core
    "OAuthContext",
    "OAuthContextBuilder",
    "OAuthContextSigner",
    "SignatureMethod",
    "OAuthProblemReport",
    "OAuth1Error",
    "OAuthException",
    "AccessToken",
    "RequestToken",
    # Consumer
    "ConsumerContext",
    "OAuthSession",
    # Provider
    "OAuthProvider",
    "build_provider",
    # Config
    "ProviderConfig",
    "ConsumerConfig",
    "load_provider_config",
    "load_consumer_config",
]


# Submodules pull in httpx, cryptography and python-dotenv, so they load on first attribute access
_LAZY_ATTRIBUTES = {
    "OAuthContext": ".context",
    "OAuthContextBuilder": ".builder",
    "OAuthContextSigner": ".signing",
    "SignatureMethod": ".parameters",
    "OAuthProblemReport": ".problem",
    "OAuth1Error": ".errors",
    "OAuthException": ".errors",
    "AccessToken": ".tokens",
    "RequestToken": ".tokens",
    "ConsumerContext": ".consumer",
    "OAuthSession": ".consumer",
    "OAuthProvider": ".provider",
    "build_provider": ".provider",
    "ProviderConfig": ".config",
    "ConsumerConfig": ".config",
    "load_provider_config": ".config",
    "load_consumer_config": ".config",
}


def __getattr__(name: str) -> object:
    """Import public names from their submodule on first use."""
    module_name = _LAZY_ATTRIBUTES.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(module_name, __name__), name)
