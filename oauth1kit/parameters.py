"""Protocol constants: parameter names, signature methods, problem codes and provider phases."""

from enum import Enum

OAUTH_PARAMETER_PREFIX = "oauth_"
XAUTH_PARAMETER_PREFIX = "x_auth_"

OAUTH_CALLBACK = "oauth_callback"
OAUTH_CALLBACK_CONFIRMED = "oauth_callback_confirmed"
OAUTH_CONSUMER_KEY = "oauth_consumer_key"
OAUTH_NONCE = "oauth_nonce"
OAUTH_SIGNATURE = "oauth_signature"
OAUTH_SIGNATURE_METHOD = "oauth_signature_method"
OAUTH_TIMESTAMP = "oauth_timestamp"
OAUTH_TOKEN = "oauth_token"
OAUTH_TOKEN_SECRET = "oauth_token_secret"
OAUTH_VERIFIER = "oauth_verifier"
OAUTH_VERSION = "oauth_version"
OAUTH_SESSION_HANDLE = "oauth_session_handle"
OAUTH_BODY_HASH = "oauth_body_hash"
REALM = "realm"

OAUTH_PROBLEM = "oauth_problem"
OAUTH_PROBLEM_ADVICE = "oauth_problem_advice"
OAUTH_PARAMETERS_ABSENT = "oauth_parameters_absent"
OAUTH_PARAMETERS_REJECTED = "oauth_parameters_rejected"
OAUTH_ACCEPTABLE_TIMESTAMPS = "oauth_acceptable_timestamps"
OAUTH_ACCEPTABLE_VERSIONS = "oauth_acceptable_versions"

XAUTH_MODE = "x_auth_mode"
XAUTH_USERNAME = "x_auth_username"
XAUTH_PASSWORD = "x_auth_password"

AUTHORIZATION_HEADER = "Authorization"
HTTP_FORM_ENCODED = "application/x-www-form-urlencoded"
OUT_OF_BAND_CALLBACK = "oob"
OAUTH_VERSION_1_0 = "1.0"


class SignatureMethod(str, Enum):
    """Signature methods defined by OAuth Core 1.0."""

    PLAINTEXT = "PLAINTEXT"
    HMAC_SHA1 = "HMAC-SHA1"
    RSA_SHA1 = "RSA-SHA1"


class OAuthProblems:
    """Problem codes from the OAuth Problem Reporting extension."""

    VERSION_REJECTED = "version_rejected"
    PARAMETER_ABSENT = "parameter_absent"
    PARAMETER_REJECTED = "parameter_rejected"
    TIMESTAMP_REFUSED = "timestamp_refused"
    NONCE_USED = "nonce_used"
    SIGNATURE_METHOD_REJECTED = "signature_method_rejected"
    SIGNATURE_INVALID = "signature_invalid"
    CONSUMER_KEY_UNKNOWN = "consumer_key_unknown"
    CONSUMER_KEY_REJECTED = "consumer_key_rejected"
    CONSUMER_KEY_REFUSED = "consumer_key_refused"
    TOKEN_USED = "token_used"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_REVOKED = "token_revoked"
    TOKEN_REJECTED = "token_rejected"
    ADDITIONAL_AUTHORIZATION_REQUIRED = "additional_authorization_required"
    PERMISSION_UNKNOWN = "permission_unknown"
    PERMISSION_DENIED = "permission_denied"


class ProviderPhase(str, Enum):
    """The provider operation an inbound request is being inspected for."""

    GRANT_REQUEST_TOKEN = "grant_request_token"
    EXCHANGE_REQUEST_TOKEN_FOR_ACCESS_TOKEN = "exchange_request_token_for_access_token"
    ACCESS_PROTECTED_RESOURCE_REQUEST = "access_protected_resource_request"
    RENEW_ACCESS_TOKEN = "renew_access_token"
    CREATE_ACCESS_TOKEN = "create_access_token"
