"""Exceptions raised by the consumer and provider sides.

Every protocol failure surfaces as an ``OAuthException`` carrying a problem
code and an ``OAuthProblemReport``. The factory functions below build the
individual failure cases so messages and codes stay consistent between the
inspectors, the stores and the consumer.
"""

from datetime import datetime
from typing import Any

from .parameters import (
    OAUTH_CALLBACK_CONFIRMED,
    OAUTH_TOKEN,
    OAuthProblems,
)
from .problem import OAuthProblemReport


class OAuth1Error(Exception):
    """Base class for all oauth1kit errors."""

    pass


class OAuthException(OAuth1Error):
    """A protocol-level failure, reported to the other party as a problem report.

    Attributes:
        problem: Problem code (see ``OAuthProblems``)
        advice: Human readable advice, also the exception message
        context: The request context that failed, if any
        report: Structured problem report
    """

    def __init__(
        self,
        context: Any = None,
        problem: str | None = None,
        advice: str | None = None,
        report: OAuthProblemReport | None = None,
    ):
        self.context = context
        self.report = report or OAuthProblemReport(problem=problem, problem_advice=advice)
        self.problem = problem or self.report.problem
        self.advice = advice if advice is not None else self.report.problem_advice
        super().__init__(self.advice or self.problem or "OAuth problem")


class ConsumerConfigurationError(OAuth1Error):
    """The consumer was used with missing or inconsistent settings."""

    pass


class SigningError(OAuth1Error):
    """Key material required for signing or validation is missing."""

    pass


# Factories


def missing_required_parameter(context: Any, parameter: str) -> OAuthException:
    advice = f"Missing required parameter : {parameter}"
    report = OAuthProblemReport(
        problem=OAuthProblems.PARAMETER_ABSENT,
        problem_advice=advice,
        parameters_absent=[parameter],
    )
    return OAuthException(context, OAuthProblems.PARAMETER_ABSENT, advice, report)


def rejected_required_parameter(context: Any, parameter: str) -> OAuthException:
    advice = f'The parameter "{parameter}" was rejected'
    report = OAuthProblemReport(
        problem=OAuthProblems.PARAMETER_REJECTED,
        problem_advice=advice,
        parameters_rejected=[parameter],
    )
    return OAuthException(context, OAuthProblems.PARAMETER_REJECTED, advice, report)


def undecodable_form_body(context: Any) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.PARAMETER_REJECTED,
        "The form-encoded request body is not valid UTF-8",
    )


def request_method_not_assigned(context: Any) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.PARAMETER_ABSENT,
        "The request method has not been assigned",
    )


def unknown_signature_method(context: Any, signature_method: str | None) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.SIGNATURE_METHOD_REJECTED,
        f'Unknown signature method "{signature_method}"',
    )


def failed_to_validate_signature(context: Any) -> OAuthException:
    return OAuthException(context, OAuthProblems.SIGNATURE_INVALID, "Failed to validate signature")


def nonce_has_already_been_used(context: Any) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.NONCE_USED,
        f'The nonce value "{context.nonce}" has already been used',
    )


def _timestamp_refused(context: Any, advice: str, start: datetime, end: datetime) -> OAuthException:
    report = OAuthProblemReport(
        problem=OAuthProblems.TIMESTAMP_REFUSED,
        problem_advice=advice,
        acceptable_timestamps_from=start,
        acceptable_timestamps_to=end,
    )
    return OAuthException(context, OAuthProblems.TIMESTAMP_REFUSED, advice, report)


def timestamp_too_old(context: Any, max_before_now: float, start: datetime, end: datetime) -> OAuthException:
    advice = (
        f"The timestamp is too old, it must be at most {int(max_before_now)} seconds "
        f"before the server's current date and time"
    )
    return _timestamp_refused(context, advice, start, end)


def timestamp_too_new(context: Any, max_after_now: float, start: datetime, end: datetime) -> OAuthException:
    advice = (
        f"The timestamp is too far in the future, it must be at most {int(max_after_now)} seconds "
        f"after the server's current date and time"
    )
    return _timestamp_refused(context, advice, start, end)


def unknown_consumer(context: Any) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.CONSUMER_KEY_UNKNOWN,
        f"Unknown Consumer (Realm: {context.realm or ''}, Key: {context.consumer_key})",
    )


def consumer_public_key_missing(context: Any) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.CONSUMER_KEY_REFUSED,
        f"No public key is registered for consumer {context.consumer_key}, RSA-SHA1 cannot be verified",
    )


def token_secret_transmitted(context: Any) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.PARAMETER_REJECTED,
        "The oauth_token_secret must not be transmitted to the provider.",
    )


def request_for_token_must_not_include_token(context: Any) -> OAuthException:
    advice = "When obtaining a request token, you must not supply the oauth_token parameter"
    report = OAuthProblemReport(
        problem=OAuthProblems.PARAMETER_REJECTED,
        problem_advice=advice,
        parameters_rejected=[OAUTH_TOKEN],
    )
    return OAuthException(context, OAuthProblems.PARAMETER_REJECTED, advice, report)


def unknown_token(context: Any, token: str | None) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.TOKEN_REJECTED,
        f'Unknown or previously rejected token "{token or ""}"',
    )


def request_token_already_consumed(context: Any) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.TOKEN_REJECTED,
        "The request token has already been consumed.",
    )


def token_expired(context: Any) -> OAuthException:
    return OAuthException(context, OAuthProblems.TOKEN_EXPIRED, "Token has expired")


def consumer_has_not_been_granted_access_yet(context: Any) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.PERMISSION_UNKNOWN,
        "The consumer has not been granted access yet, please try again later",
    )


def consumer_has_been_denied_access(context: Any) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.PERMISSION_DENIED,
        "The consumer was denied access to this resource",
    )


def callback_was_not_confirmed(context: Any = None) -> OAuthException:
    advice = "Callback was not confirmed"
    report = OAuthProblemReport(
        problem=OAuthProblems.PARAMETER_ABSENT,
        problem_advice=advice,
        parameters_absent=[OAUTH_CALLBACK_CONFIRMED],
    )
    return OAuthException(context, OAuthProblems.PARAMETER_ABSENT, advice, report)


def empty_xauth_mode(context: Any) -> OAuthException:
    return OAuthException(
        context, OAuthProblems.PARAMETER_ABSENT, "The x_auth_mode parameter must be present"
    )


def invalid_xauth_mode(context: Any) -> OAuthException:
    return OAuthException(
        context, OAuthProblems.PARAMETER_REJECTED, "The x_auth_mode parameter is invalid"
    )


def empty_xauth_username(context: Any) -> OAuthException:
    return OAuthException(
        context, OAuthProblems.PARAMETER_ABSENT, "The x_auth_username parameter must be present"
    )


def empty_xauth_password(context: Any) -> OAuthException:
    return OAuthException(
        context, OAuthProblems.PARAMETER_ABSENT, "The x_auth_password parameter must be present"
    )


def failed_xauth_authentication(context: Any) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.PERMISSION_DENIED,
        "Authentication failed with the specified username and password",
    )


def failed_to_validate_body_hash(context: Any) -> OAuthException:
    return OAuthException(context, OAuthProblems.SIGNATURE_INVALID, "Failed to validate body hash")


def encountered_unexpected_body_hash_in_form_encoded_request(context: Any) -> OAuthException:
    return OAuthException(
        context,
        OAuthProblems.PARAMETER_REJECTED,
        "Encountered unexpected oauth_body_hash value in form-encoded request",
    )
