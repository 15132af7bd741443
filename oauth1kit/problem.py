"""OAuth problem reports (the OAuth Problem Reporting extension).

A problem report is the form-encoded body a provider returns alongside a
failed request, e.g.::

    oauth_problem=parameter_absent&oauth_parameters_absent=oauth_nonce
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .encoding import format_query_string, parse_form_parameters, url_encode
from .parameters import (
    OAUTH_ACCEPTABLE_TIMESTAMPS,
    OAUTH_ACCEPTABLE_VERSIONS,
    OAUTH_PARAMETERS_ABSENT,
    OAUTH_PARAMETERS_REJECTED,
    OAUTH_PROBLEM,
    OAUTH_PROBLEM_ADVICE,
)


def _to_epoch(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def _from_epoch(value: str) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _format_parameter_names(names: list[str]) -> str:
    return "&".join(url_encode(name) for name in names)


def _parse_parameter_names(formatted: str | None) -> list[str]:
    if not formatted:
        return []
    return [name for name in formatted.split("&") if name]


@dataclass
class OAuthProblemReport:
    """Structured problem report.

    Attributes:
        problem: Problem code (see ``OAuthProblems``)
        problem_advice: Human readable advice
        parameters_absent: Names of required parameters that were missing
        parameters_rejected: Names of parameters that were rejected
        acceptable_timestamps_from: Start of the accepted timestamp window
        acceptable_timestamps_to: End of the accepted timestamp window
        acceptable_version_from: Lowest accepted protocol version
        acceptable_version_to: Highest accepted protocol version
    """

    problem: str | None = None
    problem_advice: str | None = None
    parameters_absent: list[str] = field(default_factory=list)
    parameters_rejected: list[str] = field(default_factory=list)
    acceptable_timestamps_from: datetime | None = None
    acceptable_timestamps_to: datetime | None = None
    acceptable_version_from: str | None = None
    acceptable_version_to: str | None = None

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, str]) -> "OAuthProblemReport":
        """Build a report from already-decoded response parameters."""
        report = cls(
            problem=parameters.get(OAUTH_PROBLEM),
            problem_advice=parameters.get(OAUTH_PROBLEM_ADVICE),
            parameters_absent=_parse_parameter_names(parameters.get(OAUTH_PARAMETERS_ABSENT)),
            parameters_rejected=_parse_parameter_names(parameters.get(OAUTH_PARAMETERS_REJECTED)),
        )

        timestamps = parameters.get(OAUTH_ACCEPTABLE_TIMESTAMPS)
        if timestamps:
            start, _, end = timestamps.partition("-")
            try:
                report.acceptable_timestamps_from = _from_epoch(start)
                report.acceptable_timestamps_to = _from_epoch(end)
            except ValueError:
                report.acceptable_timestamps_from = None
                report.acceptable_timestamps_to = None

        versions = parameters.get(OAUTH_ACCEPTABLE_VERSIONS)
        if versions:
            start, _, end = versions.partition("-")
            report.acceptable_version_from = start or None
            report.acceptable_version_to = end or None

        return report

    @classmethod
    def parse(cls, formatted_report: str) -> "OAuthProblemReport":
        """Build a report from a form-encoded response body."""
        return cls.from_parameters(parse_form_parameters(formatted_report))

    def format(self) -> str:
        """Serialize to the form-encoded wire format.

        Raises:
            ValueError: If no problem code is set
        """
        if not self.problem:
            raise ValueError("Can't build a problem report when the problem is empty")

        response: list[tuple[str, str]] = [(OAUTH_PROBLEM, self.problem)]

        if self.problem_advice:
            advice = self.problem_advice.replace("\r\n", "\n").replace("\r", "\n")
            response.append((OAUTH_PROBLEM_ADVICE, advice))

        if self.parameters_absent:
            response.append((OAUTH_PARAMETERS_ABSENT, _format_parameter_names(self.parameters_absent)))

        if self.parameters_rejected:
            response.append((OAUTH_PARAMETERS_REJECTED, _format_parameter_names(self.parameters_rejected)))

        if self.acceptable_timestamps_from and self.acceptable_timestamps_to:
            response.append(
                (
                    OAUTH_ACCEPTABLE_TIMESTAMPS,
                    f"{_to_epoch(self.acceptable_timestamps_from)}-{_to_epoch(self.acceptable_timestamps_to)}",
                )
            )

        if self.acceptable_version_from and self.acceptable_version_to:
            response.append(
                (OAUTH_ACCEPTABLE_VERSIONS, f"{self.acceptable_version_from}-{self.acceptable_version_to}")
            )

        return format_query_string(response)

    def __str__(self) -> str:
        return self.format()
