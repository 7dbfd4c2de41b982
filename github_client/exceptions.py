"""
Domain specific exception hierarchy for the github_client package.

Failures are classified once, where the response is read, so callers can
match on exception type instead of inspecting messages.
"""

from __future__ import annotations

from enum import Enum


class GitHubClientError(Exception):
    """Base exception for all library errors."""

    user_message = "Something went wrong while talking to GitHub."


class ConfigurationError(GitHubClientError):
    """Raised when required configuration or credentials are missing."""


class ApiResponseError(GitHubClientError):
    """Raised when the GitHub API answers with a non-success status."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class QuotaExhausted(ApiResponseError):
    """Raised when the remote quota reports no remaining requests."""

    user_message = "The GitHub request quota is exhausted. Please wait."

    def __init__(
        self,
        message: str,
        *,
        status: int | None = 403,
        reset_at: int | None = None,
    ) -> None:
        super().__init__(message, status=status)
        self.reset_at = reset_at


class DenialCause(str, Enum):
    SECONDARY_RATE_LIMIT = "secondary_rate_limit"
    POLICY = "policy"
    UNKNOWN = "unknown"


class AccessDenied(ApiResponseError):
    """Raised on a forbidden response that is unrelated to the primary quota."""

    user_message = "GitHub denied access. Retrying automatically."

    def __init__(
        self,
        message: str,
        *,
        status: int | None = 403,
        retry_after: float | None = None,
        cause: DenialCause = DenialCause.UNKNOWN,
    ) -> None:
        super().__init__(message, status=status)
        self.retry_after = retry_after
        self.cause = cause


class NotFound(ApiResponseError):
    """Raised when the requested resource does not exist."""

    user_message = "The requested GitHub user or resource was not found."

    def __init__(self, message: str, *, status: int | None = 404) -> None:
        super().__init__(message, status=status)


class UnclassifiedHttpFailure(ApiResponseError):
    """Raised for any other non-success HTTP status."""


class NetworkFailure(GitHubClientError):
    """Raised when the request never produced an HTTP response."""

    user_message = "Network error. Check your connection and try again."
