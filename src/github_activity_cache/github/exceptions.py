"""GitHub client exceptions."""

from datetime import datetime


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    pass


class GitHubAuthenticationError(GitHubClientError):
    """Raised when no token is configured or the token is rejected (401)."""

    pass


class RemoteUnavailableError(GitHubClientError):
    """Raised when the API cannot be reached (network error, 5xx)."""

    pass


class RemoteTimeoutError(RemoteUnavailableError):
    """Raised when a call exceeds the configured timeout."""

    pass


class RemoteRejectedError(GitHubClientError):
    """Raised when the API answers with an error payload or a 4xx status."""

    pass


class GitHubRateLimitError(RemoteRejectedError):
    """Raised when rate limit is exceeded (403 with rate limit headers)."""

    def __init__(self, message: str, reset_at: datetime | None = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at


class PartialRepositoryFailure(GitHubClientError):
    """A single repository or organization could not be fetched.

    Always absorbed by the sync: the repository contributes empty results.
    """

    def __init__(self, repository: str, cause: Exception) -> None:
        super().__init__(f"{repository}: {cause}")
        self.repository = repository
        self.cause = cause
