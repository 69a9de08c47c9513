"""GitHub API client module.

This module provides:
- GitHubGraphQLClient: Async GraphQL client with per-call timeouts
- CallLedger: Per-sync API call accounting and reporting
- Exceptions: the remote error taxonomy
"""

from .accounting import CallLedger, CallRecord, CallSummary
from .client import GitHubGraphQLClient
from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubRateLimitError,
    PartialRepositoryFailure,
    RemoteRejectedError,
    RemoteTimeoutError,
    RemoteUnavailableError,
)

__all__ = [
    # Client
    "GitHubGraphQLClient",
    # Accounting
    "CallLedger",
    "CallRecord",
    "CallSummary",
    # Exceptions
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubRateLimitError",
    "PartialRepositoryFailure",
    "RemoteRejectedError",
    "RemoteTimeoutError",
    "RemoteUnavailableError",
]
