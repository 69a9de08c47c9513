"""Async GitHub GraphQL client wrapper using githubkit.

This module provides a typed async interface to the GitHub GraphQL API
for repository, commit and pull request retrieval. Every call is timed,
bounded by a timeout, and recorded in the bound CallLedger.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

from githubkit import GitHub
from githubkit.exception import (
    GitHubException,
    GraphQLFailed,
    RequestFailed,
    RequestTimeout,
)

from github_activity_cache.config import get_settings
from github_activity_cache.logging import bind_repo, get_logger
from github_activity_cache.schemas import Commit, PullRequest, Repository, UserInfo

from .accounting import CallLedger
from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubRateLimitError,
    RemoteRejectedError,
    RemoteTimeoutError,
    RemoteUnavailableError,
)
from .queries import (
    BRANCH_HISTORY_QUERY,
    ORGANIZATION_REPOSITORIES_QUERY,
    REPOSITORY_BRANCHES_QUERY,
    REPOSITORY_PULL_REQUESTS_QUERY,
    USER_INFO_QUERY,
    VIEWER_REPOSITORIES_QUERY,
    query_identifier,
)

logger = get_logger(__name__)


def _dig(data: dict[str, Any] | None, *path: str) -> dict[str, Any]:
    """Walk nested GraphQL objects, treating null at any level as empty."""
    current: dict[str, Any] = data or {}
    for key in path:
        current = current.get(key) or {}
    return current


class GitHubGraphQLClient:
    """Async GitHub GraphQL client for activity retrieval.

    Usage:
        async with GitHubGraphQLClient() as client:
            repos = await client.fetch_viewer_repositories()
            for repo in repos:
                print(repo.name_with_owner)

    Per-sync accounting:
        ledger = CallLedger()
        tracked = client.with_ledger(ledger)
        await tracked.fetch_user_info()
        print(ledger.summary().total_calls)
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        ledger: CallLedger | None = None,
        timeout_seconds: float | None = None,
        base_url: str | None = None,
        max_history_pages: int | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub PAT. If not provided, uses GITHUB_TOKEN from settings.
            ledger: CallLedger receiving a record for every call.
            timeout_seconds: Per-call upper bound. Defaults to settings.
            base_url: API base URL. Defaults to settings.
            max_history_pages: Cap on history pages per branch. Defaults to settings.

        Raises:
            GitHubAuthenticationError: If no token is available.
        """
        settings = get_settings()
        self._token = token or settings.github_token
        if not self._token:
            raise GitHubAuthenticationError(
                "GitHub token required. Set GITHUB_TOKEN environment variable."
            )
        self._client: GitHub[Any] | None = None
        self._ledger = ledger
        self._timeout = timeout_seconds or settings.sync.query_timeout_seconds
        self._base_url = base_url or settings.github_base_url
        self._max_history_pages = (
            max_history_pages
            if max_history_pages is not None
            else settings.sync.max_history_pages
        )

    @property
    def _github(self) -> GitHub[Any]:
        """Get or create the githubkit client instance."""
        if self._client is None:
            self._client = GitHub(self._token, base_url=self._base_url, timeout=self._timeout)
        return self._client

    @property
    def ledger(self) -> CallLedger | None:
        """Access the call ledger (if bound)."""
        return self._ledger

    def with_ledger(self, ledger: CallLedger) -> GitHubGraphQLClient:
        """Get a client bound to ``ledger`` that shares this client's connection.

        Args:
            ledger: Ledger receiving the new client's call records

        Returns:
            New GitHubGraphQLClient
        """
        bound = GitHubGraphQLClient(
            self._token,
            ledger=ledger,
            timeout_seconds=self._timeout,
            base_url=self._base_url,
            max_history_pages=self._max_history_pages,
        )
        bound._client = self._github
        return bound

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            self._client = None

    async def __aenter__(self) -> GitHubGraphQLClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    # -------------------------------------------------------------------------
    # Raw Query
    # -------------------------------------------------------------------------
    async def query(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        *,
        call_type: str = "Unknown",
        repository: str | None = None,
        branch: str | None = None,
    ) -> dict[str, Any]:
        """Execute a GraphQL query.

        Args:
            query: GraphQL document
            variables: Query variables
            call_type: Label used for accounting
            repository: Repository the call targets (for accounting)
            branch: Branch the call targets (for accounting)

        Returns:
            The response's ``data`` object

        Raises:
            RemoteUnavailableError: Network failure or 5xx
            RemoteTimeoutError: Call exceeded the timeout
            RemoteRejectedError: GraphQL errors or 4xx
        """
        started = time.monotonic()
        succeeded = False
        error_text: str | None = None
        try:
            data = await asyncio.wait_for(
                self._github.async_graphql(query, variables),
                timeout=self._timeout,
            )
            succeeded = True
            return data or {}
        except (TimeoutError, GitHubException) as e:
            error = self._handle_error(e, call_type)
            error_text = str(error)
            raise error from e
        finally:
            duration_ms = (time.monotonic() - started) * 1000
            if self._ledger is not None:
                self._ledger.record_call(
                    call_type=call_type,
                    query=query_identifier(query),
                    variables=variables,
                    duration_ms=duration_ms,
                    success=succeeded,
                    error=error_text,
                    repository=repository,
                    branch=branch,
                )

    async def _iter_connection(
        self,
        query: str,
        variables: dict[str, Any],
        path: tuple[str, ...],
        *,
        call_type: str,
        cursor_var: str = "after",
        start_cursor: str | None = None,
        max_pages: int | None = None,
        repository: str | None = None,
        branch: str | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Iterate over the nodes of a paginated connection.

        Follows ``pageInfo.endCursor`` until ``hasNextPage`` is false or
        ``max_pages`` pages have been fetched.

        Yields:
            Connection nodes in remote order
        """
        cursor = start_cursor
        pages = 0
        while True:
            data = await self.query(
                query,
                {**variables, cursor_var: cursor},
                call_type=call_type,
                repository=repository,
                branch=branch,
            )
            connection = _dig(data, *path)
            for node in connection.get("nodes") or []:
                if node:
                    yield node
            pages += 1

            page_info = connection.get("pageInfo") or {}
            cursor = page_info.get("endCursor")
            if not page_info.get("hasNextPage") or not cursor:
                return
            if max_pages is not None and pages >= max_pages:
                return

    # -------------------------------------------------------------------------
    # User & Repository Discovery
    # -------------------------------------------------------------------------
    async def fetch_user_info(self) -> UserInfo:
        """Get the profile of the token's owner."""
        data = await self.query(USER_INFO_QUERY, {}, call_type="UserInfo")
        return UserInfo.from_graphql(data["viewer"])

    async def fetch_viewer_repositories(self) -> list[Repository]:
        """List every repository the viewer owns or collaborates on."""
        repositories = [
            Repository.from_graphql(node)
            async for node in self._iter_connection(
                VIEWER_REPOSITORIES_QUERY,
                {},
                ("viewer", "repositories"),
                call_type="UserRepositories",
            )
        ]
        logger.debug("Discovered {} viewer repositories", len(repositories))
        return repositories

    async def fetch_organization_repositories(self, org: str) -> list[Repository]:
        """List every repository of an organization.

        Args:
            org: Organization login

        Returns:
            List of Repository objects
        """
        repositories = [
            Repository.from_graphql(node)
            async for node in self._iter_connection(
                ORGANIZATION_REPOSITORIES_QUERY,
                {"org": org},
                ("organization", "repositories"),
                call_type="OrganizationRepositories",
            )
        ]
        logger.debug("Discovered {} repositories in {}", len(repositories), org)
        return repositories

    # -------------------------------------------------------------------------
    # Commits
    # -------------------------------------------------------------------------
    async def fetch_repository_commits(
        self,
        repository: Repository,
        since: datetime | None = None,
    ) -> list[Commit]:
        """Get commits from every branch of a repository.

        The first history page of each branch comes with the branch
        listing; further pages are followed per branch. When ``since`` is
        given the remote filters history by commit time.

        A commit reachable from several branches is returned once, attributed
        to the default branch when it is on it, otherwise to the first branch
        listed.

        Args:
            repository: Repository to fetch
            since: Only commits after this time (incremental sync)

        Returns:
            Unique commits, most recent first
        """
        repo_logger = bind_repo(repository.name_with_owner)
        base_vars: dict[str, Any] = {
            "owner": repository.owner,
            "name": repository.repo_name,
            "since": since.isoformat() if since else None,
        }

        branch_commits: list[tuple[str, list[dict[str, Any]]]] = []
        async for branch in self._iter_connection(
            REPOSITORY_BRANCHES_QUERY,
            base_vars,
            ("repository", "refs"),
            call_type="RepositoryBranches",
            repository=repository.name_with_owner,
        ):
            history = _dig(branch, "target", "history")
            nodes = list(history.get("nodes") or [])
            page_info = history.get("pageInfo") or {}
            follow_pages = (
                None if self._max_history_pages is None else self._max_history_pages - 1
            )
            if page_info.get("hasNextPage") and page_info.get("endCursor") and follow_pages != 0:
                nodes.extend(
                    [
                        node
                        async for node in self._iter_connection(
                            BRANCH_HISTORY_QUERY,
                            {**base_vars, "branch": f"refs/heads/{branch['name']}"},
                            ("repository", "ref", "target", "history"),
                            call_type="BranchHistory",
                            cursor_var="cursor",
                            start_cursor=page_info["endCursor"],
                            max_pages=follow_pages,
                            repository=repository.name_with_owner,
                            branch=branch["name"],
                        )
                    ]
                )
            branch_commits.append((branch["name"], nodes))

        # Default branch first so shared commits are attributed to it
        branch_commits.sort(key=lambda item: item[0] != repository.default_branch)

        unique: dict[str, Commit] = {}
        for branch_name, nodes in branch_commits:
            for node in nodes:
                commit = Commit.from_graphql(node, repository, branch_name)
                unique.setdefault(commit.sha, commit)

        commits = sorted(unique.values(), key=lambda c: c.committed_at, reverse=True)
        repo_logger.debug(
            "Fetched {} unique commits across {} branches", len(commits), len(branch_commits)
        )
        return commits

    # -------------------------------------------------------------------------
    # Pull Requests
    # -------------------------------------------------------------------------
    async def fetch_repository_pull_requests(
        self,
        repository: Repository,
        since: datetime | None = None,
    ) -> list[PullRequest]:
        """Get pull requests of a repository.

        Without ``since`` every PR is fetched, newest first. With ``since``
        PRs are read in order of last update and iteration stops at the
        first one not updated after ``since``.

        Args:
            repository: Repository to fetch
            since: Only PRs updated after this time (incremental sync)

        Returns:
            List of PullRequest objects
        """
        order_field = "UPDATED_AT" if since else "CREATED_AT"
        prs: list[PullRequest] = []
        async for node in self._iter_connection(
            REPOSITORY_PULL_REQUESTS_QUERY,
            {
                "owner": repository.owner,
                "name": repository.repo_name,
                "orderField": order_field,
            },
            ("repository", "pullRequests"),
            call_type="PullRequests",
            repository=repository.name_with_owner,
        ):
            if since is not None and node.get("updatedAt"):
                if datetime.fromisoformat(node["updatedAt"]) <= since:
                    break
            prs.append(PullRequest.from_graphql(node, repository))

        bind_repo(repository.name_with_owner).debug("Fetched {} pull requests", len(prs))
        return prs

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(self, error: Exception, call_type: str) -> GitHubClientError:
        """Convert githubkit/asyncio exceptions to our custom exceptions."""
        if isinstance(error, TimeoutError | RequestTimeout):
            return RemoteTimeoutError(f"{call_type} timed out after {self._timeout:.1f}s")

        if isinstance(error, GraphQLFailed):
            errors = getattr(error.response, "errors", None) or []
            message = errors[0].message if errors else str(error)
            return RemoteRejectedError(f"GraphQL error: {message}")

        if isinstance(error, RequestFailed):
            status = error.response.status_code
            if status == 401:
                return GitHubAuthenticationError("Invalid GitHub token")
            if status in (403, 429):
                headers = error.response.headers
                if headers.get("x-ratelimit-remaining") == "0" or status == 429:
                    reset_ts = int(headers.get("x-ratelimit-reset", "0") or 0)
                    reset_at = datetime.fromtimestamp(reset_ts, tz=UTC) if reset_ts else None
                    return GitHubRateLimitError("GitHub rate limit exceeded", reset_at=reset_at)
                return RemoteRejectedError(f"Access forbidden: {error}")
            if status >= 500:
                return RemoteUnavailableError(f"GitHub API error ({status}): {error}")
            return RemoteRejectedError(f"GitHub API error ({status}): {error}")

        return RemoteUnavailableError(f"GitHub API request failed: {error}")
