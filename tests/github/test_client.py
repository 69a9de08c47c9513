"""Tests for GitHubGraphQLClient.

Tests cover:
- Token handling
- Query accounting (success and failure records)
- Error conversion from githubkit/asyncio exceptions
- Cursor pagination
- Commit retrieval across branches (dedup, default-branch attribution)
- Pull request retrieval with and without a since filter
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from githubkit.exception import GraphQLFailed, RequestFailed

from github_activity_cache.github.accounting import CallLedger
from github_activity_cache.github.client import GitHubGraphQLClient
from github_activity_cache.github.exceptions import (
    GitHubAuthenticationError,
    GitHubRateLimitError,
    RemoteRejectedError,
    RemoteTimeoutError,
    RemoteUnavailableError,
)
from github_activity_cache.schemas import PRState
from tests.conftest import JAN_10_ISO, JAN_12_ISO, JAN_15, JAN_15_ISO, JAN_16_ISO
from tests.factories import (
    make_commit_node,
    make_pull_request_node,
    make_repository,
    make_repository_node,
)
from tests.fixtures.graphql_responses import (
    VIEWER_RESPONSE,
    branch,
    branch_history_page,
    branches_page,
    organization_repositories_page,
    pull_requests_page,
    viewer_repositories_page,
)


# -----------------------------------------------------------------------------
# Test Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def ledger() -> CallLedger:
    return CallLedger()


@pytest.fixture
def client(ledger) -> GitHubGraphQLClient:
    """Client whose githubkit instance is a mock."""
    github_client = GitHubGraphQLClient(token="test-token", ledger=ledger, timeout_seconds=5)
    github_client._client = MagicMock()
    return github_client


def respond_with(client: GitHubGraphQLClient, *responses) -> AsyncMock:
    """Queue GraphQL responses (or exceptions) for successive calls."""
    mock = AsyncMock(side_effect=list(responses))
    client._client.async_graphql = mock
    return mock


def sent_variables(mock: AsyncMock) -> list[dict]:
    """Variables of every GraphQL call, in order."""
    return [call.args[1] for call in mock.call_args_list]


def request_failed(status: int, headers: dict[str, str] | None = None) -> RequestFailed:
    response = MagicMock()
    response.status_code = status
    response.headers = headers or {}
    return RequestFailed(response)


# -----------------------------------------------------------------------------
# Test: Initialization
# -----------------------------------------------------------------------------
class TestGitHubGraphQLClientInit:
    """Tests for client initialization."""

    def test_init_with_token(self):
        with patch("github_activity_cache.github.client.get_settings") as mock_settings:
            mock_settings.return_value.github_token = ""
            client = GitHubGraphQLClient(token="test-token")
            assert client._token == "test-token"

    def test_init_without_token_raises(self):
        with patch("github_activity_cache.github.client.get_settings") as mock_settings:
            mock_settings.return_value.github_token = ""
            with pytest.raises(GitHubAuthenticationError):
                GitHubGraphQLClient()

    def test_with_ledger_shares_connection(self, client):
        other = CallLedger()
        bound = client.with_ledger(other)

        assert bound.ledger is other
        assert bound._client is client._client


# -----------------------------------------------------------------------------
# Test: Raw Query
# -----------------------------------------------------------------------------
class TestQuery:
    """Tests for query accounting and error conversion."""

    async def test_success_recorded(self, client, ledger):
        respond_with(client, VIEWER_RESPONSE)

        data = await client.query(
            "query GetUserInfo {\n viewer { login }\n}", call_type="UserInfo"
        )

        assert data == VIEWER_RESPONSE
        [record] = ledger.calls
        assert record.success is True
        assert record.call_type == "UserInfo"
        assert record.query == "query GetUserInfo {"
        assert record.error is None

    async def test_failure_recorded(self, client, ledger):
        respond_with(client, request_failed(502))

        with pytest.raises(RemoteUnavailableError):
            await client.query("query Broken {}", call_type="Broken", repository="octo-org/widgets")

        [record] = ledger.calls
        assert record.success is False
        assert record.repository == "octo-org/widgets"
        assert "502" in record.error

    async def test_timeout(self, client):
        respond_with(client, TimeoutError())

        with pytest.raises(RemoteTimeoutError) as exc_info:
            await client.query("query Slow {}", call_type="Slow")

        assert "Slow" in str(exc_info.value)

    async def test_timeout_is_unavailable(self, client):
        respond_with(client, TimeoutError())
        with pytest.raises(RemoteUnavailableError):
            await client.query("query Slow {}")

    async def test_graphql_error_rejected(self, client):
        response = MagicMock()
        response.errors = [MagicMock(message="Could not resolve to a Repository")]
        respond_with(client, GraphQLFailed(response))

        with pytest.raises(RemoteRejectedError) as exc_info:
            await client.query("query Missing {}")

        assert "Could not resolve to a Repository" in str(exc_info.value)

    @pytest.mark.parametrize(
        ("status", "headers", "expected"),
        [
            (401, {}, GitHubAuthenticationError),
            (
                403,
                {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1705312800"},
                GitHubRateLimitError,
            ),
            (429, {}, GitHubRateLimitError),
            (403, {"x-ratelimit-remaining": "12"}, RemoteRejectedError),
            (404, {}, RemoteRejectedError),
            (500, {}, RemoteUnavailableError),
            (503, {}, RemoteUnavailableError),
        ],
    )
    async def test_status_mapping(self, client, status, headers, expected):
        respond_with(client, request_failed(status, headers))
        with pytest.raises(expected):
            await client.query("query Any {}")

    async def test_rate_limit_reset_time(self, client):
        respond_with(
            client,
            request_failed(403, {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1705312800"}),
        )

        with pytest.raises(GitHubRateLimitError) as exc_info:
            await client.query("query Any {}")

        assert exc_info.value.reset_at == datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)

    async def test_rate_limit_is_rejected(self, client):
        respond_with(client, request_failed(429))
        with pytest.raises(RemoteRejectedError):
            await client.query("query Any {}")


# -----------------------------------------------------------------------------
# Test: Discovery
# -----------------------------------------------------------------------------
class TestDiscovery:
    """Tests for user and repository discovery."""

    async def test_fetch_user_info(self, client):
        respond_with(client, VIEWER_RESPONSE)

        user = await client.fetch_user_info()

        assert user.login == "octocat"
        assert user.followers == 12

    async def test_viewer_repositories_follow_cursor(self, client, ledger):
        mock = respond_with(
            client,
            viewer_repositories_page(
                [make_repository_node("octocat/a")], has_next_page=True, end_cursor="c1"
            ),
            viewer_repositories_page([make_repository_node("octocat/b")]),
        )

        repos = await client.fetch_viewer_repositories()

        assert [r.name_with_owner for r in repos] == ["octocat/a", "octocat/b"]
        assert sent_variables(mock) == [{"after": None}, {"after": "c1"}]
        assert [c.call_type for c in ledger.calls] == ["UserRepositories", "UserRepositories"]

    async def test_organization_repositories(self, client):
        mock = respond_with(
            client,
            organization_repositories_page(
                [make_repository_node("octo-org/widgets"), make_repository_node("octo-org/gears")]
            ),
        )

        repos = await client.fetch_organization_repositories("octo-org")

        assert len(repos) == 2
        assert sent_variables(mock) == [{"org": "octo-org", "after": None}]

    async def test_null_organization_yields_nothing(self, client):
        respond_with(client, {"organization": None})
        assert await client.fetch_organization_repositories("ghost-org") == []


# -----------------------------------------------------------------------------
# Test: Commits
# -----------------------------------------------------------------------------
class TestFetchRepositoryCommits:
    """Tests for commit retrieval across branches."""

    async def test_shared_commit_attributed_to_default_branch(self, client):
        shared = make_commit_node("5555555aaaa", committed_date=JAN_15_ISO)
        feature_only = make_commit_node("6666666bbbb", committed_date=JAN_16_ISO)
        main_only = make_commit_node("7777777cccc", committed_date=JAN_12_ISO)
        respond_with(
            client,
            branches_page(
                [
                    branch("feature", [feature_only, shared]),
                    branch("main", [shared, main_only]),
                ]
            ),
        )

        commits = await client.fetch_repository_commits(make_repository())

        assert [c.sha for c in commits] == ["6666666", "5555555", "7777777"]
        by_sha = {c.sha: c.branch_name for c in commits}
        assert by_sha == {"6666666": "feature", "5555555": "main", "7777777": "main"}

    async def test_follows_branch_history_pages(self, client, ledger):
        mock = respond_with(
            client,
            branches_page(
                [branch("main", [make_commit_node("1111111")], has_next_page=True, end_cursor="h1")]
            ),
            branch_history_page(
                [make_commit_node("2222222", committed_date=JAN_10_ISO)],
                has_next_page=True,
                end_cursor="h2",
            ),
            branch_history_page([make_commit_node("3333333", committed_date=JAN_10_ISO)]),
        )

        commits = await client.fetch_repository_commits(make_repository())

        assert len(commits) == 3
        variables = sent_variables(mock)
        assert variables[1]["cursor"] == "h1"
        assert variables[1]["branch"] == "refs/heads/main"
        assert variables[2]["cursor"] == "h2"
        assert [c.call_type for c in ledger.calls] == [
            "RepositoryBranches",
            "BranchHistory",
            "BranchHistory",
        ]
        assert ledger.calls[1].branch == "main"

    async def test_max_history_pages_caps_follow_up(self, ledger):
        client = GitHubGraphQLClient(
            token="test-token", ledger=ledger, timeout_seconds=5, max_history_pages=1
        )
        client._client = MagicMock()
        mock = respond_with(
            client,
            branches_page(
                [branch("main", [make_commit_node("1111111")], has_next_page=True, end_cursor="h1")]
            ),
        )

        commits = await client.fetch_repository_commits(make_repository())

        assert len(commits) == 1
        assert mock.call_count == 1

    async def test_since_passed_to_history(self, client):
        mock = respond_with(client, branches_page([]))

        await client.fetch_repository_commits(make_repository(), since=JAN_15)

        assert sent_variables(mock)[0]["since"] == JAN_15.isoformat()
        assert sent_variables(mock)[0]["owner"] == "octo-org"
        assert sent_variables(mock)[0]["name"] == "widgets"


# -----------------------------------------------------------------------------
# Test: Pull Requests
# -----------------------------------------------------------------------------
class TestFetchRepositoryPullRequests:
    """Tests for pull request retrieval."""

    async def test_full_fetch_orders_by_creation(self, client):
        mock = respond_with(
            client,
            pull_requests_page(
                [make_pull_request_node(2), make_pull_request_node(1, state="MERGED")],
                has_next_page=True,
                end_cursor="p1",
            ),
            pull_requests_page([make_pull_request_node(0, state="CLOSED")]),
        )

        prs = await client.fetch_repository_pull_requests(make_repository())

        assert [pr.number for pr in prs] == [2, 1, 0]
        assert prs[1].state == PRState.MERGED
        assert sent_variables(mock)[0]["orderField"] == "CREATED_AT"
        assert sent_variables(mock)[1]["after"] == "p1"

    async def test_since_stops_at_first_stale_pr(self, client):
        mock = respond_with(
            client,
            pull_requests_page(
                [
                    make_pull_request_node(5, updated_at=JAN_16_ISO),
                    make_pull_request_node(4, updated_at=JAN_15_ISO),
                    make_pull_request_node(3, updated_at=JAN_16_ISO),
                ],
                has_next_page=True,
                end_cursor="p1",
            ),
        )

        prs = await client.fetch_repository_pull_requests(make_repository(), since=JAN_15)

        assert [pr.number for pr in prs] == [5]
        assert mock.call_count == 1
        assert sent_variables(mock)[0]["orderField"] == "UPDATED_AT"
