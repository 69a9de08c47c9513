"""Pydantic schemas for the cached activity records.

Each record maps one GraphQL node to the flat shape stored in the cache
files. Factory methods convert raw GraphQL nodes; natural keys are exposed
as ``key`` properties for the merge step.
"""

from datetime import datetime
from typing import Any

from pydantic import Field

from .base import SchemaBase
from .enums import PRState

SHORT_SHA_LENGTH = 7
DEFAULT_BRANCH_FALLBACK = "main"


class Repository(SchemaBase):
    """A repository discovered for the viewer or a target organization."""

    name: str = Field(description="Repository name (e.g., 'widgets')")
    name_with_owner: str = Field(
        alias="nameWithOwner",
        description="Full repository path (e.g., 'octo-org/widgets')",
    )
    url: str = Field(description="Repository URL")
    pushed_at: datetime = Field(alias="pushedAt", description="Last push on the remote")
    is_private: bool = Field(default=False, alias="isPrivate")
    default_branch: str = Field(default=DEFAULT_BRANCH_FALLBACK, alias="defaultBranch")

    @property
    def key(self) -> str:
        """Natural key."""
        return self.name_with_owner

    @property
    def owner(self) -> str:
        """Repository owner (org or user)."""
        return self.name_with_owner.split("/", 1)[0]

    @property
    def repo_name(self) -> str:
        """Repository name without the owner."""
        return self.name_with_owner.split("/", 1)[1]

    @classmethod
    def from_graphql(cls, node: dict[str, Any]) -> "Repository":
        """
        Factory method to create from a GraphQL Repository node.

        Args:
            node: Node selected with the RepositoryFields fragment

        Returns:
            Repository instance
        """
        default_ref = node.get("defaultBranchRef") or {}
        return cls(
            name=node["name"],
            name_with_owner=node["nameWithOwner"],
            url=node["url"],
            pushed_at=node["pushedAt"],
            is_private=node.get("isPrivate", False),
            default_branch=default_ref.get("name") or DEFAULT_BRANCH_FALLBACK,
        )


class Commit(SchemaBase):
    """A commit reachable from one of a repository's branches."""

    repo: str = Field(description="Owning repository's nameWithOwner")
    repo_url: str
    branch_name: str
    branch_url: str
    sha: str = Field(description="Abbreviated commit SHA")
    message: str
    author: str
    committed_at: datetime = Field(alias="date")
    url: str

    @property
    def key(self) -> tuple[str, str]:
        """Natural key."""
        return (self.repo, self.sha)

    @classmethod
    def from_graphql(
        cls,
        node: dict[str, Any],
        repository: Repository,
        branch_name: str,
    ) -> "Commit":
        """
        Factory method to create from a GraphQL Commit node.

        Args:
            node: Node selected with the CommitFields fragment
            repository: Repository the commit was fetched from
            branch_name: Branch whose history contained the commit

        Returns:
            Commit instance
        """
        author = node.get("author") or {}
        author_user = author.get("user") or {}
        return cls(
            repo=repository.name_with_owner,
            repo_url=repository.url,
            branch_name=branch_name,
            branch_url=f"{repository.url}/tree/{branch_name}",
            sha=node["oid"][:SHORT_SHA_LENGTH],
            message=node.get("message") or "No message",
            author=author.get("name") or author_user.get("login") or "Unknown",
            committed_at=node["committedDate"],
            url=node["url"],
        )


class PullRequest(SchemaBase):
    """A pull request in one of the synced repositories."""

    repo: str = Field(description="Owning repository's nameWithOwner")
    repo_url: str
    number: int
    title: str
    state: PRState
    author: str
    created_at: datetime
    merged_at: datetime | None = None
    url: str

    @property
    def key(self) -> tuple[str, int]:
        """Natural key."""
        return (self.repo, self.number)

    @classmethod
    def from_graphql(cls, node: dict[str, Any], repository: Repository) -> "PullRequest":
        """
        Factory method to create from a GraphQL PullRequest node.

        Args:
            node: Node selected with the PullRequestFields fragment
            repository: Repository the PR belongs to

        Returns:
            PullRequest instance
        """
        author = node.get("author") or {}
        return cls(
            repo=repository.name_with_owner,
            repo_url=repository.url,
            number=node["number"],
            title=node["title"],
            state=PRState.from_graphql(node["state"]),
            author=author.get("login") or "Unknown",
            created_at=node["createdAt"],
            merged_at=node.get("mergedAt"),
            url=node["url"],
        )


class UserInfo(SchemaBase):
    """Profile of the user owning the API token."""

    login: str
    name: str
    email: str | None = None
    bio: str | None = None
    company: str | None = None
    location: str | None = None
    avatar_url: str
    url: str
    created_at: datetime
    followers: int = 0
    following: int = 0
    public_repos: int = 0
    total_commit_contributions: int = 0
    total_pr_contributions: int = 0
    total_issue_contributions: int = 0
    total_repository_contributions: int = 0

    @classmethod
    def from_graphql(cls, viewer: dict[str, Any]) -> "UserInfo":
        """
        Factory method to create from the GraphQL ``viewer`` object.

        Args:
            viewer: Result of the user info query's viewer field

        Returns:
            UserInfo instance
        """
        contributions = viewer.get("contributionsCollection") or {}
        return cls(
            login=viewer["login"],
            name=viewer.get("name") or viewer["login"],
            email=viewer.get("email") or None,
            bio=viewer.get("bio"),
            company=viewer.get("company"),
            location=viewer.get("location"),
            avatar_url=viewer["avatarUrl"],
            url=viewer["url"],
            created_at=viewer["createdAt"],
            followers=(viewer.get("followers") or {}).get("totalCount", 0),
            following=(viewer.get("following") or {}).get("totalCount", 0),
            public_repos=(viewer.get("repositories") or {}).get("totalCount", 0),
            total_commit_contributions=contributions.get("totalCommitContributions", 0),
            total_pr_contributions=contributions.get("totalPullRequestContributions", 0),
            total_issue_contributions=contributions.get("totalIssueContributions", 0),
            total_repository_contributions=contributions.get(
                "totalRepositoryContributions", 0
            ),
        )
