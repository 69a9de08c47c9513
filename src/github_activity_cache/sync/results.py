"""Result types for sync operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from github_activity_cache.schemas import (
    ActivityData,
    Commit,
    PullRequest,
    Repository,
    UserInfo,
)

from .enums import Provenance, SyncMode


@dataclass
class RepositoryActivity:
    """Commits and pull requests fetched for one repository."""

    repository: Repository
    commits: list[Commit] = field(default_factory=list)
    pull_requests: list[PullRequest] = field(default_factory=list)


@dataclass
class SyncResult:
    """Result envelope returned by every sync path.

    ``sync_timestamp`` is the time of this sync, except for a fallback
    where it is the time of the last successful sync.
    """

    mode: SyncMode
    provenance: Provenance
    sync_timestamp: datetime
    commits: list[Commit] = field(default_factory=list)
    pull_requests: list[PullRequest] = field(default_factory=list)
    repositories: list[Repository] = field(default_factory=list)
    user_info: UserInfo | None = None
    is_incremental: bool = False
    new_commits_count: int = 0
    new_prs_count: int = 0
    last_full_sync: datetime | None = None
    failed_repositories: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str | None = None
    report_file: str | None = None

    @property
    def is_degraded(self) -> bool:
        """Whether the data is older than this request (fallback)."""
        return self.provenance == Provenance.FILE_CACHE_FALLBACK

    def to_activity(self) -> ActivityData:
        """The four data collections, as persisted by the store."""
        return ActivityData(
            commits=self.commits,
            pull_requests=self.pull_requests,
            repositories=self.repositories,
            user_info=self.user_info,
        )

    def cache_info(self) -> dict[str, Any]:
        """Provenance block describing how the data was produced."""
        info: dict[str, Any] = {
            "source": self.provenance.value,
            "mode": self.mode.value,
            "last_sync": self.sync_timestamp.isoformat(),
            "last_full_sync": self.last_full_sync.isoformat() if self.last_full_sync else None,
            "is_incremental": self.is_incremental,
            "new_commits": self.new_commits_count,
            "new_prs": self.new_prs_count,
        }
        if self.failed_repositories:
            info["failed_repositories"] = list(self.failed_repositories)
        if self.warnings:
            info["warnings"] = list(self.warnings)
        if self.error:
            info["error"] = self.error
        if self.report_file:
            info["report_file"] = self.report_file
        return info

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            **self.to_activity().to_json_dict(),
            "cache_info": self.cache_info(),
        }

    def summary_dict(self) -> dict[str, Any]:
        """Counts and provenance without the records themselves."""
        return {
            "commits": len(self.commits),
            "pull_requests": len(self.pull_requests),
            "repositories": len(self.repositories),
            "user": self.user_info.login if self.user_info else None,
            "cache_info": self.cache_info(),
        }
