"""Merge freshly fetched records into the cached dataset.

Records are keyed by their natural key; an incoming record always replaces
the cached one with the same key, which is how PR state transitions
(Open -> Merged) reach the cache. Output order is deterministic.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from github_activity_cache.logging import get_logger
from github_activity_cache.schemas import Commit, PullRequest, Repository

if TYPE_CHECKING:
    from github_activity_cache.schemas import ActivityData

logger = get_logger(__name__)


@dataclass
class MergeResult:
    """Merged collections plus how many keys were new."""

    commits: list[Commit] = field(default_factory=list)
    pull_requests: list[PullRequest] = field(default_factory=list)
    repositories: list[Repository] = field(default_factory=list)
    new_commit_count: int = 0
    new_pr_count: int = 0


def sort_commits(commits: Iterable[Commit]) -> list[Commit]:
    """Most recent first, ties broken by (repo, sha)."""
    ordered = sorted(commits, key=lambda c: c.key)
    ordered.sort(key=lambda c: c.committed_at, reverse=True)
    return ordered


def sort_pull_requests(prs: Iterable[PullRequest]) -> list[PullRequest]:
    """Most recently created first, ties broken by (repo, number)."""
    ordered = sorted(prs, key=lambda pr: pr.key)
    ordered.sort(key=lambda pr: pr.created_at, reverse=True)
    return ordered


def sort_repositories(repos: Iterable[Repository]) -> list[Repository]:
    """By nameWithOwner, case-insensitive then exact."""
    return sorted(repos, key=lambda r: (r.name_with_owner.lower(), r.name_with_owner))


def _later_push(previous: Repository | None, incoming: Repository) -> Repository:
    """Take the incoming record but never move pushedAt backwards."""
    if previous is not None and previous.pushed_at > incoming.pushed_at:
        return incoming.model_copy(update={"pushed_at": previous.pushed_at})
    return incoming


def merge_repositories(
    existing: Iterable[Repository],
    incoming: Iterable[Repository],
) -> list[Repository]:
    """Overlay ``incoming`` onto ``existing`` by nameWithOwner.

    Args:
        existing: Previously cached repositories
        incoming: Newly observed repositories

    Returns:
        Sorted repositories with non-decreasing pushedAt per key
    """
    repo_map = {repo.key: repo for repo in existing}
    for repo in incoming:
        repo_map[repo.key] = _later_push(repo_map.get(repo.key), repo)
    return sort_repositories(repo_map.values())


def carry_forward_pushed_at(
    previous: Iterable[Repository],
    current: Iterable[Repository],
) -> list[Repository]:
    """Keep exactly the ``current`` repositories, clamping pushedAt to ``previous``.

    Repositories missing from ``current`` are dropped, unlike
    :func:`merge_repositories`.
    """
    previous_map = {repo.key: repo for repo in previous}
    return [_later_push(previous_map.get(repo.key), repo) for repo in current]


def merge_activity(
    existing: ActivityData | None,
    new_commits: Iterable[Commit],
    new_prs: Iterable[PullRequest],
    new_repos: Iterable[Repository] = (),
) -> MergeResult:
    """Merge a new batch of records into the cached dataset.

    Args:
        existing: Cached dataset, or None when there is nothing to merge into
        new_commits: Fetched commits
        new_prs: Fetched pull requests
        new_repos: Newly observed repositories

    Returns:
        MergeResult with sorted collections and new-key counts
    """
    commit_map: dict[tuple[str, str], Commit] = {}
    pr_map: dict[tuple[str, int], PullRequest] = {}
    base_repos: list[Repository] = []
    if existing is not None:
        commit_map = {commit.key: commit for commit in existing.commits}
        pr_map = {pr.key: pr for pr in existing.pull_requests}
        base_repos = list(existing.repositories)

    base_commit_keys = set(commit_map)
    base_pr_keys = set(pr_map)

    for commit in new_commits:
        commit_map[commit.key] = commit
    for pr in new_prs:
        pr_map[pr.key] = pr

    result = MergeResult(
        commits=sort_commits(commit_map.values()),
        pull_requests=sort_pull_requests(pr_map.values()),
        repositories=merge_repositories(base_repos, new_repos),
        new_commit_count=len(commit_map.keys() - base_commit_keys),
        new_pr_count=len(pr_map.keys() - base_pr_keys),
    )

    if existing is None:
        logger.debug("No existing cache, every record counts as new")
    logger.info(
        "Merged data: +{} new commits, +{} new PRs (totals: {} commits, {} PRs, {} repos)",
        result.new_commit_count,
        result.new_pr_count,
        len(result.commits),
        len(result.pull_requests),
        len(result.repositories),
    )
    return result
