"""Sync Orchestrator - decide, fetch, merge and persist.

Entry point for every data request. The orchestrator reads cache metadata,
picks a SyncMode, runs the matching path and returns a SyncResult tagged
with its provenance:

    COLD_START / FULL  -> discover every repository and re-fetch everything
    INCREMENTAL        -> re-fetch only cached repositories pushed since lastSync
    CACHE_HIT          -> serve the cache unchanged
    FALLBACK           -> incremental fetch failed, serve the previous cache
    FAILED             -> full sync failed, the error reaches the caller
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from github_activity_cache.cache import (
    CacheWriteError,
    carry_forward_pushed_at,
    merge_activity,
)
from github_activity_cache.config import Settings, get_settings
from github_activity_cache.github import (
    CallLedger,
    GitHubClientError,
    PartialRepositoryFailure,
)
from github_activity_cache.logging import LogContext, get_logger
from github_activity_cache.schemas import (
    ActivityData,
    CachedData,
    CacheMetadata,
    Repository,
)

from .batch import BatchExecutor, BatchResult
from .decision import decide_sync_mode
from .enums import Provenance, SyncMode
from .results import RepositoryActivity, SyncResult

if TYPE_CHECKING:
    from github_activity_cache.cache import CacheStore
    from github_activity_cache.github import GitHubGraphQLClient

logger = get_logger(__name__)

FALLBACK_ERROR = "API request failed, using cached data"

SyncRunner = Callable[["GitHubGraphQLClient", SyncMode], Awaitable[SyncResult]]


class SyncOrchestrator:
    """Serves activity data from the cache, syncing with GitHub when needed.

    Usage:
        async with GitHubGraphQLClient() as client:
            store = JsonFileCacheStore(Path(settings.cache.cache_dir))
            orchestrator = SyncOrchestrator(client, store)

            result = await orchestrator.get_current_data()
            print(result.provenance, len(result.commits))

    Concurrent requests on one orchestrator are serialized; each decides
    its mode only once it holds the lock, so a waiting request sees the
    cache written by the sync before it.
    """

    def __init__(
        self,
        client: GitHubGraphQLClient,
        store: CacheStore,
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: GitHub GraphQL client (bound to a fresh ledger per sync)
            store: Cache store holding the persisted dataset
            settings: Settings to use. Defaults to get_settings().
            clock: Returns the current UTC time (injectable for tests)
        """
        self._client = client
        self._store = store
        self._settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Pull Interface
    # -------------------------------------------------------------------------
    async def get_current_data(self) -> SyncResult:
        """Serve the cache if fresh, otherwise sync incrementally."""
        return await self.sync()

    async def refresh(self) -> SyncResult:
        """Sync incrementally even if the cache is fresh."""
        return await self.sync(force_refresh=True)

    async def full_resync(self) -> SyncResult:
        """Discard the incremental path and re-fetch everything."""
        return await self.sync(force_full_sync=True)

    def get_cached_snapshot(self) -> CachedData | None:
        """Read the cache directly, without contacting GitHub."""
        return self._store.read_all()

    async def sync(
        self,
        *,
        force_full_sync: bool = False,
        force_refresh: bool = False,
    ) -> SyncResult:
        """Run the sync state machine once.

        Args:
            force_full_sync: Re-fetch everything even if a cache exists
            force_refresh: Skip the freshness check

        Returns:
            SyncResult with data and provenance

        Raises:
            GitHubClientError: If a full sync cannot discover the user or
                repositories
        """
        async with self._lock:
            metadata = self._store.read_metadata()
            is_stale = metadata is None or self._store.is_stale(
                self._settings.cache_ttl_minutes, now=self._clock()
            )
            mode = decide_sync_mode(
                metadata is not None,
                is_stale,
                force_full_sync=force_full_sync,
                force_refresh=force_refresh,
            )
            logger.info(
                "Sync requested (full={}, refresh={}): {}",
                force_full_sync,
                force_refresh,
                mode.value,
            )

            with LogContext(sync_mode=mode.value):
                if mode == SyncMode.CACHE_HIT:
                    cached = self._store.read_all()
                    if cached is not None:
                        return self._cached_result(cached, SyncMode.CACHE_HIT)
                    mode = SyncMode.COLD_START

                if mode == SyncMode.INCREMENTAL:
                    return await self._run_tracked(mode, self._incremental_sync)
                return await self._run_tracked(mode, self._full_sync)

    # -------------------------------------------------------------------------
    # Accounting
    # -------------------------------------------------------------------------
    async def _run_tracked(self, mode: SyncMode, runner: SyncRunner) -> SyncResult:
        """Run one sync path with a fresh call ledger and report on it."""
        ledger = CallLedger(hourly_quota=self._settings.reporting.hourly_quota)
        ledger.start()
        client = self._client.with_ledger(ledger)
        try:
            result = await runner(client, mode)
        finally:
            report_file = self._report(ledger)
        result.report_file = report_file
        return result

    def _report(self, ledger: CallLedger) -> str | None:
        ledger.log_summary()
        if not self._settings.reporting.write_reports:
            return None
        return ledger.write_report(Path(self._settings.cache.report_dir), self._clock())

    # -------------------------------------------------------------------------
    # Full Sync
    # -------------------------------------------------------------------------
    async def _full_sync(self, client: GitHubGraphQLClient, mode: SyncMode) -> SyncResult:
        """Discover every repository and re-fetch all of its activity."""
        previous = self._store.read_all()

        try:
            user_info = await client.fetch_user_info()
            repositories = await self._discover_repositories(client)
        except GitHubClientError as e:
            with LogContext(sync_mode=SyncMode.FAILED.value):
                logger.error("Full sync failed during discovery: {}", e)
            raise

        logger.info(
            "Full sync: fetching {} repositories for {}", len(repositories), user_info.login
        )
        activities, failures = await self._fetch_activity(client, repositories, since=None)

        failed_repositories: list[str] = []
        for repository, error in failures:
            failure = PartialRepositoryFailure(repository.name_with_owner, error)
            logger.warning("No activity for repository {}", failure)
            failed_repositories.append(repository.name_with_owner)

        merged = merge_activity(
            None,
            [commit for activity in activities for commit in activity.commits],
            [pr for activity in activities for pr in activity.pull_requests],
            carry_forward_pushed_at(previous.repositories if previous else (), repositories),
        )
        data = ActivityData(
            commits=merged.commits,
            pull_requests=merged.pull_requests,
            repositories=merged.repositories,
            user_info=user_info,
        )
        metadata, warnings = self._persist(data, is_full_sync=True)
        now = metadata.last_sync if metadata else self._clock()

        return SyncResult(
            mode=mode,
            provenance=Provenance.FULL_SYNC,
            sync_timestamp=now,
            commits=data.commits,
            pull_requests=data.pull_requests,
            repositories=data.repositories,
            user_info=user_info,
            is_incremental=False,
            new_commits_count=merged.new_commit_count,
            new_prs_count=merged.new_pr_count,
            last_full_sync=metadata.last_full_sync if metadata else now,
            failed_repositories=failed_repositories,
            warnings=warnings,
        )

    async def _discover_repositories(self, client: GitHubGraphQLClient) -> list[Repository]:
        """Viewer and organization repositories, unique, most recently pushed first.

        Raises:
            GitHubClientError: If the viewer's repositories cannot be listed
        """
        discovered = list(await client.fetch_viewer_repositories())
        for org in self._settings.organizations:
            try:
                discovered.extend(await client.fetch_organization_repositories(org))
            except GitHubClientError as e:
                logger.warning("Skipping organization {}", PartialRepositoryFailure(org, e))

        unique: dict[str, Repository] = {}
        for repo in discovered:
            unique.setdefault(repo.key, repo)
        return sorted(unique.values(), key=lambda r: r.pushed_at, reverse=True)

    # -------------------------------------------------------------------------
    # Incremental Sync
    # -------------------------------------------------------------------------
    async def _incremental_sync(self, client: GitHubGraphQLClient, mode: SyncMode) -> SyncResult:
        """Re-fetch cached repositories pushed since the last sync and merge."""
        cached = self._store.read_all()
        if cached is None:
            logger.info("No cached data for incremental sync, running full sync")
            return await self._full_sync(client, SyncMode.FULL)

        since = cached.metadata.last_sync
        threshold = since - self._settings.sync.incremental_lookback
        candidates = [repo for repo in cached.repositories if repo.pushed_at > threshold]
        if not candidates:
            logger.info("No repositories pushed since {}, nothing to fetch", since.isoformat())
            result = self._cached_result(cached, mode)
            result.sync_timestamp = self._clock()
            return result

        logger.info(
            "Incremental sync: {} of {} repositories pushed since {}",
            len(candidates),
            len(cached.repositories),
            since.isoformat(),
        )
        activities, failures = await self._fetch_activity(
            client, candidates, since=since, stop_on_failure=True
        )
        if failures:
            repository, error = failures[0]
            logger.warning(
                "Incremental fetch failed for {} repositories (first: {}: {}), serving cached data",
                len(failures),
                repository.name_with_owner,
                error,
            )
            result = self._cached_result(cached, SyncMode.FALLBACK)
            result.failed_repositories = [repo.name_with_owner for repo, _ in failures]
            result.error = FALLBACK_ERROR
            return result

        merged = merge_activity(
            cached,
            [commit for activity in activities for commit in activity.commits],
            [pr for activity in activities for pr in activity.pull_requests],
        )
        data = ActivityData(
            commits=merged.commits,
            pull_requests=merged.pull_requests,
            repositories=merged.repositories,
            user_info=cached.user_info,
        )
        metadata, warnings = self._persist(data, is_full_sync=False)

        return SyncResult(
            mode=mode,
            provenance=Provenance.INCREMENTAL_SYNC,
            sync_timestamp=metadata.last_sync if metadata else self._clock(),
            commits=data.commits,
            pull_requests=data.pull_requests,
            repositories=data.repositories,
            user_info=data.user_info,
            is_incremental=True,
            new_commits_count=merged.new_commit_count,
            new_prs_count=merged.new_pr_count,
            last_full_sync=(metadata or cached.metadata).last_full_sync,
            warnings=warnings,
        )

    # -------------------------------------------------------------------------
    # Shared Steps
    # -------------------------------------------------------------------------
    async def _fetch_activity(
        self,
        client: GitHubGraphQLClient,
        repositories: list[Repository],
        *,
        since: datetime | None,
        stop_on_failure: bool = False,
    ) -> tuple[list[RepositoryActivity], list[tuple[Repository, Exception]]]:
        """Fetch commits and PRs of every repository in batches.

        With ``stop_on_failure``, no further batch starts once one has a failure.

        Returns:
            Tuple of (activities of successful repositories,
            (repository, error) for failed ones)
        """

        async def fetch(repository: Repository) -> RepositoryActivity:
            commits, prs = await asyncio.gather(
                client.fetch_repository_commits(repository, since=since),
                client.fetch_repository_pull_requests(repository, since=since),
            )
            return RepositoryActivity(repository=repository, commits=commits, pull_requests=prs)

        def on_batch_complete(
            batch_number: int, total_batches: int, batch: BatchResult[RepositoryActivity]
        ) -> None:
            _log_batch(batch_number, total_batches, batch)
            if stop_on_failure and not batch.all_succeeded and batch_number < total_batches:
                logger.info(
                    "Skipping {} remaining batches after a failure", total_batches - batch_number
                )
                executor.cancel()

        executor: BatchExecutor[Repository, RepositoryActivity] = BatchExecutor(
            batch_size=self._settings.sync.batch_size,
            batch_delay_seconds=self._settings.sync.batch_delay_seconds,
            on_batch_complete=on_batch_complete,
        )
        result = await executor.execute(repositories, fetch)
        return result.succeeded, [(repositories[index], error) for index, error in result.failed]

    def _persist(
        self, data: ActivityData, *, is_full_sync: bool
    ) -> tuple[CacheMetadata | None, list[str]]:
        """Write the dataset, turning a write failure into a warning.

        Returns:
            Tuple of (written metadata or None, warnings)
        """
        try:
            return self._store.write_all(data, is_full_sync=is_full_sync), []
        except CacheWriteError as e:
            logger.warning("Cache not persisted, serving in-memory result: {}", e)
            return None, [f"Cache not persisted: {e}"]

    def _cached_result(self, cached: CachedData, mode: SyncMode) -> SyncResult:
        """Build a result that serves the cache as it is."""
        provenance = {
            SyncMode.CACHE_HIT: Provenance.CACHE_HIT,
            SyncMode.FALLBACK: Provenance.FILE_CACHE_FALLBACK,
        }.get(mode, Provenance.INCREMENTAL_SYNC)
        return SyncResult(
            mode=mode,
            provenance=provenance,
            sync_timestamp=cached.metadata.last_sync,
            commits=cached.commits,
            pull_requests=cached.pull_requests,
            repositories=cached.repositories,
            user_info=cached.user_info,
            is_incremental=True,
            last_full_sync=cached.metadata.last_full_sync,
        )


def _log_batch(
    batch_number: int,
    total_batches: int,
    result: BatchResult[RepositoryActivity],
) -> None:
    logger.info(
        "Batch {}/{} done: {} succeeded, {} failed",
        batch_number,
        total_batches,
        result.success_count,
        result.failure_count,
    )
