"""File-backed cache store.

One JSON file per collection plus a metadata file. Each file is replaced
atomically, and metadata is written last so it only ever describes a
complete write. Reads never raise: unreadable files degrade to an empty
collection (or to a cold cache when the metadata itself is unreadable).
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Protocol, TypeVar

from pydantic import TypeAdapter, ValidationError

from github_activity_cache.logging import get_logger
from github_activity_cache.schemas import (
    CACHE_FORMAT_VERSION,
    ActivityData,
    CachedData,
    CacheMetadata,
    Commit,
    PullRequest,
    Repository,
    UserInfo,
)

from .exceptions import CacheCorruptError, CacheWriteError

logger = get_logger(__name__)

T = TypeVar("T")

COMMITS_FILE = "commits.json"
PULL_REQUESTS_FILE = "pull-requests.json"
USER_INFO_FILE = "user-info.json"
REPOSITORIES_FILE = "repositories.json"
METADATA_FILE = "metadata.json"

_COMMITS = Commit.list_adapter()
_PULL_REQUESTS = PullRequest.list_adapter()
_REPOSITORIES = Repository.list_adapter()
_USER_INFO = TypeAdapter(UserInfo | None)
_METADATA = TypeAdapter(CacheMetadata)


class CacheStore(Protocol):
    """Narrow interface the sync orchestrator depends on."""

    def read_metadata(self) -> CacheMetadata | None: ...

    def read_all(self) -> CachedData | None: ...

    def write_all(self, data: ActivityData, is_full_sync: bool) -> CacheMetadata: ...

    def is_stale(self, max_age_minutes: int, now: datetime | None = None) -> bool: ...

    def clear(self) -> None: ...


@dataclass
class CacheStatus:
    """Snapshot of what the cache directory currently holds."""

    directory: Path
    metadata: CacheMetadata | None
    commits: int = 0
    pull_requests: int = 0
    repositories: int = 0
    has_user_info: bool = False
    file_sizes: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "directory": str(self.directory),
            "metadata": self.metadata.to_json_dict() if self.metadata else None,
            "commits": self.commits,
            "pull_requests": self.pull_requests,
            "repositories": self.repositories,
            "has_user_info": self.has_user_info,
            "file_sizes": dict(self.file_sizes),
        }


class JsonFileCacheStore:
    """Cache store keeping each collection in its own JSON file.

    Usage:
        store = JsonFileCacheStore(Path(".github-dashboard-cache"))
        if store.is_stale(15):
            ...
        cached = store.read_all()
    """

    def __init__(
        self,
        cache_dir: Path,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            cache_dir: Directory holding the cache files (created on write)
            clock: Returns the current UTC time (injectable for tests)
        """
        self._dir = Path(cache_dir)
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def directory(self) -> Path:
        """The cache directory."""
        return self._dir

    def _path(self, filename: str) -> Path:
        return self._dir / filename

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------
    def _read_file(self, filename: str, adapter: TypeAdapter[T]) -> T | None:
        """Read and validate one file.

        Returns:
            Parsed content, or None if the file does not exist

        Raises:
            CacheCorruptError: If the file cannot be read or validated
        """
        path = self._path(filename)
        if not path.exists():
            return None
        try:
            return adapter.validate_json(path.read_bytes())
        except (OSError, ValidationError) as e:
            raise CacheCorruptError(str(path), str(e)) from e

    def _read_collection(self, filename: str, adapter: TypeAdapter[list[T]]) -> list[T]:
        try:
            return self._read_file(filename, adapter) or []
        except CacheCorruptError as e:
            logger.warning("{} - treating collection as empty", e)
            return []

    def read_metadata(self) -> CacheMetadata | None:
        """Read sync metadata.

        Returns:
            CacheMetadata, or None on a cold (or unreadable) cache
        """
        try:
            return self._read_file(METADATA_FILE, _METADATA)
        except CacheCorruptError as e:
            logger.warning("{} - treating cache as cold", e)
            return None

    def read_all(self) -> CachedData | None:
        """Read every collection plus metadata.

        Returns:
            CachedData, or None if no metadata exists
        """
        metadata = self.read_metadata()
        if metadata is None:
            return None

        try:
            user_info = self._read_file(USER_INFO_FILE, _USER_INFO)
        except CacheCorruptError as e:
            logger.warning("{} - ignoring cached user info", e)
            user_info = None

        cached = CachedData(
            commits=self._read_collection(COMMITS_FILE, _COMMITS),
            pull_requests=self._read_collection(PULL_REQUESTS_FILE, _PULL_REQUESTS),
            repositories=self._read_collection(REPOSITORIES_FILE, _REPOSITORIES),
            user_info=user_info,
            metadata=metadata,
        )
        logger.debug(
            "Loaded cache: {} commits, {} PRs, {} repos (last sync {})",
            len(cached.commits),
            len(cached.pull_requests),
            len(cached.repositories),
            metadata.last_sync.isoformat(),
        )
        return cached

    def is_stale(self, max_age_minutes: int, now: datetime | None = None) -> bool:
        """Check whether the cache is older than ``max_age_minutes``.

        Args:
            max_age_minutes: Maximum acceptable age
            now: Reference time (defaults to the store's clock)

        Returns:
            True if no metadata exists or the last sync is too old
        """
        metadata = self.read_metadata()
        if metadata is None:
            return True
        age = (now or self._clock()) - metadata.last_sync
        return age > timedelta(minutes=max_age_minutes)

    def describe(self) -> CacheStatus:
        """Summarize the cache directory's contents."""
        cached = self.read_all()
        sizes: dict[str, int] = {}
        if self._dir.exists():
            sizes = {path.name: path.stat().st_size for path in sorted(self._dir.glob("*.json"))}
        if cached is None:
            return CacheStatus(directory=self._dir, metadata=None, file_sizes=sizes)
        return CacheStatus(
            directory=self._dir,
            metadata=cached.metadata,
            commits=len(cached.commits),
            pull_requests=len(cached.pull_requests),
            repositories=len(cached.repositories),
            has_user_info=cached.user_info is not None,
            file_sizes=sizes,
        )

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------
    def _write_file(self, filename: str, payload: bytes) -> None:
        """Replace one file atomically (temporary file, then rename)."""
        path = self._path(filename)
        fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=f".{filename}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(payload)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def write_all(self, data: ActivityData, is_full_sync: bool) -> CacheMetadata:
        """Persist the four collections and fresh metadata.

        Args:
            data: Collections to write
            is_full_sync: Advance lastFullSync as well as lastSync

        Returns:
            The metadata that was written

        Raises:
            CacheWriteError: If any file could not be written
        """
        now = self._clock()
        previous = self.read_metadata()
        if is_full_sync or previous is None:
            last_full_sync = now
        else:
            last_full_sync = min(previous.last_full_sync, now)
        metadata = CacheMetadata(
            last_sync=now,
            last_full_sync=last_full_sync,
            version=CACHE_FORMAT_VERSION,
        )

        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            self._write_file(
                COMMITS_FILE, _COMMITS.dump_json(data.commits, by_alias=True, indent=2)
            )
            self._write_file(
                PULL_REQUESTS_FILE,
                _PULL_REQUESTS.dump_json(data.pull_requests, by_alias=True, indent=2),
            )
            self._write_file(
                USER_INFO_FILE, _USER_INFO.dump_json(data.user_info, by_alias=True, indent=2)
            )
            self._write_file(
                REPOSITORIES_FILE,
                _REPOSITORIES.dump_json(data.repositories, by_alias=True, indent=2),
            )
            self._write_file(METADATA_FILE, _METADATA.dump_json(metadata, by_alias=True, indent=2))
        except OSError as e:
            logger.error("Failed to write cache to {}: {}", self._dir, e)
            raise CacheWriteError(f"Failed to write cache to {self._dir}: {e}") from e

        logger.info(
            "Cache saved: {} commits, {} PRs, {} repos ({} sync at {})",
            len(data.commits),
            len(data.pull_requests),
            len(data.repositories),
            "full" if is_full_sync else "incremental",
            now.isoformat(),
        )
        return metadata

    def clear(self) -> None:
        """Remove every cache file.

        Raises:
            CacheWriteError: If a file exists but cannot be removed
        """
        # Metadata first: a partially cleared cache must read as cold
        for filename in (
            METADATA_FILE,
            COMMITS_FILE,
            PULL_REQUESTS_FILE,
            USER_INFO_FILE,
            REPOSITORIES_FILE,
        ):
            try:
                self._path(filename).unlink(missing_ok=True)
            except OSError as e:
                raise CacheWriteError(f"Failed to remove {filename}: {e}") from e
        logger.info("Cache cleared: {}", self._dir)
