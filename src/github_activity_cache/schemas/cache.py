"""Pydantic schemas for cache contents and sync metadata."""

from datetime import datetime

from pydantic import Field

from .base import SchemaBase
from .records import Commit, PullRequest, Repository, UserInfo

CACHE_FORMAT_VERSION = "1.0.0"


class CacheMetadata(SchemaBase):
    """Sync bookkeeping persisted next to the cached collections."""

    last_sync: datetime = Field(alias="lastSync", description="Last successful persist")
    last_full_sync: datetime = Field(alias="lastFullSync", description="Last full sync")
    version: str = Field(default=CACHE_FORMAT_VERSION)


class ActivityData(SchemaBase):
    """The four record sets written by one persist."""

    commits: list[Commit] = Field(default_factory=list)
    pull_requests: list[PullRequest] = Field(default_factory=list)
    repositories: list[Repository] = Field(default_factory=list)
    user_info: UserInfo | None = None


class CachedData(ActivityData):
    """Everything read back from the cache, including its metadata."""

    metadata: CacheMetadata
