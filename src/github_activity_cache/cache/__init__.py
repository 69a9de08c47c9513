"""Local cache module.

This module provides:
- CacheStore: the interface the sync orchestrator depends on
- JsonFileCacheStore: one JSON file per collection plus metadata
- merge_activity: natural-key merge of fetched records into the cache
"""

from .exceptions import CacheCorruptError, CacheError, CacheWriteError
from .merge import (
    MergeResult,
    carry_forward_pushed_at,
    merge_activity,
    merge_repositories,
)
from .store import CacheStatus, CacheStore, JsonFileCacheStore

__all__ = [
    # Store
    "CacheStatus",
    "CacheStore",
    "JsonFileCacheStore",
    # Merge
    "MergeResult",
    "carry_forward_pushed_at",
    "merge_activity",
    "merge_repositories",
    # Exceptions
    "CacheCorruptError",
    "CacheError",
    "CacheWriteError",
]
