"""Pydantic schemas for GitHub Activity Cache.

This module provides the cached record types and their GraphQL factories.
"""

from .base import SchemaBase
from .cache import CACHE_FORMAT_VERSION, ActivityData, CachedData, CacheMetadata
from .enums import PRState
from .records import Commit, PullRequest, Repository, UserInfo

__all__ = [
    # Base
    "SchemaBase",
    # Enums
    "PRState",
    # Records
    "Commit",
    "PullRequest",
    "Repository",
    "UserInfo",
    # Cache
    "ActivityData",
    "CACHE_FORMAT_VERSION",
    "CacheMetadata",
    "CachedData",
]
