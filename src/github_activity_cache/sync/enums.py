"""Enums for sync operations."""

from enum import StrEnum


class SyncMode(StrEnum):
    """State of the sync state machine that produced a result."""

    COLD_START = "cold_start"
    """No cache exists. Executed as a full sync."""

    CACHE_HIT = "cache_hit"
    """Cache is fresh. Served unchanged."""

    INCREMENTAL = "incremental"
    """Fetch only repositories pushed since the last sync and merge."""

    FULL = "full"
    """Re-fetch everything and replace the cache."""

    FALLBACK = "fallback"
    """Incremental fetch failed. Served the previous cache."""

    FAILED = "failed"
    """Full sync failed. Nothing to serve."""


class Provenance(StrEnum):
    """Which code path produced the data returned to the caller."""

    FULL_SYNC = "fullSync"
    INCREMENTAL_SYNC = "incrementalSync"
    FILE_CACHE_FALLBACK = "fileCacheFallback"
    CACHE_HIT = "cacheHit"


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""
