"""Pytest configuration and shared fixtures.

Usage Guide:
- For record objects: import factories from tests.factories
- For GraphQL payloads: import builders from tests.fixtures.graphql_responses
- For store tests: use the `store` fixture (fixed clock, tmp_path directory)
"""

from datetime import UTC, datetime, timedelta

import pytest

from github_activity_cache.cache import JsonFileCacheStore
from github_activity_cache.config import (
    CacheConfig,
    ReportingConfig,
    Settings,
    SyncConfig,
    get_settings,
)

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# Define a consistent "test epoch" for deterministic date matching across tests.
# All hardcoded dates should reference these constants for consistency.
# -----------------------------------------------------------------------------

JAN_10 = datetime(2024, 1, 10, 9, 0, 0, tzinfo=UTC)   # Old push, untouched repos
JAN_12 = datetime(2024, 1, 12, 16, 0, 0, tzinfo=UTC)  # Older commits and PRs
JAN_15 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)  # Last sync of the warm cache
JAN_16 = datetime(2024, 1, 16, 14, 0, 0, tzinfo=UTC)  # Activity after the last sync
JAN_20 = datetime(2024, 1, 20, 16, 0, 0, tzinfo=UTC)  # "Now" for sync tests

# ISO 8601 strings (for GraphQL mocks)
JAN_10_ISO = "2024-01-10T09:00:00Z"
JAN_12_ISO = "2024-01-12T16:00:00Z"
JAN_15_ISO = "2024-01-15T10:00:00Z"
JAN_16_ISO = "2024-01-16T14:00:00Z"
JAN_20_ISO = "2024-01-20T16:00:00Z"


class FakeClock:
    """Settable UTC clock for deterministic timestamps."""

    def __init__(self, now: datetime = JAN_20) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


# -----------------------------------------------------------------------------
# Settings Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings are cached per process; isolate tests from each other."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with no pause between batches and paths under tmp_path."""
    return Settings(
        _env_file=None,
        github_token="test-token",
        cache_ttl_minutes=15,
        sync=SyncConfig(batch_size=10, batch_delay_ms=0),
        cache=CacheConfig(
            cache_dir=str(tmp_path / "cache"),
            report_dir=str(tmp_path / "reports"),
        ),
        reporting=ReportingConfig(write_reports=False),
    )


# -----------------------------------------------------------------------------
# Store Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at JAN_20."""
    return FakeClock()


@pytest.fixture
def cache_dir(tmp_path):
    """Directory for cache files (not created until the first write)."""
    return tmp_path / "cache"


@pytest.fixture
def store(cache_dir, clock) -> JsonFileCacheStore:
    """JSON file store driven by the fake clock."""
    return JsonFileCacheStore(cache_dir, clock=clock)
