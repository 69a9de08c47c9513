"""Tests for the ghcache command line."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from github_activity_cache import __version__
from github_activity_cache.cache import JsonFileCacheStore
from github_activity_cache.cli.app import app
from github_activity_cache.github import RemoteUnavailableError
from github_activity_cache.logging import reset_logging
from github_activity_cache.sync import Provenance, SyncMode, SyncResult
from tests.conftest import JAN_15, JAN_20
from tests.factories import make_activity, make_commit, make_repository, make_user_info

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_logging_state():
    """The app callback installs sinks bound to the runner's streams."""
    yield
    reset_logging()


@pytest.fixture
def cli_cache_dir(tmp_path, monkeypatch) -> Path:
    """Point the CLI's settings at a temporary cache directory."""
    cache_dir = tmp_path / "cache"
    monkeypatch.setenv("CACHE__CACHE_DIR", str(cache_dir))
    monkeypatch.setenv("CACHE__REPORT_DIR", str(tmp_path / "reports"))
    monkeypatch.setenv("GITHUB_TOKEN", "test-token")
    return cache_dir


@pytest.fixture
def sync_result() -> SyncResult:
    return SyncResult(
        mode=SyncMode.INCREMENTAL,
        provenance=Provenance.INCREMENTAL_SYNC,
        sync_timestamp=JAN_20,
        commits=[make_commit(sha="aaaaaaa"), make_commit(sha="bbbbbbb")],
        repositories=[make_repository()],
        user_info=make_user_info(),
        is_incremental=True,
        new_commits_count=1,
        last_full_sync=JAN_15,
    )


@pytest.fixture
def mock_orchestrator(sync_result, cli_cache_dir):
    """Patch the client and orchestrator used by the sync command."""
    with (
        patch("github_activity_cache.cli.sync.GitHubGraphQLClient"),
        patch("github_activity_cache.cli.sync.SyncOrchestrator") as orchestrator_class,
    ):
        orchestrator = MagicMock()
        orchestrator.sync = AsyncMock(return_value=sync_result)
        orchestrator_class.return_value = orchestrator
        yield orchestrator


class TestGlobalFlags:
    """Tests for global CLI flags."""

    def test_help_shows_flags(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "--verbose" in result.stdout
        assert "--quiet" in result.stdout
        assert "sync" in result.stdout
        assert "cache" in result.stdout

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"ghcache version {__version__}" in result.stdout


class TestSyncCommand:
    """Tests for `ghcache sync`."""

    def test_text_output(self, mock_orchestrator):
        result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0
        assert "Sync Complete" in result.stdout
        assert "incrementalSync" in result.stdout
        assert "(+1)" in result.stdout
        mock_orchestrator.sync.assert_awaited_once_with(force_full_sync=False, force_refresh=False)

    def test_flags_forwarded(self, mock_orchestrator):
        result = runner.invoke(app, ["sync", "--full", "--refresh"])

        assert result.exit_code == 0
        mock_orchestrator.sync.assert_awaited_once_with(force_full_sync=True, force_refresh=True)

    def test_json_output(self, mock_orchestrator):
        result = runner.invoke(app, ["sync", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["commits"] == 2
        assert data["user"] == "octocat"
        assert data["cache_info"]["source"] == "incrementalSync"
        assert data["cache_info"]["new_commits"] == 1

    def test_fallback_warning(self, mock_orchestrator, sync_result):
        sync_result.mode = SyncMode.FALLBACK
        sync_result.provenance = Provenance.FILE_CACHE_FALLBACK
        sync_result.failed_repositories = ["octo-org/widgets"]

        result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0
        assert "serving cached data" in result.stdout
        assert "octo-org/widgets" in result.stdout

    def test_failure_exits_nonzero(self, mock_orchestrator):
        mock_orchestrator.sync.side_effect = RemoteUnavailableError("connection refused")

        result = runner.invoke(app, ["sync"])

        assert result.exit_code == 1
        assert "Sync failed" in result.stdout
        assert "connection refused" in result.stdout


class TestCacheCommands:
    """Tests for `ghcache cache ...`."""

    def test_status_without_cache(self, cli_cache_dir):
        result = runner.invoke(app, ["cache", "status"])

        assert result.exit_code == 0
        assert "No cache" in result.stdout

    def test_status_json(self, cli_cache_dir):
        JsonFileCacheStore(cli_cache_dir).write_all(make_activity(), is_full_sync=True)

        result = runner.invoke(app, ["cache", "status", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["commits"] == 1
        assert data["repositories"] == 1
        assert data["is_stale"] is False
        assert "lastSync" in data["metadata"]

    def test_status_text(self, cli_cache_dir):
        JsonFileCacheStore(cli_cache_dir).write_all(make_activity(), is_full_sync=True)

        result = runner.invoke(app, ["cache", "status"])

        assert result.exit_code == 0
        assert "Last sync" in result.stdout
        assert "Commits" in result.stdout

    def test_clear_with_yes(self, cli_cache_dir):
        store = JsonFileCacheStore(cli_cache_dir)
        store.write_all(make_activity(), is_full_sync=True)

        result = runner.invoke(app, ["cache", "clear", "--yes"])

        assert result.exit_code == 0
        assert store.read_metadata() is None

    def test_clear_declined(self, cli_cache_dir):
        store = JsonFileCacheStore(cli_cache_dir)
        store.write_all(make_activity(), is_full_sync=True)

        result = runner.invoke(app, ["cache", "clear"], input="n\n")

        assert result.exit_code == 1
        assert store.read_metadata() is not None
