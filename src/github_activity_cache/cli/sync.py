"""Sync command for GitHub Activity Cache."""

import json
from typing import Annotated

import typer

from github_activity_cache.cli.common import (
    OutputFormatOption,
    console,
    open_store,
    run_async_command,
)
from github_activity_cache.github import GitHubGraphQLClient
from github_activity_cache.sync import OutputFormat, SyncOrchestrator, SyncResult


def sync(
    refresh: Annotated[
        bool,
        typer.Option(
            "--refresh",
            "-r",
            help="Sync incrementally even if the cache is still fresh",
        ),
    ] = False,
    full: Annotated[
        bool,
        typer.Option(
            "--full",
            help="Re-discover repositories and re-fetch everything",
        ),
    ] = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Bring the local cache up to date with GitHub.

    Serves the cache when it is fresh, otherwise fetches what changed since
    the last sync. Without a cache a full sync runs.

    Examples:
        ghcache sync
        ghcache sync --refresh
        ghcache sync --full --format json
        ghcache -v sync  # Debug logging
    """

    async def _sync() -> SyncResult:
        async with GitHubGraphQLClient() as client:
            orchestrator = SyncOrchestrator(client, open_store())
            return await orchestrator.sync(force_full_sync=full, force_refresh=refresh)

    result = run_async_command(_sync(), error_prefix="Sync failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(result.summary_dict()))
        return

    _print_result(result)


def _print_result(result: SyncResult) -> None:
    """Print a human-readable sync summary."""
    if result.is_degraded:
        console.print("[yellow]GitHub unavailable, serving cached data[/yellow]")
    console.print(f"[bold]Sync Complete[/bold] [dim]({result.provenance.value})[/dim]")
    console.print()
    console.print(
        f"  Commits:        {len(result.commits)} [green](+{result.new_commits_count})[/green]"
    )
    console.print(
        f"  Pull requests:  {len(result.pull_requests)} [green](+{result.new_prs_count})[/green]"
    )
    console.print(f"  Repositories:   {len(result.repositories)}")
    if result.user_info:
        console.print(f"  User:           {result.user_info.login}")
    console.print()
    console.print(f"  Last sync:      {result.sync_timestamp.isoformat()}")
    if result.last_full_sync:
        console.print(f"  Last full sync: {result.last_full_sync.isoformat()}")
    if result.report_file:
        console.print(f"  API report:     {result.report_file}")

    if result.failed_repositories:
        console.print()
        console.print("[bold]Failed repositories:[/bold]")
        for name in result.failed_repositories:
            console.print(f"  [red]{name}[/red]")

    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
