"""Cache inspection commands."""

import json
from typing import Annotated

import typer
from rich.table import Table

from github_activity_cache.cache import CacheError
from github_activity_cache.cli.common import OutputFormatOption, console, open_store
from github_activity_cache.config import get_settings
from github_activity_cache.sync import OutputFormat

app = typer.Typer(help="Inspect and manage the local cache")


@app.command("status")
def status(output_format: OutputFormatOption = OutputFormat.TEXT) -> None:
    """Show what the cache holds and whether it is stale.

    Examples:
        ghcache cache status
        ghcache cache status --format json
    """
    settings = get_settings()
    store = open_store()
    cache_status = store.describe()
    is_stale = store.is_stale(settings.cache_ttl_minutes)

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps({**cache_status.to_dict(), "is_stale": is_stale}))
        return

    if cache_status.metadata is None:
        console.print(f"[yellow]No cache in {cache_status.directory}[/yellow]")
        return

    table = Table(title=f"Cache {cache_status.directory}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Last sync", cache_status.metadata.last_sync.isoformat())
    table.add_row("Last full sync", cache_status.metadata.last_full_sync.isoformat())
    table.add_row("Format version", cache_status.metadata.version)
    table.add_row(
        "Stale",
        f"[red]yes[/red] (> {settings.cache_ttl_minutes} min)" if is_stale else "[green]no[/green]",
    )
    table.add_row("Commits", str(cache_status.commits))
    table.add_row("Pull requests", str(cache_status.pull_requests))
    table.add_row("Repositories", str(cache_status.repositories))
    table.add_row("User info", "yes" if cache_status.has_user_info else "no")
    console.print(table)


@app.command("clear")
def clear(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Don't ask for confirmation"),
    ] = False,
) -> None:
    """Delete every cache file. The next sync will be a full sync.

    Examples:
        ghcache cache clear
        ghcache cache clear --yes
    """
    store = open_store()
    if not yes:
        typer.confirm(f"Delete the cache in {store.directory}?", abort=True)

    try:
        store.clear()
    except CacheError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    console.print(f"[green]Cache cleared:[/green] {store.directory}")
