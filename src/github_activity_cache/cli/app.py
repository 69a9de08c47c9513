"""Main CLI application for GitHub Activity Cache."""

from typing import Annotated

import typer
from rich.console import Console

from github_activity_cache import __version__
from github_activity_cache.cli import cache as cache_cmd
from github_activity_cache.cli import sync as sync_cmd
from github_activity_cache.config import get_settings
from github_activity_cache.logging import setup_logging

app = typer.Typer(
    name="ghcache",
    help="Local cache of GitHub commits and pull requests, kept current incrementally.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ghcache version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """GitHub Activity Cache - Sync GitHub activity into local JSON files."""
    settings = get_settings()
    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        config=settings.logging,
    )


app.command("sync")(sync_cmd.sync)
app.add_typer(cache_cmd.app, name="cache")


if __name__ == "__main__":
    app()
