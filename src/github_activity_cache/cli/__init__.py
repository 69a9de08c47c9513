"""CLI module for GitHub Activity Cache."""

from github_activity_cache.cli.app import app

__all__ = ["app"]
