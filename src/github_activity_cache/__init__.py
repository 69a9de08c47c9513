"""GitHub Activity Cache - local mirror of GitHub commit and PR activity."""

__version__ = "0.1.0"
