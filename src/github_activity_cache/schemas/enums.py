"""Enums for Pydantic schemas."""

from enum import StrEnum


class PRState(StrEnum):
    """Pull request state as stored in the cache."""

    OPEN = "Open"
    MERGED = "Merged"
    CLOSED = "Closed"

    @classmethod
    def from_graphql(cls, value: str) -> "PRState":
        """Convert a GraphQL PullRequestState (e.g. 'MERGED') to PRState."""
        return cls(value.capitalize())
