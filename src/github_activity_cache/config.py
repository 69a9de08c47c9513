"""Configuration settings for GitHub Activity Cache."""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncConfig(BaseModel):
    """Configuration for sync behavior.

    Controls batching, pacing between batches, and per-call timeouts.
    """

    batch_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Repositories fetched concurrently per batch",
    )
    batch_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Pause between batches in milliseconds",
    )
    query_timeout_ms: int = Field(
        default=45000,
        ge=100,
        description="Upper bound for a single GraphQL call in milliseconds",
    )
    # Cached pushedAt is only refreshed by discovery, which always precedes the
    # stamped lastSync. With 0, an incremental sync after a full sync therefore
    # selects no repository; a window of days picks up recent pushes.
    incremental_lookback_minutes: int = Field(
        default=0,
        ge=0,
        description="Widen the incremental repository filter by this many minutes",
    )
    max_history_pages: int | None = Field(
        default=None,
        ge=1,
        description="Cap on history pages per branch (None = until exhausted)",
    )

    @property
    def batch_delay_seconds(self) -> float:
        """Get the inter-batch delay in seconds."""
        return self.batch_delay_ms / 1000

    @property
    def query_timeout_seconds(self) -> float:
        """Get the per-call timeout in seconds."""
        return self.query_timeout_ms / 1000

    @property
    def incremental_lookback(self) -> timedelta:
        """Get the incremental lookback as a timedelta."""
        return timedelta(minutes=self.incremental_lookback_minutes)


class CacheConfig(BaseModel):
    """Configuration for on-disk locations."""

    cache_dir: str = Field(
        default=".github-dashboard-cache",
        description="Directory holding the JSON cache files",
    )
    report_dir: str = Field(
        default="api-reports",
        description="Directory receiving API call reports",
    )


class ReportingConfig(BaseModel):
    """Configuration for API call accounting."""

    hourly_quota: int = Field(
        default=5000,
        ge=1,
        description="Hourly request quota used to estimate rate limit usage",
    )
    write_reports: bool = Field(
        default=True,
        description="Write a text report after every sync that touched the API",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )
    http_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None = Field(
        default=None,
        description="Level for httpx/httpcore records (None = DEBUG when debugging, else WARNING)",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # GitHub API
    # --------------------------------------------------------------------------
    github_token: str = Field(
        default="",
        description="GitHub personal access token",
    )
    github_base_url: str = Field(
        default="https://api.github.com",
        description="GitHub API base URL (GraphQL endpoint is <base>/graphql)",
    )
    target_organizations: str = Field(
        default="",
        description="Comma-separated organizations whose repositories are synced",
    )

    # --------------------------------------------------------------------------
    # Cache
    # --------------------------------------------------------------------------
    cache_ttl_minutes: int = Field(
        default=15,
        ge=0,
        description="Minutes before cached data is considered stale",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Nested Configuration
    # --------------------------------------------------------------------------
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Sync batching and timeout configuration",
    )
    cache: CacheConfig = Field(
        default_factory=CacheConfig,
        description="Cache and report locations",
    )
    reporting: ReportingConfig = Field(
        default_factory=ReportingConfig,
        description="API call accounting configuration",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )

    @property
    def organizations(self) -> list[str]:
        """Target organizations parsed from the comma-separated setting."""
        return [org.strip() for org in self.target_organizations.split(",") if org.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
