"""API call accounting and reporting.

A CallLedger is created per sync invocation and bound to the GraphQL
client, which records every call into it. After the sync the ledger is
summarized, logged, and optionally written out as a text report.
"""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from github_activity_cache.logging import get_logger

logger = get_logger(__name__)

DEFAULT_HOURLY_QUOTA = 5000


@dataclass
class CallRecord:
    """A single GraphQL call, successful or not."""

    call_type: str
    query: str
    variables: dict[str, Any] | None
    timestamp: datetime
    duration_ms: float
    success: bool
    error: str | None = None
    repository: str | None = None
    branch: str | None = None


@dataclass
class CallSummary:
    """Aggregate statistics over a ledger's calls."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    total_duration_ms: float = 0.0
    total_time_ms: float = 0.0
    calls_by_type: dict[str, int] = field(default_factory=dict)
    hourly_quota: int = DEFAULT_HOURLY_QUOTA

    @property
    def success_rate(self) -> float:
        """Percentage of calls that succeeded (0-100)."""
        if self.total_calls == 0:
            return 0.0
        return (self.successful_calls / self.total_calls) * 100

    @property
    def average_duration_ms(self) -> float:
        """Mean call duration in milliseconds."""
        if self.total_calls == 0:
            return 0.0
        return self.total_duration_ms / self.total_calls

    @property
    def calls_per_second(self) -> float:
        """Call rate over the whole tracked window."""
        if self.total_time_ms <= 0:
            return 0.0
        return self.total_calls / (self.total_time_ms / 1000)

    @property
    def api_efficiency(self) -> float:
        """Share of the tracked window spent waiting on the API (0-100)."""
        if self.total_time_ms <= 0:
            return 0.0
        return (self.total_duration_ms / self.total_time_ms) * 100

    @property
    def estimated_quota_usage(self) -> float:
        """Estimated percentage of the hourly quota consumed."""
        return (self.total_calls / self.hourly_quota) * 100

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "success_rate": round(self.success_rate, 1),
            "total_duration_ms": round(self.total_duration_ms, 1),
            "average_duration_ms": round(self.average_duration_ms, 1),
            "total_time_ms": round(self.total_time_ms, 1),
            "calls_per_second": round(self.calls_per_second, 2),
            "calls_by_type": dict(self.calls_by_type),
            "estimated_quota_usage": round(self.estimated_quota_usage, 2),
        }


class CallLedger:
    """In-memory ledger of API calls for one sync.

    Usage:
        ledger = CallLedger(hourly_quota=5000)
        ledger.start()
        client = base_client.with_ledger(ledger)
        ...  # client records calls
        ledger.log_summary()
        ledger.write_report(Path("api-reports"))
    """

    def __init__(
        self,
        hourly_quota: int = DEFAULT_HOURLY_QUOTA,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the ledger.

        Args:
            hourly_quota: Request quota per hour used for the usage estimate
            clock: Monotonic clock in seconds (injectable for tests)
        """
        self._hourly_quota = hourly_quota
        self._clock = clock
        self._calls: list[CallRecord] = []
        self._started_at = clock()

    @property
    def calls(self) -> list[CallRecord]:
        """Recorded calls in order."""
        return list(self._calls)

    def start(self) -> None:
        """Reset the ledger and restart the tracked window."""
        self._calls = []
        self._started_at = self._clock()
        logger.debug("API call tracking started")

    def record_call(
        self,
        *,
        call_type: str,
        query: str,
        duration_ms: float,
        success: bool,
        variables: dict[str, Any] | None = None,
        error: str | None = None,
        repository: str | None = None,
        branch: str | None = None,
        timestamp: datetime | None = None,
    ) -> CallRecord:
        """Append a call record."""
        record = CallRecord(
            call_type=call_type,
            query=query,
            variables=variables,
            timestamp=timestamp or datetime.now(UTC),
            duration_ms=duration_ms,
            success=success,
            error=error,
            repository=repository,
            branch=branch,
        )
        self._calls.append(record)
        return record

    def summary(self) -> CallSummary:
        """Compute aggregate statistics over the recorded calls."""
        successful = sum(1 for call in self._calls if call.success)
        return CallSummary(
            total_calls=len(self._calls),
            successful_calls=successful,
            failed_calls=len(self._calls) - successful,
            total_duration_ms=sum(call.duration_ms for call in self._calls),
            total_time_ms=(self._clock() - self._started_at) * 1000,
            calls_by_type=dict(Counter(call.call_type for call in self._calls)),
            hourly_quota=self._hourly_quota,
        )

    def log_summary(self) -> CallSummary:
        """Log the summary and return it."""
        stats = self.summary()
        logger.info(
            "API calls: total={}, ok={}, failed={}, api_time={:.2f}s, avg={:.0f}ms, rate={:.2f}/s",
            stats.total_calls,
            stats.successful_calls,
            stats.failed_calls,
            stats.total_duration_ms / 1000,
            stats.average_duration_ms,
            stats.calls_per_second,
        )
        for call_type, count in sorted(stats.calls_by_type.items()):
            logger.debug("  {}: {}", call_type, count)
        return stats

    def render_report(self, generated_at: datetime | None = None) -> str:
        """Render the text report.

        Args:
            generated_at: Timestamp printed in the header (defaults to now)

        Returns:
            Report text
        """
        stats = self.summary()
        generated = (generated_at or datetime.now(UTC)).isoformat()

        lines = [
            "GitHub Activity Cache - API Call Report",
            f"Generated: {generated}",
            "=====================================",
            "",
            "SUMMARY STATISTICS",
            "==================",
            f"Total API Calls: {stats.total_calls}",
            f"Successful Calls: {stats.successful_calls}",
            f"Failed Calls: {stats.failed_calls}",
            f"Success Rate: {stats.success_rate:.1f}%",
            "",
            "TIMING STATISTICS",
            "=================",
            f"Total API Time: {stats.total_duration_ms / 1000:.2f} seconds",
            f"Average Call Duration: {stats.average_duration_ms:.0f}ms",
            f"Total Sync Time: {stats.total_time_ms / 1000:.2f} seconds",
            f"API Efficiency: {stats.api_efficiency:.1f}%",
            "",
            "CALL BREAKDOWN BY TYPE",
            "======================",
        ]
        lines.extend(
            f"{call_type}: {count} calls"
            for call_type, count in sorted(stats.calls_by_type.items())
        )
        lines.extend(
            [
                "",
                "RATE LIMITING ANALYSIS",
                "======================",
                f"API Calls per Second: {stats.calls_per_second:.2f}",
                f"Estimated Rate Limit Usage: {stats.estimated_quota_usage:.2f}% "
                f"(assuming {stats.hourly_quota}/hour limit)",
                "",
                "DETAILED CALL LOG",
                "=================",
            ]
        )
        for index, call in enumerate(self._calls, start=1):
            lines.append(f"{index}. [{call.timestamp.isoformat()}] {call.call_type}")
            lines.append(f"   Query: {call.query}")
            lines.append(f"   Duration: {call.duration_ms:.0f}ms | Success: {call.success}")
            lines.append(
                f"   Repository: {call.repository or 'N/A'} | Branch: {call.branch or 'N/A'}"
            )
            if call.error:
                lines.append(f"   Error: {call.error}")
            lines.append("")
        lines.extend(["End of Report", "============="])
        return "\n".join(lines) + "\n"

    def write_report(
        self,
        report_dir: Path,
        generated_at: datetime | None = None,
    ) -> str | None:
        """Write the report to a timestamped file.

        Args:
            report_dir: Directory receiving the report (created if missing)
            generated_at: Report timestamp (defaults to now)

        Returns:
            The report's file name, or None if it could not be written
        """
        generated = generated_at or datetime.now(UTC)
        filename = f"api-report-{generated.strftime('%Y-%m-%dT%H-%M-%S')}.txt"
        try:
            report_dir.mkdir(parents=True, exist_ok=True)
            (report_dir / filename).write_text(self.render_report(generated), encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to write API report to {}: {}", report_dir, e)
            return None

        logger.info("API report written: {}", report_dir / filename)
        return filename
