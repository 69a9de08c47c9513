"""Batch executor for repository-level fetches.

Items are split into fixed-size batches. Batches run sequentially with a
pause between them; the items of one batch run concurrently and the batch
is only evaluated once every item has settled.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from github_activity_cache.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class BatchResult(Generic[T]):
    """Result of a batch operation."""

    succeeded: list[T] = field(default_factory=list)
    failed: list[tuple[int, Exception]] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        """Total number of items processed."""
        return len(self.succeeded) + len(self.failed)

    @property
    def success_count(self) -> int:
        """Number of successful items."""
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        """Number of failed items."""
        return len(self.failed)

    @property
    def all_succeeded(self) -> bool:
        """Whether all items succeeded."""
        return len(self.failed) == 0


BatchCallback = Callable[[int, int, BatchResult[Any]], None]
"""Called after each batch with (batch_number, batch_count, batch_result)."""


class BatchExecutor(Generic[T, R]):
    """Runs an async processor over items in sequential concurrent batches.

    Usage:
        executor = BatchExecutor(batch_size=10, batch_delay_seconds=1.0)

        async def fetch(repo: Repository) -> RepositoryActivity:
            ...

        result = await executor.execute(repositories, fetch)
        for index, error in result.failed:
            print(repositories[index].name_with_owner, error)
    """

    def __init__(
        self,
        batch_size: int = 10,
        batch_delay_seconds: float = 1.0,
        on_batch_complete: BatchCallback | None = None,
    ) -> None:
        """Initialize the batch executor.

        Args:
            batch_size: Maximum items in flight at once
            batch_delay_seconds: Pause between consecutive batches
            on_batch_complete: Optional progress callback
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._batch_size = batch_size
        self._batch_delay = batch_delay_seconds
        self._on_batch_complete = on_batch_complete
        self._cancelled = False

    def batch_count(self, item_count: int) -> int:
        """Number of batches needed for ``item_count`` items."""
        return (item_count + self._batch_size - 1) // self._batch_size

    async def execute(
        self,
        items: Sequence[T],
        processor: Callable[[T], Awaitable[R]],
    ) -> BatchResult[R]:
        """Execute ``processor`` on all items.

        Args:
            items: Sequence of items to process
            processor: Async function to process each item

        Returns:
            BatchResult with results in item order and (index, error) failures
        """
        self._cancelled = False
        result: BatchResult[R] = BatchResult()
        total_batches = self.batch_count(len(items))

        for batch_number, batch_start in enumerate(
            range(0, len(items), self._batch_size), start=1
        ):
            batch = items[batch_start : batch_start + self._batch_size]
            logger.debug(
                "Processing batch {}/{} ({} items)", batch_number, total_batches, len(batch)
            )
            batch_result = await self._execute_batch(batch, processor, start_index=batch_start)

            result.succeeded.extend(batch_result.succeeded)
            result.failed.extend(batch_result.failed)

            if self._on_batch_complete:
                self._on_batch_complete(batch_number, total_batches, batch_result)

            if self._cancelled:
                logger.debug("Stopping after batch {}/{}", batch_number, total_batches)
                break
            if batch_number < total_batches and self._batch_delay > 0:
                await asyncio.sleep(self._batch_delay)

        return result

    async def _execute_batch(
        self,
        batch: Sequence[T],
        processor: Callable[[T], Awaitable[R]],
        *,
        start_index: int,
    ) -> BatchResult[R]:
        """Execute a single batch of items concurrently.

        Args:
            batch: Items in this batch
            processor: Async function to process each item
            start_index: Index of the batch's first item in the full sequence

        Returns:
            BatchResult for this batch
        """
        result: BatchResult[R] = BatchResult()
        outcomes = await asyncio.gather(
            *(processor(item) for item in batch),
            return_exceptions=True,
        )

        for offset, outcome in enumerate(outcomes):
            if isinstance(outcome, Exception):
                result.failed.append((start_index + offset, outcome))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.succeeded.append(outcome)

        return result

    def cancel(self) -> None:
        """Stop once the running batch has settled.

        Safe to call from a processor or from the batch callback.
        """
        self._cancelled = True
        logger.info("Batch execution cancelled")

    @property
    def is_cancelled(self) -> bool:
        """Whether the execution has been cancelled."""
        return self._cancelled
