"""Unit tests for BatchExecutor class."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from github_activity_cache.sync.batch import BatchExecutor, BatchResult


class TestBatchResult:
    """Tests for BatchResult dataclass."""

    def test_empty_result(self) -> None:
        """Empty result has correct counts."""
        result: BatchResult[int] = BatchResult()

        assert result.total_count == 0
        assert result.success_count == 0
        assert result.failure_count == 0
        assert result.all_succeeded is True

    def test_with_results(self) -> None:
        """Result with items has correct counts."""
        result: BatchResult[int] = BatchResult(
            succeeded=[1, 2, 3],
            failed=[(4, ValueError("error"))],
        )

        assert result.total_count == 4
        assert result.success_count == 3
        assert result.failure_count == 1
        assert result.all_succeeded is False


class TestBatchExecutor:
    """Tests for BatchExecutor."""

    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError):
            BatchExecutor(batch_size=0)

    @pytest.mark.parametrize(("items", "expected"), [(0, 0), (1, 1), (10, 1), (11, 2), (25, 3)])
    def test_batch_count(self, items: int, expected: int) -> None:
        assert BatchExecutor(batch_size=10).batch_count(items) == expected

    async def test_results_in_item_order(self) -> None:
        async def double(x: int) -> int:
            await asyncio.sleep(0.001 * (5 - x))
            return x * 2

        executor: BatchExecutor[int, int] = BatchExecutor(batch_size=3, batch_delay_seconds=0)
        result = await executor.execute(list(range(5)), double)

        assert result.succeeded == [0, 2, 4, 6, 8]
        assert result.all_succeeded

    async def test_failure_isolated_with_index(self) -> None:
        """A failing item is reported by index; every other item succeeds."""

        async def process(x: int) -> int:
            if x == 12:
                raise RuntimeError("boom")
            return x

        executor: BatchExecutor[int, int] = BatchExecutor(batch_size=10, batch_delay_seconds=0)
        result = await executor.execute(list(range(25)), process)

        assert result.success_count == 24
        assert 12 not in result.succeeded
        [(index, error)] = result.failed
        assert index == 12
        assert isinstance(error, RuntimeError)

    async def test_batch_runs_concurrently(self) -> None:
        """Items of one batch are in flight together."""
        in_flight = 0
        peak = 0

        async def process(x: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return x

        executor: BatchExecutor[int, int] = BatchExecutor(batch_size=4, batch_delay_seconds=0)
        await executor.execute(list(range(10)), process)

        assert peak == 4

    async def test_batches_are_sequential(self) -> None:
        """A batch starts only after the previous one settled."""
        events: list[str] = []

        async def process(x: int) -> int:
            events.append(f"start {x}")
            await asyncio.sleep(0.001)
            events.append(f"end {x}")
            return x

        executor: BatchExecutor[int, int] = BatchExecutor(batch_size=2, batch_delay_seconds=0)
        await executor.execute([0, 1, 2], process)

        assert events.index("start 2") > events.index("end 0")
        assert events.index("start 2") > events.index("end 1")

    async def test_delay_between_batches_only(self) -> None:
        async def process(x: int) -> int:
            return x

        executor: BatchExecutor[int, int] = BatchExecutor(batch_size=10, batch_delay_seconds=1.5)
        with patch("github_activity_cache.sync.batch.asyncio.sleep", new=AsyncMock()) as sleep:
            await executor.execute(list(range(25)), process)

        assert sleep.await_count == 2
        sleep.assert_awaited_with(1.5)

    async def test_callback_per_batch(self) -> None:
        calls: list[tuple[int, int, int]] = []

        async def process(x: int) -> int:
            return x

        executor: BatchExecutor[int, int] = BatchExecutor(
            batch_size=10,
            batch_delay_seconds=0,
            on_batch_complete=lambda n, total, r: calls.append((n, total, r.success_count)),
        )
        await executor.execute(list(range(25)), process)

        assert calls == [(1, 3, 10), (2, 3, 10), (3, 3, 5)]

    async def test_cancel_stops_before_next_batch(self) -> None:
        executor: BatchExecutor[int, int] = BatchExecutor(batch_size=2, batch_delay_seconds=0)

        async def process(x: int) -> int:
            executor.cancel()
            return x

        result = await executor.execute(list(range(6)), process)

        assert result.succeeded == [0, 1]
        assert executor.is_cancelled

    async def test_cancel_from_callback_skips_delay(self) -> None:
        executor: BatchExecutor[int, int] = BatchExecutor(
            batch_size=2,
            batch_delay_seconds=5.0,
            on_batch_complete=lambda n, total, r: executor.cancel(),
        )

        async def process(x: int) -> int:
            return x

        with patch("github_activity_cache.sync.batch.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await executor.execute(list(range(6)), process)

        assert result.succeeded == [0, 1]
        sleep.assert_not_awaited()

    async def test_empty_items(self) -> None:
        async def process(x: int) -> int:
            return x

        result = await BatchExecutor(batch_size=10).execute([], process)
        assert result.total_count == 0
