"""Tests for searchwire.pipeline.deadline module."""

from __future__ import annotations

import asyncio
import time

import pytest

from searchwire.core.exceptions import OperationTimeoutError
from searchwire.pipeline.deadline import execute_with_deadline, pending_abandoned


class TestExecuteWithDeadline:
    """Tests for execute_with_deadline."""

    async def test_returns_result_in_time(self):
        """A fast operation's value is returned."""

        async def op():
            return 42

        assert await execute_with_deadline(op, 1000) == 42

    async def test_accepts_awaitable(self):
        """A bare coroutine works as well as a callable."""

        async def op():
            return "done"

        assert await execute_with_deadline(op(), 1000) == "done"

    async def test_propagates_operation_error(self):
        """Errors from the operation pass through unchanged."""

        async def op():
            raise KeyError("missing")

        with pytest.raises(KeyError):
            await execute_with_deadline(op, 1000)

    async def test_synchronous_error_propagates(self):
        """A factory that raises before returning an awaitable fails at once."""

        def op():
            raise KeyError("missing")

        before = pending_abandoned()
        started = time.monotonic()
        with pytest.raises(KeyError):
            await execute_with_deadline(op, 1000)
        assert time.monotonic() - started < 0.5
        assert pending_abandoned() == before

    async def test_times_out_at_deadline(self):
        """A slow operation is abandoned at the deadline, not when it finishes."""
        finished = asyncio.Event()

        async def op():
            await asyncio.sleep(0.5)
            finished.set()

        started = time.monotonic()
        with pytest.raises(OperationTimeoutError):
            await execute_with_deadline(op, 50)
        elapsed = time.monotonic() - started
        assert 0.04 <= elapsed < 0.3
        assert not finished.is_set()

        await asyncio.wait_for(finished.wait(), timeout=2)

    async def test_timeout_error(self):
        """A slow operation raises OperationTimeoutError with the label."""

        async def op():
            await asyncio.sleep(0.05)

        with pytest.raises(OperationTimeoutError) as exc_info:
            await execute_with_deadline(op, 10, label="slow op")
        assert exc_info.value.label == "slow op"
        assert exc_info.value.deadline_ms == 10
        assert exc_info.value.message == "slow op timed out after 10ms"
        await asyncio.sleep(0.1)

    async def test_timed_out_operation_keeps_running(self):
        """The abandoned operation is not cancelled and still completes."""
        finished = asyncio.Event()
        baseline = pending_abandoned()

        async def op():
            await asyncio.sleep(0.05)
            finished.set()

        with pytest.raises(OperationTimeoutError):
            await execute_with_deadline(op, 5)
        assert pending_abandoned() == baseline + 1
        await asyncio.wait_for(finished.wait(), timeout=1)
        for _ in range(5):
            await asyncio.sleep(0)
        assert pending_abandoned() == baseline

    async def test_nonpositive_deadline_fails_immediately(self):
        """A spent budget never invokes the callable."""
        called = False

        async def op():
            nonlocal called
            called = True

        with pytest.raises(OperationTimeoutError):
            await execute_with_deadline(op, 0)
        with pytest.raises(OperationTimeoutError):
            await execute_with_deadline(op, -5)
        assert called is False

    async def test_nonpositive_deadline_closes_coroutine(self):
        """A bare coroutine is closed rather than left unawaited."""

        async def op():
            return 1

        coro = op()
        with pytest.raises(OperationTimeoutError):
            await execute_with_deadline(coro, 0)
        assert coro.cr_frame is None

    async def test_caller_cancellation_cancels_operation(self):
        """Cancelling the waiter cancels the operation too."""
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def op():
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        task = asyncio.create_task(execute_with_deadline(op, 5000))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.wait_for(cancelled.wait(), timeout=1)
