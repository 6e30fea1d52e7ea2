# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Progress reporting for long-running upstream operations.

Long operations are observed with a bounded poll loop: a fixed interval
between status reads and a cap on attempts. Each read is turned into a
progress notification; a last notification at 100% is sent when the loop
ends, whether the operation finished, the attempt cap was reached or a
status read failed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROGRESS_TOTAL = 100.0


@runtime_checkable
class ProgressReporter(Protocol):
    async def report(self, progress: float, total: float | None = None, message: str | None = None) -> None: ...


class NullProgressReporter:
    """Used when the caller did not ask for progress."""

    async def report(self, progress: float, total: float | None = None, message: str | None = None) -> None:
        return None


class MonotonicReporter:
    """Drops updates that would move progress backwards or repeat it.

    MCP requires each progress notification to increase the value.
    """

    def __init__(self, inner: ProgressReporter):
        self.inner = inner
        self.last: float | None = None

    async def report(self, progress: float, total: float | None = None, message: str | None = None) -> None:
        if self.last is not None and progress <= self.last:
            return
        self.last = progress
        await self.inner.report(progress, total, message)


@dataclass(frozen=True)
class StatusAssessment:
    """How far along a polled operation is.

    Attributes:
        status: Upstream status label.
        fraction: Completion estimate in [0, 1].
        done: True for terminal statuses.
        details: Extra facts kept in the poll history.
    """

    status: str
    fraction: float
    done: bool
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProgressUpdate:
    attempt: int
    status: str
    percentage: int
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"attempt": self.attempt, "status": self.status, "percentage": self.percentage, **self.details}


@dataclass
class PollResult(Generic[T]):
    completed: bool
    attempts: int
    last_status: T | None = None
    last_assessment: StatusAssessment | None = None
    history: list[ProgressUpdate] = field(default_factory=list)


async def poll_until_complete(
    fetch_status: Callable[[], Awaitable[T]],
    assess: Callable[[T], StatusAssessment],
    *,
    operation: str,
    interval_seconds: float,
    max_attempts: int,
    reporter: ProgressReporter | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> PollResult[T]:
    """Poll ``fetch_status`` until ``assess`` says done or attempts run out.

    Args:
        fetch_status: Reads the current upstream status.
        assess: Maps a status to a ``StatusAssessment``.
        operation: Name used in notification messages.
        interval_seconds: Wait before each read.
        max_attempts: Upper bound on reads.
        reporter: Receives progress notifications (percent of 100).
        sleep: Awaitable sleep, replaceable in tests.

    Errors raised by ``fetch_status`` propagate after the final
    notification; the loop does not retry.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    reporter = MonotonicReporter(reporter or NullProgressReporter())
    result: PollResult[T] = PollResult(completed=False, attempts=0)

    while result.attempts < max_attempts:
        await sleep(interval_seconds)
        result.attempts += 1
        try:
            status = await fetch_status()
            assessment = assess(status)
        except Exception as e:
            await reporter.report(PROGRESS_TOTAL, PROGRESS_TOTAL, f"{operation}: failed: {e}")
            raise
        fraction = min(1.0, max(0.0, assessment.fraction))
        update = ProgressUpdate(
            attempt=result.attempts,
            status=assessment.status,
            percentage=round(fraction * 100),
            details=assessment.details,
        )
        result.history.append(update)
        result.last_status = status
        result.last_assessment = assessment

        if assessment.done:
            result.completed = True
            break
        await reporter.report(
            fraction * PROGRESS_TOTAL,
            PROGRESS_TOTAL,
            f"{operation}: {assessment.status} ({update.percentage}%)",
        )

    last = result.last_assessment.status if result.last_assessment else "unknown"
    if result.completed:
        message = f"{operation}: finished with status {last}"
    else:
        message = f"{operation}: stopped polling after {result.attempts} attempts (status {last})"
        logger.warning(message)
    await reporter.report(PROGRESS_TOTAL, PROGRESS_TOTAL, message)
    return result
