# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Deadline guard for async operations.

``execute_with_deadline`` races an operation against a timer. When the
timer wins, the *wait* is abandoned and ``OperationTimeoutError`` is
raised, but the operation itself is not cancelled: it keeps running on
the event loop until it settles on its own. Callers that need the side
effect stopped must make the operation cancellable themselves.

The module-level ``_abandoned`` set is the only state shared across calls.
It holds the tasks of operations that outlived their deadline so they are
not garbage collected mid-flight; each entry removes itself when its task
settles. No call reads it to make a decision; ``pending_abandoned`` exposes
its size for tests.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from ..core.exceptions import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Abandoned operations still running after their deadline. Holding a
# reference keeps them from being garbage collected mid-flight.
_abandoned: set[asyncio.Future] = set()


def _reap(future: asyncio.Future) -> None:
    _abandoned.discard(future)
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.debug(f"Abandoned operation failed after its deadline: {exc!r}")


async def execute_with_deadline(
    operation: Callable[[], Awaitable[T]] | Awaitable[T],
    deadline_ms: float,
    label: str = "operation",
) -> T:
    """Await ``operation`` for at most ``deadline_ms`` milliseconds.

    Args:
        operation: Zero-argument callable returning an awaitable, or an
            awaitable. A callable is not invoked when the deadline is
            already spent.
        deadline_ms: Time budget. Values <= 0 fail immediately.
        label: Name used in the timeout error.

    Returns:
        The operation's result.

    Raises:
        OperationTimeoutError: The operation did not settle in time.
        Exception: Whatever the operation raised, unchanged.
    """
    if deadline_ms <= 0:
        if inspect.iscoroutine(operation):
            operation.close()
        raise OperationTimeoutError(label, deadline_ms)

    awaitable = operation() if callable(operation) else operation
    future = asyncio.ensure_future(awaitable)

    try:
        done, _ = await asyncio.wait({future}, timeout=deadline_ms / 1000)
    except asyncio.CancelledError:
        # The caller itself went away (session teardown), not a deadline.
        future.cancel()
        raise
    if future in done:
        return future.result()

    _abandoned.add(future)
    future.add_done_callback(_reap)
    logger.warning(f"{label} exceeded its {deadline_ms:g}ms deadline; no longer waiting for it")
    raise OperationTimeoutError(label, deadline_ms)


def pending_abandoned() -> int:
    """Number of operations that outlived their deadline and are still running."""
    return len(_abandoned)
