# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Indexer and data source tools, including a progress-reporting run."""

from __future__ import annotations

import logging
import math
from typing import Any

from pydantic import Field

from ..pipeline.executor import ToolCall, ToolHints, ToolParams, ToolSpec
from ..pipeline.pagination import paginate
from ..pipeline.progress import StatusAssessment, poll_until_complete
from .common import PagedParams, ResourceName

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"success", "transientFailure", "persistentFailure", "reset"})
RUN_WITH_PROGRESS_TIMEOUT_MS = 330_000


def _names(items: list[dict[str, Any]]) -> list[str]:
    return [item["name"] for item in items if item.get("name")]


class ListParams(PagedParams):
    pass


async def list_indexers(params: ListParams, call: ToolCall) -> dict[str, Any]:
    names = _names(await call.client.list_indexers())
    page = paginate(
        names,
        params.page_size or call.settings.default_page_size,
        params.cursor,
        codec=call.codec,
        max_page_size=call.settings.max_page_size,
    )
    return page.to_dict()


async def list_data_sources(params: ListParams, call: ToolCall) -> dict[str, Any]:
    names = _names(await call.client.list_data_sources())
    page = paginate(
        names,
        params.page_size or call.settings.default_page_size,
        params.cursor,
        codec=call.codec,
        max_page_size=call.settings.max_page_size,
    )
    return page.to_dict()


class IndexerParams(ToolParams):
    indexer_name: ResourceName


async def get_indexer(params: IndexerParams, call: ToolCall) -> dict[str, Any]:
    return await call.client.get_indexer(params.indexer_name)


class IndexerStatusParams(ToolParams):
    indexer_name: ResourceName
    history_limit: int = Field(default=5, ge=1, le=50, description="Execution history entries to keep")


async def get_indexer_status(params: IndexerStatusParams, call: ToolCall) -> dict[str, Any]:
    status = dict(await call.client.get_indexer_status(params.indexer_name) or {})
    history = status.get("executionHistory")
    if isinstance(history, list):
        status["executionHistory"] = history[: params.history_limit]
        status["executionHistoryTruncated"] = len(history) > params.history_limit
    return status


async def run_indexer(params: IndexerParams, call: ToolCall) -> dict[str, Any]:
    await call.client.run_indexer(params.indexer_name)
    return {"indexerName": params.indexer_name, "started": True}


async def reset_indexer(params: IndexerParams, call: ToolCall) -> dict[str, Any]:
    await call.client.reset_indexer(params.indexer_name)
    return {"indexerName": params.indexer_name, "reset": True}


# ============================================================================
# run_indexer_with_progress
# ============================================================================


class RunWithProgressParams(ToolParams):
    indexer_name: ResourceName
    poll_seconds: float | None = Field(default=None, gt=0, le=30, description="Seconds between status reads")
    max_attempts: int | None = Field(default=None, ge=1, le=600, description="Upper bound on status reads")


def _counts(last_result: dict[str, Any]) -> tuple[int, int]:
    processed = last_result.get("itemsProcessed", last_result.get("itemCount")) or 0
    failed = last_result.get("itemsFailed", last_result.get("failedItemCount")) or 0
    return int(processed), int(failed)


def assess_indexer_status(status: dict[str, Any]) -> StatusAssessment:
    """Estimate completion from an indexer status payload."""
    last_result = (status or {}).get("lastResult") or {}
    state = last_result.get("status") or "unknown"
    processed, failed = _counts(last_result)

    if state == "success":
        fraction = 1.0
    elif state == "inProgress":
        fraction = min(0.9, processed / max(1, processed + failed))
    elif state == "transientFailure":
        fraction = 0.0
    else:
        fraction = 0.1
    return StatusAssessment(
        status=state,
        fraction=fraction,
        done=state in TERMINAL_STATUSES,
        details={"itemsProcessed": processed, "itemsFailed": failed},
    )


async def run_indexer_with_progress(params: RunWithProgressParams, call: ToolCall) -> dict[str, Any]:
    interval = params.poll_seconds or call.settings.poll_interval_seconds
    attempts = params.max_attempts or call.settings.poll_max_attempts
    # Polling must finish one interval before the deadline.
    budget = math.floor((call.context.remaining_ms() / 1000 - interval) / interval)
    attempts = max(1, min(attempts, budget))

    await call.client.run_indexer(params.indexer_name)
    logger.info(f"Started indexer {params.indexer_name}; polling up to {attempts} times every {interval}s")

    result = await poll_until_complete(
        lambda: call.client.get_indexer_status(params.indexer_name),
        assess_indexer_status,
        operation=f"Indexer {params.indexer_name}",
        interval_seconds=interval,
        max_attempts=attempts,
        reporter=call.progress,
    )

    last_result = ((result.last_status or {}).get("lastResult")) or {}
    processed, failed = _counts(last_result)
    return {
        "indexerName": params.indexer_name,
        "completed": result.completed,
        "status": last_result.get("status", "unknown"),
        "documentsProcessed": processed,
        "documentsFailed": failed,
        "errorMessage": last_result.get("errorMessage"),
        "attempts": result.attempts,
        "progressHistory": [update.to_dict() for update in result.history],
    }


INDEXER_TOOLS = [
    ToolSpec(
        name="list_indexers",
        description="List indexer names. Paginated: pass nextCursor back as cursor.",
        params=ListParams,
        handler=list_indexers,
        hints=ToolHints.for_method("GET"),
    ),
    ToolSpec(
        name="get_indexer",
        description="Fetch an indexer definition.",
        params=IndexerParams,
        handler=get_indexer,
        hints=ToolHints.for_method("GET"),
    ),
    ToolSpec(
        name="get_indexer_status",
        description="Current status and recent execution history of an indexer.",
        params=IndexerStatusParams,
        handler=get_indexer_status,
        hints=ToolHints.for_method("GET"),
    ),
    ToolSpec(
        name="run_indexer",
        description="Start an indexer run. Runs are limited to one every 180 seconds.",
        params=IndexerParams,
        handler=run_indexer,
        hints=ToolHints.for_method("POST"),
    ),
    ToolSpec(
        name="reset_indexer",
        description="Reset change tracking so the next run re-crawls everything.",
        params=IndexerParams,
        handler=reset_indexer,
        hints=ToolHints.for_method("POST"),
    ),
    ToolSpec(
        name="run_indexer_with_progress",
        description="Run an indexer and report progress until it finishes or polling stops.",
        params=RunWithProgressParams,
        handler=run_indexer_with_progress,
        hints=ToolHints.for_method("POST"),
        timeout_ms=RUN_WITH_PROGRESS_TIMEOUT_MS,
    ),
    ToolSpec(
        name="list_data_sources",
        description="List data source connection names. Paginated: pass nextCursor back as cursor.",
        params=ListParams,
        handler=list_data_sources,
        hints=ToolHints.for_method("GET"),
    ),
]
