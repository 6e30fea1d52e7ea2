# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Service-level tools."""

from __future__ import annotations

import time
from typing import Any

from pydantic import Field

from ..pipeline.elicitation import Accepted, ElicitationRequest, ElicitationSchema, EnumField
from ..pipeline.executor import ToolCall, ToolHints, ToolParams, ToolSpec


class NoParams(ToolParams):
    pass


async def get_service_statistics(params: NoParams, call: ToolCall) -> dict[str, Any]:
    return await call.client.get_service_statistics()


class DebugElicitationParams(ToolParams):
    perform_test: bool = Field(default=False, description="Send a one-field test form to the client")


TEST_REQUEST = ElicitationRequest(
    message="Test elicitation: please confirm to continue",
    schema=ElicitationSchema(properties={"confirm": EnumField(options=("OK",), title="Confirm")}, required=("confirm",)),
)


async def debug_elicitation(params: DebugElicitationParams, call: ToolCall) -> dict[str, Any]:
    """Report whether this session can elicit, optionally with a live round trip."""
    info: dict[str, Any] = {
        "supported": call.elicitation.supported,
        "timeoutMs": call.elicitation.timeout_ms,
    }
    if not params.perform_test:
        return info

    started = time.monotonic()
    outcome = await call.elicitation.request(TEST_REQUEST)
    info["testState"] = outcome.state.value
    info["testDurationMs"] = round((time.monotonic() - started) * 1000)
    if isinstance(outcome, Accepted):
        info["testContent"] = outcome.content
    elif not call.elicitation.supported:
        info["note"] = "Client did not declare the elicitation capability"
    return info


SERVICE_TOOLS = [
    ToolSpec(
        name="get_service_statistics",
        description="Service-wide counters and quotas (indexes, indexers, storage, document limits).",
        params=NoParams,
        handler=get_service_statistics,
        hints=ToolHints.for_method("GET"),
    ),
    ToolSpec(
        name="debug_elicitation",
        description="Report whether the client supports elicitation and optionally run a test form.",
        params=DebugElicitationParams,
        handler=debug_elicitation,
        hints=ToolHints(read_only=True, idempotent=True),
        timeout_ms=150_000,
    ),
]
