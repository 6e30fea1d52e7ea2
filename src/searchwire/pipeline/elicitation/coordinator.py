# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Elicitation state machine.

A tool call that lacks required input can pause and ask the calling
client for it:

    NOT_NEEDED -> REQUESTED -> ACCEPTED | DECLINED | CANCELLED | TIMED_OUT

The request is only sent when the client advertised the elicitation
capability; otherwise the outcome is ``NotNeeded`` and the caller falls
back to a validation error. The call's own coroutine awaits the answer,
so no state outlives the call.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from mcp.shared.exceptions import McpError

from ...core.exceptions import ElicitationAbandoned, OperationTimeoutError, ValidationException
from ..deadline import execute_with_deadline
from .schema import ElicitationSchema

logger = logging.getLogger(__name__)


class ElicitationState(str, Enum):
    NOT_NEEDED = "not_needed"
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ElicitationRequest:
    message: str
    schema: ElicitationSchema

    def to_params(self) -> dict[str, Any]:
        return {"message": self.message, "requestedSchema": self.schema.to_requested_schema()}


@dataclass(frozen=True)
class NotNeeded:
    reason: str = "client does not support elicitation"
    state: ElicitationState = field(default=ElicitationState.NOT_NEEDED, init=False)


@dataclass(frozen=True)
class Accepted:
    content: dict[str, Any]
    state: ElicitationState = field(default=ElicitationState.ACCEPTED, init=False)


@dataclass(frozen=True)
class Declined:
    state: ElicitationState = field(default=ElicitationState.DECLINED, init=False)


@dataclass(frozen=True)
class Cancelled:
    reason: str | None = None
    state: ElicitationState = field(default=ElicitationState.CANCELLED, init=False)


@dataclass(frozen=True)
class TimedOut:
    timeout_ms: float
    state: ElicitationState = field(default=ElicitationState.TIMED_OUT, init=False)


ElicitationOutcome = NotNeeded | Accepted | Declined | Cancelled | TimedOut


@runtime_checkable
class ElicitationChannel(Protocol):
    """Transport that can put an elicitation request to the client."""

    def supports_elicitation(self) -> bool: ...

    async def elicit(self, message: str, requested_schema: dict[str, Any]) -> tuple[str, dict[str, Any] | None]:
        """Send the request; return the client's (action, content)."""
        ...


def is_empty(value: Any) -> bool:
    """Values that count as "not supplied" for merging and validation."""
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, list | dict) and not value:
        return True
    return False


def missing_fields(params: Mapping[str, Any], required: tuple[str, ...] | list[str]) -> list[str]:
    return [name for name in required if is_empty(params.get(name))]


def merge_elicited(provided: Mapping[str, Any], elicited: Mapping[str, Any]) -> dict[str, Any]:
    """Fill gaps in ``provided`` from ``elicited``.

    Non-empty caller values always win. Returns a new dict.
    """
    merged = dict(provided)
    for name, value in elicited.items():
        if is_empty(merged.get(name)) and not is_empty(value):
            merged[name] = value
    return merged


class ElicitationCoordinator:
    """Runs elicitation requests for one tool call.

    Args:
        channel: Client channel, or None when the transport has none.
        timeout_ms: How long to wait for an answer.
        tool_name: Used in logs and abandonment errors.
    """

    def __init__(self, channel: ElicitationChannel | None, timeout_ms: float, tool_name: str | None = None):
        self.channel = channel
        self.timeout_ms = timeout_ms
        self.tool_name = tool_name
        self.state = ElicitationState.NOT_NEEDED

    @property
    def supported(self) -> bool:
        return self.channel is not None and self.channel.supports_elicitation()

    async def request(self, request: ElicitationRequest) -> ElicitationOutcome:
        """Ask the client and return the typed outcome.

        Raises:
            ElicitationValidationError: Accepted content violates the schema.
            ValidationException: The client answered with an unknown action.
        """
        channel = self.channel
        if channel is None or not channel.supports_elicitation():
            logger.debug(f"Elicitation for {self.tool_name} skipped: client lacks the capability")
            self.state = ElicitationState.NOT_NEEDED
            return NotNeeded()

        self.state = ElicitationState.REQUESTED
        logger.info(f"Requesting input from client for {self.tool_name}: {request.message}")
        try:
            action, content = await execute_with_deadline(
                lambda: channel.elicit(request.message, request.schema.to_requested_schema()),
                self.timeout_ms,
                label=f"elicitation for {self.tool_name or 'tool call'}",
            )
        except OperationTimeoutError:
            self.state = ElicitationState.TIMED_OUT
            return TimedOut(timeout_ms=self.timeout_ms)
        except (McpError, ConnectionError) as e:
            logger.warning(f"Elicitation channel failed for {self.tool_name}: {e}")
            self.state = ElicitationState.CANCELLED
            return Cancelled(reason=str(e))

        if action == "accept":
            validated = request.schema.validate(content)
            self.state = ElicitationState.ACCEPTED
            return Accepted(content=validated)
        if action == "decline":
            self.state = ElicitationState.DECLINED
            return Declined()
        if action == "cancel":
            self.state = ElicitationState.CANCELLED
            return Cancelled()
        raise ValidationException(f"Client answered elicitation with unknown action {action!r}", field="action")

    async def resolve(
        self,
        request: ElicitationRequest,
        params: Mapping[str, Any],
        step: str | None = None,
    ) -> dict[str, Any]:
        """Request input and merge it into ``params``.

        Returns ``params`` unchanged when elicitation is not possible.

        Raises:
            ElicitationAbandoned: The user declined, cancelled or timed out.
        """
        outcome = await self.request(request)
        if isinstance(outcome, Accepted):
            return merge_elicited(params, outcome.content)
        if isinstance(outcome, NotNeeded):
            return dict(params)
        raise ElicitationAbandoned(outcome.state.value.replace("_", " "), tool_name=self.tool_name, step=step)
