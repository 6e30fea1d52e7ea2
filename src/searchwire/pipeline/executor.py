# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Tool executor: the composition root of the invocation pipeline.

For each call the executor

1. validates the arguments against the tool's parameter model,
2. elicits missing input from the client when it can,
3. re-validates the merged arguments (hard failure if still incomplete),
4. runs the handler under its deadline,
5. shapes the result, or classifies the failure and shapes the insight.

Exactly one envelope is produced per call. Domain and transport failures
never escape as exceptions.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mcp import types
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..core.exceptions import SearchwireException, ValidationException
from ..core.logging import request_context, tool_logger
from ..core.response import ToolEnvelope
from .deadline import execute_with_deadline
from .elicitation import (
    ElicitationChannel,
    ElicitationCoordinator,
    ElicitationFlow,
    ElicitationSchema,
    is_empty,
    primitive_from_json_schema,
    single_step_flow,
)
from .insights import classify
from .pagination import CursorCodec
from .progress import NullProgressReporter, ProgressReporter
from .shaping import ResponseMode, ResponseShaper

if TYPE_CHECKING:
    from ..core.config import SearchwireSettings
    from ..upstream.search_client import SearchServiceClient

logger = logging.getLogger(__name__)


class ToolParams(BaseModel):
    """Base class for tool parameter models.

    Python attributes are snake_case; the wire format is camelCase.
    Unknown arguments are rejected.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


@dataclass(frozen=True)
class ToolHints:
    """Behavior hints advertised to clients."""

    read_only: bool = False
    destructive: bool = False
    idempotent: bool = False

    @classmethod
    def for_method(cls, method: str) -> ToolHints:
        method = method.upper()
        return cls(
            read_only=method == "GET",
            destructive=method == "DELETE",
            idempotent=method in ("GET", "PUT", "DELETE"),
        )

    def to_annotations(self) -> types.ToolAnnotations:
        return types.ToolAnnotations(
            readOnlyHint=self.read_only,
            destructiveHint=self.destructive,
            idempotentHint=self.idempotent,
            openWorldHint=True,
        )


@dataclass(frozen=True)
class ToolCallContext:
    """Per-invocation facts. Lives for one call only."""

    tool_name: str
    raw_params: Mapping[str, Any]
    merged_params: Mapping[str, Any]
    deadline_at: float
    request_id: str

    def remaining_ms(self) -> float:
        return max(0.0, (self.deadline_at - time.monotonic()) * 1000)


@dataclass(frozen=True)
class ToolCall:
    """Everything a handler may use during one call."""

    context: ToolCallContext
    client: SearchServiceClient
    settings: SearchwireSettings
    codec: CursorCodec
    progress: ProgressReporter
    elicitation: ElicitationCoordinator


Handler = Callable[[Any, ToolCall], Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    """Declaration of one tool.

    Attributes:
        name: Tool name exposed to clients.
        description: Tool description exposed to clients.
        params: Pydantic model validating the arguments.
        handler: ``async (params, call) -> result``.
        hints: Behavior hints.
        timeout_ms: Deadline for the handler; settings default when None.
        elicitation: Flow collecting missing input. When None, a one-step
            form is generated for missing primitive fields.
        needs_input: Extra predicate over the stripped arguments that forces
            the elicitation flow even when no required field is missing.
    """

    name: str
    description: str
    params: type[BaseModel]
    handler: Handler
    hints: ToolHints = field(default_factory=ToolHints)
    timeout_ms: float | None = None
    elicitation: ElicitationFlow | None = None
    needs_input: Callable[[Mapping[str, Any]], bool] | None = None

    def input_schema(self) -> dict[str, Any]:
        return self.params.model_json_schema(by_alias=True)

    def to_tool(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema(),
            annotations=self.hints.to_annotations(),
        )


def strip_empty(arguments: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop arguments that count as not supplied (None, blank strings, empty collections)."""
    return {name: value for name, value in (arguments or {}).items() if not is_empty(value)}


def _validate(model: type[BaseModel], params: Mapping[str, Any]) -> tuple[BaseModel | None, list[dict[str, Any]]]:
    try:
        return model.model_validate(params), []
    except PydanticValidationError as e:
        return None, e.errors(include_url=False, include_context=False)


def _error_field(error: Mapping[str, Any]) -> str:
    loc = error.get("loc") or ()
    return ".".join(str(part) for part in loc) or "arguments"


def _describe_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{"field": _error_field(e), "error": e.get("msg", "invalid"), "type": e.get("type")} for e in errors]


class ToolExecutor:
    """Runs tool calls through the pipeline.

    Configuration and collaborators are injected; the executor holds no
    per-call state.

    Args:
        tools: Tool declarations.
        client: Upstream search client handed to handlers.
        settings: Loaded settings.
        shaper: Response shaper; built from settings when None.
        codec: Cursor codec; built from ``settings.cursor_secret`` when None.
    """

    def __init__(
        self,
        tools: Iterable[ToolSpec],
        client: SearchServiceClient,
        settings: SearchwireSettings,
        shaper: ResponseShaper | None = None,
        codec: CursorCodec | None = None,
    ):
        self.tools: dict[str, ToolSpec] = {}
        for spec in tools:
            if spec.name in self.tools:
                raise ValueError(f"Duplicate tool name: {spec.name}")
            self.tools[spec.name] = spec
        self.client = client
        self.settings = settings
        self.shaper = shaper or ResponseShaper.from_settings(settings)
        self.codec = codec or CursorCodec(settings.cursor_secret)

    def list_tools(self) -> list[types.Tool]:
        return [spec.to_tool() for spec in self.tools.values()]

    def _elicitation_flow(self, spec: ToolSpec, missing: list[str]) -> ElicitationFlow | None:
        if spec.elicitation is not None:
            return spec.elicitation
        properties = spec.input_schema().get("properties", {})
        fields = {}
        for name in missing:
            primitive = primitive_from_json_schema(name, properties.get(name, {}))
            if primitive is None:
                return None
            fields[name] = primitive
        return single_step_flow(
            spec.name,
            f"{spec.name} needs: {', '.join(missing)}",
            ElicitationSchema(properties=fields, required=tuple(missing)),
        )

    async def _prepare(
        self,
        spec: ToolSpec,
        arguments: Mapping[str, Any] | None,
        coordinator: ElicitationCoordinator,
    ) -> tuple[BaseModel, dict[str, Any]]:
        params = strip_empty(arguments)
        model, errors = _validate(spec.params, params)
        forced = spec.needs_input is not None and spec.needs_input(params)
        if model is not None and not forced:
            return model, params

        missing = [_error_field(e) for e in errors if e.get("type") == "missing"]
        invalid = [e for e in errors if e.get("type") != "missing"]
        if invalid and not forced:
            raise ValidationException(
                f"Invalid arguments for {spec.name}",
                field=_error_field(invalid[0]),
                errors=_describe_errors(invalid),
            )

        flow = self._elicitation_flow(spec, missing)
        if flow is None or not set(missing) <= flow.fields:
            raise ValidationException(
                f"Missing required arguments for {spec.name}: {', '.join(missing)}",
                field=missing[0] if missing else None,
                errors=_describe_errors(errors),
            )

        merged = await flow.run(coordinator, params)
        model, errors = _validate(spec.params, merged)
        if model is None:
            suffix = "" if coordinator.supported else " (client cannot be asked for input)"
            raise ValidationException(
                f"Arguments for {spec.name} are still incomplete or invalid{suffix}",
                field=_error_field(errors[0]),
                errors=_describe_errors(errors),
            )
        return model, merged

    async def execute(
        self,
        name: str,
        arguments: Mapping[str, Any] | None,
        *,
        elicitation: ElicitationChannel | None = None,
        progress: ProgressReporter | None = None,
        request_id: str | None = None,
    ) -> ToolEnvelope:
        """Run one tool call and return its envelope. Never raises for tool failures."""
        started = time.monotonic()
        raw = dict(arguments or {})
        with request_context(request_id) as rid:
            tool_logger.log_call(name, raw)
            spec = self.tools.get(name)
            try:
                if spec is None:
                    raise ValidationException(f"Unknown tool: {name}", field="name", value=name)

                coordinator = ElicitationCoordinator(elicitation, self.settings.elicitation_timeout_ms, tool_name=name)
                params, merged = await self._prepare(spec, raw, coordinator)

                timeout_ms = spec.timeout_ms or self.settings.default_timeout_ms
                call = ToolCall(
                    context=ToolCallContext(
                        tool_name=name,
                        raw_params=raw,
                        merged_params=merged,
                        deadline_at=time.monotonic() + timeout_ms / 1000,
                        request_id=rid,
                    ),
                    client=self.client,
                    settings=self.settings,
                    codec=self.codec,
                    progress=progress or NullProgressReporter(),
                    elicitation=coordinator,
                )
                result = await execute_with_deadline(lambda: spec.handler(params, call), timeout_ms, label=name)
            except Exception as e:
                if isinstance(e, SearchwireException):
                    logger.warning(f"Tool {name} failed: {e.message}")
                else:
                    logger.exception(f"Unexpected error in tool {name}")
                insight = classify(e, {"tool": name})
                tool_logger.log_result(
                    name, False, (time.monotonic() - started) * 1000, code=insight.code.value, level=logging.INFO
                )
                return await self.shaper.shape(insight.to_dict(), is_error=True)

            mode = getattr(params, "response_format", ResponseMode.FULL)
            envelope = await self.shaper.shape(result, structured_content=result, mode=mode)
            tool_logger.log_result(name, True, (time.monotonic() - started) * 1000)
            return envelope
