# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Tool response envelope.

Every tool call, successful or not, produces exactly one ``ToolEnvelope``.
The envelope is what the MCP layer hands back to the client, so callers
always receive ``{content, structuredContent?, isError?}`` rather than a
transport-level error.

Usage::

    from searchwire.core.response import ToolEnvelope

    envelope = ToolEnvelope(text='{"count": 3}', structured_content={"count": 3})
    result = envelope.to_call_tool_result()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mcp import types


@dataclass(frozen=True)
class ToolEnvelope:
    """Shaped output of one tool call.

    Attributes:
        text:               Serialized (possibly degraded) payload.
        structured_content: Machine-readable payload; only present when the
                            full payload fit the budget.
        is_error:           True when ``text`` carries a classified failure.
        summarized:         True when the payload was replaced by a summary.
        truncated:          True when the payload was trimmed or cut.
        original_size:      Serialized size before degradation.
    """

    text: str
    structured_content: dict[str, Any] | None = None
    is_error: bool = False
    summarized: bool = False
    truncated: bool = False
    original_size: int | None = None

    @property
    def degraded(self) -> bool:
        return self.summarized or self.truncated

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the MCP tool result wire shape.

        ``structuredContent`` and ``isError`` are only included when they
        carry information.
        """
        d: dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.structured_content is not None:
            d["structuredContent"] = self.structured_content
        if self.is_error:
            d["isError"] = True
        return d

    def to_call_tool_result(self) -> types.CallToolResult:
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=self.text)],
            structuredContent=self.structured_content,
            isError=self.is_error,
        )
