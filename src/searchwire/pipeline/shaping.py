# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Budgeted response shaping.

``ResponseShaper.shape`` turns a tool result into a ``ToolEnvelope`` whose
text never exceeds the configured character budget. Oversized payloads
degrade in order:

1. summary from the optional summarizer (own deadline, token budget)
2. structural trimming of well-known collections
3. hard truncation with a marker stating the original size

A summarizer failure of any kind falls through to the next step; it never
fails the call.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..core.response import ToolEnvelope
from .deadline import execute_with_deadline

if TYPE_CHECKING:
    from ..core.config import SearchwireSettings

logger = logging.getLogger(__name__)

Summarizer = Callable[[str, int], Awaitable[str]]

MIN_BUDGET = 128

# Collections trimmed before resorting to hard truncation, with how many
# entries survive.
TRIMMED_COLLECTIONS = {
    "executionHistory": 5,
    "value": 10,
    "errors": 10,
    "warnings": 10,
}
TRIMMED_LIST_LENGTH = 10

MINIMAL_FIELDS = ("name", "id", "key", "title", "status", "type", "count", "message")
MINIMAL_ITEMS = 5


class ResponseMode(str, Enum):
    FULL = "full"
    SUMMARY = "summary"
    MINIMAL = "minimal"


def serialize(payload: Any) -> str:
    """Canonical text form: strings verbatim, everything else indented JSON."""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, indent=2, default=str, ensure_ascii=False)


def truncation_marker(original_size: int) -> str:
    return f"\n... [truncated: original size {original_size} characters]"


def hard_truncate(text: str, budget: int, original_size: int | None = None) -> str:
    """Cut ``text`` so that text plus marker fits in ``budget`` characters."""
    marker = truncation_marker(original_size if original_size is not None else len(text))
    keep = max(0, budget - len(marker))
    return text[:keep] + marker


def _minimal_item(item: Any) -> Any:
    if not isinstance(item, dict):
        return item
    kept = {k: item[k] for k in MINIMAL_FIELDS if k in item}
    return kept or item


def minimize(payload: Any) -> Any:
    """Reduce a payload to its first few items and essential fields."""
    if isinstance(payload, list):
        items = [_minimal_item(item) for item in payload[:MINIMAL_ITEMS]]
        if len(payload) <= MINIMAL_ITEMS:
            return items
        return {
            "items": items,
            "totalCount": len(payload),
            "format": "minimal",
            "note": f"Showing first {MINIMAL_ITEMS} items with essential fields only",
        }
    if isinstance(payload, dict):
        for key in ("value", "items"):
            if isinstance(payload.get(key), list):
                reduced = dict(payload)
                reduced[key] = [_minimal_item(item) for item in payload[key][:MINIMAL_ITEMS]]
                reduced["format"] = "minimal"
                if len(payload[key]) > MINIMAL_ITEMS:
                    reduced["note"] = f"Showing first {MINIMAL_ITEMS} of {len(payload[key])} items"
                return reduced
    return payload


def trim_collections(payload: Any, depth: int = 0) -> tuple[Any, bool]:
    """Shorten well-known collections, recording what was dropped.

    Returns:
        (trimmed payload, whether anything was removed)
    """
    if isinstance(payload, list):
        if len(payload) <= TRIMMED_LIST_LENGTH:
            return payload, False
        return {
            "items": payload[:TRIMMED_LIST_LENGTH],
            "truncated": True,
            "totalItems": len(payload),
            "hint": "Use pagination (cursor/pageSize) or narrower filters to see the rest.",
        }, True

    if not isinstance(payload, dict) or depth > 2:
        return payload, False

    changed = False
    result: dict[str, Any] = {}
    for key, value in payload.items():
        limit = TRIMMED_COLLECTIONS.get(key)
        if limit is not None and isinstance(value, list) and len(value) > limit:
            result[key] = value[:limit]
            result[f"{key}Truncated"] = {"shown": limit, "total": len(value)}
            changed = True
        elif isinstance(value, dict):
            result[key], nested = trim_collections(value, depth + 1)
            changed = changed or nested
        else:
            result[key] = value
    return result, changed


class ResponseShaper:
    """Shapes tool results into budgeted envelopes.

    Args:
        max_chars: Character budget for envelope text.
        summarizer: ``async (text, max_tokens) -> str``; None disables summaries.
        summary_max_tokens: Token budget handed to the summarizer.
        summarizer_timeout_ms: Deadline for one summarizer call.
    """

    def __init__(
        self,
        max_chars: int = 20 * 1024,
        summarizer: Summarizer | None = None,
        summary_max_tokens: int = 800,
        summarizer_timeout_ms: float = 10000,
    ):
        if max_chars < MIN_BUDGET:
            raise ValueError(f"max_chars must be at least {MIN_BUDGET}")
        self.max_chars = max_chars
        self.summarizer = summarizer
        self.summary_max_tokens = summary_max_tokens
        self.summarizer_timeout_ms = summarizer_timeout_ms

    @classmethod
    def from_settings(cls, settings: SearchwireSettings, summarizer: Summarizer | None = None) -> ResponseShaper:
        return cls(
            max_chars=settings.max_response_chars,
            summarizer=summarizer,
            summary_max_tokens=settings.summary_max_tokens,
            summarizer_timeout_ms=settings.summarizer_timeout_ms,
        )

    async def _summarize(self, text: str) -> str | None:
        if self.summarizer is None:
            return None
        summarizer = self.summarizer
        try:
            summary = await execute_with_deadline(
                lambda: summarizer(text, self.summary_max_tokens),
                self.summarizer_timeout_ms,
                label="summarizer",
            )
        except Exception as e:  # summaries are best-effort; truncation follows
            logger.warning(f"Summarization failed, falling back to truncation: {e}")
            return None
        if not isinstance(summary, str) or not summary.strip():
            logger.warning("Summarizer returned an empty summary, falling back to truncation")
            return None
        return summary.strip()

    def _summary_envelope(self, summary: str, original_size: int, is_error: bool) -> ToolEnvelope:
        text = serialize(
            {
                "summarized": True,
                "originalSize": original_size,
                "summary": summary,
                "message": "Response was too large and has been summarized.",
                "hint": "Use targeted queries, select, filters or pagination for full detail.",
            }
        )
        if len(text) > self.max_chars:
            text = hard_truncate(text, self.max_chars, original_size)
        return ToolEnvelope(text=text, is_error=is_error, summarized=True, original_size=original_size)

    async def shape(
        self,
        payload: Any,
        *,
        structured_content: Any = None,
        mode: ResponseMode | str = ResponseMode.FULL,
        is_error: bool = False,
    ) -> ToolEnvelope:
        """Serialize ``payload`` into an envelope within the budget.

        Args:
            payload: Result or insight to return.
            structured_content: Machine-readable form attached when the
                payload fits and it is a JSON object.
            mode: ``full``, ``summary`` (summarize whenever a summarizer is
                configured) or ``minimal`` (essential fields only).
            is_error: Mark the envelope as a failure.
        """
        mode = ResponseMode(mode)
        if mode is ResponseMode.MINIMAL:
            payload = minimize(payload)

        text = serialize(payload)
        original_size = len(text)

        if mode is ResponseMode.SUMMARY and not is_error:
            summary = await self._summarize(text)
            if summary is not None:
                return self._summary_envelope(summary, original_size, is_error)

        if original_size <= self.max_chars:
            attach = structured_content if mode is ResponseMode.FULL and isinstance(structured_content, dict) else None
            return ToolEnvelope(text=text, structured_content=attach, is_error=is_error)

        logger.info(f"Response of {original_size} characters exceeds the {self.max_chars} character budget")

        if mode is ResponseMode.FULL and not is_error:
            summary = await self._summarize(text)
            if summary is not None:
                return self._summary_envelope(summary, original_size, is_error)

        trimmed, changed = trim_collections(payload)
        if changed:
            trimmed_text = serialize(trimmed)
            if len(trimmed_text) <= self.max_chars:
                return ToolEnvelope(text=trimmed_text, is_error=is_error, truncated=True, original_size=original_size)

        return ToolEnvelope(
            text=hard_truncate(text, self.max_chars, original_size),
            is_error=is_error,
            truncated=True,
            original_size=original_size,
        )
