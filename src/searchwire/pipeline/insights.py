# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Insight classification for failed tool calls.

A raw failure (exception or mapping with an optional status code, message
and headers) is reduced to an ``Insight``: one code from a closed set, a
remediation hint shown verbatim to the caller, and an optional retry
delay.

Classification is an ordered rule table evaluated first-match-wins. To
change precedence, reorder ``INSIGHT_RULES``; do not add conditionals to
``classify``.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

import httpx


class InsightCode(str, Enum):
    """Closed taxonomy of outcomes surfaced to callers."""

    OK = "OK"
    AUTH = "AUTH"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMIT = "RATE_LIMIT"
    DOWNTIME_REQUIRED = "DOWNTIME_REQUIRED"
    VECTOR_DIM_MISMATCH = "VECTOR_DIM_MISMATCH"
    BAD_FILTER = "BAD_FILTER"
    COOLDOWN = "COOLDOWN"
    NETWORK = "NETWORK"


@dataclass(frozen=True)
class Insight:
    """Classified outcome of a call. Immutable once built."""

    ok: bool
    code: InsightCode
    message: str
    recommendation: str | None = None
    retry_after_seconds: int | None = None
    retryable: bool = False
    extras: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extras", MappingProxyType(dict(self.extras)))

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "ok": self.ok,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.recommendation:
            d["recommendation"] = self.recommendation
        if self.retry_after_seconds is not None:
            d["retryAfterSeconds"] = self.retry_after_seconds
        if self.extras:
            d["extras"] = dict(self.extras)
        return d


@dataclass(frozen=True)
class Failure:
    """A raw failure normalized to the fields the rules look at."""

    message: str
    status: int | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    retry_after: Any = None
    error_code: str | None = None


@dataclass(frozen=True)
class InsightRule:
    code: InsightCode
    matches: Callable[[Failure], bool]
    recommendation: str
    retryable: bool


def _status_in(*statuses: int) -> Callable[[Failure], bool]:
    return lambda failure: failure.status in statuses


def _message_matches(*patterns: str, require_all: bool = False) -> Callable[[Failure], bool]:
    compiled = [re.compile(p, re.IGNORECASE | re.DOTALL) for p in patterns]
    combine = all if require_all else any
    return lambda failure: combine(p.search(failure.message) for p in compiled)


INSIGHT_RULES: tuple[InsightRule, ...] = (
    InsightRule(
        InsightCode.NOT_FOUND,
        _status_in(404),
        "List resources first and correct the name; the resource likely does not exist.",
        retryable=False,
    ),
    InsightRule(
        InsightCode.DOWNTIME_REQUIRED,
        _message_matches(r"allowIndexDowntime", r"(analyzer|tokenizer|vectorizer).+cannot"),
        "Retry the index update with allowIndexDowntime=true, or plan a rebuild/alias swap for breaking changes.",
        retryable=False,
    ),
    InsightRule(
        InsightCode.RATE_LIMIT,
        _status_in(429, 503),
        "Back off with jitter; if creating objects, you may be at tier/object limits or low on storage. "
        "Reduce request rate, delete unused objects/documents, or upgrade the SKU.",
        retryable=True,
    ),
    InsightRule(
        InsightCode.AUTH,
        _status_in(401, 403),
        "Use an ADMIN key for management operations (indexes, indexers, data sources) or configure Entra RBAC. "
        "Verify network/Private Link access and the token audience.",
        retryable=False,
    ),
    InsightRule(
        InsightCode.CONFLICT,
        _status_in(409),
        "Serialize management operations and retry with exponential backoff.",
        retryable=True,
    ),
    InsightRule(
        InsightCode.VECTOR_DIM_MISMATCH,
        _message_matches(r"dimension", r"vector", require_all=True),
        "Ensure the field's vectorSearchDimensions equals the embedding length; regenerate embeddings or fix the schema.",
        retryable=False,
    ),
    InsightRule(
        InsightCode.BAD_FILTER,
        _message_matches(r"Invalid expression", r"\$filter"),
        "Fix the OData syntax: use parentheses, any/all for collections, and search.in(...) for set filters.",
        retryable=False,
    ),
    InsightRule(
        InsightCode.COOLDOWN,
        _message_matches(r"Indexer invocation is once every 180 seconds"),
        "Wait about 180 seconds between indexer runs on the Free tier, or upgrade to a paid tier.",
        retryable=True,
    ),
)

DEFAULT_RULE = InsightRule(
    InsightCode.NETWORK,
    lambda failure: True,
    "Check connectivity, the endpoint, or service availability.",
    retryable=True,
)

_RETRY_AFTER_HEADERS = ("retry-after-ms", "x-ms-retry-after-ms", "retry-after")


def _coerce_status(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def normalize_failure(raw_error: Any) -> Failure:
    """Extract status, message and headers from any supported failure shape.

    Accepts ``httpx.HTTPStatusError``, exceptions exposing ``status_code``
    or ``status`` (optionally ``headers``), mappings such as
    ``{"status": 429, "message": "...", "retryAfter": 3}``, and anything
    else (message only).
    """
    if isinstance(raw_error, Failure):
        return raw_error

    if isinstance(raw_error, Mapping):
        status = _coerce_status(raw_error.get("status", raw_error.get("status_code", raw_error.get("statusCode"))))
        headers = raw_error.get("headers") or {}
        return Failure(
            message=str(raw_error.get("message", "") or ""),
            status=status,
            headers={str(k).lower(): str(v) for k, v in dict(headers).items()},
            retry_after=raw_error.get("retryAfter", raw_error.get("retry_after")),
            error_code=raw_error.get("code"),
        )

    if isinstance(raw_error, httpx.HTTPStatusError):
        response = raw_error.response
        return Failure(
            message=response.text or str(raw_error),
            status=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
        )

    status = _coerce_status(getattr(raw_error, "status_code", None))
    if status is None:
        status = _coerce_status(getattr(raw_error, "status", None))
    headers = getattr(raw_error, "headers", None) or {}
    message = getattr(raw_error, "message", None) or str(raw_error) or raw_error.__class__.__name__
    return Failure(
        message=str(message),
        status=status,
        headers={str(k).lower(): str(v) for k, v in dict(headers).items()},
        retry_after=getattr(raw_error, "retry_after", None),
        error_code=getattr(raw_error, "error_code", None),
    )


def _parse_delay(value: Any, in_ms: bool = False, now: datetime | None = None) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    else:
        text = str(value).strip().lower()
        if not text:
            return None
        if text.endswith("ms"):
            in_ms = True
            text = text[:-2].strip()
        try:
            number = float(text)
        except ValueError:
            # HTTP-date form
            try:
                when = parsedate_to_datetime(str(value))
            except (TypeError, ValueError):
                return None
            if when.tzinfo is None:
                when = when.replace(tzinfo=UTC)
            delta = (when - (now or datetime.now(UTC))).total_seconds()
            return max(0, math.ceil(delta))
    if not math.isfinite(number) or number < 0:
        return None
    return math.ceil(number / 1000) if in_ms else math.ceil(number)


def parse_retry_after(failure: Failure, now: datetime | None = None) -> int | None:
    """Retry delay in whole seconds, rounded up, or None when not advertised."""
    if failure.retry_after is not None:
        return _parse_delay(failure.retry_after, now=now)
    for header in _RETRY_AFTER_HEADERS:
        value = failure.headers.get(header)
        if value is not None:
            return _parse_delay(value, in_ms=header.endswith("-ms"), now=now)
    return None


def classify(raw_error: Any, context: Mapping[str, Any] | None = None) -> Insight:
    """Map a raw failure to an Insight using the first matching rule.

    Args:
        raw_error: Exception or mapping describing the failure.
        context: Extra facts (tool name, index name) copied into ``extras``.

    Returns:
        A non-ok Insight. Never raises.
    """
    failure = normalize_failure(raw_error)
    rule = next((r for r in INSIGHT_RULES if r.matches(failure)), DEFAULT_RULE)

    extras: dict[str, Any] = {}
    if failure.status is not None:
        extras["status"] = failure.status
    if failure.error_code:
        extras["errorCode"] = failure.error_code
    if context:
        extras.update(context)

    retryable = rule.retryable
    recommendation = rule.recommendation
    # Caller-side failures (bad input, declined elicitation) know better
    # than the table whether a retry can help.
    if getattr(raw_error, "retryable", True) is False:
        retryable = False
        recommendation = getattr(raw_error, "recommendation", None) or recommendation
    reason = getattr(raw_error, "reason", None)
    if reason:
        extras["reason"] = reason
    details = getattr(raw_error, "details", None)
    if details and not isinstance(raw_error, Mapping):
        extras.setdefault("details", dict(details))

    return Insight(
        ok=False,
        code=rule.code,
        message=failure.message,
        recommendation=recommendation,
        retry_after_seconds=parse_retry_after(failure) if rule.code is InsightCode.RATE_LIMIT else None,
        retryable=retryable,
        extras=extras,
    )


def success(message: str = "Success", **extras: Any) -> Insight:
    """Insight for a successful call."""
    return Insight(ok=True, code=InsightCode.OK, message=message, retryable=False, extras=extras)
