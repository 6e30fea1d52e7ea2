# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Exception hierarchy for searchwire.

Every failure raised inside the tool pipeline derives from
``SearchwireException`` so the executor can hand it to the insight
classifier. Exceptions that represent a caller-side problem (bad
arguments, a declined elicitation) set ``retryable = False`` and may
carry their own ``recommendation``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class SearchwireException(Exception):  # noqa: N818
    """Base exception for all searchwire errors."""

    retryable: bool = True
    recommendation: str | None = None
    reason: str | None = None

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(SearchwireException):
    """Tool arguments failed validation.

    Raised when:
    - A required parameter is missing and could not be elicited
    - A parameter has the wrong type or is out of range
    - A parameter model rejects the merged arguments
    """

    retryable = False
    recommendation = "Correct the tool arguments and call again."
    reason = "invalid_params"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        errors: list[dict[str, Any]] | None = None,
    ):
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if errors:
            details["errors"] = errors
        super().__init__(message, details)
        self.field = field
        self.value = value
        self.errors = errors or []


class InvalidCursorError(ValidationException):
    """A pagination cursor was malformed, foreign, or out of range."""

    recommendation = "Restart pagination without a cursor; cursors are only valid for the listing that issued them."
    reason = "invalid_cursor"

    def __init__(self, message: str, cursor: str | None = None):
        super().__init__(message, field="cursor")
        self.cursor = cursor


class ElicitationValidationError(ValidationException):
    """Content returned by an accepted elicitation violated its schema."""

    recommendation = "Answer the request again using values that match the requested field types and ranges."
    reason = "invalid_elicitation_content"


class ElicitationAbandoned(SearchwireException):
    """The user declined, cancelled, or let an elicitation time out."""

    retryable = False
    recommendation = "Call the tool again with every required parameter supplied explicitly."
    reason = "user_declined"

    def __init__(self, state: str, tool_name: str | None = None, step: str | None = None):
        message = f"User {state} the request for additional input"
        if tool_name:
            message += f" to {tool_name}"
        details: dict[str, Any] = {"state": state}
        if tool_name:
            details["tool_name"] = tool_name
        if step:
            details["step"] = step
        super().__init__(message, details)
        self.state = state
        self.tool_name = tool_name
        self.step = step


class ConfigException(SearchwireException):
    """Configuration is missing or invalid.

    Raised when:
    - Required environment variables are missing
    - Service configuration is incomplete
    """

    retryable = False
    reason = "misconfigured"

    def __init__(self, message: str, missing_vars: list[str] | None = None):
        details = {}
        if missing_vars:
            details["missing_vars"] = missing_vars
        super().__init__(message, details)
        self.missing_vars = missing_vars or []
        if self.missing_vars:
            self.recommendation = f"Set {', '.join(self.missing_vars)} and restart the server."


class UpstreamError(SearchwireException):
    """The search service answered with an error or could not be reached.

    ``status_code`` is None for transport failures (DNS, connect, read).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
        request_id: str | None = None,
        error_code: str | None = None,
    ):
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if request_id:
            details["request_id"] = request_id
        if error_code:
            details["error_code"] = error_code
        super().__init__(message, details)
        self.status_code = status_code
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.request_id = request_id
        self.error_code = error_code


class OperationTimeoutError(SearchwireException):
    """An operation did not settle before its deadline."""

    reason = "timeout"

    def __init__(self, label: str, deadline_ms: float):
        super().__init__(
            f"{label} timed out after {deadline_ms:g}ms",
            {"label": label, "deadline_ms": deadline_ms},
        )
        self.label = label
        self.deadline_ms = deadline_ms


class SummarizerError(SearchwireException):
    """The summarization model failed or returned nothing usable."""

    def __init__(self, message: str, status_code: int | None = None):
        details = {"status_code": status_code} if status_code is not None else {}
        super().__init__(message, details)
        self.status_code = status_code
