# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Structured logging for searchwire.

Provides:
- A request id bound to the current tool call (ContextVar, async-safe)
- JSON formatter for log shippers, colored formatter for terminals
- Sanitized tool call logging

stdout belongs to the stdio transport, so every handler writes to stderr
or to a file.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import SearchwireSettings

_request_id: ContextVar[str | None] = ContextVar("searchwire_request_id", default=None)


def get_request_id() -> str | None:
    """Return the request id of the tool call being handled, if any."""
    return _request_id.get()


@contextmanager
def request_context(request_id: str | None = None) -> Generator[str, None, None]:
    """Bind a request id to every log record emitted inside the block.

    Args:
        request_id: The MCP request id. A random id is generated when None.

    Yields:
        The request id being used.
    """
    rid = request_id or uuid.uuid4().hex
    token = _request_id.set(rid)
    try:
        yield rid
    finally:
        _request_id.reset(token)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with the request id when present."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        if record.levelno >= logging.WARNING:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable formatter with optional ANSI colors."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    REQUEST_COLOR = "\033[90m"

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        record = logging.makeLogRecord(record.__dict__)

        request_id = get_request_id()
        if request_id:
            prefix = f"[{request_id[:8]}]"
            if self.use_colors:
                prefix = f"{self.REQUEST_COLOR}{prefix}{self.RESET}"
            record.msg = f"{prefix} {record.msg}"

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            record.levelname = f"{color}{record.levelname}{self.RESET}"

        return super().format(record)


def configure_logging(settings: SearchwireSettings, level: str | int | None = None) -> None:
    """Configure the root logger from settings.

    Args:
        settings: Loaded settings (log_level, log_format, log_file).
        level: Explicit level overriding ``settings.log_level``.
    """
    level = level if level is not None else settings.log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    format_setting = settings.log_format.lower()
    if format_setting == "json":
        json_format = True
    elif format_setting == "text":
        json_format = False
    else:
        json_format = not sys.stderr.isatty()

    formatter: logging.Formatter = JSONFormatter() if json_format else StandardFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    for noisy in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


class ToolCallLogger:
    """Logs tool calls and their outcomes without leaking secrets."""

    SENSITIVE_PARAMS = {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "api-key",
        "credential",
        "connectionstring",
    }
    MAX_STRING = 500

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("searchwire.tools")

    def log_call(self, tool_name: str, arguments: dict[str, Any], level: int = logging.DEBUG) -> None:
        self.logger.log(
            level,
            f"Tool call: {tool_name}",
            extra={"extra_data": {"tool": tool_name, "arguments": self.sanitize(arguments)}},
        )

    def log_result(
        self,
        tool_name: str,
        success: bool,
        duration_ms: float | None = None,
        code: str | None = None,
        level: int = logging.DEBUG,
    ) -> None:
        """Log the outcome of a tool call.

        Args:
            tool_name: Name of the tool
            success: Whether the call succeeded
            duration_ms: Wall time of the whole call
            code: Insight code for failures
            level: Log level
        """
        status = "success" if success else f"failure ({code})" if code else "failure"
        msg = f"Tool result: {tool_name} -> {status}"
        if duration_ms is not None:
            msg += f" ({duration_ms:.1f}ms)"
        self.logger.log(
            level,
            msg,
            extra={
                "extra_data": {
                    "tool": tool_name,
                    "success": success,
                    "code": code,
                    "duration_ms": duration_ms,
                }
            },
        )

    def sanitize(self, data: Any) -> Any:
        """Recursively redact sensitive keys and clip long strings."""
        if isinstance(data, dict):
            result = {}
            for key, value in data.items():
                lowered = str(key).lower()
                if any(s in lowered for s in self.SENSITIVE_PARAMS):
                    result[key] = "[REDACTED]"
                else:
                    result[key] = self.sanitize(value)
            return result
        if isinstance(data, list):
            return [self.sanitize(item) for item in data]
        if isinstance(data, str) and len(data) > self.MAX_STRING:
            return data[: self.MAX_STRING] + "..."
        return data


tool_logger = ToolCallLogger()
