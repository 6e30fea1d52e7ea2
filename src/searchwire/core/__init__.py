"""Core infrastructure shared by the pipeline, upstream clients and tools."""

from .config import SearchwireSettings, clear_config_cache, get_config
from .exceptions import (
    ConfigException,
    ElicitationAbandoned,
    ElicitationValidationError,
    InvalidCursorError,
    OperationTimeoutError,
    SearchwireException,
    SummarizerError,
    UpstreamError,
    ValidationException,
)
from .logging import configure_logging, get_request_id, request_context, tool_logger
from .response import ToolEnvelope

__all__ = [
    "ConfigException",
    "ElicitationAbandoned",
    "ElicitationValidationError",
    "InvalidCursorError",
    "OperationTimeoutError",
    "SearchwireException",
    "SearchwireSettings",
    "SummarizerError",
    "ToolEnvelope",
    "UpstreamError",
    "ValidationException",
    "clear_config_cache",
    "configure_logging",
    "get_config",
    "get_request_id",
    "request_context",
    "tool_logger",
]
