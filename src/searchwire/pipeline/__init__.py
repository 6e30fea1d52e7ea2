"""The tool invocation pipeline.

deadline -> insights -> shaping -> pagination -> elicitation -> executor,
leaves first. Nothing in here knows about a specific upstream service.
"""

from .deadline import execute_with_deadline
from .executor import ToolCall, ToolCallContext, ToolExecutor, ToolHints, ToolParams, ToolSpec
from .insights import Insight, InsightCode, classify
from .pagination import CursorCodec, PageResult, decode_cursor, encode_cursor, paginate, paginate_remote
from .progress import poll_until_complete
from .shaping import ResponseMode, ResponseShaper

__all__ = [
    "CursorCodec",
    "Insight",
    "InsightCode",
    "PageResult",
    "ResponseMode",
    "ResponseShaper",
    "ToolCall",
    "ToolCallContext",
    "ToolExecutor",
    "ToolHints",
    "ToolParams",
    "ToolSpec",
    "classify",
    "decode_cursor",
    "encode_cursor",
    "execute_with_deadline",
    "paginate",
    "paginate_remote",
    "poll_until_complete",
]
