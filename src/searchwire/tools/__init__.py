"""Search service tools exposed over MCP."""

from .registry import build_tools

__all__ = ["build_tools"]
