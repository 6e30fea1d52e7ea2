"""searchwire HTTP MCP server.

Serves the MCP tools over streamable HTTP.

Usage:
    # Start the server
    searchwire-http

    # Or with uvicorn directly
    uvicorn searchwire.server.app:app --port 8430
"""

from .app import create_app

__all__ = ["create_app"]
