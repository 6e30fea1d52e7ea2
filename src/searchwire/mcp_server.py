# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""MCP server for Azure AI Search.

Every tool call runs through the ``ToolExecutor`` pipeline (validation,
elicitation, deadline, error classification, response shaping).

Tools:
- Indexes:   list_indexes, get_index, get_index_stats, create_index,
             update_index, delete_index
- Documents: search_documents, get_document, count_documents,
             upload_documents
- Indexers:  list_indexers, get_indexer, get_indexer_status, run_indexer,
             reset_indexer, run_indexer_with_progress, list_data_sources
- Service:   get_service_statistics, debug_elicitation

Resources:
- searchwire://servicestats     - Service statistics
- searchwire://indexes/{name}   - Index definition
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import unquote

from mcp import types
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.session import ServerSession
from mcp.server.stdio import stdio_server
from mcp.shared.context import RequestContext
from mcp.shared.exceptions import McpError
from pydantic import AnyUrl

from . import __version__
from .core.config import SearchwireSettings, get_config
from .core.exceptions import UpstreamError
from .core.health import cli_health_check, startup_checks
from .core.logging import configure_logging
from .pipeline.executor import ToolExecutor
from .pipeline.insights import classify
from .pipeline.shaping import ResponseShaper
from .tools import build_tools
from .upstream import SearchServiceClient, build_summarizer

logger = logging.getLogger(__name__)

SERVICE_STATS_URI = "searchwire://servicestats"
INDEX_URI_PREFIX = "searchwire://indexes/"

INSTRUCTIONS = (
    "Tools for an Azure AI Search service. Listing tools are paginated: pass nextCursor back "
    "as cursor. Failed calls return an insight with a code, a recommendation and whether a "
    "retry can help."
)


# ============================================================================
# Session adapters
# ============================================================================


class SessionElicitationChannel:
    """Elicitation over the MCP session that carried the tool call."""

    def __init__(self, session: ServerSession, request_id: types.RequestId | None = None):
        self.session = session
        self.request_id = request_id

    def supports_elicitation(self) -> bool:
        return self.session.check_client_capability(
            types.ClientCapabilities(elicitation=types.ElicitationCapability())
        )

    async def elicit(self, message: str, requested_schema: dict[str, Any]) -> tuple[str, dict[str, Any] | None]:
        result = await self.session.elicit(
            message=message,
            requestedSchema=requested_schema,
            related_request_id=self.request_id,
        )
        return result.action, result.content


class SessionProgressReporter:
    """Sends progress notifications tied to the caller's progress token."""

    def __init__(
        self,
        session: ServerSession,
        progress_token: types.ProgressToken,
        request_id: types.RequestId | None = None,
    ):
        self.session = session
        self.progress_token = progress_token
        self.request_id = request_id

    async def report(self, progress: float, total: float | None = None, message: str | None = None) -> None:
        try:
            await self.session.send_progress_notification(
                self.progress_token,
                progress,
                total=total,
                message=message,
                related_request_id=self.request_id,
            )
        except (McpError, ConnectionError) as e:
            logger.warning(f"Progress notification dropped: {e}")


# ============================================================================
# Protocol handlers
# ============================================================================


async def handle_call_tool(
    executor: ToolExecutor,
    ctx: RequestContext[ServerSession, Any, Any] | None,
    name: str,
    arguments: dict[str, Any] | None,
) -> types.CallToolResult:
    """Run one tool call for the session in ``ctx`` (None outside a request)."""
    channel = None
    reporter = None
    if ctx is not None:
        channel = SessionElicitationChannel(ctx.session, ctx.request_id)
        token = ctx.meta.progressToken if ctx.meta is not None else None
        if token is not None:
            reporter = SessionProgressReporter(ctx.session, token, ctx.request_id)

    envelope = await executor.execute(name, arguments, elicitation=channel, progress=reporter)
    return envelope.to_call_tool_result()


async def read_resource_data(executor: ToolExecutor, uri: str) -> dict[str, Any]:
    """Data behind a resource URI; upstream failures come back as insights."""
    uri = uri.rstrip("/")
    try:
        if uri == SERVICE_STATS_URI:
            return await executor.client.get_service_statistics()
        if uri.startswith(INDEX_URI_PREFIX):
            name = unquote(uri[len(INDEX_URI_PREFIX) :])
            if name and "/" not in name:
                return await executor.client.get_index(name)
    except UpstreamError as e:
        logger.warning(f"Resource {uri} failed: {e.message}")
        return classify(e, {"resource": uri}).to_dict()
    return {"error": f"Unknown resource: {uri}"}


def create_server(executor: ToolExecutor, settings: SearchwireSettings) -> Server:
    """Build the low-level MCP server around an executor."""
    server: Server = Server(settings.server_name, version=__version__, instructions=INSTRUCTIONS)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        """List all available tools."""
        return executor.list_tools()

    # Arguments are validated by the executor so that elicitation can fill gaps.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        """Route tool calls through the executor."""
        try:
            ctx = server.request_context
        except LookupError:
            ctx = None
        return await handle_call_tool(executor, ctx, name, arguments)

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        """List available resources."""
        return [
            types.Resource(
                uri=AnyUrl(SERVICE_STATS_URI),
                name="Service Statistics",
                description="Counters and quotas of the search service",
                mimeType="application/json",
            ),
        ]

    @server.list_resource_templates()
    async def list_resource_templates() -> list[types.ResourceTemplate]:
        return [
            types.ResourceTemplate(
                uriTemplate=INDEX_URI_PREFIX + "{name}",
                name="Index Definition",
                description="Full definition of one index",
                mimeType="application/json",
            ),
        ]

    @server.read_resource()
    async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        """Read a resource by URI."""
        data = await read_resource_data(executor, str(uri))
        return [ReadResourceContents(content=json.dumps(data, indent=2, default=str), mime_type="application/json")]

    return server


# ============================================================================
# Wiring
# ============================================================================


@asynccontextmanager
async def open_executor(settings: SearchwireSettings) -> AsyncIterator[ToolExecutor]:
    """Executor with its upstream clients; the clients are closed on exit."""
    summarizer = build_summarizer(settings)
    client = SearchServiceClient.from_settings(settings)
    executor = ToolExecutor(
        build_tools(),
        client,
        settings,
        shaper=ResponseShaper.from_settings(settings, summarizer=summarizer),
    )
    try:
        yield executor
    finally:
        await client.aclose()
        if summarizer is not None:
            await summarizer.aclose()


# ============================================================================
# Server Entry Point
# ============================================================================


def run() -> None:
    """Run the MCP server over stdio."""
    parser = argparse.ArgumentParser(description="searchwire MCP server (stdio)")
    parser.add_argument("--health-check", action="store_true", help="Run health check and exit")
    parser.add_argument("--skip-health-check", action="store_true", help="Skip startup health checks")
    args = parser.parse_args()

    settings = get_config()
    configure_logging(settings)

    if args.health_check:
        sys.exit(cli_health_check(settings))

    logger.info(f"searchwire {__version__} MCP server starting (stdio)...")

    async def main() -> None:
        if not args.skip_health_check:
            await startup_checks(settings, fail_fast=True)
        async with open_executor(settings) as executor:
            server = create_server(executor, settings)
            async with stdio_server() as (read_stream, write_stream):
                await server.run(read_stream, write_stream, server.create_initialization_options())

    asyncio.run(main())


if __name__ == "__main__":
    run()
