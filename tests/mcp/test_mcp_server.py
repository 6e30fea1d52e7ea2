"""Tests for searchwire.mcp_server module.

Tests cover:
1. handle_call_tool - session adapters for elicitation and progress
2. SessionElicitationChannel / SessionProgressReporter
3. read_resource_data - searchwire:// URIs
4. create_server - protocol handlers registered on the low-level server
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from mcp import types
from mcp.shared.exceptions import McpError
from pydantic import AnyUrl

from searchwire.mcp_server import (
    SERVICE_STATS_URI,
    SessionElicitationChannel,
    SessionProgressReporter,
    create_server,
    handle_call_tool,
    read_resource_data,
)

DOCS_INDEX = {"name": "docs", "fields": [{"name": "id", "type": "Edm.String", "key": True}]}


@pytest.fixture
def session():
    """ServerSession double that supports elicitation."""
    session = AsyncMock()
    session.check_client_capability = Mock(return_value=True)
    return session


def _ctx(session, progress_token=None, request_id=7):
    meta = types.RequestParams.Meta(progressToken=progress_token) if progress_token is not None else None
    return SimpleNamespace(session=session, request_id=request_id, meta=meta)


def _status(state: str, processed: int) -> dict:
    return {"lastResult": {"status": state, "itemsProcessed": processed, "itemsFailed": 0}}


# ---------------------------------------------------------------------------
# Tests: handle_call_tool
# ---------------------------------------------------------------------------


class TestHandleCallTool:
    """Tests for handle_call_tool."""

    async def test_without_request_context(self, executor, search_service):
        """Calls outside a request run without elicitation or progress."""
        search_service.add("GET", "/indexes/docs", json_body=DOCS_INDEX)
        result = await handle_call_tool(executor, None, "get_index", {"indexName": "docs"})
        assert isinstance(result, types.CallToolResult)
        assert result.isError is False
        assert json.loads(result.content[0].text)["name"] == "docs"
        assert result.structuredContent["name"] == "docs"

    async def test_error_result(self, executor, search_service):
        """Classified failures set isError and omit structured content."""
        result = await handle_call_tool(executor, None, "get_index", {"indexName": "missing"})
        assert result.isError is True
        assert result.structuredContent is None
        assert json.loads(result.content[0].text)["code"] == "NOT_FOUND"

    async def test_progress_notifications(self, executor, search_service, session):
        """A progress token routes notifications to the session."""
        search_service.add("POST", "/indexers/nightly/run", status=202)
        search_service.add("GET", "/indexers/nightly/status", json_body=_status("inProgress", 4))
        search_service.add("GET", "/indexers/nightly/status", json_body=_status("success", 8))

        result = await handle_call_tool(
            executor, _ctx(session, progress_token="tok-1"), "run_indexer_with_progress", {"indexerName": "nightly"}
        )

        assert result.isError is False
        calls = session.send_progress_notification.await_args_list
        assert [c.args for c in calls] == [("tok-1", 90.0), ("tok-1", 100.0)]
        assert calls[-1].kwargs == {
            "total": 100.0,
            "message": "Indexer nightly: finished with status success",
            "related_request_id": 7,
        }

    async def test_no_progress_token(self, executor, search_service, session):
        """Without a token no notifications are sent."""
        search_service.add("POST", "/indexers/nightly/run", status=202)
        search_service.add("GET", "/indexers/nightly/status", json_body=_status("success", 1))
        await handle_call_tool(executor, _ctx(session), "run_indexer_with_progress", {"indexerName": "nightly"})
        session.send_progress_notification.assert_not_awaited()

    async def test_elicitation_through_session(self, executor, search_service, session):
        """Missing arguments are asked for over the session."""
        search_service.add("GET", "/indexes/docs/docs/7", json_body={"id": "7"})
        session.elicit.return_value = types.ElicitResult(action="accept", content={"key": "7"})

        result = await handle_call_tool(executor, _ctx(session), "get_document", {"indexName": "docs"})

        assert json.loads(result.content[0].text) == {"id": "7"}
        kwargs = session.elicit.await_args.kwargs
        assert "key" in kwargs["requestedSchema"]["properties"]
        assert kwargs["related_request_id"] == 7


# ---------------------------------------------------------------------------
# Tests: session adapters
# ---------------------------------------------------------------------------


class TestSessionAdapters:
    """Tests for SessionElicitationChannel and SessionProgressReporter."""

    def test_capability_check(self, session):
        """The elicitation capability is asked of the session."""
        channel = SessionElicitationChannel(session)
        assert channel.supports_elicitation() is True
        capabilities = session.check_client_capability.call_args.args[0]
        assert capabilities.elicitation is not None

    async def test_elicit_returns_action_and_content(self, session):
        """The client's answer is unpacked."""
        session.elicit.return_value = types.ElicitResult(action="decline")
        channel = SessionElicitationChannel(session, request_id="r-1")
        assert await channel.elicit("Pick one", {"type": "object", "properties": {}}) == ("decline", None)

    @pytest.mark.parametrize(
        "error",
        [ConnectionError("closed"), McpError(types.ErrorData(code=-32603, message="stream closed"))],
    )
    async def test_progress_failures_are_dropped(self, session, error):
        """A failed notification does not fail the tool call."""
        session.send_progress_notification.side_effect = error
        reporter = SessionProgressReporter(session, "tok")
        await reporter.report(50.0, 100.0, "halfway")
        session.send_progress_notification.assert_awaited_once()


# ---------------------------------------------------------------------------
# Tests: read_resource_data
# ---------------------------------------------------------------------------


class TestReadResourceData:
    """Tests for resource reads."""

    async def test_service_stats(self, executor, search_service):
        """servicestats returns the service statistics."""
        search_service.add("GET", "/servicestats", json_body={"counters": {}})
        assert await read_resource_data(executor, SERVICE_STATS_URI) == {"counters": {}}

    async def test_index(self, executor, search_service):
        """indexes/{name} returns the definition."""
        search_service.add("GET", "/indexes/docs", json_body=DOCS_INDEX)
        assert await read_resource_data(executor, "searchwire://indexes/docs/") == DOCS_INDEX

    async def test_upstream_failure(self, executor):
        """Failures come back as an insight, not an exception."""
        data = await read_resource_data(executor, "searchwire://indexes/missing")
        assert data["code"] == "NOT_FOUND"
        assert data["extras"]["resource"] == "searchwire://indexes/missing"

    @pytest.mark.parametrize("uri", ["searchwire://indexers", "searchwire://indexes/", "searchwire://indexes/a/b"])
    async def test_unknown(self, executor, search_service, uri):
        """Unknown URIs are reported without calling the service."""
        data = await read_resource_data(executor, uri)
        assert data["error"].startswith("Unknown resource")
        assert search_service.requests == []


# ---------------------------------------------------------------------------
# Tests: create_server
# ---------------------------------------------------------------------------


class TestCreateServer:
    """Tests for the protocol handlers."""

    async def test_list_tools(self, executor, settings):
        """Every registered tool is listed."""
        server = create_server(executor, settings)
        result = await server.request_handlers[types.ListToolsRequest](types.ListToolsRequest(method="tools/list"))
        names = {tool.name for tool in result.root.tools}
        assert {"search_documents", "run_indexer_with_progress", "debug_elicitation"} <= names

    async def test_call_tool(self, executor, settings, search_service):
        """Tool calls are routed through the executor."""
        search_service.add("GET", "/indexes/docs/docs/$count", text="12")
        server = create_server(executor, settings)
        request = types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="count_documents", arguments={"indexName": "docs"}),
        )
        result = await server.request_handlers[types.CallToolRequest](request)
        assert json.loads(result.root.content[0].text) == {"indexName": "docs", "count": 12}

    async def test_read_resource(self, executor, settings, search_service):
        """Resources are served as JSON."""
        search_service.add("GET", "/servicestats", json_body={"counters": {"indexesCount": {"usage": 1}}})
        server = create_server(executor, settings)
        request = types.ReadResourceRequest(
            method="resources/read", params=types.ReadResourceRequestParams(uri=AnyUrl(SERVICE_STATS_URI))
        )
        result = await server.request_handlers[types.ReadResourceRequest](request)
        contents = result.root.contents[0]
        assert contents.mimeType == "application/json"
        assert json.loads(contents.text) == {"counters": {"indexesCount": {"usage": 1}}}
