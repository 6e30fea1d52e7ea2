"""Tests for searchwire.upstream.search_client module."""

from __future__ import annotations

import httpx
import pytest

from searchwire.core.exceptions import UpstreamError
from searchwire.upstream.search_client import SearchServiceClient

# ============================================================================
# Request construction
# ============================================================================


class TestRequests:
    """Tests for how requests are built."""

    async def test_auth_and_api_version(self, search_client, search_service):
        """Every request carries the key and API version."""
        search_service.add("GET", "/indexes", json_body={"value": [{"name": "docs"}]})
        assert await search_client.list_indexes() == [{"name": "docs"}]
        request = search_service.requests[0]
        assert request.headers["api-key"] == "test-admin-key"
        assert request.url.params["api-version"] == "2025-08-01-preview"

    async def test_select(self, search_client, search_service):
        """select becomes $select."""
        search_service.add("GET", "/indexes", json_body={"value": []})
        await search_client.list_indexes(select="name")
        assert search_service.requests[0].url.params["$select"] == "name"

    async def test_names_are_escaped(self, search_client, search_service):
        """Document keys are path-escaped."""
        search_service.add("GET", "/indexes/docs/docs/a/b", json_body={"id": "a/b"})
        assert await search_client.get_document("docs", "a/b") == {"id": "a/b"}
        assert search_service.requests[0].url.raw_path.startswith(b"/indexes/docs/docs/a%2Fb")

    async def test_update_with_downtime(self, search_client, search_service):
        """allowIndexDowntime is sent only when requested."""
        search_service.add("PUT", "/indexes/docs", json_body={"name": "docs"})
        await search_client.create_or_update_index("docs", {"name": "docs"}, allow_index_downtime=True)
        await search_client.create_or_update_index("docs", {"name": "docs"})
        first, second = search_service.calls("PUT", "/indexes/docs")
        assert first.url.params["allowIndexDowntime"] == "true"
        assert "allowIndexDowntime" not in second.url.params
        assert search_service.body(first) == {"name": "docs"}

    async def test_index_documents_body(self, search_client, search_service):
        """Batches are wrapped in a value array."""
        search_service.add("POST", "/indexes/docs/docs/index", json_body={"value": []})
        await search_client.index_documents("docs", [{"@search.action": "upload", "id": "1"}])
        assert search_service.body(search_service.requests[0]) == {"value": [{"@search.action": "upload", "id": "1"}]}

    def test_from_settings(self, settings):
        """Settings supply endpoint, key and version."""
        client = SearchServiceClient.from_settings(settings)
        assert client.endpoint == "https://test.search.windows.net"
        assert client.api_version == settings.search_api_version


# ============================================================================
# Responses
# ============================================================================


class TestResponses:
    """Tests for response handling."""

    async def test_no_content(self, search_client, search_service):
        """204 and 202 responses return None."""
        search_service.add("DELETE", "/indexes/docs", status=204)
        search_service.add("POST", "/indexers/nightly/run", status=202)
        assert await search_client.delete_index("docs") is None
        assert await search_client.run_indexer("nightly") is None

    async def test_count_documents(self, search_client, search_service):
        """$count is plain text, possibly with a byte order mark."""
        search_service.add("GET", "/indexes/docs/docs/$count", text="\ufeff1234")
        assert await search_client.count_documents("docs") == 1234

    async def test_service_statistics(self, search_client, search_service):
        """Service statistics are returned as JSON."""
        search_service.add("GET", "/servicestats", json_body={"counters": {}, "limits": {}})
        assert await search_client.get_service_statistics() == {"counters": {}, "limits": {}}

    async def test_list_empty_body(self, search_client, search_service):
        """Listing tolerates a missing value array."""
        search_service.add("GET", "/datasources", json_body={})
        assert await search_client.list_data_sources() == []


# ============================================================================
# Errors
# ============================================================================


class TestErrors:
    """Tests for error mapping."""

    async def test_service_error(self, search_client, search_service):
        """The service's error message, code and headers are kept."""
        search_service.add(
            "GET",
            "/indexes/missing",
            status=404,
            json_body={"error": {"code": "ResourceNotFound", "message": "No index with the name 'missing'"}},
            headers={"request-id": "abc-123"},
        )
        with pytest.raises(UpstreamError) as exc_info:
            await search_client.get_index("missing")
        exc = exc_info.value
        assert exc.status_code == 404
        assert exc.error_code == "ResourceNotFound"
        assert exc.request_id == "abc-123"
        assert exc.message == "Search service error (404): No index with the name 'missing'"

    async def test_throttled_headers(self, search_client, search_service):
        """Retry hints survive into the error."""
        search_service.add_error("GET", "/indexers", 429, "Too many requests", headers={"Retry-After": "3"})
        with pytest.raises(UpstreamError) as exc_info:
            await search_client.list_indexers()
        assert exc_info.value.headers["retry-after"] == "3"

    async def test_non_json_error(self, search_client, search_service):
        """Plain-text errors use the body as the message."""
        search_service.add("GET", "/servicestats", status=503, text="Service Unavailable")
        with pytest.raises(UpstreamError, match=r"\(503\): Service Unavailable"):
            await search_client.get_service_statistics()

    async def test_transport_error(self):
        """Connection failures have no status code."""

        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = SearchServiceClient("https://test.search.windows.net", "k", transport=httpx.MockTransport(refuse))
        async with client:
            with pytest.raises(UpstreamError, match="Cannot reach search service") as exc_info:
                await client.list_indexes()
        assert exc_info.value.status_code is None

    async def test_timeout_error(self):
        """Read timeouts are reported as such."""

        def stall(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = SearchServiceClient("https://test.search.windows.net", "k", transport=httpx.MockTransport(stall))
        async with client:
            with pytest.raises(UpstreamError, match="timed out: GET /indexers"):
                await client.list_indexers()
