# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Async client for the Azure AI Search REST API.

A thin wrapper: each method is one REST call. Non-2xx responses raise
``UpstreamError`` carrying the status, headers and service error message
so the insight classifier can work with them; transport failures raise
``UpstreamError`` without a status.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from ..core.exceptions import UpstreamError

if TYPE_CHECKING:
    from ..core.config import SearchwireSettings

logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    return quote(value, safe="")


class SearchServiceClient:
    """Azure AI Search REST client.

    Args:
        endpoint: Service URL, e.g. https://<service>.search.windows.net
        api_key: Admin or query key sent as the ``api-key`` header.
        api_version: REST API version.
        timeout: Per-request HTTP timeout in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        api_version: str = "2025-08-01-preview",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.api_version = api_version
        self._http = httpx.AsyncClient(
            base_url=self.endpoint,
            headers={"api-key": api_key, "Accept": "application/json"},
            params={"api-version": api_version},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: SearchwireSettings, transport: httpx.AsyncBaseTransport | None = None
    ) -> SearchServiceClient:
        return cls(
            endpoint=settings.search_endpoint,
            api_key=settings.search_api_key,
            api_version=settings.search_api_version,
            timeout=settings.default_timeout_ms / 1000,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> SearchServiceClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        message = response.text or response.reason_phrase
        error_code = None
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError):
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error_code = body["error"].get("code") or None
            message = body["error"].get("message") or message
        raise UpstreamError(
            f"Search service error ({response.status_code}): {message}",
            status_code=response.status_code,
            headers=dict(response.headers),
            request_id=response.headers.get("request-id"),
            error_code=error_code,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            response = await self._http.request(method, path, params=params, json=json_body, headers=headers)
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Search service request timed out: {method} {path}") from e
        except httpx.TransportError as e:
            raise UpstreamError(f"Cannot reach search service at {self.endpoint}: {e}") from e

        logger.debug(f"{method} {path} -> {response.status_code}")
        self._raise_for_status(response)
        if response.status_code in (202, 204) or not response.content:
            return None
        if "application/json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    async def list_indexes(self, select: str | None = None) -> list[dict[str, Any]]:
        params = {"$select": select} if select else None
        result = await self._request("GET", "/indexes", params=params)
        return (result or {}).get("value", [])

    async def get_index(self, index_name: str) -> dict[str, Any]:
        return await self._request("GET", f"/indexes/{_segment(index_name)}")

    async def get_index_stats(self, index_name: str) -> dict[str, Any]:
        return await self._request("GET", f"/indexes/{_segment(index_name)}/stats")

    async def create_or_update_index(
        self, index_name: str, definition: dict[str, Any], allow_index_downtime: bool = False
    ) -> dict[str, Any] | None:
        params = {"allowIndexDowntime": "true"} if allow_index_downtime else None
        return await self._request("PUT", f"/indexes/{_segment(index_name)}", params=params, json_body=definition)

    async def create_index(self, definition: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/indexes", json_body=definition)

    async def delete_index(self, index_name: str) -> None:
        await self._request("DELETE", f"/indexes/{_segment(index_name)}")

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def search_documents(self, index_name: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"/indexes/{_segment(index_name)}/docs/search", json_body=body)

    async def get_document(self, index_name: str, key: str, select: list[str] | None = None) -> dict[str, Any]:
        params = {"$select": ",".join(select)} if select else None
        return await self._request(
            "GET", f"/indexes/{_segment(index_name)}/docs/{_segment(key)}", params=params
        )

    async def count_documents(self, index_name: str) -> int:
        result = await self._request("GET", f"/indexes/{_segment(index_name)}/docs/$count")
        return int(str(result).strip().lstrip("\ufeff"))

    async def index_documents(self, index_name: str, actions: list[dict[str, Any]]) -> dict[str, Any]:
        return await self._request(
            "POST", f"/indexes/{_segment(index_name)}/docs/index", json_body={"value": actions}
        )

    # ------------------------------------------------------------------
    # Indexers and data sources
    # ------------------------------------------------------------------

    async def list_indexers(self) -> list[dict[str, Any]]:
        result = await self._request("GET", "/indexers")
        return (result or {}).get("value", [])

    async def get_indexer(self, indexer_name: str) -> dict[str, Any]:
        return await self._request("GET", f"/indexers/{_segment(indexer_name)}")

    async def get_indexer_status(self, indexer_name: str) -> dict[str, Any]:
        return await self._request("GET", f"/indexers/{_segment(indexer_name)}/status")

    async def run_indexer(self, indexer_name: str) -> None:
        await self._request("POST", f"/indexers/{_segment(indexer_name)}/run")

    async def reset_indexer(self, indexer_name: str) -> None:
        await self._request("POST", f"/indexers/{_segment(indexer_name)}/reset")

    async def list_data_sources(self) -> list[dict[str, Any]]:
        result = await self._request("GET", "/datasources")
        return (result or {}).get("value", [])

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------

    async def get_service_statistics(self) -> dict[str, Any]:
        return await self._request("GET", "/servicestats")
