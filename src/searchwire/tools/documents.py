# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Document tools: search, lookup, count and batch indexing."""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import Field, field_validator

from ..core.exceptions import ValidationException
from ..pipeline.executor import ToolCall, ToolHints, ToolParams, ToolSpec
from ..pipeline.pagination import paginate_remote
from ..pipeline.shaping import ResponseMode
from .common import MAX_DOCUMENTS_PER_BATCH, MAX_SEARCH_RESULTS, IndexName

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_PAGE_SIZE = 10

IndexAction = Literal["upload", "merge", "mergeOrUpload", "delete"]


class SearchDocumentsParams(ToolParams):
    index_name: IndexName
    search: str = Field(default="*", description="Search text; * matches everything")
    filter: str | None = Field(default=None, description="OData $filter expression")
    select: list[str] | None = Field(default=None, description="Fields to return")
    order_by: list[str] | None = Field(default=None, description="Sort expressions, e.g. 'price desc'")
    search_fields: list[str] | None = Field(default=None, description="Restrict full-text search to these fields")
    query_type: Literal["simple", "full", "semantic"] = "simple"
    semantic_configuration: str | None = Field(default=None, description="Semantic configuration for semantic queries")
    cursor: str | None = Field(default=None, description="Opaque nextCursor from a previous page")
    page_size: int | None = Field(default=None, ge=1, le=MAX_SEARCH_RESULTS, description="Results per page (default 10)")
    response_format: ResponseMode = ResponseMode.FULL

    @field_validator("filter")
    @classmethod
    def _single_expression(cls, value: str | None) -> str | None:
        if value is not None and ";" in value:
            raise ValueError("filter must be a single OData expression (';' is not allowed)")
        return value


def _search_body(params: SearchDocumentsParams, skip: int, top: int) -> dict[str, Any]:
    body: dict[str, Any] = {"search": params.search, "skip": skip, "top": top, "count": True}
    if params.filter:
        body["filter"] = params.filter
    if params.select:
        body["select"] = ",".join(params.select)
    if params.order_by:
        body["orderby"] = ",".join(params.order_by)
    if params.search_fields:
        body["searchFields"] = ",".join(params.search_fields)
    if params.query_type != "simple":
        body["queryType"] = params.query_type
    if params.semantic_configuration:
        body["semanticConfiguration"] = params.semantic_configuration
    return body


async def search_documents(params: SearchDocumentsParams, call: ToolCall) -> dict[str, Any]:
    async def fetch_page(skip: int, top: int) -> tuple[list[dict[str, Any]], int | None]:
        result = await call.client.search_documents(params.index_name, _search_body(params, skip, top))
        result = result or {}
        return result.get("value", []), result.get("@odata.count")

    page = await paginate_remote(
        fetch_page,
        params.page_size or DEFAULT_SEARCH_PAGE_SIZE,
        params.cursor,
        codec=call.codec,
        max_page_size=call.settings.max_search_results,
    )
    return {"indexName": params.index_name, **page.to_dict()}


class GetDocumentParams(ToolParams):
    index_name: IndexName
    key: str = Field(min_length=1, description="Value of the document's key field")
    select: list[str] | None = Field(default=None, description="Fields to return")


async def get_document(params: GetDocumentParams, call: ToolCall) -> dict[str, Any]:
    return await call.client.get_document(params.index_name, params.key, select=params.select)


class CountDocumentsParams(ToolParams):
    index_name: IndexName


async def count_documents(params: CountDocumentsParams, call: ToolCall) -> dict[str, Any]:
    count = await call.client.count_documents(params.index_name)
    return {"indexName": params.index_name, "count": count}


class UploadDocumentsParams(ToolParams):
    index_name: IndexName
    documents: list[dict[str, Any]] = Field(
        min_length=1,
        max_length=MAX_DOCUMENTS_PER_BATCH,
        description="Documents as JSON objects; each must include the key field",
    )
    action: IndexAction = Field(default="upload", description="Index action applied to every document")


async def upload_documents(params: UploadDocumentsParams, call: ToolCall) -> dict[str, Any]:
    limit = call.settings.max_documents_per_batch
    if len(params.documents) > limit:
        raise ValidationException(
            f"At most {limit} documents per batch (got {len(params.documents)})",
            field="documents",
        )
    actions = [{**document, "@search.action": params.action} for document in params.documents]
    result = await call.client.index_documents(params.index_name, actions) or {}

    outcomes = result.get("value", [])
    failed = [o for o in outcomes if not o.get("status")]
    if failed:
        logger.warning(f"{len(failed)} of {len(actions)} documents failed to index into {params.index_name}")
    return {
        "indexName": params.index_name,
        "action": params.action,
        "submitted": len(actions),
        "succeeded": len(outcomes) - len(failed),
        "failed": len(failed),
        "errors": [
            {"key": o.get("key"), "statusCode": o.get("statusCode"), "errorMessage": o.get("errorMessage")}
            for o in failed
        ],
    }


DOCUMENT_TOOLS = [
    ToolSpec(
        name="search_documents",
        description=(
            "Search an index. Supports OData filters, field selection, ordering and semantic queries. "
            "Paginated: pass nextCursor back as cursor."
        ),
        params=SearchDocumentsParams,
        handler=search_documents,
        hints=ToolHints.for_method("GET"),
    ),
    ToolSpec(
        name="get_document",
        description="Fetch one document by key.",
        params=GetDocumentParams,
        handler=get_document,
        hints=ToolHints.for_method("GET"),
    ),
    ToolSpec(
        name="count_documents",
        description="Number of documents in an index.",
        params=CountDocumentsParams,
        handler=count_documents,
        hints=ToolHints.for_method("GET"),
    ),
    ToolSpec(
        name="upload_documents",
        description="Upload, merge or delete a batch of up to 1000 documents.",
        params=UploadDocumentsParams,
        handler=upload_documents,
        hints=ToolHints.for_method("POST"),
    ),
]
