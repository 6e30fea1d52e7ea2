# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Index management tools."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import Field

from ..core.exceptions import UpstreamError, ValidationException
from ..pipeline.elicitation import (
    ElicitationFlow,
    ElicitationSchema,
    ElicitationStep,
    EnumField,
    NumberField,
    StringField,
)
from ..pipeline.executor import ToolCall, ToolHints, ToolParams, ToolSpec
from ..pipeline.pagination import paginate
from .common import INDEX_NAME_PATTERN, IndexName, PagedParams
from .templates import (
    DEFAULT_VECTOR_DIMENSIONS,
    LANGUAGE_ANALYZERS,
    TEMPLATES,
    build_from_template,
    clone_definition,
    validate_index_definition,
)

logger = logging.getLogger(__name__)

CreationMode = Literal["template", "clone", "custom"]
TemplateName = Literal["document_search", "product_catalog", "hybrid_search", "knowledge_base"]


def _index_summary(index: Mapping[str, Any]) -> dict[str, Any]:
    summary: dict[str, Any] = {"name": index.get("name"), "fields": len(index.get("fields") or [])}
    if index.get("defaultScoringProfile"):
        summary["defaultScoringProfile"] = index["defaultScoringProfile"]
    if index.get("semantic"):
        summary["semanticSearchEnabled"] = True
    if index.get("vectorSearch"):
        summary["vectorSearchEnabled"] = True
    if index.get("corsOptions"):
        summary["corsEnabled"] = True
    return summary


# ============================================================================
# list_indexes / get_index / get_index_stats
# ============================================================================


class ListIndexesParams(PagedParams):
    include_stats: bool = Field(default=False, description="Add document count and storage size per index")
    verbose: bool = Field(default=False, description="Return full index definitions instead of summaries")


async def list_indexes(params: ListIndexesParams, call: ToolCall) -> dict[str, Any]:
    indexes = await call.client.list_indexes()
    entries = indexes if params.verbose else [_index_summary(i) for i in indexes]
    page = paginate(
        entries,
        params.page_size or call.settings.default_page_size,
        params.cursor,
        codec=call.codec,
        max_page_size=call.settings.max_page_size,
    )
    items = page.items
    if params.include_stats:
        items = list(await asyncio.gather(*(_with_stats(call, item) for item in items)))
    return {**page.to_dict(), "items": items}


async def _with_stats(call: ToolCall, entry: dict[str, Any]) -> dict[str, Any]:
    try:
        stats = await call.client.get_index_stats(entry["name"])
    except UpstreamError as e:
        logger.warning(f"Stats unavailable for index {entry['name']}: {e.message}")
        return {**entry, "statsError": e.message}
    return {
        **entry,
        "documentCount": stats.get("documentCount", 0),
        "storageSize": stats.get("storageSize", 0),
        "vectorIndexSize": stats.get("vectorIndexSize", 0),
    }


class IndexNameParams(ToolParams):
    index_name: IndexName


async def get_index(params: IndexNameParams, call: ToolCall) -> dict[str, Any]:
    return await call.client.get_index(params.index_name)


async def get_index_stats(params: IndexNameParams, call: ToolCall) -> dict[str, Any]:
    stats = await call.client.get_index_stats(params.index_name)
    return {"indexName": params.index_name, **(stats or {})}


# ============================================================================
# delete_index
# ============================================================================


class DeleteIndexParams(ToolParams):
    index_name: IndexName
    confirm: str = Field(description="Type the index name again to confirm permanent deletion")


DELETE_FLOW = ElicitationFlow(
    name="delete_index",
    steps=(
        ElicitationStep(
            name="confirm_delete",
            message="Deleting an index permanently removes it and all of its documents. "
            "Type the index name to confirm.",
            schema=ElicitationSchema(
                properties={
                    "indexName": StringField(
                        title="Index name", pattern=INDEX_NAME_PATTERN, min_length=1, max_length=128
                    ),
                    "confirm": StringField(
                        title="Confirm index name",
                        description="Must exactly match the index being deleted",
                        min_length=1,
                        max_length=128,
                    ),
                },
                required=("confirm",),
            ),
        ),
    ),
)


async def delete_index(params: DeleteIndexParams, call: ToolCall) -> dict[str, Any]:
    if params.confirm != params.index_name:
        raise ValidationException(
            "Deletion not confirmed: confirmation does not match the index name",
            field="confirm",
            value=params.confirm,
        )
    await call.client.delete_index(params.index_name)
    try:
        await call.client.get_index(params.index_name)
        verified = False
    except UpstreamError as e:
        if e.status_code != 404:
            raise
        verified = True
    logger.info(f"Deleted index {params.index_name} (verified={verified})")
    return {"deleted": params.index_name, "verified": verified}


# ============================================================================
# create_index / update_index
# ============================================================================


class CreateIndexParams(ToolParams):
    index_name: IndexName
    mode: CreationMode | None = Field(
        default=None, description="template, clone or custom (inferred from the other arguments when omitted)"
    )
    template: TemplateName | None = Field(default=None, description="Pre-built schema for a common scenario")
    clone_from: IndexName | None = Field(default=None, description="Copy the schema (not data) of this index")
    language: str | None = Field(default=None, description="Content language; selects the text analyzer")
    vector_dimensions: int | None = Field(
        default=None, ge=1, le=4096, description="Embedding length for hybrid_search (default 1536)"
    )
    index_definition: dict[str, Any] | None = Field(
        default=None, description="Full index definition for custom mode (REST schema)"
    )
    validate_definition: bool = Field(default=True, description="Check the definition before sending it")

    def resolved_mode(self) -> str:
        if self.mode:
            return self.mode
        if self.clone_from:
            return "clone"
        if self.template:
            return "template"
        return "custom"


def _needs_creation_input(params: Mapping[str, Any]) -> bool:
    return not any(params.get(name) for name in ("template", "cloneFrom", "indexDefinition"))


CREATE_FLOW = ElicitationFlow(
    name="create_index",
    steps=(
        ElicitationStep(
            name="approach",
            message="How should the new index be created?",
            schema=ElicitationSchema(
                properties={
                    "mode": EnumField(
                        options=("template", "clone", "custom"),
                        option_names=("Use a template", "Clone existing index", "Custom definition"),
                        title="Creation mode",
                    ),
                    "indexName": StringField(
                        title="Index name",
                        description="Lowercase letters, digits and hyphens; max 128 characters",
                        pattern=INDEX_NAME_PATTERN,
                        max_length=128,
                    ),
                },
                required=("mode", "indexName"),
            ),
        ),
        ElicitationStep(
            name="template",
            message="Choose a template and the language of your content.",
            schema=ElicitationSchema(
                properties={
                    "template": EnumField(options=TEMPLATES, title="Template"),
                    "language": EnumField(
                        options=(*LANGUAGE_ANALYZERS, "other"),
                        title="Language",
                        default="english",
                    ),
                    "vectorDimensions": NumberField(
                        title="Vector dimensions (hybrid_search only)",
                        description="1536 for OpenAI embeddings",
                        minimum=1,
                        maximum=4096,
                        integer=True,
                        default=DEFAULT_VECTOR_DIMENSIONS,
                    ),
                },
                required=("template",),
            ),
            applies=lambda answers: answers.get("mode") == "template",
        ),
        ElicitationStep(
            name="clone",
            message="Which existing index should be cloned?",
            schema=ElicitationSchema(
                properties={
                    "cloneFrom": StringField(title="Source index", pattern=INDEX_NAME_PATTERN, max_length=128),
                },
                required=("cloneFrom",),
            ),
            applies=lambda answers: answers.get("mode") == "clone",
        ),
    ),
)


async def create_index(params: CreateIndexParams, call: ToolCall) -> dict[str, Any]:
    mode = params.resolved_mode()
    if mode == "clone":
        if not params.clone_from:
            raise ValidationException("cloneFrom is required to clone an index", field="cloneFrom")
        source = await call.client.get_index(params.clone_from)
        definition = clone_definition(source, params.index_name)
    elif mode == "template":
        if not params.template:
            raise ValidationException("template is required in template mode", field="template")
        language = params.language if params.language != "other" else None
        definition = build_from_template(
            params.template,
            params.index_name,
            language=language,
            vector_dimensions=params.vector_dimensions or DEFAULT_VECTOR_DIMENSIONS,
        )
    else:
        if not params.index_definition:
            raise ValidationException("indexDefinition is required in custom mode", field="indexDefinition")
        definition = dict(params.index_definition)
        name = definition.setdefault("name", params.index_name)
        if name != params.index_name:
            raise ValidationException(
                f"indexDefinition.name ({name}) does not match indexName ({params.index_name})", field="indexDefinition"
            )

    if params.validate_definition:
        problems = validate_index_definition(definition)
        if problems:
            raise ValidationException(
                f"Index definition is invalid: {'; '.join(problems)}",
                field="indexDefinition",
                errors=[{"error": p} for p in problems],
            )

    created = await call.client.create_index(definition)
    return {
        "created": params.index_name,
        "mode": mode,
        "fieldCount": len(definition.get("fields") or []),
        "index": created,
    }


class UpdateIndexParams(ToolParams):
    index_name: IndexName
    add_fields: list[dict[str, Any]] = Field(min_length=1, description="Field definitions to append")
    allow_index_downtime: bool = Field(
        default=False, description="Take the index offline if the change requires it (analyzer changes)"
    )


async def update_index(params: UpdateIndexParams, call: ToolCall) -> dict[str, Any]:
    current = await call.client.get_index(params.index_name)
    definition = clone_definition(current, params.index_name)
    existing = {f.get("name") for f in definition.get("fields", [])}
    duplicates = sorted(str(f.get("name")) for f in params.add_fields if f.get("name") in existing)
    if duplicates:
        raise ValidationException(f"Fields already exist: {', '.join(duplicates)}", field="addFields")
    definition["fields"] = [*definition.get("fields", []), *params.add_fields]

    problems = validate_index_definition(definition)
    if problems:
        raise ValidationException(f"Updated definition is invalid: {'; '.join(problems)}", field="addFields")

    await call.client.create_or_update_index(
        params.index_name, definition, allow_index_downtime=params.allow_index_downtime
    )
    return {
        "updated": params.index_name,
        "addedFields": [f.get("name") for f in params.add_fields],
        "fieldCount": len(definition["fields"]),
    }


INDEX_TOOLS = [
    ToolSpec(
        name="list_indexes",
        description="List indexes with basic metadata. Paginated: pass nextCursor back as cursor.",
        params=ListIndexesParams,
        handler=list_indexes,
        hints=ToolHints.for_method("GET"),
    ),
    ToolSpec(
        name="get_index",
        description="Fetch the full definition of an index.",
        params=IndexNameParams,
        handler=get_index,
        hints=ToolHints.for_method("GET"),
    ),
    ToolSpec(
        name="get_index_stats",
        description="Document count and storage usage of an index.",
        params=IndexNameParams,
        handler=get_index_stats,
        hints=ToolHints.for_method("GET"),
    ),
    ToolSpec(
        name="delete_index",
        description="Permanently delete an index and its documents. Requires typing the index name to confirm.",
        params=DeleteIndexParams,
        handler=delete_index,
        hints=ToolHints.for_method("DELETE"),
        elicitation=DELETE_FLOW,
    ),
    ToolSpec(
        name="create_index",
        description=(
            "Create an index from a template (document_search, product_catalog, hybrid_search, "
            "knowledge_base), by cloning an existing index, or from a custom definition. "
            "Asks for the approach interactively when none is given."
        ),
        params=CreateIndexParams,
        handler=create_index,
        hints=ToolHints.for_method("POST"),
        elicitation=CREATE_FLOW,
        needs_input=_needs_creation_input,
    ),
    ToolSpec(
        name="update_index",
        description="Add fields to an existing index. Analyzer changes may need allowIndexDowntime.",
        params=UpdateIndexParams,
        handler=update_index,
        hints=ToolHints.for_method("PUT"),
    ),
]
