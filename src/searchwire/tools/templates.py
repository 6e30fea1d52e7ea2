# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Index definitions for common scenarios, plus definition checks.

Templates are plain data: a list of field specs expanded into the REST
field schema. ``validate_index_definition`` catches the mistakes the
service would otherwise reject with a terse 400.
"""

from __future__ import annotations

import copy
import re
from typing import Any

VECTOR_PROFILE = "default-vector-profile"
VECTOR_ALGORITHM = "default-vector-algo"
SEMANTIC_CONFIG = "default-semantic-config"
DEFAULT_VECTOR_DIMENSIONS = 1536

LANGUAGE_ANALYZERS = {
    "english": "en.microsoft",
    "french": "fr.microsoft",
    "german": "de.microsoft",
    "spanish": "es.microsoft",
    "italian": "it.microsoft",
    "portuguese": "pt-BR.microsoft",
    "dutch": "nl.microsoft",
    "russian": "ru.microsoft",
    "japanese": "ja.microsoft",
    "chinese": "zh-Hans.microsoft",
    "korean": "ko.microsoft",
    "arabic": "ar.microsoft",
    "hindi": "hi.microsoft",
}
DEFAULT_ANALYZER = "standard.lucene"

_FIELD_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def resolve_analyzer(language: str | None) -> str | None:
    """Analyzer for a language name; the standard analyzer for unknown languages."""
    if not language:
        return None
    return LANGUAGE_ANALYZERS.get(language.lower(), DEFAULT_ANALYZER)


def key_field(name: str) -> dict[str, Any]:
    return {
        "name": name,
        "type": "Edm.String",
        "key": True,
        "searchable": False,
        "filterable": True,
        "retrievable": True,
        "sortable": False,
        "facetable": False,
    }


def text_field(name: str, searchable: bool = True, filterable: bool = False, sortable: bool = False,
               facetable: bool = False) -> dict[str, Any]:
    return {
        "name": name,
        "type": "Edm.String",
        "searchable": searchable,
        "filterable": filterable,
        "sortable": sortable,
        "facetable": facetable,
        "analyzer": DEFAULT_ANALYZER,
    }


def value_field(name: str, edm_type: str, filterable: bool = True, sortable: bool = True,
                facetable: bool = False) -> dict[str, Any]:
    return {
        "name": name,
        "type": edm_type,
        "searchable": False,
        "filterable": filterable,
        "sortable": sortable,
        "facetable": facetable,
    }


def collection_field(name: str, item_type: str = "String", searchable: bool | None = None,
                     facetable: bool = False) -> dict[str, Any]:
    return {
        "name": name,
        "type": f"Collection(Edm.{item_type})",
        "searchable": item_type == "String" if searchable is None else searchable,
        "filterable": False,
        "sortable": False,
        "facetable": facetable,
    }


def vector_field(name: str, dimensions: int) -> dict[str, Any]:
    return {
        "name": name,
        "type": "Collection(Edm.Single)",
        "searchable": True,
        "filterable": False,
        "sortable": False,
        "facetable": False,
        "retrievable": False,
        "dimensions": dimensions,
        "vectorSearchProfile": VECTOR_PROFILE,
    }


def _document_search() -> list[dict[str, Any]]:
    return [
        key_field("id"),
        text_field("title", filterable=True, sortable=True),
        text_field("content"),
        text_field("summary"),
        text_field("author", filterable=True, facetable=True),
        value_field("createdDate", "Edm.DateTimeOffset"),
        value_field("modifiedDate", "Edm.DateTimeOffset"),
        collection_field("tags", facetable=True),
        text_field("category", searchable=False, filterable=True, facetable=True),
        value_field("wordCount", "Edm.Int32"),
    ]


def _product_catalog() -> list[dict[str, Any]]:
    return [
        key_field("productId"),
        text_field("productName", filterable=True, sortable=True),
        text_field("description"),
        text_field("brand", filterable=True, facetable=True),
        text_field("category", searchable=False, filterable=True, facetable=True),
        value_field("price", "Edm.Double", facetable=True),
        value_field("rating", "Edm.Double"),
        value_field("reviewCount", "Edm.Int32"),
        value_field("inStock", "Edm.Boolean", facetable=True),
        value_field("onSale", "Edm.Boolean", facetable=True),
        collection_field("colors", searchable=False, facetable=True),
        collection_field("sizes", searchable=False, facetable=True),
    ]


def _hybrid_search(dimensions: int) -> list[dict[str, Any]]:
    return [
        key_field("id"),
        text_field("content"),
        text_field("title", filterable=True, sortable=True),
        vector_field("contentVector", dimensions),
        text_field("source", searchable=False, filterable=True, facetable=True),
        value_field("lastModified", "Edm.DateTimeOffset"),
    ]


def _knowledge_base() -> list[dict[str, Any]]:
    return [
        key_field("id"),
        text_field("question", filterable=True),
        text_field("answer"),
        text_field("category", filterable=True, facetable=True),
        text_field("subcategory", searchable=False, filterable=True, facetable=True),
        collection_field("relatedQuestions"),
        value_field("helpfulVotes", "Edm.Int32"),
        value_field("viewCount", "Edm.Int32"),
        value_field("createdDate", "Edm.DateTimeOffset"),
        value_field("updatedDate", "Edm.DateTimeOffset"),
        text_field("author", searchable=False, filterable=True, facetable=True),
        value_field("isVerified", "Edm.Boolean", facetable=True),
    ]


TEMPLATES = ("document_search", "product_catalog", "hybrid_search", "knowledge_base")


def build_from_template(
    template: str,
    index_name: str,
    language: str | None = None,
    vector_dimensions: int = DEFAULT_VECTOR_DIMENSIONS,
) -> dict[str, Any]:
    """Expand a template into a full index definition."""
    if template == "document_search":
        fields = _document_search()
    elif template == "product_catalog":
        fields = _product_catalog()
    elif template == "hybrid_search":
        fields = _hybrid_search(vector_dimensions)
    elif template == "knowledge_base":
        fields = _knowledge_base()
    else:
        raise ValueError(f"Unknown template: {template}")

    analyzer = resolve_analyzer(language)
    if analyzer:
        for f in fields:
            if f["type"] == "Edm.String" and f.get("searchable"):
                f["analyzer"] = analyzer

    definition: dict[str, Any] = {"name": index_name, "fields": fields}
    if template == "hybrid_search":
        definition["vectorSearch"] = {
            "algorithms": [
                {
                    "name": VECTOR_ALGORITHM,
                    "kind": "hnsw",
                    "hnswParameters": {"metric": "cosine", "m": 4, "efConstruction": 400, "efSearch": 500},
                }
            ],
            "profiles": [{"name": VECTOR_PROFILE, "algorithm": VECTOR_ALGORITHM}],
        }
        definition["semantic"] = {
            "configurations": [
                {
                    "name": SEMANTIC_CONFIG,
                    "prioritizedFields": {
                        "titleField": {"fieldName": "title"},
                        "prioritizedContentFields": [{"fieldName": "content"}],
                        "prioritizedKeywordsFields": [{"fieldName": "source"}],
                    },
                }
            ]
        }
    return definition


def clone_definition(source: dict[str, Any], index_name: str) -> dict[str, Any]:
    """Copy an index schema under a new name, dropping service metadata."""
    definition = {k: copy.deepcopy(v) for k, v in source.items() if not k.startswith("@odata.")}
    definition["name"] = index_name
    return definition


def validate_index_definition(definition: dict[str, Any]) -> list[str]:
    """Return human-readable problems with an index definition (empty if fine)."""
    errors: list[str] = []
    fields = definition.get("fields") or []
    if not fields:
        return ["Index must define at least one field"]

    keys = [f for f in fields if f.get("key")]
    if len(keys) != 1:
        errors.append(f"Index must have exactly one key field (found {len(keys)})")
    elif keys[0].get("type") != "Edm.String":
        errors.append("The key field must be of type Edm.String")

    seen: set[str] = set()
    for f in fields:
        name = str(f.get("name", ""))
        ftype = str(f.get("type", ""))
        if name in seen:
            errors.append(f"Duplicate field name: {name}")
        seen.add(name)
        if not _FIELD_NAME.match(name):
            errors.append(
                f"Invalid field name: {name!r}. Must start with a letter and contain only letters, numbers and underscores"
            )
        if ftype == "Collection(Edm.Single)":
            if not f.get("dimensions") or f["dimensions"] < 1:
                errors.append(f"Vector field {name} must have dimensions > 0")
            if not f.get("vectorSearchProfile"):
                errors.append(f"Vector field {name} must have a vectorSearchProfile")
        elif ftype.startswith("Collection(") and f.get("sortable"):
            errors.append(f"Collection field {name} cannot be sortable")

    semantic = definition.get("semantic") or {}
    for config in semantic.get("configurations") or []:
        title = ((config.get("prioritizedFields") or {}).get("titleField") or {}).get("fieldName")
        if title and not any(f.get("name") == title and f.get("searchable") for f in fields):
            errors.append(f"Semantic title field {title} must exist and be searchable")
    return errors
