# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Shared parameter types for tool models."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

from ..pipeline.executor import ToolParams
from ..pipeline.shaping import ResponseMode

INDEX_NAME_PATTERN = r"^[a-z0-9][a-z0-9-]{0,127}$"
RESOURCE_NAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$"
MAX_PAGE_SIZE = 200
MAX_SEARCH_RESULTS = 50
MAX_DOCUMENTS_PER_BATCH = 1000

IndexName = Annotated[
    str,
    Field(
        pattern=INDEX_NAME_PATTERN,
        max_length=128,
        description="Index name (lowercase letters, digits and hyphens, max 128 characters)",
    ),
]

ResourceName = Annotated[
    str,
    Field(pattern=RESOURCE_NAME_PATTERN, max_length=128, description="Name of an indexer or data source"),
]


class PagedParams(ToolParams):
    """Cursor pagination arguments shared by listing tools."""

    cursor: str | None = Field(default=None, description="Opaque nextCursor from a previous page")
    page_size: int | None = Field(
        default=None, ge=1, le=MAX_PAGE_SIZE, description="Items per page (server default when omitted)"
    )
    response_format: ResponseMode = Field(
        default=ResponseMode.FULL,
        description="full, summary (summarize the result) or minimal (essential fields only)",
    )
