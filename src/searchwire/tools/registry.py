# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Assembles the full tool list."""

from __future__ import annotations

from ..pipeline.executor import ToolSpec
from .documents import DOCUMENT_TOOLS
from .indexers import INDEXER_TOOLS
from .indexes import INDEX_TOOLS
from .service import SERVICE_TOOLS


def build_tools() -> list[ToolSpec]:
    return [*INDEX_TOOLS, *DOCUMENT_TOOLS, *INDEXER_TOOLS, *SERVICE_TOOLS]
