from __future__ import annotations

import operator
from typing import Annotated
from typing_extensions import TypedDict

from mcp_researcher.core.types import SearchResult, SubQueryContext


class ResearchState(TypedDict, total=False):
    # Input
    query: str

    # PLAN outputs
    sub_queries: list[str]

    # MCP results of the main query (fast strategy)
    mcp_cache: list[SearchResult]

    # Per-branch payload (for Send -> search)
    sub_query: str

    # Accumulated artifacts
    contexts: Annotated[list[SubQueryContext], operator.add]
    errors: Annotated[list[str], operator.add]

    # Final output
    results: list[SearchResult]
