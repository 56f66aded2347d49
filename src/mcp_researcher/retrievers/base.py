from __future__ import annotations

from typing import Protocol

from mcp_researcher.core.types import SearchResult


class Retriever(Protocol):
    """A named data-source backend."""

    name: str

    async def search(self, query: str, *, max_results: int = 5) -> list[SearchResult]:
        """Return results for `query`; implementations log provider failures and return []."""
        ...
