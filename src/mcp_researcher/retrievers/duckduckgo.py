from __future__ import annotations

import asyncio
from typing import Any

from ddgs import DDGS

from mcp_researcher.core.types import SearchResult
from mcp_researcher.observability import get_logger


class DuckDuckGoRetriever:
    """DuckDuckGo text search via `ddgs`; needs no API key."""

    name = "duckduckgo"

    def __init__(self, *, region: str = "wt-wt", safesearch: str = "moderate") -> None:
        self._region = region
        self._safesearch = safesearch
        self._log = get_logger("mcp_researcher.retrievers.duckduckgo")

    def _search_sync(self, query: str, max_results: int) -> list[dict[str, Any]]:
        with DDGS() as ddg:
            return list(ddg.text(query, region=self._region, safesearch=self._safesearch, max_results=max_results))

    async def search(self, query: str, *, max_results: int = 5) -> list[SearchResult]:
        try:
            raw = await asyncio.to_thread(self._search_sync, query, max_results)
        except asyncio.CancelledError:
            raise
        except Exception as e:  # noqa: BLE001
            self._log.warning("retriever_failed", retriever=self.name, query=query, error=str(e))
            return []

        out: list[SearchResult] = []
        for r in raw:
            url = r.get("href") or r.get("link") or ""
            if not url:
                continue
            out.append(SearchResult(title=r.get("title") or "", href=url, body=r.get("body") or "", source=self.name))
        return out[:max_results]
