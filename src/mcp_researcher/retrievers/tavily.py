from __future__ import annotations

import asyncio
from typing import Any

from mcp_researcher.core.types import SearchResult
from mcp_researcher.observability import get_logger


class TavilyRetriever:
    """Tavily search API (official client).

    Without an API key the retriever returns nothing and the others carry the run.
    """

    name = "tavily"

    def __init__(self, *, api_key: str | None) -> None:
        self._api_key = api_key
        self._log = get_logger("mcp_researcher.retrievers.tavily")

    def _search_sync(self, query: str, max_results: int) -> list[dict[str, Any]]:
        from tavily import TavilyClient

        client = TavilyClient(api_key=self._api_key)
        resp = client.search(query, max_results=max_results)
        return list(resp.get("results", []))

    async def search(self, query: str, *, max_results: int = 5) -> list[SearchResult]:
        if not self._api_key:
            self._log.warning("retriever_missing_api_key", retriever=self.name, env="TAVILY_API_KEY")
            return []

        try:
            raw = await asyncio.to_thread(self._search_sync, query, max_results)
        except asyncio.CancelledError:
            raise
        except Exception as e:  # noqa: BLE001
            self._log.warning("retriever_failed", retriever=self.name, query=query, error=str(e))
            return []

        out: list[SearchResult] = []
        for r in raw:
            url = r.get("url") or ""
            if not url:
                continue
            out.append(SearchResult(title=r.get("title") or "", href=url, body=r.get("content") or "", source=self.name))
        return out[:max_results]
