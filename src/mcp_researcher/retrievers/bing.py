from __future__ import annotations

import httpx

from mcp_researcher.core.types import SearchResult
from mcp_researcher.observability import get_logger

BING_SEARCH_URL = "https://api.bing.microsoft.com/v7.0/search"


class BingRetriever:
    """Bing Web Search API v7."""

    name = "bing"

    def __init__(self, *, api_key: str | None, market: str = "en-US", timeout_s: float = 15.0) -> None:
        self._api_key = api_key
        self._market = market
        self._timeout_s = timeout_s
        self._log = get_logger("mcp_researcher.retrievers.bing")

    async def search(self, query: str, *, max_results: int = 5) -> list[SearchResult]:
        if not self._api_key:
            self._log.warning("retriever_missing_api_key", retriever=self.name, env="BING_API_KEY")
            return []

        headers = {"Ocp-Apim-Subscription-Key": self._api_key}
        params = {"q": query, "count": max_results, "mkt": self._market, "responseFilter": "Webpages"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                resp = await client.get(BING_SEARCH_URL, headers=headers, params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            self._log.warning("retriever_failed", retriever=self.name, query=query, error=str(e))
            return []

        if not isinstance(data, dict):
            self._log.warning("retriever_bad_response", retriever=self.name, query=query, body_type=type(data).__name__)
            return []

        web_pages = data.get("webPages")
        pages = web_pages.get("value") if isinstance(web_pages, dict) else None
        out: list[SearchResult] = []
        for page in pages if isinstance(pages, list) else []:
            if not isinstance(page, dict):
                continue
            url = page.get("url") or ""
            if not url:
                continue
            out.append(SearchResult(title=page.get("name") or "", href=url, body=page.get("snippet") or "", source=self.name))
        return out[:max_results]
