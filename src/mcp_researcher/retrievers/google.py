from __future__ import annotations

import httpx

from mcp_researcher.core.types import SearchResult
from mcp_researcher.observability import get_logger

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"


class GoogleRetriever:
    """Google Programmable Search (Custom Search JSON API)."""

    name = "google"

    def __init__(self, *, api_key: str | None, cx: str | None, timeout_s: float = 15.0) -> None:
        self._api_key = api_key
        self._cx = cx
        self._timeout_s = timeout_s
        self._log = get_logger("mcp_researcher.retrievers.google")

    async def search(self, query: str, *, max_results: int = 5) -> list[SearchResult]:
        if not self._api_key or not self._cx:
            self._log.warning("retriever_missing_api_key", retriever=self.name, env="GOOGLE_API_KEY/GOOGLE_CX_KEY")
            return []

        params = {"key": self._api_key, "cx": self._cx, "q": query, "num": min(max(1, max_results), 10)}
        try:
            async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                resp = await client.get(GOOGLE_SEARCH_URL, params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            self._log.warning("retriever_failed", retriever=self.name, query=query, error=str(e))
            return []

        if not isinstance(data, dict):
            self._log.warning("retriever_bad_response", retriever=self.name, query=query, body_type=type(data).__name__)
            return []

        items = data.get("items")
        out: list[SearchResult] = []
        for item in items if isinstance(items, list) else []:
            if not isinstance(item, dict):
                continue
            link = item.get("link") or ""
            if not link:
                continue
            out.append(SearchResult(title=item.get("title") or "", href=link, body=item.get("snippet") or "", source=self.name))
        return out[:max_results]
