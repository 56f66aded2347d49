from __future__ import annotations

import asyncio

import arxiv

from mcp_researcher.core.types import SearchResult
from mcp_researcher.observability import get_logger


class ArxivRetriever:
    """arXiv paper search; abstracts become result bodies."""

    name = "arxiv"

    def __init__(self, *, delay_seconds: float = 3.0) -> None:
        # arXiv asks clients to wait ~3s between requests.
        self._client = arxiv.Client(page_size=50, delay_seconds=delay_seconds, num_retries=3)
        self._log = get_logger("mcp_researcher.retrievers.arxiv")

    def _search_sync(self, query: str, max_results: int) -> list[SearchResult]:
        search = arxiv.Search(query=query, max_results=max_results, sort_by=arxiv.SortCriterion.Relevance)
        out: list[SearchResult] = []
        for paper in self._client.results(search):
            out.append(
                SearchResult(
                    title=paper.title,
                    href=paper.entry_id,
                    body=" ".join(paper.summary.split()),
                    source=self.name,
                )
            )
        return out

    async def search(self, query: str, *, max_results: int = 5) -> list[SearchResult]:
        try:
            return await asyncio.to_thread(self._search_sync, query, max_results)
        except asyncio.CancelledError:
            raise
        except Exception as e:  # noqa: BLE001
            self._log.warning("retriever_failed", retriever=self.name, query=query, error=str(e))
            return []
