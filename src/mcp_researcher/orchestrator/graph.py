from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Sequence, cast

from langgraph.graph import END, START, StateGraph
from langgraph.types import Send

from mcp_researcher.core.config import ResearchConfig
from mcp_researcher.core.errors import LlmError
from mcp_researcher.core.types import SearchResult, SubQueryContext
from mcp_researcher.llm.client import ResearchLlm
from mcp_researcher.observability import get_logger, set_stage
from mcp_researcher.research.hybrid import dedupe, merge_results
from mcp_researcher.research.prompts import plan_messages
from mcp_researcher.research.strategy import McpStrategy
from mcp_researcher.retrievers.base import Retriever

from .graph_state import ResearchState


@dataclass(slots=True)
class ResearchOutput:
    query: str
    sub_queries: list[str]
    results: list[SearchResult]
    mcp_results: list[SearchResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _normalize_sub_queries(raw: Any, *, query: str, limit: int) -> list[str]:
    items = raw.get("queries") if isinstance(raw, dict) else raw
    out: list[str] = []
    if isinstance(items, list):
        for item in items:
            if isinstance(item, str) and item.strip() and item.strip() not in out and item.strip() != query:
                out.append(item.strip())
    return out[:limit]


class ResearchGraph:
    """LangGraph-based PLAN → MCP prefetch → SEARCH (fan-out) → COLLECT pipeline."""

    def __init__(self, *, cfg: ResearchConfig, retrievers: Sequence[Retriever], llm: ResearchLlm | None) -> None:
        self._cfg = cfg
        self._llm = llm
        self._mcp = [r for r in retrievers if r.name == "mcp"]
        self._web = [r for r in retrievers if r.name != "mcp"]
        self._log = get_logger("mcp_researcher.orchestrator")

    async def run(self, query: str) -> ResearchOutput:
        graph = self._build_graph()

        t0 = time.perf_counter()
        out_state = cast(
            ResearchState,
            await graph.ainvoke({"query": query, "contexts": [], "errors": []}),
        )

        output = ResearchOutput(
            query=query,
            sub_queries=list(out_state.get("sub_queries", [])),
            results=list(out_state.get("results", [])),
            mcp_results=[
                r for c in out_state.get("contexts", []) for r in c.results if r.source.startswith("mcp")
            ],
            errors=list(out_state.get("errors", [])),
        )
        output.mcp_results = dedupe(list(out_state.get("mcp_cache", [])) + output.mcp_results)

        self._log.info(
            "research_graph_done",
            latency_ms=round((time.perf_counter() - t0) * 1000, 2),
            sub_queries=len(output.sub_queries),
            results=len(output.results),
            mcp_results=len(output.mcp_results),
        )
        return output

    async def _mcp_search(self, query: str) -> list[SearchResult]:
        max_results = self._cfg.max_search_results_per_query
        batches = await asyncio.gather(*[r.search(query, max_results=max_results) for r in self._mcp])
        return [r for batch in batches for r in batch]

    async def _web_search(self, query: str) -> list[SearchResult]:
        max_results = self._cfg.max_search_results_per_query
        batches = await asyncio.gather(*[r.search(query, max_results=max_results) for r in self._web])
        return [r for batch in batches for r in batch]

    def _build_graph(self):
        cfg = self._cfg
        strategy = cfg.mcp_strategy if self._mcp else McpStrategy.DISABLED
        semaphore = asyncio.Semaphore(max(1, cfg.max_concurrency))

        async def plan_node(state: ResearchState) -> dict[str, Any]:
            set_stage("PLAN")
            query = str(state.get("query", ""))

            sub_queries: list[str] = []
            if self._llm is not None and cfg.max_subqueries > 0:
                try:
                    raw = await self._llm.complete_json(plan_messages(query, max_subqueries=cfg.max_subqueries))
                    sub_queries = _normalize_sub_queries(raw, query=query, limit=cfg.max_subqueries)
                except LlmError as e:
                    self._log.warning("plan_failed", error=str(e))
                    return {"sub_queries": [query], "errors": ["plan_failed"]}

            # The main query is always researched too.
            sub_queries.append(query)
            self._log.info("plan_done", sub_queries=sub_queries)
            return {"sub_queries": sub_queries}

        async def mcp_prefetch_node(state: ResearchState) -> dict[str, Any]:
            if strategy is not McpStrategy.FAST:
                return {}
            set_stage("MCP")
            query = str(state.get("query", ""))
            cache = await self._mcp_search(query)
            self._log.info("mcp_results_cached", strategy=strategy.value, results=len(cache))
            return {"mcp_cache": cache}

        def fan_out(state: ResearchState):
            cache = list(state.get("mcp_cache", []))
            return [
                Send("search", {"sub_query": sq, "mcp_cache": cache})
                for sq in state.get("sub_queries", [])
            ]

        async def search_node(state: ResearchState) -> dict[str, Any]:
            set_stage("SEARCH")
            sub_query = str(state.get("sub_query", ""))

            async with semaphore:
                if strategy is McpStrategy.DEEP:
                    mcp_results, web_results = await asyncio.gather(
                        self._mcp_search(sub_query), self._web_search(sub_query)
                    )
                else:
                    mcp_results = list(state.get("mcp_cache", [])) if strategy is McpStrategy.FAST else []
                    web_results = await self._web_search(sub_query)

            merged = merge_results(mcp_results, web_results)
            self._log.info(
                "sub_query_done",
                sub_query=sub_query,
                mcp_results=len(mcp_results),
                web_results=len(web_results),
                merged=len(merged),
            )
            errors = [] if merged else [f"no_results:{sub_query}"]
            return {"contexts": [SubQueryContext(sub_query=sub_query, results=merged)], "errors": errors}

        async def collect_node(state: ResearchState) -> dict[str, Any]:
            set_stage("COLLECT")
            order = {sq: i for i, sq in enumerate(state.get("sub_queries", []))}
            contexts = sorted(state.get("contexts", []), key=lambda c: order.get(c.sub_query, len(order)))
            return {"results": dedupe(r for c in contexts for r in c.results)}

        builder = StateGraph(ResearchState)
        builder.add_node("plan", plan_node)
        builder.add_node("mcp_prefetch", mcp_prefetch_node)
        builder.add_node("search", search_node)
        builder.add_node("collect", collect_node)

        builder.add_edge(START, "plan")
        builder.add_edge("plan", "mcp_prefetch")
        builder.add_conditional_edges("mcp_prefetch", fan_out, ["search"])
        builder.add_edge("search", "collect")
        builder.add_edge("collect", END)

        return builder.compile()
