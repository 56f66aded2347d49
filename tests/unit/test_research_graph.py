from __future__ import annotations

import asyncio

from mcp_fakes import FakeClient, FakeClientFactory, FakeLlm, FakeRetriever, FakeTool

from mcp_researcher.core.config import ResearchConfig
from mcp_researcher.core.types import SearchResult
from mcp_researcher.orchestrator import ResearchGraph
from mcp_researcher.research.strategy import McpStrategy
from mcp_researcher.retrievers import McpRetriever
from mcp_researcher.servers.config import parse_mcp_configs

QUERY = "how do mcp servers expose tools"


def _cfg(strategy: McpStrategy, **kwargs) -> ResearchConfig:
    return ResearchConfig(retrievers=("tavily", "mcp"), mcp_strategy=strategy, max_subqueries=2, **kwargs)


def _run(cfg: ResearchConfig, *retrievers, llm=None):
    llm = llm if llm is not None else FakeLlm(json_replies=[["mcp transports", "mcp tool schemas"]])
    return asyncio.run(ResearchGraph(cfg=cfg, retrievers=list(retrievers), llm=llm).run(QUERY))


def test_fast_strategy_runs_mcp_once() -> None:
    web = FakeRetriever("tavily")
    mcp = FakeRetriever("mcp", prefix="https://mcp.example.com")

    out = _run(_cfg(McpStrategy.FAST), web, mcp)

    assert out.sub_queries == ["mcp transports", "mcp tool schemas", QUERY]
    assert mcp.queries == [QUERY]
    assert sorted(web.queries) == sorted(out.sub_queries)
    # The cached MCP result is shared by every sub-query and kept once.
    assert [r.source for r in out.results].count("mcp") == 1
    assert len(out.mcp_results) == 1


def test_deep_strategy_runs_mcp_per_sub_query() -> None:
    web = FakeRetriever("tavily")
    mcp = FakeRetriever("mcp", prefix="https://mcp.example.com")

    out = _run(_cfg(McpStrategy.DEEP), web, mcp)

    assert sorted(mcp.queries) == sorted(out.sub_queries)
    assert len(out.mcp_results) == 3


def test_disabled_strategy_never_runs_mcp() -> None:
    web = FakeRetriever("tavily")
    mcp = FakeRetriever("mcp")

    out = _run(_cfg(McpStrategy.DISABLED), web, mcp)

    assert mcp.queries == []
    assert out.mcp_results == []
    assert {r.source for r in out.results} == {"tavily"}


def test_results_follow_sub_query_order_with_mcp_first() -> None:
    web = FakeRetriever("tavily")
    mcp = FakeRetriever("mcp", prefix="https://mcp.example.com")

    out = _run(_cfg(McpStrategy.DEEP), web, mcp)

    assert [(r.source, r.title) for r in out.results] == [
        ("mcp", "mcp mcp transports 0"),
        ("tavily", "tavily mcp transports 0"),
        ("mcp", "mcp mcp tool schemas 0"),
        ("tavily", "tavily mcp tool schemas 0"),
        ("mcp", f"mcp {QUERY} 0"),
        ("tavily", f"tavily {QUERY} 0"),
    ]


def test_plan_failure_researches_main_query_only() -> None:
    web = FakeRetriever("tavily")

    out = _run(_cfg(McpStrategy.FAST), web, llm=FakeLlm(json_replies=[]))

    assert out.sub_queries == [QUERY]
    assert "plan_failed" in out.errors
    assert web.queries == [QUERY]


def test_zero_sub_queries_skips_planning() -> None:
    llm = FakeLlm(json_replies=[["never used"]])
    web = FakeRetriever("tavily")
    cfg = ResearchConfig(retrievers=("tavily",), max_subqueries=0)

    out = _run(cfg, web, llm=llm)

    assert out.sub_queries == [QUERY]
    assert llm.json_prompts == []


def test_planner_echo_of_main_query_is_not_duplicated() -> None:
    web = FakeRetriever("tavily")

    out = _run(_cfg(McpStrategy.FAST), web, llm=FakeLlm(json_replies=[[QUERY, "other angle", "other angle"]]))

    assert out.sub_queries == ["other angle", QUERY]


class CountingRetriever:
    name = "tavily"

    def __init__(self) -> None:
        self.in_flight = 0
        self.max_in_flight = 0

    async def search(self, query: str, *, max_results: int = 5) -> list[SearchResult]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        return [SearchResult(title=query, href=f"https://example.com/{len(query)}", body=query, source=self.name)]


def test_fan_out_respects_max_concurrency() -> None:
    web = CountingRetriever()

    _run(_cfg(McpStrategy.DISABLED, max_concurrency=1), web)

    assert web.max_in_flight == 1


def test_sub_query_without_results_is_recorded() -> None:
    web = FakeRetriever("tavily", per_query=0)

    out = _run(_cfg(McpStrategy.DISABLED), web)

    assert out.results == []
    assert f"no_results:{QUERY}" in out.errors


def test_broken_mcp_catalogue_keeps_web_results() -> None:
    cfg = _cfg(McpStrategy.FAST)
    web = FakeRetriever("tavily")
    factory = FakeClientFactory({"docs": FakeClient([FakeTool("search"), FakeTool("search")])})
    mcp = McpRetriever(parse_mcp_configs([{"name": "docs", "command": "docs-mcp"}]), cfg=cfg, llm=None, client_factory=factory)

    out = _run(cfg, web, mcp)

    assert out.mcp_results == []
    assert {r.source for r in out.results} == {"tavily"}
    assert len(out.results) == 3
