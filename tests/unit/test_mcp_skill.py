from __future__ import annotations

import asyncio

from mcp_fakes import FakeClient, FakeClientFactory, FakeLlm, FakeTool

from mcp_researcher.core.types import ToolCall
from mcp_researcher.research.mcp_skill import McpResearchSkill
from mcp_researcher.servers.config import parse_mcp_configs
from mcp_researcher.tools.mcp_gateway import McpGateway


def _gateway(*tools: FakeTool) -> McpGateway:
    servers = parse_mcp_configs([{"name": "docs", "command": "docs-mcp"}])
    gw = McpGateway(servers, client_factory=FakeClientFactory({"docs": FakeClient(list(tools))}))
    asyncio.run(gw.load())
    return gw


def test_llm_requested_calls_are_executed() -> None:
    search = FakeTool("search_docs", description="Search the docs", output="LangGraph supports Send fan-out.")
    gw = _gateway(search)
    llm = FakeLlm(
        tool_calls=[
            ToolCall(id="c1", name="search_docs", arguments={"query": "langgraph send"}),
            ToolCall(id="c2", name="drop_database", arguments={}),
        ]
    )

    out = asyncio.run(McpResearchSkill(gw, llm).run("langgraph send", gw.bindings()))

    assert search.calls == [{"query": "langgraph send"}]
    assert [r.body for r in out] == ["LangGraph supports Send fan-out."]
    assert out[0].source == "mcp:docs:search_docs"
    assert [s["function"]["name"] for s in llm.tool_specs[0]] == ["search_docs"]


def test_no_llm_calls_falls_back_to_string_parameter() -> None:
    search = FakeTool("search_docs", output="found it")
    stats = FakeTool("stats", args_schema={"type": "object", "properties": {"days": {"type": "integer"}}})
    gw = _gateway(search, stats)

    out = asyncio.run(McpResearchSkill(gw, FakeLlm()).run("what is mcp", gw.bindings()))

    assert search.calls == [{"query": "what is mcp"}]
    assert stats.calls == []
    assert [r.body for r in out] == ["found it"]


def test_failed_tools_are_skipped() -> None:
    good = FakeTool("search_docs", output="good")
    bad = FakeTool("search_web", fail=RuntimeError("boom"))
    gw = _gateway(good, bad)

    out = asyncio.run(McpResearchSkill(gw, None).run("q", gw.bindings()))

    assert [r.body for r in out] == ["good"]
    assert bad.calls == [{"query": "q"}]


def test_llm_text_is_used_when_tools_return_nothing() -> None:
    empty = FakeTool("search_docs", output="")
    gw = _gateway(empty)
    llm = FakeLlm(tool_text="No tool fits; MCP is a protocol for tools.")

    out = asyncio.run(McpResearchSkill(gw, llm).run("what is mcp", gw.bindings()))

    assert len(out) == 1
    assert out[0].source == "mcp:llm"
    assert out[0].body.startswith("No tool fits")


def test_no_bindings_does_nothing() -> None:
    gw = _gateway(FakeTool("search_docs"))
    llm = FakeLlm()

    assert asyncio.run(McpResearchSkill(gw, llm).run("q", [])) == []
    assert llm.tool_specs == []
