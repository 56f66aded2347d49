from __future__ import annotations

import asyncio
import json

import pytest

from mcp_fakes import FakeClient, FakeClientFactory, FakeTool

from mcp_researcher.core.errors import McpConfigError, McpConnectionError
from mcp_researcher.servers.config import parse_mcp_configs
from mcp_researcher.tools.mcp_gateway import McpGateway


def _servers(*names: str, timeout_s: float = 5.0):
    return parse_mcp_configs(
        [{"name": n, "connection_url": f"https://{n}.example.com/mcp", "timeout_s": timeout_s} for n in names]
    )


def test_single_server_uses_raw_tool_names() -> None:
    factory = FakeClientFactory({"docs": FakeClient([FakeTool("search_docs"), FakeTool("get_page")])})
    gw = McpGateway(_servers("docs"), client_factory=factory)

    asyncio.run(gw.load())

    assert [b.model_name for b in gw.bindings()] == ["search_docs", "get_page"]
    assert factory.connections == [{"docs": {"transport": "streamable_http", "url": "https://docs.example.com/mcp"}}]


def test_multi_server_prefixes_and_skips_failed_server() -> None:
    factory = FakeClientFactory(
        {
            "github": FakeClient([FakeTool("search_code")]),
            "broken": FakeClient(fail=ConnectionError("refused")),
            "notes": FakeClient([FakeTool("search_code")]),
        }
    )
    gw = McpGateway(_servers("github", "broken", "notes"), client_factory=factory)

    asyncio.run(gw.load())

    assert [b.model_name for b in gw.bindings()] == ["github__search_code", "notes__search_code"]
    assert list(gw.failed_servers) == ["broken"]
    assert "refused" in gw.failed_servers["broken"]


def test_load_raises_when_no_server_yields_tools() -> None:
    factory = FakeClientFactory(
        {
            "a": FakeClient(fail=ConnectionError("down")),
            "b": FakeClient([]),
        }
    )
    gw = McpGateway(_servers("a", "b"), client_factory=factory)

    with pytest.raises(McpConnectionError) as ei:
        asyncio.run(gw.load())

    assert "MCP server connection failed" in str(ei.value)
    assert ei.value.servers == ["a", "b"]
    assert gw.loaded is False


def test_load_is_idempotent() -> None:
    factory = FakeClientFactory({"docs": FakeClient([FakeTool("search_docs")])})
    gw = McpGateway(_servers("docs"), client_factory=factory)

    async def _run() -> None:
        await gw.load()
        await gw.load()

    asyncio.run(_run())
    assert len(factory.connections) == 1


def test_call_tool_success_returns_results() -> None:
    tool = FakeTool(
        "search_docs",
        output=json.dumps([{"title": "Intro", "url": "https://docs.example.com/intro", "content": "hello"}]),
    )
    gw = McpGateway(_servers("docs"), client_factory=FakeClientFactory({"docs": FakeClient([tool])}))

    res = asyncio.run(gw.call_tool(tool_call_id="call_1", name="search_docs", arguments={"query": "intro"}))

    assert res.ok is True
    assert res.error is None
    assert tool.calls == [{"query": "intro"}]
    assert res.content["data"] == [
        {"title": "Intro", "href": "https://docs.example.com/intro", "body": "hello", "source": "mcp:docs:search_docs"}
    ]
    assert res.content["meta"]["server"] == "docs"


def test_call_tool_unknown_name_is_not_found() -> None:
    gw = McpGateway(_servers("docs"), client_factory=FakeClientFactory({"docs": FakeClient([FakeTool("a")])}))

    res = asyncio.run(gw.call_tool(tool_call_id="1", name="missing", arguments={}))

    assert res.ok is False
    assert res.error and res.error["type"] == "not_found"


def test_call_tool_exception_is_normalized() -> None:
    tool = FakeTool("search_docs", fail=RuntimeError("boom"))
    gw = McpGateway(_servers("docs"), client_factory=FakeClientFactory({"docs": FakeClient([tool])}))

    res = asyncio.run(gw.call_tool(tool_call_id="1", name="search_docs", arguments={"query": "x"}))

    assert res.ok is False
    assert res.error is not None
    assert res.error["type"] == "mcp_error"
    assert res.error["message"] == "Tool execution failed: boom"
    assert res.error["details"] == {"exc": "RuntimeError"}


def test_call_tool_timeout_is_normalized() -> None:
    tool = FakeTool("slow", delay_s=0.5)
    gw = McpGateway(_servers("docs", timeout_s=0.05), client_factory=FakeClientFactory({"docs": FakeClient([tool])}))

    res = asyncio.run(gw.call_tool(tool_call_id="1", name="slow", arguments={"query": "x"}))

    assert res.ok is False
    assert res.error and res.error["type"] == "timeout"


def test_duplicate_tool_names_are_config_error() -> None:
    factory = FakeClientFactory({"docs": FakeClient([FakeTool("search"), FakeTool("search")])})
    gw = McpGateway(_servers("docs"), client_factory=factory)

    with pytest.raises(McpConfigError) as ei:
        asyncio.run(gw.load())

    assert ei.value.path == "mcp_servers.docs"
    assert gw.loaded is False
