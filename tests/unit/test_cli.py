from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from mcp_researcher.core.cli import load_mcp_config_file, main
from mcp_researcher.core.errors import McpConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("RETRIEVER", "MCP_STRATEGY", "OPENAI_API_KEY", "TAVILY_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the picture.
    monkeypatch.setattr("mcp_researcher.core.config.load_dotenv", lambda **_: False)
    # Each CLI run installs its handler on the current (captured) stderr.
    monkeypatch.setattr("mcp_researcher.observability.logging._configured", False)


class FakeResearcher:
    created: list[dict[str, Any]] = []

    def __init__(self, query: str, **kwargs: Any) -> None:
        self.query = query
        FakeResearcher.created.append({"query": query, **kwargs})

    async def conduct_research(self) -> list[dict[str, Any]]:
        return [{"title": "t", "href": "https://example.com", "body": "b", "source": "tavily"}]

    async def write_report(self) -> str:
        return "# Report"

    def get_costs(self) -> float:
        return 0.0042


def test_load_mcp_config_file_json_list(tmp_path: Path) -> None:
    p = tmp_path / "servers.json"
    p.write_text(json.dumps([{"name": "remote", "connection_url": "wss://mcp.example.com/ws"}]), encoding="utf-8")

    cfgs = load_mcp_config_file(p)

    assert [(c.name, c.transport) for c in cfgs] == [("remote", "websocket")]


def test_load_mcp_config_file_yaml_mapping(tmp_path: Path) -> None:
    p = tmp_path / "servers.yaml"
    p.write_text(
        """
mcp_servers:
  - name: local
    command: python
    args: ["server.py"]
""".lstrip(),
        encoding="utf-8",
    )

    cfgs = load_mcp_config_file(p)

    assert cfgs[0].to_connection() == {"transport": "stdio", "command": "python", "args": ["server.py"]}


def test_load_mcp_config_file_empty_is_error(tmp_path: Path) -> None:
    p = tmp_path / "servers.yaml"
    p.write_text("mcp_servers: []\n", encoding="utf-8")

    with pytest.raises(McpConfigError) as ei:
        load_mcp_config_file(p)

    assert "No MCP server configurations found" in str(ei.value)


def test_print_config_redacts_secrets(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("RETRIEVER", "tavily,mcp")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-secret")

    assert main(["print-config"]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out["retrievers"] == ["tavily", "mcp"]
    assert out["openai_api_key"] == "<redacted>"


def test_invalid_retriever_exits_with_config_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("RETRIEVER", "altavista")

    assert main(["print-config"]) == 2
    assert "Invalid retriever(s) found: altavista" in capsys.readouterr().err


def test_tools_without_servers_exits_with_config_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["tools"]) == 2
    assert "No MCP server configurations found" in capsys.readouterr().err


def test_run_prints_results_and_cost(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("mcp_researcher.agent.Researcher", FakeResearcher)
    FakeResearcher.created.clear()
    servers = tmp_path / "servers.json"
    servers.write_text(json.dumps({"mcp_servers": [{"name": "docs", "command": "docs-mcp"}]}), encoding="utf-8")

    assert main(["run", "what is mcp", "--mcp-config", str(servers), "--quiet"]) == 0

    captured = capsys.readouterr()
    assert json.loads(captured.out)[0]["href"] == "https://example.com"
    assert "cost_usd: 0.004200" in captured.err
    created = FakeResearcher.created[0]
    assert created["query"] == "what is mcp"
    assert created["verbose"] is False
    assert [c.name for c in created["mcp_configs"]] == ["docs"]


def test_run_report(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr("mcp_researcher.agent.Researcher", FakeResearcher)

    assert main(["run", "what is mcp", "--report"]) == 0
    assert capsys.readouterr().out.strip() == "# Report"


def test_run_without_openai_key_exits_with_config_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("RETRIEVER", "duckduckgo")

    assert main(["run", "mcp transports", "--quiet"]) == 2
    assert "OPENAI_API_KEY is not set" in capsys.readouterr().err
