from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import yaml

from mcp_researcher.observability import configure_logging, get_logger
from mcp_researcher.servers.config import McpServerConfig, parse_mcp_configs
from mcp_researcher.tools.mcp_gateway import McpGateway
from mcp_researcher.tools.specs import describe_tool

from .config import ResearchConfig, load_config
from .errors import ConfigError, McpConfigError, ResearcherError


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mcp-researcher", description="Research a query with web retrievers and MCP tools")
    p.add_argument("--log-level", default="WARNING", help="Log level")
    sub = p.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Conduct research for a query")
    run.add_argument("query", help="Research query")
    run.add_argument("--mcp-config", default=None, help="JSON/YAML file with MCP server configs")
    run.add_argument("--config", default=None, help="YAML config path")
    run.add_argument("--report", action="store_true", help="Write a markdown report instead of printing results")
    run.add_argument("--quiet", action="store_true", help="Less diagnostic output")

    tools = sub.add_parser("tools", help="List tools discovered on MCP servers")
    tools.add_argument("--mcp-config", default=None, help="JSON/YAML file with MCP server configs")
    tools.add_argument("--config", default=None, help="YAML config path")

    show = sub.add_parser("print-config", help="Print the resolved config with secrets redacted")
    show.add_argument("--config", default=None, help="YAML config path")
    return p


def load_mcp_config_file(path: str | Path) -> list[McpServerConfig]:
    """Read MCP server records from a JSON or YAML file.

    The file holds either a list of records or `{"mcp_servers": [...]}`.
    """

    p = Path(path)
    if not p.exists():
        raise McpConfigError("file does not exist", path=str(p))

    text = p.read_text(encoding="utf-8")
    try:
        raw: Any = json.loads(text) if p.suffix.lower() == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise McpConfigError(f"parse failed: {e}", path=str(p)) from e

    if isinstance(raw, dict):
        raw = raw.get("mcp_servers")
    if raw is not None and not isinstance(raw, list):
        raise McpConfigError("expected a list of MCP server records", path=str(p))
    return parse_mcp_configs(raw)


def _resolve(args: argparse.Namespace) -> tuple[ResearchConfig, list[McpServerConfig]]:
    cfg = load_config(args.config) if args.config else ResearchConfig.from_env()
    mcp_path = getattr(args, "mcp_config", None)
    if mcp_path:
        return cfg, load_mcp_config_file(mcp_path)
    if cfg.mcp_servers:
        return cfg, parse_mcp_configs(cfg.mcp_servers)
    return cfg, []


async def _run(args: argparse.Namespace) -> int:
    from mcp_researcher.agent import Researcher

    cfg, servers = _resolve(args)
    researcher = Researcher(args.query, mcp_configs=servers or None, verbose=not args.quiet, config=cfg)

    if args.report:
        print(await researcher.write_report())
    else:
        results = await researcher.conduct_research()
        print(json.dumps(results, ensure_ascii=False, indent=2))
    print(f"cost_usd: {researcher.get_costs():.6f}", file=sys.stderr)
    return 0


async def _tools(args: argparse.Namespace) -> int:
    _, servers = _resolve(args)
    if not servers:
        raise McpConfigError("No MCP server configurations found", path="mcp_configs")

    gateway = McpGateway(servers)
    await gateway.load()
    listing = {
        "tools": [describe_tool(b) for b in gateway.bindings()],
        "failed_servers": gateway.failed_servers,
    }
    print(json.dumps(listing, ensure_ascii=False, indent=2))
    return 0


def _print_config(args: argparse.Namespace) -> int:
    cfg = load_config(args.config) if args.config else ResearchConfig.from_env()
    print(json.dumps(cfg.redacted(), ensure_ascii=False, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(level=args.log_level)
    log = get_logger("mcp_researcher.cli")

    try:
        if args.command == "run":
            return asyncio.run(_run(args))
        if args.command == "tools":
            return asyncio.run(_tools(args))
        return _print_config(args)
    except ConfigError as e:
        log.error("config_error", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 2
    except ResearcherError as e:
        log.error("research_error", error=str(e), exc=type(e).__name__)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
