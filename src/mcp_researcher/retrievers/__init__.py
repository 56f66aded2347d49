"""Retriever registry.

Web retrievers and the MCP retriever share one async `search()` surface.
"""

from __future__ import annotations

from typing import Sequence

from mcp_researcher.core.config import VALID_RETRIEVERS, ResearchConfig
from mcp_researcher.llm.client import ResearchLlm
from mcp_researcher.observability import get_logger
from mcp_researcher.servers.config import McpServerConfig
from mcp_researcher.tools.mcp_gateway import ClientFactory

from .arxiv import ArxivRetriever
from .base import Retriever
from .bing import BingRetriever
from .duckduckgo import DuckDuckGoRetriever
from .google import GoogleRetriever
from .mcp_retriever import McpRetriever
from .tavily import TavilyRetriever

__all__ = [
    "ArxivRetriever",
    "BingRetriever",
    "DuckDuckGoRetriever",
    "GoogleRetriever",
    "McpRetriever",
    "Retriever",
    "TavilyRetriever",
    "VALID_RETRIEVERS",
    "build_retrievers",
    "build_web_retriever",
]


def build_web_retriever(name: str, cfg: ResearchConfig) -> Retriever:
    if name == "tavily":
        return TavilyRetriever(api_key=cfg.tavily_api_key)
    if name == "google":
        return GoogleRetriever(api_key=cfg.google_api_key, cx=cfg.google_cx_key)
    if name == "bing":
        return BingRetriever(api_key=cfg.bing_api_key)
    if name == "duckduckgo":
        return DuckDuckGoRetriever()
    if name == "arxiv":
        return ArxivRetriever()
    raise ValueError(f"Unknown retriever: {name}")


def build_retrievers(
    cfg: ResearchConfig,
    *,
    mcp_configs: Sequence[McpServerConfig] | None,
    llm: ResearchLlm | None,
    client_factory: ClientFactory | None = None,
) -> list[Retriever]:
    """Instantiate retrievers in `cfg.retrievers` order.

    `mcp` without server configs is skipped with a warning.
    """

    log = get_logger("mcp_researcher.retrievers")
    out: list[Retriever] = []
    for name in cfg.retrievers:
        if name == "mcp":
            if not mcp_configs:
                log.warning("No MCP server configurations found", hint="pass mcp_configs or set mcp_servers in the config file")
                continue
            out.append(McpRetriever(list(mcp_configs), cfg=cfg, llm=llm, client_factory=client_factory))
            continue
        out.append(build_web_retriever(name, cfg))

    log.info("retrievers_built", retrievers=[r.name for r in out])
    return out
