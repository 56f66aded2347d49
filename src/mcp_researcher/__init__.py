"""MCP-augmented research client.

Gathers research context from web retrievers and from tools exposed by MCP
servers, then synthesizes a report.
"""

from __future__ import annotations

from mcp_researcher.agent import Researcher
from mcp_researcher.core import __version__
from mcp_researcher.core.config import ResearchConfig, load_config
from mcp_researcher.servers.config import McpServerConfig, parse_mcp_configs

__all__ = [
    "McpServerConfig",
    "ResearchConfig",
    "Researcher",
    "__version__",
    "load_config",
    "parse_mcp_configs",
]
