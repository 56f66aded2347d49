"""MCP server configuration.

Note: the upstream `mcp` package name is reserved by the MCP Python SDK, so
the integration layer lives under `mcp_researcher.servers` / `mcp_researcher.tools`.
"""

from __future__ import annotations

from .config import McpServerConfig, detect_transport, parse_mcp_configs

__all__ = ["McpServerConfig", "detect_transport", "parse_mcp_configs"]
