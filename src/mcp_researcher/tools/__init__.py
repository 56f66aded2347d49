"""MCP tool discovery, naming, selection and result decoding."""

from __future__ import annotations

from .mcp_gateway import McpGateway, McpToolBinding
from .selection import ToolSelector

__all__ = ["McpGateway", "McpToolBinding", "ToolSelector"]
