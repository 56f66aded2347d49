from __future__ import annotations

from typing import Any


class ResearcherError(Exception):
    """Base exception for this project."""


class ConfigError(ResearcherError):
    """Raised when configuration is invalid or incomplete."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.message = message
        self.path = path


class McpConfigError(ConfigError):
    """Raised when an MCP server configuration record is invalid."""


class McpConnectionError(ResearcherError):
    """Raised when no configured MCP server could be reached."""

    def __init__(self, servers: list[str], *, causes: dict[str, str] | None = None):
        names = ", ".join(servers) if servers else "<none>"
        super().__init__(f"MCP server connection failed: {names}")
        self.servers = list(servers)
        self.causes = dict(causes or {})


class McpToolError(ResearcherError):
    """Normalized MCP tool call failure.

    A small, stable set of error types lets callers map failures into
    ToolResult.error consistently.
    """

    def __init__(self, error_type: str, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.details = details or {}


class LlmError(ResearcherError):
    """Raised when an LLM call fails or returns unusable output."""


class ResearchError(ResearcherError):
    """Raised when a research run or report cannot be produced."""
