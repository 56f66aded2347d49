from __future__ import annotations

from enum import Enum
from typing import Any

from mcp_researcher.observability.logging import get_logger


class McpStrategy(str, Enum):
    """When MCP tools run during a research pass.

    - fast: once against the main query; results are reused for sub-queries.
    - deep: once per sub-query.
    - disabled: never.
    """

    FAST = "fast"
    DEEP = "deep"
    DISABLED = "disabled"


_LEGACY_ALIASES = {
    "optimized": McpStrategy.FAST,
    "comprehensive": McpStrategy.DEEP,
}


def parse_strategy(value: Any) -> McpStrategy:
    """Parse MCP_STRATEGY; unknown values fall back to `fast` with a warning."""

    if isinstance(value, McpStrategy):
        return value
    if value is None or str(value).strip() == "":
        return McpStrategy.FAST

    text = str(value).strip().lower()
    try:
        return McpStrategy(text)
    except ValueError:
        pass

    legacy = _LEGACY_ALIASES.get(text)
    if legacy is not None:
        get_logger("mcp_researcher.config").info("mcp_strategy_legacy_alias", value=text, strategy=legacy.value)
        return legacy

    get_logger("mcp_researcher.config").warning("mcp_strategy_unknown", value=text, strategy=McpStrategy.FAST.value)
    return McpStrategy.FAST
