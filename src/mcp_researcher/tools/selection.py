"""Pick the MCP tools worth calling for a query.

The LLM ranks tools when there are more than `max_tools`; a keyword overlap
score is the fallback when the model fails or returns nothing usable.
"""

from __future__ import annotations

import re
from typing import Any

from mcp_researcher.core.errors import LlmError
from mcp_researcher.llm.client import ResearchLlm
from mcp_researcher.observability import get_logger
from mcp_researcher.research.prompts import select_tools_messages

from .mcp_gateway import McpToolBinding
from .specs import describe_tool

_WORD_RE = re.compile(r"[a-z0-9]+")
_RESEARCH_WORDS = frozenset({"search", "find", "get", "query", "fetch", "lookup", "read", "list"})
_STOPWORDS = frozenset({"the", "a", "an", "of", "and", "or", "to", "in", "on", "for", "is", "are", "what", "how", "with"})


def _words(text: str) -> set[str]:
    return {w for w in _WORD_RE.findall(text.lower()) if w not in _STOPWORDS}


def keyword_score(query: str, binding: McpToolBinding) -> float:
    tool_words = _words(binding.raw_name.replace("_", " ")) | _words(binding.description)
    overlap = len(_words(query) & tool_words)
    bonus = 0.5 * len(tool_words & _RESEARCH_WORDS)
    return overlap + bonus


class ToolSelector:
    def __init__(self, llm: ResearchLlm | None, *, max_tools: int = 3) -> None:
        self._llm = llm
        self._max_tools = max(1, int(max_tools))
        self._log = get_logger("mcp_researcher.mcp")

    @property
    def max_tools(self) -> int:
        return self._max_tools

    async def select(self, query: str, bindings: list[McpToolBinding], *, auto: bool = True) -> list[McpToolBinding]:
        if not bindings:
            return []
        if not auto or len(bindings) <= self._max_tools:
            return list(bindings)

        selected: list[McpToolBinding] = []
        if self._llm is not None:
            try:
                raw = await self._llm.complete_json(
                    select_tools_messages(query, [describe_tool(b) for b in bindings], max_tools=self._max_tools)
                )
                selected = self._parse_selection(raw, bindings)
            except LlmError as e:
                self._log.warning("mcp_tool_selection_llm_failed", error=str(e))

        if not selected:
            selected = self.fallback(query, bindings)
            self._log.info("mcp_tools_selected", method="keyword", tools=[b.model_name for b in selected])
        else:
            self._log.info("mcp_tools_selected", method="llm", tools=[b.model_name for b in selected])
        return selected

    def fallback(self, query: str, bindings: list[McpToolBinding]) -> list[McpToolBinding]:
        scored = [(keyword_score(query, b), i, b) for i, b in enumerate(bindings)]
        # Ties keep discovery order.
        scored.sort(key=lambda x: (-x[0], x[1]))
        return [b for _, _, b in scored[: self._max_tools]]

    def _parse_selection(self, raw: Any, bindings: list[McpToolBinding]) -> list[McpToolBinding]:
        entries = raw.get("selected_tools") if isinstance(raw, dict) else raw
        if not isinstance(entries, list):
            return []

        by_name = {b.model_name: b for b in bindings}
        picked: list[tuple[float, int, McpToolBinding]] = []
        seen: set[str] = set()

        for order, entry in enumerate(entries):
            if not isinstance(entry, dict):
                continue

            binding: McpToolBinding | None = None
            index = entry.get("index")
            if isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(bindings):
                binding = bindings[index]
            name = entry.get("name")
            if isinstance(name, str) and name in by_name:
                # The name is authoritative when index and name disagree.
                binding = by_name[name]
            if binding is None or binding.model_name in seen:
                continue

            try:
                score = float(entry.get("relevance_score", 0))
            except (TypeError, ValueError):
                score = 0.0
            seen.add(binding.model_name)
            picked.append((score, order, binding))

        picked.sort(key=lambda x: (-x[0], x[1]))
        return [b for _, _, b in picked[: self._max_tools]]
