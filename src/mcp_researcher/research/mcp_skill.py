from __future__ import annotations

import asyncio

from mcp_researcher.core.errors import LlmError
from mcp_researcher.core.types import SearchResult, ToolCall, ToolResult
from mcp_researcher.llm.client import ResearchLlm
from mcp_researcher.observability import get_logger
from mcp_researcher.observability.ids import new_tool_call_id
from mcp_researcher.tools.mcp_gateway import McpGateway, McpToolBinding
from mcp_researcher.tools.specs import string_parameter, tool_to_openai_spec

from .prompts import call_tools_messages


def _results_of(r: ToolResult) -> list[SearchResult]:
    data = r.content.get("data") if isinstance(r.content, dict) else None
    if not isinstance(data, list):
        return []
    return [SearchResult(**d) for d in data if isinstance(d, dict)]


class McpResearchSkill:
    """Run the selected MCP tools for one query.

    The LLM decides which tools to call and with which arguments. When it
    requests nothing, tools with a free-text parameter are called directly with
    the query.
    """

    def __init__(self, gateway: McpGateway, llm: ResearchLlm | None) -> None:
        self._gateway = gateway
        self._llm = llm
        self._log = get_logger("mcp_researcher.mcp")

    async def run(self, query: str, bindings: list[McpToolBinding]) -> list[SearchResult]:
        if not bindings:
            return []

        allowed = {b.model_name for b in bindings}
        llm_text = ""
        calls: list[ToolCall] = []

        if self._llm is not None:
            specs = [tool_to_openai_spec(b.tool, name_override=b.model_name) for b in bindings]
            try:
                llm_text, calls = await self._llm.invoke_with_tools(call_tools_messages(query), specs)
            except LlmError as e:
                self._log.warning("mcp_tool_calling_llm_failed", error=str(e))

        unknown = [c.name for c in calls if c.name not in allowed]
        if unknown:
            self._log.warning("mcp_tool_calls_dropped", tools=unknown)
        calls = [c for c in calls if c.name in allowed]

        if not calls:
            calls = self._direct_calls(query, bindings)

        results: list[SearchResult] = []
        if calls:
            tool_results = await asyncio.gather(
                *[self._gateway.call_tool(tool_call_id=c.id, name=c.name, arguments=c.arguments) for c in calls]
            )
            for r in tool_results:
                if r.ok:
                    results.extend(_results_of(r))

        if not results and llm_text.strip():
            results.append(SearchResult(title=f"Model answer: {query}", href="", body=llm_text.strip(), source="mcp:llm"))

        self._log.info("mcp_research_done", query=query, tool_calls=len(calls), results=len(results))
        return results

    def _direct_calls(self, query: str, bindings: list[McpToolBinding]) -> list[ToolCall]:
        calls: list[ToolCall] = []
        for b in bindings:
            param = string_parameter(b.tool)
            if param is None:
                continue
            calls.append(ToolCall(id=new_tool_call_id(), name=b.model_name, arguments={param: query}))
        return calls
