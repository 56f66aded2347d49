from __future__ import annotations

from mcp_researcher.core.config import ResearchConfig
from mcp_researcher.core.errors import McpConnectionError, ResearcherError
from mcp_researcher.core.types import SearchResult
from mcp_researcher.llm.client import ResearchLlm
from mcp_researcher.observability import add_error, get_logger
from mcp_researcher.research.mcp_skill import McpResearchSkill
from mcp_researcher.servers.config import McpServerConfig
from mcp_researcher.tools.mcp_gateway import ClientFactory, McpGateway, McpToolBinding
from mcp_researcher.tools.selection import ToolSelector


class McpRetriever:
    """Retriever backed by tools on MCP servers.

    Two stages per query: pick the relevant tools, then let the research skill
    call them. The gateway connects lazily on the first search.
    """

    name = "mcp"

    def __init__(
        self,
        configs: list[McpServerConfig],
        *,
        cfg: ResearchConfig,
        llm: ResearchLlm | None,
        client_factory: ClientFactory | None = None,
        gateway: McpGateway | None = None,
    ) -> None:
        self._configs = list(configs)
        self._cfg = cfg
        self._gateway = gateway or McpGateway(self._configs, client_factory=client_factory)
        self._selector = ToolSelector(llm, max_tools=cfg.mcp_max_tools)
        self._skill = McpResearchSkill(self._gateway, llm)
        self._log = get_logger("mcp_researcher.mcp")
        self.last_error: str | None = None
        self.last_selected: list[str] = []

    @property
    def gateway(self) -> McpGateway:
        return self._gateway

    async def available_tools(self) -> list[McpToolBinding]:
        await self._gateway.load()
        return self._gateway.bindings()

    async def search(self, query: str, *, max_results: int = 5) -> list[SearchResult]:
        try:
            await self._gateway.load()
        except ResearcherError as e:
            # Unreachable servers or a broken tool catalogue: the run continues on web results.
            self.last_error = str(e)
            add_error("mcp_unavailable")
            causes = e.causes if isinstance(e, McpConnectionError) else {}
            self._log.error("mcp_unavailable", error=str(e), causes=causes)
            return []

        selected = await self._selector.select(
            query, self._gateway.bindings(), auto=self._cfg.mcp_auto_tool_selection
        )
        self.last_selected = [b.model_name for b in selected]
        if not selected:
            return []

        results = await self._skill.run(query, selected)
        limit = max_results * len(selected)
        return results[:limit]
