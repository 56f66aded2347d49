"""Research session: the public entry point of the package."""

from __future__ import annotations

import time
from typing import Any, Mapping, Sequence

from mcp_researcher.core.config import HYBRID_RETRIEVERS, ResearchConfig
from mcp_researcher.core.errors import LlmError, ResearchError
from mcp_researcher.core.types import SearchResult
from mcp_researcher.llm.client import LlmClient, ResearchLlm
from mcp_researcher.llm.costs import CostTracker
from mcp_researcher.observability import bind_context, get_logger, set_stage
from mcp_researcher.observability.ids import new_session_id, new_trace_id
from mcp_researcher.observability.logging import ensure_logging, set_package_level
from mcp_researcher.orchestrator import ResearchGraph
from mcp_researcher.research.hybrid import build_context
from mcp_researcher.research.prompts import report_messages
from mcp_researcher.retrievers import Retriever, build_retrievers
from mcp_researcher.servers.config import McpServerConfig, parse_mcp_configs


class Researcher:
    """One research session over a single query.

    Web retrievers and MCP servers are combined according to the resolved
    config. MCP server configs are validated here, so a bad config fails at
    construction rather than halfway through a run.
    """

    def __init__(
        self,
        query: str,
        *,
        mcp_configs: Sequence[Mapping[str, Any] | McpServerConfig] | None = None,
        verbose: bool = True,
        config: ResearchConfig | None = None,
        llm: ResearchLlm | None = None,
        retrievers: Sequence[Retriever] | None = None,
        report_type: str = "research_report",
    ) -> None:
        if not isinstance(query, str) or not query.strip():
            raise ResearchError("query must be a non-empty string")

        self.query = query.strip()
        self.verbose = bool(verbose)
        self.report_type = report_type
        self.session_id = new_session_id()
        self._log = get_logger("mcp_researcher.agent")
        if self.verbose:
            ensure_logging()
        set_package_level(self.verbose)

        cfg = config or ResearchConfig.from_env()

        if mcp_configs:
            self.mcp_configs: list[McpServerConfig] = parse_mcp_configs(mcp_configs)
        elif cfg.mcp_servers:
            self.mcp_configs = parse_mcp_configs(cfg.mcp_servers)
        else:
            self.mcp_configs = []

        if self.mcp_configs and not cfg.retriever_explicit:
            cfg = cfg.with_retrievers(HYBRID_RETRIEVERS, explicit=False)
        elif self.mcp_configs and "mcp" not in cfg.retrievers:
            self._log.warning(
                "mcp_configs_ignored",
                reason="RETRIEVER does not include mcp",
                retrievers=list(cfg.retrievers),
            )
        self.cfg = cfg

        costs = getattr(llm, "costs", None)
        self.costs: CostTracker = costs if isinstance(costs, CostTracker) else CostTracker()
        self._llm: ResearchLlm = llm if llm is not None else LlmClient.from_config(cfg, cost_tracker=self.costs)

        if retrievers is not None:
            self._retrievers = list(retrievers)
        else:
            self._retrievers = build_retrievers(
                cfg, mcp_configs=self.mcp_configs if "mcp" in cfg.retrievers else None, llm=self._llm
            )

        self._researched = False
        self._context: list[SearchResult] = []
        self._mcp_results: list[SearchResult] = []
        self._sub_queries: list[str] = []
        self._visited: dict[str, str] = {}

        self._log.debug(
            "researcher_created",
            session_id=self.session_id,
            retrievers=[r.name for r in self._retrievers],
            mcp_servers=[c.redacted() for c in self.mcp_configs],
            mcp_strategy=cfg.mcp_strategy.value,
            report_type=report_type,
        )

    @property
    def retrievers(self) -> list[Retriever]:
        return list(self._retrievers)

    async def conduct_research(self) -> list[dict[str, Any]]:
        """Gather context for the query; returns the merged results as dicts."""

        bind_context(trace_id=new_trace_id(), session_id=self.session_id)
        set_stage("RESEARCH")

        if not self._retrievers:
            self._log.warning("no_retrievers", retrievers=list(self.cfg.retrievers))

        self._log.info(
            "research_started",
            query=self.query,
            retrievers=[r.name for r in self._retrievers],
            mcp_strategy=self.cfg.mcp_strategy.value,
        )

        t0 = time.perf_counter()
        out = await ResearchGraph(cfg=self.cfg, retrievers=self._retrievers, llm=self._llm).run(self.query)

        self._context = out.results
        self._mcp_results = out.mcp_results
        self._sub_queries = out.sub_queries
        for r in out.results:
            if r.href and r.href not in self._visited:
                self._visited[r.href] = r.title
        self._researched = True

        self._log.info(
            "research_done",
            latency_ms=round((time.perf_counter() - t0) * 1000, 2),
            results=len(out.results),
            mcp_results=len(out.mcp_results),
            sub_queries=len(out.sub_queries),
            errors=out.errors,
            cost=self.get_costs(),
        )
        return [r.to_dict() for r in out.results]

    async def write_report(self, custom_prompt: str | None = None) -> str:
        if not self._researched:
            await self.conduct_research()
        if not self._context:
            raise ResearchError("No research context available to write a report")

        set_stage("REPORT")
        context = build_context(self._context, max_chars=self.cfg.report_max_context_chars)
        try:
            body = await self._llm.complete(report_messages(self.query, context, custom_prompt=custom_prompt))
        except LlmError as e:
            raise ResearchError(f"Report generation failed: {e}") from e

        if not body.strip():
            raise ResearchError("Report generation returned no text")

        report = body.strip()
        references = self._references()
        if references:
            report = f"{report}\n\n{references}"

        self._log.info("report_written", chars=len(report), sources=len(self._visited), cost=self.get_costs())
        return report

    def _references(self) -> str:
        if not self._visited:
            return ""
        lines = ["## References", ""]
        for url, title in self._visited.items():
            lines.append(f"- [{title or url}]({url})")
        return "\n".join(lines)

    def get_costs(self) -> float:
        return self.costs.total

    def get_research_sources(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self._context]

    def get_source_urls(self) -> list[str]:
        return list(self._visited)

    def get_mcp_results(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self._mcp_results]

    def get_research_context(self) -> str:
        return build_context(self._context, max_chars=self.cfg.report_max_context_chars)

    def get_sub_queries(self) -> list[str]:
        return list(self._sub_queries)
