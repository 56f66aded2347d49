from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable

from mcp_researcher.core.errors import McpConfigError, McpConnectionError, McpToolError
from mcp_researcher.core.types import ToolResult
from mcp_researcher.observability import add_error, get_logger
from mcp_researcher.servers.config import McpServerConfig

from .naming import McpNameMaps, build_name_maps, to_model_tool_name
from .result_codec import make_payload, normalize_error, results_from_tool_output

ClientFactory = Callable[[dict[str, dict[str, Any]]], Any]


def _default_client_factory(connections: dict[str, dict[str, Any]]) -> Any:
    try:
        from langchain_mcp_adapters.client import MultiServerMCPClient
    except ImportError as e:  # pragma: no cover
        raise RuntimeError(
            "Missing dependency 'langchain-mcp-adapters'. Install it with: pip install langchain-mcp-adapters"
        ) from e

    return MultiServerMCPClient(connections)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class McpToolBinding:
    server: str
    raw_name: str
    model_name: str
    description: str
    tool: Any


class McpGateway:
    """Async MCP gateway built on langchain-mcp-adapters.

    Responsibilities:
    - Connect to every configured server and discover its tools.
    - Apply model-facing name prefixing for multi-server setups.
    - Execute tools with per-server timeouts.
    - Return normalized ToolResult payloads; tool failures never raise.

    A server that cannot be reached is skipped. Loading only fails when no
    server yields any tool.
    """

    def __init__(self, servers: list[McpServerConfig], *, client_factory: ClientFactory | None = None) -> None:
        self._servers = {s.name: s for s in servers}
        self._client_factory = client_factory or _default_client_factory
        self._log = get_logger("mcp_researcher.mcp")

        self._multi = len(self._servers) > 1
        self._maps: McpNameMaps | None = None
        self._bindings: dict[str, McpToolBinding] = {}
        self._failed: dict[str, str] = {}

        self._lock = asyncio.Lock()
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def failed_servers(self) -> dict[str, str]:
        return dict(self._failed)

    def bindings(self) -> list[McpToolBinding]:
        return list(self._bindings.values())

    def get(self, model_name: str) -> McpToolBinding | None:
        return self._bindings.get(model_name)

    async def load(self) -> None:
        async with self._lock:
            if self._loaded:
                return
            if not self._servers:
                raise McpConnectionError([])

            self._maps = build_name_maps(list(self._servers.keys()))
            bindings: dict[str, McpToolBinding] = {}

            for name, server in self._servers.items():
                try:
                    # One client per server keeps an explicit server -> tools mapping.
                    client = self._client_factory({name: server.to_connection()})
                    tools = await asyncio.wait_for(client.get_tools(), timeout=server.timeout_s)
                except asyncio.CancelledError:
                    raise
                except Exception as e:  # noqa: BLE001
                    self._failed[name] = f"{type(e).__name__}: {e}"
                    add_error(f"mcp_server_failed:{name}")
                    self._log.warning(
                        "MCP server connection failed",
                        server=name,
                        transport=server.transport,
                        exc=type(e).__name__,
                        error=str(e),
                    )
                    continue

                count = 0
                for t in tools or []:
                    raw_name = getattr(t, "name", None)
                    if not isinstance(raw_name, str) or not raw_name:
                        continue

                    model_name = to_model_tool_name(server=name, tool_name=raw_name, maps=self._maps, multi=self._multi)
                    if model_name in bindings:
                        raise McpConfigError(
                            f"duplicate model tool name after prefixing: {model_name!r}", path=f"mcp_servers.{name}"
                        )

                    bindings[model_name] = McpToolBinding(
                        server=name,
                        raw_name=raw_name,
                        model_name=model_name,
                        description=str(getattr(t, "description", "") or server.description or ""),
                        tool=t,
                    )
                    count += 1

                if count == 0:
                    self._log.warning("No tools available from MCP server", server=name)

            if not bindings:
                raise McpConnectionError(list(self._servers.keys()), causes=self._failed)

            self._bindings = bindings
            self._loaded = True
            self._log.info(
                "mcp_tools_loaded",
                servers=len(self._servers),
                failed=len(self._failed),
                tools=len(self._bindings),
                multi=self._multi,
            )

    async def call_tool(self, *, tool_call_id: str, name: str, arguments: dict[str, Any]) -> ToolResult:
        await self.load()

        binding = self._bindings.get(name)
        if binding is None:
            return ToolResult(
                tool_call_id=tool_call_id,
                name=name,
                ok=False,
                content=make_payload(text="tool not found", data=[], meta={"tool_name": name}),
                error=normalize_error(error_type="not_found", message=f"MCP tool not found: {name!r}"),
            )

        server = self._servers[binding.server]
        meta = {
            "tool_call_id": tool_call_id,
            "tool_name": name,
            "server": binding.server,
            "raw_tool_name": binding.raw_name,
        }

        try:
            out = await self._invoke(binding, arguments, tool_call_id=tool_call_id, timeout_s=server.timeout_s)
        except McpToolError as e:
            self._log.warning(
                "Tool execution failed", tool=name, server=binding.server, error_type=e.error_type, error=e.message
            )
            return ToolResult(
                tool_call_id=tool_call_id,
                name=name,
                ok=False,
                content=make_payload(text=f"tool {e.error_type}", data=[], meta=meta),
                error=normalize_error(error_type=e.error_type, message=e.message, details=e.details),
            )

        results = results_from_tool_output(out, server=binding.server, tool=binding.raw_name)
        text = "\n\n".join(r.body for r in results)
        return ToolResult(
            tool_call_id=tool_call_id,
            name=name,
            ok=True,
            content=make_payload(text=text, data=[r.to_dict() for r in results], meta=meta),
            error=None,
        )

    async def _invoke(
        self, binding: McpToolBinding, arguments: dict[str, Any], *, tool_call_id: str, timeout_s: float
    ) -> Any:
        # A ToolCall input makes LangChain return a ToolMessage that keeps the MCP artifacts.
        call = {"type": "tool_call", "name": binding.raw_name, "args": arguments, "id": tool_call_id}
        try:
            return await asyncio.wait_for(binding.tool.ainvoke(call), timeout=timeout_s)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as e:
            raise McpToolError(
                "timeout",
                f"Tool execution failed: timed out after {timeout_s}s",
                details={"timeout_s": timeout_s},
            ) from e
        except Exception as e:  # noqa: BLE001
            raise McpToolError(
                "mcp_error",
                f"Tool execution failed: {e}",
                details={"exc": type(e).__name__},
            ) from e
