"""MCP server configuration records.

A record describes either a local server launched as a subprocess (`command`
+ `args`) or a remote one reached through `connection_url`. The transport is
inferred from the URL scheme unless `connection_type` overrides it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence
from urllib.parse import urlsplit

from mcp_researcher.core.errors import McpConfigError

__all__ = [
    "DEFAULT_TIMEOUT_S",
    "McpServerConfig",
    "REMOTE_TRANSPORTS",
    "TRANSPORTS",
    "detect_transport",
    "parse_mcp_configs",
]


TRANSPORTS = ("stdio", "websocket", "streamable_http", "sse")
REMOTE_TRANSPORTS = ("websocket", "streamable_http", "sse")

_TRANSPORT_ALIASES = {"http": "streamable_http"}
_SCHEME_TRANSPORTS = {
    "ws": "websocket",
    "wss": "websocket",
    "http": "streamable_http",
    "https": "streamable_http",
}
DEFAULT_TIMEOUT_S = 30.0

_SECRET_HINTS = ("key", "token", "secret", "password", "authorization")


def _normalize_type(connection_type: str, *, path: str) -> str:
    t = connection_type.strip().lower()
    t = _TRANSPORT_ALIASES.get(t, t)
    if t not in TRANSPORTS:
        raise McpConfigError(
            f"unsupported connection_type {connection_type!r} (expected one of: stdio, websocket, streamable_http, http, sse)",
            path=path,
        )
    return t


def detect_transport(connection_url: str | None, connection_type: str | None = None, *, path: str = "") -> str:
    """Resolve the transport for a server.

    An explicit `connection_type` wins; otherwise no URL means stdio and the
    URL scheme picks websocket (ws/wss) or streamable_http (http/https).
    """

    if connection_type:
        return _normalize_type(connection_type, path=f"{path}.connection_type" if path else "connection_type")

    if not connection_url:
        return "stdio"

    try:
        scheme = urlsplit(connection_url).scheme.lower()
    except ValueError as e:
        raise McpConfigError(f"invalid URL: {e}", path=f"{path}.connection_url" if path else "connection_url") from e
    transport = _SCHEME_TRANSPORTS.get(scheme)
    if transport is None:
        raise McpConfigError(
            f"cannot infer transport from URL scheme {scheme!r}",
            path=f"{path}.connection_url" if path else "connection_url",
        )
    return transport


def _str_mapping(value: Any, *, path: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, Mapping) or not all(isinstance(k, str) for k in value):
        raise McpConfigError("must be a mapping of strings", path=path)
    if not all(isinstance(v, (str, int, float, bool)) for v in value.values()):
        raise McpConfigError("values must be strings", path=path)
    return {k: str(v) for k, v in value.items()}


def _redact(values: Mapping[str, str]) -> dict[str, str]:
    return {k: ("<redacted>" if any(h in k.lower() for h in _SECRET_HINTS) else v) for k, v in values.items()}


@dataclass(frozen=True, slots=True)
class McpServerConfig:
    """One validated MCP server entry."""

    name: str
    transport: str
    command: str | None = None
    args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)
    connection_url: str | None = None
    connection_type: str | None = None
    connection_token: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    description: str = ""
    timeout_s: float = DEFAULT_TIMEOUT_S

    @property
    def is_remote(self) -> bool:
        return self.transport in REMOTE_TRANSPORTS

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], *, index: int = 0) -> "McpServerConfig":
        path = f"mcp_configs[{index}]"
        if not isinstance(raw, Mapping):
            raise McpConfigError("server config must be a mapping", path=path)

        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            raise McpConfigError("name must be a non-empty string", path=f"{path}.name")
        name = name.strip()

        command = raw.get("command")
        url = raw.get("connection_url")
        if command is not None and (not isinstance(command, str) or not command.strip()):
            raise McpConfigError("command must be a non-empty string", path=f"{path}.command")
        if url is not None and (not isinstance(url, str) or not url.strip()):
            raise McpConfigError("connection_url must be a non-empty string", path=f"{path}.connection_url")

        if command and url:
            raise McpConfigError("set either command or connection_url, not both", path=path)
        if not command and not url:
            raise McpConfigError("either command (local server) or connection_url (remote server) is required", path=path)

        args = raw.get("args", [])
        if args is None:
            args = []
        if not isinstance(args, (list, tuple)) or not all(isinstance(a, str) for a in args):
            raise McpConfigError("must be a list of strings", path=f"{path}.args")
        if url and args:
            raise McpConfigError("args only apply to command-based servers", path=f"{path}.args")

        connection_type = raw.get("connection_type")
        if connection_type is not None and not isinstance(connection_type, str):
            raise McpConfigError("must be a string", path=f"{path}.connection_type")

        transport = detect_transport(url, connection_type, path=path)
        if transport == "stdio" and not command:
            raise McpConfigError("stdio transport requires command", path=f"{path}.command")
        if transport != "stdio" and not url:
            raise McpConfigError(f"{transport} transport requires connection_url", path=f"{path}.connection_url")

        token = raw.get("connection_token")
        if token is not None and not isinstance(token, str):
            raise McpConfigError("must be a string", path=f"{path}.connection_token")

        description = raw.get("description", "")
        timeout_raw = raw.get("timeout_s", DEFAULT_TIMEOUT_S)
        try:
            timeout_s = float(timeout_raw)
        except (TypeError, ValueError) as e:
            raise McpConfigError(f"expected a number, got {timeout_raw!r}", path=f"{path}.timeout_s") from e
        if timeout_s <= 0:
            raise McpConfigError("must be > 0", path=f"{path}.timeout_s")

        return cls(
            name=name,
            transport=transport,
            command=command.strip() if command else None,
            args=tuple(args),
            env=_str_mapping(raw.get("env"), path=f"{path}.env"),
            connection_url=url.strip() if url else None,
            connection_type=connection_type,
            connection_token=token or None,
            headers=_str_mapping(raw.get("headers"), path=f"{path}.headers"),
            description=str(description or ""),
            timeout_s=timeout_s,
        )

    def to_connection(self) -> dict[str, Any]:
        """Connection dict for `MultiServerMCPClient`."""

        if self.transport == "stdio":
            conn: dict[str, Any] = {
                "transport": "stdio",
                "command": self.command,
                "args": list(self.args),
            }
            if self.env:
                conn["env"] = dict(self.env)
            return conn

        conn = {"transport": self.transport, "url": self.connection_url}
        if self.transport == "websocket":
            return conn

        headers = dict(self.headers)
        if self.connection_token:
            headers["Authorization"] = f"Bearer {self.connection_token}"
        if headers:
            conn["headers"] = headers
        return conn

    def redacted(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "transport": self.transport}
        if self.command:
            out["command"] = self.command
            out["args"] = list(self.args)
        if self.env:
            out["env"] = _redact(self.env)
        if self.connection_url:
            out["connection_url"] = self.connection_url
        if self.connection_token:
            out["connection_token"] = "<redacted>"
        if self.headers:
            out["headers"] = _redact(self.headers)
        return out


def parse_mcp_configs(raw: Sequence[Mapping[str, Any]] | None) -> list[McpServerConfig]:
    """Validate a sequence of server records, preserving order."""

    if not raw:
        raise McpConfigError("No MCP server configurations found", path="mcp_configs")
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise McpConfigError("must be a list of server configs", path="mcp_configs")

    out: list[McpServerConfig] = []
    seen: set[str] = set()
    for i, item in enumerate(raw):
        if isinstance(item, McpServerConfig):
            cfg = item
        else:
            cfg = McpServerConfig.from_mapping(item, index=i)
        if cfg.name in seen:
            raise McpConfigError(f"duplicate server name {cfg.name!r}", path=f"mcp_configs[{i}].name")
        seen.add(cfg.name)
        out.append(cfg)
    return out
