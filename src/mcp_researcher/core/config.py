from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from mcp_researcher.research.strategy import McpStrategy, parse_strategy

from .errors import ConfigError

# re-export for contract/tests
__all__ = [
    "ConfigError",
    "DEFAULT_RETRIEVER",
    "HYBRID_RETRIEVERS",
    "ResearchConfig",
    "VALID_RETRIEVERS",
    "load_config",
    "parse_bool",
    "parse_retrievers",
]


VALID_RETRIEVERS: tuple[str, ...] = ("tavily", "google", "bing", "duckduckgo", "arxiv", "mcp")
DEFAULT_RETRIEVER = "tavily"
HYBRID_RETRIEVERS: tuple[str, ...] = ("tavily", "mcp")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# settings key -> environment variable
_ENV_KEYS: dict[str, str] = {
    "retriever": "RETRIEVER",
    "mcp_strategy": "MCP_STRATEGY",
    "mcp_auto_tool_selection": "MCP_AUTO_TOOL_SELECTION",
    "mcp_max_tools": "MCP_MAX_TOOLS",
    "max_subqueries": "MAX_SUBQUERIES",
    "max_search_results_per_query": "MAX_SEARCH_RESULTS_PER_QUERY",
    "max_concurrency": "MAX_CONCURRENCY",
    "llm_model": "LLM_MODEL",
    "llm_temperature": "LLM_TEMPERATURE",
    "openai_api_key": "OPENAI_API_KEY",
    "openai_base_url": "OPENAI_BASE_URL",
    "tavily_api_key": "TAVILY_API_KEY",
    "google_api_key": "GOOGLE_API_KEY",
    "google_cx_key": "GOOGLE_CX_KEY",
    "bing_api_key": "BING_API_KEY",
}


def parse_retrievers(value: str | list[str] | tuple[str, ...] | None, *, path: str = "RETRIEVER") -> tuple[str, ...]:
    """Parse a comma-separated retriever list.

    Names are trimmed and lower-cased; duplicates keep their first position.
    """

    if value is None:
        raise ConfigError("No retriever specified", path=path)

    items = value.split(",") if isinstance(value, str) else [str(v) for v in value]

    out: list[str] = []
    for item in items:
        name = item.strip().lower()
        if name and name not in out:
            out.append(name)

    if not out:
        raise ConfigError("No retriever specified", path=path)

    invalid = [n for n in out if n not in VALID_RETRIEVERS]
    if invalid:
        raise ConfigError(
            f"Invalid retriever(s) found: {', '.join(invalid)}. Valid retrievers: {', '.join(VALID_RETRIEVERS)}",
            path=path,
        )

    return tuple(out)


def parse_bool(value: Any, *, path: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"expected a boolean, got {value!r}", path=path)


def _int(value: Any, *, path: str, minimum: int = 1) -> int:
    try:
        out = int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ConfigError(f"expected an integer, got {value!r}", path=path) from e
    if out < minimum:
        raise ConfigError(f"must be >= {minimum}", path=path)
    return out


def _float(value: Any, *, path: str) -> float:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ConfigError(f"expected a number, got {value!r}", path=path) from e


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class ResearchConfig:
    """Resolved research settings.

    `retriever_explicit` records whether the retriever list came from the
    operator (RETRIEVER / YAML) rather than the built-in default.
    """

    retrievers: tuple[str, ...] = (DEFAULT_RETRIEVER,)
    retriever_explicit: bool = False
    mcp_strategy: McpStrategy = McpStrategy.FAST
    mcp_auto_tool_selection: bool = True
    mcp_max_tools: int = 3
    max_subqueries: int = 3
    max_search_results_per_query: int = 5
    max_concurrency: int = 3
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.2
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    tavily_api_key: str | None = None
    google_api_key: str | None = None
    google_cx_key: str | None = None
    bing_api_key: str | None = None
    report_max_context_chars: int = 25000
    mcp_servers: tuple[dict[str, Any], ...] = field(default_factory=tuple)

    @property
    def mcp_enabled(self) -> bool:
        return "mcp" in self.retrievers and self.mcp_strategy is not McpStrategy.DISABLED

    def with_retrievers(self, retrievers: tuple[str, ...] | list[str], *, explicit: bool = True) -> "ResearchConfig":
        return replace(self, retrievers=parse_retrievers(list(retrievers)), retriever_explicit=explicit)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, load_env_file: bool = True) -> "ResearchConfig":
        if environ is None:
            if load_env_file:
                load_dotenv(override=False)
            environ = os.environ
        return _build(_settings_from_env(environ))

    def redacted(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for k, v in self.__dict__.items():
            if k.endswith("_key") and v:
                out[k] = "<redacted>"
            elif isinstance(v, McpStrategy):
                out[k] = v.value
            elif k == "mcp_servers":
                out[k] = [_redact_mapping(s) for s in v]
            elif isinstance(v, tuple):
                out[k] = list(v)
            else:
                out[k] = v
        return out


def _redact_mapping(obj: Any) -> Any:
    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            if isinstance(k, str) and any(p in k.lower() for p in ("key", "token", "secret", "password")):
                out[k] = "<redacted>"
            else:
                out[k] = _redact_mapping(v)
        return out
    if isinstance(obj, list):
        return [_redact_mapping(x) for x in obj]
    return obj


def _settings_from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    settings: dict[str, Any] = {}
    for key, env_name in _ENV_KEYS.items():
        value = environ.get(env_name)
        if value is not None and value.strip() != "":
            settings[key] = value
    return settings


def _build(settings: Mapping[str, Any], *, mcp_servers: list[dict[str, Any]] | None = None) -> ResearchConfig:
    d = ResearchConfig()

    explicit = "retriever" in settings
    retrievers = parse_retrievers(settings["retriever"], path="retriever") if explicit else d.retrievers

    return ResearchConfig(
        retrievers=retrievers,
        retriever_explicit=explicit,
        mcp_strategy=parse_strategy(settings.get("mcp_strategy")),
        mcp_auto_tool_selection=parse_bool(
            settings.get("mcp_auto_tool_selection", d.mcp_auto_tool_selection), path="mcp_auto_tool_selection"
        ),
        mcp_max_tools=_int(settings.get("mcp_max_tools", d.mcp_max_tools), path="mcp_max_tools"),
        max_subqueries=_int(settings.get("max_subqueries", d.max_subqueries), path="max_subqueries", minimum=0),
        max_search_results_per_query=_int(
            settings.get("max_search_results_per_query", d.max_search_results_per_query),
            path="max_search_results_per_query",
        ),
        max_concurrency=_int(settings.get("max_concurrency", d.max_concurrency), path="max_concurrency"),
        llm_model=str(settings.get("llm_model", d.llm_model)),
        llm_temperature=_float(settings.get("llm_temperature", d.llm_temperature), path="llm_temperature"),
        openai_api_key=_opt_str(settings.get("openai_api_key")),
        openai_base_url=_opt_str(settings.get("openai_base_url")),
        tavily_api_key=_opt_str(settings.get("tavily_api_key")),
        google_api_key=_opt_str(settings.get("google_api_key")),
        google_cx_key=_opt_str(settings.get("google_cx_key")),
        bing_api_key=_opt_str(settings.get("bing_api_key")),
        report_max_context_chars=_int(
            settings.get("report_max_context_chars", d.report_max_context_chars), path="report_max_context_chars"
        ),
        mcp_servers=tuple(mcp_servers or ()),
    )


def _expand_env_in_str(value: str, *, path: str) -> str:
    def repl(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in os.environ:
            raise ConfigError(f"environment variable {key!r} is missing", path=path)
        if os.environ[key] == "":
            raise ConfigError(f"environment variable {key!r} is empty", path=path)
        return os.environ[key]

    return _ENV_PATTERN.sub(repl, value)


def _expand_env(obj: Any, *, path: str) -> Any:
    if isinstance(obj, str):
        return _expand_env_in_str(obj, path=path)
    if isinstance(obj, list):
        return [_expand_env(v, path=f"{path}[{i}]") for i, v in enumerate(obj)]
    if isinstance(obj, dict):
        return {k: _expand_env(v, path=f"{path}.{k}" if path else str(k)) for k, v in obj.items()}
    return obj


def load_config(path: str | Path, *, load_dotenv_file: bool = True) -> ResearchConfig:
    """Load a YAML config file on top of the environment.

    Keys under `research:` override the matching environment variables.
    `mcp_servers:` is an optional list of MCP server records.
    `${ENV_VAR}` placeholders are expanded strictly.
    """

    if load_dotenv_file:
        # Local dev: allow injecting secrets from .env (do not commit it).
        load_dotenv(override=False)

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError("config file does not exist", path=str(config_path))

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML parse failed: {e}", path=str(config_path)) from e

    if not isinstance(raw, dict):
        raise ConfigError("top level must be a YAML mapping", path=str(config_path))

    expanded = _expand_env(raw, path="")

    research_raw = expanded.get("research") or {}
    if not isinstance(research_raw, dict):
        raise ConfigError("must be a mapping", path="research")

    unknown = sorted(set(research_raw) - set(_ENV_KEYS) - {"report_max_context_chars"})
    if unknown:
        raise ConfigError(f"unknown keys: {', '.join(unknown)}", path="research")

    servers_raw = expanded.get("mcp_servers") or []
    if not isinstance(servers_raw, list) or not all(isinstance(s, dict) for s in servers_raw):
        raise ConfigError("must be a list of mappings", path="mcp_servers")

    settings = _settings_from_env(os.environ)
    settings.update({k: v for k, v in research_raw.items() if v is not None})

    return _build(settings, mcp_servers=[dict(s) for s in servers_raw])
