from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .mcp_gateway import McpToolBinding

_EMPTY_PARAMETERS: dict[str, Any] = {"type": "object", "properties": {}}


def tool_to_openai_spec(tool: Any, *, name_override: str) -> dict[str, Any]:
    """Convert a LangChain tool into an OpenAI-compatible tool spec.

    LangChain's own converter is preferred; the tool's input schema is the fallback.
    """

    spec: dict[str, Any]

    try:
        from langchain_core.utils.function_calling import convert_to_openai_tool

        spec = convert_to_openai_tool(tool)
    except Exception:  # noqa: BLE001
        spec = {"type": "function", "function": {"parameters": tool_parameters(tool)}}

    fn = spec.get("function")
    if not isinstance(fn, dict):
        fn = {}
        spec["function"] = fn

    fn["name"] = name_override

    if not fn.get("description"):
        desc = getattr(tool, "description", None)
        fn["description"] = str(desc) if desc is not None else ""

    if not isinstance(fn.get("parameters"), dict):
        fn["parameters"] = dict(_EMPTY_PARAMETERS)

    spec.setdefault("type", "function")
    return spec


def tool_parameters(tool: Any) -> dict[str, Any]:
    """Best-effort JSON schema of a tool's arguments."""

    args_schema = getattr(tool, "args_schema", None)
    if isinstance(args_schema, dict):
        schema: Any = args_schema
    elif args_schema is not None and hasattr(args_schema, "model_json_schema"):
        try:
            schema = args_schema.model_json_schema()
        except Exception:  # noqa: BLE001
            schema = None
    else:
        schema = None

    if isinstance(schema, dict) and schema.get("type", "object") == "object":
        return schema
    return dict(_EMPTY_PARAMETERS)


def string_parameter(tool: Any) -> str | None:
    """Name of the parameter that should receive a free-text query, if any.

    Required string parameters win; names like `query` are preferred among them.
    """

    params = tool_parameters(tool)
    props = params.get("properties") or {}
    if not isinstance(props, dict):
        return None

    strings = [k for k, v in props.items() if isinstance(v, dict) and v.get("type") == "string"]
    if not strings:
        return None

    required = [k for k in params.get("required") or [] if k in strings]
    candidates = required or strings
    for preferred in ("query", "q", "search", "search_query", "question", "topic", "text", "input"):
        if preferred in candidates:
            return preferred
    return candidates[0]


def describe_tool(binding: "McpToolBinding") -> dict[str, Any]:
    params = tool_parameters(binding.tool)
    return {
        "name": binding.model_name,
        "server": binding.server,
        "description": binding.description,
        "parameters": sorted((params.get("properties") or {}).keys()),
    }
