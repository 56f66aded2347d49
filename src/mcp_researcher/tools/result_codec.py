"""Turn raw MCP tool output into research results."""

from __future__ import annotations

import json
from typing import Any

from langchain_core.messages import ToolMessage
from mcp.types import EmbeddedResource, ResourceLink, TextResourceContents

from mcp_researcher.core.types import SearchResult

MAX_BODY_CHARS = 8000

_URL_KEYS = ("url", "href", "link", "source_url")
_TITLE_KEYS = ("title", "name", "heading")
_BODY_KEYS = ("content", "snippet", "body", "text", "summary", "description", "abstract")


def _first(obj: dict[str, Any], keys: tuple[str, ...]) -> str:
    for k in keys:
        v = obj.get(k)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return ""


def _truncate(text: str) -> str:
    if len(text) > MAX_BODY_CHARS:
        return text[:MAX_BODY_CHARS] + "..."
    return text


def _dumps(obj: Any) -> str:
    try:
        return json.dumps(obj, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(obj)


def _is_record(obj: Any) -> bool:
    return isinstance(obj, dict) and bool(_first(obj, _URL_KEYS) or _first(obj, _BODY_KEYS))


def _artifact_records(artifact: Any) -> list[dict[str, Any]]:
    """Records for MCP resources the adapter keeps out of the text content."""

    if artifact is None:
        return []
    items = artifact if isinstance(artifact, list) else [artifact]
    out: list[dict[str, Any]] = []
    for a in items:
        if isinstance(a, EmbeddedResource) and isinstance(a.resource, TextResourceContents):
            out.append({"url": str(a.resource.uri), "content": a.resource.text})
        elif isinstance(a, ResourceLink):
            out.append({"url": str(a.uri), "title": getattr(a, "title", None) or a.name, "description": a.description or ""})
    return out


def _flatten(output: Any) -> list[Any]:
    """Unwrap MCP/LangChain content blocks into plain strings and dicts."""

    if output is None:
        return []
    if isinstance(output, ToolMessage):
        return _flatten(output.content) + _artifact_records(output.artifact)
    if isinstance(output, tuple) and len(output) == 2:
        # langchain-mcp-adapters tools produce (content, artifact).
        return _flatten(output[0]) + _artifact_records(output[1])
    if isinstance(output, list):
        items: list[Any] = []
        for block in output:
            items.extend(_flatten(block))
        return items
    if isinstance(output, dict):
        if output.get("type") == "text" and isinstance(output.get("text"), str):
            return [output["text"]]
        return [output]

    text = getattr(output, "text", None)
    if isinstance(text, str):
        return [text]
    content = getattr(output, "content", None)
    if content is not None and not isinstance(output, str):
        return _flatten(content)
    return [output]


def _from_json_text(text: str) -> Any:
    stripped = text.strip()
    if not stripped or stripped[0] not in "[{":
        return None
    try:
        return json.loads(stripped)
    except ValueError:
        return None


def _records(obj: Any) -> list[dict[str, Any]] | None:
    if isinstance(obj, list) and obj and all(_is_record(x) for x in obj):
        return obj
    if isinstance(obj, dict):
        for key in ("results", "items", "data", "documents"):
            inner = obj.get(key)
            if isinstance(inner, list) and inner and all(_is_record(x) for x in inner):
                return inner
        if _is_record(obj):
            return [obj]
    return None


def results_from_tool_output(output: Any, *, server: str, tool: str) -> list[SearchResult]:
    source = f"mcp:{server}:{tool}"
    results: list[SearchResult] = []

    for item in _flatten(output):
        if isinstance(item, str):
            decoded = _from_json_text(item)
            records = _records(decoded) if decoded is not None else None
            if records is None:
                if item.strip():
                    results.append(SearchResult(title=f"{tool} result", href="", body=_truncate(item.strip()), source=source))
                continue
        else:
            records = _records(item)
            if records is None:
                results.append(SearchResult(title=f"{tool} result", href="", body=_truncate(_dumps(item)), source=source))
                continue

        for rec in records:
            body = _first(rec, _BODY_KEYS) or _dumps(rec)
            results.append(
                SearchResult(
                    title=_first(rec, _TITLE_KEYS) or f"{tool} result",
                    href=_first(rec, _URL_KEYS),
                    body=_truncate(body),
                    source=source,
                )
            )

    return results


def make_payload(*, text: str, data: Any, meta: dict[str, Any]) -> dict[str, Any]:
    """Canonical ToolResult.content payload: text/data/meta."""

    return {"text": str(text or ""), "data": data, "meta": meta}


def normalize_error(*, error_type: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "type": str(error_type),
        "message": str(message),
        "details": {k: str(v) for k, v in (details or {}).items()},
    }
