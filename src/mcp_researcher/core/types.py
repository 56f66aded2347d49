from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One unit of research context, whatever retriever produced it."""

    title: str
    href: str
    body: str
    source: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "href": self.href, "body": self.body, "source": self.source}


@dataclass(frozen=True, slots=True)
class ToolCall:
    """Tool call requested by the model (stable structure across providers)."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolResult:
    tool_call_id: str
    name: str
    ok: bool
    content: dict[str, Any]
    error: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class SubQueryContext:
    sub_query: str
    results: list[SearchResult]
