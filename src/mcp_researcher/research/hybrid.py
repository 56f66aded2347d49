"""Merge results from MCP tools and web retrievers into one research context."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from mcp_researcher.core.types import SearchResult


def canonicalize_url(url: str) -> str:
    """Dedupe key for a URL: lower-cased scheme/host, no fragment, no utm_* params, no trailing slash."""

    url = (url or "").strip()
    if not url:
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    query = urlencode([(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if not k.lower().startswith("utm_")])
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, query, ""))


def _key(r: SearchResult) -> tuple[str, str]:
    canon = canonicalize_url(r.href)
    if canon:
        return ("href", canon)
    return (r.source, r.body[:200])


def dedupe(results: Iterable[SearchResult]) -> list[SearchResult]:
    seen: set[tuple[str, str]] = set()
    out: list[SearchResult] = []
    for r in results:
        k = _key(r)
        if k in seen:
            continue
        seen.add(k)
        out.append(r)
    return out


def merge_results(mcp_results: Iterable[SearchResult], web_results: Iterable[SearchResult]) -> list[SearchResult]:
    """MCP results first, then web results; duplicates keep their first occurrence."""

    return dedupe([*mcp_results, *web_results])


def build_context(results: Iterable[SearchResult], *, max_chars: int) -> str:
    blocks: list[str] = []
    used = 0
    for r in results:
        lines = [f"Source: {r.href or r.source}", f"Title: {r.title}", f"Content: {r.body}"]
        block = "\n".join(lines)
        if blocks and used + len(block) + 2 > max_chars:
            break
        if not blocks and len(block) > max_chars:
            block = block[:max_chars]
        blocks.append(block)
        used += len(block) + 2
    return "\n\n".join(blocks)
