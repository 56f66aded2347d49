from __future__ import annotations

from mcp_researcher.core.types import SearchResult
from mcp_researcher.research.hybrid import build_context, canonicalize_url, merge_results


def _r(href: str, source: str, body: str = "body", title: str = "t") -> SearchResult:
    return SearchResult(title=title, href=href, body=body, source=source)


def test_canonicalize_url() -> None:
    assert canonicalize_url("HTTPS://Example.COM/a/b/?utm_source=x&id=2#frag") == "https://example.com/a/b?id=2"
    assert canonicalize_url("") == ""


def test_mcp_results_come_first_and_duplicates_are_dropped() -> None:
    mcp = [_r("https://example.com/a", "mcp:github:search"), _r("", "mcp:docs:lookup", body="doc text")]
    web = [
        _r("https://example.com/a/", "tavily"),
        _r("https://example.com/b?utm_medium=email", "tavily"),
        _r("https://example.com/b", "tavily"),
    ]

    out = merge_results(mcp, web)

    assert [(r.source, r.href) for r in out] == [
        ("mcp:github:search", "https://example.com/a"),
        ("mcp:docs:lookup", ""),
        ("tavily", "https://example.com/b?utm_medium=email"),
    ]


def test_results_without_href_dedupe_on_source_and_body() -> None:
    out = merge_results(
        [_r("", "mcp:a:t", body="same"), _r("", "mcp:a:t", body="same"), _r("", "mcp:b:t", body="same")], []
    )

    assert [r.source for r in out] == ["mcp:a:t", "mcp:b:t"]


def test_build_context_stops_at_max_chars() -> None:
    results = [_r(f"https://example.com/{i}", "tavily", body="x" * 100, title=f"T{i}") for i in range(10)]

    text = build_context(results, max_chars=400)

    assert text.startswith("Source: https://example.com/0\nTitle: T0\nContent: ")
    assert text.count("Source: ") == 2
    assert len(text) <= 400


def test_unparseable_href_is_kept_as_its_own_key() -> None:
    assert canonicalize_url(" http://[::1 ") == "http://[::1"

    out = merge_results([_r("http://[::1", "mcp:a:t")], [_r("http://[::1", "tavily"), _r("https://example.com", "tavily")])

    assert [(r.source, r.href) for r in out] == [("mcp:a:t", "http://[::1"), ("tavily", "https://example.com")]
