from __future__ import annotations

import pytest

from mcp_researcher.tools.naming import (
    MAX_TOOL_NAME_LEN,
    build_name_maps,
    parse_model_tool_name,
    server_slug,
    to_model_tool_name,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [("GitHub", "github"), ("my server!", "my_server"), ("42docs", "s42docs"), ("***", "server")],
)
def test_server_slug(name: str, expected: str) -> None:
    assert server_slug(name) == expected


def test_single_server_no_prefix() -> None:
    maps = build_name_maps(["github"])
    assert to_model_tool_name(server="github", tool_name="search_repositories", maps=maps, multi=False) == (
        "search_repositories"
    )


def test_multi_server_prefix_and_parse() -> None:
    maps = build_name_maps(["GitHub", "tavily"])

    model_name = to_model_tool_name(server="GitHub", tool_name="search_code", maps=maps, multi=True)
    assert model_name == "github__search_code"

    server, tool = parse_model_tool_name(model_tool_name=model_name, maps=maps, multi=True, single_server="GitHub")
    assert server == "GitHub"
    assert tool == "search_code"


def test_colliding_slugs_get_hash_suffix() -> None:
    maps = build_name_maps(["my-server", "my server"])

    a = maps.server_to_slug["my-server"]
    b = maps.server_to_slug["my server"]
    assert a == "my_server"
    assert b.startswith("my_server_")
    assert len(b) == len("my_server_") + 4


def test_model_names_are_sanitized_and_clamped() -> None:
    maps = build_name_maps(["a", "b"])
    name = to_model_tool_name(server="a", tool_name="weird.tool/name" + "x" * 100, maps=maps, multi=True)

    assert len(name) == MAX_TOOL_NAME_LEN
    assert "." not in name and "/" not in name


def test_parse_rejects_missing_separator() -> None:
    maps = build_name_maps(["a", "b"])
    with pytest.raises(ValueError):
        parse_model_tool_name(model_tool_name="search", maps=maps, multi=True, single_server="a")


def test_parse_rejects_unknown_prefix() -> None:
    maps = build_name_maps(["a", "b"])
    with pytest.raises(ValueError):
        parse_model_tool_name(model_tool_name="zzz__search", maps=maps, multi=True, single_server="a")
