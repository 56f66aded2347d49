from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

SEPARATOR = "__"
MAX_TOOL_NAME_LEN = 64

_SLUG_RE = re.compile(r"[^a-z0-9]+")
_MODEL_NAME_RE = re.compile(r"[^A-Za-z0-9_-]")


@dataclass(frozen=True, slots=True)
class McpNameMaps:
    server_to_slug: dict[str, str]
    slug_to_server: dict[str, str]


def server_slug(name: str) -> str:
    """Readable, model-safe prefix derived from a server name."""

    slug = _SLUG_RE.sub("_", name.lower()).strip("_")
    if not slug:
        return "server"
    if slug[0].isdigit():
        slug = "s" + slug
    return slug


def _hash_suffix(name: str) -> str:
    return hashlib.blake2s(name.encode("utf-8"), digest_size=2).hexdigest()


def build_name_maps(server_names: list[str]) -> McpNameMaps:
    """Assign each server a unique slug; colliding slugs get a short stable hash suffix."""

    used: set[str] = set()
    server_to_slug: dict[str, str] = {}

    for name in server_names:
        slug = server_slug(name)
        if slug in used:
            slug = f"{slug}_{_hash_suffix(name)}"
            i = 1
            while slug in used:
                slug = f"{server_slug(name)}_{_hash_suffix(f'{name}#{i}')}"
                i += 1
        used.add(slug)
        server_to_slug[name] = slug

    return McpNameMaps(server_to_slug=server_to_slug, slug_to_server={s: n for n, s in server_to_slug.items()})


def sanitize_model_name(name: str) -> str:
    return _MODEL_NAME_RE.sub("_", name)[:MAX_TOOL_NAME_LEN]


def to_model_tool_name(*, server: str, tool_name: str, maps: McpNameMaps, multi: bool) -> str:
    if not multi:
        return sanitize_model_name(tool_name)
    return sanitize_model_name(f"{maps.server_to_slug[server]}{SEPARATOR}{tool_name}")


def parse_model_tool_name(*, model_tool_name: str, maps: McpNameMaps, multi: bool, single_server: str) -> tuple[str, str]:
    if not multi:
        return single_server, model_tool_name

    if SEPARATOR not in model_tool_name:
        raise ValueError(f"missing {SEPARATOR!r} in prefixed tool name")

    slug, tool_name = model_tool_name.split(SEPARATOR, 1)
    if not slug or not tool_name:
        raise ValueError("invalid prefixed tool name")

    server = maps.slug_to_server.get(slug)
    if server is None:
        raise ValueError(f"unknown server prefix: {slug!r}")

    return server, tool_name
