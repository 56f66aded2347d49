"""Research orchestration (LangGraph)."""

from __future__ import annotations

from .graph import ResearchGraph, ResearchOutput

__all__ = ["ResearchGraph", "ResearchOutput"]
