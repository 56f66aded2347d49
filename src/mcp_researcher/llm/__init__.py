"""LLM access (LangChain OpenAI-compatible chat models) and cost tracking."""

from __future__ import annotations

from .client import LlmClient, ResearchLlm, extract_json
from .costs import CostTracker, calculate_llm_cost

__all__ = ["CostTracker", "LlmClient", "ResearchLlm", "calculate_llm_cost", "extract_json"]
