"""Token cost accounting.

Prices are USD per token, derived from published per-1M-token list prices.
Unknown models are counted as free.
"""

from __future__ import annotations

import threading

MODEL_PRICING: dict[str, dict[str, float]] = {
    "gpt-4o-mini": {"input": 0.15 / 1_000_000, "output": 0.60 / 1_000_000},
    "gpt-4o": {"input": 2.50 / 1_000_000, "output": 10.00 / 1_000_000},
    "gpt-4.1-mini": {"input": 0.40 / 1_000_000, "output": 1.60 / 1_000_000},
    "gpt-4.1-nano": {"input": 0.10 / 1_000_000, "output": 0.40 / 1_000_000},
    "gpt-4.1": {"input": 2.00 / 1_000_000, "output": 8.00 / 1_000_000},
    "o4-mini": {"input": 1.10 / 1_000_000, "output": 4.40 / 1_000_000},
}


def normalize_model_name(model: str) -> str:
    """Map dated/suffixed model ids onto a priced base name (longest prefix wins)."""

    if not model:
        return ""
    name = model.split("/")[-1]
    for base in sorted(MODEL_PRICING, key=len, reverse=True):
        if name.startswith(base):
            return base
    return name


def calculate_llm_cost(model: str, prompt: int, completion: int) -> float:
    pricing = MODEL_PRICING.get(normalize_model_name(model))
    if not pricing:
        return 0.0
    return round((prompt * pricing["input"]) + (completion * pricing["output"]), 6)


class CostTracker:
    """Accumulates LLM spend for one research session."""

    def __init__(self) -> None:
        self._total = 0.0
        self._input_tokens = 0
        self._output_tokens = 0
        self._lock = threading.Lock()

    def add(self, model: str, input_tokens: int, output_tokens: int) -> float:
        cost = calculate_llm_cost(model, input_tokens, output_tokens)
        with self._lock:
            self._total += cost
            self._input_tokens += int(input_tokens)
            self._output_tokens += int(output_tokens)
        return cost

    def add_cost(self, cost: float) -> None:
        with self._lock:
            self._total += float(cost)

    @property
    def total(self) -> float:
        return round(self._total, 6)

    @property
    def tokens(self) -> dict[str, int]:
        return {"input": self._input_tokens, "output": self._output_tokens}
