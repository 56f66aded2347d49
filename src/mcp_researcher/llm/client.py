"""OpenAI-compatible LLM client wrapper.

This client uses LangChain's OpenAI wrapper (`langchain_openai.ChatOpenAI`).
Token usage of every response is fed into a CostTracker.
"""

from __future__ import annotations

import json
import os
import re
from typing import Any, Protocol

from langchain_core.messages import AIMessage, BaseMessage
from langchain_openai import ChatOpenAI
from pydantic import SecretStr

from mcp_researcher.core.config import ResearchConfig
from mcp_researcher.core.errors import ConfigError, LlmError
from mcp_researcher.core.types import ToolCall
from mcp_researcher.observability import get_logger
from mcp_researcher.observability.ids import new_tool_call_id

from .costs import CostTracker

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


class ResearchLlm(Protocol):
    """The LLM surface the research pipeline depends on."""

    async def complete(self, messages: list[BaseMessage]) -> str:
        ...

    async def complete_json(self, messages: list[BaseMessage]) -> Any:
        ...

    async def invoke_with_tools(
        self, messages: list[BaseMessage], tools: list[dict[str, Any]]
    ) -> tuple[str, list[ToolCall]]:
        ...


def extract_json(text: str) -> Any:
    """Parse the first JSON object or array embedded in `text`."""

    cleaned = _FENCE_RE.sub("", text or "").strip()
    decoder = json.JSONDecoder()
    for i, ch in enumerate(cleaned):
        if ch not in "[{":
            continue
        try:
            obj, _ = decoder.raw_decode(cleaned[i:])
            return obj
        except ValueError:
            continue
    raise LlmError("no JSON value found in model output")


def _content_text(message: Any) -> str:
    content = getattr(message, "content", "")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and isinstance(block.get("text"), str):
                parts.append(block["text"])
        return "".join(parts)
    return ""


class LlmClient:
    """Chat model used for planning, tool selection, tool calling and reports."""

    def __init__(
        self,
        *,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: float = 0.2,
        timeout_s: float = 60.0,
        max_retries: int = 2,
        cost_tracker: CostTracker | None = None,
    ) -> None:
        self.model = model
        self.costs = cost_tracker or CostTracker()
        self._log = get_logger("mcp_researcher.llm")

        kwargs: dict[str, Any] = {
            "model": model,
            "temperature": temperature,
            "timeout": timeout_s,
            "max_retries": max_retries,
        }
        if api_key:
            kwargs["api_key"] = SecretStr(api_key)
        if base_url:
            kwargs["base_url"] = base_url
        try:
            self._chat = ChatOpenAI(**kwargs)
        except Exception as e:  # noqa: BLE001
            raise ConfigError(f"cannot create chat model: {e}", path="llm") from e

    @classmethod
    def from_config(cls, cfg: ResearchConfig, *, cost_tracker: CostTracker | None = None) -> "LlmClient":
        api_key = cfg.openai_api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ConfigError("OPENAI_API_KEY is not set", path="OPENAI_API_KEY")
        return cls(
            model=cfg.llm_model,
            api_key=api_key,
            base_url=cfg.openai_base_url,
            temperature=cfg.llm_temperature,
            cost_tracker=cost_tracker,
        )

    def _track(self, message: Any) -> None:
        usage = getattr(message, "usage_metadata", None)
        if not isinstance(usage, dict):
            return
        cost = self.costs.add(self.model, int(usage.get("input_tokens", 0)), int(usage.get("output_tokens", 0)))
        self._log.debug(
            "llm_usage",
            model=self.model,
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            cost=cost,
        )

    async def _ainvoke(self, runnable: Any, messages: list[BaseMessage]) -> AIMessage:
        try:
            message = await runnable.ainvoke(messages)
        except Exception as e:  # noqa: BLE001
            raise LlmError(f"LLM call failed: {e}") from e
        self._track(message)
        return message

    async def complete(self, messages: list[BaseMessage]) -> str:
        message = await self._ainvoke(self._chat, messages)
        return _content_text(message)

    async def complete_json(self, messages: list[BaseMessage]) -> Any:
        return extract_json(await self.complete(messages))

    async def invoke_with_tools(
        self, messages: list[BaseMessage], tools: list[dict[str, Any]]
    ) -> tuple[str, list[ToolCall]]:
        """Ask the model to call tools; returns its text and the requested calls."""

        runnable = self._chat.bind_tools(tools) if tools else self._chat
        message = await self._ainvoke(runnable, messages)

        calls: list[ToolCall] = []
        for tc in getattr(message, "tool_calls", None) or []:
            name = tc.get("name") if isinstance(tc, dict) else getattr(tc, "name", None)
            if not isinstance(name, str) or not name:
                continue
            args = tc.get("args") if isinstance(tc, dict) else getattr(tc, "args", None)
            call_id = tc.get("id") if isinstance(tc, dict) else getattr(tc, "id", None)
            calls.append(
                ToolCall(
                    id=str(call_id or new_tool_call_id()),
                    name=name,
                    arguments=dict(args) if isinstance(args, dict) else {},
                )
            )

        invalid = getattr(message, "invalid_tool_calls", None) or []
        if invalid:
            self._log.warning("llm_invalid_tool_calls", count=len(invalid))

        return _content_text(message), calls
