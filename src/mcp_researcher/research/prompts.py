from __future__ import annotations

import json
from typing import Any

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

SYSTEM_RESEARCHER = """You are a meticulous research assistant.
Your job is to gather accurate, well-sourced information for a research report.

Rules:
- Prefer authoritative and recent sources.
- Never invent facts, numbers or URLs.
- Follow the requested output format exactly.
"""

PLAN_SUBQUERIES = """Research task:
{query}

Write up to {max_subqueries} distinct search queries that together cover the task.
Each query must be standalone and specific. Do not repeat the task verbatim.

Output (no extra text): a JSON array of strings.
"""

SELECT_TOOLS = """Research query:
{query}

Available tools (index, name, server, description, parameters):
{tools}

Pick the {max_tools} tools most likely to return information relevant to the query.
Skip tools that write, delete or modify data.

Output (no extra text):
{{"selected_tools": [{{"index": 0, "name": "tool_name", "relevance_score": 9, "reason": "why"}}]}}
"""

CALL_TOOLS = """Research query:
{query}

Use the available tools to gather information for this query.
Call every tool that can contribute, with arguments tailored to the query.
If no tool fits, answer briefly from what you know and say so.
"""

WRITE_REPORT = """Information:
\"\"\"
{context}
\"\"\"

Using only the information above, write a detailed research report answering:
"{query}"

Requirements:
- Markdown, with a title and sections.
- Cite sources inline as markdown links where a URL is available.
- State plainly when the information is insufficient.
{custom}
"""


def _messages(user: str) -> list[BaseMessage]:
    return [SystemMessage(content=SYSTEM_RESEARCHER.strip()), HumanMessage(content=user.strip())]


def plan_messages(query: str, *, max_subqueries: int) -> list[BaseMessage]:
    return _messages(PLAN_SUBQUERIES.format(query=query, max_subqueries=max_subqueries))


def select_tools_messages(query: str, tools: list[dict[str, Any]], *, max_tools: int) -> list[BaseMessage]:
    lines = [
        json.dumps({"index": i, **t}, ensure_ascii=False)
        for i, t in enumerate(tools)
    ]
    return _messages(SELECT_TOOLS.format(query=query, tools="\n".join(lines), max_tools=max_tools))


def call_tools_messages(query: str) -> list[BaseMessage]:
    return _messages(CALL_TOOLS.format(query=query))


def report_messages(query: str, context: str, *, custom_prompt: str | None = None) -> list[BaseMessage]:
    custom = f"\nAdditional instructions:\n{custom_prompt.strip()}" if custom_prompt else ""
    return _messages(WRITE_REPORT.format(query=query, context=context, custom=custom))
