"""Chat agent demonstrating function calling with a single data lookup tool."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from agents import Agent, Runner, function_tool

from ..config import settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant. Use the getData tool if the user asks for any data. Reply concisely."
)


def get_data(query: str) -> dict[str, str]:
    return {"result": f"You asked for: {query}"}


@function_tool(name_override="getData")
def get_data_tool(query: str) -> dict[str, str]:
    """Retrieve some data based on a query string.

    Args:
        query: Query string for the data.
    """
    return get_data(query)


tool_calling_agent = Agent(
    name="Tool Calling Chat Agent",
    instructions=SYSTEM_PROMPT,
    tools=[get_data_tool],
    model=settings.chat_model,
)


@dataclass
class ToolCallSummary:
    name: str
    arguments: Any
    result: Any

    def as_dict(self) -> dict[str, Any]:
        return {"name": self.name, "arguments": self.arguments, "result": self.result}


@dataclass
class ToolCallingReply:
    answer: str
    tool: Optional[ToolCallSummary] = None


def _decode_arguments(raw: Any) -> Any:
    if isinstance(raw, str):
        try:
            return json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            return raw
    return raw


def first_tool_call(items: Iterable[Any]) -> Optional[ToolCallSummary]:
    """Pull the first function call and its output out of a run's new items."""

    call = None
    result = None
    for item in items or []:
        item_type = getattr(item, "type", None)
        if item_type == "tool_call_item" and call is None:
            call = getattr(item, "raw_item", None)
        elif item_type == "tool_call_output_item" and call is not None:
            result = getattr(item, "output", None)
            break

    if call is None:
        return None
    return ToolCallSummary(
        name=str(getattr(call, "name", "") or ""),
        arguments=_decode_arguments(getattr(call, "arguments", None)),
        result=result,
    )


async def run_tool_calling_chat(message: str) -> ToolCallingReply:
    """Let the agent answer ``message``, calling ``getData`` when it wants data."""

    run_result = await Runner.run(tool_calling_agent, input=message)
    tool = first_tool_call(getattr(run_result, "new_items", None) or [])
    if tool:
        logger.info("Tool calling chat used %s with %s", tool.name, tool.arguments)
    final_output = getattr(run_result, "final_output", None)
    return ToolCallingReply(answer=str(final_output or ""), tool=tool)
