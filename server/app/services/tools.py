"""Local tools the realtime assistant may call during a voice session."""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Union

from ..models.realtime_events import ToolParameters, ToolSchema

logger = logging.getLogger(__name__)

ToolResult = Dict[str, Any]
ToolHandler = Callable[[Dict[str, Any]], Union[ToolResult, Awaitable[ToolResult]]]

UNKNOWN_TOOL_ERROR = "Unknown tool"


@dataclass(frozen=True)
class Tool:
    """A named tool with its JSON schema and implementation."""

    name: str
    description: str
    handler: ToolHandler
    properties: Mapping[str, Any] = field(default_factory=dict)
    required: tuple[str, ...] = ()

    def schema(self) -> ToolSchema:
        return ToolSchema(
            name=self.name,
            description=self.description,
            parameters=ToolParameters(properties=dict(self.properties), required=list(self.required)),
        )


class ToolRegistry:
    """Immutable name -> tool table built once and handed to a voice service."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        table: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in table:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            table[tool.name] = tool
        self._tools: Mapping[str, Tool] = MappingProxyType(table)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def schemas(self) -> List[ToolSchema]:
        return [tool.schema() for tool in self._tools.values()]

    async def invoke(self, name: str | None, arguments: Dict[str, Any]) -> ToolResult:
        """Run the named tool and wrap its output in the success/error envelope.

        Exceptions raised by the tool propagate to the caller.
        """

        tool = self._tools.get(name or "")
        if tool is None:
            logger.warning("Realtime assistant requested unknown tool %r", name)
            return {"success": False, "error": UNKNOWN_TOOL_ERROR}

        result = tool.handler(arguments)
        if inspect.isawaitable(result):
            result = await result
        return {"success": True, **(result or {})}


def generic_tool(params: Dict[str, Any]) -> ToolResult:
    """Echo tool used to demonstrate the function-call round trip."""

    return {"result": f"You sent: {params.get('input')}"}


GENERIC_TOOL = Tool(
    name="generic_tool",
    description="A generic tool for demonstration. Replace with your own.",
    handler=generic_tool,
    properties={
        "input": {
            "type": "string",
            "description": "Input string for the tool.",
        }
    },
    required=("input",),
)


def default_registry() -> ToolRegistry:
    return ToolRegistry([GENERIC_TOOL])
