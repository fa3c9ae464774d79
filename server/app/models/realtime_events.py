"""Control messages exchanged with the realtime endpoint over the data channel."""
from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ClientEventType(str, Enum):
    SESSION_UPDATE = "session.update"
    CONVERSATION_ITEM_CREATE = "conversation.item.create"
    RESPONSE_CREATE = "response.create"


class ServerEventType(str, Enum):
    CONVERSATION_ITEM_CREATED = "conversation.item.created"
    FUNCTION_CALL_ARGUMENTS_DONE = "response.function_call_arguments.done"
    RESPONSE_DONE = "response.done"


class ProtocolError(ValueError):
    """Raised when an inbound control message cannot be decoded."""


# -- outbound -----------------------------------------------------------------


class ToolParameters(BaseModel):
    type: Literal["object"] = "object"
    properties: Dict[str, Any] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)


class ToolSchema(BaseModel):
    type: Literal["function"] = "function"
    name: str
    description: str
    parameters: ToolParameters


class SessionConfig(BaseModel):
    instructions: str
    tools: List[ToolSchema] = Field(default_factory=list)


class ClientEvent(BaseModel):
    type: str

    def to_wire(self) -> str:
        return self.model_dump_json(exclude_none=True)


class SessionUpdateEvent(ClientEvent):
    type: Literal["session.update"] = ClientEventType.SESSION_UPDATE.value
    session: SessionConfig


class FunctionCallOutputItem(BaseModel):
    type: Literal["function_call_output"] = "function_call_output"
    call_id: Optional[str] = None
    output: str


class ConversationItemCreateEvent(ClientEvent):
    type: Literal["conversation.item.create"] = ClientEventType.CONVERSATION_ITEM_CREATE.value
    item: FunctionCallOutputItem


class ResponseCreateEvent(ClientEvent):
    type: Literal["response.create"] = ClientEventType.RESPONSE_CREATE.value


def function_call_output(call_id: Optional[str], envelope: Dict[str, Any]) -> ConversationItemCreateEvent:
    """Wrap a tool result envelope as a ``function_call_output`` item."""

    return ConversationItemCreateEvent(
        item=FunctionCallOutputItem(call_id=call_id, output=json.dumps(envelope))
    )


# -- inbound ------------------------------------------------------------------


class _WireItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    name: Optional[str] = None
    call_id: Optional[str] = None
    # Older payloads put the call arguments in ``parameters``.
    parameters: Union[Dict[str, Any], str, None] = None
    arguments: Union[Dict[str, Any], str, None] = None


class _WireEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    item: Optional[_WireItem] = None
    name: Optional[str] = None
    call_id: Optional[str] = None
    arguments: Union[Dict[str, Any], str, None] = None
    response: Optional[Dict[str, Any]] = None


class ToolInvocation(BaseModel):
    """A request from the remote side to run a local tool."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tool_invocation"] = "tool_invocation"
    name: Optional[str]
    call_id: Optional[str]
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ResponseStatus(BaseModel):
    """Completion status of one generation turn."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["response_status"] = "response_status"
    status: Optional[str]
    error_message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"


class IgnoredEvent(BaseModel):
    """Any server event this client has no handling for."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["ignored"] = "ignored"
    type: Optional[str] = None


ServerEvent = Union[ToolInvocation, ResponseStatus, IgnoredEvent]


def normalize_arguments(value: Union[Dict[str, Any], str, None]) -> Dict[str, Any]:
    """Return call arguments as a dict whether they arrived encoded or not."""

    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    if not value.strip():
        return {}
    try:
        decoded = json.loads(value)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"Tool arguments are not valid JSON: {exc.msg}") from exc
    if not isinstance(decoded, dict):
        raise ProtocolError(f"Tool arguments must be an object, got {type(decoded).__name__}")
    return decoded


def decode_server_event(raw: Union[str, bytes]) -> ServerEvent:
    """Decode one data-channel message into a :data:`ServerEvent`.

    Tool calls are recognised in both delivery shapes: a freshly created
    ``function_call`` conversation item, or the finalized streamed arguments.
    A created item whose arguments are still empty is treated as ignorable
    since the finalized event will follow.
    """

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"Malformed control message: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise ProtocolError("Control message must be a JSON object")

    event = _WireEvent.model_validate(data)
    item = event.item

    if event.type == ServerEventType.CONVERSATION_ITEM_CREATED.value:
        if item is None or item.type != "function_call":
            return IgnoredEvent(type=event.type)
        raw_arguments = item.parameters if item.parameters is not None else item.arguments
        # Arguments still streaming; they arrive with function_call_arguments.done.
        if raw_arguments is None or (isinstance(raw_arguments, str) and not raw_arguments.strip()):
            return IgnoredEvent(type=event.type)
        return ToolInvocation(
            name=item.name or event.name,
            call_id=item.call_id or event.call_id,
            arguments=normalize_arguments(raw_arguments),
        )

    if event.type == ServerEventType.FUNCTION_CALL_ARGUMENTS_DONE.value:
        return ToolInvocation(
            name=(item.name if item else None) or event.name,
            call_id=(item.call_id if item else None) or event.call_id,
            arguments=normalize_arguments(event.arguments),
        )

    if event.type == ServerEventType.RESPONSE_DONE.value:
        response = event.response or {}
        details = response.get("status_details") or {}
        error = details.get("error") or {}
        return ResponseStatus(
            status=response.get("status"),
            error_message=error.get("message") if isinstance(error, dict) else None,
        )

    return IgnoredEvent(type=event.type)
