"""
This module defines the wire contracts for the socket channel between the chat
client and the backend agent orchestrator.

Inbound frames are JSON objects with a `type` discriminator (`text`,
`tool_call`, `tool_response`, `chat_interaction_done_sentinel`) and a loosely
shaped `content` field. Only the tool payloads have a fixed structure, so they
are modelled here as Pydantic models; `text` frames are interpreted by the
client's frame classifier. The module also defines the sender role constants
used for routing and the `OutboundFrame` the client sends for user messages.
"""
from __future__ import annotations

import json
import time
from enum import Enum
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

CHAT_MANAGER_RECIPIENT = "chat_manager"

USER_SENDER = "user"
AGENT_SENDER = "agent"
SYSTEM_ERROR_SENDER = "system_error"

ORCHESTRATOR_AGENT = "OrchestratorAgent"
QUERY_GENERATOR_AGENT = "QueryGeneratorAgent"
ANALYSIS_AGENT = "AnalysisAgent"
GRAPH_GENERATOR_AGENT = "GraphGeneratorAgent"
# Internal relay role that forwards the user's frames inside the backend.
USER_PROXY_SENDER = "UserProxy"


class FrameType(str, Enum):
    """
    Enumeration of the `type` discriminator values found on inbound frames.

    Attributes:
        TEXT: A chat-style message, possibly carrying tagged sub-payloads.
        TOOL_CALL: Announces one or more backend tool invocations.
        TOOL_RESPONSE: Carries tool results keyed by tool-call id.
        DONE_SENTINEL: Marks the end of the current agent turn.
    """

    TEXT = "text"
    TOOL_CALL = "tool_call"
    TOOL_RESPONSE = "tool_response"
    DONE_SENTINEL = "chat_interaction_done_sentinel"


def now_ms() -> int:
    """Returns the current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def _id_text(value: Any) -> Any:
    # Ids are opaque join keys; numeric ids must still match their responses.
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class ToolFunction(BaseModel):
    """The function part of a backend tool call."""

    name: str
    arguments: str = ""

    @field_validator("arguments", mode="before")
    @classmethod
    def _coerce_arguments(cls, value: Any) -> str:
        # Some relays forward the arguments already decoded.
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        try:
            return json.dumps(value)
        except (TypeError, ValueError):
            return str(value)


class BackendToolCall(BaseModel):
    """
    One entry of the `tool_calls` array of a `tool_call` frame.

    The `id` is assigned by the backend and is the join key used to match the
    later `tool_response`.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str = "function"
    function: ToolFunction

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return _id_text(value)


class BackendToolResponse(BaseModel):
    """
    One entry of the `tool_responses` array of a `tool_response` frame.

    `is_error` is optional; backends that report failed executions set it so
    the client can mark the matching entry as errored.
    """

    model_config = ConfigDict(extra="ignore")

    tool_call_id: str
    role: str = "tool"
    content: str = ""
    is_error: bool = False

    @field_validator("tool_call_id", mode="before")
    @classmethod
    def _coerce_tool_call_id(cls, value: Any) -> Any:
        return _id_text(value)

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        try:
            return json.dumps(value)
        except (TypeError, ValueError):
            return str(value)


class OutboundFrame(BaseModel):
    """
    The frame the client sends when the user submits a message.

    Attributes:
        type: Always `text`.
        content: The user's message text.
        sender: Always `user`.
        recipient: The backend routing target.
        timestamp: Epoch milliseconds at which the message was sent.
    """

    type: str = FrameType.TEXT.value
    content: str
    sender: str = USER_SENDER
    recipient: str = CHAT_MANAGER_RECIPIENT
    timestamp: int = Field(default_factory=now_ms)

    def to_wire(self) -> str:
        """Serializes the frame to the JSON text sent over the socket."""
        return self.model_dump_json()


def parse_tool_calls(items: Any) -> List[BackendToolCall]:
    """
    Validates the raw `tool_calls` array of a `tool_call` frame.

    Entries that do not validate are dropped; a non-list input yields an empty
    list.
    """
    if not isinstance(items, list):
        return []
    calls: List[BackendToolCall] = []
    for item in items:
        try:
            calls.append(BackendToolCall.model_validate(item))
        except ValueError:
            continue
    return calls


def parse_tool_responses(items: Any) -> List[BackendToolResponse]:
    """Validates the raw `tool_responses` array, dropping invalid entries."""
    if not isinstance(items, list):
        return []
    responses: List[BackendToolResponse] = []
    for item in items:
        try:
            responses.append(BackendToolResponse.model_validate(item))
        except ValueError:
            continue
    return responses


__all__ = [
    "CHAT_MANAGER_RECIPIENT",
    "USER_SENDER",
    "AGENT_SENDER",
    "SYSTEM_ERROR_SENDER",
    "ORCHESTRATOR_AGENT",
    "QUERY_GENERATOR_AGENT",
    "ANALYSIS_AGENT",
    "GRAPH_GENERATOR_AGENT",
    "USER_PROXY_SENDER",
    "FrameType",
    "ToolFunction",
    "BackendToolCall",
    "BackendToolResponse",
    "OutboundFrame",
    "now_ms",
    "parse_tool_calls",
    "parse_tool_responses",
]
