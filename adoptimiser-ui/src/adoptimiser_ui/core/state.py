"""
State types owned by the chat session.

The message log is append-only and its entries are immutable. The activity
block holds the interleaved stream of thinking steps and tool-call entries for
the agent's work; tool-call entries are the only stream items that change after
being appended, and only by resolution in place.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from adoptimiser_contracts import SYSTEM_ERROR_SENDER, GraphFragment, SandboxResult


class RunStatus(str, Enum):
    """Lifecycle of a tool call, query execution or sandbox run."""

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


MessageContent = Union[str, Tuple[str, ...]]


@dataclass(frozen=True, slots=True)
class Message:
    sender: str
    content: MessageContent
    timestamp: int


class MessageLog:
    """Append-only, chronologically ordered chat log."""

    def __init__(self) -> None:
        self._messages: List[Message] = []

    def append(self, sender: str, content: MessageContent, timestamp: int) -> Message:
        if isinstance(content, list):
            content = tuple(content)
        message = Message(sender=sender, content=content, timestamp=timestamp)
        self._messages.append(message)
        return message

    def diagnostic(self, text: str, timestamp: int) -> Message:
        """Appends a user-visible system error entry."""
        return self.append(SYSTEM_ERROR_SENDER, text, timestamp)

    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def snapshot(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __len__(self) -> int:
        return len(self._messages)


@dataclass(frozen=True, slots=True)
class ThinkingStep:
    id: str
    text: str
    timestamp: int


@dataclass(slots=True)
class ToolCallEntry:
    """
    One backend tool invocation shown in the activity block.

    ``id`` is the backend-assigned tool-call id. ``response`` is set only on
    success and ``error_message`` only on error.
    """

    id: str
    function_name: str
    arguments: str
    display_text: str
    timestamp: int
    status: RunStatus = RunStatus.PENDING
    response: Optional[str] = None
    error_message: Optional[str] = None

    def resolve(self, content: str, *, is_error: bool, now: int) -> None:
        if is_error:
            self.status = RunStatus.ERROR
            self.error_message = content
            self.response = None
        else:
            self.status = RunStatus.SUCCESS
            self.response = content
            self.error_message = None
        self.timestamp = now


StreamEntry = Union[ThinkingStep, ToolCallEntry]


@dataclass(slots=True)
class ActivityBlock:
    id: str
    last_activity: int
    stream: List[StreamEntry] = field(default_factory=list)
    collapsed: bool = False

    def find_tool_call(self, call_id: str) -> Optional[ToolCallEntry]:
        for entry in self.stream:
            if isinstance(entry, ToolCallEntry) and entry.id == call_id:
                return entry
        return None

    def tool_calls(self) -> List[ToolCallEntry]:
        return [entry for entry in self.stream if isinstance(entry, ToolCallEntry)]

    def thinking_steps(self) -> List[ThinkingStep]:
        return [entry for entry in self.stream if isinstance(entry, ThinkingStep)]

    @property
    def pending_count(self) -> int:
        return sum(1 for entry in self.tool_calls() if entry.status is RunStatus.PENDING)


@dataclass(slots=True)
class QueryExecution:
    id: str
    query: str
    status: RunStatus = RunStatus.PENDING
    records: Optional[List[dict]] = None
    error_details: Optional[str] = None


@dataclass(slots=True)
class SandboxRun:
    """
    The single tracked sandbox preview.

    ``token`` identifies the submission so a completion that arrives after a
    newer submission (or a clear) can be recognised and ignored.
    """

    token: str
    fragment: GraphFragment
    result: Optional[SandboxResult] = None

    @property
    def loading(self) -> bool:
        return self.result is None

    @property
    def status(self) -> RunStatus:
        if self.result is None:
            return RunStatus.PENDING
        return RunStatus.SUCCESS if self.result.ok else RunStatus.ERROR


class DisplayKind(str, Enum):
    MESSAGE = "message"
    ACTIVITY = "activity"


@dataclass(frozen=True, slots=True)
class DisplayItem:
    """One row of the merged chat timeline handed to the renderer."""

    kind: DisplayKind
    key: str
    timestamp: int
    message: Optional[Message] = None
    block: Optional[ActivityBlock] = None


def build_display_timeline(
    messages: Sequence[Message],
    block: Optional[ActivityBlock],
    *,
    user_sender: str,
) -> List[DisplayItem]:
    """
    Merges the chat log and the activity block into one display sequence.

    Messages are ordered by timestamp (stable for equal timestamps). The
    activity block, when present, is placed right after the most recent user
    message, or first when the user has not spoken yet.
    """
    ordered = sorted(enumerate(messages), key=lambda pair: (pair[1].timestamp, pair[0]))
    items = [
        DisplayItem(
            kind=DisplayKind.MESSAGE,
            key=f"msg-{message.timestamp}-{index}-{message.sender}",
            timestamp=message.timestamp,
            message=message,
        )
        for index, message in ordered
    ]
    if block is None:
        return items

    activity = DisplayItem(
        kind=DisplayKind.ACTIVITY,
        key=f"progress-{block.id}",
        timestamp=block.last_activity,
        block=block,
    )
    last_user = -1
    for position in range(len(items) - 1, -1, -1):
        message = items[position].message
        if message is not None and message.sender == user_sender:
            last_user = position
            break
    items.insert(last_user + 1, activity)
    return items


__all__ = [
    "RunStatus",
    "Message",
    "MessageContent",
    "MessageLog",
    "ThinkingStep",
    "ToolCallEntry",
    "StreamEntry",
    "ActivityBlock",
    "QueryExecution",
    "SandboxRun",
    "DisplayKind",
    "DisplayItem",
    "build_display_timeline",
]
