"""
The activity timeline: the live block of thinking steps and tool calls, and
the Idle/Processing state of the agent's turn.

A turn enters Processing when the user sends a message or a tool call is
announced, and returns to Idle only on the done sentinel. The activity block
is created on the first thinking step or tool call and is then kept for the
rest of the session: finishing a turn clears the processing flag but leaves
the block (and everything in it) in place.
"""
from __future__ import annotations

import json
import logging
import uuid
from typing import Iterable, Optional

from adoptimiser_contracts import BackendToolCall, BackendToolResponse

from .state import ActivityBlock, ThinkingStep, ToolCallEntry
from .tags import extract_tag

logger = logging.getLogger(__name__)

THINKING_TAG = "thinking"
_SUMMARY_CHARS = 30


def describe_tool_call(function_name: str, arguments: str) -> str:
    """
    Derives the one-line label shown for a tool call.

    Uses ``platform_name``, ``query`` or ``description`` from the JSON
    arguments when present, else the bare function name.
    """
    try:
        args = json.loads(arguments) if arguments else None
    except (TypeError, ValueError):
        args = None
    if isinstance(args, dict):
        platform = args.get("platform_name")
        if platform:
            return f"{function_name} for {platform}"
        for key in ("query", "description"):
            value = args.get(key)
            if isinstance(value, str) and value:
                return f"{function_name}: {value[:_SUMMARY_CHARS]}..."
    return function_name


def _thinking_id(now: int) -> str:
    return f"thinking-{now}-{uuid.uuid4().hex[:7]}"


class ActivityTimeline:
    """Owns the activity block and the processing flag of the session."""

    def __init__(self) -> None:
        self.block: Optional[ActivityBlock] = None
        self.processing = False

    def begin_turn(self) -> None:
        self.processing = True

    def finish_turn(self) -> None:
        if self.processing:
            logger.debug("Agent turn finished")
        self.processing = False

    def _ensure_block(self, now: int) -> ActivityBlock:
        if self.block is None:
            self.block = ActivityBlock(id=uuid.uuid4().hex, last_activity=now)
            logger.debug("Created activity block %s", self.block.id)
        return self.block

    def add_thinking(self, text: str, now: int) -> ThinkingStep:
        block = self._ensure_block(now)
        step = ThinkingStep(id=_thinking_id(now), text=text, timestamp=now)
        block.stream.append(step)
        block.last_activity = now
        return step

    def add_tool_calls(
        self,
        calls: Iterable[BackendToolCall],
        thinking: Optional[str],
        now: int,
    ) -> list[ToolCallEntry]:
        """
        Appends an announced batch of tool calls to the activity block.

        A ``<thinking>`` block in ``thinking`` is appended first, then one
        pending entry per call in arrival order. Calls whose id is already in
        the block are skipped.
        """
        self.processing = True
        block = self._ensure_block(now)

        thinking_text = extract_tag(thinking, THINKING_TAG) if thinking else None
        if thinking_text:
            block.stream.append(ThinkingStep(id=_thinking_id(now), text=thinking_text, timestamp=now))

        added: list[ToolCallEntry] = []
        for call in calls:
            if block.find_tool_call(call.id) is not None:
                logger.warning("Ignoring duplicate tool call id %s", call.id)
                continue
            entry = ToolCallEntry(
                id=call.id,
                function_name=call.function.name,
                arguments=call.function.arguments,
                display_text=describe_tool_call(call.function.name, call.function.arguments),
                timestamp=now,
            )
            block.stream.append(entry)
            added.append(entry)

        block.last_activity = now
        return added

    def resolve_tool_responses(self, responses: Iterable[BackendToolResponse], now: int) -> int:
        """
        Resolves pending tool-call entries by id, in place.

        Responses for ids not in the block, or arriving before any block
        exists, change nothing.

        Returns:
            The number of entries resolved.
        """
        responses = list(responses)
        if self.block is None:
            logger.warning("Received %d tool responses without an activity block", len(responses))
            return 0

        resolved = 0
        for response in responses:
            entry = self.block.find_tool_call(response.tool_call_id)
            if entry is None:
                logger.info("No tool call %s in the current activity block", response.tool_call_id)
                continue
            entry.resolve(response.content, is_error=response.is_error, now=now)
            resolved += 1

        if resolved:
            self.block.last_activity = now
        return resolved

    def toggle_collapsed(self) -> None:
        if self.block is not None:
            self.block.collapsed = not self.block.collapsed


__all__ = ["THINKING_TAG", "ActivityTimeline", "describe_tool_call"]
