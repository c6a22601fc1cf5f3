"""
Classification of raw inbound frames.

The orchestrator has shipped several envelope shapes over time: chat text as a
plain string, as a JSON object nested under ``content``, as that same object
JSON-encoded into a string, or under a legacy ``message`` field. This module
turns any decoded frame into a normalized `ClassifiedFrame`. Nothing here
raises; frames that cannot be understood come back as ``malformed`` with the
raw text attached so the session can surface a diagnostic.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from adoptimiser_contracts import (
    AGENT_SENDER,
    BackendToolCall,
    BackendToolResponse,
    FrameType,
    parse_tool_calls,
    parse_tool_responses,
)

logger = logging.getLogger(__name__)


class FrameKind(str, Enum):
    EMPTY = "empty"
    MALFORMED = "malformed"
    SENTINEL = "sentinel"
    TOOL_CALL = "tool_call"
    TOOL_RESPONSE = "tool_response"
    TEXT = "text"


@dataclass(slots=True)
class ClassifiedFrame:
    """
    A normalized inbound frame.

    Attributes:
        kind: What the frame is.
        raw: The original frame text, kept for diagnostics.
        sender: Best-effort sender role (content-level sender wins).
        text: Resolved chat text for ``text`` frames; ``None`` when unparseable.
        inner: The decoded inner content object of a ``text`` frame, if any.
        thinking: Optional trace text bundled with a ``tool_call`` frame.
        tool_calls: Validated tool calls of a ``tool_call`` frame.
        tool_responses: Validated responses of a ``tool_response`` frame.
        reason: Why a frame was classified as ``malformed``.
    """

    kind: FrameKind
    raw: str = ""
    sender: str = AGENT_SENDER
    text: Optional[str] = None
    inner: Optional[Dict[str, Any]] = None
    thinking: Optional[str] = None
    tool_calls: List[BackendToolCall] = field(default_factory=list)
    tool_responses: List[BackendToolResponse] = field(default_factory=list)
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class _TextShape:
    sender: Optional[str]
    text: Optional[str]
    inner: Optional[Dict[str, Any]] = None


# A shape matcher returns None when the frame does not have its shape.
ShapeMatcher = Callable[[Mapping[str, Any]], Optional[_TextShape]]


def _as_sender(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _as_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _match_object_content(frame: Mapping[str, Any]) -> Optional[_TextShape]:
    content = frame.get("content")
    if not isinstance(content, Mapping):
        return None
    inner = dict(content)
    return _TextShape(sender=_as_sender(inner.get("sender")), text=_as_text(inner.get("content")), inner=inner)


def _match_encoded_content(frame: Mapping[str, Any]) -> Optional[_TextShape]:
    content = frame.get("content")
    if not isinstance(content, str):
        return None
    try:
        decoded = json.loads(content)
    except (TypeError, ValueError):
        return None
    if not isinstance(decoded, dict):
        return None
    return _TextShape(sender=_as_sender(decoded.get("sender")), text=_as_text(decoded.get("content")), inner=decoded)


def _match_plain_content(frame: Mapping[str, Any]) -> Optional[_TextShape]:
    content = frame.get("content")
    if not isinstance(content, str):
        return None
    return _TextShape(sender=None, text=content)


def _match_legacy_message(frame: Mapping[str, Any]) -> Optional[_TextShape]:
    message = frame.get("message")
    if not isinstance(message, str):
        return None
    return _TextShape(sender=None, text=message)


def _match_unparseable(frame: Mapping[str, Any]) -> Optional[_TextShape]:
    return _TextShape(sender=None, text=None)


TEXT_SHAPE_MATCHERS: Tuple[ShapeMatcher, ...] = (
    _match_object_content,
    _match_encoded_content,
    _match_plain_content,
    _match_legacy_message,
    _match_unparseable,
)


def resolve_text_shape(
    frame: Mapping[str, Any],
    matchers: Sequence[ShapeMatcher] = TEXT_SHAPE_MATCHERS,
) -> Tuple[str, Optional[str], Optional[Dict[str, Any]]]:
    """
    Resolves ``(sender, text, inner)`` for a chat frame.

    Matchers are tried in priority order and the first that recognises the
    frame wins. The content-level sender overrides the frame-level sender,
    which overrides the ``agent`` default.
    """
    frame_sender = _as_sender(frame.get("sender"))
    for matcher in matchers:
        shape = matcher(frame)
        if shape is None:
            continue
        sender = shape.sender or frame_sender or AGENT_SENDER
        if shape.text is None:
            logger.warning("Unrecognized text content structure from %s", sender)
        return sender, shape.text, shape.inner
    return frame_sender or AGENT_SENDER, None, None


def _tool_payload(frame: Mapping[str, Any], raw: str, kind: str) -> Tuple[Optional[Mapping[str, Any]], Optional[ClassifiedFrame]]:
    payload = frame.get("content")
    if isinstance(payload, Mapping):
        return payload, None
    logger.error("Invalid content for %s frame; expected object, got %s", kind, type(payload).__name__)
    return None, ClassifiedFrame(
        kind=FrameKind.MALFORMED,
        raw=raw,
        sender=_as_sender(frame.get("sender")) or AGENT_SENDER,
        reason=f"Malformed {kind} structure.",
    )


def classify_frame(frame: Any, raw: str = "") -> ClassifiedFrame:
    """
    Classifies a decoded frame.

    Args:
        frame: The JSON-decoded frame (any value).
        raw: The original text, kept on the result for diagnostics.

    Returns:
        A `ClassifiedFrame`; never raises.
    """
    if not isinstance(frame, Mapping):
        return ClassifiedFrame(kind=FrameKind.MALFORMED, raw=raw, reason="Frame is not a JSON object.")

    frame_type = frame.get("type")
    frame_sender = _as_sender(frame.get("sender")) or AGENT_SENDER

    if frame_type == FrameType.DONE_SENTINEL.value:
        return ClassifiedFrame(kind=FrameKind.SENTINEL, raw=raw, sender=frame_sender)

    if frame_type == FrameType.TOOL_CALL.value:
        payload, failure = _tool_payload(frame, raw, frame_type)
        if failure is not None:
            return failure
        raw_calls = payload.get("tool_calls")
        calls = parse_tool_calls(raw_calls)
        if isinstance(raw_calls, list) and len(calls) != len(raw_calls):
            logger.warning("Dropped %d invalid tool call entries", len(raw_calls) - len(calls))
        return ClassifiedFrame(
            kind=FrameKind.TOOL_CALL,
            raw=raw,
            sender=frame_sender,
            thinking=_as_text(payload.get("content")),
            tool_calls=calls,
        )

    if frame_type == FrameType.TOOL_RESPONSE.value:
        payload, failure = _tool_payload(frame, raw, frame_type)
        if failure is not None:
            return failure
        raw_responses = payload.get("tool_responses")
        responses = parse_tool_responses(raw_responses)
        if isinstance(raw_responses, list) and len(responses) != len(raw_responses):
            logger.warning("Dropped %d invalid tool response entries", len(raw_responses) - len(responses))
        return ClassifiedFrame(
            kind=FrameKind.TOOL_RESPONSE,
            raw=raw,
            sender=frame_sender,
            tool_responses=responses,
        )

    if frame_type == FrameType.TEXT.value:
        sender, text, inner = resolve_text_shape(frame)
        return ClassifiedFrame(kind=FrameKind.TEXT, raw=raw, sender=sender, text=text, inner=inner)

    return ClassifiedFrame(
        kind=FrameKind.MALFORMED,
        raw=raw,
        sender=frame_sender,
        reason=f"Unrecognized frame type: {frame_type!r}",
    )


def decode_frame(raw: Any) -> ClassifiedFrame:
    """
    Decodes and classifies one frame as received from the transport.

    Blank frames are ``empty``; text that is not a JSON object is
    ``malformed``.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return ClassifiedFrame(kind=FrameKind.MALFORMED, raw=repr(raw), reason="Frame is not text.")
    if not raw.strip():
        return ClassifiedFrame(kind=FrameKind.EMPTY, raw=raw)
    try:
        frame = json.loads(raw)
    except ValueError as exc:
        logger.error("Could not decode frame: %s", exc)
        return ClassifiedFrame(kind=FrameKind.MALFORMED, raw=raw, reason="Frame is not valid JSON.")
    return classify_frame(frame, raw=raw)


__all__ = [
    "FrameKind",
    "ClassifiedFrame",
    "ShapeMatcher",
    "TEXT_SHAPE_MATCHERS",
    "resolve_text_shape",
    "classify_frame",
    "decode_frame",
]
