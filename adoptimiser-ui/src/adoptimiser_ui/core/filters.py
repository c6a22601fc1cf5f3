"""
Echo and noise suppression for classified frames.

The backend relays the user's own outbound frame back to the client, sometimes
re-wrapped under an agent's sender label, and its internal relay role leaks
forwarding frames. Neither may reach the chat log. The rules are evaluated in
order and the first that applies drops the frame; any parse failure while
checking counts as "not an echo".
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterator

from adoptimiser_contracts import USER_PROXY_SENDER, USER_SENDER, FrameType

from .classifier import ClassifiedFrame, FrameKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Verdict:
    deliver: bool
    reason: str = ""
    finishes_turn: bool = False


DELIVER = Verdict(deliver=True)


def _is_user_text_echo(candidate: Any) -> bool:
    return (
        isinstance(candidate, dict)
        and candidate.get("sender") == USER_SENDER
        and candidate.get("type") == FrameType.TEXT.value
    )


def _echo_candidates(frame: ClassifiedFrame) -> Iterator[Any]:
    yield frame.inner
    text = frame.text
    if isinstance(text, str):
        stripped = text.strip()
        if stripped.startswith("{") and stripped.endswith("}"):
            try:
                yield json.loads(stripped)
            except ValueError:
                return


def is_user_echo(frame: ClassifiedFrame) -> bool:
    """Whether a text frame carries a copy of the user's own outbound frame."""
    if frame.kind is not FrameKind.TEXT:
        return False
    return any(_is_user_text_echo(candidate) for candidate in _echo_candidates(frame))


def screen_frame(frame: ClassifiedFrame) -> Verdict:
    """
    Decides whether a classified frame continues to routing.

    Returns:
        A `Verdict`; sentinel frames are dropped with ``finishes_turn`` set.
    """
    if frame.kind is FrameKind.SENTINEL:
        return Verdict(deliver=False, reason="sentinel", finishes_turn=True)

    if frame.kind is not FrameKind.TEXT:
        return DELIVER

    if is_user_echo(frame):
        logger.debug("Dropping echo of a user message relayed by %s", frame.sender)
        return Verdict(deliver=False, reason="user_echo")

    if frame.sender == USER_PROXY_SENDER:
        logger.debug("Dropping %s relay frame", USER_PROXY_SENDER)
        return Verdict(deliver=False, reason="relay")

    return DELIVER


__all__ = ["Verdict", "DELIVER", "is_user_echo", "screen_frame"]
