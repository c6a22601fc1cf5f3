"""
Message list component for displaying the merged chat timeline.
"""

from datetime import datetime
from typing import Callable, Sequence

import streamlit as st

from adoptimiser_contracts import ANALYSIS_AGENT, ORCHESTRATOR_AGENT, SYSTEM_ERROR_SENDER, USER_SENDER
from adoptimiser_ui.components.progress_card import render_progress_card
from adoptimiser_ui.core.state import DisplayItem, DisplayKind, Message

_SENDER_BADGES = {
    ORCHESTRATOR_AGENT: ("#7B1FA2", "🎯"),
    ANALYSIS_AGENT: ("#00897B", "📈"),
    SYSTEM_ERROR_SENDER: ("#C62828", "⚠️"),
}


def format_timestamp(timestamp_ms: int) -> str:
    """Formats an epoch-milliseconds timestamp as local wall-clock time."""
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")
    except (OverflowError, OSError, TypeError, ValueError):
        return str(timestamp_ms)


def message_text(message: Message) -> str:
    """Flattens list content into one markdown string."""
    content = message.content
    if isinstance(content, str):
        return content
    return "\n\n".join(str(part) for part in content)


def render_message(message: Message) -> None:
    """Renders one chat bubble."""
    display_role = "user" if message.sender == USER_SENDER else "assistant"
    with st.chat_message(display_role):
        if message.sender not in {USER_SENDER, "agent"}:
            badge_color, icon = _SENDER_BADGES.get(message.sender, ("#757575", "🤖"))
            st.markdown(
                f'<div style="display: inline-block; background-color: {badge_color}; '
                f'color: white; padding: 2px 8px; border-radius: 12px; '
                f'font-size: 12px; margin-bottom: 8px;">'
                f"{icon} {message.sender}</div>",
                unsafe_allow_html=True,
            )
        st.caption(f"*{format_timestamp(message.timestamp)}*")

        text = message_text(message)
        if message.sender == SYSTEM_ERROR_SENDER:
            st.error(text)
        elif text:
            st.markdown(text)
        else:
            st.caption("*(no content)*")


def render_message_list(
    items: Sequence[DisplayItem],
    processing: bool = False,
    on_toggle_activity: Callable[[], None] | None = None,
) -> None:
    """
    Renders the display timeline: chat bubbles with the activity card in place.

    Args:
        items: Output of ``ChatSession.display_timeline()``.
        processing: Whether the agent is still working on the current turn.
        on_toggle_activity: Callback for the activity card's collapse button.
    """
    for item in items:
        if item.kind is DisplayKind.ACTIVITY and item.block is not None:
            render_progress_card(item.block, processing=processing, on_toggle=on_toggle_activity)
        elif item.message is not None:
            render_message(item.message)


def render_message_input(
    placeholder: str = "Ask about your campaigns...",
    disabled: bool = False,
    key: str = "chat_input",
) -> str | None:
    """
    Renders the chat input box and returns the submitted text, if any.
    """
    return st.chat_input(placeholder, disabled=disabled, key=key)
