"""
Progress card for the agent's activity block: thinking steps and tool calls.
"""

from typing import Callable

import streamlit as st

from adoptimiser_ui.core.state import ActivityBlock, RunStatus, ThinkingStep, ToolCallEntry

_STATUS_ICONS = {
    RunStatus.PENDING: "⏳",
    RunStatus.SUCCESS: "✅",
    RunStatus.ERROR: "❌",
}


def card_title(block: ActivityBlock, processing: bool) -> str:
    calls = block.tool_calls()
    if processing:
        pending = block.pending_count
        return f"🔄 Working... ({len(calls) - pending}/{len(calls)} tools done)" if calls else "🔄 Thinking..."
    return f"🧠 Agent activity ({len(calls)} tool calls)"


def _render_tool_call(entry: ToolCallEntry) -> None:
    st.markdown(f"{_STATUS_ICONS[entry.status]} **{entry.display_text}**")
    with st.expander("Details", expanded=False):
        st.caption("Arguments")
        st.code(entry.arguments or "{}", language="json")
        if entry.status is RunStatus.SUCCESS and entry.response is not None:
            st.caption("Response")
            st.code(entry.response)
        elif entry.status is RunStatus.ERROR:
            st.caption("Error")
            st.code(entry.error_message or "")


def render_progress_card(
    block: ActivityBlock,
    processing: bool = False,
    on_toggle: Callable[[], None] | None = None,
) -> None:
    """
    Renders the activity block as a collapsible card inside an assistant bubble.

    Args:
        block: The session's activity block.
        processing: Whether the current turn is still running.
        on_toggle: Called when the user collapses or expands the card.
    """
    with st.chat_message("assistant", avatar="🧠"):
        header_col, button_col = st.columns([5, 1])
        header_col.markdown(f"**{card_title(block, processing)}**")
        label = "Expand" if block.collapsed else "Collapse"
        if on_toggle is not None and button_col.button(label, key=f"toggle-{block.id}"):
            on_toggle()
            st.rerun()

        if block.collapsed:
            return

        for entry in block.stream:
            if isinstance(entry, ThinkingStep):
                st.markdown(f"*{entry.text}*")
            else:
                _render_tool_call(entry)
