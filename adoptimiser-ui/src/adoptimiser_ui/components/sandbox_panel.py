"""
Sandbox preview panel for generated graph components.
"""

import streamlit as st
import streamlit.components.v1 as components

from adoptimiser_contracts import SandboxFailure, SandboxSuccess
from adoptimiser_ui.services.sandbox import SandboxRunTracker

PREVIEW_HEIGHT = 600


def render_sandbox_panel(tracker: SandboxRunTracker) -> None:
    """Renders the current sandbox run: spinner, live preview or failure details."""
    run = tracker.run
    if not tracker.panel_visible or run is None:
        return

    header_col, toggle_col, clear_col = st.columns([4, 1, 1])
    header_col.subheader("📈 Graph Preview")
    if toggle_col.button("Expand" if tracker.panel_collapsed else "Collapse", key="sandbox-panel-toggle"):
        tracker.toggle_collapsed()
        st.rerun()
    if clear_col.button("Close", key="sandbox-panel-clear"):
        tracker.clear()
        st.rerun()

    if tracker.panel_collapsed:
        return

    result = run.result
    if result is None:
        st.info("⏳ Starting sandbox preview...")
    elif isinstance(result, SandboxSuccess):
        st.markdown(f"[Open preview in a new tab]({result.url})")
        components.iframe(result.url, height=PREVIEW_HEIGHT, scrolling=True)
    elif isinstance(result, SandboxFailure):
        st.error(result.error)
        if result.details:
            st.caption(result.details)
        if result.template_used:
            st.caption(f"Template: `{result.template_used}`")
        if result.stack:
            with st.expander("Stack trace", expanded=False):
                st.code(result.stack)

    code = result.code if isinstance(result, SandboxSuccess) else run.fragment.code
    with st.expander("Component source", expanded=False):
        st.code(code, language="tsx")
