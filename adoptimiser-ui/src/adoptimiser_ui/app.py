"""
Chat page for the Ad Optimiser.

Run with ``streamlit run adoptimiser-ui/src/adoptimiser_ui/app.py``.

Each browser session gets its own `ChatSession`, kept in ``st.session_state``,
and its own socket thread. The page pumps the session inbox at the top of
every run and from a ``st.fragment(run_every=...)`` poller, which triggers a
full rerun when anything was applied. Supports ADOPTIMISER_MOCK_MODE to render
without an orchestrator connection.
"""

import streamlit as st

from adoptimiser_ui.components.message_list import render_message_input, render_message_list
from adoptimiser_ui.components.query_panel import render_query_panel
from adoptimiser_ui.components.sandbox_panel import render_sandbox_panel
from adoptimiser_ui.config import MOCK_MODE, UI_POLL_INTERVAL_MS, WS_URL
from adoptimiser_ui.core.session import ChatSession, SessionPhase
from adoptimiser_ui.logging_utils import configure_logging
from adoptimiser_ui.transport.socket_thread import SocketThread


def get_session() -> ChatSession:
    """Returns this browser session's chat session, connecting it on first use."""
    session = st.session_state.get("chat_session")
    if session is None:
        session = ChatSession()
        if not MOCK_MODE:
            socket = SocketThread(WS_URL, session)
            session.attach_transport(socket)
            socket.start()
        st.session_state.chat_session = session
    return session


def _render_sidebar(session: ChatSession) -> None:
    with st.sidebar:
        st.header("Connection")
        if MOCK_MODE:
            st.info("🧪 Mock mode: no orchestrator connected.")
        elif session.phase is SessionPhase.ACTIVE:
            st.success(f"Connected to {WS_URL}")
        elif session.phase is SessionPhase.OPEN:
            st.warning(f"Connecting to {WS_URL}...")
        else:
            st.error("Disconnected. Refresh the page to reconnect.")

        st.divider()
        st.subheader("Status")
        st.caption("🔄 Agent is working" if session.processing else "💤 Idle")
        executions = session.queries.executions
        if executions:
            st.caption(f"{len(executions)} queries this session")


def main() -> None:
    st.set_page_config(page_title="Ad Optimiser", page_icon="📣", layout="wide")
    configure_logging()

    session = get_session()
    session.pump()

    st.title("📣 Ad Optimiser")
    st.caption("Analyze and optimize your campaigns with a team of agents")
    _render_sidebar(session)

    show_panels = session.queries.panel_visible or session.sandbox.panel_visible
    if show_panels:
        chat_col, panel_col = st.columns([3, 2])
    else:
        chat_col, panel_col = st.container(), None

    with chat_col:
        render_message_list(
            session.display_timeline(),
            processing=session.processing,
            on_toggle_activity=session.toggle_activity,
        )

    if panel_col is not None:
        with panel_col:
            render_query_panel(session.queries)
            render_sandbox_panel(session.sandbox)

    prompt = render_message_input(disabled=session.phase is SessionPhase.CLOSED)
    if prompt:
        session.send_message(prompt)
        st.rerun()

    @st.fragment(run_every=UI_POLL_INTERVAL_MS / 1000)
    def _poll_session() -> None:
        """Applies frames and job completions that arrived since the last run."""
        if session.pump():
            st.rerun()

    _poll_session()


if __name__ == "__main__":
    main()
