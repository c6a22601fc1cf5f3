"""Tests for the chat session pipeline."""
import json

import pytest

from adoptimiser_ui.core.session import (
    CONNECTION_LOST_MESSAGE,
    NOT_CONNECTED_MESSAGE,
    PARSE_ERROR_MESSAGE,
    ChatSession,
    SessionPhase,
)
from adoptimiser_ui.core.state import DisplayKind, RunStatus, ToolCallEntry

SENTINEL = json.dumps({"type": "chat_interaction_done_sentinel"})


def _tool_call_frame(frame, *call_ids, thinking=None):
    calls = [
        {"id": call_id, "type": "function", "function": {"name": "execute_cypher_query", "arguments": '{"query": "..."}'}}
        for call_id in call_ids
    ]
    content = {"tool_calls": calls}
    if thinking is not None:
        content["content"] = thinking
    return frame("tool_call", content, sender="OrchestratorAgent")


def _tool_response_frame(frame, call_id, content="3 rows"):
    return frame("tool_response", {"tool_responses": [{"tool_call_id": call_id, "content": content}]})


class TestEndToEndScenarios:
    """The documented inbound scenarios, run through the whole pipeline."""

    def test_query_frame_creates_one_pending_execution(self, make_session):
        """Scenario 1: one pending, active execution and no message."""
        session = make_session()
        raw = json.dumps(
            {"type": "text", "sender": "QueryGeneratorAgent", "content": '<query>{"queries":["MATCH (n) RETURN n"]}</query>'}
        )
        session.handle_frame(raw)

        executions = session.queries.executions
        assert len(executions) == 1
        assert executions[0].query == "MATCH (n) RETURN n"
        assert executions[0].status is RunStatus.PENDING
        assert session.queries.active_id == executions[0].id
        assert session.messages == ()

    def test_orchestrator_without_thinking_dropped(self, make_session):
        """Scenario 2: no message and no activity block."""
        session = make_session()
        session.handle_frame(json.dumps({"type": "text", "sender": "OrchestratorAgent", "content": "no thinking tag here"}))
        assert session.messages == ()
        assert session.activity is None

    def test_insight_appended(self, make_session):
        """Scenario 3: the insight becomes one analyst message."""
        session = make_session()
        session.handle_frame(
            json.dumps({"type": "text", "sender": "AnalysisAgent", "content": "<insight>Spend is up 12%</insight>"})
        )
        assert len(session.messages) == 1
        assert session.messages[0].content == "Spend is up 12%"
        assert session.messages[0].sender == "AnalysisAgent"

    def test_sentinel_only_clears_processing(self, make_session, frame):
        """Scenario 4: processing ends; log and block are unchanged."""
        session = make_session()
        session.handle_frame(_tool_call_frame(frame, "c1"))
        messages_before = session.messages
        stream_before = list(session.activity.stream)
        assert session.processing

        session.handle_frame(SENTINEL)

        assert not session.processing
        assert session.messages == messages_before
        assert session.activity.stream == stream_before

    def test_tool_call_then_response(self, make_session, frame):
        """Scenario 5: the entry ends in success with the response content."""
        session = make_session()
        session.handle_frame(_tool_call_frame(frame, "c1"))
        session.handle_frame(_tool_response_frame(frame, "c1", "3 rows"))

        entries = [entry for entry in session.activity.stream if isinstance(entry, ToolCallEntry)]
        assert len(entries) == 1
        assert entries[0].id == "c1"
        assert entries[0].status is RunStatus.SUCCESS
        assert entries[0].response == "3 rows"


class TestFramePipeline:
    """Tests for handle_frame beyond the scenarios."""

    @pytest.mark.parametrize("processing", [True, False])
    def test_sentinel_never_appends(self, make_session, processing):
        """Should clear processing whatever the prior state."""
        session = make_session()
        if processing:
            session.send_message("hi")
        count = len(session.messages)
        session.handle_frame(SENTINEL)
        assert not session.processing
        assert len(session.messages) == count

    def test_empty_frame_ignored(self, make_session):
        """Should drop blank frames silently."""
        session = make_session()
        session.handle_frame("   ")
        assert session.messages == ()

    @pytest.mark.parametrize("raw", ["{oops", "[1,2]", json.dumps({"type": "mystery"})])
    def test_malformed_frame_reported_once(self, make_session, raw):
        """Should append one parse diagnostic and keep going."""
        session = make_session()
        session.handle_frame(raw)
        assert [(m.sender, m.content) for m in session.messages] == [("system_error", PARSE_ERROR_MESSAGE)]

        session.handle_frame(json.dumps({"type": "text", "sender": "agent", "content": "still alive"}))
        assert session.messages[-1].content == "still alive"

    def test_malformed_tool_frame_reports_structure(self, make_session, frame):
        """Should name the malformed frame type."""
        session = make_session()
        session.handle_frame(frame("tool_call", "not an object"))
        assert session.messages[-1].content == "System error: Malformed tool_call structure."

    def test_numeric_tool_call_id_matches_response(self, make_session, frame):
        """Should keep a call with an integer id and resolve it by that id."""
        session = make_session()
        session.handle_frame(_tool_call_frame(frame, 1))
        assert [e.id for e in session.activity.tool_calls()] == ["1"]

        session.handle_frame(_tool_response_frame(frame, 1, "2 rows"))

        entry = session.activity.tool_calls()[0]
        assert entry.status is RunStatus.SUCCESS
        assert entry.response == "2 rows"

    def test_stray_tool_response_changes_nothing(self, make_session, frame):
        """Should ignore a response for an unknown call id."""
        session = make_session()
        session.handle_frame(_tool_call_frame(frame, "c1"))
        before = [(e.id, e.status) for e in session.activity.tool_calls()]
        last_activity = session.activity.last_activity

        session.handle_frame(_tool_response_frame(frame, "nope"))

        assert [(e.id, e.status) for e in session.activity.tool_calls()] == before
        assert session.activity.last_activity == last_activity
        assert session.messages == ()

    def test_echo_of_user_message_dropped(self, make_session):
        """Should not show the user's own frame twice."""
        session = make_session()
        session.send_message("how is spend?")
        echo = {"sender": "user", "type": "text", "content": "how is spend?"}
        session.handle_frame(json.dumps({"type": "text", "sender": "AnalysisAgent", "content": json.dumps(echo)}))
        assert [m.content for m in session.messages] == ["how is spend?"]

    def test_two_queries_are_independent(self, make_session, jobs, query_client):
        """Should create distinct pending records and complete them out of order."""
        query_client.answers = {"Q1": [{"n": 1}], "Q2": []}
        session = make_session()
        session.handle_frame(
            json.dumps({"type": "text", "sender": "QueryGeneratorAgent", "content": '<query>{"queries":["Q1","Q2"]}</query>'})
        )
        first, second = session.queries.executions
        assert first.id != second.id
        assert first.status is second.status is RunStatus.PENDING
        assert session.queries.active_id == first.id

        jobs.complete(1)
        assert second.status is RunStatus.SUCCESS
        assert first.status is RunStatus.PENDING
        jobs.complete(0)
        assert first.records == [{"n": 1}]

    def test_code_frame_starts_sandbox(self, make_session, jobs, sandbox_client):
        """Should run the fragment and store the preview."""
        session = make_session()
        session.handle_frame(
            json.dumps({"type": "text", "sender": "GraphGeneratorAgent", "content": "<code>export default X</code>"})
        )
        assert session.sandbox.loading
        jobs.complete_all()
        assert session.sandbox.run.result.url == "https://3000-sbx.e2b.app"
        assert sandbox_client.fragments[0].file_path == "src/components/GeneratedPreview.tsx"


class TestSendMessage:
    """Tests for send_message."""

    def test_outbound_frame_shape(self, make_session, transport, clock):
        """Should send a text frame to the chat manager and enter processing."""
        session = make_session()
        assert session.send_message("  hello  ")

        sent = transport.sent_frames()[0]
        assert sent["type"] == "text"
        assert sent["content"] == "hello"
        assert sent["sender"] == "user"
        assert sent["recipient"] == "chat_manager"
        assert isinstance(sent["timestamp"], int)
        assert session.messages[-1].sender == "user"
        assert session.processing

    def test_blank_ignored(self, make_session, transport):
        """Should neither send nor log blank input."""
        session = make_session()
        assert not session.send_message("   ")
        assert transport.sent == []
        assert session.messages == ()

    def test_not_connected(self, make_session, transport):
        """Should append a diagnostic instead of sending."""
        transport.connected = False
        session = make_session()
        assert not session.send_message("hello")
        assert [(m.sender, m.content) for m in session.messages] == [("system_error", NOT_CONNECTED_MESSAGE)]
        assert not session.processing

    def test_no_transport(self, make_session):
        """Should treat a missing transport as not connected."""
        session = make_session(transport=None)
        session.send_message("hello")
        assert session.messages[-1].content == NOT_CONNECTED_MESSAGE


class TestLifecycle:
    """Tests for the inbox and connection lifecycle."""

    def test_phases(self, make_session):
        """Should move from open to active to closed."""
        session = make_session()
        assert session.phase is SessionPhase.ACTIVE
        session.post_connection_lost("closed")
        session.pump()
        assert session.phase is SessionPhase.CLOSED

    def test_connection_loss_reported_once(self, make_session):
        """Should surface loss a single time even with several callbacks."""
        session = make_session()
        session.post_connection_lost("error")
        session.post_connection_lost("closed (1006)")
        session.pump()
        assert [m.content for m in session.messages] == [CONNECTION_LOST_MESSAGE]
        assert not session.connected

    def test_pump_applies_in_order(self, make_session):
        """Should apply posted frames in arrival order, honouring the limit."""
        session = make_session()
        for text in ("one", "two", "three"):
            session.post_frame(json.dumps({"type": "text", "sender": "agent", "content": text}))
        assert session.pump(limit=2) == 2
        assert [m.content for m in session.messages] == ["one", "two"]
        assert session.pump() == 1
        assert session.messages[-1].content == "three"

    def test_welcome_message(self, make_session):
        """Should seed the log with the welcome text when enabled."""
        session = make_session(show_welcome=True, welcome_message="Hi there")
        assert [(m.sender, m.content) for m in session.messages] == [("agent", "Hi there")]

    def test_display_timeline(self, make_session, frame):
        """Should place the activity block after the user's message."""
        session = make_session()
        session.send_message("question")
        session.handle_frame(_tool_call_frame(frame, "c1"))
        session.handle_frame(json.dumps({"type": "text", "sender": "agent", "content": "answer"}))
        kinds = [item.kind for item in session.display_timeline()]
        assert kinds == [DisplayKind.MESSAGE, DisplayKind.ACTIVITY, DisplayKind.MESSAGE]

    def test_close(self, make_session, transport, jobs, query_client, sandbox_client):
        """Should stop the transport and the jobs and close the clients."""
        session = make_session()
        session.close()
        assert transport.stopped
        assert jobs.shut_down
        assert query_client.closed and sandbox_client.closed
        assert session.phase is SessionPhase.CLOSED


class TestWithJobRunner:
    """Tests using the real thread-pool job runner."""

    def test_settle_applies_completions(self, clock, transport, query_client, sandbox_client):
        """Should run jobs in the background and apply them on settle."""
        query_client.answers = {"Q": []}
        session = ChatSession(
            query_client=query_client,
            sandbox_client=sandbox_client,
            transport=transport,
            clock=clock,
            show_welcome=False,
        )
        try:
            session.handle_frame(
                json.dumps({"type": "text", "sender": "QueryGeneratorAgent", "content": '<query>{"queries":["Q"]}</query>'})
            )
            assert session.settle(timeout=5.0)
            execution = session.queries.executions[0]
            assert execution.status is RunStatus.SUCCESS
            assert execution.records == []
            assert "returned no data" in session.messages[-1].content
        finally:
            session.close()

