"""Tests for messaging module."""
import json

from adoptimiser_contracts.messaging import (
    CHAT_MANAGER_RECIPIENT,
    USER_SENDER,
    BackendToolCall,
    BackendToolResponse,
    FrameType,
    OutboundFrame,
    parse_tool_calls,
    parse_tool_responses,
)


class TestConstants:
    """Tests for messaging constants."""

    def test_frame_type_values(self):
        """Should match the discriminators used on the wire."""
        assert FrameType.TEXT.value == "text"
        assert FrameType.TOOL_CALL.value == "tool_call"
        assert FrameType.TOOL_RESPONSE.value == "tool_response"
        assert FrameType.DONE_SENTINEL.value == "chat_interaction_done_sentinel"

    def test_recipient_constant(self):
        """Should route user messages to the chat manager."""
        assert CHAT_MANAGER_RECIPIENT == "chat_manager"


class TestOutboundFrame:
    """Tests for OutboundFrame model."""

    def test_defaults(self):
        """Should fill in type, sender, recipient and timestamp."""
        frame = OutboundFrame(content="How did spend change last week?")
        assert frame.type == "text"
        assert frame.sender == USER_SENDER
        assert frame.recipient == "chat_manager"
        assert isinstance(frame.timestamp, int)
        assert frame.timestamp > 0

    def test_to_wire_is_json(self):
        """Should serialize to a JSON object with every field."""
        frame = OutboundFrame(content="hello", timestamp=1700000000000)
        wire = json.loads(frame.to_wire())
        assert wire == {
            "type": "text",
            "content": "hello",
            "sender": "user",
            "recipient": "chat_manager",
            "timestamp": 1700000000000,
        }


class TestToolPayloads:
    """Tests for tool call and tool response parsing."""

    def test_tool_call_parses_function(self):
        """Should parse the nested function block."""
        call = BackendToolCall.model_validate(
            {
                "id": "call_1",
                "type": "function",
                "function": {"name": "execute_cypher_query", "arguments": '{"query": "MATCH (n) RETURN n"}'},
            }
        )
        assert call.id == "call_1"
        assert call.function.name == "execute_cypher_query"
        assert json.loads(call.function.arguments)["query"] == "MATCH (n) RETURN n"

    def test_tool_call_encodes_object_arguments(self):
        """Should re-encode arguments that arrive already decoded."""
        call = BackendToolCall.model_validate(
            {"id": "c2", "function": {"name": "fetch", "arguments": {"platform_name": "meta"}}}
        )
        assert json.loads(call.function.arguments) == {"platform_name": "meta"}

    def test_parse_tool_calls_skips_invalid_entries(self):
        """Should drop entries without an id or function."""
        calls = parse_tool_calls(
            [
                {"id": "ok", "function": {"name": "a", "arguments": "{}"}},
                {"function": {"name": "missing_id"}},
                "not-a-dict",
                {"id": "no_function"},
            ]
        )
        assert [call.id for call in calls] == ["ok"]

    def test_numeric_ids_become_text(self):
        """Should accept integer ids so calls and responses still join."""
        calls = parse_tool_calls([{"id": 7, "function": {"name": "a", "arguments": "{}"}}])
        responses = parse_tool_responses([{"tool_call_id": 7, "content": "done"}])
        assert [call.id for call in calls] == ["7"]
        assert responses[0].tool_call_id == calls[0].id

    def test_boolean_id_rejected(self):
        """Should still drop an id that is not text or an integer."""
        assert parse_tool_calls([{"id": True, "function": {"name": "a"}}]) == []

    def test_parse_tool_calls_non_list(self):
        """Should return an empty list for non-list input."""
        assert parse_tool_calls(None) == []
        assert parse_tool_calls({"id": "x"}) == []

    def test_tool_response_defaults(self):
        """Should default role and error flag."""
        response = BackendToolResponse.model_validate({"tool_call_id": "c1", "content": "3 rows"})
        assert response.role == "tool"
        assert response.content == "3 rows"
        assert response.is_error is False

    def test_tool_response_error_flag(self):
        """Should carry the optional error flag."""
        responses = parse_tool_responses(
            [{"tool_call_id": "c1", "content": "boom", "is_error": True}, {"content": "orphan"}]
        )
        assert len(responses) == 1
        assert responses[0].is_error is True

    def test_tool_response_encodes_structured_content(self):
        """Should encode non-string content as JSON text."""
        response = BackendToolResponse.model_validate({"tool_call_id": "c1", "content": {"rows": 3}})
        assert json.loads(response.content) == {"rows": 3}

