"""
Unit tests for OpenAI-compatible wire translation.
"""
import logging

import pytest

from provider_gateway.adapters.openai_compat import (
    build_chat_payload,
    map_finish_reason,
    parse_tool_arguments,
    translate_chunk,
    translate_response,
)
from provider_gateway.adapters.openrouter_adapter import OPENROUTER_FINISH_REASONS
from provider_gateway.core.errors import ProviderInvalidResponseError
from provider_gateway.models import (
    ChatCompletionRequest,
    ChatMessage,
    FinishReason,
    MessageRole,
    ToolDefinition,
    ToolFunction,
)


def completion(**message_overrides):
    message = {"role": "assistant", "content": "Hello!", **message_overrides}
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "model": "qwen3-coder-30b",
        "choices": [{"index": 0, "message": message, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


class TestBuildChatPayload:
    """Test request translation."""

    def test_maps_fields_one_to_one(self):
        """Test converting a request to the wire format."""
        request = ChatCompletionRequest(
            model="qwen3-coder-30b",
            messages=[
                ChatMessage(role=MessageRole.SYSTEM, content="You are helpful"),
                ChatMessage(role=MessageRole.USER, content="Hello", metadata={"local": True}),
            ],
            temperature=0.7,
            max_tokens=100,
            stop=["\n\n"],
        )
        payload = build_chat_payload(request)

        assert payload["model"] == "qwen3-coder-30b"
        assert payload["messages"] == [
            {"role": "system", "content": "You are helpful"},
            {"role": "user", "content": "Hello"},
        ]
        assert payload["temperature"] == 0.7
        assert payload["max_tokens"] == 100
        assert payload["stop"] == ["\n\n"]
        assert payload["stream"] is False

    def test_omits_unset_fields(self):
        """Unset optional fields are not sent."""
        request = ChatCompletionRequest(
            model="m",
            messages=[ChatMessage(role=MessageRole.USER, content="Hi")],
        )
        assert set(build_chat_payload(request)) == {"model", "messages", "stream"}

    def test_stream_override_and_tools(self):
        """Tools are sent in function form and stream can be forced."""
        request = ChatCompletionRequest(
            model="m",
            messages=[
                ChatMessage(role=MessageRole.TOOL, content='{"ok":true}', tool_call_id="call_1"),
            ],
            tools=[ToolDefinition(function=ToolFunction(
                name="read_file",
                description="Read a file",
                parameters={"type": "object", "properties": {"path": {"type": "string"}}},
            ))],
            tool_choice="auto",
        )
        payload = build_chat_payload(request, stream=True)

        assert payload["stream"] is True
        assert payload["tools"][0]["type"] == "function"
        assert payload["tools"][0]["function"]["name"] == "read_file"
        assert payload["tool_choice"] == "auto"
        assert payload["messages"][0]["tool_call_id"] == "call_1"


class TestTranslateResponse:
    """Test response translation."""

    def test_basic_response(self):
        """Test creating a response from the wire format."""
        result = translate_response(completion(), "qwen-local")

        assert result.success
        response = result.data
        assert response.id == "chatcmpl-123"
        assert response.get_content() == "Hello!"
        assert response.message.role == MessageRole.ASSISTANT
        assert response.finish_reason == FinishReason.STOP
        assert response.usage.total_tokens == 15
        assert response.tool_calls is None

    def test_tool_calls(self):
        """Tool call arguments are decoded from JSON strings."""
        data = completion(content=None, tool_calls=[{
            "id": "call_1",
            "type": "function",
            "function": {"name": "read_file", "arguments": '{"path": "README.md"}'},
        }])
        data["choices"][0]["finish_reason"] = "tool_calls"
        response = translate_response(data, "qwen-local").data

        assert response.get_content() == ""
        assert response.finish_reason == FinishReason.TOOL_CALLS
        assert response.tool_calls[0].name == "read_file"
        assert response.tool_calls[0].arguments == {"path": "README.md"}

    def test_malformed_tool_arguments_degrade(self, caplog):
        """Unparseable arguments become {} with a warning, not a failure."""
        data = completion(tool_calls=[{
            "id": "call_1",
            "type": "function",
            "function": {"name": "read_file", "arguments": "{path: README"},
        }])
        with caplog.at_level(logging.WARNING):
            result = translate_response(data, "openrouter")

        assert result.success
        assert result.data.tool_calls[0].arguments == {}
        assert "openrouter" in caplog.text

    def test_no_choices_is_invalid(self):
        """A response without choices is an invalid response."""
        data = completion()
        data["choices"] = []
        result = translate_response(data, "qwen-local")
        assert isinstance(result.error, ProviderInvalidResponseError)

    def test_wrong_shape_is_invalid(self):
        """Payloads that do not match the wire shape fail cleanly."""
        result = translate_response({"id": 1, "choices": "nope"}, "qwen-local")
        assert not result.success
        assert isinstance(result.error, ProviderInvalidResponseError)

    def test_missing_usage_defaults_to_zero(self):
        """Servers that omit usage report zero tokens."""
        data = completion()
        del data["usage"]
        assert translate_response(data, "qwen-local").data.usage.total_tokens == 0


class TestFinishReasons:
    """Test finish reason mapping."""

    @pytest.mark.parametrize("wire,expected", [
        ("stop", FinishReason.STOP),
        ("length", FinishReason.LENGTH),
        ("tool_calls", FinishReason.TOOL_CALLS),
        ("content_filter", FinishReason.CONTENT_FILTER),
        ("eos", FinishReason.STOP),
        (None, FinishReason.STOP),
    ])
    def test_default_mapping(self, wire, expected):
        """Unrecognized reasons default to stop."""
        assert map_finish_reason(wire) == expected

    def test_function_call_on_openrouter(self):
        """Legacy function_call maps to tool_calls for OpenRouter only."""
        assert map_finish_reason("function_call") == FinishReason.STOP
        assert map_finish_reason("function_call", OPENROUTER_FINISH_REASONS) == FinishReason.TOOL_CALLS


class TestTranslateChunk:
    """Test stream chunk translation."""

    def test_content_delta(self):
        """Test a content delta chunk."""
        result = translate_chunk({
            "id": "chatcmpl-1",
            "model": "qwen3-coder-30b",
            "choices": [{"index": 0, "delta": {"role": "assistant", "content": "Hel"}}],
        }, "qwen-local")

        chunk = result.data
        assert chunk.delta.role == MessageRole.ASSISTANT
        assert chunk.delta.content == "Hel"
        assert chunk.finish_reason is None

    def test_final_chunk(self):
        """The last chunk carries the finish reason."""
        chunk = translate_chunk({
            "id": "chatcmpl-1",
            "model": "m",
            "choices": [{"index": 0, "delta": {}, "finish_reason": "length"}],
        }, "qwen-local").data
        assert chunk.finish_reason == FinishReason.LENGTH
        assert chunk.delta.content is None

    def test_tool_call_fragments(self):
        """Partial tool calls keep only what the fragment carries."""
        chunk = translate_chunk({
            "id": "c",
            "model": "m",
            "choices": [{"index": 0, "delta": {"tool_calls": [
                {"index": 0, "id": "call_1", "function": {"name": "read_file"}},
                {"index": 1, "function": {"arguments": '{"path":"a"}'}},
            ]}}],
        }, "qwen-local").data

        first, second = chunk.delta.tool_calls
        assert [first.index, second.index] == [0, 1]
        assert first.id == "call_1"
        assert first.name == "read_file"
        assert first.arguments is None
        assert second.arguments == {"path": "a"}

    def test_parallel_tool_call_fragments_keep_index(self):
        """Later fragments carry only the index of the call they extend."""
        chunk = translate_chunk({
            "id": "c",
            "model": "m",
            "choices": [{"index": 0, "delta": {"tool_calls": [
                {"index": 2, "function": {"arguments": '{"path": "b"}'}},
            ]}}],
        }, "openrouter").data

        fragment = chunk.delta.tool_calls[0]
        assert fragment.index == 2
        assert fragment.id is None
        assert fragment.arguments == {"path": "b"}

    def test_usage_only_chunk(self):
        """Events without choices translate to an empty delta."""
        result = translate_chunk({"id": "c", "model": "m", "choices": [], "usage": {}}, "openrouter")
        assert result.success
        assert result.data.delta.content is None


class TestParseToolArguments:
    """Test tool argument decoding."""

    @pytest.mark.parametrize("raw,expected", [
        ('{"a": 1}', {"a": 1}),
        ("", {}),
        (None, {}),
        ("[1, 2]", {}),
        ("not json", {}),
    ])
    def test_parse(self, raw, expected):
        """Only JSON objects are kept."""
        assert parse_tool_arguments(raw, "qwen-local") == expected


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
