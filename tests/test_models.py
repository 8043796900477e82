"""Tests for data models."""

import dataclasses

import pytest
from pydantic import ValidationError

from termpilot.clients.anthropic import TextBlock, ToolResultBlock, ToolUseBlock
from termpilot.models.events import ConfirmationRequest, ConfirmationResponse, SendMessage, StateUpdate
from termpilot.models.llm import CompletionResponse, CompletionUsage
from termpilot.models.messages import DisplayKind, DisplayMessage, Message, ToolCallRef, ToolResult
from termpilot.tools.files import ReadFileInput
from termpilot.tools.http_request import HttpRequestInput


class TestMessageModels:
    """Tests for conversation log models."""

    def test_user_message(self):
        """Test a plain user message."""
        message = Message(role="user", content="Hello")
        assert message.role == "user"
        assert message.tool_calls == []
        assert message.tool_call_id is None

    def test_assistant_message_with_tool_calls(self):
        """Test an assistant message carrying tool calls."""
        calls = [ToolCallRef(id="call_1", name="list_dir", arguments_json='{"path": "."}')]
        message = Message(role="assistant", content="Looking...", tool_calls=calls)
        assert message.tool_calls[0].name == "list_dir"

    def test_invalid_role(self):
        """Test unknown roles are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Message(role="robot", content="beep")  # type: ignore
        assert "Input should be 'user', 'assistant', 'tool' or 'system'" in str(exc_info.value)

    def test_tool_call_ref_is_immutable(self):
        """Test tool call references cannot be edited after creation."""
        call = ToolCallRef(id="call_1", name="shell")
        with pytest.raises(ValidationError):
            call.name = "other"  # type: ignore

    def test_tool_result_error_flag(self):
        """Test is_error follows the error field."""
        assert ToolResult(call_id="c", name="t", result={"ok": True}).is_error is False
        assert ToolResult(call_id="c", name="t", error="boom").is_error is True

    def test_display_message(self):
        """Test display messages carry their kind."""
        message = DisplayMessage(kind=DisplayKind.TOOL_RESULT, content="done", tool_name="shell")
        assert message.kind == "tool_result"


class TestEventModels:
    """Tests for bus events."""

    def test_events_are_frozen(self):
        """Test events cannot be modified in flight."""
        event = SendMessage(text="hi")
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.text = "changed"  # type: ignore

    def test_state_update_defaults(self):
        """Test an empty state update."""
        update = StateUpdate()
        assert update.new_messages == []
        assert update.is_processing is False
        assert update.error is None

    def test_confirmation_pair_shares_id(self):
        """Test a response correlates with its request by id."""
        request = ConfirmationRequest(id="abc", operation="Execute command", command="rm -rf build", dangerous=True)
        response = ConfirmationResponse(id=request.id, approved=False)
        assert response.id == "abc"
        assert request.dangerous is True


class TestCompletionModels:
    """Tests for provider-neutral completion models."""

    def test_has_tool_calls(self):
        """Test has_tool_calls reflects the calls list."""
        assert not CompletionResponse(content="hi").has_tool_calls
        assert CompletionResponse(tool_calls=[ToolCallRef(id="1", name="x")]).has_tool_calls

    def test_cache_hit_rate(self):
        """Test cache hit rate as a percentage of input tokens."""
        usage = CompletionUsage(input_tokens=50, cache_read_input_tokens=50)
        assert usage.cache_hit_rate == 50.0
        assert CompletionUsage().cache_hit_rate == 0.0


class TestAnthropicBlocks:
    """Tests for Anthropic content blocks."""

    def test_tool_result_block_defaults(self):
        """Test a tool result block is not an error by default."""
        block = ToolResultBlock(tool_use_id="toolu_1", content="Success")
        assert block.type == "tool_result"
        assert block.is_error is False

    def test_content_blocks_from_anthropic_json(self):
        """Test parsing real Anthropic content blocks."""
        anthropic_content = [
            {"citations": None, "text": "Let me list the directory first.", "type": "text"},
            {
                "id": "toolu_011NMUEGn7XedTwffFDdTphg",
                "input": {"path": "src", "show_hidden": False},
                "name": "list_dir",
                "type": "tool_use",
            },
        ]

        text_block = TextBlock.model_validate(anthropic_content[0])
        assert "list the directory" in text_block.text

        tool_block = ToolUseBlock.model_validate(anthropic_content[1])
        assert tool_block.id == "toolu_011NMUEGn7XedTwffFDdTphg"
        assert tool_block.input["path"] == "src"


class TestToolInputModels:
    """Tests for tool input validation models."""

    def test_read_file_input_from_json(self):
        """Test read file input as produced by a tool call."""
        input_data = ReadFileInput.model_validate({"path": "main.py", "lines_from": 10, "lines_to": 20})
        assert input_data.path == "main.py"
        assert input_data.max_lines == 100

    def test_read_file_input_rejects_zero_line(self):
        """Test line numbers are 1-based."""
        with pytest.raises(ValidationError):
            ReadFileInput(path="main.py", lines_from=0)

    def test_http_input_method_validated(self):
        """Test only known HTTP methods are accepted."""
        with pytest.raises(ValidationError):
            HttpRequestInput.model_validate({"url": "https://example.test", "method": "BREW"})
