import pytest
from pydantic import ValidationError

from kitchen_agents.llm_core.messages import (
    AssistantMessage,
    Role,
    SystemMessage,
    ToolCallRequest,
    ToolMessage,
    UserMessage,
)


class TestMessagePayloads:
    """Tests for rendering history entries in the chat-completions wire format."""

    def test_plain_messages(self):
        assert SystemMessage(content="你是厨师").to_payload() == {"role": "system", "content": "你是厨师"}
        assert UserMessage(content="Hello").to_payload() == {"role": "user", "content": "Hello"}
        assert AssistantMessage(content="Hi there!").to_payload() == {"role": "assistant", "content": "Hi there!"}

    def test_assistant_with_tool_calls(self):
        message = AssistantMessage(
            content=None,
            tool_calls=[ToolCallRequest(id="call_123", name="getRecipe", arguments='{"dishName": "麻婆豆腐"}')],
        )

        assert message.to_payload() == {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {
                    "id": "call_123",
                    "type": "function",
                    "function": {"name": "getRecipe", "arguments": '{"dishName": "麻婆豆腐"}'},
                }
            ],
        }

    def test_empty_tool_call_list_is_omitted(self):
        payload = AssistantMessage(content="Just text", tool_calls=[]).to_payload()

        assert "tool_calls" not in payload

    def test_tool_message(self):
        message = ToolMessage(content='{"success": true}', tool_call_id="call_123", name="getRecipe")

        assert message.role == Role.TOOL
        assert message.to_payload() == {
            "role": "tool",
            "content": '{"success": true}',
            "tool_call_id": "call_123",
            "name": "getRecipe",
        }

    def test_tool_message_requires_call_id(self):
        with pytest.raises(ValidationError):
            ToolMessage(content="x", name="getRecipe")  # type: ignore[call-arg]

    def test_tool_call_requests_are_frozen(self):
        call = ToolCallRequest(id="a", name="getMenu", arguments="{}")

        with pytest.raises(ValidationError):
            call.arguments = '{"peopleCount": 2}'  # type: ignore[misc]
