"""Provider-agnostic message models for conversation history."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Author of a conversation message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCallRequest(BaseModel):
    """A single tool invocation demanded by the model.

    Attributes:
        id: Opaque id assigned by the stream. May be empty if the provider never sent one.
        name: Name of the tool to invoke.
        arguments: Raw JSON text of the arguments. Not guaranteed to be valid JSON.
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = ""
    arguments: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class ConversationMessage(BaseModel):
    """One turn in a conversation log.

    Attributes:
        role: Role associated with the message.
        content: Text payload. None on assistant messages that only carry tool calls.
        tool_calls: Tool calls requested by an assistant message.
        tool_call_id: Id of the tool call a tool message answers.
        name: Tool name on tool messages.
    """

    role: Role
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCallRequest]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Render the message in the chat-completions wire format."""
        payload: Dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            payload["tool_calls"] = [call.to_payload() for call in self.tool_calls]
        if self.tool_call_id is not None:
            payload["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            payload["name"] = self.name
        return payload


class SystemMessage(ConversationMessage):
    """Message authored by the system to steer behavior."""

    role: Role = Role.SYSTEM


class UserMessage(ConversationMessage):
    """Message authored by an end user."""

    role: Role = Role.USER


class AssistantMessage(ConversationMessage):
    """Message authored by the assistant, optionally containing tool calls."""

    role: Role = Role.ASSISTANT


class ToolMessage(ConversationMessage):
    """Message carrying the result of a tool invocation."""

    role: Role = Role.TOOL
    tool_call_id: str
    name: str
