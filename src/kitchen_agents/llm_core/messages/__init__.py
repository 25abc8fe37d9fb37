"""Expose the conversation message models shared by agents and the chat client."""

from .models import (
    Role,
    ToolCallRequest,
    ConversationMessage,
    SystemMessage,
    UserMessage,
    AssistantMessage,
    ToolMessage,
)

__all__ = [
    "Role",
    "ToolCallRequest",
    "ConversationMessage",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
]
