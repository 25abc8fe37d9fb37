"""Concrete chat-completion provider implementations."""

from .openai_api import ChatOptions, StreamResult, StreamingChatClient

__all__ = ["ChatOptions", "StreamResult", "StreamingChatClient"]
