"""Expose the streaming chat client for OpenAI-compatible endpoints."""

from .frames import SSEFrameDecoder, StreamConsumer
from .models import ChatOptions, StreamResult
from .streaming import StreamingChatClient

__all__ = ["SSEFrameDecoder", "StreamConsumer", "ChatOptions", "StreamResult", "StreamingChatClient"]
