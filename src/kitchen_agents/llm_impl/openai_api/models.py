from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from kitchen_agents.llm_core.messages import ToolCallRequest

TextUpdateCallback = Callable[[str], None]
ToolCallsReadyCallback = Callable[[List[ToolCallRequest]], None]


class ChatOptions(BaseModel):
    """
    Per-request options for a streamed chat completion.

    Attributes:
        tools: Tool schema list. None (or empty) means the model gets no tool-calling capability.
        temperature: Sampling temperature. None falls back to the client default (0.7).
        enable_web_search: Ask the provider for live web augmentation. Ignored when tools are offered.
    """

    tools: Optional[List[Dict[str, Any]]] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    enable_web_search: bool = False


class StreamResult(BaseModel):
    """
    Final state of a consumed stream.

    Attributes:
        content: All text deltas concatenated.
        tool_calls: Completed tool calls, or None when the model requested none.
        finish_reason: The last finish reason reported by the stream.
    """

    content: str = ""
    tool_calls: Optional[List[ToolCallRequest]] = None
    finish_reason: Optional[str] = None
