"""Export the exception hierarchy used across transport, routing and tool paths."""

from .exceptions import (
    KitchenAgentError,
    TransportError,
    StreamParseError,
    AgentError,
    UnknownAgentError,
    ClassificationFailure,
    SuggestionGenerationFailure,
    LLMToolError,
    ToolRegistrationError,
    ToolNotFoundError,
    ToolExecutionError,
    ToolValidationError,
    ToolArgumentError,
)

__all__ = [
    "KitchenAgentError",
    "TransportError",
    "StreamParseError",
    "AgentError",
    "UnknownAgentError",
    "ClassificationFailure",
    "SuggestionGenerationFailure",
    "LLMToolError",
    "ToolRegistrationError",
    "ToolNotFoundError",
    "ToolExecutionError",
    "ToolValidationError",
    "ToolArgumentError",
]
