"""
Custom exception classes for the kitchen agents core.

This module defines the hierarchy of exceptions raised while talking to the
model endpoint, consuming its stream, routing messages to agents and
registering or executing tools.
"""

from typing import Optional


class KitchenAgentError(Exception):
    """Base exception for everything raised by the package."""

    pass


class TransportError(KitchenAgentError):
    """Raised when the model endpoint cannot be reached or answers with a failure status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StreamParseError(KitchenAgentError):
    """Raised for a single malformed stream frame. Consumers log and skip it."""

    def __init__(self, message: str, frame: str = "") -> None:
        super().__init__(message)
        self.frame = frame


class AgentError(KitchenAgentError):
    """Base exception for agent routing errors."""

    pass


class UnknownAgentError(AgentError):
    """Raised when a message is routed to an agent name that is not registered."""

    pass


class ClassificationFailure(AgentError):
    """Raised when the intent classifier returns no usable verdict."""

    pass


class SuggestionGenerationFailure(AgentError):
    """Raised when the model returns no usable follow-up suggestions."""

    pass


class LLMToolError(KitchenAgentError):
    """Base exception for all tool-related errors."""

    pass


class ToolRegistrationError(LLMToolError):
    """Raised when there is an error registering a tool."""

    pass


class ToolNotFoundError(LLMToolError):
    """Raised when a requested tool is not found in the registry."""

    pass


class ToolExecutionError(LLMToolError):
    """Raised when a tool fails during execution."""

    pass


class ToolValidationError(LLMToolError):
    """Raised when a tool definition is invalid."""

    pass


class ToolArgumentError(LLMToolError):
    """Raised when the arguments of a tool call are not valid JSON or do not match the tool's schema."""

    pass
