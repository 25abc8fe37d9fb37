"""Public exports for the core abstractions: messages, tools, errors, logging and config."""

from .config import ChatSettings
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
from .json_payload import extract_json_object
from .logger import get_logger, setup_logging
from .messages import (
    Role,
    ToolCallRequest,
    ConversationMessage,
    SystemMessage,
    UserMessage,
    AssistantMessage,
    ToolMessage,
)
from .tools import (
    ToolDefinition,
    ToolCallResult,
    ToolRegistry,
    SchemaValidator,
    ToolCallAccumulator,
    ToolExecutor,
)

__all__ = [
    "ChatSettings",
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
    "extract_json_object",
    "get_logger",
    "setup_logging",
    "Role",
    "ToolCallRequest",
    "ConversationMessage",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
    "ToolDefinition",
    "ToolCallResult",
    "ToolRegistry",
    "SchemaValidator",
    "ToolCallAccumulator",
    "ToolExecutor",
]
