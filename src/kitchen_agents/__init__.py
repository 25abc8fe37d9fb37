"""Kitchen Agents - agent dispatch and streamed tool calling for a cooking chat assistant."""

from .llm_core import (
    ChatSettings,
    KitchenAgentError,
    TransportError,
    UnknownAgentError,
    UserMessage,
    AssistantMessage,
    SystemMessage,
    ToolMessage,
    ToolRegistry,
    ToolDefinition,
    setup_logging,
)
from .llm_impl import ChatOptions, StreamResult, StreamingChatClient
from .agents import (
    AgentDispatcher,
    CookAgent,
    FoodFinderAgent,
    SuggestionAgent,
    ChatUI,
    MenuCard,
    RecipeCard,
    PlaceList,
)
from .collaborators import InMemoryRecipeBook, RecipeBook, PlaceSearch, UnavailablePlaceSearch

__all__ = [
    "ChatSettings",
    "KitchenAgentError",
    "TransportError",
    "UnknownAgentError",
    "UserMessage",
    "AssistantMessage",
    "SystemMessage",
    "ToolMessage",
    "ToolRegistry",
    "ToolDefinition",
    "setup_logging",
    "ChatOptions",
    "StreamResult",
    "StreamingChatClient",
    "AgentDispatcher",
    "CookAgent",
    "FoodFinderAgent",
    "SuggestionAgent",
    "ChatUI",
    "MenuCard",
    "RecipeCard",
    "PlaceList",
    "InMemoryRecipeBook",
    "RecipeBook",
    "PlaceSearch",
    "UnavailablePlaceSearch",
]
