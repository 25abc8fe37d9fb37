"""Chat agents, the dispatcher that routes between them, and the UI contract they report to."""

from .base import Agent, TurnContext
from .cook import CookAgent
from .dispatcher import AgentDispatcher
from .food_finder import FoodFinderAgent
from .intent import IntentClassifier, IntentVerdict
from .scoring import KeywordScorer
from .suggestions import SuggestionAgent
from .ui import ChatUI, MenuCard, PlaceList, RecipeCard

__all__ = [
    "Agent",
    "TurnContext",
    "CookAgent",
    "FoodFinderAgent",
    "SuggestionAgent",
    "AgentDispatcher",
    "IntentClassifier",
    "IntentVerdict",
    "KeywordScorer",
    "ChatUI",
    "MenuCard",
    "RecipeCard",
    "PlaceList",
]
