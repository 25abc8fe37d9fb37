"""Callback contract between the agents and whatever renders the chat."""

from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Protocol, Union

from pydantic import BaseModel, Field

PickHandler = Callable[[str], Awaitable[None]]


class MenuCard(BaseModel):
    """A recommended menu, rendered as a card instead of text."""

    kind: Literal["menu"] = "menu"
    people_count: int
    dishes: List[Dict[str, Any]]
    message: str = ""


class RecipeCard(BaseModel):
    """A single recipe detail view.

    ``on_add_to_library`` is set for recipes found online; the front-end calls it
    when the user asks to keep the recipe.
    """

    kind: Literal["recipe"] = "recipe"
    recipe: Dict[str, Any]
    source: Literal["library", "online"] = "library"
    on_add_to_library: Optional[Callable[[], Dict[str, Any]]] = Field(default=None, exclude=True)


class PlaceList(BaseModel):
    """Nearby places returned by the search tool."""

    kind: Literal["places"] = "places"
    pois: List[Dict[str, Any]]
    count: int = 0
    location: Optional[str] = None
    location_info: Optional[Dict[str, Any]] = None
    message: str = ""


StructuredContent = Union[MenuCard, RecipeCard, PlaceList]


class ChatUI(Protocol):
    """What the agents need from the chat front-end."""

    def add_message(
        self,
        role: str,
        text: str,
        message_id: Optional[str] = None,
        structured: Optional[StructuredContent] = None,
    ) -> str:
        """Append a message and return its id."""
        ...

    def update_message(self, message_id: str, text: str, structured: Optional[StructuredContent] = None) -> None:
        """Overwrite the text (and optionally the structured content) of a message."""
        ...

    def show_suggestions(self, questions: List[str], on_pick: Optional[PickHandler] = None) -> None:
        """Offer clickable follow-up questions. ``on_pick`` overrides the default "send as message"."""
        ...
