import asyncio
import itertools
import json
import os
import sys
from typing import Awaitable, Callable, Dict, List, Optional

from dotenv import load_dotenv

from kitchen_agents import (
    AgentDispatcher,
    ChatSettings,
    InMemoryRecipeBook,
    MenuCard,
    PlaceList,
    RecipeCard,
    UnavailablePlaceSearch,
    setup_logging,
)

# Load environment variables
load_dotenv()


class ConsoleUI:
    """Prints agent output to the terminal. Streaming updates are collected and printed once."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.messages: Dict[str, str] = {}
        self.cards: Dict[str, object] = {}
        self.suggestions: List[str] = []
        self.on_pick: Optional[Callable[[str], Awaitable[None]]] = None

    def add_message(self, role: str, text: str, message_id: Optional[str] = None, structured=None) -> str:
        message_id = message_id or f"msg-{next(self._ids)}"
        self.messages[message_id] = text
        if structured is not None:
            self.cards[message_id] = structured
        return message_id

    def update_message(self, message_id: str, text: str, structured=None) -> None:
        self.messages[message_id] = text
        if structured is not None:
            self.cards[message_id] = structured

    def show_suggestions(self, questions: List[str], on_pick=None) -> None:
        self.suggestions = list(questions)
        self.on_pick = on_pick

    def flush(self, message_ids: List[str]) -> None:
        for message_id in message_ids:
            card = self.cards.pop(message_id, None)
            if isinstance(card, MenuCard):
                print(f"Assistant: {card.message}")
                for dish in card.dishes:
                    print(f"  - {dish['name']} ({dish['category']})")
            elif isinstance(card, RecipeCard):
                print(f"Assistant: [{card.source}] {json.dumps(card.recipe, ensure_ascii=False, indent=2)}")
            elif isinstance(card, PlaceList):
                for poi in card.pois:
                    print(f"  - {poi.get('name')} {poi.get('address', '')}")
            elif self.messages.get(message_id):
                print(f"Assistant: {self.messages[message_id]}")


async def main() -> None:
    """
    Main function to run the kitchen assistant in a terminal.
    """
    settings = ChatSettings()
    setup_logging(level=settings.log_level)
    print("Welcome to the Kitchen Assistant!")

    api_key = settings.api_key or os.getenv("DEEPSEEK_API_KEY")
    if not api_key:
        print("Error: KITCHEN_API_KEY not found in environment variables.")
        return

    recipe_file = os.getenv("KITCHEN_RECIPES_FILE")
    recipe_book = InMemoryRecipeBook.from_json(recipe_file) if recipe_file else InMemoryRecipeBook()

    ui = ConsoleUI()
    dispatcher = AgentDispatcher(recipe_book, UnavailablePlaceSearch(), settings)
    dispatcher.init(api_key, ui)

    print("\nStart chatting! Type 'exit' or 'quit' to stop, 'reset' to start over.")
    while True:
        user_input = input("\nYou: ").strip()
        if user_input.lower() in ["exit", "quit"]:
            print("Goodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() == "reset":
            dispatcher.reset_all_agents()
            print("Conversation cleared.")
            continue

        seen = set(ui.messages)
        if ui.on_pick is not None and user_input in ui.suggestions:
            pick, ui.on_pick = ui.on_pick, None
            await pick(user_input)
        else:
            await dispatcher.dispatch(user_input)
        ui.flush([message_id for message_id in ui.messages if message_id not in seen])

        if ui.suggestions:
            print("Suggestions: " + " | ".join(ui.suggestions))


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
