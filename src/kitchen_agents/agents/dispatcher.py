"""Routes each user message to the agent best suited to answer it."""

from typing import Dict, List, Optional, Tuple

from kitchen_agents.collaborators.places import PlaceSearch
from kitchen_agents.collaborators.recipes import RecipeBook
from kitchen_agents.llm_core.config import ChatSettings
from kitchen_agents.llm_core.exceptions import AgentError, UnknownAgentError
from kitchen_agents.llm_core.logger import get_logger
from kitchen_agents.llm_core.messages import AssistantMessage, ConversationMessage, UserMessage
from kitchen_agents.llm_impl.openai_api import StreamingChatClient
from .base import Agent, TurnContext
from .cook import CookAgent
from .food_finder import FoodFinderAgent
from .intent import IntentClassifier, IntentVerdict
from .suggestions import SuggestionAgent
from .ui import ChatUI

logger = get_logger(__name__)

DEFAULT_AGENT = CookAgent.name

INTENT_AGENTS: Dict[str, str] = {
    "cook": CookAgent.name,
    "restaurant": FoodFinderAgent.name,
}

CLARIFICATION_PROMPT = "你是想自己动手做饭，还是想找个地方吃饭呢？"

# choice -> (agent name, template for the message forwarded to it)
CLARIFICATION_OPTIONS: Dict[str, Tuple[str, str]] = {
    "我自己做饭": (CookAgent.name, "我想自己做饭：{message}"),
    "找地方吃饭": (FoodFinderAgent.name, "帮我找个地方吃饭：{message}"),
}


class AgentDispatcher:
    """
    Owns the agents and decides which one handles a message.

    Selection uses the intent classifier when enabled and confident, keyword scores
    otherwise. The dispatcher keeps its own short log of the conversation for the
    classifier; agents never see each other's histories.
    """

    def __init__(
        self,
        recipe_book: RecipeBook,
        place_search: PlaceSearch,
        settings: Optional[ChatSettings] = None,
    ) -> None:
        self.settings = settings or ChatSettings()
        self.recipe_book = recipe_book
        self.place_search = place_search

        self.agents: List[Agent] = []
        self.suggestion_agent: Optional[SuggestionAgent] = None
        self.intent_classifier: Optional[IntentClassifier] = None
        self.ui: Optional[ChatUI] = None

        self.current_agent: Optional[Agent] = None
        self.dispatcher_log: List[ConversationMessage] = []
        self.last_user_message = ""
        self.last_assistant_message = ""

    def init(self, api_key: Optional[str], ui: ChatUI, client: Optional[StreamingChatClient] = None) -> None:
        """
        Build the agents and bind them to one shared client.

        Args:
            api_key: Bearer token for the model endpoint. Ignored when ``client`` is given.
            ui: The chat front-end.
            client: A ready client, mostly for tests.
        """
        client = client or StreamingChatClient.from_settings(self.settings, api_key=api_key)
        self.ui = ui

        self.agents = [
            CookAgent(self.recipe_book, self.settings),
            FoodFinderAgent(self.place_search, self.settings),
        ]
        for agent in self.agents:
            agent.init(api_key, client=client)

        self.suggestion_agent = SuggestionAgent(self.settings)
        self.suggestion_agent.init(api_key, client=client)

        self.intent_classifier = None
        if self.settings.intent_classification:
            self.intent_classifier = IntentClassifier(client, history_window=self.settings.intent_history_window)

        self.current_agent = None
        self.dispatcher_log = []
        logger.info(f"Dispatcher ready with agents: {[agent.name for agent in self.agents]}")

    async def dispatch(self, message: str) -> None:
        """
        Handle one user message end to end: classify, select, handle, suggest.

        Failures are shown to the user as a single system error message.

        Raises:
            AgentError: If the dispatcher was never initialized.
        """
        ui = self._require_ui()
        try:
            self.last_user_message = message

            verdict = await self.classify(message)
            if verdict is not None and verdict.intent == "unclear":
                self._ask_for_clarification(message)
                return

            agent = self.select_agent(message, hint=verdict)
            await self._complete_turn(agent, message)
        except Exception as exc:
            logger.error(f"Dispatch failed: {exc}", exc_info=True)
            ui.add_message("assistant", f"❌ 系统错误: {exc}")

    async def classify(self, message: str) -> Optional[IntentVerdict]:
        """The classifier's verdict, or None when classification is disabled."""
        if self.intent_classifier is None:
            return None
        return await self.intent_classifier.classify(self.dispatcher_log, message)

    def select_agent(self, message: str, hint: Optional[IntentVerdict] = None) -> Agent:
        """
        Pick the agent for ``message``.

        A confident intent hint wins outright. Otherwise the highest ``can_handle`` score
        wins if it exceeds the selection threshold; ties go to the earlier registered agent.
        Everything else goes to the cooking agent.
        """
        if hint is not None and hint.confidence >= self.settings.intent_confidence_threshold:
            hinted = self.get_agent(INTENT_AGENTS.get(hint.intent, ""))
            if hinted is not None:
                logger.debug(f"Selected {hinted.name} from intent '{hint.intent}'")
                return hinted

        # sorted() is stable, also with reverse=True
        ranked = sorted(((agent.can_handle(message), agent) for agent in self.agents), key=lambda item: item[0], reverse=True)
        logger.debug(f"Agent scores: {[(agent.name, score) for score, agent in ranked]}")

        if ranked and ranked[0][0] > self.settings.selection_threshold:
            return ranked[0][1]

        default = self.get_agent(DEFAULT_AGENT)
        if default is None:
            raise AgentError("No agent available to handle the message.")
        return default

    async def dispatch_to_agent(self, agent_name: str, message: str) -> None:
        """
        Hand a message straight to a named agent, skipping selection.

        Raises:
            UnknownAgentError: If no agent with that name is registered.
        """
        agent = self.get_agent(agent_name)
        if agent is None:
            raise UnknownAgentError(f"未找到Agent: {agent_name}")

        self.current_agent = agent
        await agent.handle_message(message, TurnContext(ui=self._require_ui(), dispatcher=self))

    async def get_suggestions(self, user_message: str, assistant_message: str) -> List[str]:
        if self.suggestion_agent is None:
            return []
        return await self.suggestion_agent.generate_suggestions(user_message, assistant_message)

    def get_agent(self, name: str) -> Optional[Agent]:
        return next((agent for agent in self.agents if agent.name == name), None)

    def get_all_agents(self) -> List[Agent]:
        return list(self.agents)

    def get_current_agent(self) -> Optional[Agent]:
        return self.current_agent

    def reset_all_agents(self) -> None:
        """Start over: every agent's history, the dispatcher log and the current agent."""
        for agent in self.agents:
            agent.reset_conversation()
        self.dispatcher_log = []
        self.current_agent = None
        self.last_user_message = ""
        self.last_assistant_message = ""
        logger.info("All agents reset.")

    async def _complete_turn(self, agent: Agent, message: str, record_user: bool = True) -> None:
        if record_user:
            self.dispatcher_log.append(UserMessage(content=message))

        start = len(agent.conversation_history)
        await self.dispatch_to_agent(agent.name, message)

        reply = agent.last_assistant_content(since=start)
        if reply is not None:
            self.last_assistant_message = reply
            self.dispatcher_log.append(AssistantMessage(content=reply))

        suggestions = await self.get_suggestions(self.last_user_message, self.last_assistant_message)
        self._require_ui().show_suggestions(suggestions)

    def _ask_for_clarification(self, message: str) -> None:
        ui = self._require_ui()
        logger.info("Intent unclear, asking the user to choose.")

        async def on_pick(choice: str) -> None:
            await self._resolve_clarification(message, choice)

        ui.add_message("assistant", CLARIFICATION_PROMPT)
        ui.show_suggestions(list(CLARIFICATION_OPTIONS), on_pick=on_pick)

    async def _resolve_clarification(self, original: str, choice: str) -> None:
        option = CLARIFICATION_OPTIONS.get(choice)
        if option is None:
            await self.dispatch(choice)
            return

        agent_name, template = option
        self.dispatcher_log.extend(
            [
                UserMessage(content=original),
                AssistantMessage(content=CLARIFICATION_PROMPT),
                UserMessage(content=choice),
            ]
        )
        canonical = template.format(message=original)
        self.last_user_message = canonical

        ui = self._require_ui()
        try:
            agent = self.get_agent(agent_name)
            if agent is None:
                raise UnknownAgentError(f"未找到Agent: {agent_name}")
            await self._complete_turn(agent, canonical, record_user=False)
        except Exception as exc:
            logger.error(f"Clarification follow-up failed: {exc}", exc_info=True)
            ui.add_message("assistant", f"❌ 系统错误: {exc}")

    def _require_ui(self) -> ChatUI:
        if self.ui is None:
            raise AgentError("Dispatcher is not initialized. Call init() first.")
        return self.ui
