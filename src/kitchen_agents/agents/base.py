"""Common behavior of the chat agents: history, client binding and the streamed tool turn."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence

from kitchen_agents.llm_core.config import ChatSettings
from kitchen_agents.llm_core.exceptions import AgentError
from kitchen_agents.llm_core.logger import get_logger
from kitchen_agents.llm_core.messages import (
    AssistantMessage,
    ConversationMessage,
    Role,
    SystemMessage,
    ToolCallRequest,
)
from kitchen_agents.llm_core.tools import ToolCallResult, ToolExecutor, ToolRegistry
from kitchen_agents.llm_impl.openai_api import ChatOptions, StreamingChatClient, StreamResult
from .ui import ChatUI

if TYPE_CHECKING:
    from .dispatcher import AgentDispatcher

logger = get_logger(__name__)


@dataclass
class TurnContext:
    """What an agent gets to work with while handling one user message."""

    ui: ChatUI
    dispatcher: Optional["AgentDispatcher"] = None


class Agent(ABC):
    """
    Base class for the chat agents.

    Each agent keeps its own conversation history, starting with its system prompt,
    and talks to the model through a shared ``StreamingChatClient``.
    """

    name: str = "Agent"
    description: str = ""
    system_prompt: str = ""

    def __init__(self, settings: Optional[ChatSettings] = None) -> None:
        """
        Initializes the agent.

        Args:
            settings: Model and loop configuration. Defaults to ``ChatSettings()`` (environment).
        """
        self.settings = settings or ChatSettings()
        self.client: Optional[StreamingChatClient] = None
        self.registry: Optional[ToolRegistry] = None
        self.conversation_history: List[ConversationMessage] = []
        self.reset_conversation()

    def init(self, api_key: Optional[str], client: Optional[StreamingChatClient] = None) -> None:
        """Bind credentials and start from a fresh history. Safe to call again.

        Args:
            api_key: Bearer token for the model endpoint. Ignored when ``client`` is given.
            client: A ready client to share between agents.
        """
        self.client = client or StreamingChatClient.from_settings(self.settings, api_key=api_key)
        self.reset_conversation()
        logger.info(f"{self.name} initialized.")

    def reset_conversation(self) -> None:
        """Drop everything but the system prompt."""
        self.conversation_history = [SystemMessage(content=self.system_prompt)] if self.system_prompt else []

    def add_to_history(self, message: ConversationMessage) -> None:
        self.conversation_history.append(message)

    def get_history(self) -> List[ConversationMessage]:
        """A shallow copy of the history; appending to it does not affect the agent."""
        return list(self.conversation_history)

    def last_assistant_content(self, since: int = 0) -> Optional[str]:
        """Content of the newest plain assistant entry at or after index ``since``."""
        for message in reversed(self.conversation_history[since:]):
            if message.role == Role.ASSISTANT and not message.tool_calls and message.content is not None:
                return message.content
        return None

    @abstractmethod
    def can_handle(self, message: str) -> int:
        """Score in [0, 100] of how well this agent fits ``message``. Pure and deterministic."""

    @abstractmethod
    async def handle_message(self, message: str, context: TurnContext) -> None:
        """Handle one user message, reporting progress and results through ``context.ui``."""

    @property
    def chat_client(self) -> StreamingChatClient:
        if self.client is None:
            raise AgentError(f"{self.name} is not initialized. Call init() first.")
        return self.client

    @property
    def executor(self) -> ToolExecutor:
        if self.registry is None:
            raise AgentError(f"{self.name} has no tools.")
        return ToolExecutor(self.registry, tool_timeout=self.settings.tool_timeout)

    async def _stream_turn(
        self,
        ui: ChatUI,
        message_id: str,
        options: Optional[ChatOptions] = None,
        messages: Optional[Sequence[ConversationMessage]] = None,
    ) -> StreamResult:
        """Stream one model reply into ``message_id``.

        Text is shown as it arrives until the model announces tool calls; from then
        on the placeholder is cleared and later text is ignored.
        """
        tools_pending = False

        def on_text(content: str) -> None:
            if not tools_pending:
                ui.update_message(message_id, content)

        def on_tool_calls(tool_calls: List[ToolCallRequest]) -> None:
            nonlocal tools_pending
            tools_pending = True
            ui.update_message(message_id, "")

        result = await self.chat_client.send(
            messages if messages is not None else self.conversation_history,
            on_text_update=on_text,
            on_tool_calls_ready=on_tool_calls,
            options=options,
        )
        if tools_pending and not result.tool_calls:
            # tool signal without any fragments, fall back to the text reply
            ui.update_message(message_id, result.content)
        return result

    async def _run_tool_round(self, result: StreamResult) -> List[ToolCallResult]:
        """Record the assistant's tool calls, execute them in order and record every answer.

        When a tool raises, the calls still unanswered get an error reply before the
        exception propagates, so the history stays valid for the next request.
        """
        executor = self.executor
        tool_calls = result.tool_calls or []
        self.add_to_history(AssistantMessage(content=result.content or None, tool_calls=tool_calls))

        results: List[ToolCallResult] = []
        try:
            for index, tool_call in enumerate(tool_calls):
                logger.info(f"Tool call {index + 1}/{len(tool_calls)}: '{tool_call.name}'")
                tool_result = await executor.execute(tool_call)
                results.append(tool_result)
                self.add_to_history(ToolExecutor.to_message(tool_result))
        except Exception as exc:
            for tool_call in tool_calls[len(results) :]:
                failure = ToolExecutor.failure(tool_call, f"Error executing '{tool_call.name}': {exc}")
                self.add_to_history(ToolExecutor.to_message(failure))
            raise
        return results

    async def _synthesize(self, ui: ChatUI, message_id: str) -> str:
        """Let the model answer from the tool results without offering tools again."""
        final = await self.chat_client.send(
            self.conversation_history,
            on_text_update=lambda content: ui.update_message(message_id, content),
        )
        self.add_to_history(AssistantMessage(content=final.content))
        return final.content
