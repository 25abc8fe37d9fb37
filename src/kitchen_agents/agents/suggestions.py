"""Follow-up question suggestions shown after every turn."""

import random
import re
from typing import List, Optional

from kitchen_agents.llm_core.config import ChatSettings
from kitchen_agents.llm_core.exceptions import SuggestionGenerationFailure
from kitchen_agents.llm_core.logger import get_logger
from kitchen_agents.llm_core.messages import AssistantMessage, SystemMessage, UserMessage
from kitchen_agents.llm_impl.openai_api import ChatOptions
from .base import Agent, TurnContext

logger = get_logger(__name__)

MAX_SUGGESTIONS = 4

DEFAULT_SUGGESTIONS = (
    ("今天吃什么？", "推荐一份4人的菜单", "麻婆豆腐怎么做？", "有什么快手菜？"),
    ("推荐家常菜", "宫保鸡丁的做法", "有什么凉菜？", "推荐2人菜单"),
    ("今天吃什么？", "有什么汤可以做？", "西红柿炒鸡蛋怎么做？", "推荐素菜"),
)

SUGGESTION_INSTRUCTION = (
    "基于上面的对话，生成3-4个我接下来最可能输入的下一句话。要求：\n"
    "1. 每个问题独立一行\n"
    "2. 不要编号\n"
    "3. 问题要简短（10字以内）\n"
    "4. 问题要与刚才的对话紧密相关\n"
    "5. 只输出问题，不要其他内容"
)

_NUMBERED = re.compile(r"^[\d.\-*]+")


class SuggestionAgent(Agent):
    """Predicts what the user is likely to ask next. Never handles user messages itself."""

    name = "SuggestionAgent"
    description = "负责生成推荐问句"
    system_prompt = "你是一个智能问题推荐助手。根据用户的最后一个问题和助手的回答，预测用户接下来最有可能的问题或者回答。"

    def __init__(self, settings: Optional[ChatSettings] = None, rng: Optional[random.Random] = None) -> None:
        super().__init__(settings)
        self._random = rng or random.Random()

    def can_handle(self, message: str) -> int:
        return 0

    async def handle_message(self, message: str, context: TurnContext) -> None:
        raise NotImplementedError("SuggestionAgent does not handle messages; use generate_suggestions().")

    async def generate_suggestions(self, user_message: str, assistant_message: str) -> List[str]:
        """
        Suggest up to four short follow-ups based on the latest exchange only.

        Falls back to a canned group of four whenever the model call fails or yields
        nothing usable.
        """
        try:
            return await self._ask_model(user_message, assistant_message)
        except Exception as exc:
            logger.warning(f"Falling back to default suggestions: {exc}")
            return self.default_suggestions()

    async def _ask_model(self, user_message: str, assistant_message: str) -> List[str]:
        messages = [
            SystemMessage(content=self.system_prompt),
            UserMessage(content=user_message),
            AssistantMessage(content=assistant_message),
            UserMessage(content=SUGGESTION_INSTRUCTION),
        ]
        result = await self.chat_client.send(messages, options=ChatOptions(temperature=0.8))

        questions = self.parse_suggestions(result.content)
        if not questions:
            raise SuggestionGenerationFailure("The model returned no usable suggestions.")
        return questions

    @staticmethod
    def parse_suggestions(text: str) -> List[str]:
        """One suggestion per line; numbered or bulleted lines and odd lengths are dropped."""
        questions = []
        for line in text.split("\n"):
            line = line.strip()
            if line and not _NUMBERED.match(line) and 2 < len(line) < 30:
                questions.append(line)
        return questions[:MAX_SUGGESTIONS]

    def default_suggestions(self) -> List[str]:
        return list(self._random.choice(DEFAULT_SUGGESTIONS))
