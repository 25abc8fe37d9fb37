"""Model-based intent classification used by the dispatcher before keyword scoring."""

from typing import List, Literal, Sequence

from pydantic import BaseModel, Field

from kitchen_agents.llm_core.exceptions import ClassificationFailure, TransportError
from kitchen_agents.llm_core.json_payload import extract_json_object
from kitchen_agents.llm_core.logger import get_logger
from kitchen_agents.llm_core.messages import ConversationMessage, Role, SystemMessage, UserMessage
from kitchen_agents.llm_impl.openai_api import ChatOptions, StreamingChatClient

logger = get_logger(__name__)

INTENT_PROMPT = """你是一个意图识别助手，负责判断用户最新一句话的意图：
- cook：用户想自己做饭，例如查询菜谱、做法、推荐菜单、管理菜品
- restaurant：用户想找地方吃饭，例如找餐厅、附近美食、探店
- unclear：无法判断用户是想自己做饭还是出去吃

请结合之前的对话理解省略的内容。只返回JSON，不要其他内容，格式如下：
{"intent": "cook", "confidence": 0.9}
其中 intent 只能是 cook、restaurant、unclear 之一，confidence 是0到1之间的数字。"""


class IntentVerdict(BaseModel):
    """What the classifier thinks the user wants."""

    intent: Literal["cook", "restaurant", "unclear"]
    confidence: float = Field(ge=0.0, le=1.0)


def default_verdict() -> IntentVerdict:
    return IntentVerdict(intent="cook", confidence=0.0)


class IntentClassifier:
    """
    Asks the model whether a message is about cooking, eating out, or unclear.

    A failed call never blocks the turn: it yields ``cook`` with confidence 0, which
    the dispatcher treats as no hint at all.
    """

    def __init__(self, client: StreamingChatClient, temperature: float = 0.1, history_window: int = 10) -> None:
        self.client = client
        self.temperature = temperature
        self.history_window = history_window

    async def classify(self, log: Sequence[ConversationMessage], message: str) -> IntentVerdict:
        try:
            verdict = await self._request_verdict(log, message)
        except (TransportError, ClassificationFailure) as exc:
            logger.warning(f"Intent classification failed, defaulting to cook: {exc}")
            return default_verdict()

        logger.debug(f"Intent verdict: {verdict.intent} ({verdict.confidence:.2f})")
        return verdict

    async def _request_verdict(self, log: Sequence[ConversationMessage], message: str) -> IntentVerdict:
        messages: List[ConversationMessage] = [SystemMessage(content=INTENT_PROMPT)]
        messages.extend(self.recent_entries(log))
        messages.append(UserMessage(content=message))

        result = await self.client.send(messages, options=ChatOptions(temperature=self.temperature))
        return self.parse_verdict(result.content)

    def recent_entries(self, log: Sequence[ConversationMessage]) -> List[ConversationMessage]:
        """The last ``history_window`` user and assistant entries of the log."""
        if self.history_window <= 0:
            return []
        entries = [m for m in log if m.role in (Role.USER, Role.ASSISTANT) and m.content]
        return entries[-self.history_window :]

    @staticmethod
    def parse_verdict(text: str) -> IntentVerdict:
        """
        Parse the model's reply.

        Raises:
            ClassificationFailure: If the reply is not a valid verdict object.
        """
        try:
            return IntentVerdict.model_validate(extract_json_object(text))
        except ValueError as exc:
            # pydantic's ValidationError is a ValueError as well
            raise ClassificationFailure(f"Unusable intent verdict: {text!r}") from exc
