import json
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union
from unittest.mock import AsyncMock, MagicMock

import pytest

from kitchen_agents.collaborators import InMemoryRecipeBook
from kitchen_agents.llm_core.config import ChatSettings
from kitchen_agents.llm_core.messages import ConversationMessage, Role, ToolCallRequest
from kitchen_agents.llm_impl.openai_api import ChatOptions, StreamingChatClient, StreamResult


class RecordingUI:
    """A ChatUI that remembers everything the agents told it."""

    def __init__(self) -> None:
        self.messages: Dict[str, Dict[str, Any]] = {}
        self.order: List[str] = []
        self.updates: List[tuple] = []
        self.suggestions: List[List[str]] = []
        self.on_pick: Optional[Callable[[str], Awaitable[None]]] = None

    def add_message(self, role: str, text: str, message_id: Optional[str] = None, structured: Any = None) -> str:
        message_id = message_id or f"msg-{len(self.order) + 1}"
        self.messages[message_id] = {"role": role, "text": text, "structured": structured}
        self.order.append(message_id)
        return message_id

    def update_message(self, message_id: str, text: str, structured: Any = None) -> None:
        entry = self.messages[message_id]
        entry["text"] = text
        if structured is not None:
            entry["structured"] = structured
        self.updates.append((message_id, text))

    def show_suggestions(self, questions: List[str], on_pick: Any = None) -> None:
        self.suggestions.append(list(questions))
        self.on_pick = on_pick

    @property
    def last(self) -> Dict[str, Any]:
        return self.messages[self.order[-1]]

    def texts(self) -> List[str]:
        return [self.messages[message_id]["text"] for message_id in self.order]


def tool_call(name: str, arguments: Union[Dict[str, Any], str], call_id: str = "call_0") -> ToolCallRequest:
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments, ensure_ascii=False)
    return ToolCallRequest(id=call_id, name=name, arguments=raw)


def reply(content: str = "", tool_calls: Optional[List[ToolCallRequest]] = None) -> StreamResult:
    finish_reason = "tool_calls" if tool_calls else "stop"
    return StreamResult(content=content, tool_calls=tool_calls, finish_reason=finish_reason)


Step = Union[StreamResult, BaseException]


def scripted_client(*steps: Step) -> MagicMock:
    """
    A StreamingChatClient mock answering each ``send`` with the next scripted step.

    Text is delivered through ``on_text_update`` and tool calls through
    ``on_tool_calls_ready``, like the real client does. Every request is recorded
    in ``client.requests`` as ``(messages, options)``.
    """
    client = MagicMock(spec=StreamingChatClient)
    queue = list(steps)
    client.requests = []

    async def send(
        messages: Sequence[ConversationMessage],
        on_text_update: Any = None,
        on_tool_calls_ready: Any = None,
        options: Optional[ChatOptions] = None,
    ) -> StreamResult:
        client.requests.append((list(messages), options))
        if not queue:
            raise AssertionError("Unexpected model call.")
        step = queue.pop(0)
        if isinstance(step, BaseException):
            raise step
        if step.content and on_text_update is not None:
            on_text_update(step.content)
        if step.tool_calls and on_tool_calls_ready is not None:
            on_tool_calls_ready(list(step.tool_calls))
        return step

    client.send = AsyncMock(side_effect=send)
    return client


def assert_tool_calls_answered(history: Sequence[ConversationMessage]) -> None:
    """Every assistant tool call is followed by exactly one tool message with its id."""
    for position, message in enumerate(history):
        if message.role == Role.ASSISTANT and message.tool_calls:
            answers = history[position + 1 : position + 1 + len(message.tool_calls)]
            assert [m.role for m in answers] == [Role.TOOL] * len(message.tool_calls)
            assert [m.tool_call_id for m in answers] == [call.id for call in message.tool_calls]


SAMPLE_RECIPES: List[Dict[str, Any]] = [
    {
        "id": "mapo-tofu",
        "name": "麻婆豆腐",
        "category": "荤菜",
        "difficulty": 2,
        "description": "# 麻婆豆腐的做法\n麻辣鲜香的川菜。\n预估烹饪难度：★★",
        "ingredients": [{"name": "豆腐", "text_quantity": "1块"}, {"name": "牛肉末", "text_quantity": "100克"}],
        "steps": [{"step": 1, "description": "豆腐切块焯水"}, {"step": 2, "description": "炒香牛肉末后下豆腐"}],
    },
    {
        "id": "kung-pao",
        "name": "宫保鸡丁",
        "category": "荤菜",
        "difficulty": 3,
        "description": "经典川菜",
        "ingredients": [{"name": "鸡胸肉"}, {"name": "花生"}],
    },
    {
        "id": "steamed-fish",
        "name": "清蒸鲈鱼",
        "category": "水产",
        "difficulty": 3,
        "description": "鲜嫩的清蒸鱼",
        "ingredients": [{"name": "鲈鱼"}],
    },
    {
        "id": "braised-pork",
        "name": "红烧肉的做法",
        "category": "荤菜",
        "difficulty": 4,
        "description": "肥而不腻",
        "ingredients": [{"name": "五花肉"}],
    },
    {
        "id": "tomato-egg",
        "name": "西红柿炒鸡蛋",
        "category": "素菜",
        "difficulty": 1,
        "description": "家常快手菜",
        "ingredients": [{"name": "西红柿"}, {"name": "鸡蛋"}],
    },
    {
        "id": "garlic-greens",
        "name": "蒜蓉青菜",
        "category": "素菜",
        "difficulty": 1,
        "description": "清淡爽口",
        "ingredients": [{"name": "青菜"}],
    },
    {
        "id": "seaweed-soup",
        "name": "紫菜蛋花汤",
        "category": "汤羹",
        "difficulty": 1,
        "description": "简单的汤",
        "ingredients": [{"name": "紫菜"}],
    },
    {
        "id": "fried-rice",
        "name": "蛋炒饭",
        "category": "主食",
        "difficulty": 1,
        "description": "剩饭的好去处",
        "ingredients": [],
    },
]


class StubPlaceSearch:
    """Returns a canned search response and records the parameters it was called with."""

    def __init__(self, response: Dict[str, Any]) -> None:
        self.response = response
        self.calls: List[Dict[str, Any]] = []

    async def search_nearby(self, **params: Any) -> Dict[str, Any]:
        self.calls.append(params)
        return self.response


@pytest.fixture
def settings() -> ChatSettings:
    return ChatSettings(api_key="test-key", intent_classification=False)


@pytest.fixture
def ui() -> RecordingUI:
    return RecordingUI()


@pytest.fixture
def recipe_book() -> InMemoryRecipeBook:
    return InMemoryRecipeBook([dict(recipe) for recipe in SAMPLE_RECIPES], rng=random.Random(0))


@pytest.fixture
def places() -> StubPlaceSearch:
    return StubPlaceSearch(
        {
            "success": True,
            "pois": [
                {"id": "B001", "name": "老码头火锅", "address": "解放路1号", "distance": "320"},
                {"id": "B002", "name": "小龙坎", "address": "人民路8号", "distance": "540"},
            ],
            "count": 2,
            "location": "104.06,30.67",
            "message": "📍 成都 - 找到 2 个附近的地点",
            "locationInfo": {"city": "成都"},
        }
    )
