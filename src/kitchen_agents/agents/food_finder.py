"""The restaurant finder: searches nearby places and lets the model talk about them."""

from typing import List, Optional

from kitchen_agents.collaborators.places import PlaceSearch, build_place_registry
from kitchen_agents.llm_core.config import ChatSettings
from kitchen_agents.llm_core.logger import get_logger
from kitchen_agents.llm_core.messages import AssistantMessage, UserMessage
from kitchen_agents.llm_core.tools import ToolCallResult
from kitchen_agents.llm_impl.openai_api import ChatOptions
from .base import Agent, TurnContext
from .scoring import KeywordScorer
from .ui import ChatUI, PlaceList

logger = get_logger(__name__)

FOOD_FINDER_KEYWORDS = (
    "餐厅", "饭店", "馆子", "探店", "附近", "周边",
    "外出吃", "去哪吃", "吃饭的地方", "美食", "小吃",
    "推荐店", "哪里有", "好吃的店", "餐馆",
)

SEARCH_TOOL = "searchNearby"
TIMEOUT_MESSAGE = "⏱️ 处理超时，请稍后重试或换个问法。"


class FoodFinderAgent(Agent):
    """
    Finds places to eat.

    The model may call ``searchNearby`` several times (for instance after fixing its
    arguments); the loop ends as soon as a search actually ran, or the model answers
    in plain text, or the iteration cap is reached.
    """

    name = "FoodFinderAgent"
    description = "负责处理找美食的任务，包括餐厅推荐、美食探店、附近美食等"
    system_prompt = """你是一个专业的美食向导，擅长推荐餐厅和美食探店。你的职责包括：
1. 根据用户需求推荐合适的餐厅
2. 提供附近美食、餐馆的信息
3. 介绍特色菜品和餐厅特点
4. 帮助用户做出就餐选择

你可以使用 searchNearby 工具搜索用户附近的餐厅，它会自动定位用户位置，不需要向用户询问位置。
请保持友好、热情的语气，并提供实用的就餐建议。"""

    scorer = KeywordScorer.build(
        FOOD_FINDER_KEYWORDS,
        keyword_weight=25,
        patterns=[
            (r"附近.*(餐厅|好吃|美食)|哪里.*好吃|推荐.*店|去哪.*吃", 30),
            (r"外出|出去吃|外面吃|下馆子", 25),
        ],
    )

    def __init__(self, place_search: PlaceSearch, settings: Optional[ChatSettings] = None) -> None:
        super().__init__(settings)
        self.place_search = place_search
        self.registry = build_place_registry(place_search)

    def can_handle(self, message: str) -> int:
        return self.scorer.score(message)

    async def handle_message(self, message: str, context: TurnContext) -> None:
        ui = context.ui
        message_id = ui.add_message("assistant", "")

        try:
            self.add_to_history(UserMessage(content=message))
            tools = self.registry.tool_object
            # web search only as a fallback when no tool schema is offered
            options = ChatOptions(tools=tools, enable_web_search=not tools)

            for iteration in range(1, self.settings.max_tool_iterations + 1):
                result = await self._stream_turn(ui, message_id, options)

                if not result.tool_calls:
                    self.add_to_history(AssistantMessage(content=result.content))
                    return

                ui.update_message(message_id, "")
                tool_results = await self._run_tool_round(result)
                if self._present(tool_results, ui, message_id):
                    return
                logger.debug(f"{self.name}: iteration {iteration} produced no search result, asking the model again.")

            logger.warning(f"{self.name} stopped after {self.settings.max_tool_iterations} iterations.")
            ui.update_message(message_id, TIMEOUT_MESSAGE)
            self.add_to_history(AssistantMessage(content=TIMEOUT_MESSAGE))
        except Exception as exc:
            logger.error(f"{self.name} failed to handle message: {exc}", exc_info=True)
            ui.update_message(message_id, f"❌ 发生错误: {exc}")

    def _present(self, tool_results: List[ToolCallResult], ui: ChatUI, message_id: str) -> bool:
        """Render the first search that actually ran. Returns True when the turn is over."""
        for tool_result in tool_results:
            if tool_result.name != SEARCH_TOOL or tool_result.failed:
                continue

            response = tool_result.response
            pois = response.get("pois") or []
            if response.get("success") and pois:
                places = PlaceList(
                    pois=pois,
                    count=response.get("count") or len(pois),
                    location=response.get("location"),
                    location_info=response.get("locationInfo"),
                    message=response.get("message", ""),
                )
                ui.update_message(message_id, "", places)
                summary = f"已为用户展示了附近的{len(pois)}个地点。"
                if places.message:
                    summary = f"{places.message}。{summary}"
                self.add_to_history(AssistantMessage(content=summary))
                return True

            if response.get("success"):
                text = response.get("message") or "附近没有找到符合条件的地点。"
            else:
                text = f"😔 搜索失败：{response.get('error', '未知错误')}"
            ui.update_message(message_id, text)
            self.add_to_history(AssistantMessage(content=text))
            return True

        return False
