"""The cooking agent: recipes, menus and the user's own recipe library."""

import time
from functools import partial
from typing import Any, Dict, List, Optional

from kitchen_agents.collaborators.recipes import RecipeBook, build_recipe_registry
from kitchen_agents.llm_core.config import ChatSettings
from kitchen_agents.llm_core.exceptions import TransportError
from kitchen_agents.llm_core.json_payload import extract_json_object
from kitchen_agents.llm_core.logger import get_logger
from kitchen_agents.llm_core.messages import AssistantMessage, SystemMessage, UserMessage
from kitchen_agents.llm_core.tools import ToolCallResult
from kitchen_agents.llm_impl.openai_api import ChatOptions
from .base import Agent, TurnContext
from .scoring import KeywordScorer
from .ui import ChatUI, MenuCard, RecipeCard

logger = get_logger(__name__)

COOK_KEYWORDS = (
    "做", "煮", "炒", "蒸", "煎", "炸", "烤", "炖", "煲",
    "菜谱", "菜单", "推荐", "食材", "步骤", "做法", "怎么做",
    "今天吃什么", "吃什么", "菜品", "料理", "烹饪",
)

ONLINE_SEARCH_SYSTEM_PROMPT = "你是一个专业的菜谱助手。请联网搜索用户指定的菜品做法，并严格按照JSON格式返回。"

ONLINE_RECIPE_FORMAT = """

{
  "name": "菜品名称",
  "description": "菜品简介（50字左右）",
  "category": "菜品分类（荤菜/素菜/汤羹/主食/小吃/饮品等）",
  "difficulty": 难度等级（1-5的数字）,
  "servings": 份数（数字）,
  "ingredients": [{"name": "食材名", "text_quantity": "用量"}],
  "steps": [{"step": 1, "description": "步骤描述"}],
  "prep_time_minutes": 准备时间（数字，分钟）,
  "cook_time_minutes": 烹饪时间（数字，分钟）,
  "additional_notes": ["小贴士1", "小贴士2"]
}"""


def _minutes(value: Any) -> int:
    return int(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else 0


class CookAgent(Agent):
    """Answers cooking questions, using the recipe book first and the web as a fallback."""

    name = "CookAgent"
    description = "负责处理做饭相关的任务，包括菜谱查询、菜单推荐、菜品管理等"
    system_prompt = """你是一个专业的烹饪助手，精通各种菜谱和做饭技巧。你的职责包括：
1. 回答关于菜谱、烹饪方法的问题
2. 根据人数和需求推荐菜单
3. 提供详细的烹饪步骤和技巧
4. 帮助用户管理和查询菜品

你可以使用工具来查询菜谱数据库、生成菜单推荐。如果数据库中没有用户需要的菜谱，可以联网搜索。
请保持友好、专业的语气，并尽可能提供详细和实用的建议。"""

    scorer = KeywordScorer.build(
        COOK_KEYWORDS,
        keyword_weight=20,
        patterns=[
            (r".*怎么做|.*的做法|.*食谱|.*菜谱", 30),
            (r"推荐.*菜|.*人.*菜单|今天吃什么", 30),
        ],
    )

    def __init__(self, recipe_book: RecipeBook, settings: Optional[ChatSettings] = None) -> None:
        super().__init__(settings)
        self.recipe_book = recipe_book
        self.registry = build_recipe_registry(recipe_book)

    def can_handle(self, message: str) -> int:
        return self.scorer.score(message)

    async def handle_message(self, message: str, context: TurnContext) -> None:
        ui = context.ui
        message_id = ui.add_message("assistant", "")

        try:
            self.add_to_history(UserMessage(content=message))
            result = await self._stream_turn(ui, message_id, ChatOptions(tools=self.registry.tool_object))

            if not result.tool_calls:
                self.add_to_history(AssistantMessage(content=result.content))
                return

            ui.update_message(message_id, "")
            tool_results = await self._run_tool_round(result)
            await self._present(tool_results, ui, message_id)
        except Exception as exc:
            logger.error(f"{self.name} failed to handle message: {exc}", exc_info=True)
            ui.update_message(message_id, f"❌ 发生错误: {exc}")

    async def _present(self, tool_results: List[ToolCallResult], ui: ChatUI, message_id: str) -> None:
        """Render what the tools produced: recipe, online recipe, menu, or a model-written answer."""
        menu: Optional[Dict[str, Any]] = None
        recipe: Optional[Dict[str, Any]] = None
        missing_dish: Optional[str] = None

        for tool_result in tool_results:
            if tool_result.failed:
                continue
            response = tool_result.response
            if tool_result.name == "getMenu" and isinstance(response.get("dishes"), list):
                menu = response
            elif tool_result.name == "getRecipe":
                if response.get("success") and response.get("recipe"):
                    recipe = response["recipe"]
                elif response.get("error") and tool_result.arguments.get("dishName"):
                    missing_dish = tool_result.arguments["dishName"]

        if recipe is not None:
            ui.update_message(message_id, "", RecipeCard(recipe=recipe, source="library"))
            self.add_to_history(AssistantMessage(content=f"已为用户显示了《{recipe.get('name')}》的详细做法。"))
            return

        if missing_dish:
            found = await self.search_recipe_online(missing_dish, ui, message_id)
            if found is not None:
                self.add_to_history(AssistantMessage(content=f"已通过联网搜索找到《{found['name']}》的做法并展示给用户。"))
                return
        elif menu is not None:
            ui.update_message(
                message_id,
                "",
                MenuCard(people_count=menu.get("peopleCount", 0), dishes=menu["dishes"], message=menu.get("message", "")),
            )
            self.add_to_history(
                AssistantMessage(content=f"已为用户推荐了{menu.get('peopleCount')}人份的菜单，包含{len(menu['dishes'])}道菜。")
            )
            return

        await self._synthesize(ui, message_id)

    async def search_recipe_online(self, dish_name: str, ui: ChatUI, message_id: str) -> Optional[Dict[str, Any]]:
        """
        Ask the model to look a recipe up on the web and return it as JSON.

        The recipe is rendered with an add-to-library action. Any transport or parse
        failure is shown in the message and None is returned.
        """
        messages = [
            SystemMessage(content=ONLINE_SEARCH_SYSTEM_PROMPT),
            UserMessage(content=f'请联网搜索"{dish_name}"的详细做法，并按照以下JSON格式返回（只返回JSON，不要其他内容）：{ONLINE_RECIPE_FORMAT}'),
        ]
        ui.update_message(message_id, "🔍 正在联网搜索并整理菜品做法...")

        try:
            result = await self.chat_client.send(messages, options=ChatOptions(enable_web_search=True, temperature=0.3))
            recipe = self.parse_online_recipe(result.content)
        except (TransportError, ValueError) as exc:
            logger.warning(f"Online recipe search for '{dish_name}' failed: {exc}")
            ui.update_message(message_id, f"❌ 联网搜索失败：{exc}")
            return None

        ui.update_message(
            message_id,
            "",
            RecipeCard(recipe=recipe, source="online", on_add_to_library=partial(self.add_to_library, recipe, ui)),
        )
        return recipe

    @staticmethod
    def parse_online_recipe(content: str) -> Dict[str, Any]:
        """Turn the model's JSON reply into a recipe dict.

        Raises:
            ValueError: If there is no JSON object or it lacks ``name``/``category``.
        """
        recipe = extract_json_object(content)
        if not recipe.get("name") or not recipe.get("category"):
            raise ValueError("返回的菜品数据格式不完整")

        recipe["id"] = f"searched-{int(time.time() * 1000)}"
        recipe["source"] = recipe["source_path"] = "online"
        recipe["tags"] = recipe.get("tags") or [recipe["category"]]
        recipe["total_time_minutes"] = _minutes(recipe.get("prep_time_minutes")) + _minutes(recipe.get("cook_time_minutes"))
        return recipe

    def add_to_library(self, recipe: Dict[str, Any], ui: ChatUI) -> Dict[str, Any]:
        """Save an online recipe in the recipe book and tell the user how it went."""
        outcome = self.recipe_book.add_recipe(recipe)
        if outcome.get("success"):
            ui.add_message("assistant", f'✨ "{recipe["name"]}"已成功加入你的菜品库！')
        else:
            ui.add_message("assistant", f"❌ 加入失败：{outcome.get('error', '未知错误')}")
        return outcome
