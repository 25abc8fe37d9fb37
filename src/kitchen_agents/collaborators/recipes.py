"""Recipe storage used by the cooking agent, and the tools exposing it to the model."""

import json
import random
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any, Dict, Iterable, List, Optional, Protocol, Tuple, Union

from pydantic import BaseModel, Field

from kitchen_agents.llm_core.logger import get_logger
from kitchen_agents.llm_core.tools import ToolRegistry

logger = get_logger(__name__)

MEAT_CATEGORIES = ("荤菜", "水产")
NOT_VEGETABLE_CATEGORIES = MEAT_CATEGORIES + ("早餐", "主食")
DEFAULT_PEOPLE_COUNT = 4


class RecipeBook(Protocol):
    """Where recipes come from. Results are plain dicts handed straight to the model."""

    def get_menu(self, people_count: int = DEFAULT_PEOPLE_COUNT, context: str = "") -> Dict[str, Any]:
        """Returns ``{"peopleCount", "dishes", "message"}``."""
        ...

    def get_recipe(self, dish_name: str) -> Dict[str, Any]:
        """Returns ``{"success": True, "recipe"}``, ``{"possibleMatches", ...}`` or ``{"error", ...}``."""
        ...

    def add_recipe(self, recipe_data: Dict[str, Any]) -> Dict[str, Any]:
        """Returns ``{"success": True, "recipe", "message"}`` or ``{"success": False, "error"}``."""
        ...


class Ingredient(BaseModel):
    name: Annotated[str, Field(description="食材名称")]
    text_quantity: Annotated[str, Field(description='用量描述，如"100克"、"适量"')] = ""


class RecipeStep(BaseModel):
    step: Annotated[int, Field(description="步骤序号")]
    description: Annotated[str, Field(description="步骤描述")]


class RecipeDraft(BaseModel):
    """A recipe as the model submits it for saving."""

    name: Annotated[str, Field(description='菜品名称（必填），例如"我的秘制红烧肉"')]
    category: Annotated[str, Field(description='菜品分类（必填），如"荤菜"、"素菜"、"汤羹"、"主食"、"小吃"、"饮品"等')]
    description: Annotated[Optional[str], Field(description="菜品描述，可以包含菜品特色、口味、来源等信息")] = None
    difficulty: Annotated[Optional[int], Field(description="难度等级，1-5的整数，1最简单，5最难，默认为3")] = None
    servings: Annotated[Optional[int], Field(description="份数，默认为1")] = None
    ingredients: Annotated[
        Optional[List[Ingredient]], Field(description="食材列表，每项包含name（名称）和text_quantity（用量描述）")
    ] = None
    steps: Annotated[
        Optional[List[RecipeStep]], Field(description="制作步骤列表，每项包含step（步骤序号）和description（步骤描述）")
    ] = None
    prep_time_minutes: Annotated[Optional[int], Field(description="准备时间（分钟）")] = None
    cook_time_minutes: Annotated[Optional[int], Field(description="烹饪时间（分钟）")] = None
    additional_notes: Annotated[Optional[List[str]], Field(description="小贴士或注意事项")] = None
    tags: Annotated[Optional[List[str]], Field(description='标签列表，如["快手菜", "下饭菜"]')] = None


def _clean_description(description: Any) -> str:
    """Strip headings, difficulty lines and images from a markdown description."""
    if not isinstance(description, str) or not description:
        return ""
    cleaned = re.sub(r"^#+\s+.+$", "", description, flags=re.MULTILINE)
    cleaned = re.sub(r"预估烹饪难度[：:].*", "", cleaned)
    cleaned = re.sub(r"^.*[★☆]{2,}.*$", "", cleaned, flags=re.MULTILINE)
    cleaned = re.sub(r"!\[.*?\]\(.*?\)", "", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned).strip()
    return cleaned or "美味佳肴"


INGREDIENT_PREFERENCES = {
    "海鲜": ["虾", "蟹", "鱼", "贝", "蛤", "鲍鱼", "扇贝", "海参", "鱿鱼", "章鱼"],
    "水产": ["虾", "蟹", "鱼", "贝", "蛤", "鲍鱼", "扇贝", "海参", "鱿鱼", "章鱼"],
    "猪肉": ["猪肉", "五花肉", "里脊", "排骨", "猪蹄", "猪肝"],
    "牛肉": ["牛肉", "牛排", "牛腩", "牛柳"],
    "鸡肉": ["鸡", "鸡翅", "鸡腿", "鸡胸"],
    "羊肉": ["羊肉", "羊排", "羊腿"],
    "豆腐": ["豆腐", "豆干", "豆皮"],
    "蔬菜": ["青菜", "白菜", "菠菜", "生菜", "芹菜", "西兰花", "菜花"],
    "菌菇": ["香菇", "蘑菇", "金针菇", "木耳", "银耳", "平菇"],
    "素菜": ["青菜", "白菜", "菠菜", "茄子", "豆腐", "土豆", "萝卜"],
}

TASTE_PREFERENCES = {
    "辣": ["辣", "麻辣", "香辣", "川菜", "湘菜"],
    "清淡": ["清淡", "少油", "少盐", "健康"],
    "咸": ["咸", "重口"],
    "甜": ["甜", "糖醋"],
    "酸": ["酸", "醋"],
    "鲜": ["鲜", "清鲜"],
    "炒": ["炒", "快手"],
    "蒸": ["蒸", "清蒸"],
    "煮": ["煮", "炖", "汤"],
    "炸": ["炸", "煎"],
    "烤": ["烤", "烧烤"],
    "凉拌": ["凉拌", "凉菜"],
}


@dataclass(frozen=True)
class Preferences:
    """Keywords and categories pulled out of a free-text wish such as "想吃海鲜"."""

    keywords: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, context: str) -> "Preferences":
        if not context or not isinstance(context, str):
            return cls()
        text = context.lower()
        keywords: List[str] = []
        categories: List[str] = []
        for key, items in INGREDIENT_PREFERENCES.items():
            if key in text:
                keywords.extend(items)
                if key in ("海鲜", "水产"):
                    categories.append("水产")
        for key, triggers in TASTE_PREFERENCES.items():
            if any(trigger in text for trigger in triggers):
                keywords.append(key)
        return cls(tuple(dict.fromkeys(keywords)), tuple(dict.fromkeys(categories)))

    def rank(self, dishes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Matching dishes, best first. Empty when nothing matches."""
        if not self.keywords:
            return []

        scored = []
        for dish in dishes:
            name = dish.get("name", "").lower()
            text = f"{name} {dish.get('description') or ''} {dish.get('category', '')} {' '.join(dish.get('tags') or [])}".lower()
            ingredients = " ".join(i.get("name", "") for i in dish.get("ingredients") or []).lower()
            score = 10 if dish.get("category") in self.categories else 0
            for keyword in self.keywords:
                score += (5 if keyword in text else 0) + (8 if keyword in ingredients else 0) + (15 if keyword in name else 0)
            if score > 0:
                scored.append((score, dish))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [dish for _, dish in scored]


def _strip_suffix(name: str) -> str:
    return re.sub(r"的做法$", "", name).strip()


class InMemoryRecipeBook:
    """
    A recipe book kept in a list.

    Menus pick random dishes, so pass a seeded ``random.Random`` for repeatable results.
    Saved recipes live only as long as the instance.
    """

    def __init__(self, recipes: Optional[Iterable[Dict[str, Any]]] = None, rng: Optional[random.Random] = None):
        self.recipes: List[Dict[str, Any]] = list(recipes or [])
        self._random = rng or random.Random()

    @classmethod
    def from_json(cls, path: Union[str, Path], rng: Optional[random.Random] = None) -> "InMemoryRecipeBook":
        """Load recipes from a file holding a JSON array.

        Raises:
            ValueError: If the file does not contain an array.
        """
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array of recipes in {path}.")
        logger.info(f"Loaded {len(data)} recipes from {path}")
        return cls(data, rng=rng)

    def get_menu(self, people_count: int = DEFAULT_PEOPLE_COUNT, context: str = "") -> Dict[str, Any]:
        if not 1 <= people_count <= 20:
            logger.warning(f"People count {people_count} out of range, using {DEFAULT_PEOPLE_COUNT}.")
            people_count = DEFAULT_PEOPLE_COUNT

        if not self.recipes:
            return {"peopleCount": people_count, "dishes": [], "message": "⚠️ 菜谱数据未加载，无法推荐菜单"}

        meat_count = (people_count + 2) // 2
        vegetable_count = (people_count + 1) // 2
        meat_pool = [r for r in self.recipes if r.get("category") in MEAT_CATEGORIES]
        vegetable_pool = [r for r in self.recipes if r.get("category") not in NOT_VEGETABLE_CATEGORIES]

        preferences = Preferences.parse(context)
        if preferences.keywords:
            logger.debug(f"Menu preferences: {preferences}")
        dishes = self._pick(meat_pool, meat_count, preferences) + self._pick(vegetable_pool, vegetable_count, preferences)

        counts: Dict[str, int] = {}
        for dish in dishes:
            counts[dish.get("category", "")] = counts.get(dish.get("category", ""), 0) + 1
        category_text = "、".join(f"{count}道{category}" for category, count in counts.items())

        return {
            "peopleCount": people_count,
            "dishes": [
                {
                    "name": dish.get("name"),
                    "category": dish.get("category"),
                    "difficulty": dish.get("difficulty"),
                    "description": _clean_description(dish.get("description")),
                    "image": dish.get("image_path") or next(iter(dish.get("images") or []), None),
                }
                for dish in dishes
            ],
            "message": f"为{people_count}人推荐的菜单，包含{category_text}，共{len(dishes)}道菜。",
        }

    def _pick(self, pool: List[Dict[str, Any]], count: int, preferences: Preferences) -> List[Dict[str, Any]]:
        """Best-ranked dishes for the stated preferences, a random sample otherwise."""
        ranked = preferences.rank(pool)
        if ranked:
            return ranked[:count]
        if preferences.keywords:
            logger.debug("No dish matches the stated preferences, recommending at random.")
        return self._random.sample(pool, min(count, len(pool)))

    def get_recipe(self, dish_name: str) -> Dict[str, Any]:
        if not dish_name or not isinstance(dish_name, str):
            return {"error": "菜品名称不能为空", "suggestion": "请提供有效的菜品名称"}
        if not self.recipes:
            return {"error": "菜谱数据未加载", "suggestion": "请稍后重试"}

        found = self._lookup(dish_name)
        if found is not None:
            return {"success": True, "recipe": found}

        query = dish_name.lower()
        matches = [
            r
            for r in self.recipes
            if query in r.get("name", "").lower() or query in (r.get("description") or "").lower()
        ][:5]
        if not matches:
            return {
                "error": "未找到匹配的菜谱",
                "query": dish_name,
                "suggestion": "请检查菜谱名称是否正确，或尝试使用关键词搜索",
            }
        return {
            "message": "未找到精确匹配，以下是可能的匹配项：",
            "query": dish_name,
            "possibleMatches": [
                {"id": r.get("id"), "name": r.get("name"), "description": r.get("description"), "category": r.get("category")}
                for r in matches
            ],
        }

    def _lookup(self, dish_name: str) -> Optional[Dict[str, Any]]:
        """id, exact name, name without the 的做法 suffix, then substring either way."""
        for recipe in self.recipes:
            if recipe.get("id") == dish_name:
                return recipe
        for recipe in self.recipes:
            if recipe.get("name") == dish_name:
                return recipe

        clean_query = _strip_suffix(dish_name)
        for recipe in self.recipes:
            if _strip_suffix(recipe.get("name", "")) == clean_query:
                return recipe

        query = dish_name.lower()
        clean_lower = clean_query.lower()
        for recipe in self.recipes:
            name = recipe.get("name", "")
            clean_name = _strip_suffix(name).lower()
            if not clean_name:
                continue
            if query in name.lower() or clean_lower in clean_name or clean_name in clean_lower:
                return recipe
        return None

    def add_recipe(self, recipe_data: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(recipe_data, dict):
            return {"success": False, "error": "菜品数据格式错误"}
        name = recipe_data.get("name")
        if not isinstance(name, str) or not name.strip():
            return {"success": False, "error": "菜品名称不能为空"}
        category = recipe_data.get("category")
        if not isinstance(category, str) or not category:
            return {"success": False, "error": "菜品分类不能为空"}

        slug = re.sub(r"\s+", "-", name)
        recipe_id = f"custom-{int(time.time() * 1000)}-{slug}"
        recipe = {
            "id": recipe_id,
            "name": name,
            "description": recipe_data.get("description") or "",
            "source_path": f"custom/{recipe_id}.md",
            "image_path": recipe_data.get("image_path"),
            "images": recipe_data.get("images") or [],
            "category": category,
            "difficulty": recipe_data.get("difficulty") or 3,
            "tags": recipe_data.get("tags") or [category],
            "servings": recipe_data.get("servings") or 1,
            "ingredients": recipe_data.get("ingredients") or [],
            "steps": recipe_data.get("steps") or [],
            "prep_time_minutes": recipe_data.get("prep_time_minutes"),
            "cook_time_minutes": recipe_data.get("cook_time_minutes"),
            "total_time_minutes": recipe_data.get("total_time_minutes"),
            "additional_notes": recipe_data.get("additional_notes") or [],
            "custom": True,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        existing = next((i for i, r in enumerate(self.recipes) if r.get("name") == name), None)
        if existing is None:
            self.recipes.insert(0, recipe)
            logger.info(f"Added recipe '{name}'")
            message = f'菜品"{name}"添加成功'
        else:
            self.recipes[existing] = recipe
            logger.info(f"Updated recipe '{name}'")
            message = f'菜品"{name}"已更新'
        return {"success": True, "message": message, "recipe": recipe}


def build_recipe_registry(book: RecipeBook) -> ToolRegistry:
    """Register ``getMenu``, ``getRecipe`` and ``addRecipe`` backed by ``book``."""
    registry = ToolRegistry()

    def get_menu(
        peopleCount: Annotated[int, Field(description="用餐人数（1-10人），会根据人数推荐合适数量和搭配的菜品")] = DEFAULT_PEOPLE_COUNT,
        context: Annotated[
            str,
            Field(
                description='用户的口味偏好或需求描述，例如："想吃海鲜"、"要辣的菜"、"清淡一些"。'
                "应从对话历史中提取用户表达的偏好，如果用户没有明确偏好则留空。"
            ),
        ] = "",
    ) -> Dict[str, Any]:
        """根据用餐人数和用户偏好推荐荤素搭配的菜品组合，解决用户"今天吃什么"的难题。"""
        return book.get_menu(peopleCount, context)

    def get_recipe(
        dishName: Annotated[
            str, Field(description="用户想要查询做法的菜品或饮品名称，例如 '麻婆豆腐'、'西红柿炒鸡蛋'、'可乐桶' 等。")
        ],
    ) -> Dict[str, Any]:
        """根据用户提供的菜品或饮品名称，查询并返回详细的制作方法，包括所需食材和步骤。"""
        return book.get_recipe(dishName)

    def add_recipe(recipeData: Annotated[RecipeDraft, Field(description="菜品数据对象")]) -> Dict[str, Any]:
        """立即添加用户自定义的菜品或饮品配方到菜谱库中。当用户说"添加"、"保存"、"记录"、"添加到菜谱库"等词时，必须调用此工具执行实际操作，而不是只回复确认信息。"""
        return book.add_recipe(recipeData.model_dump(exclude_none=True))

    registry.register("getMenu", func=get_menu)
    registry.register("getRecipe", func=get_recipe)
    registry.register("addRecipe", func=add_recipe)
    return registry
