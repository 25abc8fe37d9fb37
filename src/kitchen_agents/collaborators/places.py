"""Nearby place search used by the restaurant finder, and the tool exposing it."""

from typing import Annotated, Any, Dict, Literal, Optional, Protocol

from pydantic import Field

from kitchen_agents.llm_core.logger import get_logger
from kitchen_agents.llm_core.tools import ToolRegistry

logger = get_logger(__name__)


class PlaceSearch(Protocol):
    """A nearby-place lookup. The user's location is resolved by the implementation when not given.

    Successful results look like ``{"success": True, "pois": [...], "count", "location",
    "message", "locationInfo"}``; failures like ``{"success": False, "error": "..."}``.
    """

    async def search_nearby(self, **params: Any) -> Dict[str, Any]: ...


class UnavailablePlaceSearch:
    """Stand-in used when no map service is configured. Every search fails politely."""

    def __init__(self, reason: str = "未配置地图服务") -> None:
        self.reason = reason

    async def search_nearby(self, **params: Any) -> Dict[str, Any]:
        logger.warning(f"Place search requested but unavailable: {self.reason}")
        return {"success": False, "error": self.reason}


def build_place_registry(search: PlaceSearch) -> ToolRegistry:
    """Register ``searchNearby`` backed by ``search``."""
    registry = ToolRegistry()

    async def search_nearby(
        location: Annotated[
            Optional[str], Field(description='中心点坐标，格式为"经度,纬度"。可选，不传则自动通过IP定位获取用户当前位置')
        ] = None,
        keywords: Annotated[Optional[str], Field(description='搜索关键字，如"火锅"、"川菜"、"咖啡"等，不超过80字符', max_length=80)] = None,
        types: Annotated[
            Optional[str], Field(description='地点类型码，默认"050000"（餐饮服务）。多个类型用"|"分隔')
        ] = None,
        radius: Annotated[Optional[int], Field(description="搜索半径，单位米，取值范围0-50000，默认5000", ge=0, le=50000)] = None,
        sortrule: Annotated[
            Optional[Literal["distance", "weight"]],
            Field(description='排序规则："distance"按距离排序（默认），"weight"综合排序'),
        ] = None,
        page_size: Annotated[Optional[int], Field(description="每页返回的数据条数，取值1-25，默认10", ge=1, le=25)] = None,
        page_num: Annotated[Optional[int], Field(description="请求第几页，默认1", ge=1)] = None,
    ) -> Dict[str, Any]:
        """搜索附近的美食或其他地点。会自动通过IP定位识别用户位置，无需用户提供。可以根据关键词、类型、距离等条件筛选，返回名称、地址、电话、评分、人均消费等信息。适用于"附近有什么好吃的"、"周边美食推荐"等场景。"""
        params = {
            "location": location,
            "keywords": keywords,
            "types": types,
            "radius": radius,
            "sortrule": sortrule,
            "page_size": page_size,
            "page_num": page_num,
        }
        return await search.search_nearby(**{key: value for key, value in params.items() if value is not None})

    registry.register("searchNearby", func=search_nearby)
    return registry
