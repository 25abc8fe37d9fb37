import json
from typing import Annotated, List, Optional

import pytest
from pydantic import BaseModel, Field

from kitchen_agents.llm_core.exceptions import ToolNotFoundError, ToolRegistrationError, ToolValidationError
from kitchen_agents.llm_core.tools import ToolDefinition, ToolRegistry


def test_registry_tool_decorator() -> None:
    registry = ToolRegistry()

    @registry.tool
    def my_tool(x: Annotated[int, Field(description="An integer")]) -> int:
        """My tool description."""
        return x * 2

    assert "my_tool" in registry.tools
    tool_def = registry.tools["my_tool"]
    assert tool_def.description == "My tool description."
    assert tool_def.func(2) == 4
    assert tool_def.args_model is not None


def test_registry_tool_object() -> None:
    registry = ToolRegistry()

    @registry.tool
    def my_tool(x: Annotated[int, Field(description="An integer")]) -> int:
        """My tool description."""
        return x * 2

    tool_obj = registry.tool_object
    assert isinstance(tool_obj, list)
    assert len(tool_obj) == 1

    tool_def = tool_obj[0]
    assert tool_def["type"] == "function"
    assert tool_def["function"]["name"] == "my_tool"
    assert tool_def["function"]["description"] == "My tool description."
    parameters = tool_def["function"]["parameters"]
    assert parameters["type"] == "object"
    assert parameters["properties"]["x"] == {"type": "integer", "description": "An integer"}
    assert parameters["required"] == ["x"]
    assert parameters["additionalProperties"] is False


def test_empty_registry_offers_no_tools() -> None:
    assert ToolRegistry().tool_object is None


def test_register_with_explicit_name() -> None:
    registry = ToolRegistry()

    def get_menu(peopleCount: Annotated[int, Field(description="用餐人数")] = 4) -> dict:
        """推荐菜单。"""
        return {"peopleCount": peopleCount}

    registry.register("getMenu", func=get_menu)

    assert list(registry.tools) == ["getMenu"]
    assert registry.implementations == {"getMenu": get_menu}
    properties = registry.tools["getMenu"].parameters["properties"]  # type: ignore[index]
    assert properties["peopleCount"]["default"] == 4


def test_register_with_explicit_parameters() -> None:
    registry = ToolRegistry()
    schema = {"type": "object", "properties": {}}

    registry.register("ping", description="Ping.", func=lambda: "pong", parameters=schema)

    assert registry.tools["ping"].parameters == schema
    assert registry.tools["ping"].args_model is None


def test_register_explicit_parameters_require_description() -> None:
    with pytest.raises(ToolRegistrationError, match="description is required"):
        ToolRegistry().register("ping", func=lambda: "pong", parameters={"type": "object"})


def test_register_name_without_func() -> None:
    with pytest.raises(ToolRegistrationError, match="func is required"):
        ToolRegistry().register("ping")


def test_duplicate_names_are_rejected() -> None:
    registry = ToolRegistry()
    registry.register(ToolDefinition(name="dup", description="d", func=lambda: None))

    with pytest.raises(ToolRegistrationError, match="already registered"):
        registry.register(ToolDefinition(name="dup", description="d", func=lambda: None))


def test_unregister() -> None:
    registry = ToolRegistry()
    registry.register(ToolDefinition(name="gone", description="d", func=lambda: None))

    registry.unregister("gone")

    assert registry.tool_object is None
    with pytest.raises(ToolNotFoundError):
        registry.unregister("gone")


def test_registry_missing_docstring() -> None:
    registry = ToolRegistry()
    with pytest.raises(ToolValidationError, match="missing docstring"):

        @registry.tool
        def no_doc_tool(x: Annotated[int, Field(description="desc")]) -> None:
            pass


def test_registry_missing_param_description() -> None:
    registry = ToolRegistry()
    with pytest.raises(ToolValidationError, match="missing a description"):

        @registry.tool
        def bad_param_tool(x: int) -> None:
            """Docstring."""
            pass


def test_nested_pydantic_models_schema_resolution() -> None:
    """Nested models are inlined: chat endpoints get a schema without $ref or $defs."""
    registry = ToolRegistry()

    class Ingredient(BaseModel):
        name: str = Field(description="食材名称")
        text_quantity: str = Field(description="用量")

    class Recipe(BaseModel):
        name: str = Field(description="菜品名称")
        notes: Optional[str] = Field(default=None, description="小贴士")
        ingredients: List[Ingredient] = Field(description="食材列表")

    @registry.tool
    def save_recipe(recipe: Annotated[Recipe, Field(description="The recipe to save")]) -> str:
        """Saves a recipe."""
        return recipe.name

    parameters = registry.tools["save_recipe"].parameters
    assert parameters is not None
    raw = json.dumps(parameters)
    assert "$ref" not in raw
    assert "$defs" not in raw
    assert '"title"' not in raw

    recipe_schema = parameters["properties"]["recipe"]
    assert recipe_schema["type"] == "object"
    assert recipe_schema["additionalProperties"] is False
    assert recipe_schema["properties"]["notes"]["type"] == "string"
    assert "anyOf" not in recipe_schema["properties"]["notes"]
    ingredient_schema = recipe_schema["properties"]["ingredients"]["items"]
    assert set(ingredient_schema["properties"]) == {"name", "text_quantity"}


class TreeNode(BaseModel):
    label: str
    children: List["TreeNode"] = []


TreeNode.model_rebuild()


def test_recursive_models_are_rejected() -> None:
    registry = ToolRegistry()

    with pytest.raises(ToolValidationError, match="Recursive structure"):

        @registry.tool
        def walk(tree: Annotated[TreeNode, Field(description="A tree")]) -> None:
            """Walks a tree."""
