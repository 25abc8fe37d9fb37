"""Tool registry: holds the tools offered to the model and renders their schemas."""

import inspect
from typing import Any, Callable, Dict, List, Optional, Union, cast

import jsonref  # type: ignore
from pydantic import create_model

from ..models import ToolDefinition
from ..schema import SchemaValidator, ToolParameterFactory
from ...exceptions import ToolNotFoundError, ToolRegistrationError, ToolValidationError
from ...logger import get_logger

logger = get_logger(__name__)


class ToolRegistry:
    """
    A registry of the tools one agent offers to the model.

    It keeps the declarations sent with each request and maps tool names to
    the Python callables that implement them.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self.tools: Dict[str, ToolDefinition] = {}

    def register(
        self,
        name_or_tool: Union[str, ToolDefinition, Callable],
        description: Optional[str] = None,
        func: Optional[Callable] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Register a new tool.

        Accepts a ready ``ToolDefinition``, a callable (definition generated from its
        signature and docstring), or a name plus ``func`` (and optionally an explicit
        ``parameters`` schema, which then requires ``description``).

        Raises:
            ToolRegistrationError: If arguments are incomplete or the name is already taken.
        """
        if isinstance(name_or_tool, ToolDefinition):
            tool = name_or_tool
        elif callable(name_or_tool):
            tool = self._generate_tool_definition(name_or_tool, description=description)
        else:
            if func is None:
                raise ToolRegistrationError("If passing name as string, func is required.")

            if parameters is None:
                tool = self._generate_tool_definition(func, name=name_or_tool, description=description)
            else:
                if description is None:
                    raise ToolRegistrationError("If passing name and parameters, description is required.")
                tool = ToolDefinition(name=name_or_tool, description=description, func=func, parameters=parameters)

        if tool.name in self.tools:
            msg = f"Tool '{tool.name}' is already registered."
            logger.error(msg)
            raise ToolRegistrationError(msg)

        self.tools[tool.name] = tool
        logger.debug(f"Registered tool: '{tool.name}'")

    def unregister(self, tool_name: str) -> None:
        """Remove a tool from the registry.

        Raises:
            ToolNotFoundError: If the tool does not exist in the registry.
        """
        if tool_name not in self.tools:
            raise ToolNotFoundError(f"Tool '{tool_name}' not found in the registry.")
        del self.tools[tool_name]
        logger.debug(f"Unregistered tool: '{tool_name}'")

    def tool(self, func: Callable) -> Callable:
        """A decorator to turn a function into a tool.

        Args:
            func: The function to decorate.

        Returns:
            The original function, after registering it.
        """
        self.register(func)
        return func

    @property
    def tool_object(self) -> List[Dict[str, Any]] | None:
        """
        The tool list in chat-completions format.

        Returns:
            A list of ``{"type": "function", "function": {...}}`` entries, or None
            when nothing is registered (meaning no tool capability is offered).
        """
        if not self.tools:
            return None

        tools_list = []
        for tool in self.tools.values():
            tools_list.append(
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters or {"type": "object", "properties": {}},
                    },
                }
            )
        return tools_list

    @property
    def implementations(self) -> Dict[str, Callable]:
        """Mapping of tool names to their callables."""
        return {name: tool.func for name, tool in self.tools.items()}

    def _generate_tool_definition(
        self, func: Callable, name: Optional[str] = None, description: Optional[str] = None
    ) -> ToolDefinition:
        """Generate a ToolDefinition from a callable.

        Args:
            func: The function to generate a definition for.
            name: Optional name override, e.g. a camelCase name the model is prompted with.
            description: Optional description override. Defaults to the docstring.

        Returns:
            The definition including the argument model and its sanitized JSON schema.

        Raises:
            ToolValidationError: If the function has no docstring or a parameter has no description.
        """
        tool_name = name or func.__name__
        if description is None:
            description = self._get_docstring_from_func(func, tool_name)

        fields = self._build_fields(inspect.signature(func), tool_name)
        args_model = create_model(f"{tool_name}Params", **cast(Dict[str, Any], fields))
        raw_schema = args_model.model_json_schema()

        SchemaValidator.assert_no_recursive_refs(raw_schema)
        # proxies=False gives plain dicts back instead of lazy JsonRef objects
        resolved = jsonref.replace_refs(raw_schema, proxies=False)
        parameters = SchemaValidator.sanitize_schema(resolved)

        return ToolDefinition(
            name=tool_name,
            description=description,
            func=func,
            parameters=parameters,
            args_model=args_model,
        )

    @staticmethod
    def _get_docstring_from_func(func: Callable, tool_name: str) -> str:
        doc = inspect.getdoc(func)
        if not doc:
            msg = f"Tool '{tool_name}' missing docstring. The model needs a description of what the tool does."
            logger.error(msg)
            raise ToolValidationError(msg)
        return doc

    @staticmethod
    def _build_fields(signature: inspect.Signature, tool_name: str) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        for param_name, param in signature.parameters.items():
            if param_name == "self":
                continue
            ft = ToolParameterFactory.build_field_tuple(param_name=param_name, param=param, tool_name=tool_name)
            fields[param_name] = (ft.annotation, ft.field)
        return fields
