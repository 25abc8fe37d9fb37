from .models import ToolDefinition, ToolCallResult
from .registry import ToolRegistry
from .schema import SchemaValidator, ToolParameterFactory
from .accumulator import ToolCallAccumulator
from .execution import ToolExecutor

__all__ = [
    "ToolDefinition",
    "ToolCallResult",
    "ToolRegistry",
    "SchemaValidator",
    "ToolParameterFactory",
    "ToolCallAccumulator",
    "ToolExecutor",
]
