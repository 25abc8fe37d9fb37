"""Tool-related data models."""

from .models import ToolDefinition, ToolCallResult

__all__ = ["ToolDefinition", "ToolCallResult"]
