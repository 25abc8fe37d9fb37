"""Models describing registered tools and the outcome of a tool call."""

from typing import Any, Callable, Dict, Optional, Type

from pydantic import BaseModel, Field


class ToolDefinition(BaseModel):
    """
    Represents the definition of a tool offered to the model.

    Attributes:
        name: The unique name of the tool, as the model will call it.
        description: What the tool does. Sent to the model verbatim.
        func: The Python callable (sync or async) implementing the tool.
        parameters: JSON schema of the tool's arguments.
        args_model: Pydantic model used to validate and coerce arguments before the call.
    """

    name: str
    description: str
    func: Callable
    parameters: Optional[Dict[str, Any]] = None
    args_model: Optional[Type[BaseModel]] = None


class ToolCallResult(BaseModel):
    """Outcome of executing a single tool call.

    Attributes:
        name: Tool name as requested by the model.
        call_id: Id of the request this result answers.
        arguments: Decoded arguments. Empty when decoding failed.
        response: JSON-serializable payload handed back to the model.
        failed: True when the call could not be executed (unknown tool, bad arguments, timeout).
    """

    name: str
    call_id: str = ""
    arguments: Dict[str, Any] = Field(default_factory=dict)
    response: Dict[str, Any] = Field(default_factory=dict)
    failed: bool = False
