"""Executes the tool calls of one model turn against a registry."""

from __future__ import annotations

import asyncio
import inspect
import json
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError

from ...exceptions import ToolArgumentError, ToolExecutionError
from ...logger import get_logger
from ...messages import ToolCallRequest, ToolMessage
from ..models import ToolCallResult
from ..registry import ToolRegistry

logger = get_logger(__name__)


class ToolExecutor:
    """Runs tool calls and turns every outcome into a result the model can read.

    Failures that belong to the model (unknown tool, malformed or mismatching
    arguments, recoverable tool errors) are reported back as ``{"error": ...}``
    payloads. Anything else propagates and ends the turn.
    """

    # System errors (ConnectionError, MemoryError, ...) are not listed and propagate.
    RECOVERABLE_ERRORS = (
        ToolExecutionError,
        ValueError,
        TypeError,
        KeyError,
    )

    def __init__(self, registry: ToolRegistry, tool_timeout: float = 30.0) -> None:
        """Initialize the executor.

        Args:
            registry: Registry used to resolve tool names.
            tool_timeout: Timeout in seconds for asynchronous tools.
        """
        self.registry = registry
        self.tool_timeout = tool_timeout

    async def execute_all(self, tool_calls: Sequence[ToolCallRequest]) -> List[ToolCallResult]:
        """Execute calls one after another, in the order the model issued them."""
        results = []
        for index, tool_call in enumerate(tool_calls):
            logger.info(f"Tool call {index + 1}/{len(tool_calls)}: '{tool_call.name}'")
            results.append(await self.execute(tool_call))
        return results

    async def execute(self, tool_call: ToolCallRequest) -> ToolCallResult:
        """Validate and run a single tool call.

        Args:
            tool_call: The completed request from the stream.

        Returns:
            The result, with ``failed=True`` when the tool could not be run.
        """
        logger.debug(f"Handling tool call: {tool_call.name} (ID: {tool_call.id or '<none>'})")

        tool_def = self.registry.tools.get(tool_call.name) if tool_call.name else None
        if tool_def is None:
            msg = f"Tool '{tool_call.name}' not found in registry."
            logger.warning(msg)
            return self.failure(tool_call, msg)

        try:
            arguments = self.parse_arguments(tool_call)
            call_kwargs = self._validate_arguments(tool_call.name, tool_def.args_model, arguments)
        except ToolArgumentError as exc:
            logger.warning(f"Rejected arguments for '{tool_call.name}': {exc}")
            return self.failure(tool_call, str(exc))

        try:
            outcome = await self._run(tool_def.func, call_kwargs)
        except self.RECOVERABLE_ERRORS as exc:
            msg = f"Error executing '{tool_call.name}': {exc}"
            logger.warning(f"{msg} ({type(exc).__name__})")
            return self.failure(tool_call, msg, arguments)

        response = outcome if isinstance(outcome, dict) else {"result": outcome}
        return ToolCallResult(name=tool_call.name, call_id=tool_call.id, arguments=arguments, response=response)

    @staticmethod
    def parse_arguments(tool_call: ToolCallRequest) -> Dict[str, Any]:
        """Decode the accumulated argument text of a call.

        Raises:
            ToolArgumentError: If the text is not a JSON object.
        """
        raw = tool_call.arguments.strip()
        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ToolArgumentError(f"Failed to decode arguments for tool '{tool_call.name}': {exc}") from exc
        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ToolArgumentError(f"Arguments for tool '{tool_call.name}' must decode to a JSON object.")
        return parsed

    @staticmethod
    def _validate_arguments(tool_name: str, args_model: Any, arguments: Dict[str, Any]) -> Dict[str, Any]:
        if args_model is None:
            return dict(arguments)
        try:
            validated = args_model(**arguments)
        except ValidationError as exc:
            raise ToolArgumentError(f"Argument validation failed for tool '{tool_name}': {exc}") from exc
        # dict() keeps nested models intact, unlike model_dump()
        return dict(validated)

    async def _run(self, func: Any, kwargs: Dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(func):
            try:
                return await asyncio.wait_for(func(**kwargs), timeout=self.tool_timeout)
            except asyncio.TimeoutError as exc:
                raise ToolExecutionError(f"Tool execution timed out after {self.tool_timeout} seconds.") from exc

        result = func(**kwargs)
        if inspect.isawaitable(result):
            return await asyncio.wait_for(result, timeout=self.tool_timeout)
        return result

    @staticmethod
    def failure(tool_call: ToolCallRequest, message: str, arguments: Dict[str, Any] | None = None) -> ToolCallResult:
        return ToolCallResult(
            name=tool_call.name,
            call_id=tool_call.id,
            arguments=arguments or {},
            response={"error": message},
            failed=True,
        )

    @staticmethod
    def to_message(result: ToolCallResult) -> ToolMessage:
        """Build the tool-role history entry answering a call."""
        return ToolMessage(
            content=json.dumps(result.response, ensure_ascii=False, default=str),
            tool_call_id=result.call_id,
            name=result.name,
        )
