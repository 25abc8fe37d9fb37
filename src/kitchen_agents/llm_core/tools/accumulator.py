"""Reassembles streamed tool-call fragments into complete requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from ..logger import get_logger
from ..messages import ToolCallRequest

logger = get_logger(__name__)


@dataclass
class _PendingToolCall:
    id: str = ""
    name: str = ""
    arguments: str = ""


class ToolCallAccumulator:
    """Merges indexed tool-call fragments arriving across stream chunks.

    Each fragment carries the integer ``index`` of the call it belongs to. Fragments
    for different indexes may interleave and arrive out of order, but all fragments
    of one index arrive in order. The id may arrive late and overwrites the stored
    one; the name is set once; argument text is appended.
    """

    def __init__(self) -> None:
        self._calls: Dict[int, _PendingToolCall] = {}

    @property
    def has_calls(self) -> bool:
        return bool(self._calls)

    def apply(self, fragment: Mapping[str, Any]) -> None:
        """Apply one ``delta.tool_calls[]`` entry.

        Args:
            fragment: The raw fragment, e.g. ``{"index": 0, "id": "call_1", "function": {"arguments": "{\\"a"}}``.
        """
        index = fragment.get("index")
        if not isinstance(index, int) or isinstance(index, bool):
            logger.debug("Ignoring tool call fragment without index: %s", fragment)
            return

        pending = self._calls.setdefault(index, _PendingToolCall())

        call_id = fragment.get("id")
        if call_id:
            pending.id = str(call_id)

        function = fragment.get("function") or {}
        name = function.get("name")
        if name and not pending.name:
            pending.name = str(name)

        arguments = function.get("arguments")
        if arguments:
            pending.arguments += str(arguments)

    def apply_all(self, fragments: List[Mapping[str, Any]]) -> None:
        for fragment in fragments:
            if isinstance(fragment, Mapping):
                self.apply(fragment)
            else:
                logger.debug("Ignoring malformed tool call fragment: %r", fragment)

    def finalize(self) -> List[ToolCallRequest]:
        """Compact the sparse index map into an ordered list of frozen requests."""
        return [
            ToolCallRequest(id=pending.id, name=pending.name, arguments=pending.arguments)
            for _, pending in sorted(self._calls.items())
        ]
