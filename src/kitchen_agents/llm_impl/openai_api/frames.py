"""Incremental parser for server-sent chat-completion streams."""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Dict, List, Optional

from kitchen_agents.llm_core.exceptions import StreamParseError
from kitchen_agents.llm_core.logger import get_logger
from kitchen_agents.llm_core.tools import ToolCallAccumulator
from .models import StreamResult, TextUpdateCallback, ToolCallsReadyCallback

logger = get_logger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
TOOL_CALLS_FINISH_REASON = "tool_calls"


class SSEFrameDecoder:
    """Splits arbitrary text chunks into complete lines.

    A trailing partial line is kept in the buffer until the chunk that completes it arrives.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> List[str]:
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        """Return whatever is left once the body is exhausted."""
        rest, self._buffer = self._buffer.rstrip("\r"), ""
        return [rest] if rest.strip() else []


class StreamConsumer:
    """Turns stream frames into cumulative text updates and completed tool calls.

    ``on_text_update`` receives the full text accumulated so far after every content
    delta. ``on_tool_calls_ready`` fires at most once, when a frame reports
    ``finish_reason == "tool_calls"``, after that frame's fragments were applied.
    """

    def __init__(
        self,
        on_text_update: Optional[TextUpdateCallback] = None,
        on_tool_calls_ready: Optional[ToolCallsReadyCallback] = None,
    ) -> None:
        self._on_text_update = on_text_update
        self._on_tool_calls_ready = on_tool_calls_ready
        self._content = ""
        self._accumulator = ToolCallAccumulator()
        self._tool_calls_signalled = False
        self.finish_reason: Optional[str] = None
        self.done = False
        self.skipped_frames = 0

    async def consume(self, chunks: AsyncIterator[str]) -> StreamResult:
        """Read a text stream until the end sentinel or the end of the body."""
        decoder = SSEFrameDecoder()
        async for chunk in chunks:
            for line in decoder.feed(chunk):
                if not self.feed_line(line):
                    return self.result()
        for line in decoder.flush():
            self.feed_line(line)
        return self.result()

    def feed_line(self, line: str) -> bool:
        """Process one line.

        Returns:
            False once the end sentinel was seen, True otherwise.
        """
        stripped = line.strip()
        if not stripped or not stripped.startswith(DATA_PREFIX):
            return True

        data = stripped[len(DATA_PREFIX) :].strip()
        if data == DONE_SENTINEL:
            self.done = True
            return False

        try:
            choice = self._decode(data)
        except StreamParseError as exc:
            self.skipped_frames += 1
            logger.warning(f"Skipping malformed stream frame: {exc} ({exc.frame[:200]!r})")
            return True

        if choice is not None:
            self._apply(choice)
        return True

    def result(self) -> StreamResult:
        tool_calls = self._accumulator.finalize() if self._accumulator.has_calls else None
        return StreamResult(content=self._content, tool_calls=tool_calls, finish_reason=self.finish_reason)

    @staticmethod
    def _decode(data: str) -> Optional[Dict[str, Any]]:
        """Decode a frame payload into its first choice, validating the shape we rely on.

        Raises:
            StreamParseError: If the payload is not JSON or has an unexpected shape.
        """
        try:
            chunk = json.loads(data)
        except json.JSONDecodeError as exc:
            raise StreamParseError(f"invalid JSON: {exc}", frame=data) from exc

        if not isinstance(chunk, dict):
            raise StreamParseError("frame is not a JSON object", frame=data)

        choices = chunk.get("choices")
        if not choices:
            # usage-only or keep-alive chunks
            return None
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise StreamParseError("unexpected 'choices' shape", frame=data)

        choice = choices[0]
        delta = choice.get("delta")
        if delta is not None and not isinstance(delta, dict):
            raise StreamParseError("unexpected 'delta' shape", frame=data)
        if delta:
            content = delta.get("content")
            if content is not None and not isinstance(content, str):
                raise StreamParseError("content delta is not a string", frame=data)
            tool_calls = delta.get("tool_calls")
            if tool_calls is not None and not isinstance(tool_calls, list):
                raise StreamParseError("tool_calls delta is not a list", frame=data)
            for fragment in tool_calls or []:
                if not isinstance(fragment, dict):
                    raise StreamParseError("tool call fragment is not an object", frame=data)
                function = fragment.get("function")
                if function is not None and not isinstance(function, dict):
                    raise StreamParseError("tool call 'function' is not an object", frame=data)
        return choice

    def _apply(self, choice: Dict[str, Any]) -> None:
        delta = choice.get("delta") or {}

        content = delta.get("content")
        if content:
            self._content += content
            if self._on_text_update is not None:
                self._on_text_update(self._content)

        tool_calls = delta.get("tool_calls")
        if tool_calls:
            self._accumulator.apply_all(tool_calls)

        finish_reason = choice.get("finish_reason")
        if finish_reason:
            self.finish_reason = finish_reason

        if finish_reason == TOOL_CALLS_FINISH_REASON and not self._tool_calls_signalled:
            self._tool_calls_signalled = True
            if self._on_tool_calls_ready is not None:
                self._on_tool_calls_ready(self._accumulator.finalize())
