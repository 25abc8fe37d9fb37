from typing import Any, Dict, Iterable, Optional, Sequence, cast

import httpx
from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI

from kitchen_agents.llm_core.config import ChatSettings
from kitchen_agents.llm_core.exceptions import TransportError
from kitchen_agents.llm_core.logger import get_logger
from kitchen_agents.llm_core.messages import ConversationMessage
from .frames import StreamConsumer
from .models import ChatOptions, StreamResult, TextUpdateCallback, ToolCallsReadyCallback

logger = get_logger(__name__)

GENERIC_FAILURE_MESSAGE = "调用API失败"


class StreamingChatClient:
    """
    Streams chat completions from an OpenAI-compatible endpoint.

    The ``AsyncOpenAI`` client supplies the base URL, bearer authentication,
    connection retries and HTTP error mapping. The response body is read as raw
    text and parsed frame by frame, so a single malformed frame is skipped
    instead of aborting the whole stream.
    """

    def __init__(self, client: AsyncOpenAI, model: str = "deepseek-chat", temperature: float = 0.7):
        """
        Initializes the streaming client.

        Args:
            client: The initialized AsyncOpenAI client.
            model: Model identifier sent with every request.
            temperature: Default temperature for requests that do not set one.
        """
        self.client: AsyncOpenAI = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(
        cls,
        settings: ChatSettings,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "StreamingChatClient":
        """Build a client from settings.

        Args:
            settings: Endpoint, model, timeout and retry configuration.
            api_key: Bearer token. Falls back to ``settings.api_key``.
            http_client: Optional custom httpx client (proxies, test transports).

        Raises:
            ValueError: If no API key is available.
        """
        key = api_key or settings.api_key
        if not key:
            raise ValueError("An API key is required to talk to the model endpoint.")

        client = AsyncOpenAI(
            api_key=key,
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            http_client=http_client,
        )
        return cls(client=client, model=settings.model, temperature=settings.temperature)

    async def send(
        self,
        messages: Sequence[ConversationMessage],
        on_text_update: Optional[TextUpdateCallback] = None,
        on_tool_calls_ready: Optional[ToolCallsReadyCallback] = None,
        options: Optional[ChatOptions] = None,
    ) -> StreamResult:
        """
        Sends one streamed chat-completion request and consumes the reply.

        Args:
            messages: The conversation to send. Must not be empty.
            on_text_update: Called with the cumulative text after every content delta.
            on_tool_calls_ready: Called once when the model stops to call tools.
            options: Tools, temperature and web-search flag for this request.

        Returns:
            StreamResult: The accumulated content and the completed tool calls (or None).

        Raises:
            ValueError: If ``messages`` is empty.
            TransportError: If the endpoint cannot be reached or answers with an error status.
        """
        if not messages:
            raise ValueError("Cannot send an empty message list.")

        request = self.build_request(messages, options or ChatOptions())
        consumer = StreamConsumer(on_text_update, on_tool_calls_ready)

        try:
            async with self.client.chat.completions.with_streaming_response.create(**request) as response:
                result = await consumer.consume(response.iter_text())
        except APIStatusError as exc:
            message = self._upstream_message(exc.body)
            logger.error(f"Model endpoint returned {exc.status_code}: {message}")
            raise TransportError(message, status_code=exc.status_code) from exc
        except APIConnectionError as exc:
            logger.error(f"Could not reach model endpoint: {exc}")
            raise TransportError(f"{GENERIC_FAILURE_MESSAGE}: {exc.message}") from exc
        except APIError as exc:
            logger.error(f"Model request failed: {exc}")
            raise TransportError(self._upstream_message(exc.body)) from exc
        except httpx.HTTPError as exc:
            logger.error(f"Stream interrupted: {exc}")
            raise TransportError(f"{GENERIC_FAILURE_MESSAGE}: {exc}") from exc

        if consumer.skipped_frames:
            logger.warning(f"Stream finished with {consumer.skipped_frames} skipped frame(s).")
        logger.debug(
            f"Stream finished. finish_reason={result.finish_reason}, "
            f"tool_calls={len(result.tool_calls) if result.tool_calls else 0}"
        )
        return result

    def build_request(self, messages: Sequence[ConversationMessage], options: ChatOptions) -> Dict[str, Any]:
        """Assemble the keyword arguments of the completion request."""
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": cast(Iterable[Any], [message.to_payload() for message in messages]),
            "temperature": self.temperature if options.temperature is None else options.temperature,
            "stream": True,
        }

        if options.tools:
            request["tools"] = options.tools
            if options.enable_web_search:
                logger.warning("Both tools and web search requested; tool calling takes precedence.")
        elif options.enable_web_search:
            request["extra_body"] = {"web_search": True}

        return request

    @staticmethod
    def _upstream_message(body: object) -> str:
        """Pull ``error.message`` out of an error body, falling back to a generic text."""
        if isinstance(body, dict):
            error = body.get("error")
            candidate = error.get("message") if isinstance(error, dict) else body.get("message")
            if isinstance(candidate, str) and candidate.strip():
                return candidate
        return GENERIC_FAILURE_MESSAGE
