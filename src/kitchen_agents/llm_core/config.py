"""Runtime configuration for the chat client, the agents and the dispatcher."""

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChatSettings(BaseSettings):
    """Settings read from ``KITCHEN_*`` environment variables or a ``.env`` file.

    Attributes:
        api_key: Bearer token for the model endpoint. Usually passed to ``init`` instead.
        base_url: Base URL of the chat-completions compatible endpoint.
        model: Model identifier sent with every request.
        temperature: Default sampling temperature.
        request_timeout: Per-request timeout in seconds, enforced by the HTTP client.
        max_retries: Connection-level retries performed by the HTTP client.
        tool_timeout: Timeout in seconds for a single asynchronous tool call.
        max_tool_iterations: Upper bound on model round-trips in looping agents.
        selection_threshold: Minimum keyword score an agent must exceed to be picked.
        intent_classification: Whether the dispatcher asks the model for an intent verdict first.
        intent_confidence_threshold: Minimum verdict confidence that routes directly to an agent.
        intent_history_window: Number of dispatcher log entries sent to the classifier.
        log_level: Level used by ``setup_logging`` in applications.
    """

    api_key: Optional[str] = None
    base_url: str = "https://api.deepseek.com/v1"
    model: str = "deepseek-chat"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    request_timeout: float = 60.0
    max_retries: int = Field(default=2, ge=0)
    tool_timeout: float = 30.0
    max_tool_iterations: int = Field(default=5, ge=1)
    selection_threshold: int = 30
    intent_classification: bool = True
    intent_confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    intent_history_window: int = Field(default=10, ge=0)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="kitchen_", env_file=".env", extra="ignore", case_sensitive=False, frozen=True
    )
