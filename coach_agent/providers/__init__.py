"""LLM providers module."""

from coach_agent.providers.base import (
    LLMProvider,
    LLMResponse,
    StopReason,
    StreamComplete,
    TextDelta,
    ToolCallRequest,
)
from coach_agent.providers.litellm_provider import LiteLLMProvider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "StopReason",
    "StreamComplete",
    "TextDelta",
    "ToolCallRequest",
    "LiteLLMProvider",
]
