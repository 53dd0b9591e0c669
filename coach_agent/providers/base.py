"""Provider contract and normalized response types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator


class StopReason(str, Enum):
    """Why the model stopped generating in a given turn."""

    TOOL_USE = "tool_use"
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    CONTENT_FILTERED = "content_filtered"


# OpenAI-style finish reasons (as returned by LiteLLM) plus the native Bedrock names.
_FINISH_REASON_MAP: dict[str, StopReason] = {
    "tool_calls": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
    "tool_use": StopReason.TOOL_USE,
    "stop": StopReason.END_TURN,
    "end_turn": StopReason.END_TURN,
    "length": StopReason.MAX_TOKENS,
    "max_tokens": StopReason.MAX_TOKENS,
    "stop_sequence": StopReason.STOP_SEQUENCE,
    "content_filter": StopReason.CONTENT_FILTERED,
    "content_filtered": StopReason.CONTENT_FILTERED,
    "guardrail_intervened": StopReason.CONTENT_FILTERED,
}


def map_finish_reason(finish_reason: str | None, has_tool_calls: bool = False) -> StopReason:
    """Map a provider finish reason onto a StopReason."""
    if has_tool_calls:
        return StopReason.TOOL_USE
    return _FINISH_REASON_MAP.get((finish_reason or "stop").lower(), StopReason.END_TURN)


@dataclass
class ToolCallRequest:
    """Tool call request emitted by the model."""

    id: str
    name: str
    arguments: dict[str, Any]
    malformed: bool = False


@dataclass
class LLMResponse:
    """Normalized model response."""

    content: str | None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0

    @property
    def stop_reason(self) -> StopReason:
        return map_finish_reason(self.finish_reason, self.has_tool_calls)

    @property
    def input_tokens(self) -> int:
        return self.usage.get("prompt_tokens", 0)

    @property
    def output_tokens(self) -> int:
        return self.usage.get("completion_tokens", 0)


@dataclass
class TextDelta:
    """A fragment of assistant text received while streaming."""

    text: str


@dataclass
class StreamComplete:
    """Final event of a stream, carrying the fully assembled response."""

    response: LLMResponse


StreamEvent = TextDelta | StreamComplete


class LLMProvider(ABC):
    """Base class for chat-completion providers with tool support."""

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Send a chat completion request and wait for the full response."""

    @abstractmethod
    def chat_stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a chat completion: text deltas, then one StreamComplete."""

    @abstractmethod
    def get_default_model(self) -> str:
        """Get the default model for this provider."""
