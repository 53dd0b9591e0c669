"""LiteLLM-based LLM provider implementation."""

import json
from typing import Any, AsyncIterator

from loguru import logger

from coach_agent.providers.base import (
    LLMProvider,
    LLMResponse,
    StreamComplete,
    StreamEvent,
    TextDelta,
    ToolCallRequest,
)


class LiteLLMProvider(LLMProvider):
    """
    LLM provider using LiteLLM as a unified gateway.

    Bedrock model IDs are addressed with the ``bedrock/`` prefix; Anthropic
    and OpenAI models work through the same routing layer.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "bedrock/us.anthropic.claude-sonnet-4-5-20250929-v1:0",
    ):
        super().__init__(api_key, api_base)
        self._default_model = default_model

    def _build_kwargs(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
        model: str | None,
        max_tokens: int,
        temperature: float,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": model or self._default_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if tools:
            kwargs["tools"] = tools
        return kwargs

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Send a chat completion request via LiteLLM."""
        import litellm

        kwargs = self._build_kwargs(messages, tools, model, max_tokens, temperature)
        logger.debug(f"LLM request: model={kwargs['model']}, messages={len(messages)}")

        response = await litellm.acompletion(**kwargs)
        return self._parse_response(response)

    async def chat_stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a chat completion via LiteLLM, assembling the final response at the end."""
        import litellm

        kwargs = self._build_kwargs(messages, tools, model, max_tokens, temperature)
        kwargs["stream"] = True
        kwargs["stream_options"] = {"include_usage": True}
        logger.debug(f"LLM stream request: model={kwargs['model']}, messages={len(messages)}")

        stream = await litellm.acompletion(**kwargs)
        chunks: list[Any] = []
        async for chunk in stream:
            chunks.append(chunk)
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            text = getattr(delta, "content", None)
            if text:
                yield TextDelta(text=text)

        assembled = litellm.stream_chunk_builder(chunks, messages=messages)
        if assembled is None:
            yield StreamComplete(response=LLMResponse(content="", finish_reason="stop"))
            return
        yield StreamComplete(response=self._parse_response(assembled))

    def _parse_response(self, response: Any) -> LLMResponse:
        choice = response.choices[0]
        message = choice.message

        tool_calls: list[ToolCallRequest] = []
        if message.tool_calls:
            for tc in message.tool_calls:
                arguments = tc.function.arguments
                malformed = False
                if isinstance(arguments, str):
                    if not arguments.strip():
                        arguments = {}
                    else:
                        try:
                            arguments = json.loads(arguments)
                        except json.JSONDecodeError:
                            arguments = {"raw": arguments}
                            malformed = True
                if not isinstance(arguments, dict):
                    arguments = {"raw": arguments}
                    malformed = True

                tool_calls.append(
                    ToolCallRequest(
                        id=tc.id,
                        name=tc.function.name,
                        arguments=arguments,
                        malformed=malformed,
                    )
                )

        usage = {}
        response_usage = getattr(response, "usage", None)
        if response_usage:
            usage = {
                "prompt_tokens": response_usage.prompt_tokens or 0,
                "completion_tokens": response_usage.completion_tokens or 0,
                "total_tokens": response_usage.total_tokens or 0,
            }

        return LLMResponse(
            content=message.content,
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        """Get the default model for this provider."""
        return self._default_model
