"""One-shot utility-model calls used inside tools and orchestration."""

from __future__ import annotations

from typing import Any

from coach_agent.providers.base import LLMProvider
from coach_agent.utils.helpers import parse_json_with_fallbacks


async def ask_text(
    provider: LLMProvider,
    prompt: str,
    instruction: str = "Please proceed.",
    model: str | None = None,
    max_tokens: int = 1024,
    temperature: float = 0.7,
) -> str:
    """Send a system prompt plus one user instruction and return the reply text."""
    response = await provider.chat(
        messages=[
            {"role": "system", "content": prompt},
            {"role": "user", "content": instruction},
        ],
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
    )
    return (response.content or "").strip()


async def ask_json(
    provider: LLMProvider,
    prompt: str,
    instruction: str = "Please proceed.",
    model: str | None = None,
    max_tokens: int = 4096,
    temperature: float = 0.7,
) -> dict[str, Any]:
    """
    Like ``ask_text`` but parse the reply as a JSON object.

    Raises:
        ValueError: If the reply holds no JSON object.
    """
    text = await ask_text(provider, prompt, instruction, model, max_tokens, temperature)
    return parse_json_with_fallbacks(text)
