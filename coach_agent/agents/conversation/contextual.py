"""Short in-character status lines shown while the coach works."""

from __future__ import annotations

from typing import Any, Literal

from loguru import logger

from coach_agent.agents.conversation.prompts import (
    contextual_update_instruction,
    contextual_update_prompt,
)
from coach_agent.agents.llm import ask_text
from coach_agent.providers.base import LLMProvider

UpdateType = Literal[
    "initial_greeting",
    "workout_analysis",
    "memory_analysis",
    "pattern_analysis",
    "insights_brewing",
]

FALLBACKS: dict[str, str] = {
    "initial_greeting": "Firing up the brain cells...",
    "workout_analysis": "Hunting down your recent sessions...",
    "memory_analysis": "Zeroing in on your goals...",
    "pattern_analysis": "Connecting the dots...",
    "insights_brewing": "Brewing up something good...",
}
DEFAULT_FALLBACK = "Flexing my coach muscles..."


def fallback_update(update_type: str) -> str:
    return FALLBACKS.get(update_type, DEFAULT_FALLBACK)


def strip_quotes(text: str) -> str:
    """Remove one pair of matching surrounding quotes."""
    cleaned = text.strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'":
        cleaned = cleaned[1:-1].strip()
    return cleaned


async def generate_contextual_update(
    provider: LLMProvider,
    coach_config: dict[str, Any],
    user_message: str,
    update_type: str = "initial_greeting",
    model: str | None = None,
) -> str:
    """
    Generate a one-sentence progress update in the coach's voice.

    Falls back to a fixed phrase for ``update_type`` on any failure or an
    empty reply.
    """
    try:
        update = await ask_text(
            provider,
            contextual_update_prompt(coach_config),
            contextual_update_instruction(user_message, update_type),
            model=model,
            max_tokens=100,
            temperature=0.9,
        )
    except Exception as e:
        logger.warning(f"Contextual update generation failed, using fallback: {e}")
        return fallback_update(update_type)

    update = strip_quotes(update)
    return update or fallback_update(update_type)
