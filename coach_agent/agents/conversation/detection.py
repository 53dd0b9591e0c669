"""Memory request detection on user messages."""

from __future__ import annotations

from loguru import logger
from pydantic import ValidationError

from coach_agent.agents.conversation.models import MemoryDetectionResult
from coach_agent.agents.conversation.prompts import MEMORY_DETECTION_PROMPT, memory_detection_instruction
from coach_agent.agents.conversation.tools import new_memory_id
from coach_agent.agents.llm import ask_json
from coach_agent.providers.base import LLMProvider
from coach_agent.storage.records import MemoryRecord

MIN_CONFIDENCE = 0.5


async def detect_user_memory_request(
    provider: LLMProvider,
    user_message: str,
    message_context: str | None = None,
    model: str | None = None,
) -> MemoryDetectionResult:
    """
    Ask the utility model whether ``user_message`` asks to remember something.

    Never raises: any failure yields a negative result.
    """
    try:
        data = await ask_json(
            provider,
            MEMORY_DETECTION_PROMPT,
            memory_detection_instruction(user_message, message_context),
            model=model,
            max_tokens=1024,
            temperature=0.2,
        )
        result = MemoryDetectionResult.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Memory detection returned unusable output: {e}")
        return MemoryDetectionResult(reasoning="Error in AI detection, defaulting to no memory request")
    except Exception as e:
        logger.error(f"Memory detection failed: {e}")
        return MemoryDetectionResult(reasoning="Error in AI detection, defaulting to no memory request")

    if result.is_memory_request and result.extracted_memory is None:
        logger.warning("Memory request detected without extracted content, ignoring")
        return MemoryDetectionResult(confidence=result.confidence, reasoning=result.reasoning)

    logger.debug(
        f"Memory detection: is_request={result.is_memory_request}, confidence={result.confidence:.2f}"
    )
    return result


def create_user_memory(
    detection: MemoryDetectionResult,
    user_id: str,
    coach_id: str | None = None,
) -> MemoryRecord | None:
    """Build the memory record for a confident detection, or None."""
    if not detection.is_memory_request or detection.extracted_memory is None:
        return None
    if detection.confidence < MIN_CONFIDENCE:
        logger.info(f"Memory request below confidence threshold ({detection.confidence:.2f}), not saving")
        return None

    extracted = detection.extracted_memory
    return MemoryRecord(
        memory_id=new_memory_id(user_id),
        user_id=user_id,
        coach_id=coach_id,
        content=extracted.content,
        memory_type=extracted.type,
        importance=extracted.importance,
        source="conversation",
    )
