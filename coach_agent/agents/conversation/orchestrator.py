"""ConversationOrchestrator - one streamed coach turn, end to end."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from coach_agent.agent.history import MediaRef
from coach_agent.agent.loop import AgentRunResult
from coach_agent.agent.tasks import spawn_detached
from coach_agent.agents.conversation.agent import ConversationAgent, ConversationSettings
from coach_agent.agents.conversation.contextual import fallback_update, generate_contextual_update
from coach_agent.agents.conversation.detection import create_user_memory, detect_user_memory_request
from coach_agent.agents.conversation.models import ChunkEvent, ContextualEvent, ConversationContext, ConversationEvent
from coach_agent.providers.base import LLMProvider
from coach_agent.utils.helpers import format_error

APOLOGY_MESSAGE = (
    "I'm sorry, I ran into a problem putting my response together. "
    "Please try again in a moment."
)
DEFAULT_TIMEZONE = "America/Los_Angeles"


class ConversationOrchestrator:
    """
    Runs a streamed coach turn around a ``ConversationAgent``.

    The contextual update is generated concurrently with turn setup, memory
    detection runs detached, provider failures become an apology, and the
    finished turn is appended to the conversation store.
    """

    def __init__(
        self,
        provider: LLMProvider,
        settings: ConversationSettings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.provider = provider
        self.settings = settings
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def stream_turn(
        self,
        user_id: str,
        coach_id: str,
        conversation_id: str,
        user_message: str,
        attachments: list[MediaRef] | None = None,
        user_timezone: str | None = None,
        unattended: bool = False,
    ) -> AsyncIterator[ConversationEvent]:
        """
        Stream one conversation turn.

        Args:
            user_id: The user.
            coach_id: Coach the user is talking to.
            conversation_id: Conversation the turn belongs to.
            user_message: The user's message.
            attachments: Optional images.
            user_timezone: IANA timezone used for workout dates.
            unattended: Nobody is reading live; a reply that ends on a
                question is retried once.

        Yields:
            Contextual and chunk events, then the run's ``AgentRunResult``
            unless the provider failed.

        Raises:
            RecordNotFoundError: If the coach does not exist.
        """
        coach_config = await self.settings.coach_configs.get_coach_config(user_id, coach_id)

        update_task = asyncio.create_task(
            generate_contextual_update(
                self.provider,
                coach_config,
                user_message,
                "initial_greeting",
                model=self.settings.utility_model,
            )
        )

        try:
            existing = await self.settings.conversations.get_messages(user_id, coach_id, conversation_id)
        except BaseException:
            update_task.cancel()
            raise
        if self.settings.memory_detection:
            spawn_detached(
                self._remember_if_requested(user_id, coach_id, user_message, existing),
                name=f"memory-detection-{conversation_id}",
            )

        context = ConversationContext(
            user_id=user_id,
            coach_id=coach_id,
            conversation_id=conversation_id,
            coach_config=coach_config,
            user_timezone=user_timezone or DEFAULT_TIMEZONE,
        )
        agent = ConversationAgent(
            self.provider,
            context,
            self.settings,
            existing_messages=existing,
            unattended=unattended,
            clock=self._clock,
        )

        yield ContextualEvent(await self._await_update(update_task))

        result: AgentRunResult | None = None
        try:
            async for event in agent.converse_stream(user_message, attachments):
                if isinstance(event, AgentRunResult):
                    result = event
                else:
                    yield event

            decision = agent.should_retry_workflow(result, result.text) if unattended else None
            if decision is not None and decision.should_retry:
                logger.warning(decision.log_message)
                async for event in agent.converse_stream(decision.retry_prompt):
                    if isinstance(event, AgentRunResult):
                        result = event
                    else:
                        yield event
        except Exception as e:
            logger.error(f"Conversation turn failed: {format_error(e)}")
            yield ChunkEvent(APOLOGY_MESSAGE)
            return

        await self._save_turn(user_id, coach_id, conversation_id, user_message, result.text)
        yield result

    async def _await_update(self, task: asyncio.Task) -> str:
        try:
            return await asyncio.wait_for(task, timeout=self.settings.contextual_update_timeout)
        except asyncio.TimeoutError:
            logger.debug("Contextual update timed out, using fallback")
        except Exception as e:
            logger.warning(f"Contextual update failed, using fallback: {e}")
        return fallback_update("initial_greeting")

    async def _remember_if_requested(
        self,
        user_id: str,
        coach_id: str,
        user_message: str,
        existing: list[dict],
    ) -> None:
        recent = "\n".join(f"{m.get('role')}: {m.get('content')}" for m in existing[-4:])
        detection = await detect_user_memory_request(
            self.provider, user_message, recent or None, model=self.settings.utility_model
        )
        memory = create_user_memory(detection, user_id, coach_id)
        if memory is None:
            return
        await self.settings.memories.save_memory(memory)
        logger.info(f"Saved memory from conversation: {memory.memory_id} ({memory.memory_type})")
        if self.settings.vectors is not None:
            await self.settings.vectors.upsert(
                user_id,
                memory.content,
                {
                    "record_id": memory.memory_id,
                    "entity_type": "user_memory",
                    "memory_type": memory.memory_type,
                    "importance": memory.importance,
                },
            )

    async def _save_turn(
        self,
        user_id: str,
        coach_id: str,
        conversation_id: str,
        user_message: str,
        assistant_message: str,
    ) -> None:
        try:
            await self.settings.conversations.append_turn(
                user_id, coach_id, conversation_id, user_message, assistant_message, self._clock()
            )
        except Exception as e:
            logger.error(f"Failed to save conversation turn {conversation_id}: {e}")
