"""ConversationAgent - streams a coach's reply while it uses tools."""

from __future__ import annotations

import random
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from loguru import logger

from coach_agent.agent.history import (
    ContentBlock,
    MediaRef,
    Message,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    render_messages,
)
from coach_agent.agent.loop import Agent, AgentConfig, TerminalReason
from coach_agent.agent.policies import ClarifyingQuestionRetry, never_retry
from coach_agent.agent.tools.base import Tool
from coach_agent.agents.conversation.models import ChunkEvent, ContextualEvent, ConversationContext, ConversationEvent
from coach_agent.agents.conversation.prompts import (
    build_conversation_prompt,
    build_dynamic_prompt,
    build_unattended_retry_prompt,
)
from coach_agent.agents.conversation.tools import (
    GetRecentWorkoutsTool,
    LogWorkoutTool,
    RetrieveMemoriesTool,
    SaveMemoryTool,
    SearchKnowledgeBaseTool,
)
from coach_agent.config.schema import Config
from coach_agent.jobs.invoker import BackgroundJobInvoker
from coach_agent.providers.base import LLMProvider, LLMResponse, StopReason, StreamComplete, TextDelta
from coach_agent.storage import Stores
from coach_agent.storage.base import (
    CoachConfigStore,
    ConversationStore,
    MemoryStore,
    VectorStore,
    WorkoutStore,
)

BRIDGING_MESSAGES = (
    "Processing your request...",
    "Working on that...",
    "Putting it together...",
    "Almost there...",
    "Pulling it all together...",
)

ITERATION_SEPARATOR = "\n\n"


@dataclass
class ConversationSettings:
    """Collaborators and tuning for coach conversations."""

    coach_configs: CoachConfigStore
    conversations: ConversationStore
    memories: MemoryStore
    workouts: WorkoutStore
    jobs: BackgroundJobInvoker
    vectors: VectorStore | None = None
    model: str | None = None
    utility_model: str | None = None
    max_iterations: int = 15
    max_tokens: int = 32768
    temperature: float = 0.7
    contextual_update_timeout: float = 3.0
    memory_detection: bool = True
    build_workout_job: str = "build-workout"

    @classmethod
    def from_config(cls, config: Config, stores: Stores, jobs: BackgroundJobInvoker) -> ConversationSettings:
        defaults = config.agents.defaults
        return cls(
            coach_configs=stores.coach_configs,
            conversations=stores.conversations,
            memories=stores.memories,
            workouts=stores.workouts,
            jobs=jobs,
            vectors=stores.vectors,
            model=defaults.model,
            utility_model=defaults.utility_model,
            max_iterations=config.conversation.max_tool_iterations,
            max_tokens=defaults.max_tokens,
            temperature=defaults.temperature,
            contextual_update_timeout=config.conversation.contextual_update_timeout,
            memory_detection=config.conversation.memory_detection,
            build_workout_job=config.jobs.build_workout_job,
        )


def build_conversation_tools(settings: ConversationSettings) -> list[Tool]:
    tools: list[Tool] = []
    if settings.vectors is not None:
        tools.append(SearchKnowledgeBaseTool(settings.vectors))
    tools.extend(
        [
            RetrieveMemoriesTool(settings.memories),
            SaveMemoryTool(settings.memories, settings.vectors),
            LogWorkoutTool(settings.jobs, settings.build_workout_job),
            GetRecentWorkoutsTool(settings.workouts),
        ]
    )
    return tools


class ConversationAgent(Agent[ConversationContext]):
    """
    Streaming coach agent.

    Shares tool dispatch, blocking and the result store with ``Agent``; the
    loop itself streams text deltas and status lines as they happen.
    """

    def __init__(
        self,
        provider: LLMProvider,
        context: ConversationContext,
        settings: ConversationSettings,
        existing_messages: Iterable[dict[str, Any]] = (),
        unattended: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        retry_policy = (
            ClarifyingQuestionRetry(
                min_required_tools=1,
                build_prompt=build_unattended_retry_prompt,
                log_message="Unattended conversation ended on a question - retrying once",
                clock=self._clock,
            )
            if unattended
            else never_retry
        )
        config = AgentConfig(
            system_prompt=build_conversation_prompt(context.coach_config),
            dynamic_prompt=build_dynamic_prompt(context, self._clock().isoformat()),
            tools=build_conversation_tools(settings),
            model=settings.model,
            max_iterations=settings.max_iterations,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            retry_policy=retry_policy,
        )
        history = [
            Message.from_dict(m)
            for m in existing_messages
            if m.get("role") in ("user", "assistant") and m.get("content")
        ]
        super().__init__(provider, config, context, history)

    async def converse_stream(
        self, user_message: str, attachments: list[MediaRef] | None = None
    ) -> AsyncIterator[ConversationEvent]:
        """
        Run one turn, yielding events as they happen.

        Yields:
            ``ChunkEvent`` and ``ContextualEvent`` items in arrival order,
            then exactly one ``AgentRunResult``.
        """
        self.history.append(Message.user(user_message, attachments))
        self._start_run()

        full_text = ""
        iteration = 0
        reason = TerminalReason.ITERATION_CAP

        while iteration < self.config.max_iterations:
            iteration += 1
            logger.info(f"[{self.name}] Streaming iteration {iteration}")
            if iteration > 1:
                yield ContextualEvent(random.choice(BRIDGING_MESSAGES))

            iteration_text = ""
            response: LLMResponse | None = None
            async for event in self.provider.chat_stream(
                messages=render_messages(self.config.full_system_prompt, self.history),
                tools=self.tools.get_definitions() if len(self.tools) > 0 else None,
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            ):
                if isinstance(event, TextDelta):
                    if not iteration_text and full_text:
                        full_text += ITERATION_SEPARATOR
                        yield ChunkEvent(ITERATION_SEPARATOR)
                    iteration_text += event.text
                    full_text += event.text
                    yield ChunkEvent(event.text)
                elif isinstance(event, StreamComplete):
                    response = event.response

            if response is None:
                response = LLMResponse(content=iteration_text)
            self._record_usage(response)
            text = response.content or iteration_text
            stop_reason = response.stop_reason

            if stop_reason is StopReason.TOOL_USE and response.has_tool_calls:
                blocks: list[ContentBlock] = [TextBlock(text)] if text else []
                blocks.extend(ToolUseBlock(tc.id, tc.name, tc.arguments) for tc in response.tool_calls)
                self.history.append(Message("assistant", blocks))

                results: list[ToolResultBlock] = []
                for call in response.tool_calls:
                    tool = self.tools.get(call.name)
                    if tool is not None and not call.malformed:
                        status = tool.pick_contextual_message()
                        if status:
                            yield ContextualEvent(status)
                    results.append(await self.execute_tool_call(call))
                self.history.append(Message("user", results))
                continue

            if stop_reason in (StopReason.MAX_TOKENS, StopReason.CONTENT_FILTERED):
                logger.warning(f"[{self.name}] Stream stopped with {stop_reason.value}")
                if not full_text:
                    full_text = (
                        self.MAX_TOKENS_FALLBACK
                        if stop_reason is StopReason.MAX_TOKENS
                        else self.CONTENT_FILTERED_FALLBACK
                    )
                    yield ChunkEvent(full_text)
                reason = TerminalReason(stop_reason.value)
                break

            if stop_reason is StopReason.TOOL_USE:
                logger.warning(f"[{self.name}] tool_use stop without tool calls, ending turn")
                stop_reason = StopReason.END_TURN

            self.history.append(Message.assistant(text))
            reason = TerminalReason(stop_reason.value)
            break
        else:
            logger.warning(f"[{self.name}] Stream hit max iterations ({self.config.max_iterations})")
            if not full_text:
                full_text = self.ITERATION_CAP_FALLBACK
                yield ChunkEvent(full_text)

        self._finish(full_text, reason, iteration)
        yield self.last_run
