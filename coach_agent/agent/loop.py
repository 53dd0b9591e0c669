"""Agent loop: the bounded Reason -> Act -> Reflect engine."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from loguru import logger
from pydantic import ValidationError

from coach_agent.agent.context import AgentContext, ToolResultStore
from coach_agent.agent.history import (
    ContentBlock,
    MediaRef,
    Message,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    render_messages,
    to_jsonable,
)
from coach_agent.agent.policies import (
    BlockingPolicy,
    BlockResult,
    RetryDecision,
    RetryPolicy,
    looks_like_clarifying_question,
    never_block,
    never_retry,
)
from coach_agent.agent.tools.base import Tool
from coach_agent.agent.tools.registry import ToolRegistry
from coach_agent.providers.base import LLMProvider, LLMResponse, StopReason, ToolCallRequest
from coach_agent.utils.helpers import truncate_for_log

ContextT = TypeVar("ContextT", bound=AgentContext)

MALFORMED_INPUT_ERROR = "Tool input was malformed or empty. Please try again."


class TerminalReason(str, Enum):
    """How a run ended."""

    END_TURN = "end_turn"
    STOP_SEQUENCE = "stop_sequence"
    MAX_TOKENS = "max_tokens"
    CONTENT_FILTERED = "content_filtered"
    ITERATION_CAP = "iteration_cap"


@dataclass
class AgentConfig:
    """Everything an agent needs besides its provider and context."""

    system_prompt: str
    tools: list[Tool] = field(default_factory=list)
    dynamic_prompt: str = ""
    model: str | None = None
    max_iterations: int = 20
    max_tokens: int = 32768
    temperature: float = 0.7
    blocking_policy: BlockingPolicy = never_block
    retry_policy: RetryPolicy = never_retry
    parallel_groups: list[frozenset[str]] = field(default_factory=list)
    key_map: Mapping[str, str] = field(default_factory=dict)

    @property
    def full_system_prompt(self) -> str:
        if not self.dynamic_prompt:
            return self.system_prompt
        return f"{self.system_prompt}\n\n{self.dynamic_prompt}"


@dataclass
class AgentRunResult:
    """Terminal outcome of one run. Not persisted by the agent."""

    text: str
    terminal_reason: TerminalReason
    iterations: int
    tools_used: list[str] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""

    @property
    def success(self) -> bool:
        """The run finished normally with an answer rather than a question."""
        return self.terminal_reason in (
            TerminalReason.END_TURN,
            TerminalReason.STOP_SEQUENCE,
        ) and not looks_like_clarifying_question(self.text)


class Agent(Generic[ContextT]):
    """
    Tool-using agent around a chat-completion provider.

    Owns the conversation history and the tool result store for its runs.
    Tool failures, unknown tools and blocked calls are reported back to the
    model as error results; provider errors propagate out of ``converse``.
    """

    DEFAULT_MAX_ITERATIONS = 20
    MAX_TOKENS_FALLBACK = "Response exceeded token limit."
    CONTENT_FILTERED_FALLBACK = "Response was filtered due to content policy."
    ITERATION_CAP_FALLBACK = "Agent exceeded maximum iterations."

    def __init__(
        self,
        provider: LLMProvider,
        config: AgentConfig,
        context: ContextT,
        history: Iterable[Message] = (),
    ) -> None:
        self.provider = provider
        self.config = config
        self.context = context
        self.name = type(self).__name__
        self.tools = ToolRegistry()
        for tool in config.tools:
            self.tools.register(tool)
        self.history: list[Message] = list(history)
        self.tool_results: ToolResultStore = ToolResultStore(config.key_map)
        self.context.tool_results = self.tool_results
        self.last_run: AgentRunResult | None = None
        self._tools_used: list[str] = []
        self._input_tokens = 0
        self._output_tokens = 0

    @property
    def model(self) -> str:
        return self.config.model or self.provider.get_default_model()

    # ------------------------------------------------------------------
    # Extension points (delegating to injected policies)
    # ------------------------------------------------------------------

    def enforce_tool_blocking(self, tool_name: str, params: dict[str, Any]) -> BlockResult | None:
        """Ask the blocking policy whether this call must be vetoed."""
        return self.config.blocking_policy(tool_name, params, self.tool_results)

    def should_retry_workflow(self, result: Any, response_text: str) -> RetryDecision | None:
        """Ask the retry policy whether the caller should re-run ``converse``."""
        return self.config.retry_policy(result, response_text, self.tool_results)

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def converse(self, user_message: str, attachments: list[MediaRef] | None = None) -> str:
        """
        Run one bounded conversation turn.

        Args:
            user_message: The user's message.
            attachments: Optional images for a multimodal turn.

        Returns:
            The final assistant text, or a fallback string when the model
            produced none.
        """
        self.history.append(Message.user(user_message, attachments))
        self._start_run()

        best_text = ""
        iteration = 0
        while iteration < self.config.max_iterations:
            iteration += 1
            logger.info(f"[{self.name}] Agent iteration {iteration}")

            response = await self._invoke_model()
            text = response.content or ""
            if text:
                best_text = text
            stop_reason = response.stop_reason

            if stop_reason is StopReason.TOOL_USE and response.has_tool_calls:
                logger.info(f"[{self.name}] Model requested {len(response.tool_calls)} tool(s)")
                await self.handle_tool_use(response)
                continue

            if stop_reason in (StopReason.MAX_TOKENS, StopReason.CONTENT_FILTERED):
                fallback = (
                    self.MAX_TOKENS_FALLBACK
                    if stop_reason is StopReason.MAX_TOKENS
                    else self.CONTENT_FILTERED_FALLBACK
                )
                logger.warning(f"[{self.name}] Response stopped with {stop_reason.value}")
                return self._finish(text or fallback, TerminalReason(stop_reason.value), iteration)

            if stop_reason is StopReason.TOOL_USE:
                logger.warning(f"[{self.name}] tool_use stop without tool calls, treating as end_turn")
                stop_reason = StopReason.END_TURN

            self.history.append(Message.assistant(text))
            return self._finish(text, TerminalReason(stop_reason.value), iteration)

        logger.warning(f"[{self.name}] Agent hit max iterations ({self.config.max_iterations})")
        return self._finish(best_text or self.ITERATION_CAP_FALLBACK, TerminalReason.ITERATION_CAP, iteration)

    async def handle_tool_use(self, response: LLMResponse) -> list[ToolResultBlock]:
        """
        Execute every tool call of one model turn.

        All tool-use blocks are appended as one assistant entry before
        execution and all results as one user entry after it, in request
        order even when a parallel group runs concurrently.
        """
        calls = response.tool_calls
        blocks: list[ContentBlock] = []
        if response.content:
            blocks.append(TextBlock(response.content))
        blocks.extend(ToolUseBlock(tc.id, tc.name, tc.arguments) for tc in calls)
        self.history.append(Message("assistant", blocks))

        if self._can_parallelize(calls):
            logger.info(f"[{self.name}] Executing {[tc.name for tc in calls]} in parallel")
            results = list(await asyncio.gather(*(self.execute_tool_call(tc) for tc in calls)))
        else:
            results = [await self.execute_tool_call(tc) for tc in calls]

        self.history.append(Message("user", list(results)))
        return results

    async def execute_tool_call(self, call: ToolCallRequest) -> ToolResultBlock:
        """Dispatch a single tool call and turn every outcome into a result block."""
        if call.malformed:
            logger.error(f"[{self.name}] Malformed input for tool {call.name} ({call.id})")
            return self._error_result(call, {"error": MALFORMED_INPUT_ERROR})

        tool = self.tools.get(call.name)
        if tool is None:
            logger.warning(f"[{self.name}] Tool not found: {call.name}")
            return self._error_result(call, {"error": f"Tool '{call.name}' not found"})

        errors = tool.validate_params(call.arguments)
        if errors:
            message = f"Invalid parameters for tool '{call.name}': " + "; ".join(errors)
            logger.warning(f"[{self.name}] {message}")
            return self._error_result(call, {"error": message})

        blocked = self.enforce_tool_blocking(call.name, call.arguments)
        if blocked is not None:
            logger.warning(f"[{self.name}] Tool blocked: {call.name} - {blocked.reason}")
            return self._error_result(call, blocked.to_payload())

        logger.info(f"[{self.name}] Executing tool: {call.name} input={truncate_for_log(call.arguments)}")
        start_time = time.monotonic()
        try:
            output = await tool.execute(call.arguments, self.context)
        except ValidationError as e:
            logger.warning(f"[{self.name}] Tool {call.name} rejected its input: {e.error_count()} error(s)")
            return self._error_result(call, {"error": str(e)})
        except Exception as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.error(f"[{self.name}] Tool {call.name} failed after {duration_ms:.0f}ms: {e}")
            return self._error_result(call, {"error": str(e)})

        duration_ms = (time.monotonic() - start_time) * 1000
        logger.info(f"[{self.name}] Tool {call.name} completed in {duration_ms:.0f}ms")
        self.tool_results.store(call.name, output)
        self._tools_used.append(call.name)

        payload = to_jsonable(output)
        if not isinstance(payload, dict):
            payload = {"result": payload}
        return ToolResultBlock(call.id, call.name, payload, "success")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _can_parallelize(self, calls: list[ToolCallRequest]) -> bool:
        if len(calls) < 2:
            return False
        requested = [tc.name for tc in calls]
        if len(set(requested)) != len(requested):
            return False
        return frozenset(requested) in self.config.parallel_groups

    async def _invoke_model(self) -> LLMResponse:
        response = await self.provider.chat(
            messages=render_messages(self.config.full_system_prompt, self.history),
            tools=self.tools.get_definitions() if len(self.tools) > 0 else None,
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )
        self._record_usage(response)
        return response

    def _start_run(self) -> None:
        self._tools_used = []
        self._input_tokens = 0
        self._output_tokens = 0

    def _record_usage(self, response: LLMResponse) -> None:
        self._input_tokens += response.input_tokens
        self._output_tokens += response.output_tokens

    def _finish(self, text: str, reason: TerminalReason, iterations: int) -> str:
        self.last_run = AgentRunResult(
            text=text,
            terminal_reason=reason,
            iterations=iterations,
            tools_used=list(self._tools_used),
            input_tokens=self._input_tokens,
            output_tokens=self._output_tokens,
            model=self.model,
        )
        logger.info(
            f"[{self.name}] Run completed: reason={reason.value}, iterations={iterations}, "
            f"tools={len(self._tools_used)}, response_length={len(text)}"
        )
        return text

    @staticmethod
    def _error_result(call: ToolCallRequest, payload: dict[str, Any]) -> ToolResultBlock:
        return ToolResultBlock(call.id, call.name, payload, "error")
