"""Blocking and retry strategies injected into the agent loop."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from loguru import logger

from coach_agent.agent.context import ToolResultStore


@dataclass
class BlockResult:
    """An authoritative veto of one tool call."""

    reason: str
    validation_issues: list[str] | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": True, "blocked": True, "reason": self.reason}
        if self.validation_issues is not None:
            payload["validation_issues"] = list(self.validation_issues)
        return payload


@dataclass
class RetryDecision:
    """Instruction to re-invoke ``converse`` once with a stronger prompt."""

    retry_prompt: str
    log_message: str = "Workflow incomplete - retrying with stronger prompt"
    should_retry: bool = True


class BlockingPolicy(Protocol):
    def __call__(
        self, tool_name: str, params: dict[str, Any], results: ToolResultStore
    ) -> BlockResult | None: ...


class RetryPolicy(Protocol):
    def __call__(self, result: Any, text: str, results: ToolResultStore) -> RetryDecision | None: ...


def never_block(tool_name: str, params: dict[str, Any], results: ToolResultStore) -> BlockResult | None:
    return None


def never_retry(result: Any, text: str, results: ToolResultStore) -> RetryDecision | None:
    return None


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


class ValidationGate:
    """
    Blocks a persist tool while the latest validation result is failing.

    The check reads the store on every call, so a failing validation keeps
    blocking until a later validation run passes.
    """

    def __init__(self, guarded_tool: str, validation_key: str) -> None:
        self.guarded_tool = guarded_tool
        self.validation_key = validation_key

    def __call__(
        self, tool_name: str, params: dict[str, Any], results: ToolResultStore
    ) -> BlockResult | None:
        if tool_name != self.guarded_tool:
            return None

        validation = results.get(self.validation_key)
        if validation is None:
            return None

        error = _field(validation, "error")
        if error:
            logger.error(f"Blocking {tool_name}: validation raised an error: {error}")
            return BlockResult(
                reason=f"Cannot save coach config - validation failed with error: {error}"
            )

        if _field(validation, "is_valid") is False:
            issues = list(_field(validation, "validation_issues") or [])
            logger.error(f"Blocking {tool_name}: validation returned is_valid=False ({len(issues)} issues)")
            return BlockResult(
                reason=f"Cannot save coach config - validation failed: {', '.join(issues) or 'Unknown issues'}",
                validation_issues=issues,
            )

        return None


CLARIFYING_MARKERS = ("?", "need to", "should i", "would you like", "can you confirm")


def looks_like_clarifying_question(text: str) -> bool:
    """Heuristic: does the model's text read like it is waiting on a human?"""
    lowered = (text or "").lower()
    return any(marker in lowered for marker in CLARIFYING_MARKERS)


@dataclass
class ClarifyingQuestionRetry:
    """
    Retry when the model stalled to ask a question no human will answer.

    Fires iff fewer than ``min_required_tools`` results are stored and the
    text looks like a clarifying question. Never fires for a successful
    result or one whose reason reports a validation failure.
    """

    min_required_tools: int
    build_prompt: Callable[[str, ToolResultStore, str], str]
    log_message: str = "Incomplete workflow - retrying with stronger prompt to force tool execution"
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(timezone.utc))

    def __call__(self, result: Any, text: str, results: ToolResultStore) -> RetryDecision | None:
        if _field(result, "success"):
            return None

        reason = _field(result, "reason") or ""
        if "validation failed" in reason.lower():
            return None

        if len(results) < self.min_required_tools and looks_like_clarifying_question(text):
            timestamp = self.clock().isoformat()
            return RetryDecision(
                retry_prompt=self.build_prompt(text, results, timestamp),
                log_message=self.log_message,
            )
        return None
