"""Agent core: loop engine, history, context, policies and tools."""

from coach_agent.agent.context import AgentContext, ToolResultStore
from coach_agent.agent.history import MediaRef, Message
from coach_agent.agent.loop import Agent, AgentConfig, AgentRunResult, TerminalReason
from coach_agent.agent.policies import (
    BlockResult,
    ClarifyingQuestionRetry,
    RetryDecision,
    ValidationGate,
)
from coach_agent.agent.tasks import drain_detached, spawn_detached

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentContext",
    "AgentRunResult",
    "BlockResult",
    "ClarifyingQuestionRetry",
    "MediaRef",
    "Message",
    "RetryDecision",
    "TerminalReason",
    "ToolResultStore",
    "ValidationGate",
    "drain_detached",
    "spawn_detached",
]
