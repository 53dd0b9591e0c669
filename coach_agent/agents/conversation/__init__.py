"""Streaming coach conversations."""

from coach_agent.agents.conversation.agent import (
    ConversationAgent,
    ConversationSettings,
    build_conversation_tools,
)
from coach_agent.agents.conversation.models import (
    ChunkEvent,
    ContextualEvent,
    ConversationContext,
    ConversationEvent,
    MemoryDetectionResult,
)
from coach_agent.agents.conversation.orchestrator import ConversationOrchestrator

__all__ = [
    "ChunkEvent",
    "ContextualEvent",
    "ConversationAgent",
    "ConversationContext",
    "ConversationEvent",
    "ConversationOrchestrator",
    "ConversationSettings",
    "MemoryDetectionResult",
    "build_conversation_tools",
]
