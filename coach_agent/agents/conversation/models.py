"""Types for the conversation agent: context, stream events, tool inputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

from pydantic import BaseModel, Field

from coach_agent.agent.context import AgentContext
from coach_agent.agent.loop import AgentRunResult
from coach_agent.storage.records import Importance, MemoryType

SearchType = Literal[
    "workouts",
    "conversations",
    "programs",
    "coach_creator",
    "user_memory",
    "methodology",
]


@dataclass(kw_only=True)
class ConversationContext(AgentContext):
    """The coach and conversation a streaming turn belongs to."""

    coach_id: str
    conversation_id: str
    coach_config: dict[str, Any] = field(default_factory=dict)
    user_timezone: str = "America/Los_Angeles"

    @property
    def coach_name(self) -> str:
        return str(self.coach_config.get("coach_name") or "Coach")


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------


@dataclass
class ChunkEvent:
    """A piece of the assistant's answer."""

    text: str


@dataclass
class ContextualEvent:
    """A short status line shown while the coach is working."""

    message: str


ConversationEvent = Union[ChunkEvent, ContextualEvent, AgentRunResult]


# ---------------------------------------------------------------------------
# Tool inputs
# ---------------------------------------------------------------------------


class SearchKnowledgeBaseInput(BaseModel):
    query: str = Field(description="What to search for.")
    search_types: list[SearchType] | None = Field(
        default=None,
        description="Content types to search. Omit to search everything, including user_memory.",
    )


class RetrieveMemoriesInput(BaseModel):
    query: str = Field(description="Topic to find relevant memories for.")


class SaveMemoryInput(BaseModel):
    content: str = Field(min_length=1, description="What to remember, in one or two sentences.")
    memory_type: MemoryType = Field(description="Kind of memory.")
    importance: Importance = Field(default="medium", description="How much this matters for coaching.")


class LogWorkoutInput(BaseModel):
    workout_description: str = Field(
        description="The user's description of the workout, or a /log-workout command."
    )
    workout_date: str | None = Field(
        default=None, description="Date the workout was done (YYYY-MM-DD). Defaults to today."
    )
    template_context: dict[str, Any] | None = Field(
        default=None, description="Program template the workout was performed from, if any."
    )


class GetRecentWorkoutsInput(BaseModel):
    limit: int = Field(default=10, ge=1, description="How many workouts to return (max 20).")
    discipline: str | None = Field(default=None, description="Only return workouts of this discipline.")


# ---------------------------------------------------------------------------
# Memory detection
# ---------------------------------------------------------------------------


class ExtractedMemory(BaseModel):
    content: str
    type: MemoryType = "context"
    importance: Importance = "medium"


class MemoryDetectionResult(BaseModel):
    """Whether a user message asks the coach to remember something."""

    is_memory_request: bool = False
    confidence: float = 0.0
    extracted_memory: ExtractedMemory | None = None
    reasoning: str = ""
