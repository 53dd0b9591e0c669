"""Persisted record types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

MemoryType = Literal["preference", "goal", "constraint", "instruction", "context"]
Importance = Literal["high", "medium", "low"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CoachCreatorSession(BaseModel):
    """An intake conversation that collects what a new coach needs to know."""

    user_id: str
    session_id: str
    sophistication_level: str = "UNKNOWN"
    is_complete: bool = False
    conversation_history: list[dict[str, Any]] = Field(default_factory=list)
    todo_list: dict[str, Any] = Field(default_factory=dict)
    config_generation: dict[str, Any] | None = None
    is_deleted: bool = False
    last_activity: datetime = Field(default_factory=utcnow)

    def todo_value(self, key: str) -> Any:
        """Value of an intake item, whether stored raw or as ``{"value": ...}``."""
        item = self.todo_list.get(key)
        if isinstance(item, dict) and "value" in item:
            return item["value"]
        return item

    def user_responses(self) -> str:
        return "\n".join(
            str(m.get("content", "")) for m in self.conversation_history if m.get("role") == "user"
        )


class WorkoutRecord(BaseModel):
    """A logged workout as summarised for conversation context."""

    workout_id: str
    user_id: str
    completed_at: datetime
    summary: str = ""
    discipline: str | None = None
    workout_name: str | None = None
    exercise_names: list[str] = Field(default_factory=list)


@dataclass
class MemoryRecord:
    """Something a user asked their coach to remember."""

    memory_id: str
    user_id: str
    content: str
    memory_type: str = "context"
    importance: str = "medium"
    coach_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    usage_count: int = 0
    source: str = "conversation"
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "memory_id": self.memory_id,
            "user_id": self.user_id,
            "coach_id": self.coach_id,
            "content": self.content,
            "memory_type": self.memory_type,
            "importance": self.importance,
            "created_at": self.created_at.isoformat(),
            "usage_count": self.usage_count,
            "source": self.source,
            "tags": self.tags,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryRecord:
        """Deserialize from a dict."""
        return cls(
            memory_id=data["memory_id"],
            user_id=data["user_id"],
            content=data["content"],
            memory_type=data.get("memory_type", "context"),
            importance=data.get("importance", "medium"),
            coach_id=data.get("coach_id"),
            created_at=datetime.fromisoformat(data["created_at"]),
            usage_count=data.get("usage_count", 0),
            source=data.get("source", "conversation"),
            tags=data.get("tags", []),
        )


@dataclass
class VectorRecord:
    """A piece of user content indexed for semantic search."""

    record_id: str
    user_id: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def entity_type(self) -> str:
        return str(self.metadata.get("entity_type", "general"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "user_id": self.user_id,
            "content": self.content,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VectorRecord:
        return cls(
            record_id=data["record_id"],
            user_id=data["user_id"],
            content=data["content"],
            metadata=data.get("metadata", {}),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass
class VectorMatch:
    """A search hit with its relevance score."""

    record: VectorRecord
    score: float
