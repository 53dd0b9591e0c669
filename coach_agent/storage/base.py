"""Abstract persistence collaborators used by agent tools."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from coach_agent.storage.records import (
    CoachCreatorSession,
    MemoryRecord,
    VectorMatch,
    WorkoutRecord,
)


class CoachCreatorSessionStore(ABC):
    """Coach creator intake sessions."""

    @abstractmethod
    async def get_session(self, user_id: str, session_id: str) -> CoachCreatorSession:
        """
        Load a session.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """

    @abstractmethod
    async def save_session(self, session: CoachCreatorSession) -> None:
        """Create or replace a session."""


class CoachConfigStore(ABC):
    """Finished coach configurations."""

    @abstractmethod
    async def save_coach_config(self, user_id: str, config: dict[str, Any], created_at: str) -> str:
        """Persist a coach config and return its coach_id."""

    @abstractmethod
    async def get_coach_config(self, user_id: str, coach_id: str) -> dict[str, Any]:
        """
        Load a coach config.

        Raises:
            RecordNotFoundError: If the coach does not exist.
        """

    @abstractmethod
    async def list_coach_configs(self, user_id: str) -> list[dict[str, Any]]:
        """All coach configs of a user, newest first."""


class MemoryStore(ABC):
    """User memories saved from conversations."""

    @abstractmethod
    async def save_memory(self, memory: MemoryRecord) -> str:
        """Persist a memory and return its id."""

    @abstractmethod
    async def query_memories(
        self, user_id: str, coach_id: str | None, query: str, top_k: int = 5
    ) -> list[MemoryRecord]:
        """Memories relevant to ``query``, most relevant first."""

    @abstractmethod
    async def list_memories(self, user_id: str) -> list[MemoryRecord]:
        """All memories of a user, newest first."""


class WorkoutStore(ABC):
    """Logged workouts."""

    @abstractmethod
    async def save_workout(self, workout: WorkoutRecord) -> str:
        """Persist a workout and return its id."""

    @abstractmethod
    async def query_workouts(
        self, user_id: str, limit: int = 10, discipline: str | None = None
    ) -> list[WorkoutRecord]:
        """Most recent workouts first."""


class ConversationStore(ABC):
    """Coach conversation transcripts."""

    @abstractmethod
    async def get_messages(self, user_id: str, coach_id: str, conversation_id: str) -> list[dict[str, Any]]:
        """Stored ``{"role", "content", "timestamp"}`` messages in order."""

    @abstractmethod
    async def append_turn(
        self,
        user_id: str,
        coach_id: str,
        conversation_id: str,
        user_message: str,
        assistant_message: str,
        timestamp: datetime | None = None,
    ) -> None:
        """Append a user/assistant pair."""


class VectorStore(ABC):
    """Semantic search over user content."""

    @abstractmethod
    async def upsert(self, user_id: str, content: str, metadata: dict[str, Any] | None = None) -> str:
        """Index content and return its record id."""

    @abstractmethod
    async def query(
        self,
        user_id: str,
        query: str,
        top_k: int = 5,
        entity_types: list[str] | None = None,
        min_score: float = 0.0,
    ) -> list[VectorMatch]:
        """Best matches for ``query``, highest score first."""
