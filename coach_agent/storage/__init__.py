"""Persistence collaborators."""

from dataclasses import dataclass
from pathlib import Path

from coach_agent.storage.base import (
    CoachConfigStore,
    CoachCreatorSessionStore,
    ConversationStore,
    MemoryStore,
    VectorStore,
    WorkoutStore,
)
from coach_agent.storage.jsonl import (
    JSONLCoachConfigStore,
    JSONLConversationStore,
    JSONLMemoryStore,
    JSONLVectorStore,
    JSONLWorkoutStore,
    JSONSessionStore,
)


@dataclass
class Stores:
    """The set of stores one process works against."""

    sessions: CoachCreatorSessionStore
    coach_configs: CoachConfigStore
    memories: MemoryStore
    workouts: WorkoutStore
    conversations: ConversationStore
    vectors: VectorStore


def open_local_stores(data_dir: Path) -> Stores:
    """Open the file-backed stores rooted at ``data_dir``."""
    return Stores(
        sessions=JSONSessionStore(data_dir / "sessions"),
        coach_configs=JSONLCoachConfigStore(data_dir / "coaches"),
        memories=JSONLMemoryStore(data_dir / "memories"),
        workouts=JSONLWorkoutStore(data_dir / "workouts"),
        conversations=JSONLConversationStore(data_dir / "conversations"),
        vectors=JSONLVectorStore(data_dir / "vectors"),
    )


__all__ = [
    "CoachConfigStore",
    "CoachCreatorSessionStore",
    "ConversationStore",
    "MemoryStore",
    "Stores",
    "VectorStore",
    "WorkoutStore",
    "open_local_stores",
]
