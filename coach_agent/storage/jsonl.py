"""File-backed stores: JSON documents and append-only JSONL logs."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from coach_agent.errors import RecordNotFoundError, SessionNotFoundError
from coach_agent.storage.base import (
    CoachConfigStore,
    CoachCreatorSessionStore,
    ConversationStore,
    MemoryStore,
    VectorStore,
    WorkoutStore,
)
from coach_agent.storage.records import (
    CoachCreatorSession,
    MemoryRecord,
    VectorMatch,
    VectorRecord,
    WorkoutRecord,
)
from coach_agent.storage.search import rank
from coach_agent.utils.helpers import sanitize_key


def _read_jsonl(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    rows: list[dict[str, Any]] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        try:
            rows.append(json.loads(line))
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping malformed line in {path.name}: {e}")
    return rows


def _append_jsonl(path: Path, rows: list[dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        for row in rows:
            f.write(json.dumps(row, ensure_ascii=False, default=str) + "\n")


class JSONSessionStore(CoachCreatorSessionStore):
    """One JSON document per coach creator session."""

    def __init__(self, sessions_dir: Path) -> None:
        self._dir = sessions_dir
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, user_id: str, session_id: str) -> Path:
        return self._dir / f"{sanitize_key(user_id)}_{sanitize_key(session_id)}.json"

    async def get_session(self, user_id: str, session_id: str) -> CoachCreatorSession:
        path = self._path(user_id, session_id)
        if not path.exists():
            raise SessionNotFoundError(session_id)
        return CoachCreatorSession.model_validate_json(path.read_text(encoding="utf-8"))

    async def save_session(self, session: CoachCreatorSession) -> None:
        path = self._path(session.user_id, session.session_id)
        path.write_text(session.model_dump_json(indent=2), encoding="utf-8")
        logger.debug(f"Session saved: {session.session_id}")


class JSONLCoachConfigStore(CoachConfigStore):
    """Coach configs appended to one JSONL file per user; the last write of a coach_id wins."""

    def __init__(self, coaches_dir: Path) -> None:
        self._dir = coaches_dir
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, user_id: str) -> Path:
        return self._dir / f"{sanitize_key(user_id)}.jsonl"

    async def save_coach_config(self, user_id: str, config: dict[str, Any], created_at: str) -> str:
        coach_id = config.get("coach_id") or f"user_{user_id}_coach_{uuid.uuid4().hex[:8]}"
        record = {**config, "coach_id": coach_id, "saved_at": created_at}
        _append_jsonl(self._path(user_id), [record])
        logger.debug(f"Coach config saved: {coach_id}")
        return coach_id

    async def get_coach_config(self, user_id: str, coach_id: str) -> dict[str, Any]:
        for record in reversed(_read_jsonl(self._path(user_id))):
            if record.get("coach_id") == coach_id:
                return record
        raise RecordNotFoundError("Coach config", coach_id)

    async def list_coach_configs(self, user_id: str) -> list[dict[str, Any]]:
        latest: dict[str, dict[str, Any]] = {}
        for record in _read_jsonl(self._path(user_id)):
            latest[record["coach_id"]] = record
        return sorted(latest.values(), key=lambda r: r.get("saved_at", ""), reverse=True)


class JSONLMemoryStore(MemoryStore):
    """All memories in a single JSONL file, searched with TF-IDF."""

    def __init__(self, memories_dir: Path) -> None:
        self._dir = memories_dir
        self._dir.mkdir(parents=True, exist_ok=True)
        self._file = self._dir / "memories.jsonl"

    async def save_memory(self, memory: MemoryRecord) -> str:
        _append_jsonl(self._file, [memory.to_dict()])
        logger.debug(f"Memory stored: {memory.memory_id}")
        return memory.memory_id

    async def list_memories(self, user_id: str) -> list[MemoryRecord]:
        memories: list[MemoryRecord] = []
        for row in _read_jsonl(self._file):
            if row.get("user_id") != user_id:
                continue
            try:
                memories.append(MemoryRecord.from_dict(row))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed memory row: {e}")
        memories.sort(key=lambda m: m.created_at, reverse=True)
        return memories

    async def query_memories(
        self, user_id: str, coach_id: str | None, query: str, top_k: int = 5
    ) -> list[MemoryRecord]:
        memories = [
            m for m in await self.list_memories(user_id)
            if coach_id is None or m.coach_id in (None, coach_id)
        ]
        ranked = rank(query, [(m, m.content) for m in memories], top_k=top_k)
        if not ranked:
            # Nothing matched lexically: surface the most important recent memories instead.
            priority = {"high": 0, "medium": 1, "low": 2}
            return sorted(memories, key=lambda m: priority.get(m.importance, 1))[:top_k]
        return [m for _, m in ranked]


class JSONLWorkoutStore(WorkoutStore):
    """Workouts appended to one JSONL file per user."""

    def __init__(self, workouts_dir: Path) -> None:
        self._dir = workouts_dir
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, user_id: str) -> Path:
        return self._dir / f"{sanitize_key(user_id)}.jsonl"

    async def save_workout(self, workout: WorkoutRecord) -> str:
        _append_jsonl(self._path(workout.user_id), [workout.model_dump(mode="json")])
        return workout.workout_id

    async def query_workouts(
        self, user_id: str, limit: int = 10, discipline: str | None = None
    ) -> list[WorkoutRecord]:
        workouts = [WorkoutRecord.model_validate(row) for row in _read_jsonl(self._path(user_id))]
        if discipline:
            workouts = [w for w in workouts if (w.discipline or "").lower() == discipline.lower()]
        workouts.sort(key=lambda w: w.completed_at, reverse=True)
        return workouts[:limit]


class JSONLConversationStore(ConversationStore):
    """
    Conversation transcripts with JSONL persistence.

    Each conversation is stored as a JSONL file keyed by user, coach and
    conversation id.
    """

    MAX_HISTORY = 50

    def __init__(self, conversations_dir: Path) -> None:
        self._dir = conversations_dir
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, user_id: str, coach_id: str, conversation_id: str) -> Path:
        key = sanitize_key(f"{user_id}_{coach_id}_{conversation_id}")
        return self._dir / f"{key}.jsonl"

    async def get_messages(self, user_id: str, coach_id: str, conversation_id: str) -> list[dict[str, Any]]:
        messages = _read_jsonl(self._path(user_id, coach_id, conversation_id))
        return messages[-self.MAX_HISTORY :]

    async def append_turn(
        self,
        user_id: str,
        coach_id: str,
        conversation_id: str,
        user_message: str,
        assistant_message: str,
        timestamp: datetime | None = None,
    ) -> None:
        ts = (timestamp or datetime.now(timezone.utc)).isoformat()
        _append_jsonl(
            self._path(user_id, coach_id, conversation_id),
            [
                {"role": "user", "content": user_message, "timestamp": ts},
                {"role": "assistant", "content": assistant_message, "timestamp": ts},
            ],
        )


class JSONLVectorStore(VectorStore):
    """
    Semantic-search stand-in that stores records in one JSONL file.

    Ranking is TF-IDF rather than embeddings, which keeps the store free of
    external services.
    """

    def __init__(self, vectors_dir: Path) -> None:
        self._dir = vectors_dir
        self._dir.mkdir(parents=True, exist_ok=True)
        self._file = self._dir / "vectors.jsonl"

    async def upsert(self, user_id: str, content: str, metadata: dict[str, Any] | None = None) -> str:
        metadata = dict(metadata or {})
        record_id = str(metadata.get("record_id") or f"{metadata.get('entity_type', 'general')}_{uuid.uuid4().hex[:12]}")
        record = VectorRecord(record_id=record_id, user_id=user_id, content=content, metadata=metadata)
        _append_jsonl(self._file, [record.to_dict()])
        logger.debug(f"Vector record stored: {record_id}")
        return record_id

    async def query(
        self,
        user_id: str,
        query: str,
        top_k: int = 5,
        entity_types: list[str] | None = None,
        min_score: float = 0.0,
    ) -> list[VectorMatch]:
        latest: dict[str, VectorRecord] = {}
        for row in _read_jsonl(self._file):
            if row.get("user_id") != user_id:
                continue
            record = VectorRecord.from_dict(row)
            latest[record.record_id] = record

        records = list(latest.values())
        if entity_types:
            records = [r for r in records if r.entity_type in entity_types]

        ranked = rank(query, [(r, r.content) for r in records], top_k=top_k)
        return [VectorMatch(record=r, score=s) for s, r in ranked if s >= min_score]
