"""Conversation agent tools.

Each tool wraps one store or background job. Expected failures are
returned as an ``error`` field so the coach can keep talking.
"""

from __future__ import annotations

import asyncio
import re
import time
import uuid
from datetime import date, datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

from coach_agent.agent.tasks import spawn_detached
from coach_agent.agent.tools.base import Tool
from coach_agent.agents.conversation.models import (
    ConversationContext,
    GetRecentWorkoutsInput,
    LogWorkoutInput,
    RetrieveMemoriesInput,
    SaveMemoryInput,
    SearchKnowledgeBaseInput,
)
from coach_agent.jobs.invoker import BackgroundJobInvoker
from coach_agent.storage.base import MemoryStore, VectorStore, WorkoutStore
from coach_agent.storage.records import MemoryRecord, VectorMatch, utcnow

# Per content type: (vector entity_type, top_k).
SEARCH_TYPES: dict[str, tuple[str, int]] = {
    "workouts": ("workout", 8),
    "conversations": ("conversation", 5),
    "programs": ("program", 3),
    "coach_creator": ("coach_creator", 2),
    "user_memory": ("user_memory", 3),
    "methodology": ("methodology", 5),
}

MAX_RECENT_WORKOUTS = 20
DEFAULT_RECENT_WORKOUTS = 10

WORKOUT_SLASH_COMMANDS = frozenset({"log-workout"})
_SLASH_RE = re.compile(r"^/([a-z][\w-]*)\s*(.*)$", re.DOTALL | re.IGNORECASE)


def parse_slash_command(message: str) -> tuple[str | None, str]:
    """
    Split ``/command rest`` into its parts.

    Returns:
        ``(command, content)``; ``command`` is None for a plain message, in
        which case ``content`` is the message unchanged.
    """
    match = _SLASH_RE.match(message.strip())
    if match is None:
        return None, message
    return match.group(1).lower(), match.group(2).strip()


def user_today(user_timezone: str) -> date:
    """Today's date in the user's timezone, UTC when the zone is unknown."""
    try:
        tz = ZoneInfo(user_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {user_timezone!r}, using UTC")
        tz = timezone.utc
    return datetime.now(tz).date()


def resolve_workout_date(workout_date: str | None, user_timezone: str) -> date:
    """The given ``YYYY-MM-DD`` date, or today for the user when missing or invalid."""
    if workout_date:
        try:
            return date.fromisoformat(workout_date.strip()[:10])
        except ValueError:
            logger.warning(f"Invalid workout_date {workout_date!r}, falling back to today")
    return user_today(user_timezone)


def format_matches(matches: list[VectorMatch]) -> str:
    """Render search hits as a context block for the model."""
    lines = []
    for i, match in enumerate(matches, start=1):
        record = match.record
        label = record.entity_type.replace("_", " ")
        lines.append(f"{i}. [{label}] (relevance {match.score:.2f}) {record.content}")
    return "\n".join(lines)


class SearchKnowledgeBaseTool(Tool):
    """Semantic search across the user's indexed content."""

    input_model = SearchKnowledgeBaseInput
    contextual_messages = (
        "Searching knowledge base...",
        "Hunting through training resources...",
        "Scouting the methodology database...",
        "Digging into training science...",
    )

    def __init__(self, vectors: VectorStore, min_score: float = 0.0) -> None:
        self._vectors = vectors
        self._min_score = min_score

    @property
    def name(self) -> str:
        return "search_knowledge_base"

    @property
    def description(self) -> str:
        return (
            "Search the user's knowledge base: workout history, past conversations, programs, "
            "coach creation notes, stored memories and training methodology. Use it for broad "
            "searches for past training context or background.\n\n"
            "Omitting search_types searches everything, including user_memory. If you pass "
            "search_types and the question is about injuries, pain or personal preferences, "
            'include "user_memory" or those notes will be missed.\n\n'
            "Not needed for greetings, acknowledgments or questions the current conversation answers."
        )

    async def execute(self, params: dict[str, Any], context: ConversationContext) -> dict[str, Any]:
        args = self.parse_input(params)
        selected = args.search_types or list(SEARCH_TYPES)
        logger.info(f"Knowledge base search: query={args.query!r}, types={selected}")

        try:
            batches = await asyncio.gather(
                *(
                    self._vectors.query(
                        context.user_id,
                        args.query,
                        top_k=SEARCH_TYPES[t][1],
                        entity_types=[SEARCH_TYPES[t][0]],
                        min_score=self._min_score,
                    )
                    for t in selected
                )
            )
        except Exception as e:
            logger.error(f"Knowledge base search failed: {e}")
            return {
                "success": False,
                "context": "Knowledge base search encountered an error.",
                "match_count": 0,
                "error": str(e),
            }

        matches = sorted((m for batch in batches for m in batch), key=lambda m: m.score, reverse=True)
        if not matches:
            return {
                "success": False,
                "context": "No relevant information found in the knowledge base.",
                "match_count": 0,
            }

        logger.info(f"Knowledge base search found {len(matches)} match(es)")
        return {"success": True, "context": format_matches(matches), "match_count": len(matches)}


class RetrieveMemoriesTool(Tool):
    """Look up memories the user asked the coach to keep."""

    input_model = RetrieveMemoriesInput
    contextual_messages = (
        "Checking your preferences...",
        "Looking up what matters to you...",
        "Reviewing your saved goals...",
        "Pulling up your training notes...",
    )

    def __init__(self, memories: MemoryStore, top_k: int = 5) -> None:
        self._memories = memories
        self._top_k = top_k

    @property
    def name(self) -> str:
        return "retrieve_memories"

    @property
    def description(self) -> str:
        return (
            "Retrieve the user's stored memories: preferences, goals, constraints and instructions "
            "shared in past conversations. Use it to personalize advice or check for injuries, "
            "equipment limits or scheduling preferences.\n\n"
            "Do NOT call it for every message, for greetings, or when the user just stated the "
            "relevant context in this conversation."
        )

    async def execute(self, params: dict[str, Any], context: ConversationContext) -> dict[str, Any]:
        args = self.parse_input(params)
        try:
            memories = await self._memories.query_memories(
                context.user_id, context.coach_id, args.query, top_k=self._top_k
            )
        except Exception as e:
            logger.error(f"Memory retrieval failed: {e}")
            return {"memories": [], "count": 0, "error": str(e)}

        formatted = [
            {
                "content": m.content,
                "type": m.memory_type,
                "importance": m.importance,
                "created_at": m.created_at.isoformat(),
                "tags": m.tags,
            }
            for m in memories
        ]
        logger.info(f"Retrieved {len(formatted)} memories for query {args.query!r}")
        return {"memories": formatted, "count": len(formatted)}


def new_memory_id(user_id: str) -> str:
    """``memory_<user>_<epoch ms>_<short random>``."""
    return f"memory_{user_id}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


class SaveMemoryTool(Tool):
    """Persist something the user wants remembered across conversations."""

    input_model = SaveMemoryInput
    contextual_messages = (
        "Saving to memory...",
        "Storing that detail...",
        "Recording this for later...",
        "Adding to your profile...",
    )

    def __init__(self, memories: MemoryStore, vectors: VectorStore | None = None) -> None:
        self._memories = memories
        self._vectors = vectors

    @property
    def name(self) -> str:
        return "save_memory"

    @property
    def description(self) -> str:
        return (
            "Save something the user shared for future reference: a preference, goal, constraint "
            'or instruction that should persist. Phrases like "remember that", "don\'t forget" or '
            '"keep in mind" are strong signals. Also save lasting facts shared without a trigger '
            'phrase, such as "I can only train 3 days a week" or "I hurt my shoulder last month".\n\n'
            'NOT for transient information ("I\'m tired today") or mid-workout progress.'
        )

    async def execute(self, params: dict[str, Any], context: ConversationContext) -> dict[str, Any]:
        args = self.parse_input(params)
        memory = MemoryRecord(
            memory_id=new_memory_id(context.user_id),
            user_id=context.user_id,
            coach_id=context.coach_id,
            content=args.content,
            memory_type=args.memory_type,
            importance=args.importance,
        )
        try:
            await self._memories.save_memory(memory)
        except Exception as e:
            logger.error(f"Memory save failed: {e}")
            return {"saved": False, "error": str(e)}

        if self._vectors is not None:
            spawn_detached(
                self._vectors.upsert(
                    context.user_id,
                    memory.content,
                    {
                        "record_id": memory.memory_id,
                        "entity_type": "user_memory",
                        "memory_type": memory.memory_type,
                        "importance": memory.importance,
                    },
                ),
                name=f"index-memory-{memory.memory_id}",
            )

        logger.info(f"Memory saved: {memory.memory_id} ({memory.memory_type}, {memory.importance})")
        return {"saved": True, "memory_id": memory.memory_id}


class LogWorkoutTool(Tool):
    """Hand a described workout to the background workout builder."""

    input_model = LogWorkoutInput
    contextual_messages = (
        "Logging your workout...",
        "Getting that session on the books...",
        "Recording your training...",
        "Adding this to your history...",
    )

    TRIGGERED_MESSAGE = "Workout logging started. The workout will appear in your history shortly."
    FAILED_MESSAGE = "Failed to trigger workout logging."

    def __init__(self, jobs: BackgroundJobInvoker, job_name: str = "build-workout") -> None:
        self._jobs = jobs
        self._job_name = job_name

    @property
    def name(self) -> str:
        return "log_workout"

    @property
    def description(self) -> str:
        return (
            "Log a workout the user has completed. Use it when the user reports a finished session "
            "with exercises, sets, reps, weights or times, or sends a /log-workout command. "
            "Pass the user's description verbatim. Logging runs in the background; tell the user "
            "it was started rather than claiming it is already saved.\n\n"
            "NOT for planned or future workouts."
        )

    async def execute(self, params: dict[str, Any], context: ConversationContext) -> dict[str, Any]:
        args = self.parse_input(params)

        command, content = parse_slash_command(args.workout_description)
        is_slash_command = command in WORKOUT_SLASH_COMMANDS
        user_message = content if is_slash_command else args.workout_description

        workout_date = resolve_workout_date(args.workout_date, context.user_timezone)
        payload = {
            "user_id": context.user_id,
            "coach_id": context.coach_id,
            "conversation_id": context.conversation_id,
            "user_message": user_message,
            "coach_config": context.coach_config,
            "user_timezone": context.user_timezone,
            "is_slash_command": is_slash_command,
            "slash_command": command if is_slash_command else None,
            "template_context": args.template_context,
            "workout_date": workout_date.isoformat(),
            "completed_at": utcnow().isoformat(),
        }

        try:
            invocation_id = await self._jobs.invoke(
                self._job_name, payload, description=f"Build workout for {context.user_id}"
            )
        except Exception as e:
            logger.error(f"Workout logging trigger failed: {e}")
            return {"triggered": False, "message": self.FAILED_MESSAGE, "error": str(e)}

        logger.info(f"Workout logging triggered: job={self._job_name}, invocation={invocation_id}")
        return {"triggered": True, "message": self.TRIGGERED_MESSAGE}


class GetRecentWorkoutsTool(Tool):
    """Summaries of the user's latest logged workouts."""

    input_model = GetRecentWorkoutsInput
    contextual_messages = (
        "Pulling up your recent workouts...",
        "Checking your training history...",
        "Scanning through recent sessions...",
        "Reviewing what you've been doing...",
    )

    def __init__(self, workouts: WorkoutStore) -> None:
        self._workouts = workouts

    @property
    def name(self) -> str:
        return "get_recent_workouts"

    @property
    def description(self) -> str:
        return (
            "Get the user's recent workout history: completion dates, disciplines, names and "
            "exercises. Use it for progress discussions, comparing performance over time or "
            "recommending next steps. limit defaults to 10, max 20.\n\n"
            "NOT for every message or for discussing future plans."
        )

    async def execute(self, params: dict[str, Any], context: ConversationContext) -> dict[str, Any]:
        args = self.parse_input(params)
        limit = min(args.limit or DEFAULT_RECENT_WORKOUTS, MAX_RECENT_WORKOUTS)

        try:
            workouts = await self._workouts.query_workouts(context.user_id, limit=limit, discipline=args.discipline)
        except Exception as e:
            logger.error(f"Get recent workouts failed: {e}")
            return {"workouts": [], "count": 0, "error": str(e)}

        formatted = [
            {
                "completed_at": w.completed_at.isoformat(),
                "summary": w.summary,
                "discipline": w.discipline,
                "workout_name": w.workout_name,
                "exercise_names": w.exercise_names,
            }
            for w in workouts
        ]
        logger.info(f"Recent workouts retrieved: {len(formatted)} (limit={limit})")
        return {"workouts": formatted, "count": len(formatted)}
