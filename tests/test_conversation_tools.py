"""Tests for conversation agent tools."""

from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import COACH_CONFIG

from coach_agent.agent.tasks import drain_detached
from coach_agent.agents.conversation.models import ConversationContext
from coach_agent.agents.conversation.tools import (
    GetRecentWorkoutsTool,
    LogWorkoutTool,
    RetrieveMemoriesTool,
    SaveMemoryTool,
    SearchKnowledgeBaseTool,
    new_memory_id,
    parse_slash_command,
    resolve_workout_date,
    user_today,
)
from coach_agent.jobs.invoker import BackgroundJobInvoker, LocalJobInvoker
from coach_agent.storage.base import VectorStore
from coach_agent.storage.records import MemoryRecord, WorkoutRecord


def _context(**overrides) -> ConversationContext:
    fields = {
        "user_id": "user_1",
        "coach_id": "coach_1",
        "conversation_id": "conv_1",
        "coach_config": COACH_CONFIG,
    }
    fields.update(overrides)
    return ConversationContext(**fields)


class BrokenVectorStore(VectorStore):
    async def upsert(self, user_id, content, metadata=None):
        raise ConnectionError("index offline")

    async def query(self, user_id, query, top_k=5, entity_types=None, min_score=0.0):
        raise ConnectionError("index offline")


class RejectingInvoker(BackgroundJobInvoker):
    async def invoke(self, job_name, payload, description=""):
        raise RuntimeError("queue full")


def test_parse_slash_command():
    assert parse_slash_command("/log-workout 5k run in 24:00") == ("log-workout", "5k run in 24:00")
    assert parse_slash_command("/Log-Workout") == ("log-workout", "")
    assert parse_slash_command("did a 5k today") == (None, "did a 5k today")


def test_resolve_workout_date():
    assert resolve_workout_date("2025-01-10", "UTC") == date(2025, 1, 10)
    assert resolve_workout_date("2025-01-10T08:00:00Z", "UTC") == date(2025, 1, 10)
    assert resolve_workout_date("last tuesday", "UTC") == user_today("UTC")
    assert resolve_workout_date(None, "Not/AZone") == datetime.now(timezone.utc).date()


def test_new_memory_id_format():
    memory_id = new_memory_id("user_1")
    assert memory_id.startswith("memory_user_1_")
    assert len(memory_id.rsplit("_", 1)[1]) == 6


@pytest.mark.asyncio
async def test_search_merges_types_by_score(stores):
    await stores.vectors.upsert("user_1", "Back squat 5x5 at 100kg felt heavy", {"entity_type": "workout"})
    await stores.vectors.upsert("user_1", "Avoid deep squat with the bad knee", {"entity_type": "user_memory"})
    await stores.vectors.upsert("user_2", "Someone else's squat session", {"entity_type": "workout"})

    result = await SearchKnowledgeBaseTool(stores.vectors).execute({"query": "squat"}, _context())

    assert result["success"]
    assert result["match_count"] == 2
    assert "Someone else" not in result["context"]
    assert "[user memory]" in result["context"]
    assert result["context"].startswith("1. [")


@pytest.mark.asyncio
async def test_search_limited_to_requested_types(stores):
    await stores.vectors.upsert("user_1", "Back squat 5x5", {"entity_type": "workout"})
    await stores.vectors.upsert("user_1", "Squat twice a week", {"entity_type": "program"})

    result = await SearchKnowledgeBaseTool(stores.vectors).execute(
        {"query": "squat", "search_types": ["programs"]}, _context()
    )

    assert result["match_count"] == 1
    assert "[program]" in result["context"]


@pytest.mark.asyncio
async def test_search_without_matches(stores):
    result = await SearchKnowledgeBaseTool(stores.vectors).execute({"query": "snatch"}, _context())

    assert result == {
        "success": False,
        "context": "No relevant information found in the knowledge base.",
        "match_count": 0,
    }


@pytest.mark.asyncio
async def test_search_failure_is_returned_not_raised():
    result = await SearchKnowledgeBaseTool(BrokenVectorStore()).execute({"query": "squat"}, _context())

    assert result["success"] is False
    assert result["context"] == "Knowledge base search encountered an error."
    assert result["error"] == "index offline"


@pytest.mark.asyncio
async def test_retrieve_memories(stores):
    await stores.memories.save_memory(
        MemoryRecord(
            memory_id="memory_1",
            user_id="user_1",
            coach_id="coach_1",
            content="Left shoulder hurts on overhead pressing",
            memory_type="constraint",
            importance="high",
        )
    )
    await stores.memories.save_memory(
        MemoryRecord(memory_id="memory_2", user_id="user_1", coach_id="coach_9", content="Shoulder note for another coach")
    )

    result = await RetrieveMemoriesTool(stores.memories).execute({"query": "shoulder pressing"}, _context())

    assert result["count"] == 1
    memory = result["memories"][0]
    assert memory["content"] == "Left shoulder hurts on overhead pressing"
    assert memory["type"] == "constraint"
    assert memory["importance"] == "high"


@pytest.mark.asyncio
async def test_save_memory_indexes_in_background(stores):
    tool = SaveMemoryTool(stores.memories, stores.vectors)

    result = await tool.execute(
        {"content": "Only trains mornings before work", "memory_type": "preference"}, _context()
    )
    await drain_detached()

    assert result["saved"]
    saved = await stores.memories.list_memories("user_1")
    assert saved[0].memory_id == result["memory_id"]
    assert saved[0].importance == "medium"
    assert saved[0].coach_id == "coach_1"
    matches = await stores.vectors.query("user_1", "mornings", entity_types=["user_memory"])
    assert matches[0].record.record_id == result["memory_id"]


@pytest.mark.asyncio
async def test_save_memory_survives_index_failure(stores):
    result = await SaveMemoryTool(stores.memories, BrokenVectorStore()).execute(
        {"content": "Prefers kettlebells", "memory_type": "preference", "importance": "low"}, _context()
    )
    await drain_detached()

    assert result["saved"]
    assert len(await stores.memories.list_memories("user_1")) == 1


@pytest.mark.asyncio
async def test_log_workout_queues_job(tmp_path):
    jobs = LocalJobInvoker(tmp_path / "jobs")

    result = await LogWorkoutTool(jobs).execute(
        {"workout_description": "/log-workout Fran in 4:32", "workout_date": "2025-01-10"},
        _context(user_timezone="UTC"),
    )

    assert result == {"triggered": True, "message": LogWorkoutTool.TRIGGERED_MESSAGE}
    [job] = jobs.queued()
    assert job["job"] == "build-workout"
    payload = job["payload"]
    assert payload["user_message"] == "Fran in 4:32"
    assert payload["is_slash_command"] is True
    assert payload["slash_command"] == "log-workout"
    assert payload["workout_date"] == "2025-01-10"
    assert payload["coach_config"]["coach_name"] == "Marcus_Strength_Architect"
    assert payload["conversation_id"] == "conv_1"


@pytest.mark.asyncio
async def test_log_workout_plain_message(tmp_path):
    jobs = LocalJobInvoker(tmp_path / "jobs")

    await LogWorkoutTool(jobs, job_name="custom-builder").execute(
        {"workout_description": "Ran 5k in 24 minutes"}, _context(user_timezone="UTC")
    )

    [job] = jobs.queued()
    assert job["job"] == "custom-builder"
    assert job["payload"]["user_message"] == "Ran 5k in 24 minutes"
    assert job["payload"]["is_slash_command"] is False
    assert job["payload"]["slash_command"] is None
    assert job["payload"]["workout_date"] == user_today("UTC").isoformat()


@pytest.mark.asyncio
async def test_log_workout_trigger_failure():
    result = await LogWorkoutTool(RejectingInvoker()).execute({"workout_description": "Row 2k"}, _context())

    assert result == {
        "triggered": False,
        "message": "Failed to trigger workout logging.",
        "error": "queue full",
    }


@pytest.mark.asyncio
async def test_recent_workouts_newest_first_and_capped(stores):
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    for i in range(25):
        await stores.workouts.save_workout(
            WorkoutRecord(
                workout_id=f"w{i}",
                user_id="user_1",
                completed_at=start + timedelta(days=i),
                discipline="running" if i % 2 else "crossfit",
                workout_name=f"Workout {i}",
            )
        )
    tool = GetRecentWorkoutsTool(stores.workouts)

    capped = await tool.execute({"limit": 50}, _context())
    running = await tool.execute({"limit": 3, "discipline": "Running"}, _context())
    default = await tool.execute({}, _context())

    assert capped["count"] == 20
    assert capped["workouts"][0]["workout_name"] == "Workout 24"
    assert [w["workout_name"] for w in running["workouts"]] == ["Workout 23", "Workout 21", "Workout 19"]
    assert default["count"] == 10


def test_validate_params_reports_limit_and_required():
    tool = GetRecentWorkoutsTool(workouts=None)
    assert tool.validate_params({"limit": 0})
    assert SaveMemoryTool(memories=None).validate_params({"content": "x"})


def test_every_tool_has_contextual_messages(stores, tmp_path):
    tools = [
        SearchKnowledgeBaseTool(stores.vectors),
        RetrieveMemoriesTool(stores.memories),
        SaveMemoryTool(stores.memories),
        LogWorkoutTool(LocalJobInvoker(tmp_path / "jobs")),
        GetRecentWorkoutsTool(stores.workouts),
    ]
    for tool in tools:
        assert len(tool.contextual_messages) == 4
        assert tool.pick_contextual_message() in tool.contextual_messages
