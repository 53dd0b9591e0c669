"""Tests for the streaming ConversationAgent."""

import pytest

from conftest import COACH_CONFIG, ScriptedProvider, text_response, tool_response

from coach_agent.agent.loop import AgentRunResult, TerminalReason
from coach_agent.agents.conversation import (
    ChunkEvent,
    ContextualEvent,
    ConversationAgent,
    ConversationContext,
    ConversationSettings,
    build_conversation_tools,
)
from coach_agent.agents.conversation.agent import BRIDGING_MESSAGES
from coach_agent.agents.conversation.tools import GetRecentWorkoutsTool
from coach_agent.jobs.invoker import LocalJobInvoker


def _settings(stores, tmp_path, **overrides) -> ConversationSettings:
    fields = {
        "coach_configs": stores.coach_configs,
        "conversations": stores.conversations,
        "memories": stores.memories,
        "workouts": stores.workouts,
        "jobs": LocalJobInvoker(tmp_path / "jobs"),
        "vectors": stores.vectors,
    }
    fields.update(overrides)
    return ConversationSettings(**fields)


def _agent(provider, settings, **kwargs) -> ConversationAgent:
    context = ConversationContext(
        user_id="user_1",
        coach_id="coach_1",
        conversation_id="conv_1",
        coach_config=COACH_CONFIG,
        user_timezone="UTC",
    )
    return ConversationAgent(provider, context, settings, **kwargs)


async def _collect(agent, message):
    return [event async for event in agent.converse_stream(message)]


def _text(events) -> str:
    return "".join(e.text for e in events if isinstance(e, ChunkEvent))


@pytest.mark.asyncio
async def test_plain_reply_streams_chunks_then_result(stores, tmp_path):
    provider = ScriptedProvider([text_response("Great squat session today!")])
    agent = _agent(provider, _settings(stores, tmp_path))

    events = await _collect(agent, "I squatted 100kg")

    assert [type(e) for e in events[:-1]] == [ChunkEvent] * 4
    assert _text(events) == "Great squat session today!"
    result = events[-1]
    assert isinstance(result, AgentRunResult)
    assert result.text == "Great squat session today!"
    assert result.terminal_reason is TerminalReason.END_TURN
    assert result.iterations == 1
    assert agent.history[-1].text == "Great squat session today!"


@pytest.mark.asyncio
async def test_system_prompt_carries_coach_prompts(stores, tmp_path):
    provider = ScriptedProvider([text_response("Hi")])

    await _collect(_agent(provider, _settings(stores, tmp_path)), "hello")

    system = provider.calls[0]["messages"][0]["content"]
    assert "You are Marcus, a technical strength coach." in system
    assert "Always protect the left shoulder." in system
    assert "conv_1" in system


@pytest.mark.asyncio
async def test_tool_turn_emits_status_then_bridge(stores, tmp_path):
    provider = ScriptedProvider(
        [
            tool_response(("get_recent_workouts", {"limit": 3})),
            text_response("No workouts logged yet."),
        ]
    )
    agent = _agent(provider, _settings(stores, tmp_path))

    events = await _collect(agent, "How has my training been?")

    assert isinstance(events[0], ContextualEvent)
    assert events[0].message in GetRecentWorkoutsTool.contextual_messages
    assert isinstance(events[1], ContextualEvent)
    assert events[1].message in BRIDGING_MESSAGES
    assert _text(events) == "No workouts logged yet."
    result = events[-1]
    assert result.tools_used == ["get_recent_workouts"]
    assert result.iterations == 2

    tool_message = [m for m in provider.calls[1]["messages"] if m["role"] == "tool"][0]
    assert tool_message["content"] == '{"workouts": [], "count": 0}'


@pytest.mark.asyncio
async def test_text_across_iterations_is_separated(stores, tmp_path):
    provider = ScriptedProvider(
        [
            tool_response(("get_recent_workouts", {}), content="Let me check."),
            text_response("All caught up."),
        ]
    )

    events = await _collect(_agent(provider, _settings(stores, tmp_path)), "status?")

    chunks = [e.text for e in events if isinstance(e, ChunkEvent)]
    assert chunks == ["Let", " me", " check.", "\n\n", "All", " caught", " up."]
    assert events[-1].text == "Let me check.\n\nAll caught up."


@pytest.mark.asyncio
async def test_unknown_tool_has_no_status_and_reports_error(stores, tmp_path):
    provider = ScriptedProvider(
        [
            tool_response(("plan_macros", {})),
            text_response("I can't do that yet."),
        ]
    )

    events = await _collect(_agent(provider, _settings(stores, tmp_path)), "plan my macros")

    contextual = [e.message for e in events if isinstance(e, ContextualEvent)]
    assert len(contextual) == 1
    assert contextual[0] in BRIDGING_MESSAGES
    tool_message = [m for m in provider.calls[1]["messages"] if m["role"] == "tool"][0]
    assert tool_message["content"] == '{"error": "Tool \'plan_macros\' not found"}'


@pytest.mark.asyncio
async def test_max_tokens_without_text_emits_fallback(stores, tmp_path):
    provider = ScriptedProvider([text_response("", finish_reason="length")])
    agent = _agent(provider, _settings(stores, tmp_path))

    events = await _collect(agent, "write me a novel")

    assert _text(events) == "Response exceeded token limit."
    assert events[-1].terminal_reason is TerminalReason.MAX_TOKENS
    assert agent.history[-1].role == "user"


@pytest.mark.asyncio
async def test_content_filter_keeps_streamed_text(stores, tmp_path):
    provider = ScriptedProvider([text_response("Partial answer", finish_reason="content_filter")])
    agent = _agent(provider, _settings(stores, tmp_path))

    events = await _collect(agent, "hmm")

    assert _text(events) == "Partial answer"
    assert events[-1].terminal_reason is TerminalReason.CONTENT_FILTERED
    assert agent.history[-1].role == "user"


@pytest.mark.asyncio
async def test_iteration_cap_emits_fallback(stores, tmp_path):
    provider = ScriptedProvider(
        [tool_response(("get_recent_workouts", {})), tool_response(("get_recent_workouts", {}))]
    )
    agent = _agent(provider, _settings(stores, tmp_path, max_iterations=2))

    events = await _collect(agent, "loop forever")

    assert _text(events) == "Agent exceeded maximum iterations."
    assert events[-1].terminal_reason is TerminalReason.ITERATION_CAP
    assert events[-1].iterations == 2


@pytest.mark.asyncio
async def test_existing_messages_seed_history(stores, tmp_path):
    provider = ScriptedProvider([text_response("Welcome back!")])
    existing = [
        {"role": "user", "content": "hi", "timestamp": "2025-01-01T00:00:00+00:00"},
        {"role": "assistant", "content": "Hey!", "timestamp": "2025-01-01T00:00:01+00:00"},
        {"role": "system", "content": "ignored"},
        {"role": "user", "content": ""},
    ]

    await _collect(_agent(provider, _settings(stores, tmp_path), existing_messages=existing), "back again")

    rendered = provider.calls[0]["messages"][1:]
    assert rendered == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "Hey!"},
        {"role": "user", "content": "back again"},
    ]


@pytest.mark.asyncio
async def test_provider_error_propagates(stores, tmp_path):
    provider = ScriptedProvider([ConnectionError("stream dropped")])

    with pytest.raises(ConnectionError):
        await _collect(_agent(provider, _settings(stores, tmp_path)), "hello")


def test_search_tool_needs_vector_store(stores, tmp_path):
    with_vectors = [t.name for t in build_conversation_tools(_settings(stores, tmp_path))]
    without = [t.name for t in build_conversation_tools(_settings(stores, tmp_path, vectors=None))]

    assert with_vectors == [
        "search_knowledge_base",
        "retrieve_memories",
        "save_memory",
        "log_workout",
        "get_recent_workouts",
    ]
    assert "search_knowledge_base" not in without
    assert len(without) == 4


def test_only_unattended_agent_retries_questions(stores, tmp_path):
    agent = _agent(ScriptedProvider(), _settings(stores, tmp_path), unattended=True)
    attended = _agent(ScriptedProvider(), _settings(stores, tmp_path))

    decision = agent.should_retry_workflow({"success": False}, "Want me to log it?")

    assert decision is not None
    assert decision.retry_prompt.startswith("You ended your previous response with a question")
    assert attended.should_retry_workflow({"success": False}, "Want me to log it?") is None

    agent.tool_results.store("get_recent_workouts", {})
    assert agent.should_retry_workflow({"success": False}, "Want me to log it?") is None
