"""Tests for the Agent loop."""

import asyncio
from typing import Any

import pytest
from pydantic import BaseModel

from coach_agent.agent.context import AgentContext
from coach_agent.agent.loop import MALFORMED_INPUT_ERROR, Agent, AgentConfig, TerminalReason
from coach_agent.agent.policies import ValidationGate
from coach_agent.agent.tools.base import Tool
from coach_agent.providers.base import LLMResponse, ToolCallRequest
from conftest import ScriptedProvider, text_response, tool_response


class EchoInput(BaseModel):
    text: str


class EchoTool(Tool):
    input_model = EchoInput

    def __init__(self, name: str = "echo", delay: float = 0.0) -> None:
        self._name = name
        self._delay = delay
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "Echo the text back."

    async def execute(self, params: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        args = self.parse_input(params)
        if self._delay:
            await asyncio.sleep(self._delay)
        self.calls.append(args.text)
        return {"echo": args.text}


class FailingTool(Tool):
    @property
    def name(self) -> str:
        return "explode"

    @property
    def description(self) -> str:
        return "Always fails."

    async def execute(self, params: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        raise RuntimeError("boom")


def make_agent(provider, tools=(), **overrides) -> Agent:
    config = AgentConfig(system_prompt="You are a test agent.", tools=list(tools), **overrides)
    return Agent(provider, config, AgentContext(user_id="user_1"))


@pytest.mark.asyncio
async def test_hello_with_empty_registry():
    provider = ScriptedProvider([text_response("Hi there!")])
    agent = make_agent(provider)

    result = await agent.converse("hello")

    assert result == "Hi there!"
    assert [m.role for m in agent.history] == ["user", "assistant"]
    assert provider.calls[0]["tools"] is None
    assert agent.last_run.terminal_reason is TerminalReason.END_TURN
    assert agent.last_run.iterations == 1


@pytest.mark.asyncio
async def test_unregistered_tool_is_reported_and_loop_continues():
    provider = ScriptedProvider([tool_response(("X", {})), text_response("Sorry, I can't do that.")])
    agent = make_agent(provider, [EchoTool()])

    result = await agent.converse("do X")

    assert result == "Sorry, I can't do that."
    results = agent.history[2].tool_results
    assert len(results) == 1
    assert results[0].is_error
    assert results[0].content == {"error": "Tool 'X' not found"}
    assert len(agent.tool_results) == 0


@pytest.mark.asyncio
async def test_result_count_matches_tool_use_count():
    echo = EchoTool()
    provider = ScriptedProvider(
        [
            tool_response(("echo", {"text": "a"}), ("missing", {}), ("echo", {"text": "b"})),
            text_response("done"),
        ]
    )
    agent = make_agent(provider, [echo])

    await agent.converse("go")

    assistant, user = agent.history[1], agent.history[2]
    assert len(assistant.tool_uses) == 3
    assert [r.tool_use_id for r in user.tool_results] == ["call_1", "call_2", "call_3"]
    assert [r.status for r in user.tool_results] == ["success", "error", "success"]
    assert echo.calls == ["a", "b"]


@pytest.mark.asyncio
async def test_tool_results_are_rendered_for_the_next_model_call():
    provider = ScriptedProvider([tool_response(("echo", {"text": "ping"})), text_response("pong")])
    agent = make_agent(provider, [EchoTool()])

    await agent.converse("ping me")

    messages = provider.calls[1]["messages"]
    assert messages[0]["role"] == "system"
    assert messages[2]["role"] == "assistant"
    assert messages[2]["tool_calls"][0]["function"]["name"] == "echo"
    assert messages[3]["role"] == "tool"
    assert messages[3]["tool_call_id"] == "call_1"
    assert '"echo": "ping"' in messages[3]["content"]


@pytest.mark.asyncio
async def test_iteration_cap_returns_fallback_text():
    provider = ScriptedProvider([tool_response(("echo", {"text": str(i)})) for i in range(3)])
    agent = make_agent(provider, [EchoTool()], max_iterations=3)

    result = await agent.converse("loop forever")

    assert result == Agent.ITERATION_CAP_FALLBACK
    assert agent.last_run.terminal_reason is TerminalReason.ITERATION_CAP
    assert agent.last_run.iterations == 3


@pytest.mark.asyncio
async def test_iteration_cap_prefers_last_model_text():
    provider = ScriptedProvider(
        [tool_response(("echo", {"text": "x"}), content="Still working on it") for _ in range(2)]
    )
    agent = make_agent(provider, [EchoTool()], max_iterations=2)

    assert await agent.converse("go") == "Still working on it"


@pytest.mark.asyncio
async def test_max_tokens_returns_fallback_without_appending():
    provider = ScriptedProvider([text_response("", finish_reason="length")])
    agent = make_agent(provider)

    result = await agent.converse("write a novel")

    assert result == "Response exceeded token limit."
    assert agent.last_run.terminal_reason is TerminalReason.MAX_TOKENS
    assert len(agent.history) == 1


@pytest.mark.asyncio
async def test_content_filtered_keeps_partial_text():
    provider = ScriptedProvider([text_response("Partial", finish_reason="content_filter")])
    agent = make_agent(provider)

    assert await agent.converse("hmm") == "Partial"
    assert agent.last_run.terminal_reason is TerminalReason.CONTENT_FILTERED


@pytest.mark.asyncio
async def test_content_filtered_fallback():
    provider = ScriptedProvider([text_response("", finish_reason="content_filter")])
    agent = make_agent(provider)

    assert await agent.converse("hmm") == "Response was filtered due to content policy."


@pytest.mark.asyncio
async def test_malformed_input_is_reported():
    bad_call = ToolCallRequest(id="call_1", name="echo", arguments={"raw": "{not json"}, malformed=True)
    provider = ScriptedProvider(
        [LLMResponse(content=None, tool_calls=[bad_call], finish_reason="tool_calls"), text_response("ok")]
    )
    echo = EchoTool()
    agent = make_agent(provider, [echo])

    await agent.converse("go")

    result = agent.history[2].tool_results[0]
    assert result.content == {"error": MALFORMED_INPUT_ERROR}
    assert echo.calls == []


@pytest.mark.asyncio
async def test_invalid_params_are_reported():
    provider = ScriptedProvider([tool_response(("echo", {"text": 42})), text_response("ok")])
    agent = make_agent(provider, [EchoTool()])

    await agent.converse("go")

    error = agent.history[2].tool_results[0].content["error"]
    assert error.startswith("Invalid parameters for tool 'echo'")
    assert "text should be string" in error


@pytest.mark.asyncio
async def test_tool_exception_becomes_error_result_and_is_not_stored():
    provider = ScriptedProvider([tool_response(("explode", {})), text_response("It failed.")])
    agent = make_agent(provider, [FailingTool()])

    assert await agent.converse("go") == "It failed."
    assert agent.history[2].tool_results[0].content == {"error": "boom"}
    assert "explode" not in agent.tool_results
    assert agent.last_run.tools_used == []


@pytest.mark.asyncio
async def test_results_are_stored_under_mapped_keys():
    provider = ScriptedProvider([tool_response(("echo", {"text": "hi"})), text_response("ok")])
    agent = make_agent(provider, [EchoTool()], key_map={"echo": "greeting"})

    await agent.converse("go")

    assert agent.tool_results.get("greeting") == {"echo": "hi"}
    assert agent.context.get_tool_result("greeting") == {"echo": "hi"}
    assert agent.last_run.tools_used == ["echo"]


@pytest.mark.asyncio
async def test_blocked_save_is_reported_and_not_executed():
    save = EchoTool("save")
    provider = ScriptedProvider(
        [
            tool_response(("save", {"text": "first"})),
            tool_response(("save", {"text": "second"})),
            text_response("Unable to save."),
        ]
    )
    agent = make_agent(provider, [save], blocking_policy=ValidationGate("save", "validation"))
    agent.tool_results.store("validation", {"is_valid": False, "validation_issues": ["Missing name"]})

    await agent.converse("save it")

    for entry in (agent.history[2], agent.history[4]):
        payload = entry.tool_results[0].content
        assert payload["blocked"] is True
        assert payload["error"] is True
        assert payload["validation_issues"] == ["Missing name"]
    assert save.calls == []
    assert "save" not in agent.tool_results


class TimedTool(EchoTool):
    """Echo tool that records when it starts and finishes in a shared timeline."""

    def __init__(self, name: str, timeline: list[str], delay: float = 0.0) -> None:
        super().__init__(name, delay)
        self.timeline = timeline

    async def execute(self, params: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        self.timeline.append(f"{self.name}:start")
        result = await super().execute(params, context)
        self.timeline.append(f"{self.name}:end")
        return result


def _slow_fast_turn() -> ScriptedProvider:
    return ScriptedProvider(
        [tool_response(("slow", {"text": "s"}), ("fast", {"text": "f"})), text_response("done")]
    )


@pytest.mark.asyncio
async def test_parallel_group_preserves_request_order():
    timeline: list[str] = []
    slow, fast = TimedTool("slow", timeline, delay=0.05), TimedTool("fast", timeline)
    agent = make_agent(_slow_fast_turn(), [slow, fast], parallel_groups=[frozenset({"slow", "fast"})])

    await agent.converse("go")

    # Both start before either finishes, and fast finishes first.
    assert timeline == ["slow:start", "fast:start", "fast:end", "slow:end"]
    results = agent.history[2].tool_results
    assert [r.name for r in results] == ["slow", "fast"]
    assert [r.content["echo"] for r in results] == ["s", "f"]
    assert [r.tool_use_id for r in results] == ["call_1", "call_2"]


@pytest.mark.asyncio
async def test_tools_outside_parallel_groups_run_one_after_another():
    timeline: list[str] = []
    slow, fast = TimedTool("slow", timeline, delay=0.05), TimedTool("fast", timeline)
    agent = make_agent(_slow_fast_turn(), [slow, fast])

    await agent.converse("go")

    assert timeline == ["slow:start", "slow:end", "fast:start", "fast:end"]
    assert [r.name for r in agent.history[2].tool_results] == ["slow", "fast"]


@pytest.mark.asyncio
async def test_usage_is_totalled_across_iterations():
    first = tool_response(("echo", {"text": "a"}))
    first.usage = {"prompt_tokens": 10, "completion_tokens": 5}
    provider = ScriptedProvider([first, text_response("done", usage={"prompt_tokens": 20, "completion_tokens": 7})])
    agent = make_agent(provider, [EchoTool()])

    await agent.converse("go")

    assert agent.last_run.input_tokens == 30
    assert agent.last_run.output_tokens == 12
    assert agent.last_run.model == "scripted/model"


@pytest.mark.asyncio
async def test_tool_use_without_calls_ends_turn():
    provider = ScriptedProvider([text_response("All done", finish_reason="tool_use")])
    agent = make_agent(provider)

    assert await agent.converse("go") == "All done"
    assert agent.last_run.terminal_reason is TerminalReason.END_TURN


@pytest.mark.asyncio
async def test_provider_errors_propagate():
    provider = ScriptedProvider([RuntimeError("throttled")])
    agent = make_agent(provider)

    with pytest.raises(RuntimeError, match="throttled"):
        await agent.converse("hello")
