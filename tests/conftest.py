"""Shared fixtures: a scripted provider and file-backed stores."""

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from coach_agent.providers.base import (
    LLMProvider,
    LLMResponse,
    StreamComplete,
    TextDelta,
    ToolCallRequest,
)
from coach_agent.storage import Stores, open_local_stores
from coach_agent.storage.records import CoachCreatorSession


def text_response(content: str, finish_reason: str = "stop", usage: dict[str, int] | None = None) -> LLMResponse:
    return LLMResponse(content=content, finish_reason=finish_reason, usage=usage or {})


def tool_response(*calls: tuple[str, dict[str, Any]], content: str | None = None) -> LLMResponse:
    """A tool_use turn; each call is ``(name, arguments)`` with ids call_1, call_2, ..."""
    return LLMResponse(
        content=content,
        tool_calls=[ToolCallRequest(id=f"call_{i}", name=name, arguments=args) for i, (name, args) in enumerate(calls, 1)],
        finish_reason="tool_calls",
    )


class ScriptedProvider(LLMProvider):
    """
    Provider that replays queued responses.

    ``chat`` pops from ``responses`` unless ``utility`` is set, in which case
    utility calls (those sent without tools) are answered by it instead.
    ``chat_stream`` splits each queued response's text into word deltas.
    """

    def __init__(
        self,
        responses: list[LLMResponse] | None = None,
        utility: Callable[[list[dict[str, Any]]], str] | None = None,
    ) -> None:
        super().__init__()
        self.responses = list(responses or [])
        self.utility = utility
        self.calls: list[dict[str, Any]] = []
        self.utility_calls: list[list[dict[str, Any]]] = []

    async def chat(self, messages, tools=None, model=None, max_tokens=4096, temperature=0.7) -> LLMResponse:
        if self.utility is not None and tools is None:
            self.utility_calls.append(messages)
            return LLMResponse(content=self.utility(messages))
        self.calls.append({"messages": messages, "tools": tools, "model": model})
        if not self.responses:
            raise AssertionError("ScriptedProvider ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def chat_stream(self, messages, tools=None, model=None, max_tokens=4096, temperature=0.7):
        self.calls.append({"messages": messages, "tools": tools, "model": model, "stream": True})
        if not self.responses:
            raise AssertionError("ScriptedProvider ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        words = (response.content or "").split(" ")
        for i, word in enumerate(words):
            if word or i:
                yield TextDelta(text=word if i == 0 else f" {word}")
        yield StreamComplete(response=response)

    def get_default_model(self) -> str:
        return "scripted/model"


@pytest.fixture
def stores(tmp_path: Path) -> Stores:
    return open_local_stores(tmp_path / "data")


# ---------------------------------------------------------------------------
# Coach creation fixtures
# ---------------------------------------------------------------------------

CREATION_TIMESTAMP = "2025-01-15T12:00:00+00:00"

PROMPT_KEYS = (
    "personality_prompt",
    "safety_integrated_prompt",
    "motivation_prompt",
    "methodology_prompt",
    "communication_style",
    "learning_adaptation_prompt",
    "gender_tone_prompt",
)


def coach_creator_utility(
    personality: str = "marcus",
    methodology: str = "comptrain_strength",
    prompt_length: int = 120,
) -> Callable[[list[dict[str, Any]]], str]:
    """Answer the creation tools' utility-model calls based on their system prompt."""

    def answer(messages: list[dict[str, Any]]) -> str:
        system = messages[0]["content"]
        if system.startswith("Select the most appropriate coach personality"):
            return json.dumps(
                {
                    "primary_template": personality,
                    "secondary_influences": ["emma", "not_a_template"],
                    "selection_reasoning": "Technical lifter who wants coaching on form",
                    "blending_weights": {"primary": 0.8, "secondary": 0.2},
                }
            )
        if system.startswith("Select the optimal training methodology"):
            return "```json\n" + json.dumps(
                {
                    "primary_methodology": methodology,
                    "methodology_reasoning": "Strength focus with some conditioning",
                    "programming_emphasis": "strength",
                    "periodization_approach": "block",
                    "creativity_emphasis": "medium_variety",
                    "workout_innovation": "enabled",
                }
            ) + "\n```"
        if system.startswith("Generate the prompts"):
            return json.dumps({key: f"{key} " + "x" * prompt_length for key in PROMPT_KEYS})
        raise AssertionError(f"Unexpected utility prompt: {system[:60]}")

    return answer


def make_session(user_id: str = "user_1", session_id: str = "session_1", **todo: Any) -> CoachCreatorSession:
    todo_list = {
        "experience_level": {"value": "intermediate"},
        "coach_gender_preference": {"value": "male"},
        "training_frequency": {"value": "5 days a week"},
        "primary_goals": {"value": "Get stronger at squat and deadlift, improve my engine"},
        "injury_considerations": {"value": "left shoulder impingement"},
        "movement_limitations": {"value": "overhead squats"},
        "equipment_access": {"value": ["barbell", "rack", "rower"]},
        "session_length": {"value": "60"},
        "goal_timeline": {"value": "1 year"},
    }
    todo_list.update({key: {"value": value} for key, value in todo.items()})
    return CoachCreatorSession(
        user_id=user_id,
        session_id=session_id,
        sophistication_level="INTERMEDIATE",
        is_complete=True,
        conversation_history=[
            {"role": "assistant", "content": "What are your goals?"},
            {"role": "user", "content": "I want to get stronger and fix my shoulder."},
        ],
        todo_list=todo_list,
    )


def full_workflow_responses(final_text: str = "Coach created successfully!") -> list[LLMResponse]:
    """The model side of a complete, well-behaved creation run."""
    return [
        tool_response(("load_session_requirements", {})),
        tool_response(("select_personality_template", {}), ("select_methodology_template", {})),
        tool_response(("generate_coach_prompts", {})),
        tool_response(("assemble_coach_config", {"creation_timestamp": CREATION_TIMESTAMP})),
        tool_response(("validate_coach_config", {})),
        tool_response(("save_coach_config_to_database", {"creation_timestamp": CREATION_TIMESTAMP})),
        text_response(final_text),
    ]


# ---------------------------------------------------------------------------
# Conversation fixtures
# ---------------------------------------------------------------------------

COACH_CONFIG = {
    "coach_id": "coach_1",
    "coach_name": "Marcus_Strength_Architect",
    "technical_config": {
        "methodology": "comptrain_strength",
        "programming_focus": ["strength", "conditioning"],
        "experience_level": "intermediate",
        "injury_considerations": ["left shoulder impingement"],
    },
    "generated_prompts": {
        "personality_prompt": "You are Marcus, a technical strength coach.",
        "safety_integrated_prompt": "Always protect the left shoulder.",
    },
}


def conversation_utility(
    update: str = '"Checking your squat numbers..."',
    memory: dict[str, Any] | None = None,
) -> Callable[[list[dict[str, Any]]], str]:
    """Answer contextual-update and memory-detection calls."""

    def answer(messages: list[dict[str, Any]]) -> str:
        system = messages[0]["content"]
        if system.startswith("You analyze user messages"):
            return json.dumps(memory or {"is_memory_request": False, "confidence": 0.9, "reasoning": "Question"})
        if system.startswith("You are "):
            return update
        raise AssertionError(f"Unexpected utility prompt: {system[:60]}")

    return answer
