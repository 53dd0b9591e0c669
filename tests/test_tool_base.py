"""Tests for the Tool base class and parameter validation."""

from typing import Any, Literal

import pytest
from pydantic import BaseModel, Field, ValidationError

from coach_agent.agent.context import AgentContext
from coach_agent.agent.tools.base import Tool


class DummyTool(Tool):
    """A dummy tool for testing."""

    @property
    def name(self) -> str:
        return "dummy_tool"

    @property
    def description(self) -> str:
        return "A tool for testing validation."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "name": {"type": "string", "minLength": 3, "maxLength": 10},
                "age": {"type": "integer", "minimum": 0, "maximum": 120},
                "score": {"type": "number", "minimum": 0.0},
                "is_active": {"type": "boolean"},
                "tags": {"type": "array", "items": {"type": "string"}},
                "role": {"type": "string", "enum": ["admin", "user"]},
                "metadata": {
                    "type": "object",
                    "properties": {"key": {"type": "string"}},
                    "required": ["key"],
                },
            },
            "required": ["name", "age"],
        }

    async def execute(self, params: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        return {"ok": True}


class WorkoutInput(BaseModel):
    discipline: Literal["crossfit", "powerlifting"]
    limit: int = Field(default=10, ge=1)


class ModelTool(Tool):
    input_model = WorkoutInput
    contextual_messages = ("Working...", "On it...")

    @property
    def name(self) -> str:
        return "model_tool"

    @property
    def description(self) -> str:
        return "Tool with a pydantic input model."

    async def execute(self, params: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        return self.parse_input(params).model_dump()


@pytest.fixture
def tool():
    return DummyTool()


def test_valid_params(tool):
    params = {
        "name": "Alice",
        "age": 30,
        "score": 95.5,
        "is_active": True,
        "tags": ["a", "b"],
        "role": "admin",
        "metadata": {"key": "value"},
    }
    assert tool.validate_params(params) == []


def test_missing_required(tool):
    errors = tool.validate_params({"name": "Alice"})
    assert "missing required age" in errors


def test_type_errors(tool):
    errors = tool.validate_params({"name": 123, "age": "thirty"})
    assert "name should be string" in errors
    assert "age should be integer" in errors


def test_bool_is_not_a_number(tool):
    errors = tool.validate_params({"name": "Alice", "age": True})
    assert "age should be integer" in errors


def test_constraints(tool):
    errors = tool.validate_params({"name": "Al", "age": 150, "score": -1, "role": "root"})
    assert "name must be at least 3 chars" in errors
    assert "age must be <= 120" in errors
    assert "score must be >= 0.0" in errors
    assert "role must be one of ['admin', 'user']" in errors


def test_nested_errors(tool):
    errors = tool.validate_params({"name": "Alice", "age": 3, "tags": ["ok", 5], "metadata": {}})
    assert "tags[1] should be string" in errors
    assert "missing required metadata.key" in errors


def test_schema_from_input_model():
    schema = ModelTool().parameters
    assert schema["type"] == "object"
    assert schema["required"] == ["discipline"]
    assert "title" not in schema
    assert schema["properties"]["discipline"]["enum"] == ["crossfit", "powerlifting"]


def test_input_model_validation_through_schema():
    tool = ModelTool()
    assert tool.validate_params({"discipline": "crossfit"}) == []
    assert tool.validate_params({"discipline": "yoga"}) == ["discipline must be one of ['crossfit', 'powerlifting']"]
    assert tool.validate_params({"discipline": "crossfit", "limit": 0}) == ["limit must be >= 1"]


def test_parse_input_raises_pydantic_error():
    with pytest.raises(ValidationError):
        ModelTool().parse_input({"discipline": "crossfit", "limit": "many"})


def test_tool_without_input_model_has_empty_schema():
    class Bare(ModelTool):
        input_model = None

    assert Bare().parameters == {"type": "object", "properties": {}}
    assert Bare().parse_input({"anything": 1}) == {"anything": 1}


def test_to_schema():
    schema = ModelTool().to_schema()
    assert schema["type"] == "function"
    assert schema["function"]["name"] == "model_tool"
    assert schema["function"]["description"] == "Tool with a pydantic input model."


def test_pick_contextual_message():
    assert ModelTool().pick_contextual_message() in ("Working...", "On it...")
    assert DummyTool().pick_contextual_message() is None
