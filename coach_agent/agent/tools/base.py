"""Base class for agent tools."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from pydantic import BaseModel

from coach_agent.agent.context import AgentContext


class Tool(ABC):
    """
    Abstract base class for agent tools.

    A tool is a named, schema-described async function the model may ask the
    loop to run. Tools with a known argument shape set ``input_model`` and
    get their JSON schema and typed parsing from it.
    """

    _TYPE_MAP = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
    }

    input_model: ClassVar[type[BaseModel] | None] = None
    contextual_messages: ClassVar[tuple[str, ...]] = ()

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name used in function calls."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of what the tool does."""
        pass

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for tool parameters."""
        if self.input_model is None:
            return {"type": "object", "properties": {}}
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        return schema

    @abstractmethod
    async def execute(self, params: dict[str, Any], context: AgentContext) -> dict[str, Any] | BaseModel:
        """
        Execute the tool.

        Expected business failures are returned as a structured ``error``
        field. Raised exceptions are reported back to the model by the loop.

        Args:
            params: Arguments supplied by the model.
            context: Per-run context shared by all tools.

        Returns:
            JSON-compatible output or a pydantic model.
        """
        pass

    def parse_input(self, params: dict[str, Any]) -> Any:
        """Validate raw arguments into ``input_model``."""
        if self.input_model is None:
            return params
        return self.input_model.model_validate(params)

    def pick_contextual_message(self) -> str | None:
        """Pick a status line to show the user while this tool runs."""
        if not self.contextual_messages:
            return None
        return random.choice(self.contextual_messages)

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """Validate parameters against the JSON schema and return error strings."""
        schema = self.parameters or {}
        if schema.get("type", "object") != "object":
            raise ValueError(f"Schema must be object type, got {schema.get('type')!r}")
        return self._validate(params, {**schema, "type": "object"}, "")

    def _validate(self, value: Any, schema: dict[str, Any], path: str) -> list[str]:
        expected_type = schema.get("type")
        label = path or "parameter"
        if expected_type in self._TYPE_MAP:
            if expected_type in ("integer", "number") and isinstance(value, bool):
                return [f"{label} should be {expected_type}"]
            if not isinstance(value, self._TYPE_MAP[expected_type]):
                return [f"{label} should be {expected_type}"]

        errors: list[str] = []
        if "enum" in schema and value not in schema["enum"]:
            errors.append(f"{label} must be one of {schema['enum']}")
        if expected_type in ("integer", "number"):
            if "minimum" in schema and value < schema["minimum"]:
                errors.append(f"{label} must be >= {schema['minimum']}")
            if "maximum" in schema and value > schema["maximum"]:
                errors.append(f"{label} must be <= {schema['maximum']}")
        if expected_type == "string":
            if "minLength" in schema and len(value) < schema["minLength"]:
                errors.append(f"{label} must be at least {schema['minLength']} chars")
            if "maxLength" in schema and len(value) > schema["maxLength"]:
                errors.append(f"{label} must be at most {schema['maxLength']} chars")
        if expected_type == "object":
            properties = schema.get("properties", {})
            for key in schema.get("required", []):
                if key not in value:
                    errors.append(f"missing required {path + '.' + key if path else key}")
            for key, item in value.items():
                if key in properties:
                    next_path = f"{path}.{key}" if path else key
                    errors.extend(self._validate(item, properties[key], next_path))
        if expected_type == "array" and "items" in schema:
            for idx, item in enumerate(value):
                next_path = f"{path}[{idx}]" if path else f"[{idx}]"
                errors.extend(self._validate(item, schema["items"], next_path))
        return errors

    def to_schema(self) -> dict[str, Any]:
        """Convert tool to OpenAI function schema format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
