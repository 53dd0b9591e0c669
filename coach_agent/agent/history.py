"""Conversation history: messages, content blocks and chat-API rendering."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from pydantic import BaseModel

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class MediaRef:
    """Reference to an image attached to a user turn."""

    uri: str
    media_type: str = "image/jpeg"


@dataclass
class TextBlock:
    text: str


@dataclass
class ImageBlock:
    media: MediaRef


@dataclass
class ToolUseBlock:
    tool_use_id: str
    name: str
    input: dict[str, Any]


@dataclass
class ToolResultBlock:
    """Outcome of one tool-use block, correlated by ``tool_use_id``."""

    tool_use_id: str
    name: str
    content: dict[str, Any]
    status: Literal["success", "error"] = "success"

    @property
    def is_error(self) -> bool:
        return self.status == "error"


ContentBlock = Union[TextBlock, ImageBlock, ToolUseBlock, ToolResultBlock]


@dataclass
class Message:
    """One history entry: a role and an ordered list of content blocks."""

    role: Role
    content: list[ContentBlock] = field(default_factory=list)

    @classmethod
    def user(cls, text: str, attachments: list[MediaRef] | None = None) -> Message:
        blocks: list[ContentBlock] = [TextBlock(text)]
        blocks.extend(ImageBlock(media) for media in attachments or [])
        return cls("user", blocks)

    @classmethod
    def assistant(cls, text: str) -> Message:
        return cls("assistant", [TextBlock(text)] if text else [])

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Build a text-only message from a stored ``{"role", "content"}`` record."""
        return cls(data["role"], [TextBlock(str(data.get("content", "")))])

    @property
    def text(self) -> str:
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock) and b.text)

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]

    @property
    def tool_results(self) -> list[ToolResultBlock]:
        return [b for b in self.content if isinstance(b, ToolResultBlock)]


def to_jsonable(value: Any) -> Any:
    """Convert tool output (pydantic model or plain data) to JSON-compatible data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def render_messages(system_prompt: str, history: list[Message]) -> list[dict[str, Any]]:
    """
    Render history into OpenAI chat-completions messages (the LiteLLM format).

    An assistant turn with tool-use blocks becomes one message carrying
    ``tool_calls``; a user turn of tool results expands into one ``tool``
    message per result, in order.
    """
    messages: list[dict[str, Any]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})

    for message in history:
        tool_results = message.tool_results
        if tool_results:
            for result in tool_results:
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": result.tool_use_id,
                        "name": result.name,
                        "content": json.dumps(result.content, ensure_ascii=False, default=str),
                    }
                )
            continue

        tool_uses = message.tool_uses
        if tool_uses:
            messages.append(
                {
                    "role": "assistant",
                    "content": message.text or None,
                    "tool_calls": [
                        {
                            "id": tu.tool_use_id,
                            "type": "function",
                            "function": {
                                "name": tu.name,
                                "arguments": json.dumps(tu.input, ensure_ascii=False),
                            },
                        }
                        for tu in tool_uses
                    ],
                }
            )
            continue

        images = [b for b in message.content if isinstance(b, ImageBlock)]
        if images:
            parts: list[dict[str, Any]] = []
            if message.text:
                parts.append({"type": "text", "text": message.text})
            parts.extend({"type": "image_url", "image_url": {"url": b.media.uri}} for b in images)
            messages.append({"role": message.role, "content": parts})
        else:
            messages.append({"role": message.role, "content": message.text})

    return messages
