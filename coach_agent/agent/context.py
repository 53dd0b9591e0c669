"""Per-run agent context and the tool result store."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Iterator, Mapping, TypeVar

from loguru import logger

K = TypeVar("K", bound=str)


class ToolResultStore(Generic[K]):
    """
    Arena of successful tool outputs for one agent run.

    Tool names are remapped to semantic keys through ``key_map`` so later
    tools and the final result assembly read by stable names. A later call
    to the same tool overwrites the earlier result. Nothing is cleared
    automatically.
    """

    def __init__(self, key_map: Mapping[str, K] | None = None) -> None:
        self._key_map: dict[str, K] = dict(key_map or {})
        self._results: dict[str, Any] = {}

    def key_for(self, tool_name: str) -> str:
        key = self._key_map.get(tool_name, tool_name)
        return key.value if isinstance(key, Enum) else key

    def store(self, tool_name: str, result: Any) -> str:
        key = self.key_for(tool_name)
        self._results[key] = result
        if key != tool_name:
            logger.debug(f"Stored tool result: {tool_name} -> {key}")
        return key

    def get(self, key: K | str, default: Any = None) -> Any:
        lookup = key.value if isinstance(key, Enum) else key
        return self._results.get(lookup, default)

    def keys(self) -> list[str]:
        return list(self._results)

    def clear(self) -> None:
        self._results.clear()

    def __contains__(self, key: object) -> bool:
        lookup = key.value if isinstance(key, Enum) else key
        return lookup in self._results

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)


@dataclass
class AgentContext:
    """
    Caller identity and domain fields shared by every tool call in a run.

    Domain agents subclass this with their own typed fields. The owning
    agent binds its result store so tools can read earlier outputs through
    ``get_tool_result``.
    """

    user_id: str
    session_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    tool_results: ToolResultStore | None = field(default=None, repr=False, compare=False)

    def get_tool_result(self, key: str) -> Any:
        if self.tool_results is None:
            return None
        return self.tool_results.get(key)
