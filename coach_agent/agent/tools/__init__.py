"""Tool contract and registry."""

from coach_agent.agent.tools.base import Tool
from coach_agent.agent.tools.registry import ToolRegistry

__all__ = ["Tool", "ToolRegistry"]
