"""coach-agent: tool-using LLM agents for personalised fitness coaching."""

__version__ = "0.1.0"
