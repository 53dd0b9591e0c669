"""Utility functions module."""

from coach_agent.utils.helpers import (
    format_error,
    parse_json_with_fallbacks,
    sanitize_key,
    truncate_for_log,
)

__all__ = [
    "format_error",
    "parse_json_with_fallbacks",
    "sanitize_key",
    "truncate_for_log",
]
