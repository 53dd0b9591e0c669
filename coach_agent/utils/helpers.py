"""Common utility functions."""

import json
import re
from typing import Any


def truncate_for_log(value: Any, max_length: int = 200) -> str:
    """Serialize a value to JSON (best effort) and cut it down for a log line."""
    if isinstance(value, str):
        text = value
    else:
        try:
            text = json.dumps(value, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            text = repr(value)
    return text if len(text) <= max_length else text[:max_length] + "..."


def sanitize_key(key: str) -> str:
    """
    Sanitize an identifier for use as a filename.

    Args:
        key: Raw identifier.

    Returns:
        Sanitized key safe for filesystem use.
    """
    return re.sub(r"[^a-zA-Z0-9_-]", "_", key)


def format_error(error: Exception) -> str:
    """
    Format an exception for display.

    Args:
        error: The exception to format.

    Returns:
        Human-readable error string.
    """
    error_type = type(error).__name__
    return f"{error_type}: {str(error)}"


_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def parse_json_with_fallbacks(text: str) -> dict[str, Any]:
    """
    Parse a JSON object out of model output.

    Tries, in order: the raw text, the body of a fenced code block, the span
    between the first ``{`` and the last ``}``, and the text with a ``{``
    prefill prepended (models asked to continue an opened object often omit it).

    Raises:
        ValueError: If no attempt yields a JSON object.
    """
    candidates: list[str] = []
    stripped = (text or "").strip()
    if stripped:
        candidates.append(stripped)

    fenced = _FENCE_RE.search(stripped)
    if fenced:
        candidates.append(fenced.group(1).strip())

    start, end = stripped.find("{"), stripped.rfind("}")
    if start != -1 and end > start:
        candidates.append(stripped[start : end + 1])

    if stripped and not stripped.startswith("{"):
        candidates.append("{" + stripped)

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise ValueError(f"Could not parse JSON object from model output: {truncate_for_log(stripped, 120)}")
