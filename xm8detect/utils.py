"""Utility functions."""

import re
from datetime import datetime, timezone
from typing import Optional

PREVIEW_LIMIT = 200

_FENCE_RE = re.compile(r"```(?:json)?", flags=re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Drop ```json / ``` markers but keep whatever they wrapped."""
    return _FENCE_RE.sub("", text)


def first_balanced_object(text: str) -> Optional[str]:
    """
    Return the first brace-balanced {...} span of text, or None.

    Braces inside JSON string literals are ignored, so a value like
    "see {note}" does not close the object early.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape:
            escape = False
            continue
        if ch == "\\":
            if in_string:
                escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def preview(text: str, limit: int = PREVIEW_LIMIT) -> str:
    """Bound text to limit characters, marking the cut with '...'."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
