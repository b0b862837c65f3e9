"""Placeholder scanning.

A single left-to-right pass that tracks brace depth and string literals,
so bodies such as ``$json.x || {}`` or ``ok ? {a: 1} : {b: "}}"}`` are
captured whole instead of being cut at the first ``}``.
"""

from typing import Any

from .types import Placeholder

OPEN = "{{"
CLOSE = "}}"
_QUOTES = "'\"`"


def _find_close(text: str, body_start: int) -> int | None:
    """Return the index just past the closing ``}}``, or None if unbalanced."""
    depth = 0
    quote: str | None = None
    i = body_start
    length = len(text)

    while i < length:
        char = text[i]
        if quote:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in _QUOTES:
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                if text.startswith(CLOSE, i):
                    return i + 2
                # Lone "}" at depth 0 cannot close "{{"
                return None
            depth -= 1
        i += 1

    return None


def scan_placeholders(text: str) -> list[Placeholder]:
    """Find all balanced ``{{ ... }}`` regions in text.

    An opening ``{{`` without a balanced close is left as literal text and
    scanning continues after it.

    Args:
        text: Text to search

    Returns:
        Ordered, non-overlapping placeholders
    """
    placeholders: list[Placeholder] = []
    position = 0

    while True:
        start = text.find(OPEN, position)
        if start == -1:
            break

        end = _find_close(text, start + len(OPEN))
        if end is None:
            position = start + 1
            continue

        span = text[start:end]
        placeholders.append(
            Placeholder(start=start, end=end, text=span, body=span[2:-2].strip())
        )
        position = end

    return placeholders


def has_placeholders(text: str) -> bool:
    """Check if text contains at least one balanced placeholder."""
    return OPEN in text and bool(scan_placeholders(text))


def is_pure_placeholder(text: str) -> bool:
    """Check if text is entirely a single placeholder.

    E.g., "{{ $json.count }}" is pure, "Count: {{ $json.count }}" is not.
    """
    stripped = text.strip()
    placeholders = scan_placeholders(stripped)
    return len(placeholders) == 1 and placeholders[0].text == stripped


def extract_bodies(value: Any) -> list[str]:
    """Extract every placeholder body from a value (recursively).

    Args:
        value: Value to extract from (str, dict, list, or primitive)

    Returns:
        List of bodies, e.g. ["$json.url", "$node[\"Fetch\"].json.id"]
    """
    bodies: list[str] = []

    if isinstance(value, str):
        bodies.extend(p.body for p in scan_placeholders(value))
    elif isinstance(value, dict):
        for item in value.values():
            bodies.extend(extract_bodies(item))
    elif isinstance(value, list):
        for item in value:
            bodies.extend(extract_bodies(item))

    return bodies
