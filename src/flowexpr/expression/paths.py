"""Property path resolution over JSON-like values."""

import re
from typing import Any

# items[0].name -> items.0.name
_INDEX_PATTERN = re.compile(r"\[(\d+)\]")


def normalize_path(path: str) -> list[str]:
    """Split a dotted/bracketed path into segments.

    E.g., "items[0].name" → ["items", "0", "name"]

    Args:
        path: Path string

    Returns:
        List of segments (empty for an empty path)
    """
    normalized = _INDEX_PATTERN.sub(r".\1", path.strip())
    return [segment for segment in normalized.split(".") if segment != ""]


def resolve_path(root: Any, path: str, default: Any = None) -> Any:
    """Resolve a field path in an object, supporting nested paths.

    Traversal stops with ``default`` as soon as an intermediate value is
    missing, None, or not a container. Never raises.

    Example:
        >>> obj = {"user": {"address": {"city": "NYC"}}}
        >>> resolve_path(obj, "user.address.city")
        'NYC'
        >>> resolve_path(obj, "user.name") is None
        True

    Args:
        root: Value to extract data from
        path: Path to the field (e.g., "user.address.city" or "items[0].id")
        default: Returned when the path does not resolve

    Returns:
        The value at the path, or ``default`` if not found
    """
    if not isinstance(root, (dict, list)):
        return default

    current = root
    for segment in normalize_path(path):
        if isinstance(current, dict):
            if segment not in current:
                return default
            current = current[segment]
        elif isinstance(current, list):
            if not segment.isdigit():
                return default
            index = int(segment)
            if index >= len(current):
                return default
            current = current[index]
        else:
            return default

    return current
