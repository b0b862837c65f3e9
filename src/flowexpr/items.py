"""Helpers for the ``{"json": ...}`` item envelope used by the runtime."""

from collections.abc import Mapping
from typing import Any

from flowexpr.expression import ExpressionContext, ExpressionEngine, get_default_engine
from flowexpr.expression.values import truthy


def extract_json_data(items: list[Any]) -> list[Any]:
    """Unwrap items that may be wrapped in ``{"json": {...}}``.

    Example:
        >>> extract_json_data([{"json": {"id": 1}}, {"id": 2}])
        [{'id': 1}, {'id': 2}]
    """
    return [item["json"] if isinstance(item, Mapping) and "json" in item else item for item in items]


def wrap_json_data(items: list[Any]) -> list[dict[str, Any]]:
    """Wrap data items in the ``{"json": {...}}`` envelope.

    Example:
        >>> wrap_json_data([{"id": 1}])
        [{'json': {'id': 1}}]
    """
    return [{"json": item} for item in items]


def normalize_input_items(items: Any) -> list[Any]:
    """Unwrap an extra list layer: ``[[{"json": ...}]]`` -> ``[{"json": ...}]``.

    Anything that is not a list yields an empty list.
    """
    if not isinstance(items, list):
        return []
    if len(items) == 1 and isinstance(items[0], list):
        return items[0]
    return items


def get_node_parameter(
    parameters: Mapping[str, Any],
    name: str,
    input_items: Any,
    item_index: int = 0,
    context: ExpressionContext | Mapping[str, Any] | None = None,
    engine: ExpressionEngine | None = None,
) -> Any:
    """Read a node parameter, resolving placeholders against an input item.

    Placeholders are only resolved when the value is a string containing
    ``{{`` and the selected input item exists; otherwise the raw value is
    returned.

    Args:
        parameters: The node's configured parameters
        name: Parameter name
        input_items: Input batch (wrapped or not, possibly nested once)
        item_index: Which input item to resolve against
        context: Optional execution context
        engine: Engine to use (defaults to the shared engine)

    Returns:
        The resolved parameter value (None if the parameter is not set)
    """
    value = parameters.get(name)
    if not isinstance(value, str) or "{{" not in value:
        return value

    items = extract_json_data(normalize_input_items(input_items))
    if not 0 <= item_index < len(items):
        return value
    item = items[item_index]
    # Empty objects and arrays still count as an item
    if not truthy(item):
        return value

    return (engine or get_default_engine()).resolve_value(value, item, context)
