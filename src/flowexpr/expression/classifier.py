"""Expression classification and fast-path reference resolution.

Simple bodies (pure property access) are resolved without parsing. The
fast paths are also the fallback for complex bodies whose evaluation
failed or produced null/undefined.
"""

import re
from collections.abc import Callable, Mapping
from typing import Any

from flowexpr.types import ExpressionKind, ReferenceKind

from .context import ExpressionContext
from .paths import resolve_path
from .values import UNDEFINED

_COMPLEX_CHARS = frozenset("(+-*/?<>=!&|%{")
_COMPLEX_NAMES = ("Math.", "JSON.", "Object.", "Array.", "DateTime.", "$now", "$today")

# a.b[0].c / $json.x / $node["X"].json.y
_SIMPLE_PATH = re.compile(
    r"""^(?:\$node\[(?:"[^"]*"|'[^']*')\]|[A-Za-z_$][\w$]*)(?:\.[\w$]+|\[\d+\])*$"""
)

_NODE_REF = re.compile(r"""^\$node\[(["'])(?P<key>.*?)\1\](?P<rest>.*)$""", re.DOTALL)
_VARS_REF = re.compile(r"^\$vars\.(?P<path>.+)$")
_WORKFLOW_REF = re.compile(r"^\$workflow\.(?P<path>.+)$")
_EXECUTION_REF = re.compile(r"^\$execution\.(?P<path>.+)$")
_INDEXED_REF = re.compile(r"^\$?json\[(?P<index>\d+)\](?:\.(?P<path>.+))?$")
_ITEM_REF = re.compile(r"^\$?json(?:\.(?P<path>.+))?$")


def classify(body: str) -> ExpressionKind:
    """Decide whether a placeholder body needs the evaluator.

    Args:
        body: Trimmed placeholder body

    Returns:
        COMPLEX for operators, calls, helper namespaces and anything that
        is not plain property access; SIMPLE otherwise
    """
    if any(char in _COMPLEX_CHARS for char in body):
        return ExpressionKind.COMPLEX
    if any(name in body for name in _COMPLEX_NAMES):
        return ExpressionKind.COMPLEX
    if not _SIMPLE_PATH.match(body):
        return ExpressionKind.COMPLEX
    return ExpressionKind.SIMPLE


def _lookup(root: Any, path: str | None) -> Any:
    if not path:
        return UNDEFINED if root is None else root
    if isinstance(root, Mapping) and not isinstance(root, dict):
        root = dict(root)
    return resolve_path(root, path, default=UNDEFINED)


def _node_ref(body: str, context: ExpressionContext, item: Any) -> Any:
    match = _NODE_REF.match(body)
    if not match:
        return UNDEFINED
    data = context.node_output(match.group("key"))
    if data is UNDEFINED:
        return UNDEFINED

    rest = match.group("rest")
    # ".json" is optional: $node["X"].field reads through it
    if rest.startswith(".json") and (len(rest) == 5 or rest[5] in ".["):
        rest = rest[5:]
    if rest and rest[0] not in ".[":
        return UNDEFINED
    path = rest.lstrip(".")
    if not path:
        return data
    return resolve_path(data, path, default=UNDEFINED)


def _mapping_ref(pattern: re.Pattern[str], attribute: str) -> Callable[[str, ExpressionContext, Any], Any]:
    def resolve(body: str, context: ExpressionContext, item: Any) -> Any:
        match = pattern.match(body)
        if not match:
            return UNDEFINED
        return _lookup(getattr(context, attribute), match.group("path"))

    return resolve


def _indexed_ref(body: str, context: ExpressionContext, item: Any) -> Any:
    match = _INDEXED_REF.match(body)
    if not match or not isinstance(item, list):
        return UNDEFINED
    index = int(match.group("index"))
    if index >= len(item):
        return UNDEFINED
    return _lookup(item[index], match.group("path"))


def _item_ref(body: str, context: ExpressionContext, item: Any) -> Any:
    match = _ITEM_REF.match(body)
    if match:
        return _lookup(item, match.group("path"))
    if body.startswith("$") or not _SIMPLE_PATH.match(body):
        return UNDEFINED
    # Bare path into the current item: {{ user.address.city }}
    return _lookup(item, body)


_RESOLVERS: tuple[tuple[ReferenceKind, Callable[[str, ExpressionContext, Any], Any]], ...] = (
    (ReferenceKind.NODE, _node_ref),
    (ReferenceKind.VARIABLE, _mapping_ref(_VARS_REF, "variables")),
    (ReferenceKind.WORKFLOW, _mapping_ref(_WORKFLOW_REF, "workflow")),
    (ReferenceKind.EXECUTION, _mapping_ref(_EXECUTION_REF, "execution")),
    (ReferenceKind.INDEXED_ITEM, _indexed_ref),
    (ReferenceKind.ITEM_PATH, _item_ref),
)

_PATTERNS: tuple[tuple[ReferenceKind, re.Pattern[str]], ...] = (
    (ReferenceKind.NODE, _NODE_REF),
    (ReferenceKind.VARIABLE, _VARS_REF),
    (ReferenceKind.WORKFLOW, _WORKFLOW_REF),
    (ReferenceKind.EXECUTION, _EXECUTION_REF),
    (ReferenceKind.INDEXED_ITEM, _INDEXED_REF),
    (ReferenceKind.ITEM_PATH, _ITEM_REF),
)


def reference_kind(body: str) -> ReferenceKind | None:
    """Return which fast-path form a body has, if any."""
    for kind, pattern in _PATTERNS:
        if pattern.match(body):
            return kind
    if not body.startswith("$") and _SIMPLE_PATH.match(body):
        return ReferenceKind.ITEM_PATH
    return None


def resolve_reference(body: str, context: ExpressionContext, item: Any) -> Any:
    """Resolve a body through the fast paths, in priority order.

    Args:
        body: Trimmed placeholder body
        context: Execution context
        item: Current item (already defaulted to the context's $json)

    Returns:
        The referenced value, or UNDEFINED when no form matches or the
        target does not exist
    """
    for _kind, resolver in _RESOLVERS:
        value = resolver(body, context, item)
        if value is not UNDEFINED:
            return value
    return UNDEFINED
