"""AST node types for the expression language.

Nodes are immutable so parsed trees can be cached and shared between
threads.
"""

from dataclasses import dataclass
from typing import Any


class Node:
    """Base class for AST nodes."""


@dataclass(frozen=True)
class Literal(Node):
    value: Any


@dataclass(frozen=True)
class Identifier(Node):
    name: str


@dataclass(frozen=True)
class ArrayLiteral(Node):
    elements: tuple[Node, ...]


@dataclass(frozen=True)
class ObjectLiteral(Node):
    entries: tuple[tuple[str, Node], ...]


@dataclass(frozen=True)
class Member(Node):
    """``object.name`` / ``object[expr]`` / ``object?.name``."""

    object: Node
    property: Node  # Literal(name) unless computed
    computed: bool = False
    optional: bool = False


@dataclass(frozen=True)
class Call(Node):
    callee: Node
    arguments: tuple[Node, ...]
    optional: bool = False


@dataclass(frozen=True)
class New(Node):
    callee: Node
    arguments: tuple[Node, ...]


@dataclass(frozen=True)
class OptionalChain(Node):
    """Boundary of a chain containing ``?.``; short-circuits to undefined."""

    expression: Node


@dataclass(frozen=True)
class Unary(Node):
    operator: str  # "!", "-", "+", "typeof"
    operand: Node


@dataclass(frozen=True)
class Binary(Node):
    operator: str  # arithmetic, comparison, equality, "in"
    left: Node
    right: Node


@dataclass(frozen=True)
class Logical(Node):
    operator: str  # "&&", "||", "??"
    left: Node
    right: Node


@dataclass(frozen=True)
class Conditional(Node):
    test: Node
    consequent: Node
    alternate: Node


@dataclass(frozen=True)
class Arrow(Node):
    """Single-expression arrow function: ``x => x.id``."""

    params: tuple[str, ...]
    body: Node
