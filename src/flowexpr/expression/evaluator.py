"""Tree-walking evaluator for parsed expressions.

Only names present in the scope resolve; member access is routed through
``Builtins.get_member``. Every evaluation is bounded by the configured
step, call-depth and string-length limits.
"""

import math
from collections import ChainMap
from collections.abc import Mapping
from typing import Any

from flowexpr.config import LimitsConfig
from flowexpr.errors import ExpressionError, create_error, get_error_factory

from .builtins import Builtins, power
from .nodes import (
    Arrow,
    ArrayLiteral,
    Binary,
    Call,
    Conditional,
    Identifier,
    Literal,
    Logical,
    Member,
    New,
    Node,
    ObjectLiteral,
    OptionalChain,
    Unary,
)
from .parser import parse
from .values import (
    UNDEFINED,
    HostObject,
    JSFunction,
    JSNamespace,
    is_callable,
    is_nullish,
    js_number,
    loose_equals,
    strict_equals,
    to_number,
    to_property_key,
    to_string,
    truthy,
    type_of,
)


class _ShortCircuit(Exception):
    """Raised by ``?.`` on a nullish receiver; caught at the chain boundary."""


def _runtime_error(error_type: str, detail: str) -> ExpressionError:
    return create_error("EXPRESSION_RUNTIME", error_type=error_type, detail=detail)


def _describe(node: Node) -> str:
    """Short source-like rendering of a callee for error messages."""
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, Member) and not node.computed and isinstance(node.property, Literal):
        return f"{_describe(node.object)}.{node.property.value}"
    return "expression"


def _to_primitive(value: Any) -> Any:
    if isinstance(value, (dict, list, HostObject)):
        return to_string(value)
    return value


class ArrowFunction(JSFunction):
    """An arrow function closed over the scope it was created in."""

    def __init__(self, node: Arrow, scope: Mapping[str, Any], evaluation: "Evaluation"):
        super().__init__("anonymous", None)
        self.node = node
        self.scope = scope
        self.evaluation = evaluation

    def call(self, args: list[Any]) -> Any:
        return self.evaluation.call_arrow(self, args)

    def js_string(self) -> str:
        return f"({', '.join(self.node.params)}) => ..."


class Evaluation:
    """State of a single evaluation: step and depth counters."""

    def __init__(self, builtins: Builtins, limits: LimitsConfig):
        self.builtins = builtins
        self.limits = limits
        self.steps = 0
        self.depth = 0
        self._dispatch = {
            Literal: self._literal,
            Identifier: self._identifier,
            ArrayLiteral: self._array,
            ObjectLiteral: self._object,
            Member: self._member,
            Call: self._call,
            New: self._new,
            OptionalChain: self._optional_chain,
            Unary: self._unary,
            Binary: self._binary,
            Logical: self._logical,
            Conditional: self._conditional,
            Arrow: self._arrow,
        }

    def eval(self, node: Node, scope: Mapping[str, Any]) -> Any:
        self.steps += 1
        if self.steps > self.limits.max_steps:
            raise create_error(
                "EXPRESSION_LIMIT",
                limit="max_steps",
                detail=f"More than {self.limits.max_steps} evaluation steps",
            )
        return self._dispatch[type(node)](node, scope)

    # ── calls ─────────────────────────────────────────────────────

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > self.limits.max_call_depth:
            raise create_error(
                "EXPRESSION_LIMIT",
                limit="max_call_depth",
                detail=f"Call depth exceeds {self.limits.max_call_depth}",
            )

    def invoke(self, fn: Any, args: list[Any], name: str) -> Any:
        if not is_callable(fn):
            raise _runtime_error("TypeError", f"{name} is not a function")
        if isinstance(fn, ArrowFunction):
            return fn.call(args)

        self._enter()
        try:
            if isinstance(fn, JSFunction):
                result = fn.call(args)
            else:
                result = fn.call_impl(*args)
        finally:
            self.depth -= 1

        if isinstance(result, str):
            self.builtins.check_string(result)
        return result

    def call_arrow(self, fn: ArrowFunction, args: list[Any]) -> Any:
        params = fn.node.params
        bindings = {name: args[i] if i < len(args) else UNDEFINED for i, name in enumerate(params)}
        self._enter()
        try:
            return self.eval(fn.node.body, ChainMap(bindings, fn.scope))
        finally:
            self.depth -= 1

    # ── node handlers ─────────────────────────────────────────────

    def _literal(self, node: Literal, scope: Mapping[str, Any]) -> Any:
        return node.value

    def _identifier(self, node: Identifier, scope: Mapping[str, Any]) -> Any:
        if node.name in scope:
            return scope[node.name]
        raise create_error("EXPRESSION_REFERENCE", name=node.name)

    def _array(self, node: ArrayLiteral, scope: Mapping[str, Any]) -> list[Any]:
        return [self.eval(element, scope) for element in node.elements]

    def _object(self, node: ObjectLiteral, scope: Mapping[str, Any]) -> dict[str, Any]:
        return {key: self.eval(value, scope) for key, value in node.entries}

    def _member(self, node: Member, scope: Mapping[str, Any]) -> Any:
        target = self.eval(node.object, scope)
        key = self.eval(node.property, scope) if node.computed else node.property.value
        if is_nullish(target):
            if node.optional:
                raise _ShortCircuit()
            raise _runtime_error(
                "TypeError",
                f"Cannot read properties of {to_string(target)} (reading '{to_property_key(key)}')",
            )
        return self.builtins.get_member(target, key)

    def _call(self, node: Call, scope: Mapping[str, Any]) -> Any:
        fn = self.eval(node.callee, scope)
        if node.optional and is_nullish(fn):
            raise _ShortCircuit()
        args = [self.eval(argument, scope) for argument in node.arguments]
        return self.invoke(fn, args, _describe(node.callee))

    def _new(self, node: New, scope: Mapping[str, Any]) -> Any:
        constructor = self.eval(node.callee, scope)
        if not (isinstance(constructor, JSNamespace) and constructor.construct_impl):
            raise _runtime_error("TypeError", f"{_describe(node.callee)} is not a constructor")
        args = [self.eval(argument, scope) for argument in node.arguments]
        self._enter()
        try:
            return constructor.construct_impl(*args)
        finally:
            self.depth -= 1

    def _optional_chain(self, node: OptionalChain, scope: Mapping[str, Any]) -> Any:
        try:
            return self.eval(node.expression, scope)
        except _ShortCircuit:
            return UNDEFINED

    def _unary(self, node: Unary, scope: Mapping[str, Any]) -> Any:
        operator = node.operator
        if operator == "typeof":
            # typeof tolerates undeclared names
            if isinstance(node.operand, Identifier) and node.operand.name not in scope:
                return "undefined"
            return type_of(self.eval(node.operand, scope))

        operand = self.eval(node.operand, scope)
        if operator == "!":
            return not truthy(operand)
        number = to_number(operand)
        return js_number(-number) if operator == "-" else number

    def _logical(self, node: Logical, scope: Mapping[str, Any]) -> Any:
        left = self.eval(node.left, scope)
        if node.operator == "&&":
            return self.eval(node.right, scope) if truthy(left) else left
        if node.operator == "||":
            return left if truthy(left) else self.eval(node.right, scope)
        return self.eval(node.right, scope) if is_nullish(left) else left

    def _conditional(self, node: Conditional, scope: Mapping[str, Any]) -> Any:
        if truthy(self.eval(node.test, scope)):
            return self.eval(node.consequent, scope)
        return self.eval(node.alternate, scope)

    def _arrow(self, node: Arrow, scope: Mapping[str, Any]) -> ArrowFunction:
        return ArrowFunction(node, scope, self)

    def _binary(self, node: Binary, scope: Mapping[str, Any]) -> Any:
        left = self.eval(node.left, scope)
        right = self.eval(node.right, scope)
        operator = node.operator

        if operator == "+":
            return self._add(left, right)
        if operator in ("-", "*", "/", "%", "**"):
            return _arithmetic(operator, to_number(left), to_number(right))
        if operator in ("<", "<=", ">", ">="):
            return _compare(operator, _to_primitive(left), _to_primitive(right))
        if operator == "===":
            return strict_equals(left, right)
        if operator == "!==":
            return not strict_equals(left, right)
        if operator == "==":
            return loose_equals(left, right)
        if operator == "!=":
            return not loose_equals(left, right)
        if operator == "in":
            try:
                return self.builtins.has_property(left, right)
            except TypeError as e:
                raise _runtime_error("TypeError", str(e)) from e
        raise _runtime_error("SyntaxError", f"Unknown operator {operator}")

    def _add(self, left: Any, right: Any) -> Any:
        left, right = _to_primitive(left), _to_primitive(right)
        if isinstance(left, str) or isinstance(right, str):
            return self.builtins.check_string(to_string(left) + to_string(right))
        return _arithmetic("+", to_number(left), to_number(right))


def _arithmetic(operator: str, left: int | float, right: int | float) -> int | float:
    try:
        if operator == "+":
            return js_number(left + right)
        if operator == "-":
            return js_number(left - right)
        if operator == "*":
            return js_number(left * right)
        if operator == "/":
            return _divide(left, right)
        if operator == "%":
            return _remainder(left, right)
        return power(left, right)
    except OverflowError:
        return math.nan


def _divide(left: int | float, right: int | float) -> int | float:
    if right == 0:
        if left == 0 or (isinstance(left, float) and math.isnan(left)):
            return math.nan
        negative = (left < 0) != (math.copysign(1.0, right) < 0)
        return -math.inf if negative else math.inf
    return js_number(left / right)


def _remainder(left: int | float, right: int | float) -> int | float:
    if right == 0 or (isinstance(left, float) and (math.isnan(left) or math.isinf(left))):
        return math.nan
    if isinstance(right, float) and math.isnan(right):
        return math.nan
    if isinstance(left, int) and isinstance(right, int):
        result = abs(left) % abs(right)
        return -result if left < 0 else result
    return js_number(math.fmod(left, right))


def _compare(operator: str, left: Any, right: Any) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        a, b = to_number(left), to_number(right)
        if (isinstance(a, float) and math.isnan(a)) or (isinstance(b, float) and math.isnan(b)):
            return False
    if operator == "<":
        return a < b
    if operator == "<=":
        return a <= b
    if operator == ">":
        return a > b
    return a >= b


class Evaluator:
    """Parses and evaluates expression bodies against a scope."""

    def __init__(self, builtins: Builtins, limits: LimitsConfig):
        self.builtins = builtins
        self.limits = limits

    def check_length(self, source: str) -> None:
        if len(source) > self.limits.max_expression_length:
            raise create_error(
                "EXPRESSION_LIMIT",
                limit="max_expression_length",
                detail=f"Expression of length {len(source)} exceeds {self.limits.max_expression_length}",
                expression=source[:200],
            )

    def compile(self, source: str) -> Node:
        """Parse an expression body, enforcing the length limit.

        Raises:
            ExpressionError: EXPRESSION_SYNTAX or EXPRESSION_LIMIT
        """
        self.check_length(source)
        try:
            return parse(source)
        except ExpressionError:
            raise
        except Exception as e:
            raise get_error_factory().from_exception(e, expression=source) from e

    def evaluate(self, source: str, scope: Mapping[str, Any]) -> Any:
        """Evaluate an expression body.

        Args:
            source: Expression body (without ``{{ }}``)
            scope: Names visible to the expression

        Returns:
            The raw value (may be UNDEFINED)

        Raises:
            ExpressionError: On syntax, reference, runtime or limit errors
        """
        node = self.compile(source)
        try:
            return Evaluation(self.builtins, self.limits).eval(node, scope)
        except ExpressionError as e:
            raise e.with_context(expression=source) from e
        except Exception as e:
            raise get_error_factory().from_exception(e, expression=source) from e
