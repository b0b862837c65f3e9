"""JavaScript value semantics over plain Python values.

Expressions operate on JSON-like Python data (dict, list, str, int, float,
bool, None) plus a few host objects. This module holds the coercion rules
shared by the evaluator, the built-ins and the formatter: truthiness,
ToNumber, ToString, equality and JSON.stringify.
"""

import json
import math
import re
from decimal import Decimal
from typing import Any


class _Undefined:
    """JavaScript ``undefined``. Also marks "nothing resolved"."""

    _instance: "_Undefined | None" = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED: Any = _Undefined()

_NUMBER_LITERAL = re.compile(r"^[+-]?(\d+\.?\d*([eE][+-]?\d+)?|\.\d+([eE][+-]?\d+)?)$")
_HEX_LITERAL = re.compile(r"^0[xX][0-9a-fA-F]+$")


class HostObject:
    """Base for objects the evaluator exposes by whitelist only.

    Member access never falls back to Python attributes: whatever
    ``js_get`` does not return is ``undefined``.
    """

    type_name = "object"

    def js_get(self, key: str) -> Any:
        return UNDEFINED

    def js_string(self) -> str:
        return "[object Object]"

    def to_json(self) -> Any:
        return {}


class JSFunction(HostObject):
    """A callable exposed to expressions."""

    type_name = "function"

    def __init__(self, name: str, impl: Any):
        self.name = name
        self._impl = impl

    def call(self, args: list[Any]) -> Any:
        return self._impl(*args)

    def js_string(self) -> str:
        return f"function {self.name}() {{ [native code] }}"

    def to_json(self) -> Any:
        return UNDEFINED


class JSNamespace(HostObject):
    """A global such as ``Math`` or ``Number``: a bag of members.

    Namespaces that are also functions (``String(x)``) or constructors
    (``new Date()``) carry ``call_impl`` / ``construct_impl``.
    """

    def __init__(
        self,
        name: str,
        members: dict[str, Any],
        call_impl: Any = None,
        construct_impl: Any = None,
    ):
        self.name = name
        self.members = members
        self.call_impl = call_impl
        self.construct_impl = construct_impl

    @property
    def type_name(self) -> str:  # type: ignore[override]
        return "function" if self.call_impl or self.construct_impl else "object"

    def js_get(self, key: str) -> Any:
        return self.members.get(key, UNDEFINED)

    def js_string(self) -> str:
        if self.call_impl or self.construct_impl:
            return f"function {self.name}() {{ [native code] }}"
        return f"[object {self.name}]"

    def to_json(self) -> Any:
        return UNDEFINED if self.call_impl else {}


def is_nullish(value: Any) -> bool:
    return value is None or value is UNDEFINED


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_callable(value: Any) -> bool:
    if isinstance(value, JSFunction):
        return True
    return isinstance(value, JSNamespace) and value.call_impl is not None


def truthy(value: Any) -> bool:
    """JavaScript ToBoolean."""
    if is_nullish(value):
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return value != ""
    # Objects, arrays and host objects are always truthy
    return True


def to_number(value: Any) -> int | float:
    """JavaScript ToNumber."""
    if value is None:
        return 0
    if value is UNDEFINED:
        return math.nan
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        if _HEX_LITERAL.match(text):
            return int(text, 16)
        if _NUMBER_LITERAL.match(text):
            number = float(text)
            return int(number) if number.is_integer() and abs(number) < 2**53 else number
        return math.nan
    if isinstance(value, list):
        return to_number(to_string(value))
    if isinstance(value, HostObject) and hasattr(value, "to_millis"):
        return value.to_millis()
    return math.nan


def js_number(value: int | float) -> int | float:
    """Collapse integral floats to int so ``4 / 2`` serializes as ``2``."""
    if isinstance(value, float) and value.is_integer() and abs(value) < 2**53:
        if value == 0 and math.copysign(1.0, value) < 0:
            return value
        return int(value)
    return value


def to_integer(value: Any) -> int:
    """ToIntegerOrInfinity, clamped to Python ints (NaN -> 0)."""
    number = to_number(value)
    if isinstance(number, float):
        if math.isnan(number):
            return 0
        if math.isinf(number):
            return 2**53 if number > 0 else -(2**53)
        return int(number)
    return number


def number_to_string(value: int | float) -> str:
    """JavaScript Number::toString for radix 10."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))

    text = repr(value)
    if "e" not in text:
        return text
    mantissa, exponent_text = text.split("e")
    exponent = int(exponent_text)
    if -7 < exponent < 21:
        return format(Decimal(text), "f")
    if mantissa.endswith(".0"):
        mantissa = mantissa[:-2]
    sign = "+" if exponent > 0 else "-"
    return f"{mantissa}e{sign}{abs(exponent)}"


def to_string(value: Any) -> str:
    """JavaScript ToString."""
    if value is None:
        return "null"
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return number_to_string(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ",".join("" if is_nullish(item) else to_string(item) for item in value)
    if isinstance(value, dict):
        return "[object Object]"
    if isinstance(value, HostObject):
        return value.js_string()
    return str(value)


def to_property_key(value: Any) -> str:
    if isinstance(value, str):
        return value
    return to_string(value)


def as_index(key: Any) -> int | None:
    """Return a non-negative integer index for ``key``, or None."""
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key if key >= 0 else None
    if isinstance(key, float):
        return int(key) if key.is_integer() and key >= 0 else None
    if isinstance(key, str) and key.isdigit() and (key == "0" or not key.startswith("0")):
        return int(key)
    return None


def type_of(value: Any) -> str:
    """JavaScript ``typeof``."""
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "object"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, HostObject):
        return value.type_name
    return "object"


def strict_equals(left: Any, right: Any) -> bool:
    """JavaScript ``===``."""
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, bool) and isinstance(right, bool):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if left is None or left is UNDEFINED:
        return left is right
    return left is right


def loose_equals(left: Any, right: Any) -> bool:
    """JavaScript ``==`` (abstract equality)."""
    if is_nullish(left) and is_nullish(right):
        return True
    if is_nullish(left) or is_nullish(right):
        return False
    if type_of(left) == type_of(right) and not isinstance(left, (dict, list, HostObject)):
        return strict_equals(left, right)
    if isinstance(left, bool):
        return loose_equals(int(left), right)
    if isinstance(right, bool):
        return loose_equals(left, int(right))
    if is_number(left) and isinstance(right, str):
        return left == to_number(right)
    if isinstance(left, str) and is_number(right):
        return to_number(left) == right
    if isinstance(left, (dict, list, HostObject)) and not isinstance(right, (dict, list, HostObject)):
        return loose_equals(to_string(left), right)
    if isinstance(right, (dict, list, HostObject)) and not isinstance(left, (dict, list, HostObject)):
        return loose_equals(left, to_string(right))
    return left is right


def to_json_compatible(value: Any, _ancestors: frozenset[int] = frozenset()) -> Any:
    """Map a value onto what JSON.stringify would serialize.

    Returns UNDEFINED for values JSON.stringify omits (undefined,
    functions). Integral floats become ints, NaN and Infinity become null.

    Raises:
        TypeError: ``value`` contains itself
    """
    if value is UNDEFINED:
        return UNDEFINED
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        if value.is_integer() and abs(value) < 1e21:
            return int(value)
        return value
    if isinstance(value, (dict, list, tuple)):
        if id(value) in _ancestors:
            raise TypeError("Converting circular structure to JSON")
        ancestors = _ancestors | {id(value)}
        if isinstance(value, dict):
            result = {}
            for key, item in value.items():
                converted = to_json_compatible(item, ancestors)
                if converted is not UNDEFINED:
                    result[to_property_key(key)] = converted
            return result
        items = (to_json_compatible(item, ancestors) for item in value)
        return [None if item is UNDEFINED else item for item in items]
    if isinstance(value, HostObject):
        return to_json_compatible(value.to_json(), _ancestors)
    return str(value)


def json_stringify(value: Any, indent: Any = None) -> Any:
    """JavaScript ``JSON.stringify(value, null, indent)``.

    Returns UNDEFINED when the top-level value is not serializable.
    """
    data = to_json_compatible(value)
    if data is UNDEFINED:
        return UNDEFINED

    if is_number(indent) and indent > 0:
        spacing: int | str | None = min(int(indent), 10)
    elif isinstance(indent, str) and indent:
        spacing = indent[:10]
    else:
        spacing = None

    if spacing is None:
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return json.dumps(data, indent=spacing, ensure_ascii=False)
