"""Whitelisted globals and member tables for expressions.

Every name an expression can reach lives here: the global namespaces
(``Math``, ``JSON``, ``Object`` ...) and the methods of strings, arrays,
numbers and plain objects. Member access goes through ``get_member``
only; Python attributes are never looked up.
"""

import functools
import json
import math
import random
import re
from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from urllib.parse import quote

from flowexpr.config import LimitsConfig
from flowexpr.errors import create_error

from .dates import Clock, DateTimeValue, date_value, from_components, from_millis, parse_iso
from .values import (
    UNDEFINED,
    HostObject,
    JSFunction,
    JSNamespace,
    as_index,
    is_callable,
    is_nullish,
    is_number,
    js_number,
    json_stringify,
    number_to_string,
    strict_equals,
    to_integer,
    to_number,
    to_property_key,
    to_string,
    truthy,
)

_URI_COMPONENT_SAFE = "-_.!~*'()"
_URI_SAFE = _URI_COMPONENT_SAFE + ";,/?:@&=+$#"
_URI_RESERVED = ";/?:@&=+$,#"

_BAD_PERCENT = re.compile(r"%(?![0-9A-Fa-f]{2})")
_PERCENT_RUN = re.compile(r"(?:%[0-9A-Fa-f]{2})+")
_FLOAT_PREFIX = re.compile(r"^[+-]?(Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)")
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _arg(args: tuple[Any, ...], index: int) -> Any:
    return args[index] if index < len(args) else UNDEFINED


def _call(fn: Any, *args: Any) -> Any:
    if not is_callable(fn):
        raise TypeError(f"{to_string(fn)} is not a function")
    if isinstance(fn, JSFunction):
        return fn.call(list(args))
    return fn.call_impl(*args)


def _relative(index: Any, length: int, default: int) -> int:
    """Resolve a slice bound the way Array.prototype.slice does."""
    if index is UNDEFINED:
        return default
    position = to_integer(index)
    if position < 0:
        return max(length + position, 0)
    return min(position, length)


def _same_value_zero(left: Any, right: Any) -> bool:
    if is_number(left) and is_number(right) and math.isnan(left) and math.isnan(right):
        return True
    return strict_equals(left, right)


# ── URI helpers ───────────────────────────────────────────────────


def _decode(text: str, reserved: str) -> str:
    if _BAD_PERCENT.search(text):
        raise ValueError("URI malformed")

    def replace(match: re.Match[str]) -> str:
        run = match.group(0)
        decoded = bytes.fromhex(run.replace("%", "")).decode("utf-8")
        if not reserved:
            return decoded
        parts: list[str] = []
        offset = 0
        for char in decoded:
            width = len(char.encode("utf-8"))
            parts.append(run[offset * 3 : (offset + width) * 3] if char in reserved else char)
            offset += width
        return "".join(parts)

    return _PERCENT_RUN.sub(replace, text)


def decode_uri_component(text: str) -> str:
    """Strict ``decodeURIComponent``.

    Raises:
        ValueError: On a malformed escape or invalid UTF-8 sequence
    """
    return _decode(text, "")


def decode_uri(text: str) -> str:
    return _decode(text, _URI_RESERVED)


def encode_uri_component(value: Any) -> str:
    return quote(to_string(value), safe=_URI_COMPONENT_SAFE)


def encode_uri(value: Any) -> str:
    return quote(to_string(value), safe=_URI_SAFE)


# ── number parsing ────────────────────────────────────────────────


def parse_int(value: Any = UNDEFINED, radix: Any = UNDEFINED) -> int | float:
    text = to_string(value).strip()
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    base = to_integer(radix) if radix is not UNDEFINED else 0
    if base == 0:
        base = 10
        if text[:2].lower() == "0x":
            base = 16
            text = text[2:]
    elif base == 16 and text[:2].lower() == "0x":
        text = text[2:]
    if not 2 <= base <= 36:
        return math.nan

    valid = _DIGITS[:base]
    end = 0
    while end < len(text) and text[end].lower() in valid:
        end += 1
    if end == 0:
        return math.nan
    return sign * int(text[:end], base)


def parse_float(value: Any = UNDEFINED) -> int | float:
    match = _FLOAT_PREFIX.match(to_string(value).strip())
    if not match:
        return math.nan
    text = match.group(0)
    if text.lstrip("+-") == "Infinity":
        return -math.inf if text.startswith("-") else math.inf
    return js_number(float(text))


def _is_nan(value: Any = UNDEFINED) -> bool:
    number = to_number(value)
    return isinstance(number, float) and math.isnan(number)


def _is_finite(value: Any = UNDEFINED) -> bool:
    number = to_number(value)
    return not (isinstance(number, float) and (math.isnan(number) or math.isinf(number)))


def to_fixed(value: int | float, digits: Any = UNDEFINED) -> str:
    places = to_integer(digits) if digits is not UNDEFINED else 0
    if not 0 <= places <= 100:
        raise ValueError("toFixed() digits argument must be between 0 and 100")
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return number_to_string(value)
    if abs(value) >= 1e21:
        return number_to_string(value)
    quantum = Decimal(1).scaleb(-places)
    rounded = abs(Decimal(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    text = f"{rounded:f}"
    return f"-{text}" if value < 0 and rounded != 0 else text


def _to_precision(value: int | float, precision: Any = UNDEFINED) -> str:
    if precision is UNDEFINED:
        return number_to_string(value)
    digits = to_integer(precision)
    if not 1 <= digits <= 100:
        raise ValueError("toPrecision() argument must be between 1 and 100")
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return number_to_string(value)
    if value == 0:
        return "0" if digits == 1 else "0." + "0" * (digits - 1)
    exponent = math.floor(math.log10(abs(value)))
    if exponent < -6 or exponent >= digits:
        mantissa, exp = f"{value:.{digits - 1}e}".split("e")
        return f"{mantissa}e{'+' if int(exp) >= 0 else '-'}{abs(int(exp))}"
    return to_fixed(value, digits - 1 - exponent)


def _number_to_radix(value: int | float, radix: Any = UNDEFINED) -> str:
    base = to_integer(radix) if radix is not UNDEFINED else 10
    if not 2 <= base <= 36:
        raise ValueError("toString() radix must be between 2 and 36")
    if base == 10 or not (isinstance(value, int) or value.is_integer()):
        return number_to_string(value)
    number = int(value)
    if number == 0:
        return "0"
    digits = []
    remaining = abs(number)
    while remaining:
        remaining, digit = divmod(remaining, base)
        digits.append(_DIGITS[digit])
    return ("-" if number < 0 else "") + "".join(reversed(digits))


# ── Math ──────────────────────────────────────────────────────────


def _math_fn(fn: Callable[..., float], arity: int | None = 1) -> Callable[..., Any]:
    @functools.wraps(fn)
    def wrapper(*args: Any) -> Any:
        numbers = [to_number(arg) for arg in args]
        if arity is not None:
            # Extra arguments are ignored, missing ones are NaN
            numbers = (numbers + [math.nan] * arity)[:arity]
        try:
            return js_number(fn(*numbers))
        except (ValueError, OverflowError):
            return math.nan

    return wrapper


def _round(x: float = math.nan) -> Any:
    if isinstance(x, float) and (math.isnan(x) or math.isinf(x)):
        return x
    return math.floor(x + 0.5)


def _trunc(x: float = math.nan) -> Any:
    if isinstance(x, float) and (math.isnan(x) or math.isinf(x)):
        return x
    return math.trunc(x)


def _floor(x: float = math.nan) -> Any:
    if isinstance(x, float) and (math.isnan(x) or math.isinf(x)):
        return x
    return math.floor(x)


def _ceil(x: float = math.nan) -> Any:
    if isinstance(x, float) and (math.isnan(x) or math.isinf(x)):
        return x
    return math.ceil(x)


def _sign(x: float = math.nan) -> Any:
    if isinstance(x, float) and math.isnan(x):
        return x
    return (x > 0) - (x < 0)


def _extreme(pick: Callable[..., float], empty: float) -> Callable[..., Any]:
    def extreme(*args: Any) -> Any:
        numbers = [to_number(arg) for arg in args]
        if not numbers:
            return empty
        if any(isinstance(n, float) and math.isnan(n) for n in numbers):
            return math.nan
        return pick(numbers)

    return extreme


def _pow(base: float = math.nan, exponent: float = math.nan) -> Any:
    return power(base, exponent)


def power(base: Any, exponent: Any) -> int | float:
    """JavaScript ``**`` / ``Math.pow``."""
    if isinstance(exponent, float) and math.isnan(exponent):
        return math.nan
    if exponent == 0:
        return 1
    if isinstance(base, float) and math.isnan(base):
        return math.nan
    if isinstance(base, int) and isinstance(exponent, int) and exponent > 1100 and abs(base) > 1:
        base = float(base)
    try:
        result = base**exponent
    except ZeroDivisionError:
        return math.inf
    except OverflowError:
        return math.inf if base > 0 or exponent % 2 == 0 else -math.inf
    if isinstance(result, complex):
        return math.nan
    if isinstance(result, int) and result.bit_length() > 1024:
        return math.inf if result > 0 else -math.inf
    return js_number(result)


def _sqrt(x: float = math.nan) -> float:
    return math.sqrt(x)


def _cbrt(x: float = math.nan) -> float:
    return math.copysign(abs(x) ** (1 / 3), x)


def _log(x: float = math.nan) -> float:
    if x == 0:
        return -math.inf
    return math.log(x)


def _log2(x: float = math.nan) -> float:
    if x == 0:
        return -math.inf
    return math.log2(x)


def _log10(x: float = math.nan) -> float:
    if x == 0:
        return -math.inf
    return math.log10(x)


def _hypot(*args: float) -> float:
    return math.hypot(*args)


def _math_namespace() -> JSNamespace:
    functions: dict[str, Callable[..., Any]] = {
        "abs": abs,
        "floor": _floor,
        "ceil": _ceil,
        "round": _round,
        "trunc": _trunc,
        "sign": _sign,
        "sqrt": _sqrt,
        "cbrt": _cbrt,
        "pow": _pow,
        "exp": math.exp,
        "log": _log,
        "log2": _log2,
        "log10": _log10,
        "sin": math.sin,
        "cos": math.cos,
        "tan": math.tan,
        "asin": math.asin,
        "acos": math.acos,
        "atan": math.atan,
        "atan2": math.atan2,
        "hypot": _hypot,
    }
    arities = {"pow": 2, "atan2": 2, "hypot": None}
    members: dict[str, Any] = {
        name: JSFunction(name, _math_fn(fn, arities.get(name, 1))) for name, fn in functions.items()
    }
    members["max"] = JSFunction("max", _extreme(max, -math.inf))
    members["min"] = JSFunction("min", _extreme(min, math.inf))
    members["random"] = JSFunction("random", random.random)
    members.update(
        PI=math.pi,
        E=math.e,
        LN2=math.log(2),
        LN10=math.log(10),
        LOG2E=math.log2(math.e),
        LOG10E=math.log10(math.e),
        SQRT2=math.sqrt(2),
        SQRT1_2=math.sqrt(0.5),
    )
    return JSNamespace("Math", members)


# ── JSON ──────────────────────────────────────────────────────────


def _reject_constant(name: str) -> Any:
    raise ValueError(f"JSON.parse: unexpected token {name}")


def json_parse(text: Any = UNDEFINED) -> Any:
    return json.loads(
        to_string(text),
        parse_float=lambda raw: js_number(float(raw)),
        parse_constant=_reject_constant,
    )


# ── Object ────────────────────────────────────────────────────────


def _own_entries(value: Any) -> list[tuple[str, Any]]:
    if isinstance(value, dict):
        return [(to_property_key(key), item) for key, item in value.items()]
    if isinstance(value, list):
        return [(str(index), item) for index, item in enumerate(value)]
    if isinstance(value, str):
        return [(str(index), char) for index, char in enumerate(value)]
    if is_nullish(value):
        raise TypeError("Cannot convert undefined or null to object")
    return []


def _object_assign(target: Any = UNDEFINED, *sources: Any) -> dict[str, Any]:
    result = dict(_own_entries(target))
    for source in sources:
        if not is_nullish(source):
            result.update(_own_entries(source))
    return result


def _object_from_entries(entries: Any = UNDEFINED) -> dict[str, Any]:
    if not isinstance(entries, list):
        raise TypeError("Object.fromEntries requires an array of [key, value] pairs")
    result: dict[str, Any] = {}
    for entry in entries:
        if not isinstance(entry, list):
            raise TypeError("Iterator value is not an entry object")
        result[to_property_key(_arg(tuple(entry), 0))] = _arg(tuple(entry), 1)
    return result


def _object_namespace() -> JSNamespace:
    return JSNamespace(
        "Object",
        {
            "keys": JSFunction("keys", lambda value=UNDEFINED: [k for k, _ in _own_entries(value)]),
            "values": JSFunction("values", lambda value=UNDEFINED: [v for _, v in _own_entries(value)]),
            "entries": JSFunction(
                "entries", lambda value=UNDEFINED: [[k, v] for k, v in _own_entries(value)]
            ),
            "assign": JSFunction("assign", _object_assign),
            "fromEntries": JSFunction("fromEntries", _object_from_entries),
            "freeze": JSFunction("freeze", lambda value=UNDEFINED: value),
        },
    )


class Builtins:
    """Global namespaces and member lookup for one engine configuration.

    Holds no per-evaluation state, so one instance serves concurrent
    evaluations.
    """

    def __init__(self, limits: LimitsConfig, clock: Clock):
        self.limits = limits
        self.clock = clock
        self.globals = self._build_globals()

    # ── guards ────────────────────────────────────────────────────

    def check_string(self, value: str) -> str:
        if len(value) > self.limits.max_string_length:
            raise create_error(
                "EXPRESSION_LIMIT",
                limit="max_string_length",
                detail=f"String of length {len(value)} exceeds {self.limits.max_string_length}",
            )
        return value

    def _check_length(self, length: int) -> None:
        if length > self.limits.max_string_length:
            raise create_error(
                "EXPRESSION_LIMIT",
                limit="max_string_length",
                detail=f"Result of length {length} exceeds {self.limits.max_string_length}",
            )

    # ── globals ───────────────────────────────────────────────────

    def _build_globals(self) -> dict[str, Any]:
        clock = self.clock

        def array_constructor(*args: Any) -> list[Any]:
            if len(args) == 1 and is_number(args[0]):
                length = args[0]
                if not isinstance(length, int) or length < 0:
                    raise ValueError("Invalid array length")
                self._check_length(length)
                return [UNDEFINED] * length
            return list(args)

        def array_from(source: Any = UNDEFINED, map_fn: Any = UNDEFINED) -> list[Any]:
            if isinstance(source, list):
                items = list(source)
            elif isinstance(source, str):
                items = list(source)
            elif isinstance(source, dict) and "length" in source:
                length = to_integer(source["length"])
                self._check_length(length)
                items = [source.get(str(i), UNDEFINED) for i in range(max(length, 0))]
            else:
                items = []
            if map_fn is UNDEFINED:
                return items
            return [_call(map_fn, item, index) for index, item in enumerate(items)]

        def construct_date(*args: Any) -> DateTimeValue:
            if len(args) <= 1:
                return date_value(_arg(args, 0), clock)
            return DateTimeValue(from_components(list(args)))

        def date_parse(text: Any = UNDEFINED) -> int | float:
            return DateTimeValue(parse_iso(to_string(text))).to_millis()

        def date_utc(*args: Any) -> int | float:
            return DateTimeValue(from_components(list(args))).to_millis()

        date_now = JSFunction("now", lambda: DateTimeValue(clock()).to_millis())

        string_namespace = JSNamespace(
            "String",
            {
                "fromCharCode": JSFunction(
                    "fromCharCode",
                    lambda *codes: "".join(chr(to_integer(code) % 0x10000) for code in codes),
                )
            },
            call_impl=lambda value="", *_: to_string(value),
        )
        number_namespace = JSNamespace(
            "Number",
            {
                "isInteger": JSFunction(
                    "isInteger",
                    lambda value=UNDEFINED: is_number(value)
                    and not math.isinf(value)
                    and float(value).is_integer(),
                ),
                "isSafeInteger": JSFunction(
                    "isSafeInteger",
                    lambda value=UNDEFINED: is_number(value)
                    and not math.isinf(value)
                    and float(value).is_integer()
                    and abs(value) <= 2**53 - 1,
                ),
                "isFinite": JSFunction("isFinite", lambda value=UNDEFINED: is_number(value) and _is_finite(value)),
                "isNaN": JSFunction("isNaN", lambda value=UNDEFINED: is_number(value) and _is_nan(value)),
                "parseFloat": JSFunction("parseFloat", parse_float),
                "parseInt": JSFunction("parseInt", parse_int),
                "MAX_SAFE_INTEGER": 2**53 - 1,
                "MIN_SAFE_INTEGER": -(2**53 - 1),
                "EPSILON": 2.0**-52,
                "MAX_VALUE": 1.7976931348623157e308,
                "MIN_VALUE": 5e-324,
                "POSITIVE_INFINITY": math.inf,
                "NEGATIVE_INFINITY": -math.inf,
                "NaN": math.nan,
            },
            call_impl=lambda value=0, *_: to_number(value),
        )

        return {
            "Math": _math_namespace(),
            "JSON": JSNamespace(
                "JSON",
                {
                    "stringify": JSFunction(
                        "stringify",
                        lambda value=UNDEFINED, replacer=UNDEFINED, indent=UNDEFINED: json_stringify(
                            value, indent
                        ),
                    ),
                    "parse": JSFunction("parse", json_parse),
                },
            ),
            "Object": _object_namespace(),
            "Array": JSNamespace(
                "Array",
                {
                    "isArray": JSFunction("isArray", lambda value=UNDEFINED: isinstance(value, list)),
                    "of": JSFunction("of", lambda *items: list(items)),
                    "from": JSFunction("from", array_from),
                },
                call_impl=array_constructor,
                construct_impl=array_constructor,
            ),
            "String": string_namespace,
            "Number": number_namespace,
            "Boolean": JSNamespace("Boolean", {}, call_impl=lambda value=UNDEFINED, *_: truthy(value)),
            "Date": JSNamespace(
                "Date",
                {
                    "now": date_now,
                    "parse": JSFunction("parse", date_parse),
                    "UTC": JSFunction("UTC", date_utc),
                },
                call_impl=lambda *args: construct_date().js_string(),
                construct_impl=construct_date,
            ),
            "DateTime": JSNamespace(
                "DateTime",
                {
                    "now": JSFunction("now", lambda: DateTimeValue(clock())),
                    "fromISO": JSFunction(
                        "fromISO", lambda text=UNDEFINED: DateTimeValue(parse_iso(to_string(text)))
                    ),
                    "fromMillis": JSFunction(
                        "fromMillis", lambda millis=UNDEFINED: DateTimeValue(from_millis(millis))
                    ),
                    # The format argument is accepted but the text is read as ISO 8601
                    "fromFormat": JSFunction(
                        "fromFormat",
                        lambda text=UNDEFINED, fmt=UNDEFINED: DateTimeValue(parse_iso(to_string(text))),
                    ),
                    # Instants are UTC, so local time is the current UTC instant
                    "local": JSFunction("local", lambda *_: DateTimeValue(clock())),
                },
            ),
            "parseInt": JSFunction("parseInt", parse_int),
            "parseFloat": JSFunction("parseFloat", parse_float),
            "isNaN": JSFunction("isNaN", _is_nan),
            "isFinite": JSFunction("isFinite", _is_finite),
            "encodeURIComponent": JSFunction(
                "encodeURIComponent", lambda value=UNDEFINED: encode_uri_component(value)
            ),
            "decodeURIComponent": JSFunction(
                "decodeURIComponent", lambda value=UNDEFINED: decode_uri_component(to_string(value))
            ),
            "encodeURI": JSFunction("encodeURI", lambda value=UNDEFINED: encode_uri(value)),
            "decodeURI": JSFunction("decodeURI", lambda value=UNDEFINED: decode_uri(to_string(value))),
        }

    # ── member access ─────────────────────────────────────────────

    def get_member(self, value: Any, key: Any) -> Any:
        """Read ``value[key]`` with JavaScript semantics.

        The caller has already rejected null and undefined receivers.
        """
        if isinstance(value, dict):
            name = to_property_key(key)
            if name in value:
                return value[name]
            if name in ("hasOwnProperty", "toString"):
                return self._object_method(value, name)
            return UNDEFINED

        if isinstance(value, list):
            index = as_index(key)
            if index is not None:
                return value[index] if index < len(value) else UNDEFINED
            name = to_property_key(key)
            if name == "length":
                return len(value)
            method = _ARRAY_METHODS.get(name)
            return JSFunction(name, functools.partial(method, self, value)) if method else UNDEFINED

        if isinstance(value, str):
            index = as_index(key)
            if index is not None:
                return value[index] if index < len(value) else UNDEFINED
            name = to_property_key(key)
            if name == "length":
                return len(value)
            method = _STRING_METHODS.get(name)
            return JSFunction(name, functools.partial(method, self, value)) if method else UNDEFINED

        if isinstance(value, bool):
            name = to_property_key(key)
            if name in ("toString", "valueOf"):
                return JSFunction(name, lambda: to_string(value) if name == "toString" else value)
            return UNDEFINED

        if is_number(value):
            name = to_property_key(key)
            method = _NUMBER_METHODS.get(name)
            return JSFunction(name, functools.partial(method, value)) if method else UNDEFINED

        if isinstance(value, HostObject):
            return value.js_get(to_property_key(key))

        return UNDEFINED

    def _object_method(self, value: dict[str, Any], name: str) -> JSFunction:
        if name == "hasOwnProperty":
            return JSFunction(name, lambda key=UNDEFINED: to_property_key(key) in value)
        return JSFunction(name, lambda: "[object Object]")

    def has_property(self, key: Any, target: Any) -> bool:
        """JavaScript ``key in target``."""
        if isinstance(target, dict):
            return to_property_key(key) in target
        if isinstance(target, list):
            index = as_index(key)
            if index is not None:
                return index < len(target)
            name = to_property_key(key)
            return name == "length" or name in _ARRAY_METHODS
        if isinstance(target, HostObject):
            return target.js_get(to_property_key(key)) is not UNDEFINED
        raise TypeError(f"Cannot use 'in' operator to search for '{to_string(key)}' in {to_string(target)}")


# ── string methods ────────────────────────────────────────────────


def _str_slice(rt: Builtins, s: str, start: Any = UNDEFINED, end: Any = UNDEFINED) -> str:
    return s[_relative(start, len(s), 0) : _relative(end, len(s), len(s))]


def _str_substring(rt: Builtins, s: str, start: Any = UNDEFINED, end: Any = UNDEFINED) -> str:
    length = len(s)
    a = min(max(to_integer(start), 0), length) if start is not UNDEFINED else 0
    b = min(max(to_integer(end), 0), length) if end is not UNDEFINED else length
    return s[min(a, b) : max(a, b)]


def _str_substr(rt: Builtins, s: str, start: Any = UNDEFINED, length: Any = UNDEFINED) -> str:
    begin = _relative(start, len(s), 0)
    count = to_integer(length) if length is not UNDEFINED else len(s) - begin
    return s[begin : begin + max(count, 0)]


def _str_index_of(rt: Builtins, s: str, search: Any = UNDEFINED, position: Any = UNDEFINED) -> int:
    start = min(max(to_integer(position), 0), len(s)) if position is not UNDEFINED else 0
    return s.find(to_string(search), start)


def _str_last_index_of(rt: Builtins, s: str, search: Any = UNDEFINED, position: Any = UNDEFINED) -> int:
    needle = to_string(search)
    end = len(s)
    if position is not UNDEFINED and not _is_nan(position):
        end = min(max(to_integer(position), 0), len(s)) + len(needle)
    return s.rfind(needle, 0, end)


def _str_includes(rt: Builtins, s: str, search: Any = UNDEFINED, position: Any = UNDEFINED) -> bool:
    return _str_index_of(rt, s, search, position) != -1


def _str_starts_with(rt: Builtins, s: str, search: Any = UNDEFINED, position: Any = UNDEFINED) -> bool:
    start = min(max(to_integer(position), 0), len(s)) if position is not UNDEFINED else 0
    return s.startswith(to_string(search), start)


def _str_ends_with(rt: Builtins, s: str, search: Any = UNDEFINED, end: Any = UNDEFINED) -> bool:
    stop = min(max(to_integer(end), 0), len(s)) if end is not UNDEFINED else len(s)
    return s[:stop].endswith(to_string(search))


def _str_char_at(rt: Builtins, s: str, index: Any = UNDEFINED) -> str:
    position = to_integer(index)
    return s[position] if 0 <= position < len(s) else ""


def _str_char_code_at(rt: Builtins, s: str, index: Any = UNDEFINED) -> int | float:
    position = to_integer(index)
    return ord(s[position]) if 0 <= position < len(s) else math.nan


def _str_code_point_at(rt: Builtins, s: str, index: Any = UNDEFINED) -> Any:
    position = to_integer(index)
    return ord(s[position]) if 0 <= position < len(s) else UNDEFINED


def _at(rt: Builtins, sequence: Any, index: Any = UNDEFINED) -> Any:
    position = to_integer(index)
    if position < 0:
        position += len(sequence)
    return sequence[position] if 0 <= position < len(sequence) else UNDEFINED


def _str_pad(rt: Builtins, s: str, target: Any, fill: Any, at_start: bool) -> str:
    length = to_integer(target)
    filler = " " if fill is UNDEFINED else to_string(fill)
    if length <= len(s) or not filler:
        return s
    rt._check_length(length)
    needed = length - len(s)
    padding = (filler * (needed // len(filler) + 1))[:needed]
    return padding + s if at_start else s + padding


def _str_repeat(rt: Builtins, s: str, count: Any = UNDEFINED) -> str:
    times = to_integer(count)
    if times < 0:
        raise ValueError("Invalid count value")
    rt._check_length(len(s) * times)
    return s * times


def _replacement(rt: Builtins, replacement: Any, match: str, offset: int, s: str) -> str:
    if is_callable(replacement):
        return to_string(_call(replacement, match, offset, s))
    return to_string(replacement).replace("$&", match)


def _str_replace(rt: Builtins, s: str, pattern: Any = UNDEFINED, replacement: Any = UNDEFINED) -> str:
    needle = to_string(pattern)
    offset = s.find(needle)
    if offset == -1:
        return s
    result = s[:offset] + _replacement(rt, replacement, needle, offset, s) + s[offset + len(needle) :]
    return rt.check_string(result)


def _str_replace_all(rt: Builtins, s: str, pattern: Any = UNDEFINED, replacement: Any = UNDEFINED) -> str:
    needle = to_string(pattern)
    if needle == "":
        positions = list(range(len(s) + 1))
    else:
        positions = []
        start = s.find(needle)
        while start != -1:
            positions.append(start)
            start = s.find(needle, start + len(needle))
    if not positions:
        return s

    parts: list[str] = []
    last = 0
    for offset in positions:
        parts.append(s[last:offset])
        parts.append(_replacement(rt, replacement, needle, offset, s))
        last = offset + len(needle)
    parts.append(s[last:])
    return rt.check_string("".join(parts))


def _str_split(rt: Builtins, s: str, separator: Any = UNDEFINED, limit: Any = UNDEFINED) -> list[str]:
    if separator is UNDEFINED:
        parts = [s]
    else:
        sep = to_string(separator)
        parts = list(s) if sep == "" else s.split(sep)
    if limit is not UNDEFINED:
        parts = parts[: max(to_integer(limit), 0)]
    return parts


def _str_concat(rt: Builtins, s: str, *others: Any) -> str:
    return rt.check_string(s + "".join(to_string(other) for other in others))


def _str_locale_compare(rt: Builtins, s: str, other: Any = UNDEFINED) -> int:
    text = to_string(other)
    return (s > text) - (s < text)


_STRING_METHODS: dict[str, Callable[..., Any]] = {
    "at": _at,
    "charAt": _str_char_at,
    "charCodeAt": _str_char_code_at,
    "codePointAt": _str_code_point_at,
    "concat": _str_concat,
    "endsWith": _str_ends_with,
    "includes": _str_includes,
    "indexOf": _str_index_of,
    "lastIndexOf": _str_last_index_of,
    "localeCompare": _str_locale_compare,
    "padEnd": lambda rt, s, target=UNDEFINED, fill=UNDEFINED: _str_pad(rt, s, target, fill, False),
    "padStart": lambda rt, s, target=UNDEFINED, fill=UNDEFINED: _str_pad(rt, s, target, fill, True),
    "repeat": _str_repeat,
    "replace": _str_replace,
    "replaceAll": _str_replace_all,
    "slice": _str_slice,
    "split": _str_split,
    "startsWith": _str_starts_with,
    "substr": _str_substr,
    "substring": _str_substring,
    "toLowerCase": lambda rt, s: s.lower(),
    "toUpperCase": lambda rt, s: s.upper(),
    "toLocaleLowerCase": lambda rt, s: s.lower(),
    "toLocaleUpperCase": lambda rt, s: s.upper(),
    "toString": lambda rt, s: s,
    "valueOf": lambda rt, s: s,
    "trim": lambda rt, s: s.strip(),
    "trimStart": lambda rt, s: s.lstrip(),
    "trimEnd": lambda rt, s: s.rstrip(),
}


# ── array methods ─────────────────────────────────────────────────
# Arrays are shared with the caller's context, so every method returns a
# new list and none mutates its receiver.


def _arr_map(rt: Builtins, items: list[Any], fn: Any = UNDEFINED) -> list[Any]:
    return [_call(fn, item, index, items) for index, item in enumerate(items)]


def _arr_filter(rt: Builtins, items: list[Any], fn: Any = UNDEFINED) -> list[Any]:
    return [item for index, item in enumerate(items) if truthy(_call(fn, item, index, items))]


def _arr_for_each(rt: Builtins, items: list[Any], fn: Any = UNDEFINED) -> Any:
    for index, item in enumerate(items):
        _call(fn, item, index, items)
    return UNDEFINED


def _arr_find_index(rt: Builtins, items: list[Any], fn: Any = UNDEFINED, reverse: bool = False) -> int:
    indices = range(len(items) - 1, -1, -1) if reverse else range(len(items))
    for index in indices:
        if truthy(_call(fn, items[index], index, items)):
            return index
    return -1


def _arr_find(rt: Builtins, items: list[Any], fn: Any = UNDEFINED) -> Any:
    index = _arr_find_index(rt, items, fn)
    return items[index] if index != -1 else UNDEFINED


def _arr_find_last(rt: Builtins, items: list[Any], fn: Any = UNDEFINED) -> Any:
    index = _arr_find_index(rt, items, fn, reverse=True)
    return items[index] if index != -1 else UNDEFINED


def _arr_some(rt: Builtins, items: list[Any], fn: Any = UNDEFINED) -> bool:
    return any(truthy(_call(fn, item, index, items)) for index, item in enumerate(items))


def _arr_every(rt: Builtins, items: list[Any], fn: Any = UNDEFINED) -> bool:
    return all(truthy(_call(fn, item, index, items)) for index, item in enumerate(items))


def _arr_reduce(rt: Builtins, items: list[Any], fn: Any = UNDEFINED, *initial: Any, reverse: bool = False) -> Any:
    indices = list(range(len(items)))
    if reverse:
        indices.reverse()
    if initial:
        accumulator = initial[0]
    else:
        if not indices:
            raise TypeError("Reduce of empty array with no initial value")
        accumulator = items[indices.pop(0)]
    for index in indices:
        accumulator = _call(fn, accumulator, items[index], index, items)
    return accumulator


def _arr_includes(rt: Builtins, items: list[Any], search: Any = UNDEFINED, start: Any = UNDEFINED) -> bool:
    begin = _relative(start, len(items), 0)
    return any(_same_value_zero(item, search) for item in items[begin:])


def _arr_index_of(rt: Builtins, items: list[Any], search: Any = UNDEFINED, start: Any = UNDEFINED) -> int:
    begin = _relative(start, len(items), 0)
    for index in range(begin, len(items)):
        if strict_equals(items[index], search):
            return index
    return -1


def _arr_last_index_of(rt: Builtins, items: list[Any], search: Any = UNDEFINED) -> int:
    for index in range(len(items) - 1, -1, -1):
        if strict_equals(items[index], search):
            return index
    return -1


def _arr_join(rt: Builtins, items: list[Any], separator: Any = UNDEFINED) -> str:
    sep = "," if separator is UNDEFINED else to_string(separator)
    return rt.check_string(sep.join("" if is_nullish(item) else to_string(item) for item in items))


def _arr_slice(rt: Builtins, items: list[Any], start: Any = UNDEFINED, end: Any = UNDEFINED) -> list[Any]:
    return items[_relative(start, len(items), 0) : _relative(end, len(items), len(items))]


def _arr_concat(rt: Builtins, items: list[Any], *others: Any) -> list[Any]:
    result = list(items)
    for other in others:
        if isinstance(other, list):
            result.extend(other)
        else:
            result.append(other)
    rt._check_length(len(result))
    return result


def _flatten(items: list[Any], depth: int) -> list[Any]:
    result: list[Any] = []
    for item in items:
        if isinstance(item, list) and depth > 0:
            result.extend(_flatten(item, depth - 1))
        else:
            result.append(item)
    return result


def _arr_flat(rt: Builtins, items: list[Any], depth: Any = UNDEFINED) -> list[Any]:
    levels = 1 if depth is UNDEFINED else to_integer(depth)
    return _flatten(items, min(levels, rt.limits.max_call_depth))


def _arr_flat_map(rt: Builtins, items: list[Any], fn: Any = UNDEFINED) -> list[Any]:
    return _flatten(_arr_map(rt, items, fn), 1)


def _default_compare(left: Any, right: Any) -> int:
    # undefined sorts last; everything else compares as strings
    if left is UNDEFINED or right is UNDEFINED:
        return (left is UNDEFINED) - (right is UNDEFINED)
    a, b = to_string(left), to_string(right)
    return (a > b) - (a < b)


def _arr_sort(rt: Builtins, items: list[Any], fn: Any = UNDEFINED) -> list[Any]:
    if fn is UNDEFINED:
        compare = _default_compare
    else:

        def compare(left: Any, right: Any) -> int:
            if left is UNDEFINED or right is UNDEFINED:
                return _default_compare(left, right)
            result = to_number(_call(fn, left, right))
            if isinstance(result, float) and math.isnan(result):
                return 0
            return (result > 0) - (result < 0)

    return sorted(items, key=functools.cmp_to_key(compare))


def _arr_reverse(rt: Builtins, items: list[Any]) -> list[Any]:
    return list(reversed(items))


_ARRAY_METHODS: dict[str, Callable[..., Any]] = {
    "at": _at,
    "concat": _arr_concat,
    "entries": lambda rt, items: [[index, item] for index, item in enumerate(items)],
    "every": _arr_every,
    "filter": _arr_filter,
    "find": _arr_find,
    "findIndex": _arr_find_index,
    "findLast": _arr_find_last,
    "findLastIndex": lambda rt, items, fn=UNDEFINED: _arr_find_index(rt, items, fn, reverse=True),
    "flat": _arr_flat,
    "flatMap": _arr_flat_map,
    "forEach": _arr_for_each,
    "includes": _arr_includes,
    "indexOf": _arr_index_of,
    "join": _arr_join,
    "keys": lambda rt, items: list(range(len(items))),
    "lastIndexOf": _arr_last_index_of,
    "map": _arr_map,
    "reduce": _arr_reduce,
    "reduceRight": lambda rt, items, fn=UNDEFINED, *initial: _arr_reduce(rt, items, fn, *initial, reverse=True),
    "reverse": _arr_reverse,
    "slice": _arr_slice,
    "some": _arr_some,
    "sort": _arr_sort,
    "toReversed": _arr_reverse,
    "toSorted": _arr_sort,
    "toString": lambda rt, items: _arr_join(rt, items),
    "values": lambda rt, items: list(items),
}


# ── number methods ────────────────────────────────────────────────

_NUMBER_METHODS: dict[str, Callable[..., Any]] = {
    "toFixed": to_fixed,
    "toPrecision": _to_precision,
    "toString": _number_to_radix,
    "toLocaleString": lambda value: number_to_string(value),
    "valueOf": lambda value: value,
}


__all__ = [
    "Builtins",
    "decode_uri",
    "decode_uri_component",
    "encode_uri",
    "encode_uri_component",
    "json_parse",
    "parse_float",
    "parse_int",
    "power",
    "to_fixed",
]
