"""Value formatting and template decoding."""

from typing import Any

from .builtins import decode_uri_component
from .values import HostObject, json_stringify, to_string


def format_value(value: Any) -> str:
    """Convert a resolved value to its substitution text.

    Objects and arrays become compact JSON (``JSON.stringify``), anything
    else follows JavaScript ``String(value)``.

    Example:
        >>> format_value({"city": "NYC"})
        '{"city":"NYC"}'
        >>> format_value(True)
        'true'
        >>> format_value(2.0)
        '2'
    """
    if isinstance(value, (dict, list, tuple)):
        return json_stringify(list(value) if isinstance(value, tuple) else value)
    if isinstance(value, HostObject):
        return value.js_string()
    return to_string(value)


def decode_template(text: str) -> str | None:
    """Percent-decode a template that may carry encoded braces.

    Editors sometimes store ``{{`` as ``%7B%7B``. Decoding is strict;
    None is returned when ``text`` is not valid percent-encoding.
    """
    if "%" not in text:
        return text
    try:
        return decode_uri_component(text)
    except ValueError:
        return None
