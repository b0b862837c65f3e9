"""Date values for expressions: ``$now``, ``DateTime`` and ``Date``.

All instants are UTC. A ``DateTimeValue`` answers both the small
Luxon-style API (``toISO``, ``toFormat``, ``plus``) and the JavaScript
``Date`` accessors (``getTime``, ``getFullYear``, ...).
"""

import math
import re
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta
from typing import Any

from .values import UNDEFINED, HostObject, JSFunction, is_number, to_number

Clock = Callable[[], datetime]

_FORMAT_TOKENS = re.compile(r"yyyy|MM|dd|HH|mm|ss")

_DURATION_UNITS = {
    "weeks": "weeks",
    "week": "weeks",
    "days": "days",
    "day": "days",
    "hours": "hours",
    "hour": "hours",
    "minutes": "minutes",
    "minute": "minutes",
    "seconds": "seconds",
    "second": "seconds",
    "milliseconds": "milliseconds",
    "millisecond": "milliseconds",
}

_MAX_MILLIS = 8.64e15


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(UTC)


def iso_timestamp(moment: datetime) -> str:
    """Format as ``2024-01-15T10:30:00.000Z`` (JavaScript toISOString)."""
    moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_iso(text: str) -> datetime | None:
    """Parse an ISO 8601 date or date-time; naive values are taken as UTC."""
    text = text.strip()
    if not text:
        return None
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def from_millis(value: Any) -> datetime | None:
    millis = to_number(value)
    if isinstance(millis, float) and (math.isnan(millis) or math.isinf(millis)):
        return None
    if abs(millis) > _MAX_MILLIS:
        return None
    return datetime(1970, 1, 1, tzinfo=UTC) + timedelta(milliseconds=millis)


def from_components(args: list[Any]) -> datetime | None:
    """``new Date(y, m, d, h, mi, s, ms)`` with a 0-based month, in UTC."""
    numbers = [to_number(arg) for arg in args]
    numbers += [0] * (7 - len(numbers))
    if any(isinstance(n, float) and (math.isnan(n) or math.isinf(n)) for n in numbers):
        return None
    year, month, day, hours, minutes, seconds, millis = (int(n) for n in numbers[:7])
    if len(args) < 3:
        day = 1
    if 0 <= year <= 99:
        year += 1900
    year += month // 12
    month %= 12
    if not 1 <= year <= 9999:
        return None
    base = datetime(year, month + 1, 1, tzinfo=UTC)
    try:
        return base + timedelta(
            days=day - 1,
            hours=hours,
            minutes=minutes,
            seconds=seconds,
            milliseconds=millis,
        )
    except OverflowError:
        return None


class DateTimeValue(HostObject):
    """An instant exposed to expressions. ``moment`` is None for invalid dates."""

    def __init__(self, moment: datetime | None):
        self.moment = moment

    @property
    def is_valid(self) -> bool:
        return self.moment is not None

    def to_millis(self) -> int | float:
        if self.moment is None:
            return math.nan
        delta = self.moment - datetime(1970, 1, 1, tzinfo=UTC)
        return delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000

    def js_string(self) -> str:
        if self.moment is None:
            return "Invalid Date"
        return iso_timestamp(self.moment)

    def to_json(self) -> Any:
        return None if self.moment is None else iso_timestamp(self.moment)

    def js_get(self, key: str) -> Any:
        method = self._methods().get(key)
        if method is None:
            if key == "isValid":
                return self.is_valid
            return UNDEFINED
        return JSFunction(key, method)

    def _methods(self) -> dict[str, Callable[..., Any]]:
        return {
            # Luxon-style
            "toISO": self._to_iso,
            "toISODate": self._to_iso_date,
            "toFormat": self._to_format,
            "toMillis": self.to_millis,
            "plus": lambda duration=UNDEFINED: self._shift(duration, 1),
            "minus": lambda duration=UNDEFINED: self._shift(duration, -1),
            # JavaScript Date
            "toISOString": self._to_iso_string,
            "toJSON": self.to_json,
            "toString": self.js_string,
            "getTime": self.to_millis,
            "valueOf": self.to_millis,
            "getFullYear": lambda: self._field(lambda m: m.year),
            "getMonth": lambda: self._field(lambda m: m.month - 1),
            "getDate": lambda: self._field(lambda m: m.day),
            "getDay": lambda: self._field(lambda m: (m.weekday() + 1) % 7),
            "getHours": lambda: self._field(lambda m: m.hour),
            "getMinutes": lambda: self._field(lambda m: m.minute),
            "getSeconds": lambda: self._field(lambda m: m.second),
            "getMilliseconds": lambda: self._field(lambda m: m.microsecond // 1000),
        }

    def _field(self, getter: Callable[[datetime], int]) -> int | float:
        return math.nan if self.moment is None else getter(self.moment)

    def _to_iso(self) -> str | None:
        return None if self.moment is None else iso_timestamp(self.moment)

    def _to_iso_date(self) -> str | None:
        return None if self.moment is None else self.moment.date().isoformat()

    def _to_iso_string(self) -> str:
        if self.moment is None:
            raise ValueError("Invalid time value")
        return iso_timestamp(self.moment)

    def _to_format(self, fmt: Any = UNDEFINED) -> str:
        if self.moment is None:
            return "Invalid DateTime"
        moment = self.moment
        values = {
            "yyyy": f"{moment.year:04d}",
            "MM": f"{moment.month:02d}",
            "dd": f"{moment.day:02d}",
            "HH": f"{moment.hour:02d}",
            "mm": f"{moment.minute:02d}",
            "ss": f"{moment.second:02d}",
        }
        return _FORMAT_TOKENS.sub(lambda match: values[match.group(0)], fmt if isinstance(fmt, str) else "")

    def _shift(self, duration: Any, sign: int) -> "DateTimeValue":
        if self.moment is None:
            return self
        if is_number(duration):
            # Luxon treats a bare number as milliseconds
            duration = {"milliseconds": duration}
        if not isinstance(duration, dict):
            raise TypeError("Duration must be an object like {days: 1}")

        kwargs: dict[str, float] = {}
        for key, amount in duration.items():
            unit = _DURATION_UNITS.get(key)
            if unit is None:
                raise ValueError(f"Unsupported duration unit '{key}'")
            number = to_number(amount)
            if isinstance(number, float) and (math.isnan(number) or math.isinf(number)):
                raise ValueError(f"Invalid duration amount for '{key}'")
            kwargs[unit] = kwargs.get(unit, 0) + sign * number

        try:
            return DateTimeValue(self.moment + timedelta(**kwargs))
        except OverflowError:
            return DateTimeValue(None)


def date_value(value: Any, clock: Clock) -> DateTimeValue:
    """Coerce a single ``new Date(value)`` argument."""
    if value is UNDEFINED:
        return DateTimeValue(clock().astimezone(UTC))
    if isinstance(value, DateTimeValue):
        return DateTimeValue(value.moment)
    if isinstance(value, str):
        return DateTimeValue(parse_iso(value))
    if isinstance(value, (datetime, date)):
        if not isinstance(value, datetime):
            value = datetime(value.year, value.month, value.day)
        return DateTimeValue(value if value.tzinfo else value.replace(tzinfo=UTC))
    return DateTimeValue(from_millis(value))
