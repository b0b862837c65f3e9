"""Unit tests for date values."""

import math
from datetime import UTC, datetime

import pytest

from flowexpr.errors import ExpressionError
from flowexpr.expression.dates import (
    DateTimeValue,
    date_value,
    from_components,
    from_millis,
    iso_timestamp,
    parse_iso,
)

from conftest import FIXED_NOW

FIXED_MILLIS = 1_705_314_645_123


@pytest.mark.unit
class TestHelpers:
    """Tests for the date parsing helpers."""

    def test_iso_timestamp(self):
        assert iso_timestamp(FIXED_NOW) == "2024-01-15T10:30:45.123Z"

    def test_parse_date_only(self):
        assert parse_iso("2024-01-15") == datetime(2024, 1, 15, tzinfo=UTC)

    def test_parse_with_offset(self):
        assert parse_iso("2024-01-15T10:00:00+02:00") == datetime(2024, 1, 15, 8, tzinfo=UTC)

    def test_parse_zulu(self):
        assert parse_iso("2024-01-15T10:30:45.123Z") == FIXED_NOW

    @pytest.mark.parametrize("text", ["", "   ", "not a date", "2024-13-01"])
    def test_parse_invalid(self, text):
        assert parse_iso(text) is None

    def test_from_millis(self):
        assert from_millis(0) == datetime(1970, 1, 1, tzinfo=UTC)
        assert from_millis(FIXED_MILLIS) == FIXED_NOW
        assert from_millis(math.nan) is None
        assert from_millis(1e16) is None

    @pytest.mark.parametrize(
        "args,expected",
        [
            ([2024, 0, 15], datetime(2024, 1, 15, tzinfo=UTC)),
            ([2024, 12, 1], datetime(2025, 1, 1, tzinfo=UTC)),
            ([2024, 1, 30], datetime(2024, 3, 1, tzinfo=UTC)),
            ([99, 0], datetime(1999, 1, 1, tzinfo=UTC)),
            ([2024, 0, 1, 10, 30], datetime(2024, 1, 1, 10, 30, tzinfo=UTC)),
        ],
    )
    def test_from_components(self, args, expected):
        assert from_components(args) == expected

    def test_from_components_invalid(self):
        assert from_components([math.nan, 0]) is None

    def test_date_value(self):
        assert date_value("2024-01-15", lambda: FIXED_NOW).moment == datetime(2024, 1, 15, tzinfo=UTC)
        assert date_value(0, lambda: FIXED_NOW).to_millis() == 0
        assert not date_value("nope", lambda: FIXED_NOW).is_valid


@pytest.mark.unit
class TestDateTimeValue:
    """Tests for DateTimeValue members."""

    def test_millis(self):
        assert DateTimeValue(FIXED_NOW).to_millis() == FIXED_MILLIS

    def test_invalid(self):
        value = DateTimeValue(None)
        assert value.js_string() == "Invalid Date"
        assert value.to_json() is None
        assert math.isnan(value.to_millis())
        assert value.js_get("isValid") is False

    def test_unknown_member(self):
        from flowexpr.expression import UNDEFINED

        assert DateTimeValue(FIXED_NOW).js_get("moment") is UNDEFINED
        assert DateTimeValue(FIXED_NOW).js_get("__class__") is UNDEFINED


@pytest.mark.unit
class TestDateExpressions:
    """Tests for $now, DateTime and Date inside expressions."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("$now", "2024-01-15T10:30:45.123Z"),
            ("$today", "2024-01-15"),
            ("DateTime.now()", "2024-01-15T10:30:45.123Z"),
            ("DateTime.now().toISO()", "2024-01-15T10:30:45.123Z"),
            ("DateTime.now().toISODate()", "2024-01-15"),
            ("DateTime.now().toFormat('yyyy-MM-dd HH:mm')", "2024-01-15 10:30"),
            ("DateTime.now().plus({days: 1}).toISODate()", "2024-01-16"),
            ("DateTime.now().minus({hours: 11}).toISODate()", "2024-01-14"),
            ("DateTime.now().plus({weeks: 1, minutes: 30}).toISO()", "2024-01-22T11:00:45.123Z"),
            ("DateTime.fromISO('2024-03-01').toMillis()", 1_709_251_200_000),
            ("DateTime.fromMillis(0).toISO()", "1970-01-01T00:00:00.000Z"),
            ("DateTime.fromISO('bad').isValid", False),
            ("DateTime.local()", "2024-01-15T10:30:45.123Z"),
            ("DateTime.local().toISODate()", "2024-01-15"),
            ("DateTime.fromFormat('2024-03-01', 'yyyy-MM-dd').toISODate()", "2024-03-01"),
            ("DateTime.fromFormat('2024-03-01T12:00:00Z', 'whatever').toMillis()", 1_709_294_400_000),
            ("DateTime.fromFormat('03/01/2024', 'MM/dd/yyyy').isValid", False),
            ("new Date(0).toISOString()", "1970-01-01T00:00:00.000Z"),
            ("new Date('2024-01-15T00:00:00Z').getDay()", 1),
            ("new Date('2024-01-15T00:00:00Z').getMonth()", 0),
            ("new Date(2024, 0, 15).getDate()", 15),
            ("new Date().getTime()", FIXED_MILLIS),
            ("new Date().getFullYear()", 2024),
            ("Date.now()", FIXED_MILLIS),
            ("Date.UTC(2024, 0, 1)", 1_704_067_200_000),
            ("Date.parse('1970-01-01T00:00:01Z')", 1000),
            ("Date()", "2024-01-15T10:30:45.123Z"),
            ("new Date(5) - new Date(2)", 3),
            ("'at ' + DateTime.now().toISODate()", "at 2024-01-15"),
        ],
    )
    def test_expressions(self, engine, source, expected):
        assert engine.evaluate(source) == expected

    def test_invalid_date_members(self, engine):
        assert math.isnan(engine.evaluate("new Date('garbage').getTime()"))
        assert engine.evaluate("DateTime.fromISO('bad').toISO()") is None

    def test_invalid_date_iso_string_raises(self, engine):
        with pytest.raises(ExpressionError) as exc_info:
            engine.evaluate("new Date('garbage').toISOString()")
        assert exc_info.value.code == "EXPRESSION_RUNTIME"

    def test_unsupported_duration_unit(self, engine):
        with pytest.raises(ExpressionError):
            engine.evaluate("DateTime.now().plus({fortnights: 1})")

    def test_same_now_within_a_string(self, sink):
        from flowexpr.expression import ExpressionEngine

        ticks = iter(
            [
                datetime(2024, 1, 1, tzinfo=UTC),
                datetime(2025, 1, 1, tzinfo=UTC),
            ]
        )
        engine = ExpressionEngine(diagnostics=sink, clock=lambda: next(ticks))
        assert engine.resolve_value("{{ $today }} {{ $today }}") == "2024-01-01 2024-01-01"
