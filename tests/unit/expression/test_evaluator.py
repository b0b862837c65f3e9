"""Unit tests for the expression evaluator."""

import math

import pytest

from flowexpr.config import LimitsConfig
from flowexpr.errors import ExpressionError
from flowexpr.expression import UNDEFINED, ExpressionContext, build_scope
from flowexpr.expression.builtins import Builtins
from flowexpr.expression.evaluator import Evaluator

from conftest import FIXED_NOW


def make_evaluator(**limits):
    config = LimitsConfig(**limits)
    builtins = Builtins(config, lambda: FIXED_NOW)
    return Evaluator(builtins, config), builtins


@pytest.fixture
def run(sample_item):
    """Evaluate a body with the sample item as $json."""
    evaluator, builtins = make_evaluator()

    def _run(source, item=sample_item):
        scope = build_scope(ExpressionContext(current_item=item), builtins, FIXED_NOW)
        return evaluator.evaluate(source, scope)

    return _run


@pytest.mark.unit
class TestArithmetic:
    """Tests for arithmetic and string concatenation."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("1 + 2 * 3", 7),
            ("(1 + 2) * 3", 9),
            ("7 / 2", 3.5),
            ("2 ** 10", 1024),
            ("-7 % 3", -1),
            ("7 % -3", 1),
            ("'5' * '2'", 10),
            ("null + 1", 1),
            ("true + true", 2),
            ("$json.age + 1", 31),
            ("$json.items[1].price - $json.items[0].price", 15),
        ],
    )
    def test_numbers(self, run, source, expected):
        assert run(source) == expected

    def test_integral_division_is_int(self, run):
        result = run("4 / 2")
        assert result == 2
        assert isinstance(result, int)

    def test_division_by_zero(self, run):
        assert run("1 / 0") == math.inf
        assert run("-1 / 0") == -math.inf
        assert math.isnan(run("0 / 0"))

    def test_undefined_arithmetic_is_nan(self, run):
        assert math.isnan(run("undefined + 1"))
        assert math.isnan(run("'abc' * 2"))

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("'a' + 1", "a1"),
            ("1 + '2'", "12"),
            ("'Hello ' + $json.name", "Hello John"),
            ("[1, 2] + ''", "1,2"),
            ("'x' + null", "xnull"),
            ("'x' + {}", "x[object Object]"),
            ("'' + 0.1 * 3", "0.30000000000000004"),
        ],
    )
    def test_concatenation(self, run, source, expected):
        assert run(source) == expected

    def test_unary(self, run):
        assert run("-$json.age") == -30
        assert run("+'42'") == 42
        assert run("!0") is True
        assert run("!!'a'") is True


@pytest.mark.unit
class TestComparison:
    """Tests for equality and relational operators."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("1 == '1'", True),
            ("1 === '1'", False),
            ("null == undefined", True),
            ("null === undefined", False),
            ("0 == false", True),
            ("'' == 0", True),
            ("null == 0", False),
            ("1 !== 2", True),
            ("'b' > 'a'", True),
            ("'10' < '9'", True),
            ("'10' < 9", False),
            ("$json.age >= 30", True),
            ("$json.active === true", True),
            ("undefined < 1", False),
        ],
    )
    def test_operators(self, run, source, expected):
        assert run(source) is expected

    def test_objects_compare_by_identity(self, run):
        assert run("$json.address === $json.address") is True
        assert run("{} === {}") is False


@pytest.mark.unit
class TestLogical:
    """Tests for logical operators and the conditional operator."""

    def test_or_returns_operand(self, run):
        assert run("0 || 'x'") == "x"
        assert run("$json.name || 'anonymous'") == "John"

    def test_and_returns_operand(self, run):
        assert run("1 && 2") == 2
        assert run("'' && 2") == ""

    def test_nullish(self, run):
        assert run("'' ?? 'x'") == ""
        assert run("$json.nothing ?? 'x'") == "x"
        assert run("$json.missing ?? 0") == 0

    def test_short_circuit_skips_right_side(self, run):
        assert run("true || missingName") is True
        assert run("false && missingName") is False

    def test_ternary(self, run):
        assert run("$json.age > 18 ? 'adult' : 'minor'") == "adult"
        assert run("$json.missing ? 1 : 2") == 2

    def test_empty_object_fallback(self, run):
        assert run("$json.nothing || {}") == {}


@pytest.mark.unit
class TestMemberAccess:
    """Tests for property access and optional chaining."""

    def test_nested(self, run):
        assert run("$json.address.city") == "NYC"
        assert run("$json['address']['zip']") == "10001"
        assert run("$json.tags[$json.tags.length - 1]") == "c"

    def test_missing_property_is_undefined(self, run):
        assert run("$json.missing") is UNDEFINED
        assert run("$json.tags[10]") is UNDEFINED

    def test_read_from_undefined_raises(self, run):
        with pytest.raises(ExpressionError) as exc_info:
            run("$json.missing.name")
        error = exc_info.value
        assert error.code == "EXPRESSION_RUNTIME"
        assert "Cannot read properties of undefined (reading 'name')" in error.detail
        assert error.expression == "$json.missing.name"

    def test_read_from_null_raises(self, run):
        with pytest.raises(ExpressionError) as exc_info:
            run("$json.nothing.value")
        assert "Cannot read properties of null" in exc_info.value.detail

    def test_optional_chaining(self, run):
        assert run("$json.missing?.name") is UNDEFINED
        assert run("$json.missing?.name.first") is UNDEFINED
        assert run("$json.address?.city") == "NYC"
        assert run("$json.missing?.[0]") is UNDEFINED
        assert run("$json.fn?.()") is UNDEFINED

    def test_in_operator(self, run):
        assert run("'city' in $json.address") is True
        assert run("'country' in $json.address") is False
        assert run("1 in $json.tags") is True

    def test_in_operator_on_primitive(self, run):
        with pytest.raises(ExpressionError) as exc_info:
            run("'a' in 5")
        assert exc_info.value.code == "EXPRESSION_RUNTIME"


@pytest.mark.unit
class TestNamesAndTypes:
    """Tests for identifier resolution and typeof."""

    def test_unknown_identifier(self, run):
        with pytest.raises(ExpressionError) as exc_info:
            run("missingName + 1")
        error = exc_info.value
        assert error.code == "EXPRESSION_REFERENCE"
        assert error.message == "'missingName' is not defined"

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("typeof 1", "number"),
            ("typeof 'a'", "string"),
            ("typeof null", "object"),
            ("typeof $json", "object"),
            ("typeof $json.tags", "object"),
            ("typeof $json.missing", "undefined"),
            ("typeof missingName", "undefined"),
            ("typeof Math.max", "function"),
            ("typeof Math", "object"),
            ("typeof (x => x)", "function"),
        ],
    )
    def test_typeof(self, run, source, expected):
        assert run(source) == expected

    def test_literals(self, run):
        assert run("[1, 'a', null]") == [1, "a", None]
        assert run("{a: 1, b: {c: [true]}}") == {"a": 1, "b": {"c": [True]}}

    def test_object_literal_with_computed_values(self, run):
        assert run("{name: $json.name, n: $json.tags.length}") == {"name": "John", "n": 3}


@pytest.mark.unit
class TestCalls:
    """Tests for calls, arrow functions and constructors."""

    def test_arrow_callbacks(self, run):
        assert run("[1, 2, 3].map(x => x * 2)") == [2, 4, 6]
        assert run("$json.items.filter(i => i.price > 15).map(i => i.id)") == [2]
        assert run("[1, 2, 3].reduce((a, b) => a + b, 0)") == 6

    def test_arrow_closure(self, run):
        assert run("[1, 2].map(x => [10].map(y => x + y))") == [[11], [12]]

    def test_arrow_sees_context(self, run):
        assert run("$json.tags.map(t => t + $json.age)") == ["a30", "b30", "c30"]

    def test_arrow_missing_argument_is_undefined(self, run):
        assert run("[1].map((a, b, c, d) => d)") == [UNDEFINED]

    def test_call_non_function(self, run):
        with pytest.raises(ExpressionError) as exc_info:
            run("$json.name()")
        assert exc_info.value.code == "EXPRESSION_RUNTIME"
        assert "$json.name is not a function" in exc_info.value.detail

    def test_new_non_constructor(self, run):
        with pytest.raises(ExpressionError) as exc_info:
            run("new Math()")
        assert "Math is not a constructor" in exc_info.value.detail

    def test_builtin_value_error_becomes_runtime_error(self, run):
        with pytest.raises(ExpressionError) as exc_info:
            run("'ab'.repeat(-1)")
        assert exc_info.value.code == "EXPRESSION_RUNTIME"

    def test_scope_is_not_modified(self, sample_item):
        evaluator, builtins = make_evaluator()
        scope = build_scope(ExpressionContext(current_item=sample_item), builtins, FIXED_NOW)
        before = dict(scope)
        evaluator.evaluate("[1, 2].map(x => x + 1)", scope)
        assert scope == before
        assert "x" not in scope


@pytest.mark.unit
class TestLimits:
    """Tests for evaluation limits."""

    def test_step_limit(self):
        evaluator, builtins = make_evaluator(max_steps=100)
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate("Array(1000).map(x => 1 + 1)", dict(builtins.globals))
        assert exc_info.value.code == "EXPRESSION_LIMIT"
        assert "max_steps" in exc_info.value.message

    def test_call_depth_limit(self):
        evaluator, builtins = make_evaluator(max_call_depth=3)
        source = "[[[[1]]]].map(a => a.map(b => b.map(c => c.map(d => d))))"
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate(source, dict(builtins.globals))
        assert exc_info.value.code == "EXPRESSION_LIMIT"
        assert "max_call_depth" in exc_info.value.message

    def test_string_length_limit_on_concatenation(self):
        evaluator, builtins = make_evaluator(max_string_length=10)
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate("'abcdef' + 'ghijkl'", dict(builtins.globals))
        assert exc_info.value.code == "EXPRESSION_LIMIT"

    def test_string_length_limit_on_repeat(self):
        evaluator, builtins = make_evaluator(max_string_length=10)
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate("'ab'.repeat(100)", dict(builtins.globals))
        assert "max_string_length" in exc_info.value.message

    def test_expression_length_limit(self):
        evaluator, builtins = make_evaluator(max_expression_length=5)
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.compile("1 + 2 + 3")
        assert exc_info.value.code == "EXPRESSION_LIMIT"

    def test_within_limits(self):
        evaluator, builtins = make_evaluator(max_steps=1000)
        assert evaluator.evaluate("[1, 2, 3].map(x => x * x)", dict(builtins.globals)) == [1, 4, 9]
