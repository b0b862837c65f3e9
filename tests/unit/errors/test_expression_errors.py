"""Unit tests for structured errors."""

import json

import pytest

from flowexpr.errors import (
    ErrorCategory,
    ErrorFactory,
    ErrorRegistry,
    ErrorTemplate,
    ExpressionError,
    create_error,
    get_error_factory,
)


@pytest.mark.unit
class TestExpressionError:
    """Tests for ExpressionError."""

    def test_str_includes_detail(self):
        error = create_error("EXPRESSION_SYNTAX", detail="Unexpected token at position 3")
        assert str(error) == "Syntax error in expression: Unexpected token at position 3"

    def test_is_exception(self):
        with pytest.raises(ExpressionError):
            raise create_error("EXPRESSION_REFERENCE", name="foo")

    def test_with_context(self):
        error = create_error("EXPRESSION_REFERENCE", name="foo")
        updated = error.with_context(expression="foo + 1", node_id="Set")
        assert updated.expression == "foo + 1"
        assert updated.node_id == "Set"
        assert updated.message == error.message
        assert updated.timestamp == error.timestamp
        assert error.expression is None

    def test_with_context_keeps_existing(self):
        error = create_error("EXPRESSION_SYNTAX", detail="x", expression="1 +")
        assert error.with_context(node_id="Set").expression == "1 +"

    def test_to_dict(self):
        error = create_error("EXPRESSION_LIMIT", limit="max_steps", detail="More than 10 evaluation steps")
        data = error.to_dict()
        assert data["code"] == "EXPRESSION_LIMIT"
        assert data["category"] == "LIMIT"
        assert data["message"] == "Expression exceeded the max_steps limit"
        assert data["cause"] is None
        json.dumps(data)


@pytest.mark.unit
class TestRegistry:
    """Tests for ErrorRegistry."""

    @pytest.mark.parametrize(
        "code,category",
        [
            ("EXPRESSION_SYNTAX", ErrorCategory.SYNTAX),
            ("EXPRESSION_RUNTIME", ErrorCategory.EVALUATION),
            ("EXPRESSION_REFERENCE", ErrorCategory.REFERENCE),
            ("EXPRESSION_LIMIT", ErrorCategory.LIMIT),
            ("CONTEXT_INVALID", ErrorCategory.VALIDATION),
            ("CONFIG_INVALID", ErrorCategory.VALIDATION),
            ("INTERNAL_ERROR", ErrorCategory.SYSTEM),
        ],
    )
    def test_builtin_codes(self, code, category):
        error = ErrorRegistry().create(code)
        assert error.code == code
        assert error.category == category

    def test_unknown_code(self):
        with pytest.raises(ValueError):
            ErrorRegistry().create("NOPE")

    def test_missing_context_keeps_template(self):
        error = ErrorRegistry().create("EXPRESSION_REFERENCE")
        assert error.message == "'{name}' is not defined"

    def test_register(self):
        registry = ErrorRegistry()
        registry.register(
            ErrorTemplate(code="CUSTOM", category=ErrorCategory.SYSTEM, message_template="Custom {what}")
        )
        assert registry.create("CUSTOM", {"what": "thing"}).message == "Custom thing"
        assert "CUSTOM" in registry.list_codes()
        assert registry.get_template("CUSTOM").category == ErrorCategory.SYSTEM
        assert registry.get_template("NOPE") is None


@pytest.mark.unit
class TestFactory:
    """Tests for ErrorFactory.from_exception."""

    def test_json_error(self):
        try:
            json.loads("{bad")
        except json.JSONDecodeError as e:
            error = ErrorFactory().from_exception(e, expression="JSON.parse(x)")
        assert error.code == "EXPRESSION_RUNTIME"
        assert error.detail.startswith("SyntaxError: JSON.parse:")
        assert error.expression == "JSON.parse(x)"

    @pytest.mark.parametrize("exc", [ValueError("bad"), TypeError("bad"), ZeroDivisionError("bad")])
    def test_value_errors(self, exc):
        error = ErrorFactory().from_exception(exc)
        assert error.code == "EXPRESSION_RUNTIME"
        assert error.detail == f"{type(exc).__name__}: bad"

    def test_recursion_error(self):
        error = ErrorFactory().from_exception(RecursionError("too deep"))
        assert error.code == "EXPRESSION_LIMIT"
        assert error.message == "Expression exceeded the recursion limit"

    def test_generic_error(self):
        error = ErrorFactory().from_exception(RuntimeError("boom"), node_id="Set")
        assert error.code == "INTERNAL_ERROR"
        assert error.node_id == "Set"

    def test_expression_error_passthrough(self):
        original = create_error("EXPRESSION_SYNTAX", detail="x")
        error = ErrorFactory().from_exception(original, expression="1 +")
        assert error.code == "EXPRESSION_SYNTAX"
        assert error.expression == "1 +"

    def test_default_factory_singleton(self):
        assert get_error_factory() is get_error_factory()
