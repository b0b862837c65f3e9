"""Unit tests for the expression tokenizer and parser."""

import pytest

from flowexpr.errors import ExpressionError
from flowexpr.expression.lexer import TokenKind, tokenize
from flowexpr.expression.nodes import (
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
    ObjectLiteral,
    OptionalChain,
    Unary,
)
from flowexpr.expression.parser import parse
from flowexpr.expression.values import UNDEFINED


@pytest.mark.unit
class TestTokenize:
    """Tests for the tokenizer."""

    def test_kinds(self):
        tokens = tokenize("$json.a + 1.5 * 'x'")
        kinds = [t.kind for t in tokens]
        assert kinds == [
            TokenKind.IDENT,
            TokenKind.PUNCT,
            TokenKind.IDENT,
            TokenKind.PUNCT,
            TokenKind.NUMBER,
            TokenKind.PUNCT,
            TokenKind.STRING,
            TokenKind.EOF,
        ]

    def test_longest_punctuator_wins(self):
        values = [t.value for t in tokenize("a === b !== c ?? d")[:-1]]
        assert values == ["a", "===", "b", "!==", "c", "??", "d"]

    def test_numbers(self):
        values = [t.value for t in tokenize("42 0.5 1e3 0xff .25")[:-1]]
        assert values == [42, 0.5, 1000, 255, 0.25]

    @pytest.mark.parametrize(
        "source,values",
        [
            ("1+2", [1, "+", 2]),
            ("x * 2", ["x", "*", 2]),
            ("0x1f", [31]),
            ("7", [7]),
        ],
    )
    def test_number_at_end_of_input(self, source, values):
        tokens = tokenize(source)
        assert [t.value for t in tokens[:-1]] == values
        assert tokens[-1].kind == TokenKind.EOF

    def test_integral_float_becomes_int(self):
        [token, _] = tokenize("2.0")
        assert token.value == 2
        assert isinstance(token.value, int)

    def test_string_escapes(self):
        [token, _] = tokenize(r"'a\nbA\x42\'c'")
        assert token.value == "a\nbAB'c"

    def test_optional_chain_vs_ternary(self):
        values = [t.value for t in tokenize("a?.b")[:-1]]
        assert values == ["a", "?.", "b"]
        values = [t.value for t in tokenize("a?.5:1")[:-1]]
        assert values == ["a", "?", 0.5, ":", 1]

    def test_positions(self):
        tokens = tokenize("  foo")
        assert tokens[0].position == 2

    @pytest.mark.parametrize(
        "source",
        ["'unterminated", "`template`", "a # b", "0x", "12abc", "'bad \\u12'"],
    )
    def test_invalid_input(self, source):
        with pytest.raises(ExpressionError) as exc_info:
            tokenize(source)
        assert exc_info.value.code == "EXPRESSION_SYNTAX"


@pytest.mark.unit
class TestParse:
    """Tests for the parser."""

    def test_literals(self):
        assert parse("true") == Literal(True)
        assert parse("null") == Literal(None)
        assert parse("undefined") == Literal(UNDEFINED)
        assert parse("'x'") == Literal("x")

    def test_member_chain(self):
        node = parse("$json.a[0]")
        assert node == Member(
            Member(Identifier("$json"), Literal("a")),
            Literal(0),
            computed=True,
        )

    def test_precedence(self):
        node = parse("1 + 2 * 3")
        assert node == Binary("+", Literal(1), Binary("*", Literal(2), Literal(3)))

    def test_left_associative(self):
        node = parse("10 - 4 - 3")
        assert node == Binary("-", Binary("-", Literal(10), Literal(4)), Literal(3))

    def test_exponent_right_associative(self):
        node = parse("2 ** 3 ** 2")
        assert node == Binary("**", Literal(2), Binary("**", Literal(3), Literal(2)))

    def test_unary_binds_looser_than_exponent(self):
        assert parse("-2 ** 2") == Unary("-", Binary("**", Literal(2), Literal(2)))

    def test_logical_and_nullish(self):
        node = parse("a || b && c ?? d")
        assert node == Logical(
            "??",
            Logical("||", Identifier("a"), Logical("&&", Identifier("b"), Identifier("c"))),
            Identifier("d"),
        )

    def test_ternary(self):
        node = parse("a ? b : c ? d : e")
        assert node == Conditional(
            Identifier("a"),
            Identifier("b"),
            Conditional(Identifier("c"), Identifier("d"), Identifier("e")),
        )

    def test_call(self):
        node = parse("Math.max(1, 5)")
        assert node == Call(Member(Identifier("Math"), Literal("max")), (Literal(1), Literal(5)))

    def test_optional_chain(self):
        node = parse("a?.b.c")
        assert isinstance(node, OptionalChain)
        assert node.expression == Member(
            Member(Identifier("a"), Literal("b"), optional=True),
            Literal("c"),
        )

    def test_new(self):
        assert parse("new Date(0)") == New(Identifier("Date"), (Literal(0),))
        assert parse("new Date") == New(Identifier("Date"), ())

    def test_array_and_object(self):
        assert parse("[1, 2,]") == ArrayLiteral((Literal(1), Literal(2)))
        node = parse("{a: 1, 'b c': 2, d}")
        assert node == ObjectLiteral(
            (("a", Literal(1)), ("b c", Literal(2)), ("d", Identifier("d")))
        )

    def test_arrow_single_param(self):
        node = parse("x => x.id")
        assert node == Arrow(("x",), Member(Identifier("x"), Literal("id")))

    def test_arrow_multiple_params(self):
        node = parse("(a, b) => a + b")
        assert node == Arrow(("a", "b"), Binary("+", Identifier("a"), Identifier("b")))

    def test_arrow_no_params(self):
        assert parse("() => 1") == Arrow((), Literal(1))

    def test_parenthesized_is_not_arrow(self):
        assert parse("(a)") == Identifier("a")

    def test_typeof(self):
        assert parse("typeof a") == Unary("typeof", Identifier("a"))

    def test_in_operator(self):
        assert parse("'a' in obj") == Binary("in", Literal("a"), Identifier("obj"))

    def test_keyword_property_names(self):
        node = parse("a.new.in")
        assert node == Member(Member(Identifier("a"), Literal("new")), Literal("in"))

    def test_cached(self):
        assert parse("1 + 1") is parse("1 + 1")

    @pytest.mark.parametrize(
        "source",
        [
            "",
            "a =",
            "a = 1",
            "1 +",
            "(1",
            "a b",
            "function() {}",
            "this",
            "a; b",
            "[1, 2",
            "{a 1}",
            "a ? b",
            "var x",
        ],
    )
    def test_syntax_errors(self, source):
        with pytest.raises(ExpressionError) as exc_info:
            parse(source)
        assert exc_info.value.code == "EXPRESSION_SYNTAX"
