"""Recursive-descent parser for the expression language.

The grammar is a JavaScript expression subset. There are no statements,
assignments, loops or function declarations; the only functions are
single-expression arrow functions used as array callbacks.

Precedence, lowest first:
    ?:  ??  ||  &&  == != === !==  < <= > >= in  + -  * / %  unary  **  postfix
"""

from functools import lru_cache

from flowexpr.errors import ExpressionError, create_error

from .lexer import Token, TokenKind, tokenize
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
from .values import UNDEFINED

_LITERAL_KEYWORDS = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": UNDEFINED,
}

# Identifiers that would introduce statements or ambient access
_UNSUPPORTED_KEYWORDS = frozenset(
    {
        "function", "var", "let", "const", "if", "else", "for", "while", "do",
        "return", "class", "this", "import", "export", "delete", "void",
        "yield", "await", "async", "with", "switch", "throw", "try", "catch",
        "super", "instanceof",
    }
)

_EQUALITY = ("===", "!==", "==", "!=")
_RELATIONAL = ("<", "<=", ">", ">=")


class Parser:
    """Parse a token stream into an AST."""

    def __init__(self, source: str):
        self.source = source
        self.tokens = tokenize(source)
        self.index = 0

    # ── token helpers ─────────────────────────────────────────────

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _peek(self, offset: int = 1) -> Token:
        index = min(self.index + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind != TokenKind.EOF:
            self.index += 1
        return token

    def _is_punct(self, *values: str) -> bool:
        token = self.current
        return token.kind == TokenKind.PUNCT and token.value in values

    def _is_keyword(self, value: str) -> bool:
        token = self.current
        return token.kind == TokenKind.IDENT and token.value == value

    def _expect(self, value: str) -> Token:
        if not self._is_punct(value):
            raise self._error(f"Expected '{value}'")
        return self._advance()

    def _error(self, detail: str, token: Token | None = None) -> ExpressionError:
        token = token or self.current
        found = "end of expression" if token.kind == TokenKind.EOF else repr(token.value)
        return create_error(
            "EXPRESSION_SYNTAX",
            detail=f"{detail}, found {found} at position {token.position}",
            expression=self.source,
            position=token.position,
        )

    # ── grammar ───────────────────────────────────────────────────

    def parse(self) -> Node:
        if self.current.kind == TokenKind.EOF:
            raise self._error("Empty expression")
        node = self.parse_expression()
        if self._is_punct("="):
            raise self._error("Assignment is not allowed")
        if self.current.kind != TokenKind.EOF:
            raise self._error("Unexpected token")
        return node

    def parse_expression(self) -> Node:
        return self.parse_conditional()

    def parse_conditional(self) -> Node:
        test = self.parse_nullish()
        if not self._is_punct("?"):
            return test
        self._advance()
        consequent = self.parse_conditional()
        self._expect(":")
        alternate = self.parse_conditional()
        return Conditional(test, consequent, alternate)

    def parse_nullish(self) -> Node:
        left = self.parse_or()
        while self._is_punct("??"):
            self._advance()
            left = Logical("??", left, self.parse_or())
        return left

    def parse_or(self) -> Node:
        left = self.parse_and()
        while self._is_punct("||"):
            self._advance()
            left = Logical("||", left, self.parse_and())
        return left

    def parse_and(self) -> Node:
        left = self.parse_equality()
        while self._is_punct("&&"):
            self._advance()
            left = Logical("&&", left, self.parse_equality())
        return left

    def parse_equality(self) -> Node:
        left = self.parse_relational()
        while self._is_punct(*_EQUALITY):
            operator = self._advance().value
            left = Binary(operator, left, self.parse_relational())
        return left

    def parse_relational(self) -> Node:
        left = self.parse_additive()
        while self._is_punct(*_RELATIONAL) or self._is_keyword("in"):
            operator = self._advance().value
            left = Binary(operator, left, self.parse_additive())
        return left

    def parse_additive(self) -> Node:
        left = self.parse_multiplicative()
        while self._is_punct("+", "-"):
            operator = self._advance().value
            left = Binary(operator, left, self.parse_multiplicative())
        return left

    def parse_multiplicative(self) -> Node:
        left = self.parse_unary()
        while self._is_punct("*", "/", "%"):
            operator = self._advance().value
            left = Binary(operator, left, self.parse_unary())
        return left

    def parse_unary(self) -> Node:
        if self._is_punct("!", "-", "+"):
            operator = self._advance().value
            return Unary(operator, self.parse_unary())
        if self._is_keyword("typeof"):
            self._advance()
            return Unary("typeof", self.parse_unary())
        return self.parse_exponent()

    def parse_exponent(self) -> Node:
        base = self.parse_postfix()
        if self._is_punct("**"):
            self._advance()
            return Binary("**", base, self.parse_unary())
        return base

    def parse_postfix(self) -> Node:
        node = self.parse_primary()
        has_optional = False

        while True:
            if self._is_punct("."):
                self._advance()
                node = Member(node, Literal(self._property_name()))
            elif self._is_punct("?."):
                self._advance()
                has_optional = True
                if self._is_punct("("):
                    node = Call(node, self._arguments(), optional=True)
                elif self._is_punct("["):
                    self._advance()
                    key = self.parse_expression()
                    self._expect("]")
                    node = Member(node, key, computed=True, optional=True)
                else:
                    node = Member(node, Literal(self._property_name()), optional=True)
            elif self._is_punct("["):
                self._advance()
                key = self.parse_expression()
                self._expect("]")
                node = Member(node, key, computed=True)
            elif self._is_punct("("):
                node = Call(node, self._arguments())
            else:
                break

        return OptionalChain(node) if has_optional else node

    def _property_name(self) -> str:
        token = self.current
        if token.kind != TokenKind.IDENT:
            raise self._error("Expected property name")
        self._advance()
        return token.value

    def _arguments(self) -> tuple[Node, ...]:
        self._expect("(")
        args: list[Node] = []
        while not self._is_punct(")"):
            args.append(self.parse_expression())
            if not self._is_punct(")"):
                self._expect(",")
        self._expect(")")
        return tuple(args)

    def parse_primary(self) -> Node:
        token = self.current

        if token.kind in (TokenKind.NUMBER, TokenKind.STRING):
            self._advance()
            return Literal(token.value)

        if token.kind == TokenKind.IDENT:
            name = token.value
            if name in _LITERAL_KEYWORDS:
                self._advance()
                return Literal(_LITERAL_KEYWORDS[name])
            if name == "new":
                return self._parse_new()
            if name in _UNSUPPORTED_KEYWORDS:
                raise self._error(f"'{name}' is not supported in expressions")
            if self._peek().kind == TokenKind.PUNCT and self._peek().value == "=>":
                self._advance()
                self._advance()
                return Arrow((name,), self.parse_conditional())
            self._advance()
            return Identifier(name)

        if self._is_punct("("):
            params = self._arrow_params()
            if params is not None:
                return Arrow(params, self.parse_conditional())
            self._advance()
            node = self.parse_expression()
            self._expect(")")
            return node

        if self._is_punct("["):
            return self._parse_array()

        if self._is_punct("{"):
            return self._parse_object()

        raise self._error("Unexpected token")

    def _arrow_params(self) -> tuple[str, ...] | None:
        """If positioned on ``(a, b) =>``, consume it and return the params."""
        offset = 1
        params: list[str] = []
        expect_name = True

        while True:
            token = self._peek(offset)
            if token.kind == TokenKind.PUNCT and token.value == ")":
                if params and expect_name:
                    return None
                break
            if expect_name and token.kind == TokenKind.IDENT:
                params.append(token.value)
                expect_name = False
            elif not expect_name and token.kind == TokenKind.PUNCT and token.value == ",":
                expect_name = True
            else:
                return None
            offset += 1

        arrow = self._peek(offset + 1)
        if not (arrow.kind == TokenKind.PUNCT and arrow.value == "=>"):
            return None

        for name in params:
            if name in _LITERAL_KEYWORDS or name in _UNSUPPORTED_KEYWORDS:
                raise self._error(f"Invalid parameter name '{name}'")
        self.index += offset + 2
        return tuple(params)

    def _parse_new(self) -> Node:
        self._advance()
        callee: Node = Identifier(self._property_name())
        while self._is_punct("."):
            self._advance()
            callee = Member(callee, Literal(self._property_name()))
        args = self._arguments() if self._is_punct("(") else ()
        return New(callee, args)

    def _parse_array(self) -> Node:
        self._expect("[")
        elements: list[Node] = []
        while not self._is_punct("]"):
            elements.append(self.parse_expression())
            if not self._is_punct("]"):
                self._expect(",")
        self._expect("]")
        return ArrayLiteral(tuple(elements))

    def _parse_object(self) -> Node:
        self._expect("{")
        entries: list[tuple[str, Node]] = []
        while not self._is_punct("}"):
            token = self._advance()
            if token.kind == TokenKind.IDENT or token.kind == TokenKind.STRING:
                key = token.value
            elif token.kind == TokenKind.NUMBER:
                key = str(token.value)
            else:
                raise self._error("Expected property key", token)

            if self._is_punct(":"):
                self._advance()
                value = self.parse_expression()
            elif token.kind == TokenKind.IDENT and key not in _LITERAL_KEYWORDS:
                # Shorthand {a}
                value = Identifier(key)
            else:
                raise self._error("Expected ':'")
            entries.append((key, value))

            if not self._is_punct("}"):
                self._expect(",")
        self._expect("}")
        return ObjectLiteral(tuple(entries))


@lru_cache(maxsize=1024)
def parse(source: str) -> Node:
    """Parse an expression body into an AST (cached).

    Raises:
        ExpressionError(EXPRESSION_SYNTAX): On invalid syntax
    """
    return Parser(source).parse()
