"""Tokenizer for the expression language."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from flowexpr.errors import create_error


class TokenKind(str, Enum):
    NUMBER = "number"
    STRING = "string"
    IDENT = "ident"
    PUNCT = "punct"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: Any
    position: int


# Longest first so "===" wins over "==" and "="
PUNCTUATORS = (
    "===", "!==", "**", "==", "!=", "<=", ">=", "&&", "||", "??", "?.", "=>",
    "+", "-", "*", "/", "%", "<", ">", "!", "?", ":", ".", ",",
    "(", ")", "[", "]", "{", "}", "=",
)

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def _is_ident_start(char: str) -> bool:
    return char != "" and (char.isalpha() or char in "_$")


def _is_ident_part(char: str) -> bool:
    return char != "" and (char.isalnum() or char in "_$")


class Lexer:
    """Convert an expression body into a list of tokens."""

    def __init__(self, source: str):
        self.source = source
        self.position = 0

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while True:
            token = self._next_token()
            tokens.append(token)
            if token.kind == TokenKind.EOF:
                return tokens

    def _error(self, detail: str, position: int | None = None) -> Exception:
        pos = self.position if position is None else position
        return create_error(
            "EXPRESSION_SYNTAX",
            detail=f"{detail} at position {pos}",
            expression=self.source,
            position=pos,
        )

    def _peek(self, offset: int = 0) -> str:
        index = self.position + offset
        return self.source[index] if index < len(self.source) else ""

    def _next_token(self) -> Token:
        source = self.source
        while self.position < len(source) and source[self.position].isspace():
            self.position += 1

        start = self.position
        if start >= len(source):
            return Token(TokenKind.EOF, None, start)

        char = source[start]

        if char.isdigit() or (char == "." and self._peek(1).isdigit()):
            return self._read_number()
        if char in "'\"":
            return self._read_string(char)
        if char == "`":
            raise self._error("Template literals are not supported")
        if _is_ident_start(char):
            while self.position < len(source) and _is_ident_part(source[self.position]):
                self.position += 1
            return Token(TokenKind.IDENT, source[start : self.position], start)

        for punct in PUNCTUATORS:
            if source.startswith(punct, start):
                # "a?.5:1" is a ternary, not optional chaining
                if punct == "?." and self._peek(2).isdigit():
                    continue
                self.position += len(punct)
                return Token(TokenKind.PUNCT, punct, start)

        raise self._error(f"Unexpected character {char!r}")

    def _read_number(self) -> Token:
        source = self.source
        start = self.position

        if source.startswith(("0x", "0X"), start):
            self.position += 2
            while self.position < len(source) and source[self.position] in "0123456789abcdefABCDEF":
                self.position += 1
            digits = source[start + 2 : self.position]
            if not digits:
                raise self._error("Invalid hexadecimal literal", start)
            return Token(TokenKind.NUMBER, int(digits, 16), start)

        while self._peek().isdigit():
            self.position += 1
        is_float = False
        if self._peek() == "." and self._peek(1).isdigit() or (
            self._peek() == "." and not _is_ident_start(self._peek(1))
        ):
            is_float = True
            self.position += 1
            while self._peek().isdigit():
                self.position += 1
        if self._peek() in ("e", "E"):
            offset = 2 if self._peek(1) in ("+", "-") else 1
            if self._peek(offset).isdigit():
                is_float = True
                self.position += offset
                while self._peek().isdigit():
                    self.position += 1

        text = source[start : self.position]
        if _is_ident_start(self._peek()):
            raise self._error(f"Invalid number literal {text + self._peek()!r}", start)

        if is_float:
            value = float(text)
            if value.is_integer() and abs(value) < 2**53:
                return Token(TokenKind.NUMBER, int(value), start)
            return Token(TokenKind.NUMBER, value, start)
        return Token(TokenKind.NUMBER, int(text), start)

    def _read_string(self, quote: str) -> Token:
        source = self.source
        start = self.position
        self.position += 1
        chars: list[str] = []

        while True:
            if self.position >= len(source):
                raise self._error("Unterminated string literal", start)
            char = source[self.position]
            if char == quote:
                self.position += 1
                return Token(TokenKind.STRING, "".join(chars), start)
            if char == "\n":
                raise self._error("Unterminated string literal", start)
            if char == "\\":
                chars.append(self._read_escape())
                continue
            chars.append(char)
            self.position += 1

    def _read_escape(self) -> str:
        # Positioned on the backslash
        escaped = self._peek(1)
        if escaped == "":
            raise self._error("Unterminated string literal")
        if escaped == "u":
            return self._read_hex_escape(2, 4)
        if escaped == "x":
            return self._read_hex_escape(2, 2)
        self.position += 2
        return _ESCAPES.get(escaped, escaped)

    def _read_hex_escape(self, skip: int, width: int) -> str:
        digits = self.source[self.position + skip : self.position + skip + width]
        if len(digits) != width or any(c not in "0123456789abcdefABCDEF" for c in digits):
            raise self._error("Invalid escape sequence")
        self.position += skip + width
        return chr(int(digits, 16))


def tokenize(source: str) -> list[Token]:
    """Tokenize an expression body.

    Raises:
        ExpressionError(EXPRESSION_SYNTAX): On malformed input
    """
    return Lexer(source).tokenize()
