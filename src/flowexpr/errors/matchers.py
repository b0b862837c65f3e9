"""Error matchers for converting foreign exceptions to ExpressionErrors."""

import json
from typing import Any

from .errors import ErrorMatcher, MatchResult


class RecursionErrorMatcher(ErrorMatcher):
    """Matches interpreter recursion overflow."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, RecursionError)

    def extract(self, error: Exception) -> MatchResult:
        return MatchResult(
            code="EXPRESSION_LIMIT",
            context={"limit": "recursion", "detail": str(error)},
        )


class JSONErrorMatcher(ErrorMatcher):
    """Matches JSON.parse failures."""

    def matches(self, error: Exception) -> bool:
        """Check if error is a JSON decoding error.

        Args:
            error: Exception to check

        Returns:
            True if error came from the json module
        """
        return isinstance(error, json.JSONDecodeError)

    def extract(self, error: Exception) -> MatchResult:
        """Extract JSON error info.

        Args:
            error: Exception to extract from

        Returns:
            MatchResult with EXPRESSION_RUNTIME code
        """
        return MatchResult(
            code="EXPRESSION_RUNTIME",
            context={"error_type": "SyntaxError", "detail": f"JSON.parse: {error.msg}"},
        )


class ValueErrorMatcher(ErrorMatcher):
    """Matches type and value errors raised inside built-in functions."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, (ValueError, TypeError, ArithmeticError, KeyError, IndexError))

    def extract(self, error: Exception) -> MatchResult:
        return MatchResult(
            code="EXPRESSION_RUNTIME",
            context={"error_type": type(error).__name__, "detail": str(error)},
        )


class UnexpectedErrorMatcher(ErrorMatcher):
    """Anything else is a flowexpr bug."""

    def matches(self, error: Exception) -> bool:
        return True

    def extract(self, error: Exception) -> MatchResult:
        context: dict[str, Any] = {"error_type": type(error).__name__, "detail": str(error)}
        return MatchResult(code="INTERNAL_ERROR", context=context)


class ErrorMatcherChain:
    """Matchers tried in order; the first that matches classifies the error."""

    def __init__(self, matchers: list[ErrorMatcher] | None = None) -> None:
        # JSONDecodeError is a ValueError, so its matcher must come first
        self.matchers: list[ErrorMatcher] = matchers or [
            RecursionErrorMatcher(),
            JSONErrorMatcher(),
            ValueErrorMatcher(),
            UnexpectedErrorMatcher(),
        ]

    def match(self, error: Exception) -> MatchResult:
        for matcher in self.matchers:
            if matcher.matches(error):
                return matcher.extract(error)
        return UnexpectedErrorMatcher().extract(error)
