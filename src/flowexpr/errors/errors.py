"""flowexpr error types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error source categories."""

    SYNTAX = "SYNTAX"
    EVALUATION = "EVALUATION"
    REFERENCE = "REFERENCE"
    LIMIT = "LIMIT"
    VALIDATION = "VALIDATION"
    SYSTEM = "SYSTEM"


@dataclass
class ExpressionError(Exception):
    """Structured error with context. Base exception for all flowexpr errors."""

    # Identity
    code: str  # e.g., "EXPRESSION_SYNTAX"
    category: ErrorCategory

    # Messages
    message: str  # Human-readable summary
    detail: str | None = None  # Extended explanation
    suggestion: str | None = None  # Actionable fix

    # Context
    expression: str | None = None  # Offending expression body
    position: int | None = None  # Offset into the expression, if known
    node_id: str | None = None  # Node whose parameter was being resolved

    # Error chain (max depth 3)
    cause: "ExpressionError | None" = None

    # Metadata
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Set Exception message."""
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for diagnostics and log records.

        Returns:
            Dictionary representation of the error
        """
        return {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "detail": self.detail,
            "suggestion": self.suggestion,
            "expression": self.expression,
            "position": self.position,
            "node_id": self.node_id,
            "timestamp": self.timestamp.isoformat(),
            "cause": self.cause.to_dict() if self.cause else None,
        }

    def with_context(
        self,
        expression: str | None = None,
        node_id: str | None = None,
    ) -> "ExpressionError":
        """Return copy with additional context.

        Args:
            expression: Optional expression body
            node_id: Optional node identifier

        Returns:
            New ExpressionError instance with updated context
        """
        return ExpressionError(
            code=self.code,
            category=self.category,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
            expression=expression or self.expression,
            position=self.position,
            node_id=node_id or self.node_id,
            cause=self.cause,
            timestamp=self.timestamp,
        )


@dataclass
class ErrorTemplate:
    """Template for creating errors."""

    code: str
    category: ErrorCategory
    message_template: str  # "Unexpected token '{token}'"
    detail_template: str | None = None
    suggestion_template: str | None = None


@dataclass
class MatchResult:
    """Result of matching an exception."""

    code: str
    context: dict[str, Any]


class ErrorMatcher(ABC):
    """Base class for exception matchers."""

    @abstractmethod
    def matches(self, error: Exception) -> bool:
        """Check if this matcher handles the error.

        Args:
            error: Exception to check

        Returns:
            True if this matcher can handle the error
        """

    @abstractmethod
    def extract(self, error: Exception) -> MatchResult:
        """Extract error code and context from the exception.

        Args:
            error: Exception to extract from

        Returns:
            MatchResult with error code and context
        """
