"""Shared types for flowexpr.

Import from here rather than submodules:
    from flowexpr.types import LogLevel, ExpressionKind
"""

from .enums import (
    DiagnosticKind,
    ExpressionKind,
    LogFormat,
    LogLevel,
    ReferenceKind,
)
from .validation import ValidationIssue, ValidationResult

__all__ = [
    # Enums
    "LogLevel",
    "LogFormat",
    "ExpressionKind",
    "ReferenceKind",
    "DiagnosticKind",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
