"""Shared enumerations for flowexpr."""

from enum import Enum


class LogLevel(str, Enum):
    """Log verbosity level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Log output format."""

    COLORED = "colored"
    JSON = "json"


class ExpressionKind(str, Enum):
    """How a placeholder body is resolved."""

    SIMPLE = "simple"  # Fast-path reference only
    COMPLEX = "complex"  # Needs the evaluator


class ReferenceKind(str, Enum):
    """Fast-path reference forms, in resolution priority order."""

    NODE = "node"
    VARIABLE = "variable"
    WORKFLOW = "workflow"
    EXECUTION = "execution"
    INDEXED_ITEM = "indexed_item"
    ITEM_PATH = "item_path"


class DiagnosticKind(str, Enum):
    """Kinds of diagnostic events emitted by the engine."""

    EVALUATION_FAILED = "evaluation_failed"
    UNRESOLVED = "unresolved"
    DECODE_FAILED = "decode_failed"
    CONTEXT_INVALID = "context_invalid"
