"""Diagnostic events emitted while resolving templates.

The engine never logs directly. It reports what went wrong to a sink;
the default sink forwards to the structured logger, tests and editors
can collect events instead.
"""

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from flowexpr.logging import FlowExprLogger, get_logger
from flowexpr.types import DiagnosticKind


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem found while resolving a template."""

    kind: DiagnosticKind
    message: str
    expression: str | None = None  # Placeholder body, if any
    code: str | None = None  # ExpressionError code
    detail: str | None = None
    node_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "expression": self.expression,
            "code": self.code,
            "detail": self.detail,
            "node_id": self.node_id,
            "timestamp": self.timestamp.isoformat(),
        }


class DiagnosticSink(Protocol):
    """Receives diagnostics from an engine."""

    def emit(self, diagnostic: Diagnostic) -> None: ...


# Decode failures are routine (a literal "%" in text), keep them quiet
_DEBUG_KINDS = frozenset({DiagnosticKind.DECODE_FAILED, DiagnosticKind.UNRESOLVED})


class LoggingDiagnosticSink:
    """Forward diagnostics to the structured logger."""

    def __init__(self, logger: FlowExprLogger | None = None):
        self.logger = logger or get_logger("expression")

    def emit(self, diagnostic: Diagnostic) -> None:
        fields = {
            "kind": diagnostic.kind.value,
            "expression": diagnostic.expression,
            "code": diagnostic.code,
            "detail": diagnostic.detail,
            "node_id": diagnostic.node_id,
        }
        fields = {key: value for key, value in fields.items() if value is not None}
        if diagnostic.kind in _DEBUG_KINDS:
            self.logger.debug(diagnostic.message, **fields)
        else:
            self.logger.warning(diagnostic.message, **fields)


class CollectingDiagnosticSink:
    """Keep diagnostics in memory (tests, expression editors)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[Diagnostic] = []

    def emit(self, diagnostic: Diagnostic) -> None:
        with self._lock:
            self._events.append(diagnostic)

    @property
    def events(self) -> list[Diagnostic]:
        with self._lock:
            return list(self._events)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [event for event in self.events if event.kind == kind]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
