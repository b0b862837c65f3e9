"""Expression engine for {{ }} placeholders in node parameters."""

from .context import ContextPayload, ExpressionContext, build_scope
from .diagnostics import CollectingDiagnosticSink, Diagnostic, DiagnosticSink, LoggingDiagnosticSink
from .engine import ExpressionEngine, get_default_engine, resolve_value
from .formatter import format_value
from .paths import normalize_path, resolve_path
from .scanner import extract_bodies, has_placeholders, is_pure_placeholder, scan_placeholders
from .types import Placeholder, RenderResult
from .values import UNDEFINED

__all__ = [
    "ExpressionEngine",
    "ExpressionContext",
    "ContextPayload",
    "RenderResult",
    "Placeholder",
    "Diagnostic",
    "DiagnosticSink",
    "LoggingDiagnosticSink",
    "CollectingDiagnosticSink",
    "UNDEFINED",
    "build_scope",
    "extract_bodies",
    "format_value",
    "get_default_engine",
    "has_placeholders",
    "is_pure_placeholder",
    "normalize_path",
    "resolve_path",
    "resolve_value",
    "scan_placeholders",
]
