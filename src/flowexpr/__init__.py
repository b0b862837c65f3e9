"""flowexpr - Expression resolution for workflow node parameters."""

from flowexpr.errors import ExpressionError
from flowexpr.expression import (
    UNDEFINED,
    CollectingDiagnosticSink,
    Diagnostic,
    ExpressionContext,
    ExpressionEngine,
    RenderResult,
    get_default_engine,
    resolve_path,
    resolve_value,
)
from flowexpr.items import extract_json_data, get_node_parameter, normalize_input_items, wrap_json_data

__version__ = "0.1.0"

__all__ = [
    "ExpressionEngine",
    "ExpressionContext",
    "ExpressionError",
    "RenderResult",
    "Diagnostic",
    "CollectingDiagnosticSink",
    "UNDEFINED",
    "get_default_engine",
    "resolve_value",
    "resolve_path",
    "extract_json_data",
    "wrap_json_data",
    "normalize_input_items",
    "get_node_parameter",
]
