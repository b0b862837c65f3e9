"""flowexpr logging - Structured JSON or colored logging with trace context."""

from .colors import (
    CYAN,
    LIGHT_BLUE,
    MAGENTA,
    RED,
    RESET,
    YELLOW,
)
from .logger import (
    ColoredLogFormatter,
    FlowExprLogger,
    LogConfig,
    StructuredLogFormatter,
    configure_logging,
    get_logger,
    reset_loggers,
)

__all__ = [
    # Logger classes
    "FlowExprLogger",
    "LogConfig",
    "StructuredLogFormatter",
    "ColoredLogFormatter",
    "get_logger",
    "configure_logging",
    "reset_loggers",
    # Colors
    "RESET",
    "RED",
    "YELLOW",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
]
