"""flowexpr logging - Structured logging with OTEL trace context.

Usage:
    from flowexpr.logging import get_logger

    logger = get_logger("expression")
    logger.warning("Expression evaluation failed", expression="$json.a +")
"""

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TextIO

from opentelemetry import trace

from flowexpr.logging.colors import LEVEL_COLORS, LIGHT_BLUE, MAGENTA, RESET
from flowexpr.types import LogFormat, LogLevel

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "thread", "threadName",
        "message", "taskName",
    }
)

_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


def _trace_context() -> dict[str, str]:
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        if ctx.is_valid:
            return {
                "trace_id": format(ctx.trace_id, "032x"),
                "span_id": format(ctx.span_id, "016x"),
            }
    return {}


class StructuredLogFormatter(logging.Formatter):
    """JSON formatter with trace context injection.

    Formats log records as JSON with:
    - timestamp (ISO 8601)
    - level
    - component (logger name)
    - message
    - trace_id / span_id (if a span is recording)
    - Additional fields from extra
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_trace_context())
        log_data.update(_extra_fields(record))

        return json.dumps(log_data, default=str)


class ColoredLogFormatter(logging.Formatter):
    """Human-readable formatter: ``[COMPONENT] message {extra}``."""

    def __init__(self, truncate_at: int = 200):
        super().__init__()
        self.truncate_at = truncate_at

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname, RESET)
        component = record.name.rsplit(".", 1)[-1].upper()
        output = f"{MAGENTA}[{component}]{RESET} {color}{record.getMessage()}{RESET}"

        extra = _extra_fields(record)
        if extra:
            extra_str = str(extra)
            if len(extra_str) > self.truncate_at:
                extra_str = extra_str[: self.truncate_at] + "..."
            output += f" {LIGHT_BLUE}{extra_str}{RESET}"

        return output


@dataclass
class LogConfig:
    """Logger configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    truncate_at: int = 200
    output: TextIO = field(default=sys.stderr)


class FlowExprLogger:
    """Structured logger with trace context support.

    Wraps Python logging with:
    - Automatic trace context injection
    - Structured JSON (or colored) output
    - Keyword arguments become structured fields
    """

    def __init__(self, name: str, config: LogConfig | None = None):
        """Initialize logger.

        Args:
            name: Logger name (component name)
            config: Output configuration
        """
        self.name = name
        self._logger = logging.getLogger(f"flowexpr.{name}")
        self.configure(config or _default_config)

    def configure(self, config: LogConfig) -> None:
        """Apply level and format (for hot-reload).

        Args:
            config: New logger configuration
        """
        self._logger.setLevel(_LEVELS.get(config.level, logging.INFO))
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)

        handler = logging.StreamHandler(config.output)
        if config.format == LogFormat.COLORED:
            handler.setFormatter(ColoredLogFormatter(truncate_at=config.truncate_at))
        else:
            handler.setFormatter(StructuredLogFormatter())
        self._logger.addHandler(handler)

    @property
    def stdlib_logger(self) -> logging.Logger:
        """Underlying ``logging.Logger`` (for handlers and caplog)."""
        return self._logger

    def _log(self, level: int, message: str, **kwargs: Any) -> None:
        self._logger.log(level, message, extra=kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, message, **kwargs)


# Logger cache
_loggers: dict[str, FlowExprLogger] = {}
_default_config = LogConfig()


def get_logger(name: str) -> FlowExprLogger:
    """Get or create a structured logger.

    Args:
        name: Logger name (component name)

    Returns:
        FlowExprLogger instance
    """
    if name not in _loggers:
        _loggers[name] = FlowExprLogger(name)
    return _loggers[name]


def configure_logging(config: LogConfig) -> None:
    """Set the default configuration and apply it to every cached logger.

    Args:
        config: Logger configuration
    """
    global _default_config  # noqa: PLW0603
    _default_config = config
    for logger in _loggers.values():
        logger.configure(config)


def reset_loggers() -> None:
    """Reset logger cache and default configuration (for testing)."""
    global _loggers, _default_config  # noqa: PLW0603
    _loggers = {}
    _default_config = LogConfig()
