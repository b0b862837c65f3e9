"""flowexpr configuration data models."""

from dataclasses import dataclass, field

from flowexpr.types import LogFormat, LogLevel


@dataclass
class LimitsConfig:
    """Evaluation limits for complex expressions.

    Expressions are authored by trusted workflow builders, but a single
    placeholder must never be able to stall the calling node.
    """

    max_expression_length: int = 10_000  # Characters in one placeholder body
    max_steps: int = 100_000  # AST node evaluations per placeholder
    max_call_depth: int = 64  # Nested arrow-function / built-in calls
    max_string_length: int = 1_000_000  # Longest string a built-in may produce


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    truncate_at: int = 200


@dataclass
class EngineConfig:
    """Root configuration for the expression engine."""

    limits: LimitsConfig = field(default_factory=LimitsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    decode_percent_encoding: bool = True  # Decode %7B%7B...%7D%7D before scanning
