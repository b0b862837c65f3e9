"""flowexpr configuration loader."""

import os
import re
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from flowexpr.errors import create_error
from flowexpr.logging import get_logger
from flowexpr.types import LogFormat, LogLevel, ValidationIssue, ValidationResult

from .models import EngineConfig, LimitsConfig

CONFIG_PATH_ENV = "FLOWEXPR_CONFIG_PATH"

logger = get_logger("config")


# ${NAME}, ${NAME:-fallback} or ${NAME:?message}
_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<mode>[?-])(?P<arg>[^}]*))?\}")


def resolve_env_vars(value: str) -> str:
    """Substitute ``${NAME}`` references with environment values.

    ``${NAME:-fallback}`` substitutes ``fallback`` when NAME is unset,
    ``${NAME:?message}`` fails with ``message``. A bare ``${NAME}`` must
    be set.

    Example:
        >>> resolve_env_vars("${FLOWEXPR_UNSET_VAR:-json}")
        'json'

    Raises:
        ExpressionError(CONFIG_INVALID): A required variable is unset
    """

    def substitute(match: re.Match[str]) -> str:
        name = match.group("name")
        current = os.environ.get(name)
        if current is not None:
            return current

        mode, arg = match.group("mode"), match.group("arg")
        if mode == "-":
            return arg or ""
        message = arg if mode == "?" and arg else f"Environment variable {name} is required but not set"
        raise create_error("CONFIG_INVALID", detail=message)

    return _ENV_REFERENCE.sub(substitute, value)


def _interpolate(data: Any) -> Any:
    """Apply ``resolve_env_vars`` to every string in a parsed YAML tree."""
    if isinstance(data, str):
        return resolve_env_vars(data)
    if isinstance(data, list):
        return [_interpolate(entry) for entry in data]
    if isinstance(data, dict):
        return {key: _interpolate(entry) for key, entry in data.items()}
    return data


def _as_int(value: Any) -> int | None:
    """Accept ints and numeric strings (env interpolation yields strings)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class ConfigLoader:
    """Load and validate engine configuration."""

    def __init__(self) -> None:
        self._config: EngineConfig | None = None
        self._config_path: Path | None = None

    def load(self, path: str | Path | None = None, use_defaults: bool = True) -> EngineConfig:
        """Read engine settings from a YAML file.

        Without ``path`` the file is looked up in $FLOWEXPR_CONFIG_PATH,
        then ./flowexpr.yaml, then ~/.flowexpr/config.yaml. Strings in
        the file may reference environment variables (see
        ``resolve_env_vars``).

        Args:
            path: Explicit config file
            use_defaults: Fall back to built-in defaults when no file exists

        Raises:
            ExpressionError(CONFIG_INVALID): Missing file (with
                use_defaults=False), bad YAML or failed validation
        """
        if path is None:
            path = self._resolve_config_path()

        config_path = Path(path)

        if not config_path.exists():
            if use_defaults:
                logger.debug("No config file found, using default configuration")
                return self.load_defaults()
            raise create_error(
                "CONFIG_INVALID",
                detail=f"No config file at {config_path}",
            )

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Cannot parse {config_path}: {e}",
            ) from e

        if not isinstance(data, dict):
            raise create_error(
                "CONFIG_INVALID",
                detail="Configuration root must be a mapping",
            )

        data = _interpolate(data)
        return self.load_from_dict(data, config_path)

    def load_defaults(self) -> EngineConfig:
        """Load default configuration without a file."""
        return self.load_from_dict({})

    def load_from_dict(
        self, data: dict[str, Any], config_path: Path | None = None
    ) -> EngineConfig:
        """Build an EngineConfig from already-parsed data.

        Unknown keys are logged as warnings; invalid values raise
        ExpressionError(CONFIG_INVALID) listing every problem.
        """
        validation = self.validate(data)
        if not validation.valid:
            error_messages = [f"- {issue.path}: {issue.message}" for issue in validation.errors]
            raise create_error(
                "CONFIG_INVALID",
                detail="Invalid engine configuration:\n" + "\n".join(error_messages),
            )
        for warning in validation.warnings:
            logger.warning(warning.message, path=warning.path)

        try:
            config = self._convert_field(EngineConfig, data)
        except (TypeError, ValueError) as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Failed to parse configuration: {e}",
            ) from e

        self._config = config
        self._config_path = config_path
        logger.debug("Configuration loaded", path=str(config_path) if config_path else None)
        return config

    def validate(self, data: dict[str, Any]) -> ValidationResult:
        """Check parsed config data and report every issue found."""
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        valid_keys = {f.name for f in fields(EngineConfig)}
        for key in data:
            if key not in valid_keys:
                warnings.append(
                    ValidationIssue(
                        path=key,
                        message=f"Unknown configuration key: {key}",
                        severity="warning",
                    )
                )

        limits = data.get("limits")
        if limits is not None:
            if not isinstance(limits, dict):
                errors.append(ValidationIssue(path="limits", message="limits must be a dictionary"))
            else:
                limit_names = {f.name for f in fields(LimitsConfig)}
                for key, value in limits.items():
                    if key not in limit_names:
                        warnings.append(
                            ValidationIssue(
                                path=f"limits.{key}",
                                message=f"Unknown limit: {key}",
                                severity="warning",
                            )
                        )
                        continue
                    number = _as_int(value)
                    if number is None or number <= 0:
                        errors.append(
                            ValidationIssue(
                                path=f"limits.{key}",
                                message=f"{key} must be a positive integer",
                            )
                        )

        logging_data = data.get("logging")
        if logging_data is not None:
            if not isinstance(logging_data, dict):
                errors.append(
                    ValidationIssue(path="logging", message="logging must be a dictionary")
                )
            else:
                level = logging_data.get("level")
                if level is not None and level not in {lv.value for lv in LogLevel}:
                    errors.append(
                        ValidationIssue(
                            path="logging.level",
                            message=f"level must be one of {[lv.value for lv in LogLevel]}",
                        )
                    )
                fmt = logging_data.get("format")
                if fmt is not None and fmt not in {f.value for f in LogFormat}:
                    errors.append(
                        ValidationIssue(
                            path="logging.format",
                            message=f"format must be one of {[f.value for f in LogFormat]}",
                        )
                    )

        decode = data.get("decode_percent_encoding")
        if decode is not None and not isinstance(decode, bool):
            errors.append(
                ValidationIssue(
                    path="decode_percent_encoding",
                    message="decode_percent_encoding must be a boolean",
                )
            )

        return ValidationResult(valid=True, errors=errors, warnings=warnings)

    def get(self) -> EngineConfig:
        """Get current configuration.

        Raises:
            ExpressionError(CONFIG_INVALID): If configuration not loaded
        """
        if self._config is None:
            raise create_error("CONFIG_INVALID", detail="Configuration not loaded")
        return self._config

    def reload(self) -> EngineConfig:
        """Reload configuration from the last loaded file."""
        if self._config_path is None:
            raise create_error("CONFIG_INVALID", detail="No config path set, cannot reload")
        return self.load(self._config_path)

    def _resolve_config_path(self) -> Path:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        if env_path:
            return Path(env_path)

        local_path = Path("flowexpr.yaml")
        if local_path.exists():
            return local_path

        home_path = Path.home() / ".flowexpr" / "config.yaml"
        if home_path.exists():
            return home_path

        return local_path

    def _convert_field(self, field_type: Any, value: Any) -> Any:
        """Coerce a parsed YAML value into the annotated dataclass field type."""
        if value is None:
            return None

        if hasattr(field_type, "__dataclass_fields__"):
            if isinstance(value, dict):
                kwargs = {}
                for f in fields(field_type):
                    if value.get(f.name) is not None:
                        kwargs[f.name] = self._convert_field(f.type, value[f.name])
                return field_type(**kwargs)
            return value

        if hasattr(field_type, "__mro__") and any(
            base.__name__ == "Enum" for base in field_type.__mro__
        ):
            if isinstance(value, str):
                return field_type(value)
            return value

        if field_type is int:
            number = _as_int(value)
            return number if number is not None else value

        return value


# Convenience singleton
_default_loader: ConfigLoader | None = None


def get_config_loader() -> ConfigLoader:
    """Get default config loader singleton."""
    global _default_loader  # noqa: PLW0603
    if _default_loader is None:
        _default_loader = ConfigLoader()
    return _default_loader


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Convenience function to load config.

    Args:
        path: Optional path to config file

    Returns:
        Loaded EngineConfig instance
    """
    return get_config_loader().load(path)
