"""flowexpr configuration - Config loading and models."""

from .loader import (
    CONFIG_PATH_ENV,
    ConfigLoader,
    get_config_loader,
    load_config,
    resolve_env_vars,
)
from .models import EngineConfig, LimitsConfig, LoggingConfig

__all__ = [
    # Config models
    "EngineConfig",
    "LimitsConfig",
    "LoggingConfig",
    # Loader
    "ConfigLoader",
    "get_config_loader",
    "load_config",
    "CONFIG_PATH_ENV",
    # Utilities
    "resolve_env_vars",
]
