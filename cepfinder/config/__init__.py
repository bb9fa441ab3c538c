"""Configuration management module for cepfinder."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import apply_environment_overrides, load_config, validate_config_file
from .models import (
    AppConfig,
    HttpConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    ProviderConfig,
    RaceConfig,
)

__all__ = [
    # Main loader functions
    "load_config",
    "validate_config_file",
    "load_environment_config",
    "apply_environment_overrides",
    # Configuration models
    "AppConfig",
    "RaceConfig",
    "HttpConfig",
    "ProviderConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
