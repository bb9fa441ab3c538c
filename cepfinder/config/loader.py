"""Configuration loader for cepfinder."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .models import AppConfig
from .validators import check_for_warnings, emit_warnings

DEFAULT_CONFIG_CANDIDATES = [
    Path("cepfinder.yaml"),
    Path("config") / "cepfinder.yaml",
]


def load_config(
    config_path: Optional[Path] = None, warn: bool = True
) -> tuple[AppConfig, EnvironmentConfig]:
    """
    Load and validate configuration from YAML file and environment variables.

    Implements fallback logic for config file location:
    1. Use provided config_path if given (it must exist)
    2. Try cepfinder.yaml in current directory
    3. Try ./config/cepfinder.yaml
    4. Fall back to built-in defaults

    Environment variables override values from the file.

    Args:
        config_path: Optional path to configuration file
        warn: Emit configuration warnings; callers that apply further
            overrides pass False and call check_for_warnings themselves

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with validated configuration

    Raises:
        ConfigurationError: If configuration is invalid or an explicit file is missing
    """
    config_file = _find_config_file(config_path)
    config_dict = _read_yaml(config_file) if config_file else {}

    app_config = _validate(config_dict)

    try:
        env_config = load_environment_config()
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load environment configuration: {e}",
            suggestions=["Check the values in your .env file"],
        )

    apply_environment_overrides(app_config, env_config)

    if warn:
        emit_warnings(check_for_warnings(app_config))

    return app_config, env_config


def apply_environment_overrides(app_config: AppConfig, env_config: EnvironmentConfig) -> None:
    """Copy every environment value that is set onto the file configuration."""
    if env_config.deadline_seconds is not None:
        app_config.race.deadline = env_config.deadline_seconds
    if env_config.request_timeout_seconds is not None:
        app_config.http.request_timeout = env_config.request_timeout_seconds
    if env_config.user_agent:
        app_config.http.user_agent = env_config.user_agent
    if env_config.log_level:
        app_config.logging.level = env_config.log_level
    if env_config.log_format:
        app_config.logging.format = env_config.log_format


def _read_yaml(config_file: Path) -> Dict[str, Any]:
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration: {e}",
            suggestions=[
                "Check YAML syntax in your config file",
                "Ensure proper indentation (use spaces, not tabs)",
            ],
        )
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read configuration file: {e}",
            suggestions=[
                f"Ensure {config_file} is readable",
                "Check file permissions",
            ],
        )

    # An empty file means "all defaults"
    if config_dict is None:
        return {}
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"Configuration file must contain a mapping, got {type(config_dict).__name__}",
            suggestions=["Review cepfinder.example.yaml for the expected layout"],
        )
    return config_dict


def _validate(config_dict: Dict[str, Any]) -> AppConfig:
    """Validate a raw mapping, converting pydantic errors to ConfigurationError."""
    try:
        return AppConfig.model_validate(config_dict)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            error_msg = error["msg"]
            error_type = error["type"]

            if error_type == "missing":
                errors.append(f"Missing required field: {field_path}")
            elif "enum" in error_type:
                errors.append(f"Invalid value for '{field_path}': {error_msg}")
            elif field_path:
                errors.append(f"{field_path}: {error_msg}")
            else:
                errors.append(error_msg)

        raise ConfigurationError(
            "Configuration validation failed",
            errors=errors,
            suggestions=[
                "Review cepfinder.example.yaml for correct format",
                "Durations look like '1s', '750ms' or 'PT1.5S'",
                "Provider names are BrasilAPI and ViaCEP",
            ],
        )


def _find_config_file(config_path: Optional[Path] = None) -> Optional[Path]:
    """
    Find configuration file using fallback logic.

    Returns:
        Path to configuration file, or None when defaults should be used

    Raises:
        ConfigurationError: If an explicit path does not exist
    """
    if config_path:
        if not config_path.exists():
            raise ConfigurationError(
                f"Specified configuration file not found: {config_path}",
                suggestions=[
                    f"Ensure {config_path} exists",
                    "Omit --config to use the built-in defaults",
                ],
            )
        return config_path

    for candidate in DEFAULT_CONFIG_CANDIDATES:
        if candidate.exists():
            return candidate

    return None


def validate_config_file(config_path: Path) -> bool:
    """
    Validate a configuration file without reading environment variables.

    Args:
        config_path: Path to configuration file

    Returns:
        True if valid, False otherwise (errors are printed)
    """
    try:
        _validate(_read_yaml(config_path))
        print(f"✓ Configuration file {config_path} is valid")
        return True
    except ConfigurationError as e:
        print(f"✗ Configuration validation failed:\n{e}")
        return False
