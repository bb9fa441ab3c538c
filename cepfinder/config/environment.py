"""Environment variable loading and validation."""

import os
from typing import Optional

from .duration import DurationParseError, parse_duration, validate_duration_range
from .exceptions import ConfigurationError

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_LOG_FORMATS = ["json", "key-value"]


class EnvironmentConfig:
    """Environment variable configuration holder.

    Every field is optional; a value that is set overrides the YAML file.
    """

    def __init__(
        self,
        deadline_seconds: Optional[float] = None,
        request_timeout_seconds: Optional[float] = None,
        user_agent: Optional[str] = None,
        log_level: Optional[str] = None,
        log_format: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        """Initialize environment configuration."""
        self.deadline_seconds = deadline_seconds
        self.request_timeout_seconds = request_timeout_seconds
        self.user_agent = user_agent
        self.log_level = log_level
        self.log_format = log_format
        self.environment = environment or "local"


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Optional environment variables:
    - CEPFINDER_DEADLINE: Global race deadline (e.g. "1s", "750ms")
    - CEPFINDER_REQUEST_TIMEOUT: Per-request timeout for each provider
    - CEPFINDER_USER_AGENT: User-Agent sent to the providers
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_FORMAT: Override log format (json, key-value)
    - ENVIRONMENT: Environment label attached to every log record

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If a variable is set to an invalid value
    """
    errors = []

    deadline_seconds = _duration_from_env("CEPFINDER_DEADLINE", errors)
    request_timeout_seconds = _duration_from_env("CEPFINDER_REQUEST_TIMEOUT", errors)

    user_agent = os.getenv("CEPFINDER_USER_AGENT")
    if user_agent is not None and not user_agent.strip():
        errors.append("Invalid CEPFINDER_USER_AGENT: cannot be empty")
        user_agent = None

    log_level = os.getenv("LOG_LEVEL")
    if log_level:
        if log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(
                f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        log_level = log_level.upper()

    log_format = os.getenv("LOG_FORMAT")
    if log_format:
        if log_format.lower() not in VALID_LOG_FORMATS:
            errors.append(
                f"Invalid LOG_FORMAT: '{log_format}'. Must be one of: {', '.join(VALID_LOG_FORMATS)}"
            )
        log_format = log_format.lower()

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Check the values in your .env file",
                "Durations look like '1s', '750ms' or 'PT1.5S'",
                "Unset a variable to fall back to the configuration file",
            ],
        )

    return EnvironmentConfig(
        deadline_seconds=deadline_seconds,
        request_timeout_seconds=request_timeout_seconds,
        user_agent=user_agent.strip() if user_agent else None,
        log_level=log_level or None,
        log_format=log_format or None,
        environment=os.getenv("ENVIRONMENT"),
    )


def _duration_from_env(name: str, errors: list) -> Optional[float]:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        seconds = parse_duration(raw)
        validate_duration_range(seconds)
        return seconds
    except DurationParseError as e:
        errors.append(f"Invalid {name}: {e}")
        return None
