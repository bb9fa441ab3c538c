"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from cepfinder.domain.models import ProviderName

from .duration import DurationParseError, parse_duration, validate_duration_range

# Bounds for the race deadline and per-request timeout (seconds)
MIN_DURATION_SECONDS = 0.01
MAX_DURATION_SECONDS = 300.0


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


def _to_seconds(v: Union[str, int, float]) -> float:
    """Parse a duration field and check it against the configured bounds."""
    if isinstance(v, bool):
        raise ValueError(f"Expected a duration, got boolean {v}")
    try:
        seconds = parse_duration(str(v)) if not isinstance(v, (int, float)) else float(v)
        validate_duration_range(
            seconds, min_seconds=MIN_DURATION_SECONDS, max_seconds=MAX_DURATION_SECONDS
        )
    except DurationParseError as e:
        raise ValueError(str(e)) from e
    return seconds


class ProviderConfig(BaseModel):
    """Configuration for a single upstream provider."""

    name: ProviderName = Field(..., description="Provider name (BrasilAPI, ViaCEP)")
    base_url: Optional[str] = Field(
        None, description="Override for the provider base URL (scheme and host)"
    )
    enabled: bool = Field(True, description="Whether this provider takes part in the race")

    @field_validator("base_url")
    @classmethod
    def strip_base_url(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace and trailing slashes; empty means default."""
        if v is None:
            return None
        stripped = v.strip().rstrip("/")
        if not stripped:
            return None
        if not stripped.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://, got: {v}")
        return stripped

    model_config = {"use_enum_values": True}


class RaceConfig(BaseModel):
    """Race coordination settings."""

    deadline: float = Field(1.0, description="Global race deadline (seconds or duration string)")
    propagate_cancellation: bool = Field(
        False, description="Signal losing adapters to stop once the race is decided"
    )

    @field_validator("deadline", mode="before")
    @classmethod
    def parse_deadline(cls, v):
        """Accept durations such as '1s', '750ms' or 'PT1.5S'."""
        return _to_seconds(v)


class HttpConfig(BaseModel):
    """Outbound HTTP settings shared by every adapter."""

    request_timeout: float = Field(1.0, description="Per-request timeout (seconds or duration string)")
    user_agent: str = Field("cepfinder/1.0", min_length=1, description="User-Agent string")
    check_status: bool = Field(
        True, description="Report non-2xx responses as http_status failures"
    )

    @field_validator("request_timeout", mode="before")
    @classmethod
    def parse_timeout(cls, v):
        """Accept durations such as '1s', '750ms' or 'PT1.5S'."""
        return _to_seconds(v)

    @field_validator("user_agent")
    @classmethod
    def strip_user_agent(cls, v: str) -> str:
        """Strip whitespace from user agent."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("user_agent cannot be empty")
        return stripped


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True, "validate_default": True}


def _default_providers() -> List[ProviderConfig]:
    return [ProviderConfig(name=name) for name in ProviderName]


class AppConfig(BaseModel):
    """Root configuration object for cepfinder."""

    race: RaceConfig = Field(default_factory=RaceConfig, description="Race settings")
    http: HttpConfig = Field(default_factory=HttpConfig, description="HTTP settings")
    providers: List[ProviderConfig] = Field(
        default_factory=_default_providers,
        min_length=1,
        description="Providers taking part in the race",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    @model_validator(mode="after")
    def validate_providers(self):
        """Require at least one enabled provider and no duplicates."""
        enabled = [provider for provider in self.providers if provider.enabled]
        if not enabled:
            raise ValueError(
                "At least one provider must be enabled. All providers have enabled=false."
            )

        seen = set()
        for provider in self.providers:
            if provider.name in seen:
                raise ValueError(f"Duplicate provider: {provider.name} appears multiple times")
            seen.add(provider.name)

        return self

    def get_enabled_providers(self) -> List[ProviderConfig]:
        """Get list of enabled providers, in configuration order."""
        return [provider for provider in self.providers if provider.enabled]

    def select_providers(self, names: List[str]) -> None:
        """Restrict the race to the named providers (case-insensitive).

        Raises:
            ValueError: If a name is unknown
        """
        wanted = {name.lower() for name in names}
        known = {provider.name.lower() for provider in self.providers}
        unknown = sorted(wanted - known)
        if unknown:
            raise ValueError(f"Unknown provider(s): {', '.join(unknown)}")
        for provider in self.providers:
            provider.enabled = provider.name.lower() in wanted
