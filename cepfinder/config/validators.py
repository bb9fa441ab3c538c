"""Additional validation utilities for configuration."""

import warnings
from typing import List

from .duration import format_duration
from .models import AppConfig


def check_for_warnings(app_config: AppConfig) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        app_config: Validated configuration (environment overrides applied)

    Returns:
        List of warning messages
    """
    warning_messages = []

    for provider in app_config.providers:
        if not provider.enabled:
            warning_messages.append(f"Provider '{provider.name}' is disabled and will be skipped")

    if len(app_config.get_enabled_providers()) == 1:
        warning_messages.append(
            "Only one provider is enabled; the race has no fallback if it fails"
        )

    # A request can outlive the race, which then reports a timeout instead of its failure
    if app_config.http.request_timeout > app_config.race.deadline:
        warning_messages.append(
            f"http.request_timeout ({format_duration(app_config.http.request_timeout)}) is longer "
            f"than race.deadline ({format_duration(app_config.race.deadline)})"
        )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
