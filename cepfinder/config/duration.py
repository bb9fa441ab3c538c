"""Duration parsing utilities for configuration."""

import re


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""

    pass


def parse_duration(duration_str: str) -> float:
    """
    Parse a duration string to seconds.

    Supports bare numbers, human-readable formats and ISO-8601 durations:
    - Bare seconds: "1", "0.5"
    - Human-readable: "750ms", "1s", "1.5s", "2m", "1m30s"
    - ISO-8601: "PT1S", "PT0.75S", "PT2M"

    Args:
        duration_str: Duration string to parse

    Returns:
        Duration in seconds

    Raises:
        DurationParseError: If the duration string is invalid

    Examples:
        >>> parse_duration("750ms")
        0.75
        >>> parse_duration("PT1.5S")
        1.5
        >>> parse_duration("2")
        2.0
    """
    duration_str = duration_str.strip()

    if not duration_str:
        raise DurationParseError("Duration string cannot be empty")

    if re.fullmatch(r"\d+(?:\.\d+)?", duration_str):
        seconds = float(duration_str)
        if seconds == 0:
            raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")
        return seconds

    # Try ISO-8601 format first (starts with P)
    if duration_str.upper().startswith("P"):
        return _parse_iso8601_duration(duration_str)

    return _parse_human_readable_duration(duration_str)


def _parse_iso8601_duration(duration_str: str) -> float:
    """
    Parse ISO-8601 duration format.

    Supports: PT[n]H[n]M[n]S with fractional seconds
    Examples: PT1S, PT0.5S, PT1M30S

    Raises:
        DurationParseError: If the format is invalid
    """
    duration_str = duration_str.upper()

    pattern = r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?$"
    match = re.match(pattern, duration_str)

    if not match or duration_str == "PT":
        raise DurationParseError(
            f"Invalid ISO-8601 duration format: '{duration_str}'. "
            "Expected format like 'PT1S', 'PT0.5S' or 'PT1M30S'"
        )

    hours, minutes, seconds = match.groups()

    total_seconds = 0.0
    if hours:
        total_seconds += int(hours) * 3600
    if minutes:
        total_seconds += int(minutes) * 60
    if seconds:
        total_seconds += float(seconds)

    if total_seconds == 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")

    return total_seconds


def _parse_human_readable_duration(duration_str: str) -> float:
    """
    Parse human-readable duration format.

    Supports: 250ms, 1s, 1.5s, 2m, 1h
    Can combine multiple units: 1m30s, 1s500ms

    Raises:
        DurationParseError: If the format is invalid
    """
    # "ms" must be tried before "m"
    pattern = r"(\d+(?:\.\d+)?)\s*(ms|s|m|h)"
    matches = re.findall(pattern, duration_str.lower())

    if not matches:
        raise DurationParseError(
            f"Invalid duration format: '{duration_str}'. "
            "Expected format like '500ms', '1s', '1.5s', '2m', or combinations like '1m30s'"
        )

    # Check if the entire string was parsed (no invalid characters)
    parsed_str = "".join(f"{num}{unit}" for num, unit in matches)
    cleaned_input = re.sub(r"\s+", "", duration_str.lower())
    if parsed_str != cleaned_input:
        raise DurationParseError(
            f"Invalid characters in duration: '{duration_str}'. "
            "Use only numbers and units: ms, s (seconds), m (minutes), h (hours)"
        )

    unit_multipliers = {
        "ms": 0.001,
        "s": 1,
        "m": 60,
        "h": 3600,
    }

    total_seconds = 0.0
    for num, unit in matches:
        total_seconds += float(num) * unit_multipliers[unit]

    if total_seconds == 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")

    return total_seconds


def validate_duration_range(
    duration_seconds: float,
    min_seconds: float = 0.01,
    max_seconds: float = 300.0,
) -> None:
    """
    Validate that a duration is within acceptable range.

    Args:
        duration_seconds: Duration in seconds to validate
        min_seconds: Minimum allowed duration (default: 10 milliseconds)
        max_seconds: Maximum allowed duration (default: 5 minutes)

    Raises:
        DurationParseError: If duration is outside the valid range
    """
    if duration_seconds < min_seconds:
        raise DurationParseError(
            f"Duration too short: {format_duration(duration_seconds)}. "
            f"Minimum is {format_duration(min_seconds)}."
        )

    if duration_seconds > max_seconds:
        raise DurationParseError(
            f"Duration too long: {format_duration(duration_seconds)}. "
            f"Maximum is {format_duration(max_seconds)}."
        )


def format_duration(seconds: float) -> str:
    """
    Convert seconds to a short human-readable string.

    Examples:
        >>> format_duration(0.25)
        '250ms'
        >>> format_duration(1.5)
        '1.5s'
        >>> format_duration(120)
        '2m'
    """
    if seconds < 1:
        return f"{round(seconds * 1000)}ms"
    if seconds < 60 or seconds % 60:
        return f"{seconds:g}s"
    return f"{int(seconds // 60)}m"
