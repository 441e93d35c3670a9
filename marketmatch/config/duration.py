"""Duration parsing for cache TTLs and sweep intervals."""

import re

_HUMAN_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

_ISO_PATTERN = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$")
_HUMAN_PATTERN = re.compile(r"(\d+)\s*([smhd])")


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""


def parse_duration(duration_str: str) -> int:
    """Parse a duration string to whole seconds.

    Accepts human-readable values ("30s", "5m", "1h30m", "2d") and ISO-8601
    durations ("PT5M", "PT1H", "P1D").

    Examples:
        >>> parse_duration("5m")
        300
        >>> parse_duration("PT30M")
        1800
    """
    if not isinstance(duration_str, str):
        raise DurationParseError(f"Duration must be a string, got {type(duration_str).__name__}")

    duration_str = duration_str.strip()
    if not duration_str:
        raise DurationParseError("Duration string cannot be empty")

    if duration_str.upper().startswith("P"):
        return _parse_iso8601_duration(duration_str)
    return _parse_human_readable_duration(duration_str)


def _parse_iso8601_duration(duration_str: str) -> int:
    match = _ISO_PATTERN.match(duration_str.upper())
    if not match:
        raise DurationParseError(
            f"Invalid ISO-8601 duration format: '{duration_str}'. "
            "Expected format like 'P1D', 'PT1H30M', 'PT5M', or 'PT30S'"
        )

    days, hours, minutes, seconds = match.groups()
    total = (
        int(days or 0) * _HUMAN_UNITS["d"]
        + int(hours or 0) * _HUMAN_UNITS["h"]
        + int(minutes or 0) * _HUMAN_UNITS["m"]
        + int(float(seconds or 0))
    )

    if total == 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")
    return total


def _parse_human_readable_duration(duration_str: str) -> int:
    lowered = duration_str.lower()
    matches = _HUMAN_PATTERN.findall(lowered)
    if not matches:
        raise DurationParseError(
            f"Invalid duration format: '{duration_str}'. "
            "Expected format like '30s', '5m', '1h', '2d', or combinations like '1h30m'"
        )

    # Every character must belong to a number+unit pair
    consumed = "".join(f"{num}{unit}" for num, unit in matches)
    if consumed != re.sub(r"\s+", "", lowered):
        raise DurationParseError(
            f"Invalid characters in duration: '{duration_str}'. "
            "Use only digits and units: s (seconds), m (minutes), h (hours), d (days)"
        )

    total = sum(int(num) * _HUMAN_UNITS[unit] for num, unit in matches)
    if total == 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")
    return total


def validate_duration_range(
    duration_seconds: int,
    min_seconds: int = 1,
    max_seconds: int = 86400,
    label: str = "Duration",
) -> None:
    """Raise DurationParseError when a duration falls outside [min, max]."""
    if duration_seconds < min_seconds:
        raise DurationParseError(
            f"{label} too short: {seconds_to_human_readable(duration_seconds)}. "
            f"Minimum is {seconds_to_human_readable(min_seconds)}."
        )

    if duration_seconds > max_seconds:
        raise DurationParseError(
            f"{label} too long: {seconds_to_human_readable(duration_seconds)}. "
            f"Maximum is {seconds_to_human_readable(max_seconds)}."
        )


def seconds_to_human_readable(seconds: int) -> str:
    """Render seconds as "15 minutes", "1 hour", "2 days"."""
    for unit_seconds, unit_name in ((86400, "day"), (3600, "hour"), (60, "minute")):
        if seconds >= unit_seconds:
            value = seconds // unit_seconds
            return f"{value} {unit_name}{'s' if value != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"
