"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def _section(config_dict: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = config_dict.get(name, {})
    return value if isinstance(value, dict) else {}


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Inspect a raw configuration dictionary for settings that are valid but
    likely unintended.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    summarizer = _section(config_dict, "summarizer")
    timeout = summarizer.get("timeout_seconds")
    if isinstance(timeout, (int, float)) and timeout > 10:
        warning_messages.append(
            f"summarizer.timeout_seconds ({timeout}) delays match responses for authorized callers"
        )

    cache = _section(config_dict, "cache")
    default_ttl = cache.get("default_ttl")
    if isinstance(default_ttl, str):
        try:
            if parse_duration(default_ttl) > 3600:
                warning_messages.append(
                    f"cache.default_ttl ({default_ttl}) keeps rankings for over an hour "
                    "when listings change outside this service"
                )
        except DurationParseError:
            # Reported by schema validation
            pass

    geo = _section(config_dict, "geo")
    radius = geo.get("default_max_distance_km")
    if isinstance(radius, (int, float)) and radius > 500:
        warning_messages.append(
            f"geo.default_max_distance_km ({radius}) is large; most candidates will pass the radius filter"
        )

    matching = _section(config_dict, "matching")
    max_results = matching.get("max_results")
    if isinstance(max_results, int) and max_results > 50:
        warning_messages.append(
            f"matching.max_results ({max_results}) returns long result pages"
        )

    scoring = _section(config_dict, "scoring")
    stopwords = scoring.get("stopwords")
    if isinstance(stopwords, list):
        normalized = [word.strip().lower() for word in stopwords if isinstance(word, str)]
        duplicates = sorted({word for word in normalized if normalized.count(word) > 1})
        if duplicates:
            warning_messages.append(
                f"Duplicate stopwords will be ignored: {', '.join(duplicates)}"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message as a UserWarning."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
