"""Structured logging helpers shared by every engine component."""

import logging
from typing import Optional


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges the component field with per-call extras."""

    def process(self, msg, kwargs):
        extra = kwargs.get("extra", {})

        # Call-site extras win over the adapter's defaults
        kwargs["extra"] = {**self.extra, **extra}

        return msg, kwargs


def get_logger(name: str, component: Optional[str] = None):
    """Get a logger that stamps every record with a component field.

    Args:
        name: Logger name (typically __name__)
        component: Optional component identifier (e.g. "scoring", "cache")

    Returns:
        Logger or ComponentLoggerAdapter instance

    Example:
        >>> logger = get_logger(__name__, component="matching")
        >>> logger.info("Match completed", extra={"event": "match.completed"})
    """
    logger = logging.getLogger(name)

    if component:
        return ComponentLoggerAdapter(logger, {"component": component})

    return logger
