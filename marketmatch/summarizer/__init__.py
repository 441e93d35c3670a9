"""Optional natural-language recommendation over top match results."""

from typing import Optional

from marketmatch.config.environment import EnvironmentConfig
from marketmatch.config.models import SummarizerConfig
from marketmatch.logging import get_logger

from .base import NullSummarizer, Summarizer
from .guard import CircuitBreaker, CircuitBreakerOpen, CircuitState, GuardedSummarizer
from .openai_client import OpenAIChatSummarizer, PromptRenderer

logger = get_logger(__name__, component="summarizer")


def build_summarizer(config: SummarizerConfig, env_config: Optional[EnvironmentConfig] = None) -> Summarizer:
    """Create the summarizer for the current configuration.

    Returns a NullSummarizer when disabled or when no API key is set,
    otherwise an OpenAIChatSummarizer wrapped in a GuardedSummarizer.
    """
    if not config.enabled or env_config is None or not env_config.summarizer_available:
        logger.info(
            "AI recommendations disabled",
            extra={"event": "summarizer.disabled", "enabled": config.enabled},
        )
        return NullSummarizer()

    if env_config.summarizer_api_base:
        config = config.model_copy(update={"api_base": env_config.summarizer_api_base.rstrip("/")})

    client = OpenAIChatSummarizer(api_key=env_config.openai_api_key, config=config)
    breaker = CircuitBreaker(
        "summarizer",
        failure_threshold=config.failure_threshold,
        reset_timeout_seconds=config.reset_timeout_seconds,
    )
    return GuardedSummarizer(client, timeout_seconds=config.timeout_seconds, breaker=breaker)


__all__ = [
    "Summarizer",
    "NullSummarizer",
    "OpenAIChatSummarizer",
    "PromptRenderer",
    "CircuitBreaker",
    "CircuitBreakerOpen",
    "CircuitState",
    "GuardedSummarizer",
    "build_summarizer",
]
