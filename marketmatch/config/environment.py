"""Environment variable loading and validation."""

import os
from typing import Optional

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/marketmatch.db"

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Secrets and deployment settings that do not belong in the YAML file."""

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        summarizer_api_base: Optional[str] = None,
        database_url: Optional[str] = None,
        log_level: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        self.openai_api_key = openai_api_key
        self.summarizer_api_base = summarizer_api_base
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.log_level = log_level
        self.environment = environment or "local"

    @property
    def summarizer_available(self) -> bool:
        """Whether credentials for the external summarizer are present."""
        return bool(self.openai_api_key)


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    All variables are optional:
    - OPENAI_API_KEY: API key for the recommendation summarizer
    - SUMMARIZER_API_BASE: Override of the OpenAI-compatible API base URL
    - DATABASE_URL: Listing store URL (default: sqlite:///./data/marketmatch.db)
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - ENVIRONMENT: Environment label stamped on log records

    Raises:
        ConfigurationError: If a variable is present but invalid
    """
    errors = []

    openai_api_key = (os.getenv("OPENAI_API_KEY") or "").strip() or None
    summarizer_api_base = (os.getenv("SUMMARIZER_API_BASE") or "").strip() or None
    database_url = (os.getenv("DATABASE_URL") or "").strip() or None
    log_level = (os.getenv("LOG_LEVEL") or "").strip() or None
    environment = (os.getenv("ENVIRONMENT") or "").strip() or None

    if log_level and log_level.upper() not in _VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(_VALID_LOG_LEVELS)}"
        )

    if summarizer_api_base and not summarizer_api_base.startswith(("http://", "https://")):
        errors.append(f"Invalid SUMMARIZER_API_BASE: '{summarizer_api_base}'. Must be an http(s) URL")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and adjust the values",
                "Unset variables you do not need; every variable is optional",
            ],
        )

    return EnvironmentConfig(
        openai_api_key=openai_api_key,
        summarizer_api_base=summarizer_api_base,
        database_url=database_url,
        log_level=log_level.upper() if log_level else None,
        environment=environment,
    )
