"""Configuration management for the matching engine."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_config_dict, validate_config_file
from .models import (
    AppConfig,
    CacheConfig,
    GeoConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    MatchingConfig,
    RelevanceWeights,
    ScoringWeights,
    SearchConfig,
    SummarizerConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "parse_config_dict",
    "validate_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "CacheConfig",
    "GeoConfig",
    "ScoringWeights",
    "RelevanceWeights",
    "SearchConfig",
    "MatchingConfig",
    "SummarizerConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
