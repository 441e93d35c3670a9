"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range

KNOWN_LANGUAGES = ("ko", "en", "ja")

DEFAULT_STOPWORDS = [
    "a", "an", "the", "and", "or", "but", "is", "are", "was", "were",
    "in", "on", "at", "to", "for", "with", "by", "about", "as", "of",
]


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


class CacheConfig(BaseModel):
    """TTL tiers for the result cache registry."""

    default_ttl: str = Field("5m", description="TTL of the general tier (search and match results)")
    short_ttl: str = Field("1m", description="TTL of the user tier")
    long_ttl: str = Field("30m", description="TTL of the static tier")
    sweep_interval: str = Field("1m", description="How often expired entries are purged")

    @field_validator("default_ttl", "short_ttl", "long_ttl", "sweep_interval")
    @classmethod
    def validate_duration(cls, v: str) -> str:
        """Reject durations that cannot be parsed or exceed one day."""
        try:
            validate_duration_range(parse_duration(v), min_seconds=1, max_seconds=86400, label="TTL")
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        return v

    @model_validator(mode="after")
    def validate_tier_order(self):
        """Short tier must not outlive the default tier, nor default the long tier."""
        if not self.short_ttl_seconds <= self.default_ttl_seconds <= self.long_ttl_seconds:
            raise ValueError("Cache TTLs must satisfy short_ttl <= default_ttl <= long_ttl")
        return self

    @property
    def default_ttl_seconds(self) -> int:
        return parse_duration(self.default_ttl)

    @property
    def short_ttl_seconds(self) -> int:
        return parse_duration(self.short_ttl)

    @property
    def long_ttl_seconds(self) -> int:
        return parse_duration(self.long_ttl)

    @property
    def sweep_interval_seconds(self) -> int:
        return parse_duration(self.sweep_interval)


class GeoConfig(BaseModel):
    """Geodistance settings."""

    default_max_distance_km: float = Field(
        50.0, ge=0, allow_inf_nan=False, description="Radius used when a request omits maxDistance"
    )
    earth_radius_km: float = Field(
        6371.0, gt=0, allow_inf_nan=False, description="Sphere radius for the haversine formula"
    )


class ScoringWeights(BaseModel):
    """Constants of the 0-100 match score.

    Defaults reproduce the production scoring policy. Every value can be
    overridden from the ``scoring`` section of the YAML file.
    """

    base_score: float = Field(50.0, ge=0, le=100)

    keyword_points_per_match: float = Field(5.0, ge=0)
    keyword_max_points: float = Field(25.0, ge=0)
    min_keyword_length: int = Field(3, ge=1, description="Shorter words are not keywords")
    stopwords: List[str] = Field(default_factory=lambda: list(DEFAULT_STOPWORDS))

    skill_max_points: float = Field(25.0, ge=0)

    budget_close_ratio: float = Field(0.1, ge=0)
    budget_close_bonus: float = Field(10.0, ge=0)
    budget_near_ratio: float = Field(0.2, ge=0)
    budget_near_bonus: float = Field(5.0, ge=0)
    budget_far_ratio: float = Field(0.5, ge=0)
    budget_far_penalty: float = Field(10.0, ge=0)

    availability_match_bonus: float = Field(5.0, ge=0)
    availability_mismatch_penalty: float = Field(5.0, ge=0)

    remote_mismatch_penalty: float = Field(20.0, ge=0)

    rating_multiplier: float = Field(2.0, ge=0)
    rating_max_points: float = Field(10.0, ge=0)
    rating_count_divisor: float = Field(2.0, gt=0)
    rating_count_max_points: float = Field(5.0, ge=0)

    @field_validator("stopwords")
    @classmethod
    def normalize_stopwords(cls, v: List[str]) -> List[str]:
        """Lowercase and strip stopwords, dropping empties."""
        return [word.strip().lower() for word in v if word and word.strip()]

    @model_validator(mode="after")
    def validate_budget_bands(self):
        """Budget bands must widen: close <= near < far."""
        if not self.budget_close_ratio <= self.budget_near_ratio < self.budget_far_ratio:
            raise ValueError(
                "Budget ratios must satisfy budget_close_ratio <= budget_near_ratio < budget_far_ratio"
            )
        return self


class RelevanceWeights(BaseModel):
    """Field weights for ordering multilingual search hits."""

    title: float = Field(3.0, ge=0)
    description: float = Field(1.0, ge=0)
    tags: float = Field(2.0, ge=0)


class SearchConfig(BaseModel):
    """Multilingual search settings."""

    supported_languages: List[str] = Field(default_factory=lambda: list(KNOWN_LANGUAGES))
    fallback_language: str = Field("en", description="Used when detection finds nothing supported")
    default_limit: int = Field(20, ge=1, le=100)
    max_limit: int = Field(100, ge=1, le=500)
    relevance: RelevanceWeights = Field(default_factory=RelevanceWeights)

    @field_validator("supported_languages")
    @classmethod
    def validate_languages(cls, v: List[str]) -> List[str]:
        """Only languages with a normalization strategy can be enabled."""
        normalized = []
        for code in v:
            code = code.strip().lower()
            if code not in KNOWN_LANGUAGES:
                raise ValueError(
                    f"Unsupported language '{code}'. Must be one of: {', '.join(KNOWN_LANGUAGES)}"
                )
            if code not in normalized:
                normalized.append(code)
        if not normalized:
            raise ValueError("At least one supported language is required")
        return normalized

    @field_validator("fallback_language")
    @classmethod
    def lowercase_fallback(cls, v: str) -> str:
        return v.strip().lower()

    @model_validator(mode="after")
    def validate_fallback_supported(self):
        if self.fallback_language not in self.supported_languages:
            raise ValueError(
                f"fallback_language '{self.fallback_language}' must be one of supported_languages"
            )
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit cannot exceed max_limit")
        return self


class MatchingConfig(BaseModel):
    """Engineer matching pipeline settings."""

    candidate_type: str = Field("engineer", min_length=1)
    max_results: int = Field(10, ge=1, le=100, description="Ranked results returned per request")
    summary_top_n: int = Field(3, ge=1, le=10, description="Results handed to the summarizer")


class SummarizerConfig(BaseModel):
    """Optional natural-language recommendation over the top results."""

    enabled: bool = Field(True, description="Set false to never call the summarizer")
    api_base: str = Field("https://api.openai.com/v1", min_length=1)
    model: str = Field("gpt-4o", min_length=1)
    temperature: float = Field(0.7, ge=0, le=2)
    max_tokens: int = Field(1000, ge=1, le=8000)
    timeout_seconds: float = Field(5.0, gt=0, le=60)
    failure_threshold: int = Field(5, ge=1, description="Failures before the circuit opens")
    reset_timeout_seconds: float = Field(30.0, gt=0, description="Open-circuit cool-down")
    response_language: str = Field("English", min_length=1)

    @field_validator("api_base")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(LogFormat.KEY_VALUE, description="Log output format (json or key-value)")

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object. Every section has working defaults."""

    cache: CacheConfig = Field(default_factory=CacheConfig)
    geo: GeoConfig = Field(default_factory=GeoConfig)
    scoring: ScoringWeights = Field(default_factory=ScoringWeights)
    search: SearchConfig = Field(default_factory=SearchConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    summarizer: SummarizerConfig = Field(default_factory=SummarizerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
