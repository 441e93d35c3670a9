"""Tests for the configuration module."""

from pathlib import Path

import pytest

from marketmatch.config import (
    AppConfig,
    CacheConfig,
    ConfigurationError,
    ScoringWeights,
    SearchConfig,
    load_config,
    parse_config_dict,
    validate_config_file,
)
from marketmatch.config.duration import (
    DurationParseError,
    parse_duration,
    seconds_to_human_readable,
    validate_duration_range,
)
from marketmatch.config.environment import DEFAULT_DATABASE_URL, load_environment_config
from marketmatch.config.validators import check_for_warnings

EXAMPLE_CONFIG = Path(__file__).parent.parent / "config.example.yaml"

ENV_VARS = ("OPENAI_API_KEY", "SUMMARIZER_API_BASE", "DATABASE_URL", "LOG_LEVEL", "ENVIRONMENT")


@pytest.fixture
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestDefaults:
    """Every section has working defaults."""

    def test_app_config_defaults(self):
        config = AppConfig()

        assert config.cache.default_ttl_seconds == 300
        assert config.cache.short_ttl_seconds == 60
        assert config.cache.long_ttl_seconds == 1800
        assert config.geo.default_max_distance_km == 50.0
        assert config.geo.earth_radius_km == 6371.0
        assert config.scoring.base_score == 50.0
        assert config.search.supported_languages == ["ko", "en", "ja"]
        assert config.search.fallback_language == "en"
        assert config.matching.candidate_type == "engineer"
        assert config.summarizer.timeout_seconds == 5.0
        assert config.logging.level == "INFO"
        assert config.logging.format == "key-value"

    def test_default_stopwords_include_for(self):
        assert "for" in ScoringWeights().stopwords


class TestConfigurationValidation:
    """Schema validation rules."""

    def test_ttl_tiers_must_be_ordered(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_dict({"cache": {"short_ttl": "10m", "default_ttl": "5m"}})

        assert "short_ttl <= default_ttl <= long_ttl" in str(exc_info.value)

    def test_bad_duration(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_dict({"cache": {"default_ttl": "soon"}})

        assert "cache -> default_ttl" in str(exc_info.value)

    def test_ttl_longer_than_a_day(self):
        with pytest.raises(ValueError):
            CacheConfig(long_ttl="2d")

    def test_unsupported_language(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_dict({"search": {"supported_languages": ["ko", "fr"]}})

        assert "Unsupported language 'fr'" in str(exc_info.value)

    def test_languages_are_normalized(self):
        config = SearchConfig(supported_languages=[" KO", "en", "ko"])
        assert config.supported_languages == ["ko", "en"]

    def test_fallback_must_be_supported(self):
        with pytest.raises(ValueError, match="fallback_language"):
            SearchConfig(supported_languages=["ko"], fallback_language="en")

    def test_default_limit_cannot_exceed_max(self):
        with pytest.raises(ValueError, match="default_limit"):
            SearchConfig(default_limit=50, max_limit=20)

    def test_budget_bands_must_widen(self):
        with pytest.raises(ValueError, match="Budget ratios"):
            ScoringWeights(budget_near_ratio=0.6)

    def test_stopwords_normalized(self):
        weights = ScoringWeights(stopwords=[" The ", "AND", "", "  "])
        assert weights.stopwords == ["the", "and"]

    def test_invalid_log_format(self):
        with pytest.raises(ConfigurationError, match="logging -> format"):
            parse_config_dict({"logging": {"format": "xml"}})

    def test_root_must_be_mapping(self):
        with pytest.raises(ConfigurationError, match="mapping"):
            parse_config_dict(["cache"])

    def test_empty_mapping_yields_defaults(self):
        assert parse_config_dict(None) == AppConfig()

    def test_every_error_is_reported(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_dict({"geo": {"earth_radius_km": -1}, "matching": {"max_results": 0}})

        assert len(exc_info.value.errors) == 2


class TestConfigurationWarnings:
    """Valid but suspicious settings emit UserWarnings."""

    def test_large_radius_warns(self):
        with pytest.warns(UserWarning, match="default_max_distance_km"):
            config = parse_config_dict({"geo": {"default_max_distance_km": 600}})

        assert config.geo.default_max_distance_km == 600

    def test_slow_summarizer_warns(self):
        with pytest.warns(UserWarning, match="timeout_seconds"):
            parse_config_dict({"summarizer": {"timeout_seconds": 20}})

    def test_check_for_warnings(self):
        messages = check_for_warnings(
            {
                "cache": {"default_ttl": "2h"},
                "matching": {"max_results": 80},
                "scoring": {"stopwords": ["the", "The", "and"]},
            }
        )

        assert len(messages) == 3
        assert any("default_ttl" in message for message in messages)
        assert any("max_results" in message for message in messages)
        assert any("Duplicate stopwords will be ignored: the" in message for message in messages)

    def test_unparseable_ttl_is_left_to_schema(self):
        assert check_for_warnings({"cache": {"default_ttl": "soon"}}) == []

    def test_quiet_for_defaults(self):
        assert check_for_warnings({}) == []


class TestConfigurationLoading:
    """Test configuration loading from YAML files."""

    def test_load_config_file(self, tmp_path, clean_env):
        config_path = tmp_path / "custom.yaml"
        config_path.write_text(
            "cache:\n  default_ttl: PT10M\n  long_ttl: 1h\nsearch:\n  fallback_language: ko\n",
            encoding="utf-8",
        )

        app_config, env_config = load_config(config_path)

        assert app_config.cache.default_ttl_seconds == 600
        assert app_config.cache.long_ttl_seconds == 3600
        assert app_config.search.fallback_language == "ko"
        assert env_config.database_url == DEFAULT_DATABASE_URL

    def test_defaults_without_file(self, tmp_path, clean_env):
        clean_env.chdir(tmp_path)

        app_config, _ = load_config()

        assert app_config == AppConfig()

    def test_config_yaml_in_working_directory(self, tmp_path, clean_env):
        clean_env.chdir(tmp_path)
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "config.yaml").write_text("matching:\n  max_results: 5\n", encoding="utf-8")

        app_config, _ = load_config()

        assert app_config.matching.max_results == 5

    def test_explicit_path_must_exist(self, tmp_path, clean_env):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "nonexistent.yaml")

    def test_invalid_yaml_syntax(self, tmp_path, clean_env):
        config_path = tmp_path / "broken.yaml"
        config_path.write_text("cache:\n  default_ttl: [5m\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Failed to parse YAML"):
            load_config(config_path)

    def test_example_config_is_valid(self, capsys):
        assert validate_config_file(EXAMPLE_CONFIG) is True
        assert "is valid" in capsys.readouterr().out

    def test_validate_config_file_reports_errors(self, tmp_path, capsys):
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("search:\n  default_limit: 0\n", encoding="utf-8")

        assert validate_config_file(config_path) is False
        assert "validation failed" in capsys.readouterr().out


class TestEnvironmentVariables:
    """Test environment variable loading."""

    def test_all_optional(self, clean_env):
        env_config = load_environment_config()

        assert env_config.openai_api_key is None
        assert env_config.database_url == DEFAULT_DATABASE_URL
        assert env_config.log_level is None
        assert env_config.environment == "local"
        assert env_config.summarizer_available is False

    def test_values_are_read(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", " sk-test ")
        clean_env.setenv("DATABASE_URL", "sqlite:///./other.db")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("ENVIRONMENT", "staging")

        env_config = load_environment_config()

        assert env_config.openai_api_key == "sk-test"
        assert env_config.database_url == "sqlite:///./other.db"
        assert env_config.log_level == "DEBUG"
        assert env_config.environment == "staging"
        assert env_config.summarizer_available is True

    def test_invalid_log_level(self, clean_env):
        clean_env.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "Invalid LOG_LEVEL" in str(exc_info.value)

    def test_invalid_api_base(self, clean_env):
        clean_env.setenv("SUMMARIZER_API_BASE", "ftp://llm.example.com")

        with pytest.raises(ConfigurationError, match="SUMMARIZER_API_BASE"):
            load_environment_config()

    def test_errors_are_collected(self, clean_env):
        clean_env.setenv("LOG_LEVEL", "LOUD")
        clean_env.setenv("SUMMARIZER_API_BASE", "llm.example.com")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert len(exc_info.value.errors) == 2


class TestDurationParsing:
    """Test duration string parsing."""

    @pytest.mark.parametrize(
        "value, seconds",
        [
            ("30s", 30),
            ("5m", 300),
            ("2h", 7200),
            ("1d", 86400),
            ("1h30m", 5400),
            ("1h 30m", 5400),
            ("PT5M", 300),
            ("PT1H30M", 5400),
            ("P1D", 86400),
            ("pt30s", 30),
        ],
    )
    def test_parse(self, value, seconds):
        assert parse_duration(value) == seconds

    @pytest.mark.parametrize("value", ["", "   ", "soon", "5x", "5m later", "0m", "PT0S", "P1W"])
    def test_parse_invalid(self, value):
        with pytest.raises(DurationParseError):
            parse_duration(value)

    def test_parse_non_string(self):
        with pytest.raises(DurationParseError, match="must be a string"):
            parse_duration(300)

    def test_validate_duration_range(self):
        validate_duration_range(300, min_seconds=60, max_seconds=3600)

        with pytest.raises(DurationParseError, match="too short"):
            validate_duration_range(30, min_seconds=60, label="TTL")
        with pytest.raises(DurationParseError, match="too long"):
            validate_duration_range(7200, max_seconds=3600)

    def test_seconds_to_human_readable(self):
        assert seconds_to_human_readable(1) == "1 second"
        assert seconds_to_human_readable(90) == "1 minute"
        assert seconds_to_human_readable(7200) == "2 hours"
        assert seconds_to_human_readable(86400) == "1 day"
