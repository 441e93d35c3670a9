"""Per-language text normalization and language detection."""

from .models import LANGUAGE_ALIASES, NORMALIZATION_STRATEGIES, Language, NormalizationStrategy
from .service import (
    TextNormalizer,
    detect_language,
    normalize,
    parse_accept_language,
    resolve_language,
)

__all__ = [
    "Language",
    "NormalizationStrategy",
    "NORMALIZATION_STRATEGIES",
    "LANGUAGE_ALIASES",
    "TextNormalizer",
    "normalize",
    "detect_language",
    "parse_accept_language",
    "resolve_language",
]
