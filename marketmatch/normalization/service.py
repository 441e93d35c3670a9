"""Text normalization and language detection for multilingual matching.

This module implements:
1. normalize(): per-language canonicalization used on both queries and
   candidate fields, so substring tests compare like with like
2. detect_language(): pick a supported language from an Accept-Language
   header or a localized URL path (``/en/...``, ``/jp/...``)
3. resolve_language(): turn a ``lang`` request parameter into a supported code
"""

import re
import unicodedata
from typing import List, Optional, Sequence, Tuple

from .models import Language, NormalizationStrategy, resolve_code, strategy_for

DEFAULT_SUPPORTED_LANGUAGES: Tuple[str, ...] = tuple(language.value for language in Language)
DEFAULT_FALLBACK_LANGUAGE = Language.ENGLISH.value
AUTO_LANGUAGE = "auto"

_WHITESPACE_RE = re.compile(r"\s+")
# \w keeps letters and digits of every script; underscore goes too
_NON_WORD_RE = re.compile(r"[^\w\s]|_")


def normalize(text: Optional[str], language: Optional[str] = None) -> str:
    """Canonicalize free text for matching.

    Pure function of (text, language) and idempotent for every language.

    Args:
        text: Raw text (None is treated as empty)
        language: Language code; unknown codes use the Latin-script rules

    Returns:
        Normalized text with single spaces and no leading/trailing whitespace
    """
    if not text:
        return ""
    return _apply_strategy(text, strategy_for(language))


def _apply_strategy(text: str, strategy: NormalizationStrategy) -> str:
    if strategy.unicode_form:
        # Lowercasing can decompose characters, so normalize on both sides
        text = unicodedata.normalize(strategy.unicode_form, text)
        text = text.lower()
        text = unicodedata.normalize(strategy.unicode_form, text)
    else:
        text = text.lower()

    if strategy.strip_punctuation:
        text = _NON_WORD_RE.sub("", text)

    return _WHITESPACE_RE.sub(" ", text).strip()


class TextNormalizer:
    """Normalizer bound to a set of supported languages and a fallback.

    Wraps the module-level functions with the search configuration so that
    pipelines do not pass language settings around.
    """

    def __init__(
        self,
        supported_languages: Sequence[str] = DEFAULT_SUPPORTED_LANGUAGES,
        fallback_language: str = DEFAULT_FALLBACK_LANGUAGE,
    ):
        self.supported_languages = tuple(resolve_code(code) for code in supported_languages)
        self.fallback_language = resolve_code(fallback_language)

    def normalize(self, text: Optional[str], language: Optional[str] = None) -> str:
        return normalize(text, language)

    def detect_language(self, value: Optional[str]) -> str:
        return detect_language(value, self.supported_languages, self.fallback_language)

    def resolve_language(self, lang: Optional[str], accept_language: Optional[str] = None) -> str:
        return resolve_language(
            lang, accept_language, self.supported_languages, self.fallback_language
        )


def parse_accept_language(header: str) -> List[Tuple[str, float]]:
    """Parse a weighted language preference list.

    ``"ko-KR,ko;q=0.9,en;q=0.7"`` -> ``[("ko", 1.0), ("ko", 0.9), ("en", 0.7)]``

    Only the primary subtag is kept. A missing weight is 1.0 and a malformed
    one is 0. Entries weighted 0 or less mean "not acceptable" and are
    dropped. The rest are stably sorted by descending weight.
    """
    preferences = []
    for entry in header.split(","):
        parts = [part.strip() for part in entry.split(";")]
        tag = parts[0]
        if not tag:
            continue

        weight = 1.0
        for param in parts[1:]:
            name, _, raw_value = param.partition("=")
            if name.strip().lower() != "q":
                continue
            try:
                weight = float(raw_value)
            except ValueError:
                weight = 0.0
            if weight != weight:  # NaN
                weight = 0.0

        if weight <= 0:
            continue

        primary = tag.split("-")[0].split("_")[0]
        preferences.append((resolve_code(primary), weight))

    preferences.sort(key=lambda pref: pref[1], reverse=True)
    return preferences


def detect_language(
    value: Optional[str],
    supported_languages: Sequence[str] = DEFAULT_SUPPORTED_LANGUAGES,
    fallback_language: str = DEFAULT_FALLBACK_LANGUAGE,
) -> str:
    """Pick the best supported language from a header or URL path.

    Args:
        value: Accept-Language header value, or a path such as ``/jp/search``
        supported_languages: Codes the caller can serve
        fallback_language: Returned when nothing supported is found

    Returns:
        A code from ``supported_languages`` or ``fallback_language``
    """
    if not value or not value.strip():
        return fallback_language

    value = value.strip()
    if value.startswith("/"):
        segments = [segment for segment in value.split("/") if segment]
        code = resolve_code(segments[0]) if segments else None
        return code if code in supported_languages else fallback_language

    for code, _weight in parse_accept_language(value):
        if code in supported_languages:
            return code
    return fallback_language


def resolve_language(
    lang: Optional[str],
    accept_language: Optional[str] = None,
    supported_languages: Sequence[str] = DEFAULT_SUPPORTED_LANGUAGES,
    fallback_language: str = DEFAULT_FALLBACK_LANGUAGE,
) -> str:
    """Resolve a ``lang`` request parameter.

    ``auto`` (or nothing) detects from ``accept_language``; an explicit code is
    used when supported, otherwise the fallback.
    """
    code = resolve_code(lang) or AUTO_LANGUAGE
    if code == AUTO_LANGUAGE:
        return detect_language(accept_language, supported_languages, fallback_language)
    return code if code in supported_languages else fallback_language
