"""Language codes and per-language normalization strategies.

Adding a language means adding a Language member and one entry in
NORMALIZATION_STRATEGIES; call sites look strategies up by code.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class Language(str, Enum):
    """Languages with a dedicated normalization strategy."""

    KOREAN = "ko"
    ENGLISH = "en"
    JAPANESE = "ja"


@dataclass(frozen=True)
class NormalizationStrategy:
    """How free text in one language is canonicalized.

    Attributes:
        unicode_form: Unicode normalization form applied before and after
            lowercasing (None for no Unicode normalization)
        strip_punctuation: Remove characters that are not letters, digits or
            whitespace
    """

    unicode_form: Optional[str] = None
    strip_punctuation: bool = False


# Latin-script rules also apply to any code without an entry
LATIN_STRATEGY = NormalizationStrategy(unicode_form=None, strip_punctuation=True)

NORMALIZATION_STRATEGIES: Dict[Language, NormalizationStrategy] = {
    Language.ENGLISH: LATIN_STRATEGY,
    # Canonical composition keeps precomposed Hangul syllables stable
    Language.KOREAN: NormalizationStrategy(unicode_form="NFC", strip_punctuation=False),
    # Compatibility normalization folds full-width and half-width forms
    Language.JAPANESE: NormalizationStrategy(unicode_form="NFKC", strip_punctuation=False),
}

# Codes seen in URLs and headers that name a supported language differently
LANGUAGE_ALIASES: Dict[str, Language] = {
    "jp": Language.JAPANESE,
}


def resolve_code(code: Optional[str]) -> Optional[str]:
    """Lowercase a language code and apply aliases (``jp`` -> ``ja``)."""
    if not code:
        return None
    code = code.strip().lower()
    alias = LANGUAGE_ALIASES.get(code)
    return alias.value if alias else code


def strategy_for(code: Optional[str]) -> NormalizationStrategy:
    """Strategy for a language code, falling back to the Latin rules."""
    resolved = resolve_code(code)
    for language, strategy in NORMALIZATION_STRATEGIES.items():
        if language.value == resolved:
            return strategy
    return LATIN_STRATEGY
