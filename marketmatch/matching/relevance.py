"""Field-weighted text relevance for ordering search hits."""

from typing import Optional

from marketmatch.config.models import RelevanceWeights
from marketmatch.domain.models import Candidate
from marketmatch.normalization import normalize


def text_similarity(text: str, query: str) -> float:
    """Similarity in [0, 1] between normalized ``text`` and ``query``.

    - Exact match: 1.0
    - Query contained in text: 0.8, scaled down the later it appears and the
      smaller its share of the text
    - Multi-word query: 0.6 times the fraction of words found
    - Otherwise 0.0
    """
    if not text or not query:
        return 0.0
    if text == query:
        return 1.0

    position = text.find(query)
    if position >= 0:
        return 0.8 * (1 - position / len(text)) * (len(query) / len(text))

    words = query.split()
    if len(words) > 1:
        found = sum(1 for word in words if word in text)
        return 0.6 * found / len(words)

    return 0.0


class RelevanceRanker:
    """Scores candidates against a normalized query with per-field weights."""

    def __init__(self, weights: Optional[RelevanceWeights] = None):
        self.weights = weights or RelevanceWeights()

    def score(self, candidate: Candidate, normalized_query: str, language: str) -> float:
        """Weighted relevance of a candidate's title, description and tags.

        The tag contribution is the mean similarity over all tags.
        """
        title_score = text_similarity(normalize(candidate.title, language), normalized_query)
        description_score = text_similarity(
            normalize(candidate.description, language), normalized_query
        )

        tag_score = 0.0
        if candidate.tags:
            total = sum(
                text_similarity(normalize(tag, language), normalized_query) for tag in candidate.tags
            )
            tag_score = total / len(candidate.tags)

        return (
            title_score * self.weights.title
            + description_score * self.weights.description
            + tag_score * self.weights.tags
        )
