"""Weighted 0-100 scoring of candidates against a match request.

The score starts at a base value and adds one bounded delta per signal:
1. Keyword overlap between the request text and the candidate description
2. Skill overlap between requested skills and candidate tags
3. Budget proximity between the request budget and the candidate price
4. Urgency vs availability tier
5. Remote-only mismatch penalty
6. Reputation from rating and rating count

The sum is rounded half-up to an integer and clamped to [0, 100]. All
constants come from ScoringWeights.
"""

import math
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from marketmatch.config.models import ScoringWeights
from marketmatch.domain.models import AvailabilityTier, Candidate, MatchRequest, Urgency
from marketmatch.logging import get_logger

from .models import MatchResult, ScoreBreakdown

logger = get_logger(__name__, component="scoring")

URGENCY_LEVELS = {
    Urgency.LOW: 1,
    Urgency.MEDIUM: 2,
    Urgency.HIGH: 3,
}

AVAILABILITY_LEVELS = {
    AvailabilityTier.NOT_SPECIFIED: 0,
    AvailabilityTier.WITHIN_MONTH: 1,
    AvailabilityTier.WITHIN_WEEK: 2,
    AvailabilityTier.IMMEDIATE: 3,
}

_NON_WORD_RE = re.compile(r"[^\w\s]")


def extract_keywords(
    text: Optional[str],
    stopwords: Iterable[str] = (),
    min_length: int = 3,
) -> List[str]:
    """Extract deduplicated keywords in first-seen order.

    Lowercases, strips non-word characters (Hangul and other scripts are
    word characters), splits on whitespace, and drops stopwords and words
    shorter than ``min_length``.
    """
    if not text:
        return []
    stopword_set = set(stopwords)
    keywords = []
    for word in _NON_WORD_RE.sub("", text.lower()).split():
        if len(word) >= min_length and word not in stopword_set and word not in keywords:
            keywords.append(word)
    return keywords


def _overlaps(a: str, b: str) -> bool:
    return a in b or b in a


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves upward (62.5 -> 63)."""
    return int(math.floor(value + 0.5))


class ScoringEngine:
    """Computes explainable match scores from configurable weights."""

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def score(self, candidate: Candidate, request: MatchRequest) -> int:
        """Integer score in [0, 100] for one candidate."""
        return self.evaluate(candidate, request).score

    def evaluate(
        self,
        candidate: Candidate,
        request: MatchRequest,
        distance_km: Optional[float] = None,
    ) -> MatchResult:
        """Score a candidate and record each signal's contribution.

        Args:
            candidate: Listing to score
            request: Validated match request
            distance_km: Distance from the request origin, passed through to
                the result

        Returns:
            MatchResult with clamped integer score and breakdown
        """
        w = self.weights
        breakdown = ScoreBreakdown(base=w.base_score)

        if candidate.description:
            breakdown.keyword, breakdown.matched_keywords = self._keyword_signal(
                request.free_text, candidate.description
            )

        matched_skills = self._matched_skills(request.skills, candidate.tags)
        if request.skills:
            breakdown.skill = len(matched_skills) / len(request.skills) * w.skill_max_points

        if request.budget and candidate.price:
            breakdown.budget = self._budget_signal(request.budget, candidate.price)

        if candidate.availability_tier is not None:
            available = AVAILABILITY_LEVELS[candidate.availability_tier]
            needed = URGENCY_LEVELS[request.urgency]
            if available >= needed:
                breakdown.availability = w.availability_match_bonus
            else:
                breakdown.availability = -w.availability_mismatch_penalty

        if request.remote_only and not candidate.is_remote:
            breakdown.remote = -w.remote_mismatch_penalty

        if candidate.rating is not None:
            breakdown.reputation = min(candidate.rating * w.rating_multiplier, w.rating_max_points) + min(
                candidate.rating_count / w.rating_count_divisor, w.rating_count_max_points
            )

        score = max(0, min(100, round_half_up(breakdown.raw_total)))

        return MatchResult(
            candidate_id=candidate.id,
            score=score,
            is_remote=candidate.is_remote,
            breakdown=breakdown,
            distance_km=distance_km,
            matched_skills=matched_skills,
        )

    def _keyword_signal(self, request_text: str, description: str) -> Tuple[float, List[str]]:
        w = self.weights
        request_keywords = extract_keywords(request_text, w.stopwords, w.min_keyword_length)
        candidate_keywords = extract_keywords(description, w.stopwords, w.min_keyword_length)

        matched = [
            keyword
            for keyword in request_keywords
            if any(_overlaps(keyword, other) for other in candidate_keywords)
        ]
        return min(len(matched) * w.keyword_points_per_match, w.keyword_max_points), matched

    @staticmethod
    def _matched_skills(skills: Sequence[str], tags: Sequence[str]) -> List[str]:
        lowered_tags = [tag.lower() for tag in tags]
        return [
            skill
            for skill in skills
            if any(_overlaps(skill.lower(), tag) for tag in lowered_tags)
        ]

    def _budget_signal(self, budget: float, price: float) -> float:
        w = self.weights
        difference = abs(price - budget) / budget
        if difference <= w.budget_close_ratio:
            return w.budget_close_bonus
        if difference <= w.budget_near_ratio:
            return w.budget_near_bonus
        if difference >= w.budget_far_ratio:
            return -w.budget_far_penalty
        return 0.0

    @staticmethod
    def rank(results: Iterable[MatchResult]) -> List[MatchResult]:
        """Sort by score descending, then candidate id ascending."""
        return sorted(results, key=lambda result: (-result.score, result.candidate_id))
