"""Candidate matching: inclusion predicates, match scoring and search relevance.

This module provides:
- MatchPredicateBuilder: multi-term inclusion test over candidate fields
- ScoringEngine: weighted 0-100 match score with per-signal breakdown
- RelevanceRanker: field-weighted relevance used to order search hits
"""

from .models import MatchResult, RankedCandidate, ScoreBreakdown
from .predicate import MatchPredicateBuilder, searchable_text
from .relevance import RelevanceRanker, text_similarity
from .scoring import ScoringEngine, extract_keywords, round_half_up

__all__ = [
    "MatchPredicateBuilder",
    "MatchResult",
    "RankedCandidate",
    "RelevanceRanker",
    "ScoreBreakdown",
    "ScoringEngine",
    "extract_keywords",
    "round_half_up",
    "searchable_text",
    "text_similarity",
]
