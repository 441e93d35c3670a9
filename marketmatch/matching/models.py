"""Data models for the scoring engine.

This module defines the per-candidate outcome of scoring a match request:
the rounded score, the signals that produced it, and the fields returned to
callers.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from marketmatch.domain.models import Candidate, ProviderProfile
from marketmatch.geo import round_distance


@dataclass
class ScoreBreakdown:
    """Contribution of each scoring signal, before rounding and clamping.

    A signal that did not apply (missing description, no requested skills,
    no price, no availability tier, no rating) is None rather than 0, so
    callers can tell "skipped" from "neutral".

    Attributes:
        base: Starting score
        keyword: Keyword overlap bonus
        skill: Skill overlap bonus
        budget: Budget proximity bonus or penalty
        availability: Urgency vs availability bonus or penalty
        remote: Remote-only mismatch penalty (0 when satisfied)
        reputation: Rating and rating-count bonus
        matched_keywords: Request keywords found in the candidate description
    """

    base: float
    keyword: Optional[float] = None
    skill: Optional[float] = None
    budget: Optional[float] = None
    availability: Optional[float] = None
    remote: float = 0.0
    reputation: Optional[float] = None
    matched_keywords: List[str] = field(default_factory=list)

    @property
    def raw_total(self) -> float:
        """Unrounded, unclamped sum of all applied signals."""
        deltas = (self.keyword, self.skill, self.budget, self.availability, self.remote, self.reputation)
        return self.base + sum(delta for delta in deltas if delta is not None)

    def to_dict(self) -> Dict:
        return {
            "base": self.base,
            "keyword": self.keyword,
            "skill": self.skill,
            "budget": self.budget,
            "availability": self.availability,
            "remote": self.remote,
            "reputation": self.reputation,
            "matchedKeywords": list(self.matched_keywords),
        }


@dataclass
class MatchResult:
    """Scored candidate for one match request.

    Attributes:
        candidate_id: Listing id
        score: Integer score in [0, 100]
        distance_km: Unrounded distance from the request origin, None when
            either side has no location
        is_remote: Whether the listing accepts remote work
        matched_skills: Requested skills found in the listing tags, in
            request order
        breakdown: Per-signal contributions
    """

    candidate_id: int
    score: int
    is_remote: bool
    breakdown: ScoreBreakdown
    distance_km: Optional[float] = None
    matched_skills: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        """Serialize with camelCase keys. Distances are rounded to 0.1 km."""
        return {
            "candidateId": self.candidate_id,
            "score": self.score,
            "distanceKm": round_distance(self.distance_km),
            "isRemote": self.is_remote,
            "matchedSkills": list(self.matched_skills),
            "breakdown": self.breakdown.to_dict(),
        }


@dataclass
class RankedCandidate:
    """A scored candidate with the listing and provider it was scored from."""

    result: MatchResult
    candidate: Candidate
    provider: ProviderProfile

    def to_dict(self) -> Dict:
        """Match result fields plus the listing and the sanitized provider."""
        payload = self.result.to_dict()
        payload["candidate"] = self.candidate.to_payload()
        payload["provider"] = self.provider.to_payload()
        return payload
