"""Response models produced by the pipelines."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from marketmatch.domain.models import Candidate, ProviderProfile
from marketmatch.geo import round_distance
from marketmatch.matching.models import RankedCandidate


@dataclass(frozen=True)
class RankedMatches:
    """Cached part of a match response (everything but the AI summary).

    Attributes:
        count: Number of candidates scored before truncation
        engineers: Top-ranked candidates, best first
        criteria: Echo of the normalized request in wire names
    """

    count: int
    engineers: Tuple[RankedCandidate, ...]
    criteria: Dict[str, Any]


@dataclass
class MatchResponse:
    """Result of one engineer match request."""

    count: int
    engineers: List[RankedCandidate]
    criteria: Dict[str, Any]
    ai_recommendation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "engineers": [entry.to_dict() for entry in self.engineers],
            "criteria": self.criteria,
            "aiRecommendation": self.ai_recommendation,
        }


@dataclass(frozen=True)
class SearchHit:
    """A listing matched by a multilingual search, with its relevance."""

    candidate: Candidate
    relevance: float

    def to_dict(self) -> Dict[str, Any]:
        payload = self.candidate.to_payload()
        payload["relevance"] = round(self.relevance, 4)
        return payload


@dataclass
class SearchResponse:
    """Result of one multilingual search.

    Attributes:
        query: Query as received
        language: Resolved language code
        normalized_query: Query after language normalization
        resources: Matching resource listings, most relevant first
        services: Matching service listings, most relevant first
    """

    query: str
    language: str
    normalized_query: str
    resources: List[SearchHit] = field(default_factory=list)
    services: List[SearchHit] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.resources) + len(self.services)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "language": self.language,
            "normalizedQuery": self.normalized_query,
            "resources": [hit.to_dict() for hit in self.resources],
            "services": [hit.to_dict() for hit in self.services],
            "totalCount": self.total_count,
        }


@dataclass(frozen=True)
class EngineerHit:
    """A service listing returned by engineer search."""

    candidate: Candidate
    provider: ProviderProfile
    distance_km: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidate": self.candidate.to_payload(),
            "provider": self.provider.to_payload(),
            "skills": list(self.candidate.tags),
            "distanceKm": round_distance(self.distance_km),
        }


@dataclass
class EngineerSearchResponse:
    """Result of one engineer directory search."""

    engineers: List[EngineerHit]
    filters: Dict[str, Any]

    @property
    def count(self) -> int:
        return len(self.engineers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "engineers": [hit.to_dict() for hit in self.engineers],
            "filters": self.filters,
        }
