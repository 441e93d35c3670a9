"""End-to-end pipelines: matching, search and listing mutations."""

from .listings import ListingService
from .matcher import MatchOrchestrator
from .models import (
    EngineerHit,
    EngineerSearchResponse,
    MatchResponse,
    RankedMatches,
    SearchHit,
    SearchResponse,
)
from .search import SearchOrchestrator

__all__ = [
    "ListingService",
    "MatchOrchestrator",
    "SearchOrchestrator",
    "MatchResponse",
    "RankedMatches",
    "SearchHit",
    "SearchResponse",
    "EngineerHit",
    "EngineerSearchResponse",
]
