"""Engineer matching pipeline."""

from typing import Any, List, Optional

from marketmatch.cache.keys import MATCH_PREFIX, generate_cache_key
from marketmatch.cache.registry import CacheRegistry
from marketmatch.config.models import AppConfig
from marketmatch.domain.models import MatchRequest, validate_payload
from marketmatch.geo import GeoFilter
from marketmatch.logging import get_logger
from marketmatch.logging.context import log_context
from marketmatch.matching.models import RankedCandidate
from marketmatch.matching.scoring import ScoringEngine
from marketmatch.persistence.store import ListingStore
from marketmatch.summarizer.base import NullSummarizer, Summarizer

from .models import MatchResponse, RankedMatches
from .utils import ProviderLookup, call_store

logger = get_logger(__name__, component="pipeline")


class MatchOrchestrator:
    """
    Turns a match request into a ranked, explainable list of engineers.

    Steps:
    1. Validate the request (first violation wins)
    2. Serve the ranking from the general cache tier when present
    3. Fetch candidates: geo-scoped when an origin is given and remote work
       is not required, type-scoped otherwise
    4. Radius-filter geo-scoped candidates; annotate distances otherwise
    5. Skip candidates whose provider is missing
    6. Score, sort and truncate
    7. For authorized callers, ask the summarizer about the top results
    """

    def __init__(
        self,
        store: ListingStore,
        cache: CacheRegistry,
        config: Optional[AppConfig] = None,
        summarizer: Optional[Summarizer] = None,
        scoring_engine: Optional[ScoringEngine] = None,
        geo_filter: Optional[GeoFilter] = None,
    ):
        self.store = store
        self.cache = cache
        self.config = config or AppConfig()
        self.summarizer = summarizer or NullSummarizer()
        self.scoring_engine = scoring_engine or ScoringEngine(self.config.scoring)
        self.geo_filter = geo_filter or GeoFilter(self.config.geo.earth_radius_km)

    def match(self, payload: Any, authorized: bool = False) -> MatchResponse:
        """Run the match pipeline.

        Args:
            payload: Request mapping in wire names, or a MatchRequest
            authorized: Whether the caller may receive an AI recommendation

        Returns:
            MatchResponse; an empty ``engineers`` list is a valid outcome

        Raises:
            RequestValidationError: If the request is invalid
            UpstreamDependencyError: If the listing store fails
        """
        request = validate_payload(MatchRequest, payload)
        if request.max_distance_km is None:
            request = request.model_copy(
                update={"max_distance_km": self.config.geo.default_max_distance_km}
            )

        criteria = request.criteria()
        cache_key = generate_cache_key(MATCH_PREFIX, criteria)

        with log_context(pipeline="match"):
            ranked: RankedMatches = self.cache.general.get_or_compute(
                cache_key, lambda: self._rank(request, criteria)
            )

            ai_recommendation = None
            if authorized and ranked.engineers:
                ai_recommendation = self._recommend(request, ranked)

            logger.info(
                f"Matched {ranked.count} engineers",
                extra={
                    "event": "pipeline.match.completed",
                    "count": ranked.count,
                    "returned": len(ranked.engineers),
                    "authorized": authorized,
                    "has_recommendation": ai_recommendation is not None,
                },
            )

        return MatchResponse(
            count=ranked.count,
            engineers=list(ranked.engineers),
            criteria=criteria,
            ai_recommendation=ai_recommendation,
        )

    def _recommend(self, request: MatchRequest, ranked: RankedMatches) -> Optional[str]:
        top = list(ranked.engineers[: self.config.matching.summary_top_n])
        try:
            return self.summarizer.summarize(request.free_text, top)
        except Exception as e:
            logger.warning(
                f"AI recommendation unavailable: {e}",
                extra={"event": "pipeline.match.recommendation_failed", "error_type": type(e).__name__},
            )
            return None

    def _rank(self, request: MatchRequest, criteria: dict) -> RankedMatches:
        candidate_type = self.config.matching.candidate_type
        geo_scoped = request.origin is not None and not request.remote_only

        if geo_scoped:
            candidates = call_store(
                "get_services_by_location",
                self.store.get_services_by_location,
                request.origin,
                request.max_distance_km,
                candidate_type,
            )
            pairs = self.geo_filter.filter_by_radius(candidates, request.origin, request.max_distance_km)
        else:
            candidates = call_store("get_services_by_type", self.store.get_services_by_type, candidate_type)
            pairs = self.geo_filter.annotate(candidates, request.origin)

        providers = ProviderLookup(self.store)
        scored: List[RankedCandidate] = []
        for candidate, distance_km in pairs:
            provider = providers.for_candidate(candidate)
            if provider is None:
                continue
            result = self.scoring_engine.evaluate(candidate, request, distance_km=distance_km)
            scored.append(RankedCandidate(result=result, candidate=candidate, provider=provider))

        scored.sort(key=lambda entry: (-entry.result.score, entry.result.candidate_id))

        logger.debug(
            f"Scored {len(scored)} of {len(candidates)} fetched candidates",
            extra={
                "event": "pipeline.match.scored",
                "fetched": len(candidates),
                "in_radius": len(pairs),
                "scored": len(scored),
                "geo_scoped": geo_scoped,
            },
        )

        return RankedMatches(
            count=len(scored),
            engineers=tuple(scored[: self.config.matching.max_results]),
            criteria=criteria,
        )
