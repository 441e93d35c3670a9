"""Multilingual listing search and engineer directory search."""

from typing import Any, List, Optional

from marketmatch.cache.keys import ENGINEER_SEARCH_PREFIX, SEARCH_PREFIX, generate_cache_key
from marketmatch.cache.registry import CacheRegistry
from marketmatch.config.models import AppConfig
from marketmatch.domain.exceptions import RequestValidationError
from marketmatch.domain.models import (
    Candidate,
    EngineerSearchRequest,
    ListingKind,
    SearchRequest,
    SearchType,
    validate_payload,
)
from marketmatch.geo import GeoFilter
from marketmatch.logging import get_logger
from marketmatch.logging.context import log_context
from marketmatch.matching.predicate import MatchPredicateBuilder
from marketmatch.matching.relevance import RelevanceRanker
from marketmatch.normalization import TextNormalizer
from marketmatch.persistence.store import ListingStore

from .models import EngineerHit, EngineerSearchResponse, SearchHit, SearchResponse
from .utils import ProviderLookup, call_store

logger = get_logger(__name__, component="search")

_SEARCH_KINDS = {
    SearchType.ALL: (ListingKind.RESOURCE, ListingKind.SERVICE),
    SearchType.RESOURCES: (ListingKind.RESOURCE,),
    SearchType.SERVICES: (ListingKind.SERVICE,),
}


def _newest_first_key(hit: SearchHit):
    created = hit.candidate.created_at
    created_ts = created.timestamp() if created else float("-inf")
    return (-hit.relevance, -created_ts, -hit.candidate.id)


class SearchOrchestrator:
    """Search pipelines over the listing store.

    - search(): multilingual full-listing search ordered by relevance
    - search_engineers(): engineer directory filtered by type, distance,
      remote work, query and skills
    """

    def __init__(
        self,
        store: ListingStore,
        cache: CacheRegistry,
        config: Optional[AppConfig] = None,
        normalizer: Optional[TextNormalizer] = None,
        predicate_builder: Optional[MatchPredicateBuilder] = None,
        ranker: Optional[RelevanceRanker] = None,
        geo_filter: Optional[GeoFilter] = None,
    ):
        self.store = store
        self.cache = cache
        self.config = config or AppConfig()
        self.normalizer = normalizer or TextNormalizer(
            self.config.search.supported_languages, self.config.search.fallback_language
        )
        self.predicate_builder = predicate_builder or MatchPredicateBuilder()
        self.ranker = ranker or RelevanceRanker(self.config.search.relevance)
        self.geo_filter = geo_filter or GeoFilter(self.config.geo.earth_radius_km)

    def search(self, params: Any, accept_language: Optional[str] = None) -> SearchResponse:
        """Search resources and/or services in the resolved language.

        Args:
            params: Mapping with ``q``, ``lang``, ``type`` and ``limit``
            accept_language: Accept-Language header, used when ``lang`` is auto

        Returns:
            SearchResponse, served from cache within the TTL

        Raises:
            RequestValidationError: If the query is missing or has no
                searchable characters, or a parameter is out of range
            UpstreamDependencyError: If the listing store fails
        """
        request = validate_payload(SearchRequest, params)
        language = self.normalizer.resolve_language(request.lang, accept_language)
        limit = min(request.limit, self.config.search.max_limit)

        normalized_query = self.normalizer.normalize(request.q, language)
        if not normalized_query:
            raise RequestValidationError("query has no searchable characters", field="q")

        cache_key = generate_cache_key(
            SEARCH_PREFIX,
            {"q": request.q, "lang": language, "type": request.type.value, "limit": limit},
        )

        with log_context(pipeline="search", language=language):
            return self.cache.general.get_or_compute(
                cache_key,
                lambda: self._search(request, language, normalized_query, limit),
            )

    def _search(
        self, request: SearchRequest, language: str, normalized_query: str, limit: int
    ) -> SearchResponse:
        predicate = self.predicate_builder.build(request.q, language)
        response = SearchResponse(query=request.q, language=language, normalized_query=normalized_query)

        for kind in _SEARCH_KINDS[request.type]:
            listings = call_store("list_listings", self.store.list_listings, kind)
            hits = [
                SearchHit(candidate=candidate, relevance=self.ranker.score(candidate, normalized_query, language))
                for candidate in listings
                if predicate(candidate)
            ]
            hits.sort(key=_newest_first_key)
            if kind == ListingKind.RESOURCE:
                response.resources = hits[:limit]
            else:
                response.services = hits[:limit]

        logger.info(
            f"Search '{request.q}' returned {response.total_count} listings",
            extra={
                "event": "pipeline.search.completed",
                "normalized_query": normalized_query,
                "type": request.type.value,
                "total_count": response.total_count,
            },
        )
        return response

    def search_engineers(self, params: Any) -> EngineerSearchResponse:
        """Engineer directory search.

        Geo-scoped when a location is given and remote work is not required;
        otherwise type-scoped with an optional remote-only filter. Results are
        sorted by distance when a location is given (no distance last).

        Raises:
            RequestValidationError: If a parameter is invalid
            UpstreamDependencyError: If the listing store fails
        """
        request = validate_payload(EngineerSearchRequest, params)
        if request.max_distance is None:
            request = request.model_copy(update={"max_distance": self.config.geo.default_max_distance_km})

        filters = request.model_dump(mode="json", by_alias=True)
        cache_key = generate_cache_key(ENGINEER_SEARCH_PREFIX, filters)

        with log_context(pipeline="engineer_search"):
            return self.cache.general.get_or_compute(
                cache_key, lambda: self._search_engineers(request, filters)
            )

    def _search_engineers(self, request: EngineerSearchRequest, filters: dict) -> EngineerSearchResponse:
        service_type = request.service_type.value

        if request.location is not None and not request.remote_only:
            candidates = call_store(
                "get_services_by_location",
                self.store.get_services_by_location,
                request.location,
                request.max_distance,
                service_type,
            )
            pairs = self.geo_filter.filter_by_radius(candidates, request.location, request.max_distance)
        else:
            candidates = call_store("get_services_by_type", self.store.get_services_by_type, service_type)
            if request.remote_only:
                candidates = [candidate for candidate in candidates if candidate.is_remote]
            pairs = self.geo_filter.annotate(candidates, request.location)

        if request.query:
            language = self.normalizer.fallback_language
            predicate = self.predicate_builder.build(request.query, language)
            pairs = [pair for pair in pairs if predicate(pair[0])]

        if request.skills:
            pairs = [pair for pair in pairs if _has_any_skill(pair[0], request.skills)]

        providers = ProviderLookup(self.store)
        hits: List[EngineerHit] = []
        for candidate, distance_km in pairs:
            provider = providers.for_candidate(candidate)
            if provider is not None:
                hits.append(EngineerHit(candidate=candidate, provider=provider, distance_km=distance_km))

        if request.location is not None:
            hits.sort(key=lambda hit: float("inf") if hit.distance_km is None else hit.distance_km)

        logger.info(
            f"Engineer search returned {len(hits)} listings",
            extra={"event": "pipeline.engineer_search.completed", "service_type": service_type, "count": len(hits)},
        )
        return EngineerSearchResponse(engineers=hits, filters=filters)


def _has_any_skill(candidate: Candidate, skills) -> bool:
    tags = [tag.lower() for tag in candidate.tags]
    for skill in skills:
        skill = skill.lower()
        if any(skill in tag or tag in skill for tag in tags):
            return True
    return False
