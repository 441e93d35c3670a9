"""Tests for the match, search and listing pipelines over an in-memory store."""

from datetime import datetime, timezone

import pytest

from marketmatch.cache.keys import MATCH_PREFIX, generate_cache_key
from marketmatch.config.models import AppConfig, MatchingConfig
from marketmatch.domain.exceptions import (
    NotFoundError,
    NumericError,
    RequestValidationError,
    UpstreamDependencyError,
)
from marketmatch.domain.models import ListingKind
from marketmatch.pipeline import ListingService, MatchOrchestrator, SearchOrchestrator

from tests.helpers import (
    FailingSummarizer,
    FakeListingStore,
    RecordingSummarizer,
    make_candidate,
    make_provider,
)
from tests.helpers.factories import SEOUL

SEOUL_LOCATION = {"lat": SEOUL[0], "long": SEOUL[1]}
PROJECT = "Need PCB layout for IoT sensor board"


def match_payload(**overrides):
    payload = {"projectDescription": PROJECT, "skills": ["PCB design"], "location": SEOUL_LOCATION}
    payload.update(overrides)
    return payload


def _ids(entries):
    return [entry.candidate.id for entry in entries]


@pytest.fixture
def orchestrator(fake_store, registry):
    return MatchOrchestrator(fake_store, registry)


@pytest.fixture
def search_store(seoul_engineers):
    resources = [
        make_candidate(
            10,
            kind="resource",
            type="cnc",
            title="PCB milling machine",
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ),
        make_candidate(
            11,
            kind="resource",
            type="measurement",
            title="Oscilloscope",
            description="Bench scope for PCB debugging",
            created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        ),
        make_candidate(
            12,
            kind="resource",
            type="measurement",
            title="Oscilloscope",
            description="Bench scope for PCB debugging",
            created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        ),
        make_candidate(13, kind="resource", type="machining", title="Lathe", description="Metal lathe"),
        make_candidate(20, kind="resource", type="electronics", title="전자 회로 설계 키트"),
    ]
    providers = [make_provider(c.id) for c in seoul_engineers]
    return FakeListingStore([*seoul_engineers, *resources], providers)


@pytest.fixture
def searcher(search_store, registry):
    return SearchOrchestrator(search_store, registry)


class TestMatchOrchestrator:
    """Tests for the engineer match pipeline."""

    def test_geo_scoped_match(self, orchestrator, fake_store):
        """Candidates outside the radius or without a location are dropped."""
        response = orchestrator.match(match_payload())

        assert _ids(response.engineers) == [1, 2]
        assert response.count == 2
        assert fake_store.calls[0] == "get_services_by_location"

    def test_candidate_at_origin_has_zero_distance(self, orchestrator):
        payload = orchestrator.match(match_payload()).to_dict()

        top = payload["engineers"][0]
        assert top["candidateId"] == 1
        assert top["distanceKm"] == 0.0
        assert top["score"] == 100
        assert top["provider"]["username"] == "user1"

    def test_remote_only_is_type_scoped(self, orchestrator, fake_store):
        """remoteOnly ignores the radius and penalizes on-site candidates."""
        response = orchestrator.match(match_payload(remoteOnly=True))

        assert fake_store.calls[0] == "get_services_by_type"
        assert _ids(response.engineers) == [1, 4, 3, 2]
        assert [entry.result.score for entry in response.engineers] == [86, 75, 55, 30]
        assert response.engineers[1].result.distance_km is None

    def test_without_location_annotates_nothing(self, orchestrator):
        payload = {"projectDescription": PROJECT}
        response = orchestrator.match(payload)

        assert response.count == 4
        assert all(entry.result.distance_km is None for entry in response.engineers)

    def test_count_is_before_truncation(self, fake_store, registry):
        config = AppConfig(matching=MatchingConfig(max_results=1))
        response = MatchOrchestrator(fake_store, registry, config=config).match(match_payload())

        assert response.count == 2
        assert _ids(response.engineers) == [1]

    def test_missing_provider_is_skipped(self, seoul_engineers, registry):
        store = FakeListingStore(seoul_engineers, [make_provider(1)])
        response = MatchOrchestrator(store, registry).match(match_payload())
        assert _ids(response.engineers) == [1]

    def test_empty_result_is_not_an_error(self, registry):
        response = MatchOrchestrator(FakeListingStore(), registry).match(match_payload())
        assert response.count == 0
        assert response.engineers == []

    def test_store_failure_is_upstream_error(self, orchestrator, fake_store):
        fake_store.fail_with = RuntimeError("connection refused")

        with pytest.raises(UpstreamDependencyError) as exc_info:
            orchestrator.match(match_payload())
        assert exc_info.value.dependency == "listing_store"

    @pytest.mark.parametrize(
        "payload,field",
        [
            ({"projectDescription": "too short"}, "projectDescription"),
            ({"skills": ["pcb"]}, "projectDescription"),
            (match_payload(urgency="tomorrow"), "urgency"),
            (match_payload(budget=-5), "budget"),
            (match_payload(maxDistance=-1), "maxDistance"),
            (match_payload(location={"lat": 91, "long": 0}), "location.lat"),
        ],
    )
    def test_validation_reports_field(self, orchestrator, fake_store, payload, field):
        with pytest.raises(RequestValidationError) as exc_info:
            orchestrator.match(payload)
        assert exc_info.value.field == field
        assert fake_store.calls == []

    def test_nan_budget_is_numeric_error(self, orchestrator):
        with pytest.raises(NumericError) as exc_info:
            orchestrator.match(match_payload(budget=float("nan")))
        assert exc_info.value.field == "budget"

    def test_non_object_body(self, orchestrator):
        with pytest.raises(RequestValidationError):
            orchestrator.match(["not", "an", "object"])

    def test_criteria_echo_includes_default_radius(self, orchestrator):
        criteria = orchestrator.match(match_payload()).criteria

        assert criteria["projectDescription"] == PROJECT
        assert criteria["maxDistance"] == 50.0
        assert criteria["urgency"] == "medium"
        assert criteria["skills"] == ["PCB design"]

    def test_ranking_is_cached(self, orchestrator, fake_store, registry):
        first = orchestrator.match(match_payload())
        fetches = fake_store.calls.count("get_services_by_location")

        second = orchestrator.match(match_payload())

        assert fake_store.calls.count("get_services_by_location") == fetches
        assert _ids(second.engineers) == _ids(first.engineers)
        criteria = first.criteria
        assert generate_cache_key(MATCH_PREFIX, criteria) in registry.general

    def test_invalidation_forces_recompute(self, orchestrator, fake_store, registry):
        orchestrator.match(match_payload())
        registry.invalidate_for_kind(ListingKind.SERVICE)

        orchestrator.match(match_payload())

        assert fake_store.calls.count("get_services_by_location") == 2

    def test_authorized_caller_gets_recommendation(self, fake_store, registry):
        summarizer = RecordingSummarizer("User 1 is the strongest fit.")
        orchestrator = MatchOrchestrator(fake_store, registry, summarizer=summarizer)

        response = orchestrator.match(match_payload(), authorized=True)

        assert response.ai_recommendation == "User 1 is the strongest fit."
        description, top = summarizer.calls[0]
        assert description == PROJECT
        assert [entry.candidate.id for entry in top] == [1, 2]

    def test_recommendation_limited_to_top_n(self, fake_store, registry):
        summarizer = RecordingSummarizer()
        config = AppConfig(matching=MatchingConfig(summary_top_n=1))
        orchestrator = MatchOrchestrator(fake_store, registry, config=config, summarizer=summarizer)

        orchestrator.match(match_payload(remoteOnly=True), authorized=True)

        assert len(summarizer.calls[0][1]) == 1

    def test_anonymous_caller_gets_no_recommendation(self, fake_store, registry):
        summarizer = RecordingSummarizer()
        orchestrator = MatchOrchestrator(fake_store, registry, summarizer=summarizer)

        response = orchestrator.match(match_payload())

        assert response.ai_recommendation is None
        assert summarizer.calls == []

    def test_summarizer_failure_keeps_ranking(self, fake_store, registry):
        orchestrator = MatchOrchestrator(fake_store, registry, summarizer=FailingSummarizer())

        response = orchestrator.match(match_payload(), authorized=True)

        assert response.ai_recommendation is None
        assert _ids(response.engineers) == [1, 2]

    def test_recommendation_not_cached(self, fake_store, registry):
        summarizer = RecordingSummarizer()
        orchestrator = MatchOrchestrator(fake_store, registry, summarizer=summarizer)

        orchestrator.match(match_payload(), authorized=True)
        anonymous = orchestrator.match(match_payload())
        orchestrator.match(match_payload(), authorized=True)

        assert anonymous.ai_recommendation is None
        assert len(summarizer.calls) == 2


class TestSearch:
    """Tests for multilingual listing search."""

    def test_relevance_then_newest_first(self, searcher):
        response = searcher.search({"q": "pcb", "lang": "en"})

        assert _ids(response.resources) == [10, 12, 11]
        assert _ids(response.services) == [4, 1]
        assert response.total_count == 5
        assert response.normalized_query == "pcb"

    def test_limit_applies_per_table(self, searcher):
        response = searcher.search({"q": "pcb", "lang": "en", "limit": 1})
        assert _ids(response.resources) == [10]
        assert _ids(response.services) == [4]

    def test_type_filter(self, searcher, search_store):
        response = searcher.search({"q": "pcb", "lang": "en", "type": "resources"})

        assert response.services == []
        assert search_store.calls == ["list_listings"]

    def test_language_from_accept_language(self, searcher):
        response = searcher.search({"q": "회로"}, accept_language="ko-KR,ko;q=0.9,en;q=0.5")

        assert response.language == "ko"
        assert _ids(response.resources) == [20]

    def test_unsupported_language_falls_back(self, searcher):
        assert searcher.search({"q": "pcb", "lang": "fr"}).language == "en"

    def test_query_without_searchable_characters(self, searcher):
        with pytest.raises(RequestValidationError) as exc_info:
            searcher.search({"q": "!!!", "lang": "en"})
        assert exc_info.value.field == "q"

    @pytest.mark.parametrize(
        "params,field",
        [
            ({}, "q"),
            ({"q": "   "}, "q"),
            ({"q": "pcb", "limit": 0}, "limit"),
            ({"q": "pcb", "limit": 101}, "limit"),
            ({"q": "pcb", "type": "tools"}, "type"),
        ],
    )
    def test_invalid_params(self, searcher, params, field):
        with pytest.raises(RequestValidationError) as exc_info:
            searcher.search(params)
        assert exc_info.value.field == field

    def test_results_are_cached(self, searcher, search_store):
        first = searcher.search({"q": "pcb", "lang": "en"})
        second = searcher.search({"q": "pcb", "lang": "en"})

        assert second is first
        assert search_store.calls.count("list_listings") == 2

    def test_resolved_language_is_part_of_the_key(self, searcher, search_store):
        searcher.search({"q": "pcb"}, accept_language="en")
        searcher.search({"q": "pcb"}, accept_language="ja")

        assert search_store.calls.count("list_listings") == 4

    def test_serialization(self, searcher):
        payload = searcher.search({"q": "pcb", "lang": "en", "limit": 1}).to_dict()

        assert payload["totalCount"] == 2
        assert payload["resources"][0]["id"] == 10
        assert payload["resources"][0]["relevance"] > 0


class TestSearchEngineers:
    """Tests for engineer directory search."""

    def test_geo_scoped_sorted_by_distance(self, searcher):
        response = searcher.search_engineers({"location": SEOUL_LOCATION})

        assert _ids(response.engineers) == [1, 2]
        assert response.filters["maxDistance"] == 50.0
        assert response.engineers[0].distance_km == 0.0

    def test_remote_only_with_location(self, searcher):
        """remoteOnly skips the radius; unlocated candidates sort last."""
        response = searcher.search_engineers({"location": SEOUL_LOCATION, "remoteOnly": True})

        assert _ids(response.engineers) == [3, 4]
        assert response.engineers[0].distance_km == pytest.approx(325, abs=3)
        assert response.engineers[1].distance_km is None

    def test_skills_match_any(self, searcher):
        assert _ids(searcher.search_engineers({"skills": "pcb, firmware"}).engineers) == [1, 3, 4]
        assert _ids(searcher.search_engineers({"skills": ["Robotics"]}).engineers) == [2]

    def test_query_filter(self, searcher):
        assert _ids(searcher.search_engineers({"query": "firmware"}).engineers) == [2, 3]

    def test_other_service_type_is_empty(self, searcher):
        assert searcher.search_engineers({"serviceType": "woodworking"}).count == 0

    def test_invalid_service_type(self, searcher):
        with pytest.raises(RequestValidationError) as exc_info:
            searcher.search_engineers({"serviceType": "plumbing"})
        assert exc_info.value.field == "serviceType"

    def test_missing_provider_is_skipped(self, seoul_engineers, registry):
        store = FakeListingStore(seoul_engineers, [make_provider(2)])
        response = SearchOrchestrator(store, registry).search_engineers({})
        assert _ids(response.engineers) == [2]

    def test_results_are_cached(self, searcher, search_store):
        searcher.search_engineers({"query": "firmware"})
        searcher.search_engineers({"query": "firmware"})
        assert search_store.calls.count("get_services_by_type") == 1


class TestListingService:
    """Listing mutations invalidate the cached results of their kind."""

    @pytest.fixture
    def service(self, fake_store, registry):
        return ListingService(fake_store, registry)

    def _prime(self, registry):
        registry.general.set("service:match-x", 1)
        registry.general.set("search-x", 2)
        registry.general.set("resource-x", 3)

    def test_create_invalidates_kind(self, service, registry):
        self._prime(registry)

        listing = service.create_listing({"title": "Laser cutter", "kind": "resource", "type": "laser"})

        assert listing.id == 5
        assert registry.general.keys() == ["service:match-x"]

    def test_create_validates(self, service):
        with pytest.raises(RequestValidationError) as exc_info:
            service.create_listing({"title": ""})
        assert exc_info.value.field == "title"

    def test_update_merges_changes(self, service, registry):
        self._prime(registry)

        updated = service.update_listing(2, {"is_remote": True, "price": 250000})

        assert updated.is_remote is True
        assert updated.price == 250000
        assert updated.title == "Robotics engineer"
        assert updated.tags == ("robotics",)
        assert updated.location is not None
        assert registry.general.keys() == ["resource-x"]

    def test_update_accepts_wire_names(self, service):
        assert service.update_listing(3, {"ratingCount": 12}).rating_count == 12

    def test_update_kind_change_invalidates_both(self, service, registry):
        self._prime(registry)
        service.update_listing(1, {"kind": "resource"})
        assert len(registry.general) == 0

    def test_update_unknown_listing(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            service.update_listing(999, {"title": "Ghost"})
        assert exc_info.value.entity == "listing"
        assert exc_info.value.identifier == 999

    def test_update_rejects_invalid_values(self, service, fake_store):
        with pytest.raises(RequestValidationError) as exc_info:
            service.update_listing(1, {"price": -1})
        assert exc_info.value.field == "price"
        assert "update_listing" not in fake_store.calls

    def test_update_requires_mapping(self, service):
        with pytest.raises(RequestValidationError):
            service.update_listing(1, ["price"])

    def test_delete(self, service, fake_store, registry):
        self._prime(registry)

        deleted = service.delete_listing(4)

        assert deleted.id == 4
        assert 4 not in fake_store.listings
        assert "service:match-x" not in registry.general
        with pytest.raises(NotFoundError):
            service.delete_listing(4)

    def test_import_fixture(self, registry):
        store = FakeListingStore()
        service = ListingService(store, registry)

        counts = service.import_fixture(
            {
                "providers": [{"id": 7, "username": "alice", "displayName": "Alice"}],
                "listings": [
                    {"title": "PCB layout", "type": "engineer", "providerId": 7, "tags": ["PCB", "PCB"]},
                    {"title": "Reflow oven", "kind": "resource", "providerId": 7},
                ],
            }
        )

        assert counts == {"providers": 1, "listings": 2}
        assert store.providers[7].display_name == "Alice"
        assert store.listings[1].tags == ("PCB",)
        assert store.listings[2].kind == ListingKind.RESOURCE

    def test_import_empty_fixture(self, registry):
        assert ListingService(FakeListingStore(), registry).import_fixture(None) == {"providers": 0, "listings": 0}

    def test_import_rejects_bad_provider(self, registry):
        service = ListingService(FakeListingStore(), registry)
        with pytest.raises(RequestValidationError):
            service.import_fixture({"providers": ["alice"]})
