"""Tests for the recommendation summarizer, its guard and circuit breaker."""

import threading
from unittest.mock import Mock

import pytest
import requests

from marketmatch.config.environment import EnvironmentConfig
from marketmatch.config.models import SummarizerConfig
from marketmatch.domain.exceptions import UpstreamDependencyError
from marketmatch.domain.models import MatchRequest
from marketmatch.matching import ScoringEngine
from marketmatch.matching.models import RankedCandidate
from marketmatch.summarizer import (
    CircuitBreaker,
    CircuitBreakerOpen,
    CircuitState,
    GuardedSummarizer,
    NullSummarizer,
    OpenAIChatSummarizer,
    PromptRenderer,
    build_summarizer,
)

from tests.helpers import FailingSummarizer, RecordingSummarizer, SlowSummarizer, make_candidate, make_provider

DESCRIPTION = "Need a PCB layout for an IoT sensor board"


@pytest.fixture
def top_results():
    engine = ScoringEngine()
    request = MatchRequest(free_text=DESCRIPTION, skills=["PCB design"])
    candidates = [
        make_candidate(1, title="PCB design engineer", tags=("PCB design", "IoT"), description="Board layout"),
        make_candidate(2, title="Robotics engineer", is_remote=True),
    ]
    return [
        RankedCandidate(
            result=engine.evaluate(candidate, request, distance_km=3.21 if candidate.id == 1 else None),
            candidate=candidate,
            provider=make_provider(candidate.id),
        )
        for candidate in candidates
    ]


def _response(status_code=200, payload=None, reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.reason = reason
    response.json.return_value = payload
    return response


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def session():
    session = Mock()
    session.headers = {}
    return session


class TestCircuitBreaker:
    """Tests for CircuitBreaker state transitions."""

    def test_opens_after_threshold(self, clock):
        breaker = CircuitBreaker("test", failure_threshold=2, reset_timeout_seconds=30, clock=clock)

        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED
        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerOpen):
            breaker.allow_request()

    def test_half_open_after_reset_timeout(self, clock):
        breaker = CircuitBreaker("test", failure_threshold=1, reset_timeout_seconds=30, clock=clock)
        breaker.record_failure()

        clock.advance(30)
        breaker.allow_request()

        assert breaker.state == CircuitState.HALF_OPEN

    def test_probe_success_closes(self, clock):
        breaker = CircuitBreaker("test", failure_threshold=1, reset_timeout_seconds=30, clock=clock)
        breaker.record_failure()
        clock.advance(31)
        breaker.allow_request()

        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failures == 0

    def test_probe_failure_reopens(self, clock):
        breaker = CircuitBreaker("test", failure_threshold=3, reset_timeout_seconds=30, clock=clock)
        for _ in range(3):
            breaker.record_failure()
        clock.advance(30)
        breaker.allow_request()

        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerOpen):
            breaker.allow_request()

    def test_success_resets_failure_count(self, clock):
        breaker = CircuitBreaker("test", failure_threshold=2, clock=clock)
        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValueError):
            CircuitBreaker("test", failure_threshold=0)


class TestGuardedSummarizer:
    """GuardedSummarizer only ever returns text or None."""

    def test_passes_through_text(self, top_results):
        inner = RecordingSummarizer("Pick User 1.")
        guarded = GuardedSummarizer(inner, timeout_seconds=1)
        try:
            assert guarded.summarize(DESCRIPTION, top_results) == "Pick User 1."
            assert inner.calls[0][0] == DESCRIPTION
            assert len(inner.calls[0][1]) == 2
        finally:
            guarded.shutdown()

    def test_empty_top_results_skip_inner(self):
        inner = RecordingSummarizer()
        guarded = GuardedSummarizer(inner)
        try:
            assert guarded.summarize(DESCRIPTION, []) is None
            assert inner.calls == []
        finally:
            guarded.shutdown()

    def test_failure_returns_none_and_counts(self, top_results):
        breaker = CircuitBreaker("summarizer", failure_threshold=5)
        guarded = GuardedSummarizer(FailingSummarizer(), breaker=breaker)
        try:
            assert guarded.summarize(DESCRIPTION, top_results) is None
            assert breaker.failures == 1
        finally:
            guarded.shutdown()

    def test_unexpected_exception_returns_none(self, top_results):
        guarded = GuardedSummarizer(FailingSummarizer(RuntimeError("boom")))
        try:
            assert guarded.summarize(DESCRIPTION, top_results) is None
        finally:
            guarded.shutdown()

    def test_timeout_returns_none(self, top_results):
        inner = SlowSummarizer()
        breaker = CircuitBreaker("summarizer", failure_threshold=5)
        guarded = GuardedSummarizer(inner, timeout_seconds=0.05, breaker=breaker)
        try:
            assert guarded.summarize(DESCRIPTION, top_results) is None
            assert breaker.failures == 1
        finally:
            inner.release.set()
            guarded.shutdown()

    def test_open_circuit_skips_inner(self, top_results, clock):
        inner = FailingSummarizer()
        breaker = CircuitBreaker("summarizer", failure_threshold=2, reset_timeout_seconds=30, clock=clock)
        guarded = GuardedSummarizer(inner, breaker=breaker)
        try:
            guarded.summarize(DESCRIPTION, top_results)
            guarded.summarize(DESCRIPTION, top_results)
            assert breaker.state == CircuitState.OPEN

            assert guarded.summarize(DESCRIPTION, top_results) is None
            assert inner.calls == 2
        finally:
            guarded.shutdown()

    def test_success_after_cooldown_closes_circuit(self, top_results, clock):
        inner = RecordingSummarizer("ok")
        breaker = CircuitBreaker("summarizer", failure_threshold=1, reset_timeout_seconds=30, clock=clock)
        breaker.record_failure()
        guarded = GuardedSummarizer(inner, breaker=breaker)
        try:
            clock.advance(30)
            assert guarded.summarize(DESCRIPTION, top_results) == "ok"
            assert breaker.state == CircuitState.CLOSED
        finally:
            guarded.shutdown()


class TestPromptRenderer:
    """Tests for the recommendation prompt templates."""

    def test_renders_candidates(self, top_results):
        messages = PromptRenderer().render(
            {
                "description": DESCRIPTION,
                "candidates": top_results,
                "response_language": "English",
                "max_characters": 300,
            }
        )

        assert [m["role"] for m in messages] == ["system", "user"]
        user = messages[1]["content"]
        assert DESCRIPTION in user
        assert "1. User 1" in user
        assert "about 3.2 km away" in user
        assert "available remotely" in user
        assert "PCB design, IoT" in user
        assert "Respond in English" in user


class TestOpenAIChatSummarizer:
    """Tests for OpenAIChatSummarizer against a mocked requests session."""

    def test_posts_chat_completion(self, session, top_results):
        session.post.return_value = _response(payload=_completion("  User 1 is the best fit.  "))
        config = SummarizerConfig(api_base="https://llm.example.com/v1/", model="gpt-4o-mini", max_tokens=200)
        summarizer = OpenAIChatSummarizer("sk-test", config=config, session_factory=lambda: session)

        assert summarizer.summarize(DESCRIPTION, top_results) == "User 1 is the best fit."

        url = session.post.call_args.args[0]
        body = session.post.call_args.kwargs["json"]
        assert url == "https://llm.example.com/v1/chat/completions"
        assert body["model"] == "gpt-4o-mini"
        assert body["max_tokens"] == 200
        assert len(body["messages"]) == 2
        assert session.post.call_args.kwargs["timeout"] == config.timeout_seconds
        assert session.headers["Authorization"] == "Bearer sk-test"

    def test_http_error_raises_upstream(self, session, top_results):
        session.post.return_value = _response(status_code=500, reason="Internal Server Error")
        summarizer = OpenAIChatSummarizer("sk-test", session_factory=lambda: session)

        with pytest.raises(UpstreamDependencyError) as exc_info:
            summarizer.summarize(DESCRIPTION, top_results)
        assert exc_info.value.dependency == "summarizer"
        assert "HTTP 500" in str(exc_info.value)

    def test_timeout_raises_upstream(self, session, top_results):
        session.post.side_effect = requests.exceptions.Timeout("read timed out")
        summarizer = OpenAIChatSummarizer("sk-test", session_factory=lambda: session)

        with pytest.raises(UpstreamDependencyError):
            summarizer.summarize(DESCRIPTION, top_results)

    def test_connection_error_raises_upstream(self, session, top_results):
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        summarizer = OpenAIChatSummarizer("sk-test", session_factory=lambda: session)

        with pytest.raises(UpstreamDependencyError):
            summarizer.summarize(DESCRIPTION, top_results)

    @pytest.mark.parametrize("payload", [{"choices": []}, {"error": "quota"}, None])
    def test_unexpected_shape_raises_upstream(self, session, top_results, payload):
        session.post.return_value = _response(payload=payload)
        summarizer = OpenAIChatSummarizer("sk-test", session_factory=lambda: session)

        with pytest.raises(UpstreamDependencyError):
            summarizer.summarize(DESCRIPTION, top_results)

    def test_blank_content_is_none(self, session, top_results):
        session.post.return_value = _response(payload=_completion("   "))
        summarizer = OpenAIChatSummarizer("sk-test", session_factory=lambda: session)
        assert summarizer.summarize(DESCRIPTION, top_results) is None

    def test_no_results_skips_request(self, session):
        summarizer = OpenAIChatSummarizer("sk-test", session_factory=lambda: session)
        assert summarizer.summarize(DESCRIPTION, []) is None
        session.post.assert_not_called()

    def test_each_thread_gets_its_own_session(self, top_results):
        """Guard worker threads never share a requests session."""
        sessions = []

        def factory():
            new_session = Mock()
            new_session.headers = {}
            new_session.post.return_value = _response(payload=_completion("User 1 fits."))
            sessions.append(new_session)
            return new_session

        summarizer = OpenAIChatSummarizer("sk-test", session_factory=factory)
        summarizer.summarize(DESCRIPTION, top_results)
        summarizer.summarize(DESCRIPTION, top_results)

        worker = threading.Thread(target=summarizer.summarize, args=(DESCRIPTION, top_results))
        worker.start()
        worker.join()

        assert len(sessions) == 2
        assert sessions[0].post.call_count == 2
        assert sessions[1].post.call_count == 1
        assert all(s.headers["Authorization"] == "Bearer sk-test" for s in sessions)

    def test_empty_api_key_rejected(self, session):
        with pytest.raises(ValueError):
            OpenAIChatSummarizer("  ", session_factory=lambda: session)


class TestBuildSummarizer:
    """Tests for build_summarizer."""

    def test_no_api_key_gives_null(self):
        assert isinstance(build_summarizer(SummarizerConfig(), EnvironmentConfig()), NullSummarizer)

    def test_no_environment_gives_null(self):
        assert isinstance(build_summarizer(SummarizerConfig()), NullSummarizer)

    def test_disabled_gives_null(self):
        env = EnvironmentConfig(openai_api_key="sk-test")
        assert isinstance(build_summarizer(SummarizerConfig(enabled=False), env), NullSummarizer)

    def test_api_key_gives_guarded_client(self):
        env = EnvironmentConfig(openai_api_key="sk-test", summarizer_api_base="http://localhost:8080/v1/")
        config = SummarizerConfig(timeout_seconds=2, failure_threshold=3)

        summarizer = build_summarizer(config, env)
        try:
            assert isinstance(summarizer, GuardedSummarizer)
            assert isinstance(summarizer.inner, OpenAIChatSummarizer)
            assert summarizer.inner.endpoint == "http://localhost:8080/v1/chat/completions"
            assert summarizer.timeout_seconds == 2
            assert summarizer.breaker.failure_threshold == 3
        finally:
            summarizer.shutdown()
