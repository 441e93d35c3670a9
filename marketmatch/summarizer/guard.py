"""Timeout and circuit-breaker protection for the summarizer."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Callable, Optional, Sequence

from marketmatch.logging import get_logger
from marketmatch.matching.models import RankedCandidate

from .base import Summarizer

logger = get_logger(__name__, component="summarizer")


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreakerOpen(Exception):
    pass


class CircuitBreaker:
    """
    In-process circuit breaker.

    States:
      - CLOSED: allow calls, count consecutive failures
      - OPEN: reject calls for reset_timeout_seconds
      - HALF_OPEN: after the timeout, allow probe calls; one success closes,
        one failure reopens
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout_seconds = reset_timeout_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    def allow_request(self) -> None:
        """Raise CircuitBreakerOpen while the circuit is open."""
        with self._lock:
            if self._state != CircuitState.OPEN:
                return
            if self._clock() - self._opened_at >= self.reset_timeout_seconds:
                self._state = CircuitState.HALF_OPEN
                logger.info(
                    f"Circuit {self.name} half-open, allowing probe",
                    extra={"event": "summarizer.circuit.half_open", "circuit": self.name},
                )
                return
        raise CircuitBreakerOpen(f"Circuit breaker OPEN for {self.name}")

    def record_success(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failures = 0
            self._opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._state == CircuitState.HALF_OPEN or self._failures >= self.failure_threshold:
                self._open()

    def _open(self) -> None:
        if self._state != CircuitState.OPEN:
            logger.warning(
                f"Circuit {self.name} opened after {self._failures} failures",
                extra={"event": "summarizer.circuit.opened", "circuit": self.name, "failures": self._failures},
            )
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()


class GuardedSummarizer(Summarizer):
    """Wraps a summarizer so that it can only ever return text or None.

    The inner call runs on a worker thread and is abandoned after
    ``timeout_seconds``. Timeouts and errors count as circuit failures; while
    the circuit is open the inner summarizer is not called at all.
    """

    def __init__(
        self,
        inner: Summarizer,
        timeout_seconds: float = 5.0,
        breaker: Optional[CircuitBreaker] = None,
        max_workers: int = 4,
    ):
        self.inner = inner
        self.timeout_seconds = timeout_seconds
        self.breaker = breaker or CircuitBreaker("summarizer")
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="summarizer")

    def summarize(self, description: str, top_results: Sequence[RankedCandidate]) -> Optional[str]:
        if not top_results:
            return None

        try:
            self.breaker.allow_request()
        except CircuitBreakerOpen:
            logger.info(
                "Summarizer skipped, circuit open",
                extra={"event": "summarizer.skipped", "reason": "circuit_open"},
            )
            return None

        future = self._executor.submit(self.inner.summarize, description, list(top_results))
        try:
            summary = future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            future.cancel()
            self.breaker.record_failure()
            logger.warning(
                f"Summarizer timed out after {self.timeout_seconds} seconds",
                extra={"event": "summarizer.timeout", "timeout": self.timeout_seconds},
            )
            return None
        except Exception as e:
            self.breaker.record_failure()
            logger.warning(
                f"Summarizer failed: {e}",
                extra={"event": "summarizer.failed", "error_type": type(e).__name__},
            )
            return None

        self.breaker.record_success()
        return summary

    def shutdown(self) -> None:
        """Stop accepting work; in-flight calls finish in the background."""
        self._executor.shutdown(wait=False)
