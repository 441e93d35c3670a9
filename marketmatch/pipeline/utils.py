"""Helpers shared by the pipelines for talking to the listing store."""

from typing import Callable, Dict, Optional, TypeVar

from marketmatch.domain.exceptions import EngineError, NotFoundError, UpstreamDependencyError
from marketmatch.domain.models import Candidate, ProviderProfile
from marketmatch.logging import get_logger
from marketmatch.persistence.store import DEPENDENCY_NAME, ListingStore

logger = get_logger(__name__, component="pipeline")

T = TypeVar("T")


def call_store(operation: str, fn: Callable[..., T], *args, **kwargs) -> T:
    """Invoke a store method, surfacing unexpected failures as UpstreamDependencyError.

    Engine errors raised by the store (NotFoundError, UpstreamDependencyError)
    propagate unchanged.
    """
    try:
        return fn(*args, **kwargs)
    except EngineError:
        raise
    except Exception as e:
        logger.error(
            f"Listing store call {operation} failed: {e}",
            extra={"event": "store.error", "operation": operation, "error_type": type(e).__name__},
        )
        raise UpstreamDependencyError(DEPENDENCY_NAME, f"{operation} failed: {e}") from e


class ProviderLookup:
    """Per-request provider cache; a provider is fetched at most once."""

    def __init__(self, store: ListingStore):
        self.store = store
        self._profiles: Dict[int, Optional[ProviderProfile]] = {}

    def for_candidate(self, candidate: Candidate) -> Optional[ProviderProfile]:
        """Provider of ``candidate``, or None when it has none or it is missing.

        Missing providers are logged and skipped, never fatal.
        """
        if candidate.provider_id is None:
            logger.debug(
                f"Skipping listing {candidate.id} without provider",
                extra={"event": "pipeline.candidate.skipped", "candidate_id": candidate.id, "reason": "no_provider"},
            )
            return None

        if candidate.provider_id not in self._profiles:
            try:
                profile = call_store("get_provider", self.store.get_provider, candidate.provider_id)
            except NotFoundError:
                profile = None
            self._profiles[candidate.provider_id] = profile

        profile = self._profiles[candidate.provider_id]
        if profile is None:
            logger.info(
                f"Skipping listing {candidate.id}: provider {candidate.provider_id} not found",
                extra={
                    "event": "pipeline.candidate.skipped",
                    "candidate_id": candidate.id,
                    "provider_id": candidate.provider_id,
                    "reason": "provider_missing",
                },
            )
        return profile
