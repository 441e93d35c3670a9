"""Listing store seam used by the pipelines.

ListingStore is the collaborator interface: simple predicate queries plus the
mutations the listing service performs. SqlListingStore implements it over
the repositories and converts persistence failures into engine errors:
- RecordNotFoundError -> NotFoundError
- any other PersistenceError -> UpstreamDependencyError("listing_store")
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional

from marketmatch.domain.exceptions import NotFoundError, UpstreamDependencyError
from marketmatch.domain.models import (
    Candidate,
    GeoPoint,
    ListingDraft,
    ListingKind,
    ProviderDraft,
    ProviderProfile,
)
from marketmatch.logging import get_logger

from .database import get_session
from .exceptions import PersistenceError, RecordNotFoundError
from .repositories import ListingRepository, ProviderRepository

logger = get_logger(__name__, component="store")

DEPENDENCY_NAME = "listing_store"


class ListingStore(ABC):
    """Source of candidates and providers for the engine."""

    @abstractmethod
    def get_services_by_type(self, service_type: str) -> List[Candidate]:
        """Active service listings of one type."""

    @abstractmethod
    def get_services_by_location(
        self, origin: GeoPoint, max_distance_km: float, service_type: str
    ) -> List[Candidate]:
        """Located service listings of one type near ``origin``.

        May return candidates beyond the radius; callers filter exactly.
        """

    @abstractmethod
    def list_listings(self, kind: ListingKind) -> List[Candidate]:
        """All active listings of one kind."""

    @abstractmethod
    def get_provider(self, provider_id: int) -> Optional[ProviderProfile]:
        """Provider profile, or None when unknown."""

    @abstractmethod
    def create_listing(self, draft: ListingDraft) -> Candidate:
        pass

    @abstractmethod
    def update_listing(self, listing_id: int, draft: ListingDraft) -> Candidate:
        """Raises NotFoundError for an unknown id."""

    @abstractmethod
    def delete_listing(self, listing_id: int) -> Candidate:
        """Delete and return the listing. Raises NotFoundError for an unknown id."""

    @abstractmethod
    def get_listing(self, listing_id: int) -> Optional[Candidate]:
        pass

    @abstractmethod
    def create_provider(self, draft: ProviderDraft, provider_id: Optional[int] = None) -> ProviderProfile:
        pass


class SqlListingStore(ListingStore):
    """ListingStore backed by the SQLAlchemy repositories.

    Requires init_database() to have been called.
    """

    @contextmanager
    def _session_scope(self, operation: str) -> Iterator:
        try:
            with get_session() as session:
                yield session
        except RecordNotFoundError as e:
            raise NotFoundError(e.entity, e.identifier) from e
        except PersistenceError as e:
            logger.error(
                f"Listing store {operation} failed: {e}",
                extra={"event": "store.error", "operation": operation, "error_type": type(e).__name__},
            )
            raise UpstreamDependencyError(DEPENDENCY_NAME, str(e)) from e

    def get_services_by_type(self, service_type: str) -> List[Candidate]:
        with self._session_scope("get_services_by_type") as session:
            return ListingRepository(session).list_services_by_type(service_type)

    def get_services_by_location(
        self, origin: GeoPoint, max_distance_km: float, service_type: str
    ) -> List[Candidate]:
        with self._session_scope("get_services_by_location") as session:
            return ListingRepository(session).list_services_near(origin, max_distance_km, service_type)

    def list_listings(self, kind: ListingKind) -> List[Candidate]:
        with self._session_scope("list_listings") as session:
            return ListingRepository(session).list_by_kind(kind)

    def get_listing(self, listing_id: int) -> Optional[Candidate]:
        with self._session_scope("get_listing") as session:
            return ListingRepository(session).get_by_id(listing_id)

    def get_provider(self, provider_id: int) -> Optional[ProviderProfile]:
        with self._session_scope("get_provider") as session:
            return ProviderRepository(session).get_by_id(provider_id)

    def create_listing(self, draft: ListingDraft) -> Candidate:
        with self._session_scope("create_listing") as session:
            return ListingRepository(session).create(draft)

    def update_listing(self, listing_id: int, draft: ListingDraft) -> Candidate:
        with self._session_scope("update_listing") as session:
            return ListingRepository(session).update(listing_id, draft)

    def delete_listing(self, listing_id: int) -> Candidate:
        with self._session_scope("delete_listing") as session:
            return ListingRepository(session).soft_delete(listing_id)

    def create_provider(self, draft: ProviderDraft, provider_id: Optional[int] = None) -> ProviderProfile:
        with self._session_scope("create_provider") as session:
            return ProviderRepository(session).create(draft, provider_id=provider_id)
