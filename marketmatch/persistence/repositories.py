"""Data access layer for providers and listings.

Repositories take a session, return domain models and raise persistence
exceptions; they never commit (get_session() owns the transaction).
"""

import math
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from marketmatch.domain.models import (
    Candidate,
    GeoPoint,
    ListingDraft,
    ListingKind,
    ProviderDraft,
    ProviderProfile,
)
from marketmatch.logging import get_logger

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import ListingModel, ProviderModel

logger = get_logger(__name__, component="database")


class ProviderRepository:
    """Repository for provider accounts."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, provider_id: int) -> Optional[ProviderProfile]:
        """Provider profile, or None if the id is unknown.

        Raises:
            PersistenceError: If a database error occurs
        """
        try:
            model = self.session.get(ProviderModel, provider_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving provider {provider_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve provider: {e}") from e

    def create(self, draft: ProviderDraft, provider_id: Optional[int] = None) -> ProviderProfile:
        """Insert a provider, optionally with a fixed id.

        Raises:
            DataIntegrityError: If the username or id is already taken
            PersistenceError: If another database error occurs
        """
        try:
            model = ProviderModel.from_draft(draft, provider_id=provider_id)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            self.session.rollback()
            raise DataIntegrityError(f"Provider '{draft.username}' conflicts with an existing record") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating provider {draft.username}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create provider: {e}") from e


class ListingRepository:
    """Repository for service and resource listings."""

    def __init__(self, session: Session):
        self.session = session

    def _active(self):
        return select(ListingModel).where(ListingModel.deleted_at.is_(None))

    def get_by_id(self, listing_id: int) -> Optional[Candidate]:
        """Active listing by id, or None."""
        model = self._get_model(listing_id)
        return model.to_domain() if model else None

    def _get_model(self, listing_id: int) -> Optional[ListingModel]:
        try:
            stmt = self._active().where(ListingModel.id == listing_id)
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving listing {listing_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve listing: {e}") from e

    def list_by_kind(self, kind: ListingKind) -> List[Candidate]:
        """All active listings of ``kind``, newest first."""
        stmt = (
            self._active()
            .where(ListingModel.kind == ListingKind(kind).value)
            .order_by(ListingModel.created_at.desc(), ListingModel.id.desc())
        )
        return self._fetch(stmt, f"kind={kind}")

    def list_services_by_type(self, service_type: str) -> List[Candidate]:
        """Active service listings of one service type, in id order."""
        stmt = (
            self._active()
            .where(ListingModel.kind == ListingKind.SERVICE.value, ListingModel.type == service_type)
            .order_by(ListingModel.id)
        )
        return self._fetch(stmt, f"type={service_type}")

    def list_services_near(self, origin: GeoPoint, max_distance_km: float, service_type: str) -> List[Candidate]:
        """Active located service listings inside a bounding box around ``origin``.

        The box is a superset of the radius; callers apply the exact
        great-circle filter.
        """
        stmt = (
            self._active()
            .where(
                ListingModel.kind == ListingKind.SERVICE.value,
                ListingModel.type == service_type,
                ListingModel.latitude.is_not(None),
                ListingModel.longitude.is_not(None),
            )
            .order_by(ListingModel.id)
        )

        box = bounding_box(origin, max_distance_km)
        if box is not None:
            min_lat, max_lat, min_lon, max_lon = box
            stmt = stmt.where(ListingModel.latitude.between(min_lat, max_lat))
            if min_lon is not None:
                stmt = stmt.where(ListingModel.longitude.between(min_lon, max_lon))

        return self._fetch(stmt, f"near=({origin.latitude},{origin.longitude}) type={service_type}")

    def _fetch(self, stmt, description: str) -> List[Candidate]:
        try:
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error querying listings ({description}): {e}", exc_info=True)
            raise PersistenceError(f"Failed to query listings: {e}") from e

    def create(self, draft: ListingDraft) -> Candidate:
        """Insert a listing.

        Raises:
            DataIntegrityError: If the provider id does not exist
            PersistenceError: If another database error occurs
        """
        try:
            model = ListingModel.from_draft(draft)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            self.session.rollback()
            raise DataIntegrityError(f"Listing violates a constraint: {e.orig}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating listing: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create listing: {e}") from e

    def update(self, listing_id: int, draft: ListingDraft) -> Candidate:
        """Replace the editable fields of an active listing.

        Raises:
            RecordNotFoundError: If no active listing has this id
        """
        model = self._get_model(listing_id)
        if model is None:
            raise RecordNotFoundError("listing", listing_id)
        try:
            model.apply_draft(draft)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            self.session.rollback()
            raise DataIntegrityError(f"Listing violates a constraint: {e.orig}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error updating listing {listing_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update listing: {e}") from e

    def soft_delete(self, listing_id: int) -> Candidate:
        """Mark an active listing deleted and return it as it was.

        Raises:
            RecordNotFoundError: If no active listing has this id
        """
        model = self._get_model(listing_id)
        if model is None:
            raise RecordNotFoundError("listing", listing_id)
        try:
            deleted = model.to_domain()
            model.mark_deleted()
            self.session.flush()
            return deleted
        except SQLAlchemyError as e:
            logger.error(f"Error deleting listing {listing_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete listing: {e}") from e


def bounding_box(origin: GeoPoint, max_distance_km: float, earth_radius_km: float = 6371.0):
    """Latitude/longitude bounds enclosing a radius around ``origin``.

    Returns:
        (min_lat, max_lat, min_lon, max_lon) with 10% margin; the longitude
        bounds are None when the box reaches a pole or crosses the
        antimeridian. None when the radius covers half the globe.
    """
    angular = math.degrees(max_distance_km / earth_radius_km) * 1.1
    if angular >= 90:
        return None

    min_lat = origin.latitude - angular
    max_lat = origin.latitude + angular
    if min_lat <= -90 or max_lat >= 90:
        return max(min_lat, -90.0), min(max_lat, 90.0), None, None

    lon_delta = angular / math.cos(math.radians(max(abs(min_lat), abs(max_lat))))
    min_lon = origin.longitude - lon_delta
    max_lon = origin.longitude + lon_delta
    if min_lon < -180 or max_lon > 180:
        return min_lat, max_lat, None, None

    return min_lat, max_lat, min_lon, max_lon
