"""Listing mutations with cache invalidation."""

from typing import Any, Dict, Mapping, Optional

from marketmatch.cache.registry import CacheRegistry
from marketmatch.domain.exceptions import NotFoundError, RequestValidationError
from marketmatch.domain.models import (
    Candidate,
    ListingDraft,
    ProviderDraft,
    validate_payload,
)
from marketmatch.logging import get_logger
from marketmatch.persistence.store import ListingStore

from .utils import call_store

logger = get_logger(__name__, component="listings")


def _to_wire_names(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Rename attribute-name keys (``is_remote``) to wire names (``isRemote``)."""
    renamed = {}
    for key, value in changes.items():
        field = ListingDraft.model_fields.get(key)
        renamed[field.alias if field is not None and field.alias else key] = value
    return renamed


class ListingService:
    """Creates, updates and deletes listings.

    Every mutation drops the cached search and match results derived from the
    listing's kind, so a ranking computed before the change is never served
    after it.
    """

    def __init__(self, store: ListingStore, cache: CacheRegistry):
        self.store = store
        self.cache = cache

    def create_listing(self, payload: Any) -> Candidate:
        """Validate and store a new listing.

        Raises:
            RequestValidationError: If the payload is invalid
            UpstreamDependencyError: If the store fails
        """
        draft = validate_payload(ListingDraft, payload)
        listing = call_store("create_listing", self.store.create_listing, draft)
        self.cache.invalidate_for_kind(listing.kind)

        logger.info(
            f"Created listing {listing.id}",
            extra={"event": "listing.created", "listing_id": listing.id, "kind": listing.kind.value},
        )
        return listing

    def update_listing(self, listing_id: int, changes: Mapping[str, Any]) -> Candidate:
        """Apply a partial update.

        Args:
            listing_id: Listing to change
            changes: Fields to overwrite, in wire or attribute names

        Raises:
            NotFoundError: If the listing does not exist
            RequestValidationError: If the merged listing is invalid
        """
        if not isinstance(changes, Mapping):
            raise RequestValidationError("update body must be an object")

        existing = call_store("get_listing", self.store.get_listing, listing_id)
        if existing is None:
            raise NotFoundError("listing", listing_id)

        merged = ListingDraft.from_candidate(existing).model_dump(by_alias=True)
        merged.update(_to_wire_names(changes))
        draft = validate_payload(ListingDraft, merged)

        listing = call_store("update_listing", self.store.update_listing, listing_id, draft)
        self.cache.invalidate_for_kind(existing.kind)
        if listing.kind != existing.kind:
            self.cache.invalidate_for_kind(listing.kind)

        logger.info(
            f"Updated listing {listing_id}",
            extra={"event": "listing.updated", "listing_id": listing_id, "fields": sorted(changes)},
        )
        return listing

    def delete_listing(self, listing_id: int) -> Candidate:
        """Delete a listing and return it.

        Raises:
            NotFoundError: If the listing does not exist
        """
        listing = call_store("delete_listing", self.store.delete_listing, listing_id)
        self.cache.invalidate_for_kind(listing.kind)

        logger.info(
            f"Deleted listing {listing_id}",
            extra={"event": "listing.deleted", "listing_id": listing_id, "kind": listing.kind.value},
        )
        return listing

    def import_fixture(self, data: Optional[Mapping[str, Any]]) -> Dict[str, int]:
        """Load providers and listings from a fixture mapping.

        Expected shape::

            providers:
              - {id: 1, username: alice, displayName: Alice}
            listings:
              - {title: PCB design, type: engineer, providerId: 1, ...}

        Returns:
            Counts of imported providers and listings
        """
        data = data or {}
        if not isinstance(data, Mapping):
            raise RequestValidationError("fixture root must be a mapping")

        providers = 0
        for entry in data.get("providers") or []:
            if not isinstance(entry, Mapping):
                raise RequestValidationError("provider entries must be mappings", field="providers")
            provider_id = entry.get("id")
            draft = validate_payload(ProviderDraft, {k: v for k, v in entry.items() if k != "id"})
            call_store("create_provider", self.store.create_provider, draft, provider_id)
            providers += 1

        listings = 0
        for entry in data.get("listings") or []:
            self.create_listing(entry)
            listings += 1

        logger.info(
            f"Imported {providers} providers and {listings} listings",
            extra={"event": "listing.imported", "providers": providers, "listings": listings},
        )
        return {"providers": providers, "listings": listings}
