"""Domain models and error taxonomy."""

from .exceptions import (
    EngineError,
    NotFoundError,
    NumericError,
    RequestValidationError,
    UpstreamDependencyError,
)
from .models import (
    AvailabilityTier,
    Candidate,
    EngineerSearchRequest,
    GeoPoint,
    ListingDraft,
    ListingKind,
    MatchRequest,
    ProviderDraft,
    ProviderProfile,
    SearchRequest,
    SearchType,
    ServiceType,
    Urgency,
    validate_payload,
)

__all__ = [
    "AvailabilityTier",
    "Candidate",
    "EngineerSearchRequest",
    "GeoPoint",
    "ListingDraft",
    "ListingKind",
    "MatchRequest",
    "ProviderDraft",
    "ProviderProfile",
    "SearchRequest",
    "SearchType",
    "ServiceType",
    "Urgency",
    "validate_payload",
    "EngineError",
    "NotFoundError",
    "NumericError",
    "RequestValidationError",
    "UpstreamDependencyError",
]
