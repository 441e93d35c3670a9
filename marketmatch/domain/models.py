"""Core domain models for listings, providers and engine requests.

This module defines the data structures used throughout the engine:
- GeoPoint: immutable latitude/longitude pair
- Candidate: a provider's listing as seen by the engine (read-only)
- ProviderProfile: sanitized provider view returned with match results
- MatchRequest / SearchRequest / EngineerSearchRequest: validated entry payloads

Wire names are camelCase (``projectDescription``, ``isRemote``); Python
attributes are snake_case. Models accept either form.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .exceptions import NumericError, RequestValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

_NON_FINITE_ERROR_TYPES = {"finite_number"}


class Urgency(str, Enum):
    """How soon the requester needs the work done."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AvailabilityTier(str, Enum):
    """How soon a provider can start."""

    IMMEDIATE = "immediate"
    WITHIN_WEEK = "within_week"
    WITHIN_MONTH = "within_month"
    NOT_SPECIFIED = "not_specified"


class ListingKind(str, Enum):
    """Listing table a candidate comes from."""

    SERVICE = "service"
    RESOURCE = "resource"


class SearchType(str, Enum):
    """Which listing tables a multilingual search covers."""

    ALL = "all"
    RESOURCES = "resources"
    SERVICES = "services"


class ServiceType(str, Enum):
    """Service categories offered on the marketplace."""

    ENGINEER = "engineer"
    ELECTRONICS = "electronics"
    MANUFACTURING = "manufacturing"
    WOODWORKING = "woodworking"
    METALWORKING = "metalworking"
    THREE_D_PRINTING = "3d_printing"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _dedupe_tags(v: Any) -> Tuple[str, ...]:
    if v is None:
        return ()
    if isinstance(v, str):
        v = [v]
    seen = []
    for tag in v:
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return tuple(seen)


def _alias_unspecified(v: Any) -> Any:
    if isinstance(v, str) and v.strip().lower() == "unspecified":
        return AvailabilityTier.NOT_SPECIFIED
    return v


class GeoPoint(BaseModel):
    """Immutable geographic point.

    Serialized as ``{"lat": ..., "long": ..., "address": ...}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    latitude: float = Field(..., alias="lat", ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(..., alias="long", ge=-180, le=180, allow_inf_nan=False)
    address: Optional[str] = None

    @field_validator("address")
    @classmethod
    def strip_address(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None


class Candidate(_WireModel):
    """A provider's service or resource listing.

    Owned by the listing store; the engine never mutates it. Tags are an
    ordered set: duplicates are dropped, first occurrence wins.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    kind: ListingKind = ListingKind.SERVICE
    type: str = Field("", description="Service type or resource category")
    title: str
    description: str = ""
    tags: Tuple[str, ...] = ()
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    is_remote: bool = False
    rating: Optional[float] = Field(None, ge=0, le=5, allow_inf_nan=False)
    rating_count: int = Field(0, ge=0)
    availability_tier: Optional[AvailabilityTier] = None
    location: Optional[GeoPoint] = None
    provider_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def dedupe_tags(cls, v: Any) -> Tuple[str, ...]:
        """Strip tags, drop empties and keep the first occurrence of each."""
        return _dedupe_tags(v)

    @field_validator("availability_tier", mode="before")
    @classmethod
    def alias_unspecified(cls, v: Any) -> Any:
        """Accept ``unspecified`` as a spelling of ``not_specified``."""
        return _alias_unspecified(v)

    def to_payload(self) -> dict:
        """Serialize to the camelCase wire shape."""
        return self.model_dump(mode="json", by_alias=True)


class ListingDraft(_WireModel):
    """Fields of a listing before the store assigns its id and timestamp."""

    kind: ListingKind = ListingKind.SERVICE
    type: str = Field("", max_length=50)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    tags: Tuple[str, ...] = ()
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    is_remote: bool = False
    rating: Optional[float] = Field(None, ge=0, le=5, allow_inf_nan=False)
    rating_count: int = Field(0, ge=0)
    availability_tier: Optional[AvailabilityTier] = None
    location: Optional[GeoPoint] = None
    provider_id: Optional[int] = None

    @field_validator("tags", mode="before")
    @classmethod
    def dedupe_tags(cls, v: Any) -> Tuple[str, ...]:
        return _dedupe_tags(v)

    @field_validator("availability_tier", mode="before")
    @classmethod
    def alias_unspecified(cls, v: Any) -> Any:
        return _alias_unspecified(v)

    @field_validator("type", "title", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "ListingDraft":
        return cls.model_validate(candidate.model_dump(exclude={"id", "created_at"}))


class ProviderDraft(_WireModel):
    """Fields of a provider account before the store assigns its id."""

    username: str = Field(..., min_length=1, max_length=100)
    display_name: Optional[str] = None
    email: Optional[str] = None
    is_verified: bool = False


class ProviderProfile(_WireModel):
    """Public view of a provider account. Credentials never leave the store."""

    id: int
    username: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    is_verified: bool = False

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class MatchRequest(_WireModel):
    """Validated engineer match request.

    ``max_distance_km`` stays None when the caller omits it; the orchestrator
    fills in the configured default radius.
    """

    free_text: str = Field(..., alias="projectDescription", min_length=10, max_length=1000)
    skills: Tuple[str, ...] = ()
    budget: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    urgency: Urgency = Urgency.MEDIUM
    origin: Optional[GeoPoint] = Field(None, alias="location")
    max_distance_km: Optional[float] = Field(None, alias="maxDistance", ge=0, allow_inf_nan=False)
    remote_only: bool = False

    @field_validator("free_text", mode="before")
    @classmethod
    def strip_free_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("skills", mode="before")
    @classmethod
    def normalize_skills(cls, v: Any) -> Tuple[str, ...]:
        """Strip skills, drop empties and deduplicate case-insensitively."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        skills = []
        seen = set()
        for skill in v:
            if not isinstance(skill, str):
                raise ValueError("skills must be a list of strings")
            skill = skill.strip()
            if skill and skill.lower() not in seen:
                seen.add(skill.lower())
                skills.append(skill)
        return tuple(skills)

    def criteria(self) -> dict:
        """Echo of the normalized request, in wire names."""
        return self.model_dump(mode="json", by_alias=True)


class SearchRequest(_WireModel):
    """Validated multilingual search request."""

    q: str = Field(..., min_length=1, max_length=200)
    lang: str = Field("auto", min_length=1)
    type: SearchType = SearchType.ALL
    limit: int = Field(20, ge=1, le=100)

    @field_validator("q", "lang", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class EngineerSearchRequest(_WireModel):
    """Validated engineer directory search request."""

    query: Optional[str] = None
    skills: Tuple[str, ...] = ()
    service_type: ServiceType = ServiceType.ENGINEER
    location: Optional[GeoPoint] = None
    max_distance: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    remote_only: bool = False

    @field_validator("query", mode="before")
    @classmethod
    def blank_query_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("skills", mode="before")
    @classmethod
    def split_skills(cls, v: Any) -> Tuple[str, ...]:
        """Accept a list or a comma-separated string."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(",")
        return tuple(skill.strip() for skill in v if isinstance(skill, str) and skill.strip())


def validate_payload(model: Type[ModelT], payload: Any) -> ModelT:
    """Validate a raw payload into ``model``, reporting the first violation.

    Args:
        model: Pydantic model class to validate against
        payload: Mapping (wire or attribute names) or an instance of ``model``

    Returns:
        Validated model instance

    Raises:
        NumericError: If the first violation is a NaN/Infinity value
        RequestValidationError: For any other violation
    """
    if isinstance(payload, model):
        return payload
    if not isinstance(payload, Mapping):
        raise RequestValidationError("request body must be an object")

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        if first["type"] in _NON_FINITE_ERROR_TYPES:
            raise NumericError(first["msg"], field=field) from e
        raise RequestValidationError(first["msg"], field=field) from e
