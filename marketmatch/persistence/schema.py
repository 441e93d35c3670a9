"""ORM models for providers and listings, with domain conversions."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from marketmatch.domain.models import (
    Candidate,
    GeoPoint,
    ListingDraft,
    ProviderDraft,
    ProviderProfile,
)
from marketmatch.logging import get_logger

logger = get_logger(__name__, component="database")

Base = declarative_base()

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class ProviderModel(Base):
    """Provider accounts. Only the public profile is modelled."""

    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True)
    display_name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(String(50), nullable=False)

    def to_domain(self) -> ProviderProfile:
        return ProviderProfile(
            id=self.id,
            username=self.username,
            display_name=self.display_name,
            email=self.email,
            is_verified=bool(self.is_verified),
        )

    @classmethod
    def from_draft(cls, draft: ProviderDraft, provider_id: Optional[int] = None) -> "ProviderModel":
        return cls(
            id=provider_id,
            username=draft.username,
            display_name=draft.display_name,
            email=draft.email,
            is_verified=draft.is_verified,
            created_at=_format_datetime(_utc_now()),
        )


class ListingModel(Base):
    """Service and resource listings in one table, split by ``kind``.

    Deleted listings keep their row with ``deleted_at`` set and are excluded
    from every read.
    """

    __tablename__ = "listings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kind = Column(String(20), nullable=False)
    type = Column(String(50), nullable=False, default="")
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    price = Column(Float, nullable=True)
    is_remote = Column(Boolean, nullable=False, default=False)
    rating = Column(Float, nullable=True)
    rating_count = Column(Integer, nullable=False, default=0)
    availability_tier = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    address = Column(Text, nullable=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=True)
    created_at = Column(String(50), nullable=False)
    deleted_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_listings_kind_type", "kind", "type"),
        Index("idx_listings_location", "latitude", "longitude"),
        Index("idx_listings_provider", "provider_id"),
    )

    def to_domain(self) -> Candidate:
        location = None
        if self.latitude is not None and self.longitude is not None:
            location = GeoPoint(latitude=self.latitude, longitude=self.longitude, address=self.address)

        return Candidate(
            id=self.id,
            kind=self.kind,
            type=self.type or "",
            title=self.title,
            description=self.description or "",
            tags=self.tags or (),
            price=self.price,
            is_remote=bool(self.is_remote),
            rating=self.rating,
            rating_count=self.rating_count or 0,
            availability_tier=self.availability_tier,
            location=location,
            provider_id=self.provider_id,
            created_at=_parse_datetime(self.created_at),
        )

    @classmethod
    def from_draft(cls, draft: ListingDraft) -> "ListingModel":
        model = cls(created_at=_format_datetime(_utc_now()))
        model.apply_draft(draft)
        return model

    def apply_draft(self, draft: ListingDraft) -> None:
        """Overwrite every editable column from ``draft``."""
        self.kind = draft.kind.value
        self.type = draft.type
        self.title = draft.title
        self.description = draft.description
        self.tags = list(draft.tags)
        self.price = draft.price
        self.is_remote = draft.is_remote
        self.rating = draft.rating
        self.rating_count = draft.rating_count
        self.availability_tier = draft.availability_tier.value if draft.availability_tier else None
        self.latitude = draft.location.latitude if draft.location else None
        self.longitude = draft.location.longitude if draft.location else None
        self.address = draft.location.address if draft.location else None
        self.provider_id = draft.provider_id

    def mark_deleted(self) -> None:
        self.deleted_at = _format_datetime(_utc_now())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _format_datetime(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        logger.warning(f"Failed to parse stored timestamp: {value}")
        return None


def create_schema(engine: Engine) -> None:
    """Create tables that do not exist yet."""
    Base.metadata.create_all(engine)
    logger.debug("Database schema ensured", extra={"event": "database.schema.created"})
