"""SQLAlchemy-backed listing store."""

from .database import close_database, get_session, init_database, is_initialized
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import ListingRepository, ProviderRepository, bounding_box
from .store import ListingStore, SqlListingStore

__all__ = [
    "init_database",
    "get_session",
    "close_database",
    "is_initialized",
    "PersistenceError",
    "DatabaseConnectionError",
    "DataIntegrityError",
    "RecordNotFoundError",
    "ListingRepository",
    "ProviderRepository",
    "bounding_box",
    "ListingStore",
    "SqlListingStore",
]
