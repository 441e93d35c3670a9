"""Listing store exceptions.

All persistence exceptions inherit from PersistenceError. The store seam
(SqlListingStore) translates them into engine errors, so nothing above the
persistence package catches these directly.
"""


class PersistenceError(Exception):
    """Base exception for database failures."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the database cannot be initialized or reached.

    Examples:
    - Malformed DATABASE_URL
    - SQLite file or directory not writable
    - Session requested before init_database()
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when an update or delete targets a listing or provider that does not exist.

    Lookups that may legitimately miss return None instead.
    """

    def __init__(self, entity: str, identifier):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations (duplicate username, unknown provider id)."""

    pass
