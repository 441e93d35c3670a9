"""Engine error taxonomy.

Every error raised across the engine boundary derives from EngineError so that
callers (HTTP layer, CLI) can map them to responses with one except clause.
An empty result set is never an error.
"""

from typing import Optional


class EngineError(Exception):
    """Base exception for all engine errors."""

    pass


class RequestValidationError(EngineError):
    """Raised when a request field is malformed or out of range.

    Attributes:
        field: Wire name of the offending field (dotted for nested fields)
        constraint: Human-readable description of the violated constraint
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        self.constraint = message
        super().__init__(f"{field}: {message}" if field else message)


class NumericError(RequestValidationError):
    """Raised for NaN or infinite numeric input (coordinates, budget, radius)."""

    pass


class NotFoundError(EngineError):
    """Raised when a referenced entity (listing, provider) does not exist."""

    def __init__(self, entity: str, identifier):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")


class UpstreamDependencyError(EngineError):
    """Raised when a collaborator (listing store, summarizer) is unavailable.

    Attributes:
        dependency: Short name of the failing collaborator
    """

    def __init__(self, dependency: str, message: str):
        self.dependency = dependency
        super().__init__(f"{dependency} unavailable: {message}")
