"""Request-scoped logging context.

Fields pushed here (request_id, endpoint, language, ...) are merged into every
log record emitted while the scope is active. Backed by contextvars so worker
threads and async handlers each see their own request.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("marketmatch_log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the active context fields."""
    return LogContextVar.get().copy()


def push_log_context(**fields: Any) -> Token:
    """Merge fields into the active context.

    Returns:
        Token to hand back to pop_log_context()
    """
    return LogContextVar.set({**LogContextVar.get(), **fields})


def pop_log_context(token: Token) -> None:
    """Restore the context that was active before the matching push."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Drop every context field. Used by tests."""
    LogContextVar.set({})


class log_context:
    """Context manager that scopes fields to a block.

    Example:
        >>> with log_context(request_id="abc123", endpoint="match"):
        ...     logger.info("Scoring candidates")
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
            self.token = None
        return False
