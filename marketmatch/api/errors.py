"""Mapping of engine errors to HTTP responses.

- RequestValidationError -> 400 {message, field}
- NotFoundError -> 404
- UpstreamDependencyError -> 503
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError as FastAPIValidationError
from fastapi.responses import JSONResponse

from marketmatch.domain.exceptions import (
    EngineError,
    NotFoundError,
    RequestValidationError,
    UpstreamDependencyError,
)
from marketmatch.logging import get_logger

logger = get_logger(__name__, component="http")

# Location prefixes FastAPI adds to parameter errors
_LOCATION_PREFIXES = {"body", "query", "path", "header"}


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": exc.constraint, "field": exc.field})


async def handle_malformed_request(request: Request, exc: FastAPIValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"message": "invalid request", "field": None})

    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in _LOCATION_PREFIXES]
    return JSONResponse(
        status_code=400,
        content={"message": first.get("msg", "invalid request"), "field": ".".join(loc) or None},
    )


async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"message": str(exc), "entity": exc.entity, "id": exc.identifier},
    )


async def handle_upstream(request: Request, exc: UpstreamDependencyError) -> JSONResponse:
    logger.warning(
        f"Dependency unavailable: {exc}",
        extra={"event": "http.dependency_unavailable", "dependency": exc.dependency},
    )
    return JSONResponse(
        status_code=503,
        content={"message": str(exc), "dependency": exc.dependency},
    )


async def handle_engine_error(request: Request, exc: EngineError) -> JSONResponse:
    logger.error(
        f"Unhandled engine error: {exc}",
        extra={"event": "http.engine_error", "error_type": type(exc).__name__},
    )
    return JSONResponse(status_code=500, content={"message": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    # Starlette picks the handler of the closest class in the MRO
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(FastAPIValidationError, handle_malformed_request)
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(UpstreamDependencyError, handle_upstream)
    app.add_exception_handler(EngineError, handle_engine_error)
