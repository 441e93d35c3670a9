"""HTTP middleware."""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from marketmatch.logging import get_logger
from marketmatch.logging.context import log_context

logger = get_logger(__name__, component="http")

REQUEST_ID_HEADER = "X-Request-Id"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs its outcome.

    The id comes from the ``X-Request-Id`` header when the caller sends one.
    It is echoed on the response and stamped on every log record emitted
    while the request is handled.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        with log_context(request_id=request_id, method=request.method, path=request.url.path):
            start = time.perf_counter()
            try:
                response: Response = await call_next(request)
            except Exception:
                duration_ms = (time.perf_counter() - start) * 1000
                logger.error(
                    f"{request.method} {request.url.path} failed",
                    exc_info=True,
                    extra={"event": "http.request.failed", "status": 500, "duration_ms": round(duration_ms, 2)},
                )
                raise

            duration_ms = (time.perf_counter() - start) * 1000
            response.headers[REQUEST_ID_HEADER] = request_id

            logger.info(
                f"{request.method} {request.url.path} {response.status_code}",
                extra={
                    "event": "http.request.completed",
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            return response
