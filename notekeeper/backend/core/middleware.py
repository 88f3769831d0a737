"""
Request Context Middleware.

Tags every request with a correlation id, the calling surface and the
service area it hits, and reports how long it took.

Headers:
    X-Request-ID      propagated from the caller or generated
    X-Frontend-ID     calling surface (tui, cli, client, web, internal)
    X-Response-Time   duration in milliseconds, on every response

The service area is bound as the log `source`: "store" for the notes API,
"gateway" for the improve-text endpoint, "web" for everything else. Store
and gateway traffic can then be filtered apart in logs/system.jsonl.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notekeeper.backend.core.logging import get_logger

logger = get_logger(__name__)

# Must stay a subset of VALID_SOURCES in logging.py
KNOWN_FRONTENDS = frozenset({"web", "cli", "tui", "client", "internal"})

ROUTE_SOURCES = (
    ("/api/v1/improve-text", "gateway"),
    ("/api/v1/notes", "store"),
)


def route_source(path: str) -> str:
    """Log source for a request path."""
    for prefix, source in ROUTE_SOURCES:
        if path == prefix or path.startswith(prefix + "/"):
            return source
    return "web"


def frontend_from_header(value: str | None) -> str:
    """Normalize X-Frontend-ID; unrecognized or missing values become "unknown"."""
    frontend = (value or "").strip().lower()
    return frontend if frontend in KNOWN_FRONTENDS else "unknown"


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Bind request context for logging and stamp correlation headers.

    request.state carries request_id, frontend and source for handlers;
    exception_handlers.py reads request_id from it for error envelopes.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        frontend = frontend_from_header(request.headers.get("X-Frontend-ID"))
        source = route_source(request.url.path)

        request.state.request_id = request_id
        request.state.frontend = frontend
        request.state.source = source

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            frontend=frontend,
            source=source,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()

        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    "Request failed with exception",
                    extra={"duration_ms": _elapsed_ms(started), "error_type": type(exc).__name__},
                )
                raise

            duration_ms = _elapsed_ms(started)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms}ms"

            log = logger.warning if response.status_code >= 500 else logger.debug
            log(
                "Request completed",
                extra={"status_code": response.status_code, "duration_ms": duration_ms},
            )
            return response
        finally:
            structlog.contextvars.clear_contextvars()
