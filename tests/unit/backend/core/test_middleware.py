"""
Unit Tests for Request Context Middleware.

The middleware is driven directly with a mocked starlette Request and a
stub call_next; structlog context binding is patched and inspected.
"""

from unittest.mock import MagicMock, patch

import pytest
from starlette.requests import Request
from starlette.responses import Response

from notekeeper.backend.core.middleware import (
    RequestContextMiddleware,
    frontend_from_header,
    route_source,
)

MIDDLEWARE_CONTEXTVARS = "notekeeper.backend.core.middleware.structlog.contextvars"


@pytest.fixture
def middleware() -> RequestContextMiddleware:
    return RequestContextMiddleware(MagicMock())


def make_request(path: str = "/api/v1/notes", method: str = "GET", headers=None):
    request = MagicMock(spec=Request)
    request.headers = headers or {}
    request.method = method
    request.url = MagicMock()
    request.url.path = path
    request.state = MagicMock()
    return request


async def ok(request):
    return Response(content="OK", status_code=200)


class TestRouteSource:
    @pytest.mark.parametrize(
        ("path", "source"),
        [
            ("/api/v1/notes", "store"),
            ("/api/v1/notes/abc-123", "store"),
            ("/api/v1/improve-text", "gateway"),
            ("/health/ready", "web"),
            ("/api/v1/notesx", "web"),
        ],
    )
    def test_service_area(self, path, source):
        assert route_source(path) == source


class TestFrontendFromHeader:
    @pytest.mark.parametrize(
        ("value", "frontend"),
        [("tui", "tui"), ("TUI", "tui"), (" cli ", "cli"), ("mobile", "unknown"), (None, "unknown")],
    )
    def test_normalized(self, value, frontend):
        assert frontend_from_header(value) == frontend


class TestDispatch:
    @pytest.mark.asyncio
    async def test_state_for_handlers(self, middleware):
        request = make_request("/api/v1/improve-text", "POST", {"X-Frontend-ID": "tui"})
        seen = {}

        async def call_next(req):
            seen.update(
                frontend=req.state.frontend,
                source=req.state.source,
                request_id=req.state.request_id,
            )
            return Response(status_code=200)

        with patch(MIDDLEWARE_CONTEXTVARS):
            await middleware.dispatch(request, call_next)

        assert seen["frontend"] == "tui"
        assert seen["source"] == "gateway"
        assert len(seen["request_id"]) == 36

    @pytest.mark.asyncio
    async def test_binds_store_context(self, middleware):
        request = make_request(
            "/api/v1/notes/n1", "PATCH", {"X-Frontend-ID": "client", "X-Request-ID": "req-7"}
        )

        with patch(MIDDLEWARE_CONTEXTVARS) as mock_ctx:
            await middleware.dispatch(request, ok)

        mock_ctx.bind_contextvars.assert_called_once_with(
            request_id="req-7",
            frontend="client",
            source="store",
            method="PATCH",
            path="/api/v1/notes/n1",
        )
        assert mock_ctx.clear_contextvars.call_count == 2

    @pytest.mark.asyncio
    async def test_correlation_headers(self, middleware):
        request = make_request(headers={"X-Request-ID": "req-42"})

        with patch(MIDDLEWARE_CONTEXTVARS):
            response = await middleware.dispatch(request, ok)

        assert response.headers["X-Request-ID"] == "req-42"
        assert response.headers["X-Response-Time"].removesuffix("ms").isdigit()

    @pytest.mark.asyncio
    async def test_server_errors_logged_as_warning(self, middleware):
        async def failing(request):
            return Response(status_code=503)

        with patch(MIDDLEWARE_CONTEXTVARS), patch(
            "notekeeper.backend.core.middleware.logger"
        ) as mock_logger:
            await middleware.dispatch(make_request("/api/v1/improve-text", "POST"), failing)

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["extra"]["status_code"] == 503
        mock_logger.debug.assert_not_called()

    @pytest.mark.asyncio
    async def test_exception_clears_context_and_propagates(self, middleware):
        async def broken(request):
            raise RuntimeError("handler crashed")

        with patch(MIDDLEWARE_CONTEXTVARS) as mock_ctx, patch(
            "notekeeper.backend.core.middleware.logger"
        ) as mock_logger:
            with pytest.raises(RuntimeError, match="handler crashed"):
                await middleware.dispatch(make_request(), broken)

        assert mock_ctx.clear_contextvars.call_count == 2
        assert mock_logger.error.call_args.kwargs["extra"]["error_type"] == "RuntimeError"
