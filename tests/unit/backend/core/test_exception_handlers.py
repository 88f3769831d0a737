"""
Unit Tests for Exception Handlers.

Tests the exception handler functions in isolation.
"""

import json
from unittest.mock import MagicMock

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError

from notekeeper.backend.core.exception_handlers import (
    CORS_HEADERS,
    EXCEPTION_STATUS_MAP,
    _get_request_id,
    application_error_handler,
    gateway_error_handler,
    unhandled_exception_handler,
    validation_error_handler,
)
from notekeeper.backend.core.exceptions import (
    ApplicationError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    GatewayError,
    NotFoundError,
    ValidationError,
)


def _request(path: str = "/api/v1/notes", method: str = "GET", headers: dict | None = None):
    request = MagicMock(spec=Request)
    request.url.path = path
    request.method = method
    request.headers = headers or {}
    del request.state.request_id
    return request


class TestExceptionStatusMapping:
    """Tests for exception to HTTP status code mapping."""

    @pytest.mark.parametrize(
        ("exc_type", "status"),
        [
            (NotFoundError, 404),
            (ValidationError, 400),
            (ConflictError, 409),
            (ExternalServiceError, 502),
            (DatabaseError, 503),
        ],
    )
    def test_status_mapping(self, exc_type, status):
        """Each application error type should map to its HTTP status."""
        assert EXCEPTION_STATUS_MAP[exc_type] == status


class TestGetRequestId:
    """Tests for request ID extraction."""

    def test_extracts_from_request_state(self):
        """Should extract request_id from request.state."""
        request = MagicMock(spec=Request)
        request.state.request_id = "state-123"
        request.headers = {}

        assert _get_request_id(request) == "state-123"

    def test_extracts_from_header(self):
        """Should extract request_id from x-request-id header."""
        request = _request(headers={"x-request-id": "header-456"})

        assert _get_request_id(request) == "header-456"

    def test_returns_none_when_not_present(self):
        """Should return None when no request_id available."""
        assert _get_request_id(_request()) is None


class TestApplicationErrorHandler:
    """Tests for application_error_handler."""

    @pytest.mark.asyncio
    async def test_not_found_returns_404(self):
        """NotFoundError should return 404 in the error envelope."""
        request = _request(headers={"x-request-id": "test-123"})

        response = await application_error_handler(request, NotFoundError("Note not found"))

        assert response.status_code == 404
        body = json.loads(response.body)
        assert body["success"] is False
        assert body["error"]["code"] == "RES_NOT_FOUND"
        assert body["error"]["message"] == "Note not found"
        assert body["metadata"]["request_id"] == "test-123"

    @pytest.mark.asyncio
    async def test_validation_includes_details(self):
        """ValidationError should include details in response."""
        exc = ValidationError("Validation failed", details={"title": "Title cannot be blank"})

        response = await application_error_handler(_request(), exc)

        assert response.status_code == 400
        body = json.loads(response.body)
        assert body["error"]["code"] == "VAL_VALIDATION_ERROR"
        assert body["error"]["details"] == {"title": "Title cannot be blank"}

    @pytest.mark.asyncio
    async def test_unknown_application_error_returns_500(self):
        """ApplicationError subclasses outside the mapping should return 500."""
        exc = ApplicationError("Unknown error", code="CUSTOM_ERROR")

        response = await application_error_handler(_request(), exc)

        assert response.status_code == 500


class TestGatewayErrorHandler:
    """Tests for gateway_error_handler."""

    @pytest.mark.asyncio
    async def test_renders_gateway_body_with_status(self):
        """Should answer with the error's status and the {error, details} body."""
        exc = GatewayError("Rate limit exceeded", 429, details="Please wait a moment and try again")

        response = await gateway_error_handler(_request("/api/v1/improve-text", "POST"), exc)

        assert response.status_code == 429
        assert json.loads(response.body) == {
            "error": "Rate limit exceeded",
            "details": "Please wait a moment and try again",
        }

    @pytest.mark.asyncio
    async def test_omits_details_when_absent(self):
        """Should leave out details when the error has none."""
        exc = GatewayError("Text is required", 400)

        response = await gateway_error_handler(_request("/api/v1/improve-text", "POST"), exc)

        assert json.loads(response.body) == {"error": "Text is required"}

    @pytest.mark.asyncio
    async def test_includes_cors_headers(self):
        """Failures should be readable by cross-origin browser clients."""
        exc = GatewayError("Internal server error", 500)

        response = await gateway_error_handler(_request("/api/v1/improve-text", "POST"), exc)

        for name, value in CORS_HEADERS.items():
            assert response.headers[name] == value


class TestValidationErrorHandler:
    """Tests for validation_error_handler."""

    @pytest.mark.asyncio
    async def test_returns_422_with_field_errors(self):
        """Request validation errors should return 422 with field-level details."""
        exc = MagicMock(spec=RequestValidationError)
        exc.errors.return_value = [
            {"loc": ("body", "title"), "msg": "field required", "type": "missing"},
            {"loc": ("body", "content"), "msg": "too long", "type": "string_too_long"},
        ]

        response = await validation_error_handler(_request(method="POST"), exc)

        assert response.status_code == 422
        body = json.loads(response.body)
        assert body["error"]["code"] == "VAL_REQUEST_INVALID"
        fields = [e["field"] for e in body["error"]["details"]["validation_errors"]]
        assert fields == ["body.title", "body.content"]


class TestUnhandledExceptionHandler:
    """Tests for unhandled_exception_handler."""

    @pytest.mark.asyncio
    async def test_returns_500(self):
        """Unhandled exception should return 500."""
        response = await unhandled_exception_handler(_request(), RuntimeError("boom"))

        assert response.status_code == 500

    @pytest.mark.asyncio
    async def test_hides_internal_details(self):
        """Response should not expose internal error details."""
        exc = RuntimeError("Upstream key: AIza-secret-value")

        response = await unhandled_exception_handler(_request(), exc)

        body = response.body.decode()
        assert "AIza-secret-value" not in body
        assert "SYS_INTERNAL_ERROR" in body
        assert "unexpected error" in body.lower()
