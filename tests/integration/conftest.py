"""
Integration Test Fixtures.

Fixtures for integration tests - uses a real database and the real
FastAPI application. The upstream language model is replaced by an
httpx.MockTransport; nothing leaves the process.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import aiobreaker
import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notekeeper.backend.api.v1.endpoints.improve import get_improve_service
from notekeeper.backend.core.config import get_app_config
from notekeeper.backend.core.config_schema import GeminiProviderSchema, GenerationSchema
from notekeeper.backend.core.database import get_db_session
from notekeeper.backend.core.resilience import create_circuit_breaker
from notekeeper.backend.gateway.providers import GeminiProvider, UpstreamClientError
from notekeeper.backend.services.improve import ImproveService

UpstreamHandler = Callable[[httpx.Request], httpx.Response]


def gemini_payload(text: str) -> dict[str, Any]:
    """A successful Gemini generateContent answer."""
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class UpstreamStub:
    """
    Stand-in for the upstream model API.

    Tests set `handler` to control the answer; `requests` records what the
    gateway sent.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: UpstreamHandler = lambda request: httpx.Response(
            200, json=gemini_payload("Improved text")
        )
        self.credential: str | None = "test-key"
        self.breaker: aiobreaker.CircuitBreaker = create_circuit_breaker(
            "upstream_test", fail_max=3, timeout_duration=30, exclude=[UpstreamClientError]
        )

    def _dispatch(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def service(self) -> ImproveService:
        provider = GeminiProvider(
            GeminiProviderSchema(base_url="https://gemini.test/v1beta", model="gemini-test"),
            self.credential,
            GenerationSchema(),
        )
        return ImproveService(
            client=httpx.AsyncClient(transport=httpx.MockTransport(self._dispatch)),
            provider=provider,
            breaker=self.breaker,
            features=get_app_config().features,
        )


@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub()


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def app(
    db_session_factory: async_sessionmaker[AsyncSession],
    upstream: UpstreamStub,
):
    """
    FastAPI app wired to the test database and the upstream stub.

    Each request gets its own session from the test engine and commits
    like the real dependency does, so data survives across requests.
    """
    from notekeeper.backend.main import create_app

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with db_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application = create_app()
    application.dependency_overrides[get_db_session] = override_get_db_session
    application.dependency_overrides[get_improve_service] = upstream.service
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client on the ASGI app.

    Usage:
        async def test_health_endpoint(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client


@pytest.fixture
async def client_no_db() -> AsyncGenerator[AsyncClient, None]:
    """
    Test client without any dependency override.

    Use this for endpoints that don't require database access.
    """
    from notekeeper.backend.main import create_app

    async with AsyncClient(
        transport=ASGITransport(app=create_app()),
        base_url="http://test",
    ) as test_client:
        yield test_client


# =============================================================================
# API Response Assertion Helpers
# =============================================================================


class ApiAssertions:
    """Helper class for API response assertions."""

    @staticmethod
    def assert_success(response: Any, expected_status: int = 200) -> dict[str, Any]:
        """
        Assert API response is successful.

        Returns:
            Response JSON data
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is True, f"Response not successful: {data}"
        return data

    @staticmethod
    def assert_error(
        response: Any,
        expected_status: int,
        expected_code: str | None = None,
    ) -> dict[str, Any]:
        """
        Assert API response is an error in the ErrorResponse envelope.

        Returns:
            Response JSON data
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is False, f"Response should be error: {data}"
        assert data.get("error") is not None, f"Missing error details: {data}"

        if expected_code:
            actual_code = data["error"].get("code")
            assert actual_code == expected_code, (
                f"Expected error code {expected_code}, got {actual_code}"
            )

        return data

    @staticmethod
    def assert_validation_error(
        response: Any,
        field: str | None = None,
    ) -> dict[str, Any]:
        """Assert API response is a validation error (422)."""
        data = ApiAssertions.assert_error(response, 422, "VAL_REQUEST_INVALID")

        if field:
            errors = data["error"].get("details", {}).get("validation_errors", [])
            fields = [e.get("field", "") for e in errors]
            assert any(field in f for f in fields), (
                f"Expected validation error for field '{field}', "
                f"got errors for: {fields}"
            )

        return data

    @staticmethod
    def assert_gateway_error(
        response: Any,
        expected_status: int,
        expected_error: str | None = None,
    ) -> dict[str, Any]:
        """Assert a gateway failure in the {"error", "details"} shape."""
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert "error" in data, f"Missing error: {data}"
        assert "success" not in data
        if expected_error:
            assert data["error"] == expected_error
        return data


@pytest.fixture
def api() -> ApiAssertions:
    """Provide API assertion helpers."""
    return ApiAssertions()
