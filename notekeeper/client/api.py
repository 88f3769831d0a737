"""
HTTP Client.

Async HTTP client shared by the store client and the assist service.
Every request carries an X-Frontend-ID header so backend logs can be
filtered by the surface that made the call.
"""

from typing import Any

import httpx

from notekeeper.backend.core.config import get_server_base_url
from notekeeper.backend.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


class APIClient:
    """
    HTTP client for backend API communication.

    Features:
    - Base URL and timeout from config/settings/application.yaml
    - X-Frontend-ID header for log routing
    - Structured logging of requests/responses
    - Injectable transport (httpx.ASGITransport / MockTransport in tests)

    Usage:
        async with APIClient(frontend_id="tui") as client:
            response = await client.get("/api/v1/notes")
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        frontend_id: str = "client",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the API client.

        Args:
            base_url: Backend base URL. If None, reads from application.yaml.
            timeout: Request timeout in seconds. If None, reads from application.yaml.
            frontend_id: Value of the X-Frontend-ID header and log source.
            transport: Optional httpx transport, used by tests.
        """
        if base_url is None:
            try:
                base_url, config_timeout = get_server_base_url()
            except Exception as e:
                raise RuntimeError(
                    "Could not determine server URL from config/settings/application.yaml"
                ) from e
            if timeout is None:
                timeout = config_timeout

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else DEFAULT_TIMEOUT
        self.frontend_id = frontend_id
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"X-Frontend-ID": self.frontend_id},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make an HTTP request to the backend.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: API path (e.g., /health, /api/v1/notes)
            **kwargs: Additional arguments for httpx

        Returns:
            httpx.Response, whatever its status

        Raises:
            httpx.HTTPError: On transport failure
        """
        client = await self._get_client()

        log_with_source(
            logger,
            self.frontend_id,
            "debug",
            "API request",
            method=method,
            path=path,
        )

        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log_with_source(
                logger,
                self.frontend_id,
                "error",
                "API request failed",
                method=method,
                path=path,
                error=str(e),
            )
            raise

        log_with_source(
            logger,
            self.frontend_id,
            "debug",
            "API response",
            method=method,
            path=path,
            status_code=response.status_code,
        )
        return response

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a GET request."""
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a POST request."""
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a PATCH request."""
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a DELETE request."""
        return await self.request("DELETE", path, **kwargs)
