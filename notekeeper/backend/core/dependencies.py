"""
FastAPI Dependencies.

Shared dependencies for request handling.
"""

import uuid
from collections.abc import AsyncGenerator
from typing import Annotated

import httpx
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.backend.core.config import get_app_config
from notekeeper.backend.core.database import get_db_session
from notekeeper.backend.core.logging import get_logger

logger = get_logger(__name__)

# Type alias for database session dependency
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


async def get_request_id(x_request_id: str | None = Header(None)) -> str:
    """
    Extract or generate request ID from headers.

    Used for request tracing and correlation.
    """
    return x_request_id or str(uuid.uuid4())


RequestId = Annotated[str, Depends(get_request_id)]


async def get_upstream_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Provide an HTTP client for calls to the upstream language model.

    One client per request, closed when the request finishes. Tests
    override this dependency with a client on an httpx.MockTransport.
    """
    timeout = get_app_config().gateway.timeout_seconds
    async with httpx.AsyncClient(timeout=timeout) as client:
        yield client


UpstreamClient = Annotated[httpx.AsyncClient, Depends(get_upstream_client)]
