"""
Unit Test Fixtures.

Fixtures for unit tests - all external dependencies are mocked.
Unit tests should be fast and isolated, never touching real databases
or real upstream APIs.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from notekeeper.backend.core.config_schema import (
    FeaturesSchema,
    GeminiProviderSchema,
    GenerationSchema,
    HuggingFaceProviderSchema,
)
from notekeeper.backend.gateway.providers import GeminiProvider, HuggingFaceProvider


# =============================================================================
# Database Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """
    Mock database session for unit tests.

    Provides a fully mocked AsyncSession with common methods.

    Usage:
        def test_repository(mock_db_session: AsyncMock):
            repo = NoteRepository(mock_db_session)
    """
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    session.get = AsyncMock()
    return session


@pytest.fixture
def mock_db_result() -> MagicMock:
    """
    Mock database query result.

    Usage:
        def test_query(mock_db_session, mock_db_result):
            mock_db_result.scalar_one_or_none.return_value = Note(id="123")
            mock_db_session.execute.return_value = mock_db_result
    """
    result = MagicMock()
    result.scalar_one_or_none = MagicMock(return_value=None)
    result.scalars = MagicMock()
    result.scalars.return_value.all = MagicMock(return_value=[])
    result.scalars.return_value.first = MagicMock(return_value=None)
    return result


# =============================================================================
# Gateway Fixtures
# =============================================================================


@pytest.fixture
def generation() -> GenerationSchema:
    return GenerationSchema()


@pytest.fixture
def features() -> FeaturesSchema:
    return FeaturesSchema(
        assist_enabled=True,
        assist_test_probe_enabled=True,
        api_request_logging=False,
        api_docs_enabled=False,
    )


@pytest.fixture
def gemini_provider(generation: GenerationSchema) -> GeminiProvider:
    """Gemini provider with a test credential."""
    return GeminiProvider(
        GeminiProviderSchema(
            base_url="https://gemini.test/v1beta",
            model="gemini-test",
        ),
        "test-key",
        generation,
    )


@pytest.fixture
def huggingface_provider(generation: GenerationSchema) -> HuggingFaceProvider:
    """Hugging Face provider with a test credential."""
    return HuggingFaceProvider(
        HuggingFaceProviderSchema(
            base_url="https://hf.test/models",
            model="org/summarizer",
        ),
        "hf-test-token",
        generation,
    )


@pytest.fixture
def gemini_payload() -> Callable[[str], dict[str, Any]]:
    """Builder for a successful Gemini generateContent answer."""
    def _payload(text: str) -> dict[str, Any]:
        return {"candidates": [{"content": {"parts": [{"text": text}]}}]}

    return _payload


@pytest.fixture
def upstream_client() -> Callable[..., httpx.AsyncClient]:
    """
    Build an httpx client whose transport answers with a handler.

    Usage:
        client = upstream_client(lambda request: httpx.Response(200, json={...}))
    """
    def _build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _build


# =============================================================================
# Logging Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_logger() -> MagicMock:
    """
    Mock logger for testing logging calls.

    Usage:
        def test_logging(mock_logger):
            with patch("module.logger", mock_logger):
                ...
                mock_logger.info.assert_called_once()
    """
    logger = MagicMock()
    logger.debug = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    return logger
