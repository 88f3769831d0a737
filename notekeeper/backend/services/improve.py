"""
Text Improvement Service.

Business logic of the improve-text gateway: validates the request, wraps
the text in the instruction prompt, calls the upstream provider through
its circuit breaker and a semaphore, and cleans the generated text.

Every failure is raised as a GatewayError carrying the HTTP status the
gateway answers with. Nothing is retried.
"""

import aiobreaker
import httpx

from notekeeper.backend.core.concurrency import get_semaphore
from notekeeper.backend.core.config_schema import FeaturesSchema
from notekeeper.backend.core.exceptions import GatewayError
from notekeeper.backend.core.logging import get_logger
from notekeeper.backend.gateway.providers import UpstreamProvider
from notekeeper.backend.schemas.improve import ImproveRequest, ImproveResponse
from notekeeper.rendering.normalize import clean_generated_text, force_proper_formatting

logger = get_logger(__name__)

TEST_PROBE_TEXT = "test"
TEST_PROBE_REPLY = "Gateway test successful!"
UPSTREAM_SEMAPHORE = "upstream_llm"


class ImproveService:
    """
    Service for the text improvement gateway.

    The HTTP client, provider and breaker are injected so tests can
    drive the service with an httpx.MockTransport.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        provider: UpstreamProvider,
        breaker: aiobreaker.CircuitBreaker,
        features: FeaturesSchema,
    ) -> None:
        self._client = client
        self._provider = provider
        self._breaker = breaker
        self._features = features

    async def improve(self, request: ImproveRequest) -> ImproveResponse:
        """
        Improve a paragraph of text.

        Args:
            request: Gateway request body

        Returns:
            Cleaned improved text and the upstream model name

        Raises:
            GatewayError: With the status and message the gateway answers with
        """
        text = request.text
        if text is None or not text.strip():
            raise GatewayError("Text is required", 400, code="GATEWAY_TEXT_REQUIRED")

        if text == TEST_PROBE_TEXT and self._features.assist_test_probe_enabled:
            logger.debug("Answering gateway test probe")
            return ImproveResponse(
                generated_text=TEST_PROBE_REPLY,
                model=self._provider.model,
                message="Gateway function is working",
            )

        if not self._provider.is_configured:
            logger.error(
                "Upstream credential missing",
                extra={"provider": self._provider.provider_name},
            )
            raise GatewayError(
                "AI service configuration error",
                500,
                details=f"{self._provider.credential_env} environment variable not set",
                code="GATEWAY_NOT_CONFIGURED",
            )

        prompt = self._provider.build_prompt(text)
        logger.info(
            "Requesting text improvement",
            extra={
                "provider": self._provider.provider_name,
                "model": self._provider.model,
                "text_length": len(text),
                "max_length": request.max_length,
            },
        )

        try:
            generated = await self._breaker.call_async(
                self._call_upstream, prompt, request.max_length, request.temperature
            )
        except GatewayError:
            raise
        except aiobreaker.CircuitBreakerError as e:
            raise GatewayError(
                "AI service temporarily unavailable",
                503,
                details="Upstream circuit breaker is open",
                code="GATEWAY_CIRCUIT_OPEN",
            ) from e
        except httpx.HTTPError as e:
            logger.warning(
                "Upstream request failed",
                extra={"provider": self._provider.provider_name, "error": str(e)},
            )
            raise GatewayError(
                "Failed to reach AI service",
                502,
                details=type(e).__name__,
                code="GATEWAY_UPSTREAM_UNREACHABLE",
            ) from e
        except Exception as e:
            logger.exception(
                "Unexpected gateway failure",
                extra={"provider": self._provider.provider_name},
            )
            raise GatewayError(
                "Internal server error",
                500,
                details=type(e).__name__,
                code="GATEWAY_INTERNAL_ERROR",
            ) from e

        formatted = force_proper_formatting(clean_generated_text(generated))
        if not formatted.strip():
            raise GatewayError(
                "AI returned empty response",
                500,
                details="No text generated",
                code="GATEWAY_EMPTY_RESPONSE",
            )

        return ImproveResponse(generated_text=formatted, model=self._provider.model)

    async def _call_upstream(self, prompt: str, max_length: int, temperature: float) -> str:
        """Single upstream call, bounded by the upstream semaphore."""
        async with get_semaphore(UPSTREAM_SEMAPHORE):
            generated = await self._provider.generate(
                self._client, prompt, max_length, temperature
            )
        if not generated.strip():
            # Counted by the breaker like any other upstream failure
            raise GatewayError(
                "AI returned empty response",
                500,
                details="No text generated",
                code="GATEWAY_EMPTY_RESPONSE",
            )
        return generated
