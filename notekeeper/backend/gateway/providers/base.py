"""
Upstream Provider Interface.

Defines the standard contract for the language model APIs the text
improvement gateway can proxy to. Every provider (Gemini, Hugging Face)
implements UpstreamProvider; the improve service talks to upstream
exclusively through this interface.

A provider knows how to build its HTTP request, how to read the generated
text out of a successful answer, and how upstream status codes map onto
gateway errors. It never retries.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from notekeeper.backend.core.config_schema import GenerationSchema
from notekeeper.backend.core.exceptions import GatewayError

IMPROVE_PROMPT_TEMPLATE = """Improve this student note by making it clearer, fixing errors, adding any relevant information and organizing it better.

CRITICAL: Your response must have proper line breaks and spacing. Use this EXACT format:

Title

Subtitle
    • First bullet point
    • Second bullet point

Another Subtitle
    • More bullet points
    • With proper spacing

RULES:
1. Put TWO line breaks after titles
2. Put TWO line breaks between sections
3. Use 4 spaces before bullet points
4. Put ONE line break after each bullet point
5. Use • symbol for bullets

Original text: "{text}"

Your improved version (follow the format exactly):"""


class UpstreamClientError(GatewayError):
    """Upstream rejected the request (4xx). Does not count against the circuit breaker."""


class UpstreamError(GatewayError):
    """Upstream failed (5xx, model loading, empty answer). Counts against the circuit breaker."""


@dataclass
class UpstreamRequest:
    """A fully built HTTP request for an upstream provider."""

    url: str
    json: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


class UpstreamProvider(ABC):
    """
    Base class for upstream language model providers.

    Subclasses set provider_name and credential_env, and implement
    build_request and parse_response.
    """

    provider_name: str
    credential_env: str

    def __init__(
        self,
        model: str,
        base_url: str,
        credential: str | None,
        generation: GenerationSchema,
    ) -> None:
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._credential = credential
        self._generation = generation

    @property
    def model(self) -> str:
        """Upstream model identifier, echoed back to clients."""
        return self._model

    @property
    def is_configured(self) -> bool:
        """True when the upstream credential is present."""
        return bool(self._credential)

    def build_prompt(self, text: str) -> str:
        """Wrap the user's text in the fixed improvement instruction."""
        return IMPROVE_PROMPT_TEMPLATE.format(text=text)

    @abstractmethod
    def build_request(self, prompt: str, max_length: int, temperature: float) -> UpstreamRequest:
        """Build the provider-specific HTTP request."""
        ...

    @abstractmethod
    def parse_response(self, payload: Any) -> str:
        """
        Extract generated text from a successful upstream answer.

        Returns an empty string when the answer carries no text.
        """
        ...

    def raise_for_status(self, response: httpx.Response) -> None:
        """
        Map a non-2xx upstream answer onto a gateway error.

        Raises:
            UpstreamClientError: 400, 401/403, 429 and other 4xx answers
            UpstreamError: 503 and other 5xx answers
        """
        status = response.status_code
        if response.is_success:
            return

        body = response.text
        label = self.provider_name.capitalize()

        if status == 400:
            raise UpstreamClientError(f"Invalid request to {label} API", 400, details=body)
        if status in (401, 403):
            raise UpstreamClientError(
                "API key invalid or quota exceeded",
                status,
                details=f"Check the {self.credential_env} credential",
            )
        if status == 429:
            raise UpstreamClientError(
                "Rate limit exceeded", 429, details="Please wait a moment and try again"
            )
        if status == 503:
            raise UpstreamError(
                "AI model is loading", 503, details="Please wait and try again"
            )
        if status >= 500:
            raise UpstreamError(f"{label} API error: {status}", status, details=body)
        # Remaining 4xx are answered as a bad gateway
        raise UpstreamClientError(f"{label} API error: {status}", 502, details=body)

    async def generate(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        max_length: int,
        temperature: float,
    ) -> str:
        """
        Send the prompt upstream and return the generated text.

        Raises:
            UpstreamClientError / UpstreamError: On non-2xx answers
            httpx.HTTPError: On transport failures
        """
        request = self.build_request(prompt, max_length, temperature)
        response = await client.post(request.url, json=request.json, headers=request.headers)
        self.raise_for_status(response)
        return self.parse_response(response.json())
