"""
Google Gemini Provider.

Calls the generateContent endpoint of the Generative Language API.
The API key travels in the x-goog-api-key header, never in the URL.
"""

from typing import Any

from notekeeper.backend.core.config_schema import GeminiProviderSchema, GenerationSchema
from notekeeper.backend.gateway.providers.base import UpstreamProvider, UpstreamRequest

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


class GeminiProvider(UpstreamProvider):
    """Upstream provider for Google Gemini models."""

    provider_name = "gemini"
    credential_env = "GOOGLE_AI_STUDIO_API_KEY"

    def __init__(
        self,
        config: GeminiProviderSchema,
        credential: str | None,
        generation: GenerationSchema,
    ) -> None:
        super().__init__(config.model, config.base_url, credential, generation)
        self._safety_threshold = config.safety_threshold

    def build_request(self, prompt: str, max_length: int, temperature: float) -> UpstreamRequest:
        return UpstreamRequest(
            url=f"{self._base_url}/models/{self._model}:generateContent",
            headers={
                "x-goog-api-key": self._credential or "",
                "Content-Type": "application/json",
            },
            json={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": temperature,
                    "topK": self._generation.top_k,
                    "topP": self._generation.top_p,
                    "maxOutputTokens": min(max_length, self._generation.max_output_tokens),
                    "stopSequences": [],
                },
                "safetySettings": [
                    {"category": category, "threshold": self._safety_threshold}
                    for category in SAFETY_CATEGORIES
                ],
            },
        )

    def parse_response(self, payload: Any) -> str:
        """Read candidates[0].content.parts[0].text, or "" when absent."""
        if not isinstance(payload, dict):
            return ""
        candidates = payload.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts:
            return ""
        return parts[0].get("text") or ""
