"""
Hugging Face Inference Provider.

Calls a hosted model on the Hugging Face Inference API. Summarization
models take the raw text, so no instruction prompt is added.
"""

from typing import Any

from notekeeper.backend.core.config_schema import GenerationSchema, HuggingFaceProviderSchema
from notekeeper.backend.gateway.providers.base import UpstreamProvider, UpstreamRequest


class HuggingFaceProvider(UpstreamProvider):
    """Upstream provider for Hugging Face hosted models."""

    provider_name = "huggingface"
    credential_env = "HUGGING_FACE_TOKEN"

    def __init__(
        self,
        config: HuggingFaceProviderSchema,
        credential: str | None,
        generation: GenerationSchema,
    ) -> None:
        super().__init__(config.model, config.base_url, credential, generation)
        self._wait_for_model = config.wait_for_model

    def build_prompt(self, text: str) -> str:
        return text

    def build_request(self, prompt: str, max_length: int, temperature: float) -> UpstreamRequest:
        return UpstreamRequest(
            url=f"{self._base_url}/{self._model}",
            headers={
                "Authorization": f"Bearer {self._credential or ''}",
                "Content-Type": "application/json",
            },
            json={
                "inputs": prompt,
                "options": {"wait_for_model": self._wait_for_model},
            },
        )

    def parse_response(self, payload: Any) -> str:
        """Read summary_text or generated_text from a list or object answer."""
        item = payload[0] if isinstance(payload, list) and payload else payload
        if not isinstance(item, dict):
            return ""
        return item.get("summary_text") or item.get("generated_text") or ""
