"""
Upstream Providers.

Language model APIs the text improvement gateway can proxy to.
"""

from notekeeper.backend.gateway.providers.base import (
    IMPROVE_PROMPT_TEMPLATE,
    UpstreamClientError,
    UpstreamError,
    UpstreamProvider,
    UpstreamRequest,
)
from notekeeper.backend.gateway.providers.gemini import GeminiProvider
from notekeeper.backend.gateway.providers.huggingface import HuggingFaceProvider

__all__ = [
    "GeminiProvider",
    "HuggingFaceProvider",
    "IMPROVE_PROMPT_TEMPLATE",
    "UpstreamClientError",
    "UpstreamError",
    "UpstreamProvider",
    "UpstreamRequest",
]
