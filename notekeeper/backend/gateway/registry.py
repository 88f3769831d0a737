"""
Upstream Provider Registry.

Builds the configured upstream provider from gateway.yaml and the
secrets, and keeps one circuit breaker per provider for the life of
the process.
"""

import aiobreaker

from notekeeper.backend.core.config import get_app_config, get_settings
from notekeeper.backend.core.logging import get_logger
from notekeeper.backend.core.resilience import create_circuit_breaker
from notekeeper.backend.gateway.providers import (
    GeminiProvider,
    HuggingFaceProvider,
    UpstreamClientError,
    UpstreamProvider,
)

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = ("gemini", "huggingface")

_providers: dict[str, UpstreamProvider] = {}
_breakers: dict[str, aiobreaker.CircuitBreaker] = {}


def _build_provider(name: str) -> UpstreamProvider:
    """Instantiate a provider from configuration."""
    gateway = get_app_config().gateway
    settings = get_settings()

    if name == "gemini":
        return GeminiProvider(
            gateway.providers.gemini,
            settings.google_ai_studio_api_key,
            gateway.generation,
        )
    if name == "huggingface":
        return HuggingFaceProvider(
            gateway.providers.huggingface,
            settings.hugging_face_token,
            gateway.generation,
        )
    raise ValueError(
        f"Unknown upstream provider: {name!r} (expected one of {SUPPORTED_PROVIDERS})"
    )


def get_provider(name: str | None = None) -> UpstreamProvider:
    """
    Get the upstream provider, building it on first use.

    Args:
        name: Provider name. Defaults to gateway.yaml `provider`.
    """
    name = name or get_app_config().gateway.provider
    if name not in _providers:
        provider = _build_provider(name)
        _providers[name] = provider
        logger.info(
            "Upstream provider registered",
            extra={
                "provider": name,
                "model": provider.model,
                "configured": provider.is_configured,
            },
        )
    return _providers[name]


def get_breaker(name: str | None = None) -> aiobreaker.CircuitBreaker:
    """
    Get the circuit breaker guarding an upstream provider.

    Upstream 4xx answers are excluded: they describe the request,
    not the health of the provider.
    """
    name = name or get_app_config().gateway.provider
    if name not in _breakers:
        breaker_config = get_app_config().gateway.circuit_breaker
        _breakers[name] = create_circuit_breaker(
            f"upstream_{name}",
            fail_max=breaker_config.fail_max,
            timeout_duration=breaker_config.timeout_duration,
            exclude=[UpstreamClientError],
        )
    return _breakers[name]


def reset_registry() -> None:
    """Forget cached providers and breakers."""
    _providers.clear()
    _breakers.clear()
