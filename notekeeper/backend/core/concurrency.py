"""
Concurrency Infrastructure.

Named semaphores that limit concurrent access to shared dependencies.
Sizing is configured in config/settings/concurrency.yaml.

Usage:
    from notekeeper.backend.core.concurrency import get_semaphore

    # Limit concurrent calls to the upstream language model
    async with get_semaphore("upstream_llm"):
        result = await client.post(url, json=payload)
"""

import asyncio

from notekeeper.backend.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CAPACITY = 20

_semaphores: dict[str, asyncio.Semaphore] = {}
_semaphore_capacities: dict[str, int] = {}


def get_semaphore(name: str) -> asyncio.Semaphore:
    """Get a named semaphore for concurrency-limiting external calls.

    Semaphores are created lazily. The capacity is read from concurrency.yaml
    under `semaphores.<name>`. If the name is not configured, defaults to 20.
    """
    if name not in _semaphores:
        from notekeeper.backend.core.config import get_app_config
        semaphore_config = get_app_config().concurrency.semaphores
        capacity = getattr(semaphore_config, name, DEFAULT_CAPACITY)
        _semaphores[name] = asyncio.Semaphore(capacity)
        _semaphore_capacities[name] = capacity
        logger.debug("Semaphore created", extra={"name": name, "capacity": capacity})
    return _semaphores[name]


def get_semaphore_capacity(name: str) -> int | None:
    """Configured capacity of a semaphore, or None if it was never created."""
    return _semaphore_capacities.get(name)


def reset_semaphores() -> None:
    """Forget all semaphores. Called during shutdown so a new event loop starts clean."""
    _semaphores.clear()
    _semaphore_capacities.clear()
    logger.debug("Semaphores cleared")
