"""
Resilience Infrastructure.

Circuit breaker listener and factory for calls to external dependencies.
Every breaker state transition is logged as a structured resilience event.

The composed resilience stack is applied in this order (outside-in):
    Circuit Breaker (aiobreaker) → Semaphore → Timeout → Call

Failed upstream calls are never retried automatically. A failed
text improvement is reported to the user, who decides whether to try again.

Usage:
    from notekeeper.backend.core.resilience import create_circuit_breaker

    breaker = create_circuit_breaker("gemini", fail_max=5, timeout_duration=30)

    async def call_upstream():
        async with get_semaphore("upstream_llm"):
            return await client.post(url, json=payload)

    response = await breaker.call_async(call_upstream)
"""

from datetime import timedelta
from typing import Any

import aiobreaker

from notekeeper.backend.core.logging import get_logger

logger = get_logger(__name__)


class ResilienceLogger(aiobreaker.CircuitBreakerListener):
    """Circuit breaker listener that emits structured resilience events.

    Every state transition is logged with a standardized set of fields
    so that resilience events can be filtered and aggregated:

        jq 'select(.resilience_event != null)' logs/system.jsonl
    """

    def __init__(self, dependency: str) -> None:
        self.dependency = dependency

    def state_change(self, cb: aiobreaker.CircuitBreaker, old_state: Any, new_state: Any) -> None:
        event_map = {
            "open": "circuit_breaker_opened",
            "half-open": "circuit_breaker_half_open",
            "closed": "circuit_breaker_closed",
        }
        new_str = state_name(new_state)
        event = event_map.get(new_str, f"circuit_breaker_{new_str}")
        log_level = "error" if new_str == "open" else "info"

        getattr(logger, log_level)(
            f"Circuit breaker {self.dependency}: {state_name(old_state)} -> {new_str}",
            extra={
                "resilience_event": event,
                "dependency": self.dependency,
                "failure_count": cb.fail_counter,
            },
        )

    def failure(self, cb: aiobreaker.CircuitBreaker, exception: Exception) -> None:
        logger.warning(
            f"Circuit breaker {self.dependency}: failure recorded",
            extra={
                "resilience_event": "circuit_breaker_failure",
                "dependency": self.dependency,
                "failure_count": cb.fail_counter,
                "error": str(exception),
            },
        )


def state_name(state: Any) -> str:
    """Normalize an aiobreaker state (state object, enum member, or string) to its name."""
    state = getattr(state, "state", state)
    return str(getattr(state, "name", state)).lower().replace("_", "-")


def create_circuit_breaker(
    dependency: str,
    fail_max: int = 5,
    timeout_duration: int = 30,
    exclude: list[type[BaseException]] | None = None,
) -> aiobreaker.CircuitBreaker:
    """Create a circuit breaker with structured logging.

    Args:
        dependency: Name of the external dependency (for logging)
        fail_max: Number of failures before opening
        timeout_duration: Seconds to wait before half-open test
        exclude: Exception types that do not count as failures

    Returns:
        Configured CircuitBreaker instance
    """
    return aiobreaker.CircuitBreaker(
        fail_max=fail_max,
        timeout_duration=timedelta(seconds=timeout_duration),
        exclude=exclude or [],
        listeners=[ResilienceLogger(dependency)],
    )
