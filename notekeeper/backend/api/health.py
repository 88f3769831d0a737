"""
Health Check Endpoints.

Provides liveness, readiness, and detailed health checks.

Endpoints:
- /health: Liveness check (process running)
- /health/ready: Readiness check (note store reachable)
- /health/detailed: Component-by-component status (for debugging)
"""

import asyncio
from typing import Any

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from notekeeper.backend.core.config import get_app_config
from notekeeper.backend.core.logging import get_logger
from notekeeper.backend.core.resilience import state_name
from notekeeper.backend.core.utils import utc_now

router = APIRouter()
logger = get_logger(__name__)


async def check_database() -> dict[str, Any]:
    """
    Check note store database connectivity.

    Returns:
        Dict with status, latency, and optional error message
    """
    from notekeeper.backend.core.database import get_db_session

    try:
        start = utc_now()
        async for session in get_db_session():
            await session.execute(text("SELECT 1"))
            break

        latency_ms = int((utc_now() - start).total_seconds() * 1000)
        return {"status": "healthy", "latency_ms": latency_ms}

    except Exception as e:
        logger.warning("Database health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "error": str(e)}


def check_gateway() -> dict[str, Any]:
    """
    Report text improvement gateway configuration.

    Never calls upstream; a missing credential is reported as
    not_configured, which does not fail readiness.
    """
    app_config = get_app_config()
    if not app_config.features.assist_enabled:
        return {"status": "disabled"}

    from notekeeper.backend.gateway.registry import get_breaker, get_provider

    provider = get_provider()
    breaker = get_breaker()
    return {
        "status": "healthy" if provider.is_configured else "not_configured",
        "provider": provider.provider_name,
        "model": provider.model,
        "circuit": state_name(breaker.current_state),
    }


@router.get("/health")
async def health_check() -> dict[str, str]:
    """
    Liveness check.

    Returns 200 if the process is running.
    No dependency checks - this endpoint should always respond quickly.
    """
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check() -> dict[str, Any]:
    """
    Readiness check.

    Returns 200 if ready to serve traffic, 503 if the note store
    database is unreachable.
    """
    timeout = get_app_config().application.timeouts.database

    db_result: dict[str, Any] = {"status": "error", "error": "check did not run"}
    try:
        async with asyncio.timeout(timeout):
            db_result = await check_database()
    except TimeoutError:
        db_result = {"status": "unhealthy", "error": "timed out"}

    checks = {"database": db_result}

    if db_result.get("status") != "healthy":
        logger.warning("Readiness check failed", extra={"checks": checks})
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "checks": checks,
                "timestamp": utc_now().isoformat(),
            },
        )

    return {
        "status": "healthy",
        "checks": checks,
        "timestamp": utc_now().isoformat(),
    }


@router.get("/health/detailed")
async def detailed_health_check() -> dict[str, Any]:
    """
    Detailed health check.

    Returns application info, dependency status, and semaphore usage.
    """
    checks = {
        "database": await check_database(),
        "gateway": check_gateway(),
    }

    app_settings = get_app_config().application
    app_info = {
        "name": app_settings.name,
        "env": app_settings.environment,
        "debug": app_settings.debug,
        "version": app_settings.version,
    }

    statuses = [check.get("status") for check in checks.values()]
    overall_status = "unhealthy" if "unhealthy" in statuses or "error" in statuses else "healthy"

    return {
        "status": overall_status,
        "application": app_info,
        "checks": checks,
        "semaphores": _get_semaphore_status(),
        "timestamp": utc_now().isoformat(),
    }


def _get_semaphore_status() -> dict[str, Any]:
    """Collect semaphore capacity and availability for health reporting."""
    from notekeeper.backend.core.concurrency import _semaphore_capacities, _semaphores

    return {
        name: {
            "capacity": _semaphore_capacities.get(name, "unknown"),
            "available": sem._value,
        }
        for name, sem in _semaphores.items()
    }
