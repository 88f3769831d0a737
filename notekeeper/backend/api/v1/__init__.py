"""
API Version 1 Router.

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from notekeeper.backend.api.v1.endpoints import improve, notes
from notekeeper.backend.core.config import get_app_config


def build_router() -> APIRouter:
    """Build the v1 router, honoring feature flags."""
    router = APIRouter()

    # Note store endpoints
    router.include_router(notes.router, prefix="/notes", tags=["notes"])

    # Text improvement gateway
    if get_app_config().features.assist_enabled:
        router.include_router(improve.router, tags=["assist"])

    return router
