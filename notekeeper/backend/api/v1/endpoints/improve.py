"""
Text Improvement Gateway Endpoint.

POST /improve-text proxies a paragraph to the upstream language model and
returns the improved text. The upstream credential stays on the server.

Wire contract:
    request   {"text": str, "max_length": int = 512, "temperature": float = 0.3}
    success   200 {"generated_text": str, "success": true, "model": str}
    failure   4xx/5xx {"error": str, "details": str?}

OPTIONS answers cross-origin preflight; every other method gets 405.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError as PydanticValidationError

from notekeeper.backend.core.config import get_app_config
from notekeeper.backend.core.dependencies import UpstreamClient
from notekeeper.backend.core.exception_handlers import CORS_HEADERS
from notekeeper.backend.core.exceptions import GatewayError
from notekeeper.backend.gateway.registry import get_breaker, get_provider
from notekeeper.backend.schemas.improve import ImproveRequest, ImproveResponse
from notekeeper.backend.services.improve import ImproveService

router = APIRouter()

IMPROVE_PATH = "/improve-text"


def get_improve_service(client: UpstreamClient) -> ImproveService:
    """Build the improve service for one request."""
    return ImproveService(
        client=client,
        provider=get_provider(),
        breaker=get_breaker(),
        features=get_app_config().features,
    )


async def _parse_body(request: Request) -> ImproveRequest:
    """Read the request body, answering malformed JSON in the gateway's shape."""
    try:
        payload: Any = await request.json()
    except ValueError as e:
        raise GatewayError("Invalid JSON body", 400, code="GATEWAY_BAD_BODY") from e

    if not isinstance(payload, dict):
        raise GatewayError("Invalid JSON body", 400, code="GATEWAY_BAD_BODY")

    try:
        return ImproveRequest.model_validate(payload)
    except PydanticValidationError as e:
        raise GatewayError(
            "Invalid request",
            400,
            details="; ".join(
                f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ),
            code="GATEWAY_BAD_BODY",
        ) from e


@router.options(IMPROVE_PATH, include_in_schema=False)
async def improve_text_preflight() -> Response:
    """Answer cross-origin preflight."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(
    IMPROVE_PATH,
    response_model=ImproveResponse,
    response_model_exclude_none=True,
    summary="Improve a paragraph of text",
    description="Send text to the upstream language model and return the improved version.",
    openapi_extra={
        "requestBody": {
            "content": {
                "application/json": {"schema": ImproveRequest.model_json_schema()},
            },
            "required": True,
        },
    },
)
async def improve_text(
    request: Request,
    response: Response,
    service: ImproveService = Depends(get_improve_service),
) -> ImproveResponse:
    """Improve text via the upstream model."""
    body = await _parse_body(request)
    result = await service.improve(body)
    response.headers.update(CORS_HEADERS)
    return result


@router.api_route(
    IMPROVE_PATH,
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def improve_text_method_not_allowed() -> None:
    """Reject everything but POST and OPTIONS."""
    raise GatewayError("Method not allowed", 405, code="GATEWAY_METHOD_NOT_ALLOWED")
