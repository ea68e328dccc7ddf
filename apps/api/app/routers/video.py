"""Agent-side endpoint of the chat-to-video escalation flow."""
from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..core.errors import ErrorKind, InvalidArgumentError
from ..schemas.video import AgentTokenRequest, AgentTokenResponse, ErrorResponse
from ..services.escalation import EscalationService, build_service, open_twilio_client
from ..services.flex_auth import FlexTokenValidator
from ..services.validation import missing_parameters

router = APIRouter()

REQUIRED_PARAMETERS = (
    ("DocumentSid", "used for sync document"),
    ("Token", "used to validate the agent"),
)

STATUS_BY_KIND = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.NOT_FOUND: 403,
    ErrorKind.PROVISIONING_FAILED: 503,
    ErrorKind.INTERNAL: 500,
}


async def get_twilio_client() -> AsyncIterator[httpx.AsyncClient]:
    async with open_twilio_client() as client:
        yield client


def get_escalation_service(client: httpx.AsyncClient = Depends(get_twilio_client)) -> EscalationService:
    return build_service(client)


def get_token_validator(client: httpx.AsyncClient = Depends(get_twilio_client)) -> FlexTokenValidator:
    return FlexTokenValidator.from_settings(client)


def parse_agent_token_request(payload: dict[str, Any] = Body(default_factory=dict)) -> AgentTokenRequest:
    """Check required parameters before any Twilio collaborator is built."""

    problem = missing_parameters(payload, REQUIRED_PARAMETERS)
    if problem:
        raise InvalidArgumentError(problem)

    try:
        return AgentTokenRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidArgumentError("DocumentSid and Token must be strings") from exc


@router.post(
    "/agent-token",
    response_model=AgentTokenResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def agent_get_token(
    request: AgentTokenRequest = Depends(parse_agent_token_request),
    validator: FlexTokenValidator = Depends(get_token_validator),
    service: EscalationService = Depends(get_escalation_service),
) -> JSONResponse:
    """Return a token letting the agent join the room recorded on the document."""

    token_result = await validator.validate(request.token)

    result = await service.ensure_credential(request.document_sid, token_result.identity)
    if result.success:
        return JSONResponse(result.to_body())

    status_code = STATUS_BY_KIND.get(result.error_kind, 500)
    body = result.to_body()
    if result.error_kind is ErrorKind.NOT_FOUND:
        body["message"] = "Invalid document SID."
    return JSONResponse(body, status_code=status_code)
