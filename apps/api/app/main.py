"""FastAPI application for agent-side chat-to-video escalation."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .core.config import settings
from .core.errors import ErrorKind, EscalationError
from .routers import video
from .routers.video import STATUS_BY_KIND

logger = logging.getLogger(__name__)

app = FastAPI(title="Video Escalation API", version="0.1.0")

if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["OPTIONS", "POST"],
        allow_headers=["Content-Type"],
    )

app.include_router(video.router, prefix="/api/video", tags=["video"])


def _error_response(error_kind: ErrorKind, message: str) -> JSONResponse:
    return JSONResponse(
        {"success": False, "errorKind": error_kind.value, "message": message},
        status_code=STATUS_BY_KIND.get(error_kind, 500),
    )


@app.exception_handler(EscalationError)
async def escalation_error_handler(request: Request, exc: EscalationError) -> JSONResponse:
    """Render anticipated failures as structured results."""

    if exc.error_kind is ErrorKind.INTERNAL:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.error_kind, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies with the same shape as other failures."""

    return _error_response(ErrorKind.INVALID_ARGUMENT, "Request body must be a JSON object")


@app.get("/api/health", tags=["meta"])
async def health() -> dict[str, str]:
    """Simple liveness probe."""

    return {"status": "ok"}


@app.head("/api/health", tags=["meta"])
async def health_head() -> Response:
    """Allow HEAD for uptime monitors that only need the status code."""

    return Response(status_code=200)
