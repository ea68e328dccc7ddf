"""Single-request helper translating Twilio REST failures into the error taxonomy."""
from __future__ import annotations

from typing import Any

import httpx

from ..core.errors import ConflictError, NotFoundError, PermanentError, TransientError

RETRYABLE_STATUS = {429}


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _error_details(response: httpx.Response) -> tuple[str, int | None]:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase, None
    if not isinstance(body, dict):
        return response.reason_phrase, None
    return str(body.get("message") or response.reason_phrase), body.get("code")


def raise_for_twilio_status(response: httpx.Response) -> None:
    """Raise the taxonomy error matching a non-2xx Twilio response."""

    if response.is_success:
        return

    status = response.status_code
    message, code = _error_details(response)
    detail = f"Twilio responded {status}: {message}"

    if status in RETRYABLE_STATUS or status >= 500:
        raise TransientError(detail, retry_after=_retry_after(response))
    if status == 404:
        raise NotFoundError(detail, status_code=status, twilio_code=code)
    if status == 412:
        raise ConflictError(detail, status_code=status, twilio_code=code)
    raise PermanentError(detail, status_code=status, twilio_code=code)


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: Any,
) -> dict[str, Any]:
    """Perform one request and return the decoded JSON body.

    Timeouts and connection failures become :class:`TransientError`.
    """

    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        raise TransientError(f"{method} {url} timed out") from exc
    except httpx.TransportError as exc:
        raise TransientError(f"{method} {url} failed: {exc}") from exc

    raise_for_twilio_status(response)
    if not response.content:
        return {}
    return response.json()
