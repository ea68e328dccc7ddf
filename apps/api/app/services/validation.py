"""Argument checks applied before any remote call is attempted."""
from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from ..core.errors import InvalidArgumentError

MAX_PAYLOAD_BYTES = 16 * 1024


def require_text(value: object, field: str) -> str:
    """Return ``value`` stripped, or raise if it is not a non-empty string."""

    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{field} must be a non-empty string")
    return value.strip()


def require_payload(value: object, field: str = "payload") -> dict[str, Any]:
    """Return a copy of a JSON-compatible mapping small enough for a Sync document."""

    if not isinstance(value, Mapping):
        raise InvalidArgumentError(f"{field} must be a mapping")
    if not all(isinstance(key, str) for key in value):
        raise InvalidArgumentError(f"{field} keys must be strings")
    try:
        encoded = json.dumps(value, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{field} must be JSON serializable") from exc
    if len(encoded.encode("utf-8")) > MAX_PAYLOAD_BYTES:
        raise InvalidArgumentError(f"{field} exceeds {MAX_PAYLOAD_BYTES} bytes")
    return dict(value)


def require_ttl(value: object) -> int:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgumentError("ttl must be a non-negative integer")
    return value


def missing_parameters(event: Mapping[str, Any], required: Iterable[tuple[str, str]]) -> str | None:
    """Describe the first required parameter absent from ``event``.

    ``required`` pairs each key with the purpose shown to the caller.
    """

    for key, purpose in required:
        value = event.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            return f"Missing {key}: {purpose}"
    return None
