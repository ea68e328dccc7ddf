"""Access-token minting for agents joining an escalated video call.

The token is signed locally; issuing it never touches the network.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

import jwt

from ..core.config import settings
from .validation import require_text

TOKEN_CONTENT_TYPE = "twilio-fpa;v=1"


@dataclass(slots=True)
class AccessCredential:
    token: str
    identity: str
    expires_in: int


class TokenIssuer:
    """Sign access tokens granting Sync access to one document and Video access to one room."""

    def __init__(
        self,
        *,
        account_sid: str,
        api_key: str,
        api_secret: str,
        sync_service_sid: str,
        ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._account_sid = account_sid
        self._api_key = api_key
        self._api_secret = api_secret
        self._sync_service_sid = sync_service_sid
        self._ttl = ttl_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls) -> "TokenIssuer":
        return cls(
            account_sid=settings.twilio_account_sid,
            api_key=settings.twilio_api_key,
            api_secret=settings.twilio_api_secret,
            sync_service_sid=settings.twilio_flex_sync_sid,
            ttl_seconds=settings.access_token_ttl,
        )

    def grants(self, identity: str, document_id: str, session_id: str) -> dict[str, Any]:
        return {
            "identity": identity,
            "data_sync": {"service_sid": self._sync_service_sid, "document_sid": document_id},
            "video": {"room": session_id},
        }

    def mint(self, identity: str, document_id: str, session_id: str) -> AccessCredential:
        identity = require_text(identity, "identity")
        document_id = require_text(document_id, "document_id")
        session_id = require_text(session_id, "session_id")

        issued_at = int(self._clock())
        claims = {
            "jti": f"{self._api_key}-{issued_at}",
            "iss": self._api_key,
            "sub": self._account_sid,
            "iat": issued_at,
            "nbf": issued_at,
            "exp": issued_at + self._ttl,
            "grants": self.grants(identity, document_id, session_id),
        }
        token = jwt.encode(
            claims,
            self._api_secret,
            algorithm="HS256",
            headers={"cty": TOKEN_CONTENT_TYPE},
        )
        return AccessCredential(token=token, identity=identity, expires_in=self._ttl)
