"""Agent credential issuance for chat-to-video escalation.

``ensure_credential`` is the boundary between the provisioning protocol and
the API layer: every anticipated failure comes back as a ``CredentialResult``
with a stable error kind instead of an exception.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..core.config import settings
from ..core.errors import ConfigurationError, ErrorKind, EscalationError
from .coordinator import ProvisioningCoordinator
from .retry import RetryPolicy
from .sync import SyncDocumentStore
from .tokens import TokenIssuer
from .video import VideoRoomProvisioner

logger = logging.getLogger(__name__)

REQUIRED_SETTINGS = (
    "twilio_account_sid",
    "twilio_api_key",
    "twilio_api_secret",
    "twilio_flex_sync_sid",
)


@dataclass(slots=True)
class CredentialResult:
    success: bool
    token: str | None = None
    session_id: str | None = None
    error_kind: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def failure(cls, error_kind: ErrorKind, message: str) -> "CredentialResult":
        return cls(success=False, error_kind=error_kind, message=message)

    def to_body(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "token": self.token}
        return {
            "success": False,
            "errorKind": self.error_kind.value if self.error_kind else ErrorKind.INTERNAL.value,
            "message": self.message,
        }


class EscalationService:
    def __init__(self, coordinator: ProvisioningCoordinator, issuer: TokenIssuer) -> None:
        self._coordinator = coordinator
        self._issuer = issuer

    async def ensure_credential(self, document_id: str, identity: str) -> CredentialResult:
        """Ensure the document's room exists and mint a token scoped to it."""

        try:
            session_id = await self._coordinator.ensure_session(document_id)
            credential = self._issuer.mint(identity, document_id, session_id)
        except EscalationError as exc:
            logger.warning(
                "Could not issue agent credential for document %s (%s): %s",
                document_id,
                exc.error_kind.value,
                exc.message,
            )
            return CredentialResult.failure(exc.error_kind, exc.message)
        except Exception:  # noqa: BLE001 - the API layer always receives a result
            logger.exception("Unexpected error issuing agent credential for %s", document_id)
            return CredentialResult.failure(ErrorKind.INTERNAL, "Unexpected error issuing credential")

        logger.info("Issued video credential for %s on room %s", credential.identity, session_id)
        return CredentialResult(success=True, token=credential.token, session_id=session_id)


def missing_settings() -> list[str]:
    return [name for name in REQUIRED_SETTINGS if not str(getattr(settings, name, "")).strip()]


def build_service(client: httpx.AsyncClient) -> EscalationService:
    """Wire the Twilio-backed collaborators from application settings."""

    missing = missing_settings()
    if missing:
        raise ConfigurationError(f"Twilio configuration missing: {', '.join(missing)}")

    policy = RetryPolicy.from_settings()
    store = SyncDocumentStore(client, service_sid=settings.twilio_flex_sync_sid, policy=policy)
    provisioner = VideoRoomProvisioner(client, policy=policy)
    coordinator = ProvisioningCoordinator(
        store,
        provisioner,
        session_field=settings.sync_session_field,
        revision_guard=settings.sync_revision_guard,
    )
    return EscalationService(coordinator, TokenIssuer.from_settings())


def open_twilio_client() -> httpx.AsyncClient:
    """Return an HTTP client authenticated with the Twilio API key."""

    return httpx.AsyncClient(
        auth=(settings.twilio_api_key, settings.twilio_api_secret),
        timeout=settings.request_timeout,
    )
