"""Provision a video room at most once per coordination document.

The Sync document is the only shared state between concurrent invocations.
A room sid, once written to the document, is never replaced. When two
callers race on a fresh document both may create a room, but only one sid is
persisted and every caller returns that one; the other room is an orphan left
for out-of-band cleanup.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

from ..core.errors import (
    EscalationError,
    InvalidArgumentError,
    NotFoundError,
    ProvisioningError,
    UpdateError,
)
from .sync import CoordinationDocument
from .validation import require_text

logger = logging.getLogger(__name__)

SESSION_FIELD = "session_id"


class DocumentStore(Protocol):
    async def fetch(self, document_id: str) -> CoordinationDocument: ...

    async def update(
        self,
        document_id: str,
        payload: dict[str, Any],
        *,
        revision: str | None = None,
    ) -> CoordinationDocument: ...


class SessionProvisioner(Protocol):
    async def create_session(self) -> str: ...


def recorded_session(document: CoordinationDocument, field: str = SESSION_FIELD) -> str | None:
    value = document.payload.get(field)
    if isinstance(value, str) and value:
        return value
    return None


class ProvisioningCoordinator:
    """Return the room recorded on a document, creating and recording one if absent."""

    def __init__(
        self,
        store: DocumentStore,
        provisioner: SessionProvisioner,
        *,
        session_field: str = SESSION_FIELD,
        revision_guard: bool = True,
    ) -> None:
        self._store = store
        self._provisioner = provisioner
        self._field = session_field
        self._revision_guard = revision_guard

    async def ensure_session(self, document_id: str) -> str:
        document_id = require_text(document_id, "document_id")

        document = await self._store.fetch(document_id)
        existing = recorded_session(document, self._field)
        if existing:
            return existing

        session_id = await self._provisioner.create_session()
        new_payload = {**document.payload, self._field: session_id}
        revision = document.revision if self._revision_guard else None

        try:
            await self._store.update(document_id, new_payload, revision=revision)
        except InvalidArgumentError as exc:
            logger.warning(
                "Document %s cannot hold room %s, room is orphaned: %s",
                document_id,
                session_id,
                exc.message,
            )
            raise ProvisioningError(
                f"Room {session_id} could not be recorded on document {document_id}: {exc.message}"
            ) from exc
        except UpdateError as exc:
            logger.warning(
                "Recording room %s on document %s failed, reconciling: %s",
                session_id,
                document_id,
                exc.message,
            )
            return await self._reconcile(document_id, session_id, exc)

        logger.info("Recorded room %s on document %s", session_id, document_id)
        return session_id

    async def _reconcile(self, document_id: str, session_id: str, cause: UpdateError) -> str:
        """Re-read the document once to discover whether another writer won."""

        try:
            document = await self._store.fetch(document_id)
        except NotFoundError:
            raise
        except EscalationError as exc:
            raise ProvisioningError(
                f"Could not confirm the room for document {document_id}: {exc.message}"
            ) from exc

        winner = recorded_session(document, self._field)
        if winner is None:
            logger.warning("Document %s still records no room; room %s is orphaned", document_id, session_id)
            raise ProvisioningError(
                f"Room {session_id} could not be recorded on document {document_id}"
            ) from cause
        if winner != session_id:
            logger.warning(
                "Document %s already records room %s; room %s is orphaned",
                document_id,
                winner,
                session_id,
            )
        return winner
