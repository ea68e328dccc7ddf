"""Twilio Sync document client used as the coordination store."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..core.config import settings
from ..core.errors import CreationError, EscalationError, InvalidArgumentError, UpdateError
from .retry import RetryPolicy, SleepCallable, call_with_retry
from .twilio_rest import request_json
from .validation import require_payload, require_text, require_ttl

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CoordinationDocument:
    """Snapshot of a Sync document as returned by the REST API."""

    id: str
    payload: dict[str, Any] = field(default_factory=dict)
    revision: str | None = None
    unique_name: str | None = None
    expires_at: str | None = None

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> "CoordinationDocument":
        data = resource.get("data")
        return cls(
            id=resource["sid"],
            payload=dict(data) if isinstance(data, dict) else {},
            revision=resource.get("revision"),
            unique_name=resource.get("unique_name"),
            expires_at=resource.get("date_expires"),
        )


class SyncDocumentStore:
    """Create, fetch and replace documents of one Sync service."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        service_sid: str,
        base_url: str | None = None,
        policy: RetryPolicy | None = None,
        sleep: SleepCallable = asyncio.sleep,
    ) -> None:
        self._client = client
        self._service_sid = service_sid
        self._base_url = (base_url or settings.sync_base_url).rstrip("/")
        self._policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep

    def _documents_url(self, document_id: str | None = None) -> str:
        url = f"{self._base_url}/Services/{self._service_sid}/Documents"
        return f"{url}/{document_id}" if document_id else url

    async def create(
        self,
        unique_name: str | None = None,
        ttl: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> CoordinationDocument:
        """Create a document, returning it with its server-assigned sid."""

        form: dict[str, str] = {}
        if unique_name is not None:
            form["UniqueName"] = require_text(unique_name, "unique_name")
        if ttl is not None:
            form["Ttl"] = str(require_ttl(ttl))
        if payload is not None:
            form["Data"] = json.dumps(require_payload(payload))

        async def _create() -> dict[str, Any]:
            return await request_json(self._client, "POST", self._documents_url(), data=form)

        try:
            resource = await call_with_retry(
                _create, name="sync.create", policy=self._policy, sleep=self._sleep
            )
        except InvalidArgumentError:
            raise
        except EscalationError as exc:
            raise CreationError(f"Failed to create Sync document: {exc.message}") from exc

        document = CoordinationDocument.from_resource(resource)
        logger.info("Created Sync document %s", document.id)
        return document

    async def fetch(self, document_id: str) -> CoordinationDocument:
        """Fetch a document by sid or unique name.

        Raises ``NotFoundError`` without retrying when the id does not resolve
        and ``RetryExhaustedError`` when transient failures persist.
        """

        document_id = require_text(document_id, "document_id")

        async def _fetch() -> dict[str, Any]:
            return await request_json(self._client, "GET", self._documents_url(document_id))

        resource = await call_with_retry(
            _fetch, name="sync.fetch", policy=self._policy, sleep=self._sleep
        )
        return CoordinationDocument.from_resource(resource)

    async def update(
        self,
        document_id: str,
        payload: dict[str, Any],
        *,
        revision: str | None = None,
    ) -> CoordinationDocument:
        """Replace the whole payload of a document.

        When ``revision`` is given it is sent as ``If-Match`` and the store
        rejects the write if the document changed since that revision.
        """

        document_id = require_text(document_id, "document_id")
        form = {"Data": json.dumps(require_payload(payload))}
        headers = {"If-Match": revision} if revision is not None else None

        async def _update() -> dict[str, Any]:
            return await request_json(
                self._client, "POST", self._documents_url(document_id), data=form, headers=headers
            )

        try:
            resource = await call_with_retry(
                _update, name="sync.update", policy=self._policy, sleep=self._sleep
            )
        except InvalidArgumentError:
            raise
        except EscalationError as exc:
            raise UpdateError(f"Failed to update Sync document {document_id}: {exc.message}") from exc

        return CoordinationDocument.from_resource(resource)
