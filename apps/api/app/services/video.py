"""Twilio Video room provisioning."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..core.config import settings
from ..core.errors import EscalationError, InvalidArgumentError, ProvisioningError
from .retry import RetryPolicy, SleepCallable, call_with_retry
from .twilio_rest import request_json
from .validation import require_text

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RoomOptions:
    room_type: str = "group"
    record_participants_on_connect: bool = False

    @classmethod
    def from_settings(cls) -> "RoomOptions":
        return cls(
            room_type=settings.video_room_type,
            record_participants_on_connect=settings.video_record_by_default,
        )

    def to_form(self) -> dict[str, str]:
        return {
            "Type": require_text(self.room_type, "room_type"),
            "RecordParticipantsOnConnect": "true" if self.record_participants_on_connect else "false",
        }


class VideoRoomProvisioner:
    """Create video rooms and return their sids.

    The Rooms API has no idempotency key, so every successful call creates a
    new room.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str | None = None,
        options: RoomOptions | None = None,
        policy: RetryPolicy | None = None,
        sleep: SleepCallable = asyncio.sleep,
    ) -> None:
        self._client = client
        self._base_url = (base_url or settings.video_base_url).rstrip("/")
        self._options = options or RoomOptions.from_settings()
        self._policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep

    async def create_session(self, options: RoomOptions | None = None) -> str:
        form = (options or self._options).to_form()

        async def _create() -> dict[str, Any]:
            return await request_json(self._client, "POST", f"{self._base_url}/Rooms", data=form)

        try:
            resource = await call_with_retry(
                _create, name="video.create_room", policy=self._policy, sleep=self._sleep
            )
        except InvalidArgumentError:
            raise
        except EscalationError as exc:
            raise ProvisioningError(f"Error starting video: {exc.message}") from exc

        room_sid = resource.get("sid")
        if not isinstance(room_sid, str) or not room_sid:
            raise ProvisioningError("Video API response did not include a room sid")
        logger.info("Created video room %s", room_sid)
        return room_sid
