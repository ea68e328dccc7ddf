"""Validation of the Flex token agents present with each request."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..core.config import settings
from ..core.errors import (
    ConfigurationError,
    EscalationError,
    InvalidArgumentError,
    PermanentError,
    ProvisioningError,
    UnauthorizedError,
)
from .retry import RetryPolicy, SleepCallable, call_with_retry
from .twilio_rest import request_json
from .validation import require_text

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TokenResult:
    identity: str
    realm_user_id: str | None = None
    roles: list[str] = field(default_factory=list)


class FlexTokenValidator:
    """Check a Flex user token against the Twilio IAM validate endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        account_sid: str,
        auth_token: str,
        base_url: str | None = None,
        policy: RetryPolicy | None = None,
        sleep: SleepCallable = asyncio.sleep,
    ) -> None:
        self._client = client
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._base_url = (base_url or settings.iam_base_url).rstrip("/")
        self._policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient) -> "FlexTokenValidator":
        if not settings.twilio_account_sid or not settings.twilio_auth_token:
            raise ConfigurationError("Twilio configuration missing: twilio_account_sid, twilio_auth_token")
        return cls(
            client,
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
        )

    async def validate(self, token: str) -> TokenResult:
        token = require_text(token, "Token")
        url = f"{self._base_url}/Accounts/{self._account_sid}/Tokens/validate"

        async def _validate() -> dict[str, Any]:
            return await request_json(
                self._client,
                "POST",
                url,
                json={"token": token},
                auth=(self._account_sid, self._auth_token),
            )

        try:
            result = await call_with_retry(
                _validate, name="flex.validate_token", policy=self._policy, sleep=self._sleep
            )
        except InvalidArgumentError:
            raise
        except PermanentError as exc:
            logger.warning("Flex token validation failed: %s", exc.message)
            raise UnauthorizedError("Token validation failed") from exc
        except EscalationError as exc:
            logger.warning("Flex token validation unavailable: %s", exc.message)
            raise ProvisioningError(f"Token validation unavailable: {exc.message}") from exc

        identity = result.get("identity")
        if not result.get("valid") or not identity:
            raise UnauthorizedError("Token validation failed")
        return TokenResult(
            identity=identity,
            realm_user_id=result.get("realm_user_id"),
            roles=list(result.get("roles") or []),
        )
