"""Tests for the agent token endpoint."""
from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.errors import ErrorKind, ProvisioningError, UnauthorizedError
from app.main import app
from app.routers import video as video_router
from app.services.escalation import CredentialResult
from app.services import flex_auth
from app.services.flex_auth import TokenResult


class StubValidator:
    def __init__(self, identity: str | None = "agent_alice") -> None:
        self.identity = identity
        self.tokens: list[str] = []

    async def validate(self, token: str) -> TokenResult:
        self.tokens.append(token)
        if self.identity is None:
            raise UnauthorizedError("Token validation failed")
        return TokenResult(identity=self.identity)


class StubService:
    def __init__(self, result: CredentialResult) -> None:
        self.result = result
        self.calls: list[tuple[str, str]] = []

    async def ensure_credential(self, document_id: str, identity: str) -> CredentialResult:
        self.calls.append((document_id, identity))
        return self.result


@pytest.fixture
def override():
    def _install(validator: StubValidator, service: StubService) -> None:
        app.dependency_overrides[video_router.get_token_validator] = lambda: validator
        app.dependency_overrides[video_router.get_escalation_service] = lambda: service

    yield _install
    app.dependency_overrides.clear()


async def post_token(body) -> tuple[int, dict]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.post("/api/video/agent-token", json=body)
    return response.status_code, response.json()


@pytest.mark.asyncio
async def test_agent_token_success(override) -> None:
    validator = StubValidator()
    service = StubService(CredentialResult(success=True, token="jwt-token", session_id="RM1"))
    override(validator, service)

    status, body = await post_token({"DocumentSid": "ET1", "Token": "flex-token"})

    assert status == 200
    assert body == {"success": True, "token": "jwt-token"}
    assert validator.tokens == ["flex-token"]
    assert service.calls == [("ET1", "agent_alice")]


@pytest.mark.asyncio
async def test_agent_token_requires_document_sid(override) -> None:
    service = StubService(CredentialResult(success=True, token="unused"))
    override(StubValidator(), service)

    status, body = await post_token({"Token": "flex-token"})

    assert status == 400
    assert body == {
        "success": False,
        "errorKind": "InvalidArgument",
        "message": "Missing DocumentSid: used for sync document",
    }
    assert service.calls == []


@pytest.mark.asyncio
async def test_agent_token_rejects_non_object_body(override) -> None:
    override(StubValidator(), StubService(CredentialResult(success=True, token="unused")))

    status, body = await post_token(["ET1"])

    assert status == 400
    assert body["errorKind"] == "InvalidArgument"


@pytest.mark.asyncio
async def test_agent_token_rejects_invalid_flex_token(override) -> None:
    service = StubService(CredentialResult(success=True, token="unused"))
    override(StubValidator(identity=None), service)

    status, body = await post_token({"DocumentSid": "ET1", "Token": "bad"})

    assert status == 403
    assert body["errorKind"] == "Unauthorized"
    assert service.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("kind", "status", "message"),
    [
        (ErrorKind.NOT_FOUND, 403, "Invalid document SID."),
        (ErrorKind.PROVISIONING_FAILED, 503, "Error starting video: Twilio responded 503"),
        (ErrorKind.INTERNAL, 500, "Unexpected error issuing credential"),
    ],
)
async def test_agent_token_failures_are_structured(override, kind, status, message) -> None:
    result = CredentialResult.failure(kind, message)
    override(StubValidator(), StubService(result))

    code, body = await post_token({"DocumentSid": "ET1", "Token": "flex-token"})

    assert code == status
    assert body == {"success": False, "errorKind": kind.value, "message": message}


@pytest.mark.asyncio
async def test_agent_token_reports_missing_configuration(monkeypatch) -> None:
    monkeypatch.setattr(flex_auth.settings, "twilio_auth_token", "", raising=False)

    status, body = await post_token({"DocumentSid": "ET1", "Token": "flex-token"})

    assert status == 500
    assert body["errorKind"] == "Internal"


@pytest.mark.asyncio
async def test_missing_parameters_reported_before_configuration(monkeypatch) -> None:
    monkeypatch.setattr(flex_auth.settings, "twilio_account_sid", "", raising=False)
    monkeypatch.setattr(flex_auth.settings, "twilio_auth_token", "", raising=False)

    status, body = await post_token({"Token": "flex-token"})

    assert status == 400
    assert body == {
        "success": False,
        "errorKind": "InvalidArgument",
        "message": "Missing DocumentSid: used for sync document",
    }


@pytest.mark.asyncio
async def test_agent_token_reports_validation_outage(override) -> None:
    class DownValidator(StubValidator):
        async def validate(self, token: str) -> TokenResult:
            raise ProvisioningError("Token validation unavailable")

    service = StubService(CredentialResult(success=True, token="unused"))
    override(DownValidator(), service)

    status, body = await post_token({"DocumentSid": "ET1", "Token": "flex-token"})

    assert status == 503
    assert body["errorKind"] == "ProvisioningFailed"
    assert service.calls == []
