"""Data contracts for the agent video token endpoint."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AgentTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    document_sid: str = Field(..., alias="DocumentSid", description="Sync document tied to the interaction")
    token: str = Field(..., alias="Token", description="Flex token of the requesting agent")


class AgentTokenResponse(BaseModel):
    success: bool = True
    token: str = Field(..., description="Access token granting Sync and Video access")


class ErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error_kind: str = Field(..., alias="errorKind")
    message: str
