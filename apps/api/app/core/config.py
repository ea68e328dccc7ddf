"""Application configuration for the video escalation API."""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_env: str = Field(default="development")
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    twilio_account_sid: str = Field(default="")
    twilio_auth_token: str = Field(default="")
    twilio_api_key: str = Field(default="")
    twilio_api_secret: str = Field(default="")
    twilio_flex_sync_sid: str = Field(default="")

    sync_base_url: str = Field(default="https://sync.twilio.com/v1")
    video_base_url: str = Field(default="https://video.twilio.com/v1")
    iam_base_url: str = Field(default="https://iam.twilio.com/v1")

    video_room_type: str = Field(default="group")
    video_record_by_default: bool = Field(default=False)

    retry_max_attempts: int = Field(default=3, ge=0)
    retry_unknown_max_attempts: int = Field(default=1, ge=0)
    retry_base_delay: float = Field(default=0.2, ge=0)
    retry_multiplier: float = Field(default=2.0, ge=1)
    retry_max_delay: float = Field(default=3.0, ge=0)
    retry_jitter: float = Field(default=0.1, ge=0)

    request_timeout: float = Field(default=5.0, gt=0)
    sync_revision_guard: bool = Field(default=True)
    sync_session_field: str = Field(default="session_id", min_length=1)
    access_token_ttl: int = Field(default=3600, ge=1)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Allow comma-separated env values for CORS origins."""

        if isinstance(value, str) and not value.lstrip().startswith("["):
            parts = [item.strip() for item in value.split(",") if item.strip()]
            return parts
        return value


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
