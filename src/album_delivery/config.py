"""Application configuration."""

import os

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    studio_api_base_url: str
    studio_api_token: str
    tenant_id: str
    admin_token: str
    upload_chunk_size: int = 10
    request_timeout_seconds: float = 30
    upload_timeout_seconds: float = 300
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @field_validator("upload_chunk_size")
    @classmethod
    def check_chunk_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("upload_chunk_size must be at least 1")
        return value
