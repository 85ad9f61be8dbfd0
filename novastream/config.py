"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_STORAGE_KEY = "novaStream_content"


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="NovaStream", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    remote_url: str | None = Field(
        default=None,
        alias="REMOTE_STORE_URL",
        validation_alias=AliasChoices("REMOTE_STORE_URL", "SUPABASE_URL"),
    )
    remote_api_key: str | None = Field(
        default=None,
        alias="REMOTE_STORE_KEY",
        validation_alias=AliasChoices("REMOTE_STORE_KEY", "SUPABASE_ANON_KEY"),
    )
    remote_timeout_seconds: float = Field(
        default=20.0, alias="REMOTE_TIMEOUT", ge=0
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./novastream.db", alias="DATABASE_URL"
    )
    storage_key: str = Field(default=DEFAULT_STORAGE_KEY, alias="STORAGE_KEY")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("remote_url", "remote_api_key", mode="before")
    @classmethod
    def _strip_credentials(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("storage_key")
    @classmethod
    def _require_storage_key(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("STORAGE_KEY may not be empty")
        return cleaned

    @property
    def remote_configured(self) -> bool:
        """Return ``True`` when both the remote URL and access key are set."""

        return bool(self.remote_url) and bool(self.remote_api_key)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
