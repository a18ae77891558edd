"""Runtime configuration based on environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AnyHttpUrl, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseModel):
    base_url: AnyHttpUrl = Field(
        default="http://localhost:8080/api",
        description="Root of the Serenia REST API, without trailing slash.",
    )
    request_timeout_seconds: float = Field(default=30.0, gt=0, le=600)

    def root(self) -> str:
        return str(self.base_url).rstrip("/")


class ConversationSettings(BaseModel):
    page_size: int = Field(default=20, ge=1, le=500)


class PollerSettings(BaseModel):
    max_attempts: int = Field(default=10, ge=1, le=100)
    interval_seconds: float = Field(default=1.0, gt=0, le=60)


class QuotaSettings(BaseModel):
    low_messages_threshold: int = Field(default=2, ge=0)
    low_tokens_threshold: int = Field(default=500, ge=0)


class StorageSettings(BaseModel):
    backend: Literal["memory", "file"] = "memory"
    token_key: str = Field(default="serenia_token", min_length=1)
    file_path: Path = Field(default=Path(".serenia/session.json"))

    @field_validator("token_key", mode="before")
    @classmethod
    def _strip_key(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SERENIA_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    environment: Literal["dev", "staging", "prod"] = "dev"
    default_language: str = "fr"

    api: ApiSettings = Field(default_factory=ApiSettings)
    conversation: ConversationSettings = Field(default_factory=ConversationSettings)
    poller: PollerSettings = Field(default_factory=PollerSettings)
    quota: QuotaSettings = Field(default_factory=QuotaSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


@lru_cache
def get_settings() -> ClientSettings:
    """Return cached settings instance."""

    return ClientSettings()


__all__ = [
    "ApiSettings",
    "ClientSettings",
    "ConversationSettings",
    "PollerSettings",
    "QuotaSettings",
    "StorageSettings",
    "get_settings",
]
