"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="VinylTracker", alias="APP_NAME")
    app_version: str = Field(default="1.0", alias="APP_VERSION")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    discogs_api_url: HttpUrl = Field(
        default="https://api.discogs.com", alias="DISCOGS_API_URL"
    )
    discogs_username: str | None = Field(default=None, alias="DISCOGS_USERNAME")
    discogs_token: str | None = Field(default=None, alias="DISCOGS_TOKEN")
    discogs_page_size: int = Field(
        default=100, alias="DISCOGS_PAGE_SIZE", ge=1, le=100
    )
    # Discogs allows 60 authenticated requests per minute.
    discogs_request_delay: float = Field(
        default=1.0, alias="DISCOGS_REQUEST_DELAY", ge=0
    )

    master_fetch_max_retries: int = Field(
        default=3, alias="MASTER_FETCH_MAX_RETRIES", ge=1, le=10
    )
    master_release_sync_default: bool = Field(
        default=True, alias="MASTER_RELEASE_SYNC_DEFAULT"
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./vinyltracker.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("discogs_username", "discogs_token", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        """Treat blank credential values as unset."""

        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @property
    def user_agent(self) -> str:
        """Return the User-Agent sent with every Discogs request."""

        return f"{self.app_name}/{self.app_version}"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
