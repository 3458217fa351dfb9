from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_UPLOAD_URL_PREFIX = "/uploads"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(..., alias="DATABASE_URL")
    app_storage_dir: Path = Field(Path("/data"), alias="APP_STORAGE_DIR")

    # Public prefix every stored asset reference starts with (e.g. /uploads/items/7/images/a.png).
    upload_url_prefix: str = Field(DEFAULT_UPLOAD_URL_PREFIX, alias="UPLOAD_URL_PREFIX")

    basic_auth_username: str = Field(..., alias="BASIC_AUTH_USERNAME")
    basic_auth_password: str = Field(..., alias="BASIC_AUTH_PASSWORD")

    cors_origins: str | None = Field(None, alias="CORS_ORIGINS")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @field_validator("upload_url_prefix", mode="before")
    @classmethod
    def _normalize_upload_url_prefix(cls, v: object) -> object:
        if v is None:
            return DEFAULT_UPLOAD_URL_PREFIX
        if isinstance(v, str):
            prefix = v.strip().strip("/")
            if not prefix:
                return DEFAULT_UPLOAD_URL_PREFIX
            return f"/{prefix}"
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    @property
    def upload_dir(self) -> Path:
        return self.app_storage_dir / "uploads"

    @property
    def items_dir(self) -> Path:
        """Root of the per-item code directories (`uploads/items/{code}/...`)."""
        return self.upload_dir / "items"


@lru_cache
def get_settings() -> Settings:
    return Settings()
