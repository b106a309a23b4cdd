"""Pydantic models describing jsonkeeper configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from .sources import file_sources

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class ServerConfig(BaseModel):
    """Remote endpoint used by the fetch command."""

    base_url: str = "https://api.example.com"
    timeout_seconds: int = Field(default=30, gt=0)
    retry_attempts: int = Field(default=3, ge=1)

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("base_url cannot be empty")
        return value


class LoggingConfig(BaseModel):
    """Log level and optional log file."""

    level: str = "info"
    file_path: Path | None = None

    @field_validator("level", mode="before")
    @classmethod
    def _normalise_level(cls, value: Any) -> str:
        text = str(value or "info").strip().lower()
        if text not in LOG_LEVELS:
            raise ValueError(f"Unsupported log level: {value}, expected one of {LOG_LEVELS}")
        return text

    @field_validator("file_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)


class StorageConfig(BaseModel):
    """Record store location and per-record size limit."""

    data_dir: Path = Field(default=Path("./data"))
    max_file_size_mb: int = Field(default=100, gt=0)

    @field_validator("data_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value).expanduser()


class AppConfig(BaseSettings):
    """Top-level configuration document.

    Sources, highest precedence first: init kwargs, ``JSONKEEPER_SECTION__FIELD``
    environment variables, then the active configuration files (local before
    user), then the defaults below.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    model_config = SettingsConfigDict(
        env_prefix="JSONKEEPER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, *file_sources(settings_cls))


__all__ = ["AppConfig", "LOG_LEVELS", "LoggingConfig", "ServerConfig", "StorageConfig"]
