"""Settings for :mod:`sheetbase`.

Settings are defined in one place (this file) and loaded using `pydantic-settings`.

Supported sources (lowest → highest precedence):
1) `settings.toml` (current working directory)
2) `.env` (current working directory)
3) environment variables (prefix: `SHEETBASE_`)
4) explicit overrides (`Settings(...)` / CLI)

`settings.toml` is flat: keys map 1:1 to `Settings` fields.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, TypeVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, TomlConfigSettingsSource

ENV_PREFIX = "SHEETBASE_"
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def _coerce_log_level(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("log_level must be an int or a log level name")

    if isinstance(value, int):
        return value

    text = str(value).strip()
    if not text:
        return logging.INFO

    if text.isdigit():
        return int(text)

    mapped = logging.getLevelNamesMapping().get(text.upper())
    if isinstance(mapped, int):
        return mapped

    raise ValueError(f"Invalid log_level: {value!r}")


def _coerce_extensions(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()

    if isinstance(value, str):
        items = [part.strip() for part in value.split(",")]
    elif isinstance(value, (list, tuple)):
        items = [str(v).strip() for v in value]
    else:
        raise TypeError("supported_file_extensions must be a list of strings or a comma-separated string")

    normalized: list[str] = []
    for ext in items:
        if not ext:
            continue
        if not ext.startswith("."):
            ext = f".{ext.lstrip('*.')}"
        normalized.append(ext.lower())
    return tuple(normalized)


class Settings(BaseSettings):
    """Runtime settings for sheetbase."""

    model_config = SettingsConfigDict(
        extra="ignore",
        env_prefix=ENV_PREFIX,
        env_file=".env",
        toml_file="settings.toml",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./data/sheetbase.sqlite",
        description="SQLAlchemy URL of the database that receives provisioned tables.",
    )
    database_echo: bool = Field(default=False)

    # Provisioning
    table_prefix: str = Field(default="dt_", pattern=r"^[a-z][a-z0-9_]*$")
    max_identifier_length: int = Field(default=63, ge=24, le=128)
    insert_batch_size: int = Field(default=500, ge=1)

    # Templates / analytics
    template_sample_rows: int = Field(default=5, ge=0)
    summary_sample_rows: int = Field(default=5, ge=0)

    # Uploads
    blob_dir: Path = Field(default=Path("data/uploads"))
    max_upload_bytes: int = Field(default=DEFAULT_MAX_UPLOAD_BYTES, ge=1)
    supported_file_extensions: tuple[str, ...] = Field(default=(".xlsx", ".xlsm", ".csv"))

    # Logging
    log_format: Literal["text", "ndjson"] = Field(default="text")
    log_level: int = Field(default=logging.INFO)

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> int:
        return _coerce_log_level(value)

    @field_validator("supported_file_extensions", mode="before")
    @classmethod
    def _validate_supported_file_extensions(cls, value: Any) -> tuple[str, ...]:
        return _coerce_extensions(value)

    @field_validator("log_format", mode="before")
    @classmethod
    def _validate_log_format(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip().lower()
            return "ndjson" if text == "json" else text
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


T = TypeVar("T")


def create_settings_accessors(
    settings_type: type[T],
) -> tuple[Callable[[], T], Callable[[], T]]:
    """Create ``get_settings`` and ``reload_settings`` helpers for a settings class."""

    @lru_cache(maxsize=1)
    def _build() -> T:
        return settings_type()

    def get_settings() -> T:
        return _build()

    def reload_settings() -> T:
        _build.cache_clear()
        return _build()

    return get_settings, reload_settings


get_settings, reload_settings = create_settings_accessors(Settings)


__all__ = ["DEFAULT_MAX_UPLOAD_BYTES", "ENV_PREFIX", "Settings", "get_settings", "reload_settings"]
