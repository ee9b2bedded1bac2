"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SHADCNDOCS__CACHE__TTL_HOURS=24)
  2. shadcndocs.yaml        (searched in cwd, then ~/.config/shadcndocs/)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_cache_dir("shadcndocs")
_DEFAULT_CACHE_DIR = os.path.join(_DEFAULT_DATA_DIR, "pages")
_DEFAULT_DB_PATH = os.path.join(_DEFAULT_DATA_DIR, "cache.db")

_USER_AGENT = "shadcndocs/0.3 (Documentation Fetcher)"


def _find_config_file() -> str | None:
    """Return the path of the first shadcndocs.yaml found, or None."""
    candidates = [
        Path("shadcndocs.yaml"),
        Path.home() / ".config" / "shadcndocs" / "shadcndocs.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class SiteSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_url: str = "https://www.shadcn-svelte.com"
    bits_ui_base_url: str = "https://bits-ui.com"

    @field_validator("base_url", "bits_ui_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class FetcherSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    request_timeout_seconds: float = 30.0
    # Browser budget is always at least request timeout + startup allowance
    browser_timeout_seconds: float = 45.0
    browser_startup_seconds: float = 15.0
    browser_enabled: bool = True
    max_redirects: int = 5
    user_agent: str = _USER_AGENT


class CacheSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    backend: Literal["files", "sqlite"] = "files"
    ttl_hours: int = 72
    memory_size: int = 50
    directory: str = _DEFAULT_CACHE_DIR
    db_path: str = _DEFAULT_DB_PATH
    sweep_interval_minutes: int = 60

    @field_validator("memory_size")
    @classmethod
    def validate_memory_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("memory_size must be >= 1")
        return v


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SHADCNDOCS__CACHE__TTL_HOURS=24
        env_prefix="SHADCNDOCS__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    site: SiteSettings = SiteSettings()
    fetcher: FetcherSettings = FetcherSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
